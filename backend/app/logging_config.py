"""
Logging Configuration
Console output plus rotating files under LOG_DIR: app.log for everything,
error.log for ERROR and above.
"""

import logging
import logging.config
import os
from pathlib import Path
from typing import Any, Dict

MAX_LOG_BYTES = 10 * 1024 * 1024
LOG_BACKUPS = 5

# Third-party loggers that are noisy at INFO
QUIET_LOGGERS = ("passlib", "aiosqlite", "httpx")


def _rotating_handler(path: str, level: str) -> Dict[str, Any]:
    return {
        "class": "logging.handlers.RotatingFileHandler",
        "filename": path,
        "maxBytes": MAX_LOG_BYTES,
        "backupCount": LOG_BACKUPS,
        "formatter": "default",
        "level": level,
        "encoding": "utf8",
    }


def setup_logging(log_dir: str = "/var/log/fossflow", log_level: str = "INFO") -> str:
    """
    Configure the root logger and uvicorn's loggers. Safe to call once per app
    startup; later calls replace the handlers. Returns the app.log path.
    """
    Path(log_dir).mkdir(parents=True, exist_ok=True)
    app_log = os.path.join(log_dir, "app.log")
    level = log_level.upper()

    logging.config.dictConfig({
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "default": {
                "format": "%(asctime)s - %(name)s - %(levelname)s - %(message)s",
                "datefmt": "%Y-%m-%d %H:%M:%S",
            },
        },
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "stream": "ext://sys.stdout",
                "formatter": "default",
                "level": level,
            },
            "file": _rotating_handler(app_log, level),
            "error_file": _rotating_handler(os.path.join(log_dir, "error.log"), "ERROR"),
        },
        "root": {
            "handlers": ["console", "file", "error_file"],
            "level": level,
        },
        "loggers": {
            # uvicorn installs its own handlers; route through ours instead
            "uvicorn": {"handlers": [], "level": "INFO", "propagate": True},
            "uvicorn.access": {"handlers": ["file"], "level": "INFO", "propagate": False},
            **{name: {"level": "WARNING"} for name in QUIET_LOGGERS},
        },
    })

    logging.getLogger(__name__).debug(f"Logging to {app_log}")
    return app_log
