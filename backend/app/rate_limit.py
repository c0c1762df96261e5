"""
Rate Limiting
Fixed-window counters per client address, stored in memory or Redis.
"""

from slowapi import Limiter
from slowapi.util import get_remote_address

from app.config import Settings, settings

limiter = Limiter(
    key_func=get_remote_address,
    default_limits=[settings.rate_limit_general],
    storage_uri=settings.rate_limit_storage_uri,
    strategy="fixed-window",
    enabled=settings.rate_limit_enabled,
)

# Limit strings read on every request, so create_app can override them
_route_limits = {"auth": settings.rate_limit_auth}


def auth_limit() -> str:
    """Limit for register/login attempts."""
    return _route_limits["auth"]


def configure_limiter(app_settings: Settings) -> Limiter:
    """
    Apply an application's settings to the shared limiter.
    The limiter is process-wide, so the most recently created app wins.
    """
    limiter.enabled = app_settings.rate_limit_enabled
    _route_limits["auth"] = app_settings.rate_limit_auth
    return limiter
