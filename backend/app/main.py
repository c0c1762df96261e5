"""
FossFLOW FastAPI Application
Main entry point for the backend API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.encoders import jsonable_encoder
from starlette.middleware.base import BaseHTTPMiddleware
from slowapi import _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.middleware import SlowAPIMiddleware

from app.config import Settings, get_settings
from app.database import Database
from app.exceptions import AppError
from app.logging_config import setup_logging
from app.rate_limit import configure_limiter, limiter
from app.services.api_key_service import ApiKeyManager
from app.services.auth_service import AuthService

logger = logging.getLogger(__name__)

VERSION = "1.0.0"


@asynccontextmanager
async def lifespan(app: FastAPI):
    """
    Application lifespan handler.
    Opens the database pool on startup and closes it on shutdown.
    """
    settings: Settings = app.state.settings
    setup_logging(log_dir=settings.log_dir, log_level=settings.log_level)
    logger.info("Starting FossFLOW backend...")

    app.state.db = Database(settings)

    # Initialize database (creates tables if they don't exist)
    # In production, use Alembic migrations instead
    if settings.debug:
        await app.state.db.create_all()
        logger.info("Database initialized (debug mode)")

    logger.info("FossFLOW backend ready")

    yield

    logger.info("Shutting down FossFLOW backend...")
    await app.state.db.dispose()
    logger.info("Database connections closed")


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Baseline security headers for every response."""

    def __init__(self, app, enable_hsts: bool = False):
        super().__init__(app)
        self.enable_hsts = enable_hsts

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers.setdefault("X-Content-Type-Options", "nosniff")
        response.headers.setdefault("X-Frame-Options", "DENY")
        response.headers.setdefault("Referrer-Policy", "no-referrer")
        if self.enable_hsts:
            response.headers.setdefault(
                "Strict-Transport-Security", "max-age=31536000; includeSubDomains; preload"
            )
        return response


def register_exception_handlers(app: FastAPI, settings: Settings):
    @app.exception_handler(AppError)
    async def app_error_handler(request: Request, exc: AppError):
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=exc.headers,
        )

    @app.exception_handler(RequestValidationError)
    async def request_validation_handler(request: Request, exc: RequestValidationError):
        return JSONResponse(
            status_code=400,
            content={"detail": "Invalid request", "errors": jsonable_encoder(exc.errors())},
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled error on {request.method} {request.url.path}", exc_info=exc)
        detail = f"Internal server error: {exc}" if settings.debug else "Internal server error"
        return JSONResponse(status_code=500, content={"detail": detail})


def create_app(settings: Optional[Settings] = None) -> FastAPI:
    settings = settings or get_settings()

    app = FastAPI(
        title=settings.app_name,
        description="""
        ## FossFLOW Diagram API

        Storage backend for the FossFLOW diagram editor.

        ### Features
        - **Accounts**: Registration, JWT login, TOTP two-factor authentication
        - **API Keys**: Long-lived keys for scripts and integrations
        - **Diagrams**: Private and public diagrams with tags and version history
        - **Audit Log**: Per-user activity history
        """,
        version=VERSION,
        docs_url=f"{settings.api_prefix}/docs",
        redoc_url=f"{settings.api_prefix}/redoc",
        openapi_url=f"{settings.api_prefix}/openapi.json",
        lifespan=lifespan,
    )

    # Stateless components built once from settings
    app.state.settings = settings
    app.state.auth_service = AuthService.from_settings(settings)
    app.state.api_key_manager = ApiKeyManager(prefix=settings.api_key_prefix)

    # Configure rate limiting
    app.state.limiter = configure_limiter(settings)
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_middleware(SlowAPIMiddleware)

    app.add_middleware(SecurityHeadersMiddleware, enable_hsts=settings.enable_https)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-API-Key", "X-Requested-With"],
    )

    register_exception_handlers(app, settings)
    register_routes(app, settings)
    return app


def register_routes(app: FastAPI, settings: Settings):
    from app.api import auth, diagrams, users

    prefix = settings.api_prefix

    # =============================================================================
    # Health Check Endpoints
    # =============================================================================

    @app.get("/", tags=["Health"])
    @limiter.exempt
    async def root():
        """Root endpoint - API information."""
        return {
            "name": "FossFLOW API",
            "version": VERSION,
            "docs": f"{prefix}/docs",
            "status": "running"
        }

    @app.get(f"{prefix}/health", tags=["Health"])
    @limiter.exempt
    async def health_check():
        """Health check endpoint for container orchestration."""
        return {
            "status": "healthy",
            "service": "fossflow-backend",
            "version": VERSION
        }

    @app.get(f"{prefix}/health/db", tags=["Health"])
    @limiter.exempt
    async def database_health(request: Request):
        """Database connectivity check."""
        try:
            await request.app.state.db.ping()
            return {"status": "healthy", "database": "connected"}
        except Exception as e:
            logger.error(f"Database health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "database": "disconnected", "error": str(e)},
            )

    @app.get(f"{prefix}/health/redis", tags=["Health"])
    @limiter.exempt
    async def redis_health():
        """Redis connectivity check."""
        import redis.asyncio as redis_async

        try:
            r = redis_async.from_url(settings.redis_url)
            await r.ping()
            await r.aclose()
            return {"status": "healthy", "redis": "connected"}
        except Exception as e:
            logger.error(f"Redis health check failed: {e}")
            return JSONResponse(
                status_code=503,
                content={"status": "unhealthy", "redis": "disconnected", "error": str(e)},
            )

    # =============================================
    # API Routers
    # =============================================

    app.include_router(auth.router, prefix=f"{prefix}/auth", tags=["Auth"])
    app.include_router(users.router, prefix=f"{prefix}/users", tags=["Users"])
    app.include_router(diagrams.router, prefix=f"{prefix}/diagrams", tags=["Diagrams"])


app = create_app()


if __name__ == "__main__":
    import uvicorn
    settings = get_settings()
    uvicorn.run(
        "app.main:app",
        host="0.0.0.0",
        port=8000,
        reload=settings.debug
    )
