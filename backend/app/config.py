"""
FossFLOW Configuration Module
Loads settings from environment variables with sensible defaults.
"""

from functools import lru_cache
from typing import List
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Application
    app_name: str = "FossFLOW"
    debug: bool = False
    enable_https: bool = False

    # Authentication
    secret_key: str = Field(..., min_length=32)  # Required, no default
    access_token_expire_minutes: int = 60 * 24  # 24 hours
    jwt_algorithm: str = "HS256"
    bcrypt_rounds: int = Field(12, ge=12)

    # Two-factor authentication
    totp_issuer: str = "FossFLOW"
    totp_valid_window: int = Field(1, ge=0, le=2)

    # API keys
    api_key_prefix: str = "ffl_"

    # Rate Limiting (fixed window, per client address)
    rate_limit_enabled: bool = True
    rate_limit_auth: str = "5/15minutes"  # Register / login attempts
    rate_limit_general: str = "100/15minutes"  # Everything else
    rate_limit_storage_uri: str = "memory://"

    # Database
    database_url: str = Field(..., alias="DATABASE_URL")
    db_pool_size: int = 20
    db_max_overflow: int = 20
    db_echo: bool = False

    # Redis
    redis_url: str = "redis://redis:6379/0"

    # CORS
    cors_origins: str = "http://localhost:3000"

    # Logging
    log_dir: str = "/var/log/fossflow"
    log_level: str = "INFO"

    # API Settings
    api_prefix: str = "/api"

    @field_validator('secret_key')
    @classmethod
    def validate_secret_key(cls, v: str) -> str:
        """Validate that the secret key is secure."""
        if not v or len(v) < 32:
            raise ValueError("SECRET_KEY must be at least 32 characters long")

        # Check for common insecure values
        insecure_values = [
            "change-me-in-production",
            "fallback-secret",
            "your-secret-key",
            "secret",
            "password",
            "changeme",
        ]
        if any(bad in v.lower() for bad in insecure_values):
            raise ValueError(
                "SECRET_KEY appears to be insecure. Generate a secure key with: "
                "python -c 'import secrets; print(secrets.token_hex(32))'"
            )

        return v

    @property
    def cors_origins_list(self) -> List[str]:
        """Parse comma-separated CORS origins into a list."""
        if self.cors_origins.strip() == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = False
        populate_by_name = True
        extra = "ignore"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Convenience alias
settings = get_settings()
