"""
Token Service
Issues and verifies signed bearer tokens (JWT).
"""

import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

import jwt

from app.config import Settings
from app.exceptions import TokenExpiredError, TokenInvalidError


@dataclass
class TokenClaims:
    user_id: uuid.UUID
    username: str
    issued_at: datetime
    expires_at: datetime


class TokenService:
    """
    Stateless HS256 tokens. There is no revocation list: a token stays
    valid until its own expiry even if the account changes afterwards.
    """

    def __init__(self, secret_key: str, algorithm: str = "HS256", ttl: timedelta = timedelta(hours=24)):
        self._secret_key = secret_key
        self.algorithm = algorithm
        self.ttl = ttl

    @classmethod
    def from_settings(cls, settings: Settings) -> "TokenService":
        return cls(
            secret_key=settings.secret_key,
            algorithm=settings.jwt_algorithm,
            ttl=timedelta(minutes=settings.access_token_expire_minutes),
        )

    def issue(self, user_id: uuid.UUID, username: str, ttl: Optional[timedelta] = None) -> str:
        """Create a new signed access token for the given identity."""
        now = datetime.now(timezone.utc)
        payload = {
            "sub": str(user_id),
            "username": username,
            "iat": now,
            "exp": now + (ttl if ttl is not None else self.ttl),
        }
        return jwt.encode(payload, self._secret_key, algorithm=self.algorithm)

    def verify(self, token: str) -> TokenClaims:
        """
        Decode and validate a token.
        Raises TokenExpiredError when the signature is good but the token has
        expired, and TokenInvalidError for every other failure.
        """
        if not token:
            raise TokenInvalidError()
        try:
            payload = jwt.decode(
                token,
                self._secret_key,
                algorithms=[self.algorithm],
                options={"require": ["sub", "iat", "exp"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredError()
        except jwt.PyJWTError:
            raise TokenInvalidError()

        try:
            user_id = uuid.UUID(payload["sub"])
        except (TypeError, ValueError):
            raise TokenInvalidError()

        return TokenClaims(
            user_id=user_id,
            username=payload.get("username", ""),
            issued_at=datetime.fromtimestamp(payload["iat"], tz=timezone.utc),
            expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
        )
