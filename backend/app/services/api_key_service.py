"""
API Key Service
Issues opaque API keys, stores only their digest, and authenticates presented keys.
"""

import hashlib
import logging
import secrets
import uuid
from datetime import timedelta
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import (
    ApiKeyExpiredError,
    ApiKeyNotFoundError,
    ApiKeyRevokedError,
    AuthorizationError,
    NotFoundError,
    ValidationError,
)
from app.models.api_key import ApiKey
from app.utils.clock import utcnow

logger = logging.getLogger(__name__)

KEY_BYTES = 32  # 256 bits of entropy
MAX_EXPIRY_DAYS = 3650


class ApiKeyManager:
    """Creates, lists, revokes and authenticates API keys."""

    def __init__(self, prefix: str = "ffl_"):
        self.prefix = prefix

    def generate_raw_key(self) -> str:
        return f"{self.prefix}{secrets.token_hex(KEY_BYTES)}"

    @staticmethod
    def digest(raw_key: str) -> str:
        """SHA-256 hex digest used for storage and lookup."""
        return hashlib.sha256(raw_key.encode("utf-8")).hexdigest()

    async def create(
        self,
        db: AsyncSession,
        user_id: uuid.UUID,
        name: str,
        permissions: Optional[Iterable[str]] = None,
        expires_in_days: Optional[int] = None,
    ) -> Tuple[ApiKey, str]:
        """
        Persist a new key and return (record, raw_key).
        The raw key is not stored anywhere and cannot be recovered later.
        """
        if not name or not name.strip():
            raise ValidationError("API key name is required")
        if expires_in_days is not None and not 0 < expires_in_days <= MAX_EXPIRY_DAYS:
            raise ValidationError(f"expiresInDays must be between 1 and {MAX_EXPIRY_DAYS}")

        raw_key = self.generate_raw_key()
        expires_at = utcnow() + timedelta(days=expires_in_days) if expires_in_days else None
        record = ApiKey(
            user_id=user_id,
            name=name.strip(),
            key_hash=self.digest(raw_key),
            permissions=sorted(set(permissions or [])),
            expires_at=expires_at,
            is_active=True,
        )
        db.add(record)
        await db.flush()
        logger.info(f"API key {record.id} created for user {user_id}")
        return record, raw_key

    async def list_for_user(self, db: AsyncSession, user_id: uuid.UUID) -> List[ApiKey]:
        result = await db.execute(
            select(ApiKey)
            .where(ApiKey.user_id == user_id)
            .order_by(ApiKey.created_at.desc())
        )
        return list(result.scalars().all())

    async def authenticate(self, db: AsyncSession, raw_key: Optional[str]) -> ApiKey:
        """
        Resolve a presented key to its record.
        Revocation is checked before expiry; success stamps last_used_at.
        """
        if not raw_key or not raw_key.startswith(self.prefix):
            raise ApiKeyNotFoundError()

        result = await db.execute(select(ApiKey).where(ApiKey.key_hash == self.digest(raw_key)))
        record = result.scalar_one_or_none()
        if record is None:
            raise ApiKeyNotFoundError()
        if not record.is_active:
            raise ApiKeyRevokedError()

        now = utcnow()
        if record.expires_at is not None and record.expires_at <= now:
            raise ApiKeyExpiredError()

        record.last_used_at = now
        await db.commit()
        return record

    async def _get_owned(self, db: AsyncSession, user_id: uuid.UUID, key_id: uuid.UUID) -> ApiKey:
        record = await db.get(ApiKey, key_id)
        if record is None:
            raise NotFoundError("API key not found")
        if record.user_id != user_id:
            raise AuthorizationError()
        return record

    async def revoke(self, db: AsyncSession, user_id: uuid.UUID, key_id: uuid.UUID) -> ApiKey:
        record = await self._get_owned(db, user_id, key_id)
        record.is_active = False
        await db.flush()
        return record

    async def delete(self, db: AsyncSession, user_id: uuid.UUID, key_id: uuid.UUID) -> None:
        record = await self._get_owned(db, user_id, key_id)
        await db.delete(record)
        await db.flush()
