"""
API Key Model
Only the SHA-256 digest of a key is stored; the raw value is shown once at creation.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Uuid, JSON, ForeignKey, Index
from app.database import Base
from app.utils.clock import utcnow

class ApiKey(Base):
    __tablename__ = "api_keys"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False)
    name = Column(String(100), nullable=False)
    key_hash = Column(String(64), nullable=False)
    permissions = Column(JSON, default=list, nullable=False)
    last_used_at = Column(DateTime, nullable=True)
    expires_at = Column(DateTime, nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_api_keys_user_id', 'user_id'),
        Index('ix_api_keys_key_hash', 'key_hash', unique=True),
    )

    def __repr__(self):
        return f"<ApiKey(id={self.id}, name='{self.name}', active={self.is_active})>"
