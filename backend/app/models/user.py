"""
User Model
Stores user credentials and profile information.
"""

import uuid

from sqlalchemy import Column, String, Boolean, DateTime, Uuid, Index
from app.database import Base
from app.utils.clock import utcnow

class User(Base):
    """
    User model for authentication.
    totp_secret is the active second factor; totp_pending_secret only holds
    an enrollment that has not been confirmed yet.
    """
    __tablename__ = "users"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    username = Column(String(50), nullable=False)
    email = Column(String(255), nullable=False)
    password_hash = Column(String(255), nullable=False)
    totp_secret = Column(String(32), nullable=True)
    totp_pending_secret = Column(String(32), nullable=True)
    is_active = Column(Boolean, default=True, nullable=False)
    is_admin = Column(Boolean, default=False, nullable=False)

    created_at = Column(DateTime, default=utcnow, nullable=False)
    updated_at = Column(DateTime, default=utcnow, onupdate=utcnow)
    last_login = Column(DateTime, nullable=True)

    __table_args__ = (
        Index('ix_users_email', 'email', unique=True),
        Index('ix_users_username', 'username', unique=True),
    )

    @property
    def has_2fa(self) -> bool:
        return self.totp_secret is not None

    def __repr__(self):
        return f"<User(id={self.id}, username='{self.username}')>"
