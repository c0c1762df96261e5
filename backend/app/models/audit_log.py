"""
Audit Log Model
Append-only record of security-relevant and content-changing actions.
"""

import uuid

from sqlalchemy import Column, String, Text, DateTime, Uuid, JSON, ForeignKey, Index
from app.database import Base
from app.utils.clock import utcnow

class AuditLog(Base):
    __tablename__ = "audit_logs"

    id = Column(Uuid, primary_key=True, default=uuid.uuid4)
    user_id = Column(Uuid, ForeignKey("users.id", ondelete="SET NULL"), nullable=True)
    action = Column(String(100), nullable=False)
    resource_type = Column(String(50), nullable=True)
    resource_id = Column(Uuid, nullable=True)
    ip_address = Column(String(45), nullable=True)
    user_agent = Column(Text, nullable=True)
    details = Column(JSON, nullable=True)
    created_at = Column(DateTime, default=utcnow, nullable=False)

    __table_args__ = (
        Index('ix_audit_logs_user_id', 'user_id'),
        Index('ix_audit_logs_created_at', 'created_at'),
    )

    def __repr__(self):
        return f"<AuditLog(action='{self.action}', user_id={self.user_id})>"
