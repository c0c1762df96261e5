"""
Audit Service
Writes audit log entries in the caller's transaction.
"""

import uuid
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.audit_log import AuditLog


@dataclass
class RequestInfo:
    """Where a request came from, as recorded in the audit log."""
    ip_address: Optional[str] = None
    user_agent: Optional[str] = None


def record(
    db: AsyncSession,
    action: str,
    user_id: Optional[uuid.UUID] = None,
    resource_type: Optional[str] = None,
    resource_id: Optional[uuid.UUID] = None,
    request_info: Optional[RequestInfo] = None,
    details: Optional[Dict[str, Any]] = None,
) -> AuditLog:
    """Add an audit entry to the session. The caller commits."""
    info = request_info or RequestInfo()
    entry = AuditLog(
        user_id=user_id,
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        ip_address=info.ip_address,
        user_agent=info.user_agent,
        details=details,
    )
    db.add(entry)
    return entry


async def list_for_user(
    db: AsyncSession, user_id: uuid.UUID, page: int, page_size: int
) -> Tuple[List[AuditLog], int]:
    """Return one page of a user's activity, newest first, and the total count."""
    total = await db.scalar(
        select(func.count()).select_from(AuditLog).where(AuditLog.user_id == user_id)
    )
    result = await db.execute(
        select(AuditLog)
        .where(AuditLog.user_id == user_id)
        .order_by(AuditLog.created_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    return list(result.scalars().all()), total or 0
