"""
User Store
Persistence adapter for user credential records.
"""

import uuid
from dataclasses import dataclass, fields
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm.attributes import set_committed_value

from app.models.user import User
from app.utils.clock import utcnow

_UNSET: Any = object()


@dataclass
class UserChanges:
    """
    A partial update of a user row. Fields left as UNSET are not written;
    None is a real value (e.g. clearing a TOTP secret).
    """
    username: Any = _UNSET
    email: Any = _UNSET
    password_hash: Any = _UNSET
    totp_secret: Any = _UNSET
    totp_pending_secret: Any = _UNSET
    is_active: Any = _UNSET
    is_admin: Any = _UNSET
    last_login: Any = _UNSET

    def values(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }

    def __bool__(self) -> bool:
        return bool(self.values())


async def get_by_id(db: AsyncSession, user_id: uuid.UUID) -> Optional[User]:
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(User.email == email))
    return result.scalar_one_or_none()


async def exists_with(
    db: AsyncSession,
    username: Optional[str] = None,
    email: Optional[str] = None,
    exclude_id: Optional[uuid.UUID] = None,
) -> bool:
    """True if another user already holds the username or email."""
    conditions = []
    if username is not None:
        conditions.append(User.username == username)
    if email is not None:
        conditions.append(User.email == email)
    if not conditions:
        return False
    query = select(User.id).where(or_(*conditions))
    if exclude_id is not None:
        query = query.where(User.id != exclude_id)
    result = await db.execute(query.limit(1))
    return result.first() is not None


async def create(
    db: AsyncSession,
    username: str,
    email: str,
    password_hash: str,
    is_admin: bool = False,
) -> User:
    user = User(
        username=username,
        email=email,
        password_hash=password_hash,
        is_admin=is_admin,
        is_active=True,
    )
    db.add(user)
    await db.flush()
    return user


async def apply_changes(db: AsyncSession, user: User, changes: UserChanges) -> User:
    """Write only the fields present in changes as a single UPDATE statement."""
    values = changes.values()
    if not values:
        return user
    values["updated_at"] = utcnow()
    await db.execute(
        update(User)
        .where(User.id == user.id)
        .values(**values)
        .execution_options(synchronize_session=False)
    )
    for key, value in values.items():
        set_committed_value(user, key, value)
    return user


async def touch_last_login(db: AsyncSession, user: User, when: datetime) -> User:
    return await apply_changes(db, user, UserChanges(last_login=when))


async def search(
    db: AsyncSession, query: str, page: int, page_size: int
) -> Tuple[List[User], int]:
    """Admin listing with optional case-insensitive search on username/email."""
    base = select(User)
    count = select(func.count()).select_from(User)
    if query:
        pattern = f"%{query}%"
        condition = or_(User.username.ilike(pattern), User.email.ilike(pattern))
        base = base.where(condition)
        count = count.where(condition)

    total = await db.scalar(count)
    result = await db.execute(
        base.order_by(User.created_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    return list(result.scalars().all()), total or 0
