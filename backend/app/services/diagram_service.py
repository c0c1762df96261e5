"""
Diagram Service
Diagram storage with ownership checks, tag filtering and version history.
"""

import uuid
from dataclasses import dataclass, fields
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.exceptions import AuthorizationError, NotFoundError, ValidationError
from app.models.diagram import Diagram, DiagramTag, DiagramVersion
from app.services import audit_service
from app.services.audit_service import RequestInfo
from app.utils.clock import utcnow

_UNSET: Any = object()

MAX_TAG_LENGTH = 64


@dataclass
class DiagramChanges:
    """Partial update of a diagram. UNSET fields are left alone."""
    title: Any = _UNSET
    description: Any = _UNSET
    diagram_data: Any = _UNSET
    is_public: Any = _UNSET
    tags: Any = _UNSET

    def values(self) -> Dict[str, Any]:
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if getattr(self, f.name) is not _UNSET
        }


def _normalize_tags(tags: Optional[Iterable[str]]) -> List[str]:
    seen = []
    for tag in tags or []:
        tag = tag.strip()
        if tag and tag not in seen:
            seen.append(tag)
    return seen


def _clean_tags(tags: Optional[Iterable[str]]) -> List[str]:
    """Normalize tags for storage, rejecting any longer than the tag column."""
    cleaned = _normalize_tags(tags)
    too_long = [tag for tag in cleaned if len(tag) > MAX_TAG_LENGTH]
    if too_long:
        raise ValidationError(f"Tags must be at most {MAX_TAG_LENGTH} characters")
    return cleaned


def _tag_filter(tags: List[str]):
    """Match diagrams carrying at least one of the given tags."""
    return Diagram.id.in_(select(DiagramTag.diagram_id).where(DiagramTag.tag.in_(tags)))


def _search_filter(search: str):
    pattern = f"%{search}%"
    return or_(Diagram.title.ilike(pattern), Diagram.description.ilike(pattern))


async def list_for_user(
    db: AsyncSession,
    user_id: uuid.UUID,
    page: int,
    page_size: int,
    search: str = "",
    tags: Optional[List[str]] = None,
) -> Tuple[List[Diagram], int]:
    conditions = [Diagram.user_id == user_id]
    if search:
        conditions.append(_search_filter(search))
    tags = _normalize_tags(tags)
    if tags:
        conditions.append(_tag_filter(tags))

    total = await db.scalar(select(func.count()).select_from(Diagram).where(*conditions))
    result = await db.execute(
        select(Diagram)
        .where(*conditions)
        .order_by(Diagram.updated_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    return list(result.scalars().unique().all()), total or 0


async def list_public(
    db: AsyncSession,
    page: int,
    page_size: int,
    search: str = "",
    tags: Optional[List[str]] = None,
) -> Tuple[List[Diagram], int]:
    conditions = [Diagram.is_public.is_(True)]
    if search:
        conditions.append(_search_filter(search))
    tags = _normalize_tags(tags)
    if tags:
        conditions.append(_tag_filter(tags))

    total = await db.scalar(select(func.count()).select_from(Diagram).where(*conditions))
    result = await db.execute(
        select(Diagram)
        .where(*conditions)
        .order_by(Diagram.created_at.desc())
        .limit(page_size)
        .offset((page - 1) * page_size)
    )
    return list(result.scalars().unique().all()), total or 0


async def get_visible(db: AsyncSession, diagram_id: uuid.UUID, user_id: uuid.UUID) -> Diagram:
    """Fetch a diagram the user owns or that is public; anything else is a 404."""
    diagram = await db.get(Diagram, diagram_id)
    if diagram is None or (diagram.user_id != user_id and not diagram.is_public):
        raise NotFoundError("Diagram not found")
    return diagram


async def get_owned(db: AsyncSession, diagram_id: uuid.UUID, user_id: uuid.UUID) -> Diagram:
    diagram = await db.get(Diagram, diagram_id)
    if diagram is None:
        raise NotFoundError("Diagram not found")
    if diagram.user_id != user_id:
        raise AuthorizationError()
    return diagram


def _set_data(diagram: Diagram, data: Any, user_id: uuid.UUID, db: AsyncSession,
              change_description: Optional[str] = None):
    """
    Archive the current data as a version and bump the version number,
    but only when the data actually changes.
    """
    if data == diagram.diagram_data:
        return
    db.add(DiagramVersion(
        diagram_id=diagram.id,
        version=diagram.version,
        diagram_data=diagram.diagram_data,
        change_description=change_description,
        created_by=user_id,
    ))
    diagram.diagram_data = data
    diagram.version = diagram.version + 1


async def create(
    db: AsyncSession,
    user_id: uuid.UUID,
    title: Optional[str],
    diagram_data: Any,
    description: Optional[str] = None,
    is_public: bool = False,
    tags: Optional[List[str]] = None,
    request_info: Optional[RequestInfo] = None,
) -> Diagram:
    if not title or diagram_data is None:
        raise ValidationError("Title and diagram data are required")

    diagram = Diagram(
        user_id=user_id,
        title=title,
        description=description,
        diagram_data=diagram_data,
        is_public=is_public,
        version=1,
        tag_rows=[DiagramTag(tag=tag) for tag in _clean_tags(tags)],
    )
    db.add(diagram)
    await db.flush()
    audit_service.record(
        db, "create", user_id=user_id, resource_type="diagram",
        resource_id=diagram.id, request_info=request_info,
    )
    await db.commit()
    return diagram


async def update(
    db: AsyncSession,
    diagram_id: uuid.UUID,
    user_id: uuid.UUID,
    changes: DiagramChanges,
    change_description: Optional[str] = None,
    request_info: Optional[RequestInfo] = None,
) -> Diagram:
    diagram = await get_owned(db, diagram_id, user_id)
    values = changes.values()
    if not values:
        raise ValidationError("No fields to update")

    if "title" in values and not values["title"]:
        raise ValidationError("Title cannot be empty")
    if "is_public" in values and values["is_public"] is None:
        raise ValidationError("is_public must be true or false")
    if "diagram_data" in values and values["diagram_data"] is None:
        raise ValidationError("Diagram data cannot be empty")
    if "tags" in values:
        values["tags"] = _clean_tags(values["tags"])

    if "diagram_data" in values:
        _set_data(diagram, values.pop("diagram_data"), user_id, db, change_description)
    if "tags" in values:
        new_tags = values.pop("tags")
        kept = [row for row in diagram.tag_rows if row.tag in new_tags]
        existing = {row.tag for row in kept}
        diagram.tag_rows = kept + [DiagramTag(tag=t) for t in new_tags if t not in existing]
    for key, value in values.items():
        setattr(diagram, key, value)
    diagram.updated_at = utcnow()

    audit_service.record(
        db, "update", user_id=user_id, resource_type="diagram",
        resource_id=diagram.id, request_info=request_info,
    )
    await db.commit()
    return diagram


async def delete(
    db: AsyncSession,
    diagram_id: uuid.UUID,
    user_id: uuid.UUID,
    request_info: Optional[RequestInfo] = None,
) -> None:
    diagram = await get_owned(db, diagram_id, user_id)
    await db.delete(diagram)
    audit_service.record(
        db, "delete", user_id=user_id, resource_type="diagram",
        resource_id=diagram_id, request_info=request_info,
    )
    await db.commit()


async def list_versions(db: AsyncSession, diagram_id: uuid.UUID, user_id: uuid.UUID) -> List[DiagramVersion]:
    await get_visible(db, diagram_id, user_id)
    result = await db.execute(
        select(DiagramVersion)
        .where(DiagramVersion.diagram_id == diagram_id)
        .order_by(DiagramVersion.version.desc())
    )
    return list(result.scalars().all())


async def restore_version(
    db: AsyncSession,
    diagram_id: uuid.UUID,
    version_id: uuid.UUID,
    user_id: uuid.UUID,
    request_info: Optional[RequestInfo] = None,
) -> Diagram:
    """Make an archived version's data current again (itself recorded as a new version)."""
    diagram = await get_owned(db, diagram_id, user_id)
    result = await db.execute(
        select(DiagramVersion).where(
            DiagramVersion.id == version_id,
            DiagramVersion.diagram_id == diagram_id,
        )
    )
    version = result.scalar_one_or_none()
    if version is None:
        raise NotFoundError("Version not found")

    _set_data(
        diagram, version.diagram_data, user_id, db,
        change_description=f"Restored from version {version.version}",
    )
    diagram.updated_at = utcnow()
    audit_service.record(
        db, "restore_version", user_id=user_id, resource_type="diagram",
        resource_id=diagram.id, request_info=request_info,
        details={"versionId": str(version_id)},
    )
    await db.commit()
    return diagram
