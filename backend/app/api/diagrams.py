"""
Diagrams Router
Endpoints for storing, sharing and versioning diagrams.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import Identity, get_identity, get_request_info, get_token_identity
from app.database import get_db
from app.schemas.common import MAX_PAGE, PaginatedResponse
from app.schemas.diagram import (
    DiagramCreate,
    DiagramResponse,
    DiagramSummary,
    DiagramUpdate,
    DiagramVersionResponse,
    PublicDiagramSummary,
)
from app.schemas.user import MessageResponse
from app.services import diagram_service
from app.services.audit_service import RequestInfo
from app.services.diagram_service import DiagramChanges

router = APIRouter()


@router.get("/", response_model=PaginatedResponse[DiagramSummary])
async def list_diagrams(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    tags: List[str] = Query(default=[]),
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    """
    List the current user's diagrams, most recently updated first.
    `tags` matches diagrams carrying any of the given tags.
    """
    diagrams, total = await diagram_service.list_for_user(
        db, identity.user_id, page, limit, search=search, tags=tags
    )
    return PaginatedResponse[DiagramSummary].build(
        items=[DiagramSummary.model_validate(d) for d in diagrams],
        total=total,
        page=page,
        page_size=limit,
    )


@router.get("/public", response_model=PaginatedResponse[PublicDiagramSummary])
async def list_public_diagrams(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(10, ge=1, le=100),
    search: str = "",
    tags: List[str] = Query(default=[]),
    db: AsyncSession = Depends(get_db),
):
    """Public diagrams from all users. No authentication required."""
    diagrams, total = await diagram_service.list_public(db, page, limit, search=search, tags=tags)
    return PaginatedResponse[PublicDiagramSummary].build(
        items=[PublicDiagramSummary.model_validate(d) for d in diagrams],
        total=total,
        page=page,
        page_size=limit,
    )


@router.get("/{diagram_id}", response_model=DiagramResponse)
async def get_diagram(
    diagram_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    return await diagram_service.get_visible(db, diagram_id, identity.user_id)


@router.post("/", response_model=DiagramResponse, status_code=status.HTTP_201_CREATED)
async def create_diagram(
    body: DiagramCreate,
    identity: Identity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
    request_info: RequestInfo = Depends(get_request_info),
):
    return await diagram_service.create(
        db,
        user_id=identity.user_id,
        title=body.title,
        diagram_data=body.diagram_data,
        description=body.description,
        is_public=body.is_public,
        tags=body.tags,
        request_info=request_info,
    )


@router.put("/{diagram_id}", response_model=DiagramResponse)
async def update_diagram(
    diagram_id: uuid.UUID,
    body: DiagramUpdate,
    identity: Identity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Update a diagram (owner only). Changing diagram_data archives the
    previous data as a version and bumps the version number.
    """
    provided = body.model_fields_set - {"change_description"}
    changes = DiagramChanges(**{name: getattr(body, name) for name in provided})
    return await diagram_service.update(
        db,
        diagram_id,
        identity.user_id,
        changes,
        change_description=body.change_description,
        request_info=request_info,
    )


@router.delete("/{diagram_id}", response_model=MessageResponse)
async def delete_diagram(
    diagram_id: uuid.UUID,
    identity: Identity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
    request_info: RequestInfo = Depends(get_request_info),
):
    await diagram_service.delete(db, diagram_id, identity.user_id, request_info=request_info)
    return MessageResponse(message="Diagram deleted successfully")


@router.get("/{diagram_id}/versions", response_model=List[DiagramVersionResponse])
async def list_versions(
    diagram_id: uuid.UUID,
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
):
    return await diagram_service.list_versions(db, diagram_id, identity.user_id)


@router.post("/{diagram_id}/versions/{version_id}/restore", response_model=DiagramResponse)
async def restore_version(
    diagram_id: uuid.UUID,
    version_id: uuid.UUID,
    identity: Identity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
    request_info: RequestInfo = Depends(get_request_info),
):
    return await diagram_service.restore_version(
        db, diagram_id, version_id, identity.user_id, request_info=request_info
    )
