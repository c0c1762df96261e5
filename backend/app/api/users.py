"""
Users Router
Profile, password, 2FA, API key and activity endpoints for the current user,
plus admin-only user management.
"""

import uuid
from typing import List

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import (
    get_api_key_manager,
    get_auth_service,
    get_current_user,
    get_current_user_any,
    get_request_info,
    require_admin,
)
from app.database import get_db
from app.exceptions import ConflictError, NotFoundError, ValidationError
from app.models.user import User
from app.schemas.api_key import ApiKeyCreate, ApiKeyCreated, ApiKeyResponse
from app.schemas.audit import ActivityEntry
from app.schemas.common import MAX_PAGE, PaginatedResponse
from app.schemas.user import (
    MessageResponse,
    PasswordChange,
    PasswordConfirm,
    UserProfile,
    UserProfileUpdate,
    UserStatusResponse,
    UserStatusUpdate,
)
from app.services import audit_service, user_store
from app.services.api_key_service import ApiKeyManager
from app.services.audit_service import RequestInfo
from app.services.auth_service import AuthService
from app.services.user_store import UserChanges

router = APIRouter()


# =============================================================================
# Current user
# =============================================================================

@router.get("/me", response_model=UserProfile)
async def get_me(user: User = Depends(get_current_user_any)):
    """
    Get current user profile.
    Accepts a bearer token or an API key.
    """
    return user


@router.put("/me", response_model=UserProfile)
async def update_me(
    update_data: UserProfileUpdate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Update username and/or email. Only fields present in the body are changed.
    """
    changes = UserChanges()
    if update_data.username is not None:
        if await user_store.exists_with(db, username=update_data.username, exclude_id=user.id):
            raise ConflictError("Username already taken")
        changes.username = update_data.username

    if update_data.email is not None:
        if await user_store.exists_with(db, email=update_data.email, exclude_id=user.id):
            raise ConflictError("Email already taken")
        changes.email = update_data.email

    if not changes:
        raise ValidationError("No fields to update")

    try:
        await user_store.apply_changes(db, user, changes)
        audit_service.record(
            db, "update_profile", user_id=user.id, resource_type="user",
            resource_id=user.id, request_info=request_info,
        )
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise ConflictError("Username or email already taken")
    return user


@router.post("/me/change-password", response_model=MessageResponse)
async def change_password(
    body: PasswordChange,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    request_info: RequestInfo = Depends(get_request_info),
):
    await auth.change_password(
        db, user, body.current_password, body.new_password, request_info=request_info
    )
    return MessageResponse(message="Password changed successfully")


@router.post("/me/disable-2fa", response_model=MessageResponse)
async def disable_two_factor(
    body: PasswordConfirm,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    request_info: RequestInfo = Depends(get_request_info),
):
    """Turn off 2FA. Requires the account password."""
    await auth.disable_two_factor(db, user, body.password, request_info=request_info)
    return MessageResponse(message="2FA disabled successfully")


# =============================================================================
# API keys
# =============================================================================

@router.get("/me/api-keys", response_model=List[ApiKeyResponse])
async def list_api_keys(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    keys: ApiKeyManager = Depends(get_api_key_manager),
):
    """List API keys. Raw key values are never returned here."""
    return await keys.list_for_user(db, user.id)


@router.post("/me/api-keys", response_model=ApiKeyCreated, status_code=status.HTTP_201_CREATED)
async def create_api_key(
    body: ApiKeyCreate,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    keys: ApiKeyManager = Depends(get_api_key_manager),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Create an API key. The raw key is in this response only.
    """
    record, raw_key = await keys.create(
        db,
        user_id=user.id,
        name=body.name,
        permissions=body.permissions,
        expires_in_days=body.expires_in_days,
    )
    audit_service.record(
        db, "create_api_key", user_id=user.id, resource_type="api_key",
        resource_id=record.id, request_info=request_info,
    )
    await db.commit()

    listed = ApiKeyResponse.model_validate(record)
    return ApiKeyCreated(**listed.model_dump(), api_key=raw_key)


@router.post("/me/api-keys/{key_id}/revoke", response_model=ApiKeyResponse)
async def revoke_api_key(
    key_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    keys: ApiKeyManager = Depends(get_api_key_manager),
    request_info: RequestInfo = Depends(get_request_info),
):
    """Deactivate a key without deleting its record."""
    record = await keys.revoke(db, user.id, key_id)
    audit_service.record(
        db, "revoke_api_key", user_id=user.id, resource_type="api_key",
        resource_id=record.id, request_info=request_info,
    )
    await db.commit()
    return record


@router.delete("/me/api-keys/{key_id}", response_model=MessageResponse)
async def delete_api_key(
    key_id: uuid.UUID,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    keys: ApiKeyManager = Depends(get_api_key_manager),
    request_info: RequestInfo = Depends(get_request_info),
):
    await keys.delete(db, user.id, key_id)
    audit_service.record(
        db, "delete_api_key", user_id=user.id, resource_type="api_key",
        resource_id=key_id, request_info=request_info,
    )
    await db.commit()
    return MessageResponse(message="API key deleted successfully")


# =============================================================================
# Activity
# =============================================================================

@router.get("/me/activity", response_model=PaginatedResponse[ActivityEntry])
async def get_activity(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    entries, total = await audit_service.list_for_user(db, user.id, page, limit)
    return PaginatedResponse[ActivityEntry].build(
        items=[ActivityEntry.model_validate(e) for e in entries],
        total=total,
        page=page,
        page_size=limit,
    )


# =============================================================================
# Admin
# =============================================================================

@router.get("/", response_model=PaginatedResponse[UserProfile])
async def list_users(
    page: int = Query(1, ge=1, le=MAX_PAGE),
    limit: int = Query(20, ge=1, le=100),
    search: str = "",
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
):
    """
    List all users (Admin only).
    """
    users, total = await user_store.search(db, search, page, limit)
    return PaginatedResponse[UserProfile].build(
        items=[UserProfile.model_validate(u) for u in users],
        total=total,
        page=page,
        page_size=limit,
    )


@router.patch("/{user_id}/status", response_model=UserStatusResponse)
async def update_user_status(
    user_id: uuid.UUID,
    body: UserStatusUpdate,
    db: AsyncSession = Depends(get_db),
    admin: User = Depends(require_admin),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Activate or deactivate a user (Admin only).
    Deactivation blocks new logins; tokens already issued stay valid until expiry.
    """
    if body.is_active is None:
        raise ValidationError("is_active field is required")

    user = await user_store.get_by_id(db, user_id)
    if user is None:
        raise NotFoundError("User not found")

    await user_store.apply_changes(db, user, UserChanges(is_active=body.is_active))
    audit_service.record(
        db, "update_user_status", user_id=admin.id, resource_type="user",
        resource_id=user.id, request_info=request_info,
        details={"is_active": body.is_active},
    )
    await db.commit()
    return user
