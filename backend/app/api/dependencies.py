"""
API Dependencies
Reusable FastAPI dependencies for endpoint protection.
"""

import uuid
from dataclasses import dataclass, field
from typing import List, Optional

from fastapi import Depends, Request
from fastapi.security import APIKeyHeader, HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.database import get_db
from app.exceptions import ApiKeyNotFoundError, AuthenticationError, AuthorizationError, NotFoundError
from app.models.user import User
from app.services import user_store
from app.services.api_key_service import ApiKeyManager
from app.services.audit_service import RequestInfo
from app.services.auth_service import AuthService

bearer_scheme = HTTPBearer(auto_error=False)
api_key_scheme = APIKeyHeader(name="X-API-Key", auto_error=False)


@dataclass
class Identity:
    """Who is making the request, attached to request.state.identity."""
    user_id: uuid.UUID
    username: str
    method: str  # "token" or "api_key"
    permissions: List[str] = field(default_factory=list)


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_api_key_manager(request: Request) -> ApiKeyManager:
    return request.app.state.api_key_manager


def get_request_info(request: Request) -> RequestInfo:
    return RequestInfo(
        ip_address=request.client.host if request.client else None,
        user_agent=request.headers.get("user-agent"),
    )


async def get_token_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    auth: AuthService = Depends(get_auth_service),
) -> Identity:
    """
    Require an `Authorization: Bearer <token>` header.
    Expired and invalid tokens raise distinct errors.
    """
    if credentials is None or not credentials.credentials:
        raise AuthenticationError("Access token required")

    claims = auth.tokens.verify(credentials.credentials)
    identity = Identity(user_id=claims.user_id, username=claims.username, method="token")
    request.state.identity = identity
    return identity


async def get_identity(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(bearer_scheme),
    api_key: Optional[str] = Depends(api_key_scheme),
    auth: AuthService = Depends(get_auth_service),
    keys: ApiKeyManager = Depends(get_api_key_manager),
    db: AsyncSession = Depends(get_db),
) -> Identity:
    """Accept either a bearer token or an X-API-Key header."""
    if credentials is not None and credentials.credentials:
        return await get_token_identity(request, credentials, auth)
    if api_key:
        record = await keys.authenticate(db, api_key)
        user = await user_store.get_by_id(db, record.user_id)
        if user is None:
            raise ApiKeyNotFoundError()
        identity = Identity(
            user_id=user.id,
            username=user.username,
            method="api_key",
            permissions=list(record.permissions or []),
        )
        request.state.identity = identity
        return identity
    raise AuthenticationError("Access token required")


async def _load_user(db: AsyncSession, identity: Identity) -> User:
    user = await user_store.get_by_id(db, identity.user_id)
    if user is None:
        raise NotFoundError("User not found")
    return user


async def get_current_user(
    identity: Identity = Depends(get_token_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """
    Dependency that enforces bearer-token authentication and loads the user.
    Tokens are not re-checked against account state; they live until expiry.
    """
    return await _load_user(db, identity)


async def get_current_user_any(
    identity: Identity = Depends(get_identity),
    db: AsyncSession = Depends(get_db),
) -> User:
    """Like get_current_user, but also accepts an API key."""
    return await _load_user(db, identity)


async def require_admin(user: User = Depends(get_current_user)) -> User:
    """
    Dependency that enforces admin privileges.
    User must be authenticated (via get_current_user) and have admin flag.
    """
    if not user.is_admin:
        raise AuthorizationError("Admin access required")
    return user
