"""
Authentication Router
Endpoints for registration, login and two-factor enrollment.
"""

from typing import Union

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.dependencies import get_auth_service, get_current_user, get_request_info
from app.database import get_db
from app.models.user import User
from app.rate_limit import auth_limit, limiter
from app.schemas.user import (
    AuthResponse,
    MessageResponse,
    TwoFactorRequired,
    TwoFactorSetupResponse,
    TwoFactorVerify,
    UserCreate,
    UserLogin,
    UserSummary,
)
from app.services.audit_service import RequestInfo
from app.services.auth_service import AuthService, LoginResult

router = APIRouter()


def _auth_response(message: str, result: LoginResult) -> AuthResponse:
    user = result.user
    return AuthResponse(
        message=message,
        token=result.token,
        user=UserSummary(
            id=user.id,
            username=user.username,
            email=user.email,
            has_2fa=user.has_2fa,
        ),
    )


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(auth_limit)
async def register(
    request: Request,
    user_data: UserCreate,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Create an account and return a token for it.
    Rate limited per client address by RATE_LIMIT_AUTH (default 5 per 15 minutes).
    """
    result = await auth.register(
        db,
        username=user_data.username,
        email=user_data.email,
        password=user_data.password,
        request_info=request_info,
    )
    return _auth_response("User created successfully", result)


@router.post("/login", response_model=Union[AuthResponse, TwoFactorRequired])
@limiter.limit(auth_limit)
async def login(
    request: Request,
    login_data: UserLogin,
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    request_info: RequestInfo = Depends(get_request_info),
):
    """
    Authenticate with email and password, plus a TOTP code when 2FA is on.
    Without a code for a 2FA account the response is {"require2FA": true}
    and no token is issued.
    Rate limited by RATE_LIMIT_AUTH to slow down brute force attacks.
    """
    result = await auth.login(
        db,
        email=login_data.email,
        password=login_data.password,
        totp_code=login_data.totp,
        request_info=request_info,
    )
    if result.requires_second_factor:
        return TwoFactorRequired()
    return _auth_response("Login successful", result)


@router.post("/setup-2fa", response_model=TwoFactorSetupResponse)
async def setup_two_factor(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
):
    """
    Start 2FA enrollment. The secret stays pending until confirmed via /verify-2fa.
    """
    setup = await auth.setup_two_factor(db, user)
    return TwoFactorSetupResponse(
        secret=setup.secret,
        provisioning_uri=setup.provisioning_uri,
        qr_code=setup.qr_code,
        manual_entry_key=setup.secret,
    )


@router.post("/verify-2fa", response_model=MessageResponse)
async def verify_two_factor(
    body: TwoFactorVerify,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
    auth: AuthService = Depends(get_auth_service),
    request_info: RequestInfo = Depends(get_request_info),
):
    """Confirm enrollment with a code from the authenticator app."""
    await auth.verify_two_factor(db, user, body.code, request_info=request_info)
    return MessageResponse(message="2FA activated successfully")
