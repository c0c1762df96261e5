"""
Authentication Service
Registration, two-step login, 2FA enrollment and password changes.
Composes password hashing, TOTP and token issuance over the user store.
"""

import enum
import logging
from dataclasses import dataclass
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession
from starlette.concurrency import run_in_threadpool

from app.config import Settings
from app.exceptions import AuthenticationError, ConflictError, ValidationError
from app.models.user import User
from app.services import audit_service, user_store
from app.services.audit_service import RequestInfo
from app.services.passwords import PasswordHasher
from app.services.token_service import TokenService
from app.services.totp_service import TotpEngine
from app.services.user_store import UserChanges
from app.utils.clock import utcnow
from app.utils.password_policy import validate_password

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS = "Invalid credentials"


class LoginState(str, enum.Enum):
    AWAITING_CREDENTIALS = "awaiting_credentials"
    PASSWORD_VERIFIED = "password_verified"
    TOTP_REQUIRED = "totp_required"
    AUTHENTICATED = "authenticated"
    REJECTED = "rejected"


@dataclass
class LoginResult:
    state: LoginState
    user: Optional[User] = None
    token: Optional[str] = None

    @property
    def requires_second_factor(self) -> bool:
        return self.state is LoginState.TOTP_REQUIRED


@dataclass
class TwoFactorSetup:
    secret: str
    provisioning_uri: str
    qr_code: str


class AuthService:
    def __init__(self, passwords: PasswordHasher, totp: TotpEngine, tokens: TokenService):
        self.passwords = passwords
        self.totp = totp
        self.tokens = tokens

    @classmethod
    def from_settings(cls, settings: Settings) -> "AuthService":
        return cls(
            passwords=PasswordHasher(rounds=settings.bcrypt_rounds),
            totp=TotpEngine(issuer=settings.totp_issuer, valid_window=settings.totp_valid_window),
            tokens=TokenService.from_settings(settings),
        )

    async def _hash(self, password: str) -> str:
        return await run_in_threadpool(self.passwords.hash, password)

    async def _verify(self, password: str, password_hash: str) -> bool:
        return await run_in_threadpool(self.passwords.verify, password, password_hash)

    @staticmethod
    def _check_new_password(password: str, label: str = "Password"):
        errors = validate_password(password)
        if errors:
            raise ValidationError("; ".join(e.replace("Password", label, 1) for e in errors))

    def issue_token(self, user: User) -> str:
        return self.tokens.issue(user.id, user.username)

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    async def register(
        self,
        db: AsyncSession,
        username: Optional[str],
        email: Optional[str],
        password: Optional[str],
        request_info: Optional[RequestInfo] = None,
    ) -> LoginResult:
        """Create an account and sign it in. The password is checked before any hashing."""
        if not username or not email or not password:
            raise ValidationError("All fields are required")
        self._check_new_password(password)

        if await user_store.exists_with(db, username=username, email=email):
            raise ConflictError("User already exists")

        password_hash = await self._hash(password)
        try:
            user = await user_store.create(db, username=username, email=email, password_hash=password_hash)
            audit_service.record(
                db, "register", user_id=user.id, resource_type="user",
                resource_id=user.id, request_info=request_info,
            )
            await db.commit()
        except IntegrityError:
            # Lost a race with a concurrent registration for the same name/email
            await db.rollback()
            raise ConflictError("User already exists")

        logger.info(f"User registered: {user.id}")
        return LoginResult(state=LoginState.AUTHENTICATED, user=user, token=self.issue_token(user))

    # ------------------------------------------------------------------
    # Login
    # ------------------------------------------------------------------

    def _reject(self, reason: str, user: Optional[User] = None):
        logger.warning(f"Login rejected ({reason}) for user {user.id if user else 'unknown'}")
        raise AuthenticationError(INVALID_CREDENTIALS)

    async def login(
        self,
        db: AsyncSession,
        email: Optional[str],
        password: Optional[str],
        totp_code: Optional[str] = None,
        request_info: Optional[RequestInfo] = None,
    ) -> LoginResult:
        """
        Run the login state machine:

            AWAITING_CREDENTIALS -> PASSWORD_VERIFIED -> TOTP_REQUIRED | AUTHENTICATED

        Every failure (unknown email, wrong password, inactive account, wrong
        code) is reported with the same message. TOTP_REQUIRED returns without
        a token; the client resubmits the same credentials plus a code.
        """
        if not email or not password:
            raise ValidationError("Email and password are required")

        state = LoginState.AWAITING_CREDENTIALS
        user = await user_store.get_by_email(db, email)
        if user is None:
            await run_in_threadpool(self.passwords.dummy_verify)
            self._reject("unknown account")

        if not await self._verify(password, user.password_hash):
            self._reject("bad password", user)
        if not user.is_active:
            self._reject("inactive account", user)
        state = LoginState.PASSWORD_VERIFIED

        if user.totp_secret:
            if not totp_code:
                logger.info(f"Second factor required for user {user.id}")
                return LoginResult(state=LoginState.TOTP_REQUIRED)
            if not self.totp.verify_code(user.totp_secret, totp_code):
                self._reject("bad second factor", user)

        state = LoginState.AUTHENTICATED
        await user_store.touch_last_login(db, user, utcnow())
        audit_service.record(
            db, "login", user_id=user.id, resource_type="user",
            resource_id=user.id, request_info=request_info,
        )
        await db.commit()

        logger.info(f"User logged in: {user.id}")
        return LoginResult(state=state, user=user, token=self.issue_token(user))

    # ------------------------------------------------------------------
    # Two-factor enrollment
    # ------------------------------------------------------------------

    async def setup_two_factor(self, db: AsyncSession, user: User) -> TwoFactorSetup:
        """
        Start enrollment. Only the pending secret is written; an existing active
        secret keeps working until the new one is confirmed.
        """
        enrollment = self.totp.generate_secret(account_name=user.username)
        await user_store.apply_changes(db, user, UserChanges(totp_pending_secret=enrollment.secret))
        await db.commit()
        logger.info(f"2FA enrollment started for user {user.id}")
        return TwoFactorSetup(
            secret=enrollment.secret,
            provisioning_uri=enrollment.provisioning_uri,
            qr_code=self.totp.qr_data_uri(enrollment.provisioning_uri),
        )

    async def verify_two_factor(
        self,
        db: AsyncSession,
        user: User,
        code: Optional[str],
        request_info: Optional[RequestInfo] = None,
    ) -> None:
        """Confirm enrollment: promote the pending secret to active."""
        if not code:
            raise ValidationError("2FA code is required")
        pending = user.totp_pending_secret
        if not pending:
            raise ValidationError("No 2FA setup in progress")
        if not self.totp.verify_code(pending, code):
            raise ValidationError("Invalid 2FA code")

        await user_store.apply_changes(
            db, user, UserChanges(totp_secret=pending, totp_pending_secret=None)
        )
        audit_service.record(
            db, "enable_2fa", user_id=user.id, resource_type="user",
            resource_id=user.id, request_info=request_info,
        )
        await db.commit()
        logger.info(f"2FA activated for user {user.id}")

    async def disable_two_factor(
        self,
        db: AsyncSession,
        user: User,
        password: Optional[str],
        request_info: Optional[RequestInfo] = None,
    ) -> None:
        if not password:
            raise ValidationError("Password is required to disable 2FA")
        if not await self._verify(password, user.password_hash):
            raise AuthenticationError("Incorrect password")

        await user_store.apply_changes(
            db, user, UserChanges(totp_secret=None, totp_pending_secret=None)
        )
        audit_service.record(
            db, "disable_2fa", user_id=user.id, resource_type="user",
            resource_id=user.id, request_info=request_info,
        )
        await db.commit()
        logger.info(f"2FA disabled for user {user.id}")

    # ------------------------------------------------------------------
    # Password change
    # ------------------------------------------------------------------

    async def change_password(
        self,
        db: AsyncSession,
        user: User,
        current_password: Optional[str],
        new_password: Optional[str],
        request_info: Optional[RequestInfo] = None,
    ) -> None:
        """
        Replace the password hash. Tokens issued before the change stay valid
        until they expire.
        """
        if not current_password or not new_password:
            raise ValidationError("Current and new passwords are required")
        self._check_new_password(new_password, label="New password")
        if not await self._verify(current_password, user.password_hash):
            raise AuthenticationError("Current password is incorrect")

        new_hash = await self._hash(new_password)
        await user_store.apply_changes(db, user, UserChanges(password_hash=new_hash))
        audit_service.record(
            db, "change_password", user_id=user.id, resource_type="user",
            resource_id=user.id, request_info=request_info,
        )
        await db.commit()
        logger.info(f"Password changed for user {user.id}")
