"""
User Schemas
Pydantic models for user-related data.
Password hashes and TOTP secrets never appear in any response model.
"""

import uuid
from datetime import datetime
from typing import Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator


class UserCreate(BaseModel):
    # Presence and length are checked by the auth service so they map to 400s
    username: Optional[str] = Field(None, max_length=50)
    email: Optional[str] = Field(None, max_length=255)
    password: Optional[str] = None


class UserLogin(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    totp: Optional[str] = None

    @field_validator("totp", mode="before")
    @classmethod
    def coerce_code(cls, v):
        # Some clients send the code as a number
        if isinstance(v, int):
            return f"{v:06d}"
        return v


class UserSummary(BaseModel):
    """Minimal profile returned with a freshly issued token."""
    model_config = ConfigDict(populate_by_name=True)

    id: uuid.UUID
    username: str
    email: str
    has_2fa: bool = Field(False, alias="has2FA")


class AuthResponse(BaseModel):
    message: str
    token: str
    user: UserSummary


class TwoFactorRequired(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    require_2fa: bool = Field(True, alias="require2FA")


class UserProfile(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    is_active: bool
    is_admin: bool
    created_at: datetime
    last_login: Optional[datetime] = None
    has_2fa: bool


class UserProfileUpdate(BaseModel):
    username: Optional[str] = Field(None, min_length=1, max_length=50)
    email: Optional[str] = Field(None, min_length=1, max_length=255)


class PasswordChange(BaseModel):
    current_password: Optional[str] = Field(
        None, validation_alias=AliasChoices("currentPassword", "current_password")
    )
    new_password: Optional[str] = Field(
        None, validation_alias=AliasChoices("newPassword", "new_password")
    )


class PasswordConfirm(BaseModel):
    password: Optional[str] = None


class TwoFactorSetupResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    secret: str
    provisioning_uri: str = Field(alias="provisioningUri")
    qr_code: str = Field(alias="qrCode")
    manual_entry_key: str = Field(alias="manualEntryKey")


class TwoFactorVerify(BaseModel):
    code: Optional[str] = Field(None, validation_alias=AliasChoices("code", "token"))

    @field_validator("code", mode="before")
    @classmethod
    def coerce_code(cls, v):
        if isinstance(v, int):
            return f"{v:06d}"
        return v


class UserStatusUpdate(BaseModel):
    is_active: Optional[bool] = None


class UserStatusResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    username: str
    email: str
    is_active: bool


class MessageResponse(BaseModel):
    message: str
