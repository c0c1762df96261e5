"""
API Key Schemas
The raw key only ever appears in ApiKeyCreated, returned once at creation.
"""

import uuid
from datetime import datetime
from typing import List, Optional
from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class ApiKeyCreate(BaseModel):
    name: Optional[str] = Field(None, max_length=100)
    permissions: List[str] = Field(default_factory=list)
    expires_in_days: Optional[int] = Field(
        None, validation_alias=AliasChoices("expiresInDays", "expires_in_days")
    )


class ApiKeyResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    name: str
    permissions: List[str]
    last_used_at: Optional[datetime] = None
    expires_at: Optional[datetime] = None
    is_active: bool
    created_at: datetime


class ApiKeyCreated(ApiKeyResponse):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    api_key: str = Field(alias="apiKey")
    warning: str = "Save this API key securely. It will not be shown again."
