"""
Diagram Schemas
"""

import uuid
from datetime import datetime
from typing import Any, List, Optional
from pydantic import BaseModel, ConfigDict, Field


class DiagramCreate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    diagram_data: Any = None
    is_public: bool = False
    tags: List[str] = Field(default_factory=list)


class DiagramUpdate(BaseModel):
    title: Optional[str] = Field(None, max_length=255)
    description: Optional[str] = None
    diagram_data: Any = None
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None
    change_description: Optional[str] = None


class DiagramSummary(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    title: str
    description: Optional[str] = None
    is_public: bool
    tags: List[str]
    version: int
    created_at: datetime
    updated_at: datetime


class PublicDiagramSummary(DiagramSummary):
    author: Optional[str] = None


class DiagramResponse(DiagramSummary):
    user_id: uuid.UUID
    diagram_data: Any


class DiagramVersionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: uuid.UUID
    version: int
    change_description: Optional[str] = None
    created_at: datetime
    created_by: uuid.UUID
