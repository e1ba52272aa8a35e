"""Tag, moderation and product-tag schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.catalog_service.models.enums import ModerationAction, TagStatus


class TagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None


class TagUpdate(BaseModel):
    """Name and description only. Status changes go through moderation."""

    name: Optional[str] = Field(None, min_length=1, max_length=100)
    description: Optional[str] = None

    model_config = ConfigDict(extra="forbid")


class TagResponse(BaseModel):
    id: uuid.UUID
    name: str
    description: Optional[str] = None
    status: TagStatus
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ModerationCreate(BaseModel):
    action: ModerationAction
    reason: Optional[str] = Field(None, max_length=2000)


class ModerationUpdate(BaseModel):
    """Only the rationale of a recorded decision can be amended."""

    reason: str = Field(..., min_length=1, max_length=2000)


class ModerationResponse(BaseModel):
    id: uuid.UUID
    tag_id: uuid.UUID
    moderated_by: str
    action: ModerationAction
    reason: Optional[str] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class ProductTagCreate(BaseModel):
    tag_id: uuid.UUID


class ProductTagResponse(BaseModel):
    id: uuid.UUID
    product_id: uuid.UUID
    tag_id: uuid.UUID
    created_by: str
    created_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
