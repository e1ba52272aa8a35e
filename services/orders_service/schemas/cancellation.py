"""Cancellation request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import CancellationStatus


class CancellationCreate(BaseModel):
    reason: str = Field(..., min_length=1, max_length=2000)


class CancellationUpdate(BaseModel):
    status: Optional[CancellationStatus] = None
    reason: Optional[str] = Field(None, min_length=1, max_length=2000)


class CancellationResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    cancellation_code: str
    requested_by: str
    reason: str
    status: CancellationStatus
    resolved_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
