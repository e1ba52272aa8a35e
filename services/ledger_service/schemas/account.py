"""Ledger account request/response schemas."""

import uuid
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field
from services.ledger_service.models.enums import AccountKind, AccountStatus


class AccountCreate(BaseModel):
    owner_id: str = Field(..., min_length=1)
    kind: AccountKind = AccountKind.MILEAGE
    code: str = Field(..., min_length=1, max_length=64)
    initial_balance: int = Field(0, ge=0)
    status: AccountStatus = AccountStatus.ACTIVE
    expired_at: Optional[datetime] = None


class AccountStatusUpdate(BaseModel):
    status: AccountStatus


class AccountResponse(BaseModel):
    id: uuid.UUID
    owner_id: str
    kind: AccountKind
    code: str
    balance: int
    status: AccountStatus
    expired_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
