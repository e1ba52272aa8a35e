"""Ledger transaction request/response schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from services.ledger_service.models.enums import (
    TRANSACTION_TYPE_ALIASES,
    BusinessStatus,
    TransactionDirection,
    TransactionType,
)


class TransactionCreate(BaseModel):
    """Request to move an account balance.

    ``owner_id`` is accepted for client compatibility but never trusted: the
    account's own owner decides who may post to it.
    """

    type: TransactionType
    amount: int
    business_status: BusinessStatus = BusinessStatus.APPLIED
    reason: Optional[str] = Field(None, max_length=2000)
    evidence_reference: str = Field(..., max_length=255)
    reference_type: Optional[str] = Field(None, max_length=50)
    reference_id: Optional[str] = Field(None, max_length=255)
    owner_id: Optional[str] = None

    @field_validator("type", mode="before")
    @classmethod
    def resolve_type_alias(cls, v: Any) -> Any:
        if isinstance(v, str):
            return TRANSACTION_TYPE_ALIASES.get(v.lower(), v)
        return v

    @field_validator("evidence_reference")
    @classmethod
    def require_evidence(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("evidence_reference must not be empty")
        return v


class TransactionResponse(BaseModel):
    id: uuid.UUID
    account_id: uuid.UUID
    type: TransactionType
    direction: TransactionDirection
    amount: int
    balance_before: int
    balance_after: int
    business_status: BusinessStatus
    reason: Optional[str] = None
    evidence_reference: str
    reference_type: Optional[str] = None
    reference_id: Optional[str] = None
    initiated_by: str
    created_at: datetime
    deleted_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
