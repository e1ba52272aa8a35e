"""LedgerTransaction model: append-only history behind every balance."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.soft_delete import SoftDeleteMixin
from services.ledger_service.models.enums import (
    BusinessStatus,
    TransactionDirection,
    TransactionType,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class LedgerTransaction(SoftDeleteMixin, Base):
    """One balance movement, with balance snapshots and its audit evidence."""

    __tablename__ = "ledger_transactions"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    account_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("ledger_accounts.id"), nullable=False, index=True
    )
    type: Mapped[TransactionType] = mapped_column(
        SAEnum(
            TransactionType,
            name="ledger_transaction_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    direction: Mapped[TransactionDirection] = mapped_column(
        SAEnum(
            TransactionDirection,
            name="ledger_transaction_direction_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_before: Mapped[int] = mapped_column(Integer, nullable=False)
    balance_after: Mapped[int] = mapped_column(Integer, nullable=False)
    business_status: Mapped[BusinessStatus] = mapped_column(
        SAEnum(
            BusinessStatus,
            name="ledger_business_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=BusinessStatus.APPLIED,
        nullable=False,
    )
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    evidence_reference: Mapped[str] = mapped_column(String(255), nullable=False)
    reference_type: Mapped[Optional[str]] = mapped_column(String(50), nullable=True)
    reference_id: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    initiated_by: Mapped[str] = mapped_column(String(255), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    account: Mapped["LedgerAccount"] = relationship(  # noqa: F821
        back_populates="transactions"
    )

    __table_args__ = (
        CheckConstraint("amount >= 0", name="amount_non_negative"),
        CheckConstraint("balance_after >= 0", name="balance_after_non_negative"),
        CheckConstraint("evidence_reference <> ''", name="evidence_required"),
        Index("ix_ledger_transactions_account_created", "account_id", "created_at"),
    )

    def __repr__(self) -> str:
        return f"<LedgerTransaction {self.id} {self.direction.value} {self.amount}>"
