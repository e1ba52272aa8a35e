"""Cancellation model: a buyer's request to cancel an order."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.soft_delete import SoftDeleteMixin
from services.orders_service.models.enums import CancellationStatus, enum_values
from sqlalchemy import DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column


class Cancellation(SoftDeleteMixin, Base):
    """Cancellation request. Approved and rejected are final."""

    __tablename__ = "commerce_cancellations"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    cancellation_code: Mapped[str] = mapped_column(
        String(50), unique=True, nullable=False
    )
    requested_by: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[str] = mapped_column(Text, nullable=False)
    status: Mapped[CancellationStatus] = mapped_column(
        SAEnum(
            CancellationStatus,
            name="commerce_cancellation_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=CancellationStatus.REQUESTED,
        nullable=False,
    )
    resolved_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    resolved_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    def __repr__(self):
        return f"<Cancellation {self.cancellation_code} status={self.status}>"
