"""Fulfillment models: shipments, shipment items and deliveries."""

import uuid
from datetime import datetime
from typing import Any, Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.soft_delete import SoftDeleteMixin
from services.orders_service.models.enums import (
    DeliveryStatus,
    ShipmentStatus,
    enum_values,
)
from sqlalchemy import JSON, CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# SHIPMENTS
# ============================================================================


class Shipment(SoftDeleteMixin, Base):
    """A parcel sent by one seller for part of an order."""

    __tablename__ = "commerce_shipments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    seller_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    shipment_code: Mapped[str] = mapped_column(String(80), nullable=False)
    carrier: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    external_tracking_number: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    status: Mapped[ShipmentStatus] = mapped_column(
        SAEnum(
            ShipmentStatus,
            name="commerce_shipment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=ShipmentStatus.PENDING,
        nullable=False,
    )
    shipped_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    delivered_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        UniqueConstraint("order_id", "shipment_code", name="unique_order_shipment_code"),
    )

    items = relationship("ShipmentItem", back_populates="shipment")

    def __repr__(self):
        return f"<Shipment {self.shipment_code} status={self.status}>"


class ShipmentItem(SoftDeleteMixin, Base):
    """Quantity of one order item packed into a shipment."""

    __tablename__ = "commerce_shipment_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    shipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_shipments.id"), nullable=False, index=True
    )
    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_order_items.id"), nullable=False, index=True
    )
    shipped_quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("shipped_quantity > 0", name="positive_shipped_quantity"),
    )

    shipment = relationship("Shipment", back_populates="items")

    def __repr__(self):
        return f"<ShipmentItem {self.id} x{self.shipped_quantity}>"


# ============================================================================
# DELIVERIES
# ============================================================================


class Delivery(SoftDeleteMixin, Base):
    """Hand-off of an order (or one of its shipments) to the recipient."""

    __tablename__ = "commerce_deliveries"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    shipment_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("commerce_shipments.id"), nullable=True
    )
    recipient_name: Mapped[str] = mapped_column(String(100), nullable=False)
    recipient_phone: Mapped[str] = mapped_column(String(50), nullable=False)

    # Address as entered at order time
    address_snapshot: Mapped[dict[str, Any]] = mapped_column(JSON, nullable=False)
    delivery_message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    delivery_status: Mapped[DeliveryStatus] = mapped_column(
        SAEnum(
            DeliveryStatus,
            name="commerce_delivery_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=DeliveryStatus.PREPARED,
        nullable=False,
    )
    delivery_attempts: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    dispatched_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    confirmed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    order = relationship("Order", back_populates="deliveries")

    def __repr__(self):
        return f"<Delivery {self.id} status={self.delivery_status}>"
