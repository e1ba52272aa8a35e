"""Order aggregate models: order, line items, payments and status history."""

import random
import string
import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from services.orders_service.models.enums import (
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    PaymentType,
    enum_values,
)
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

# ============================================================================
# ORDERS
# ============================================================================


class Order(Base):
    """Customer orders. Total and currency never change after creation."""

    __tablename__ = "commerce_orders"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_code: Mapped[str] = mapped_column(
        String(50), unique=True, index=True, nullable=False
    )
    buyer_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    channel_id: Mapped[str] = mapped_column(String(100), nullable=False)
    section_id: Mapped[Optional[str]] = mapped_column(String(100), nullable=True)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_carts.id"), nullable=False
    )
    external_order_ref: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )

    # Integer minor units
    total_amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)

    status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="commerce_order_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=OrderStatus.CREATED,
        nullable=False,
    )
    ordered_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("total_amount >= 0", name="total_non_negative"),
        Index("ix_commerce_orders_buyer_status", "buyer_id", "status"),
    )

    items = relationship(
        "OrderItem", back_populates="order", order_by="OrderItem.created_at"
    )
    payments = relationship(
        "Payment", back_populates="order", order_by="Payment.requested_at"
    )
    deliveries = relationship(
        "Delivery", back_populates="order", order_by="Delivery.created_at"
    )

    @staticmethod
    def generate_order_code() -> str:
        """Generate a unique order code like OR-20260104-A1B2C3."""
        date_part = utc_now().strftime("%Y%m%d")
        random_part = "".join(
            random.choices(string.ascii_uppercase + string.digits, k=6)
        )
        return f"OR-{date_part}-{random_part}"

    def __repr__(self):
        return f"<Order {self.order_code} status={self.status}>"


class OrderItem(Base):
    """Order line items (snapshot at order time)."""

    __tablename__ = "commerce_order_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    seller_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)
    final_price: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[OrderItemStatus] = mapped_column(
        SAEnum(
            OrderItemStatus,
            name="commerce_order_item_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=OrderItemStatus.ORDERED,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
        CheckConstraint("final_price >= 0", name="final_price_non_negative"),
    )

    order = relationship("Order", back_populates="items")

    def __repr__(self):
        return f"<OrderItem {self.id} x{self.quantity}>"


# ============================================================================
# PAYMENTS
# ============================================================================


class Payment(Base):
    """Payment attached to an order. Ledger payments keep their booking."""

    __tablename__ = "commerce_payments"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    buyer_id: Mapped[str] = mapped_column(String(255), nullable=False)
    payment_type: Mapped[PaymentType] = mapped_column(
        SAEnum(
            PaymentType,
            name="commerce_payment_type_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )

    # Mileage/deposit payments only
    ledger_account_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid, nullable=True)
    ledger_transaction_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, nullable=True
    )

    external_payment_ref: Mapped[Optional[str]] = mapped_column(
        String(255), nullable=True
    )
    status: Mapped[PaymentStatus] = mapped_column(
        SAEnum(
            PaymentStatus,
            name="commerce_payment_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=PaymentStatus.PENDING,
        nullable=False,
    )
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    currency: Mapped[str] = mapped_column(String(3), nullable=False)
    requested_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
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

    __table_args__ = (CheckConstraint("amount > 0", name="positive_amount"),)

    order = relationship("Order", back_populates="payments")

    def __repr__(self):
        return f"<Payment {self.payment_type.value} {self.amount} {self.status.value}>"


# ============================================================================
# STATUS HISTORY
# ============================================================================


class OrderStatusHistory(Base):
    """Append-only record of every order status change."""

    __tablename__ = "commerce_order_status_history"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_orders.id"), nullable=False, index=True
    )
    from_status: Mapped[Optional[OrderStatus]] = mapped_column(
        SAEnum(
            OrderStatus,
            name="commerce_order_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=True,
    )
    to_status: Mapped[OrderStatus] = mapped_column(
        SAEnum(
            OrderStatus,
            name="commerce_order_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        nullable=False,
    )
    changed_by: Mapped[str] = mapped_column(String(255), nullable=False)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )

    def __repr__(self):
        return f"<OrderStatusHistory {self.from_status} -> {self.to_status}>"
