"""Cart models: the buyer's basket that an order is created from."""

import uuid
from datetime import datetime
from typing import Optional

from libs.common.datetime_utils import utc_now
from libs.db.base import Base
from libs.db.soft_delete import SoftDeleteMixin
from services.orders_service.models.enums import CartStatus, enum_values
from sqlalchemy import CheckConstraint, DateTime
from sqlalchemy import Enum as SAEnum
from sqlalchemy import ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship


class Cart(Base):
    """Shopping carts. A cart is consumed once by order creation."""

    __tablename__ = "commerce_carts"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    buyer_id: Mapped[str] = mapped_column(String(255), index=True, nullable=False)
    channel_id: Mapped[str] = mapped_column(String(100), nullable=False)
    status: Mapped[CartStatus] = mapped_column(
        SAEnum(
            CartStatus,
            name="commerce_cart_status_enum",
            values_callable=enum_values,
            validate_strings=True,
        ),
        default=CartStatus.ACTIVE,
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        Index("ix_commerce_carts_buyer_status", "buyer_id", "status"),
    )

    items = relationship("CartItem", back_populates="cart")

    def __repr__(self):
        return f"<Cart {self.id} status={self.status}>"


class CartItem(SoftDeleteMixin, Base):
    """Cart line items."""

    __tablename__ = "commerce_cart_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    cart_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("commerce_carts.id"), nullable=False, index=True
    )
    product_id: Mapped[uuid.UUID] = mapped_column(Uuid, nullable=False)
    seller_id: Mapped[str] = mapped_column(String(255), nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, default=1, nullable=False)

    # Snapshot price at add time
    unit_price: Mapped[int] = mapped_column(Integer, nullable=False)

    created_by: Mapped[Optional[str]] = mapped_column(String(255), nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, onupdate=utc_now, nullable=False
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="positive_quantity"),
    )

    cart = relationship("Cart", back_populates="items")

    def __repr__(self):
        return f"<CartItem {self.id} x{self.quantity}>"
