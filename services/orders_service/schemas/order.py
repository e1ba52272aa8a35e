"""Order request/response schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import (
    DeliveryStatus,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    PaymentType,
)

# ============================================================================
# REQUEST SCHEMAS
# ============================================================================


class OrderItemCreate(BaseModel):
    product_id: uuid.UUID
    seller_id: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit_price: int = Field(..., ge=0)
    final_price: int = Field(..., ge=0)


class DeliveryCreate(BaseModel):
    shipment_id: Optional[uuid.UUID] = None
    recipient_name: str = Field(..., min_length=1, max_length=100)
    recipient_phone: str = Field(..., min_length=1, max_length=50)
    address_snapshot: dict[str, Any]
    delivery_message: Optional[str] = Field(None, max_length=1000)


class PaymentCreate(BaseModel):
    """Payment line. Mileage and deposit payments name the ledger account."""

    payment_type: PaymentType
    amount: int = Field(..., gt=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    ledger_account_id: Optional[uuid.UUID] = None
    external_payment_ref: Optional[str] = Field(None, max_length=255)
    status: PaymentStatus = PaymentStatus.PENDING


class OrderCreate(BaseModel):
    """Create an order from a cart.

    ``buyer_id`` is only honoured for admins placing an order on a buyer's
    behalf; buyers always order for themselves.
    """

    cart_id: uuid.UUID
    buyer_id: Optional[str] = None
    channel_id: str = Field(..., min_length=1, max_length=100)
    section_id: Optional[str] = Field(None, max_length=100)
    external_order_ref: Optional[str] = Field(None, max_length=255)
    total_amount: int = Field(..., ge=0)
    currency: Optional[str] = Field(None, min_length=3, max_length=3)
    items: list[OrderItemCreate] = Field(..., min_length=1)
    deliveries: list[DeliveryCreate] = Field(default_factory=list)
    payments: list[PaymentCreate] = Field(default_factory=list)


# ============================================================================
# RESPONSE SCHEMAS
# ============================================================================


class OrderItemResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    product_id: uuid.UUID
    seller_id: str
    quantity: int
    unit_price: int
    final_price: int
    status: OrderItemStatus

    model_config = ConfigDict(from_attributes=True)


class PaymentResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    payment_type: PaymentType
    ledger_account_id: Optional[uuid.UUID] = None
    ledger_transaction_id: Optional[uuid.UUID] = None
    external_payment_ref: Optional[str] = None
    status: PaymentStatus
    amount: int
    currency: str
    requested_at: datetime
    confirmed_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)


class DeliveryResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    shipment_id: Optional[uuid.UUID] = None
    recipient_name: str
    recipient_phone: str
    address_snapshot: dict[str, Any]
    delivery_message: Optional[str] = None
    delivery_status: DeliveryStatus
    delivery_attempts: int
    dispatched_at: Optional[datetime] = None
    confirmed_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderSummaryResponse(BaseModel):
    id: uuid.UUID
    order_code: str
    buyer_id: str
    channel_id: str
    section_id: Optional[str] = None
    cart_id: uuid.UUID
    external_order_ref: Optional[str] = None
    total_amount: int
    currency: str
    status: OrderStatus
    ordered_at: datetime
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class OrderResponse(OrderSummaryResponse):
    items: list[OrderItemResponse] = []
    payments: list[PaymentResponse] = []
    deliveries: list[DeliveryResponse] = []


class OrderStatusHistoryResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    from_status: Optional[OrderStatus] = None
    to_status: OrderStatus
    changed_by: str
    reason: Optional[str] = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)
