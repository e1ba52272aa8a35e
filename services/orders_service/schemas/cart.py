"""Cart request/response schemas."""

import uuid
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import CartStatus


class CartCreate(BaseModel):
    channel_id: str = Field(..., min_length=1, max_length=100)


class CartItemCreate(BaseModel):
    product_id: uuid.UUID
    quantity: int = Field(1, ge=1)


class CartItemResponse(BaseModel):
    id: uuid.UUID
    cart_id: uuid.UUID
    product_id: uuid.UUID
    seller_id: str
    quantity: int
    unit_price: int
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CartResponse(BaseModel):
    id: uuid.UUID
    buyer_id: str
    channel_id: str
    status: CartStatus
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)
