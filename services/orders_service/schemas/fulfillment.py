"""Shipment, shipment item and delivery schemas."""

import uuid
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field
from services.orders_service.models.enums import DeliveryStatus, ShipmentStatus


class ShipmentCreate(BaseModel):
    """Open a shipment. Admins name the seller; sellers ship for themselves."""

    seller_id: Optional[str] = None
    shipment_code: str = Field(..., min_length=1, max_length=80)
    carrier: Optional[str] = Field(None, max_length=100)
    external_tracking_number: Optional[str] = Field(None, max_length=255)


class ShipmentUpdate(BaseModel):
    status: Optional[ShipmentStatus] = None
    carrier: Optional[str] = Field(None, max_length=100)
    external_tracking_number: Optional[str] = Field(None, max_length=255)
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None


class ShipmentResponse(BaseModel):
    id: uuid.UUID
    order_id: uuid.UUID
    seller_id: str
    shipment_code: str
    carrier: Optional[str] = None
    external_tracking_number: Optional[str] = None
    status: ShipmentStatus
    shipped_at: Optional[datetime] = None
    delivered_at: Optional[datetime] = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class ShipmentItemCreate(BaseModel):
    order_item_id: uuid.UUID
    shipped_quantity: int = Field(..., ge=1)


class ShipmentItemUpdate(BaseModel):
    shipped_quantity: int = Field(..., ge=1)


class ShipmentItemResponse(BaseModel):
    id: uuid.UUID
    shipment_id: uuid.UUID
    order_item_id: uuid.UUID
    shipped_quantity: int
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class DeliveryUpdate(BaseModel):
    """Recipient fields are only editable while the delivery is prepared."""

    delivery_status: Optional[DeliveryStatus] = None
    recipient_name: Optional[str] = Field(None, min_length=1, max_length=100)
    recipient_phone: Optional[str] = Field(None, min_length=1, max_length=50)
    address_snapshot: Optional[dict[str, Any]] = None
    delivery_message: Optional[str] = Field(None, max_length=1000)
