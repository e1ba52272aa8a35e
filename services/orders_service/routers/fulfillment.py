"""Fulfillment routes: shipments, shipment items and deliveries of an order."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.orders_service.models import ShipmentStatus
from services.orders_service.schemas import (
    DeliveryCreate,
    DeliveryResponse,
    DeliveryUpdate,
    ShipmentCreate,
    ShipmentItemCreate,
    ShipmentItemResponse,
    ShipmentItemUpdate,
    ShipmentResponse,
    ShipmentUpdate,
)
from services.orders_service.services import delivery_ops, shipment_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["fulfillment"])


# ============================================================================
# SHIPMENTS
# ============================================================================


@router.post(
    "/{order_id}/shipments",
    response_model=ShipmentResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_shipment(
    order_id: uuid.UUID,
    body: ShipmentCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Open a shipment for a seller's items in the order."""
    return await shipment_ops.create_shipment(db, current_user, order_id, body)


@router.get("/{order_id}/shipments", response_model=Page[ShipmentResponse])
async def list_shipments(
    order_id: uuid.UUID,
    shipment_status: Optional[ShipmentStatus] = Query(None, alias="status"),
    carrier: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    shipments, total = await shipment_ops.list_shipments(
        db,
        current_user,
        order_id,
        status=shipment_status,
        carrier=carrier,
        skip=skip,
        limit=limit,
    )
    return Page[ShipmentResponse](
        items=[ShipmentResponse.model_validate(s) for s in shipments],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}/shipments/{shipment_id}", response_model=ShipmentResponse)
async def get_shipment(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await shipment_ops.get_shipment(db, current_user, order_id, shipment_id)


@router.put("/{order_id}/shipments/{shipment_id}", response_model=ShipmentResponse)
async def update_shipment(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    body: ShipmentUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Update carrier details or advance the shipment status."""
    return await shipment_ops.update_shipment(
        db, current_user, order_id, shipment_id, body
    )


@router.delete(
    "/{order_id}/shipments/{shipment_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def erase_shipment(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await shipment_ops.erase_shipment(db, current_user, order_id, shipment_id)


# ============================================================================
# SHIPMENT ITEMS
# ============================================================================


@router.get(
    "/{order_id}/shipments/{shipment_id}/items",
    response_model=list[ShipmentItemResponse],
)
async def list_shipment_items(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await shipment_ops.list_shipment_items(
        db, current_user, order_id, shipment_id
    )


@router.post(
    "/{order_id}/shipments/{shipment_id}/items",
    response_model=ShipmentItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_shipment_item(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    body: ShipmentItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await shipment_ops.create_shipment_item(
        db, current_user, order_id, shipment_id, body
    )


@router.put(
    "/{order_id}/shipments/{shipment_id}/items/{item_id}",
    response_model=ShipmentItemResponse,
)
async def update_shipment_item(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ShipmentItemUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await shipment_ops.update_shipment_item(
        db, current_user, order_id, shipment_id, item_id, body
    )


@router.delete(
    "/{order_id}/shipments/{shipment_id}/items/{item_id}",
    status_code=status.HTTP_204_NO_CONTENT,
)
async def erase_shipment_item(
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await shipment_ops.erase_shipment_item(
        db, current_user, order_id, shipment_id, item_id
    )


# ============================================================================
# DELIVERIES
# ============================================================================


@router.get("/{order_id}/deliveries", response_model=list[DeliveryResponse])
async def list_deliveries(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.list_deliveries(db, current_user, order_id)


@router.post(
    "/{order_id}/deliveries",
    response_model=DeliveryResponse,
    status_code=status.HTTP_201_CREATED,
)
async def create_delivery(
    order_id: uuid.UUID,
    body: DeliveryCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.create_delivery(db, current_user, order_id, body)


@router.get("/{order_id}/deliveries/{delivery_id}", response_model=DeliveryResponse)
async def get_delivery(
    order_id: uuid.UUID,
    delivery_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await delivery_ops.get_delivery(db, current_user, order_id, delivery_id)


@router.put("/{order_id}/deliveries/{delivery_id}", response_model=DeliveryResponse)
async def update_delivery(
    order_id: uuid.UUID,
    delivery_id: uuid.UUID,
    body: DeliveryUpdate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Edit recipient details or report delivery progress."""
    return await delivery_ops.update_delivery(
        db, current_user, order_id, delivery_id, body
    )


@router.delete(
    "/{order_id}/deliveries/{delivery_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def erase_delivery(
    order_id: uuid.UUID,
    delivery_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await delivery_ops.erase_delivery(db, current_user, order_id, delivery_id)
