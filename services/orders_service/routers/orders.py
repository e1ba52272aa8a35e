"""Order routes: carts, order creation and order reads."""

import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from libs.auth.dependencies import get_current_user
from libs.auth.models import AuthUser
from libs.common.pagination import Page
from libs.db.session import get_async_db
from services.orders_service.models import OrderStatus
from services.orders_service.schemas import (
    CartCreate,
    CartItemCreate,
    CartItemResponse,
    CartResponse,
    OrderCreate,
    OrderResponse,
    OrderStatusHistoryResponse,
    OrderSummaryResponse,
)
from services.orders_service.services import order_ops
from sqlalchemy.ext.asyncio import AsyncSession

router = APIRouter(prefix="/orders", tags=["orders"])


# ============================================================================
# CARTS
# ============================================================================


@router.post(
    "/carts", response_model=CartResponse, status_code=status.HTTP_201_CREATED
)
async def create_cart(
    body: CartCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.create_cart(db, current_user, body)


@router.get("/carts/{cart_id}", response_model=CartResponse)
async def get_cart(
    cart_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.get_cart(db, current_user, cart_id)


@router.get("/carts/{cart_id}/items", response_model=list[CartItemResponse])
async def list_cart_items(
    cart_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.list_cart_items(db, current_user, cart_id)


@router.post(
    "/carts/{cart_id}/items",
    response_model=CartItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_cart_item(
    cart_id: uuid.UUID,
    body: CartItemCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Add a product to the cart at its current price."""
    return await order_ops.add_cart_item(db, current_user, cart_id, body)


@router.delete(
    "/carts/{cart_id}/items/{item_id}", status_code=status.HTTP_204_NO_CONTENT
)
async def erase_cart_item(
    cart_id: uuid.UUID,
    item_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    await order_ops.erase_cart_item(db, current_user, cart_id, item_id)


# ============================================================================
# ORDERS
# ============================================================================


@router.post("", response_model=OrderResponse, status_code=status.HTTP_201_CREATED)
async def create_order(
    body: OrderCreate,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """Create an order with its items, deliveries and payments."""
    order = await order_ops.create_order(db, current_user, body)
    return order_ops.present_order(current_user, order)


@router.get("", response_model=Page[OrderSummaryResponse])
async def list_orders(
    order_status: Optional[OrderStatus] = Query(None, alias="status"),
    buyer_id: Optional[str] = None,
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    """List orders. Buyers see their own, sellers those holding their items."""
    orders, total = await order_ops.list_orders(
        db,
        current_user,
        status=order_status,
        buyer_id=buyer_id,
        skip=skip,
        limit=limit,
    )
    return Page[OrderSummaryResponse](
        items=[OrderSummaryResponse.model_validate(o) for o in orders],
        total=total,
        skip=skip,
        limit=limit,
    )


@router.get("/{order_id}", response_model=OrderResponse)
async def get_order(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    order = await order_ops.get_order(db, current_user, order_id)
    return order_ops.present_order(current_user, order)


@router.get(
    "/{order_id}/status-history", response_model=list[OrderStatusHistoryResponse]
)
async def list_status_history(
    order_id: uuid.UUID,
    current_user: AuthUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_async_db),
):
    return await order_ops.list_status_history(db, current_user, order_id)
