"""Shipment operations: shipments, their items, and order progress.

A shipment moves ``pending -> shipped -> delivered``. Once delivered it is
frozen: every update fails, including no-op updates, and it can never be
erased. Shipment items can only change while their shipment is pending.

Order status follows the shipments:

* the first shipment moves the order to ``in_fulfillment``
* the first shipped shipment moves it to ``shipping``
* once every active shipment is delivered and every live order item has been
  shipped in full, the order becomes ``delivered``
"""

import uuid
from datetime import datetime
from typing import Optional

from libs.auth.guard import (
    ensure_assigned_seller,
    ensure_role,
    ensure_visible,
    is_seller,
)
from libs.auth.models import AuthUser, Role
from libs.common.datetime_utils import ensure_utc, next_timestamp, utc_now
from libs.common.errors import InvalidStateTransition, NotFound, ValidationFailed
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import RecordState, ensure_active, erase, only_active
from services.orders_service.models import (
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    Shipment,
    ShipmentItem,
    ShipmentStatus,
)
from services.orders_service.schemas import (
    ShipmentCreate,
    ShipmentItemCreate,
    ShipmentItemUpdate,
    ShipmentUpdate,
)
from services.orders_service.services.order_ops import (
    advance_order_if_possible,
    load_visible_order,
)
from services.orders_service.services.state_machine import (
    CLOSED_ORDER_STATES,
    SHIPMENT_MACHINE,
)
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _load_shipment(
    db: AsyncSession,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    *,
    lock: bool = False,
) -> Optional[Shipment]:
    query = select(Shipment).where(
        Shipment.id == shipment_id, Shipment.order_id == order_id
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


def _ensure_shipment_visible(user: AuthUser, order: Order, shipment: Shipment) -> None:
    # Sellers only see their own parcels, even within a shared order
    ensure_visible(
        user,
        label="Shipment",
        owner_ids=[order.buyer_id],
        seller_ids=[shipment.seller_id],
    )


async def _visible_shipment(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    *,
    lock: bool = False,
) -> tuple[Order, Shipment]:
    order, _ = await load_visible_order(db, user, order_id, lock=lock)
    shipment = await _load_shipment(db, order.id, shipment_id, lock=lock)
    if shipment is None:
        raise NotFound("Shipment not found")
    _ensure_shipment_visible(user, order, shipment)
    return order, shipment


def _ensure_not_delivered(shipment: Shipment) -> None:
    if SHIPMENT_MACHINE.is_terminal(shipment.status):
        raise InvalidStateTransition(
            "Shipment has been delivered and can no longer change"
        )


async def _shipped_quantity(
    db: AsyncSession,
    order_item_id: uuid.UUID,
    *,
    exclude_item_id: Optional[uuid.UUID] = None,
    delivered_only: bool = False,
) -> int:
    """Quantity of an order item packed into live shipments."""
    query = (
        select(func.coalesce(func.sum(ShipmentItem.shipped_quantity), 0))
        .join(Shipment, Shipment.id == ShipmentItem.shipment_id)
        .where(
            ShipmentItem.order_item_id == order_item_id,
            ShipmentItem.record_state == RecordState.ACTIVE,
            Shipment.record_state == RecordState.ACTIVE,
        )
    )
    if exclude_item_id is not None:
        query = query.where(ShipmentItem.id != exclude_item_id)
    if delivered_only:
        query = query.where(Shipment.status == ShipmentStatus.DELIVERED)
    return (await db.execute(query)).scalar() or 0


async def _ensure_quantity_available(
    db: AsyncSession,
    order_item: OrderItem,
    quantity: int,
    *,
    exclude_item_id: Optional[uuid.UUID] = None,
) -> None:
    already = await _shipped_quantity(
        db, order_item.id, exclude_item_id=exclude_item_id
    )
    remaining = order_item.quantity - already
    if quantity > remaining:
        raise ValidationFailed(
            f"Only {remaining} unit(s) of order item {order_item.id} remain to ship"
        )


async def _settle_delivered(db: AsyncSession, order: Order, changed_by: str) -> None:
    """Fulfil delivered order items and close the order once all is delivered."""
    await db.flush()

    items = (
        await db.execute(
            select(OrderItem).where(
                OrderItem.order_id == order.id,
                OrderItem.status != OrderItemStatus.CANCELLED,
            )
        )
    ).scalars().all()

    fully_shipped = True
    for item in items:
        if await _shipped_quantity(db, item.id) < item.quantity:
            fully_shipped = False
        delivered = await _shipped_quantity(db, item.id, delivered_only=True)
        if delivered >= item.quantity and item.status == OrderItemStatus.ORDERED:
            item.status = OrderItemStatus.FULFILLED

    in_flight = (
        await db.execute(
            select(func.count(Shipment.id)).where(
                Shipment.order_id == order.id,
                Shipment.record_state == RecordState.ACTIVE,
                Shipment.status != ShipmentStatus.DELIVERED,
            )
        )
    ).scalar() or 0

    if fully_shipped and in_flight == 0:
        advance_order_if_possible(
            db,
            order,
            OrderStatus.DELIVERED,
            changed_by=changed_by,
            reason="All shipments delivered",
        )


# ---------------------------------------------------------------------------
# Shipments
# ---------------------------------------------------------------------------


async def create_shipment(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, body: ShipmentCreate
) -> Shipment:
    """Open a pending shipment for one seller's part of the order."""
    order, seller_ids = await load_visible_order(db, user, order_id, lock=True)
    ensure_role(user, Role.SELLER, Role.ADMIN)

    seller_id = user.user_id if is_seller(user) else body.seller_id
    if not seller_id:
        raise ValidationFailed("seller_id is required")
    if seller_id not in seller_ids:
        raise ValidationFailed(f"Seller {seller_id} has no items in this order")
    if order.status in CLOSED_ORDER_STATES:
        raise InvalidStateTransition(f"Order is {order.status.value}")

    duplicate = await db.execute(
        select(Shipment.id).where(
            Shipment.order_id == order.id,
            Shipment.shipment_code == body.shipment_code,
        )
    )
    if duplicate.first():
        raise ValidationFailed(
            f"Shipment code '{body.shipment_code}' is already used in this order"
        )

    shipment = Shipment(
        order_id=order.id,
        seller_id=seller_id,
        shipment_code=body.shipment_code,
        carrier=body.carrier,
        external_tracking_number=body.external_tracking_number,
        status=ShipmentStatus.PENDING,
        created_by=user.user_id,
    )
    db.add(shipment)
    advance_order_if_possible(
        db,
        order,
        OrderStatus.IN_FULFILLMENT,
        changed_by=user.user_id,
        reason=f"Shipment {body.shipment_code} opened",
    )

    await db.commit()
    await db.refresh(shipment)
    logger.info(
        "Shipment %s opened on order %s for seller %s",
        shipment.shipment_code,
        order.order_code,
        seller_id,
    )
    return shipment


async def get_shipment(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, shipment_id: uuid.UUID
) -> Shipment:
    _, shipment = await _visible_shipment(db, user, order_id, shipment_id)
    return ensure_active(shipment, "Shipment")


async def list_shipments(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    *,
    status: Optional[ShipmentStatus] = None,
    carrier: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Shipment], int]:
    """List live shipments of an order. Sellers only see their own."""
    order, _ = await load_visible_order(db, user, order_id)

    query = only_active(select(Shipment).where(Shipment.order_id == order.id), Shipment)
    if is_seller(user):
        query = query.where(Shipment.seller_id == user.user_id)
    if status:
        query = query.where(Shipment.status == status)
    if carrier:
        query = query.where(Shipment.carrier == carrier)

    return await fetch_page(
        db,
        query,
        skip=skip,
        limit=limit,
        order_by=(Shipment.created_at, Shipment.shipment_code),
    )


def _resolve_timestamp(
    current: Optional[datetime], requested: Optional[datetime], field: str
) -> datetime:
    if current is not None:
        raise InvalidStateTransition(f"{field} is already set")
    return ensure_utc(requested) if requested is not None else utc_now()


async def update_shipment(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    body: ShipmentUpdate,
) -> Shipment:
    """Edit carrier details or move the shipment forward one step."""
    order, shipment = await _visible_shipment(
        db, user, order_id, shipment_id, lock=True
    )
    ensure_active(shipment, "Shipment")
    ensure_assigned_seller(user, [shipment.seller_id], action="update this shipment")
    _ensure_not_delivered(shipment)

    changes = body.model_dump(exclude_unset=True)
    target = changes.pop("status", None) or shipment.status
    shipped_at = changes.pop("shipped_at", None)
    delivered_at = changes.pop("delivered_at", None)

    if target != shipment.status:
        SHIPMENT_MACHINE.ensure_transition(shipment.status, target)
    # Set once, by the transition that records them
    if shipped_at is not None and (
        target != ShipmentStatus.SHIPPED or shipment.shipped_at is not None
    ):
        raise InvalidStateTransition("shipped_at is only set when the shipment ships")
    if delivered_at is not None and target != ShipmentStatus.DELIVERED:
        raise InvalidStateTransition(
            "delivered_at is only set when the shipment is delivered"
        )

    for field, value in changes.items():
        setattr(shipment, field, value)

    if target == ShipmentStatus.SHIPPED and shipment.status == ShipmentStatus.PENDING:
        if order.status == OrderStatus.CANCELLED:
            raise InvalidStateTransition("Order has been cancelled")
        packed = await db.execute(
            only_active(
                select(ShipmentItem.id).where(ShipmentItem.shipment_id == shipment.id),
                ShipmentItem,
            )
        )
        if packed.first() is None:
            raise ValidationFailed("Cannot ship an empty shipment")

        shipment.shipped_at = _resolve_timestamp(
            shipment.shipped_at, shipped_at, "shipped_at"
        )
        shipment.status = ShipmentStatus.SHIPPED
        advance_order_if_possible(
            db,
            order,
            OrderStatus.SHIPPING,
            changed_by=user.user_id,
            reason=f"Shipment {shipment.shipment_code} shipped",
        )

    elif target == ShipmentStatus.DELIVERED:
        delivered = _resolve_timestamp(
            shipment.delivered_at, delivered_at, "delivered_at"
        )
        if delivered < ensure_utc(shipment.shipped_at):
            raise ValidationFailed("delivered_at cannot precede shipped_at")
        shipment.delivered_at = delivered
        shipment.status = ShipmentStatus.DELIVERED
        await _settle_delivered(db, order, user.user_id)

    shipment.updated_at = next_timestamp(shipment.updated_at)
    await db.commit()
    await db.refresh(shipment)
    logger.info(
        "Shipment %s updated by %s (status %s)",
        shipment.shipment_code,
        user.user_id,
        shipment.status.value,
    )
    return shipment


async def erase_shipment(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, shipment_id: uuid.UUID
) -> Shipment:
    _, shipment = await _visible_shipment(db, user, order_id, shipment_id, lock=True)
    ensure_assigned_seller(user, [shipment.seller_id], action="delete this shipment")
    if not shipment.is_deleted and shipment.status == ShipmentStatus.DELIVERED:
        raise InvalidStateTransition("Delivered shipments cannot be deleted")

    erase(shipment, actor_id=user.user_id, label="Shipment")
    shipment.updated_at = next_timestamp(shipment.updated_at)
    await db.commit()
    logger.info("Shipment %s erased by %s", shipment.shipment_code, user.user_id)
    return shipment


# ---------------------------------------------------------------------------
# Shipment items
# ---------------------------------------------------------------------------


async def _packing_shipment(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
) -> tuple[Order, Shipment]:
    """Shipment whose contents the principal may change right now."""
    order, shipment = await _visible_shipment(
        db, user, order_id, shipment_id, lock=True
    )
    ensure_active(shipment, "Shipment")
    ensure_assigned_seller(user, [shipment.seller_id], action="change this shipment")
    if shipment.status != ShipmentStatus.PENDING:
        raise InvalidStateTransition(
            f"Shipment is {shipment.status.value}; items can only change while pending"
        )
    return order, shipment


async def _load_shipment_item(
    db: AsyncSession, shipment_id: uuid.UUID, item_id: uuid.UUID
) -> Optional[ShipmentItem]:
    result = await db.execute(
        select(ShipmentItem)
        .where(ShipmentItem.id == item_id, ShipmentItem.shipment_id == shipment_id)
        .with_for_update()
        .execution_options(populate_existing=True)
    )
    return result.scalar_one_or_none()


async def create_shipment_item(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    body: ShipmentItemCreate,
) -> ShipmentItem:
    order, shipment = await _packing_shipment(db, user, order_id, shipment_id)

    order_item = (
        await db.execute(
            select(OrderItem).where(
                OrderItem.id == body.order_item_id, OrderItem.order_id == order.id
            )
        )
    ).scalar_one_or_none()
    if order_item is None:
        raise ValidationFailed("Order item does not belong to this order")
    if order_item.seller_id != shipment.seller_id:
        raise ValidationFailed("Order item belongs to another seller")
    if order_item.status == OrderItemStatus.CANCELLED:
        raise InvalidStateTransition("Order item has been cancelled")

    await _ensure_quantity_available(db, order_item, body.shipped_quantity)

    item = ShipmentItem(
        shipment_id=shipment.id,
        order_item_id=order_item.id,
        shipped_quantity=body.shipped_quantity,
    )
    db.add(item)
    shipment.updated_at = next_timestamp(shipment.updated_at)
    await db.commit()
    await db.refresh(item)
    return item


async def list_shipment_items(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
) -> list[ShipmentItem]:
    _, shipment = await _visible_shipment(db, user, order_id, shipment_id)
    ensure_active(shipment, "Shipment")
    result = await db.execute(
        only_active(
            select(ShipmentItem).where(ShipmentItem.shipment_id == shipment.id),
            ShipmentItem,
        ).order_by(ShipmentItem.created_at)
    )
    return list(result.scalars().all())


async def update_shipment_item(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    item_id: uuid.UUID,
    body: ShipmentItemUpdate,
) -> ShipmentItem:
    """Change the packed quantity. ``updated_at`` always moves forward."""
    _, shipment = await _packing_shipment(db, user, order_id, shipment_id)
    item = ensure_active(
        await _load_shipment_item(db, shipment.id, item_id), "Shipment item"
    )

    order_item = (
        await db.execute(select(OrderItem).where(OrderItem.id == item.order_item_id))
    ).scalar_one()
    await _ensure_quantity_available(
        db, order_item, body.shipped_quantity, exclude_item_id=item.id
    )

    item.shipped_quantity = body.shipped_quantity
    item.updated_at = next_timestamp(item.updated_at)
    await db.commit()
    await db.refresh(item)
    return item


async def erase_shipment_item(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    shipment_id: uuid.UUID,
    item_id: uuid.UUID,
) -> ShipmentItem:
    _, shipment = await _packing_shipment(db, user, order_id, shipment_id)
    item = await _load_shipment_item(db, shipment.id, item_id)
    if item is None:
        raise NotFound("Shipment item not found")

    erase(item, actor_id=user.user_id, label="Shipment item")
    item.updated_at = next_timestamp(item.updated_at)
    await db.commit()
    return item
