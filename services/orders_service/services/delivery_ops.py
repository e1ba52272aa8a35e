"""Delivery operations: recipient hand-off for an order."""

import uuid
from typing import Optional

from libs.auth.guard import ensure_assigned_seller, ensure_owner
from libs.auth.models import AuthUser
from libs.common.datetime_utils import utc_now
from libs.common.errors import InvalidStateTransition, NotFound, ValidationFailed
from libs.common.logging import get_logger
from libs.db.soft_delete import RecordState, ensure_active, erase, only_active
from services.orders_service.models import Delivery, DeliveryStatus, Order, Shipment
from services.orders_service.schemas import DeliveryCreate, DeliveryUpdate
from services.orders_service.services.order_ops import load_visible_order
from services.orders_service.services.state_machine import (
    CLOSED_ORDER_STATES,
    DELIVERY_MACHINE,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


async def _load_delivery(
    db: AsyncSession,
    order_id: uuid.UUID,
    delivery_id: uuid.UUID,
    *,
    lock: bool = False,
) -> Optional[Delivery]:
    query = select(Delivery).where(
        Delivery.id == delivery_id, Delivery.order_id == order_id
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


async def _ensure_order_shipment(
    db: AsyncSession, order: Order, shipment_id: uuid.UUID
) -> Shipment:
    shipment = (
        await db.execute(
            select(Shipment).where(
                Shipment.id == shipment_id,
                Shipment.order_id == order.id,
                Shipment.record_state == RecordState.ACTIVE,
            )
        )
    ).scalar_one_or_none()
    if shipment is None:
        raise ValidationFailed("Shipment does not belong to this order")
    return shipment


async def create_delivery(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, body: DeliveryCreate
) -> Delivery:
    order, _ = await load_visible_order(db, user, order_id)
    ensure_owner(user, order.buyer_id, action="add a delivery to this order")
    if order.status in CLOSED_ORDER_STATES:
        raise InvalidStateTransition(f"Order is {order.status.value}")
    if body.shipment_id is not None:
        await _ensure_order_shipment(db, order, body.shipment_id)

    delivery = Delivery(order_id=order.id, **body.model_dump())
    db.add(delivery)
    await db.commit()
    await db.refresh(delivery)
    logger.info("Delivery %s added to order %s", delivery.id, order.order_code)
    return delivery


async def get_delivery(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, delivery_id: uuid.UUID
) -> Delivery:
    order, _ = await load_visible_order(db, user, order_id)
    return ensure_active(await _load_delivery(db, order.id, delivery_id), "Delivery")


async def list_deliveries(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID
) -> list[Delivery]:
    order, _ = await load_visible_order(db, user, order_id)
    result = await db.execute(
        only_active(select(Delivery).where(Delivery.order_id == order.id), Delivery)
        .order_by(Delivery.created_at)
    )
    return list(result.scalars().all())


async def update_delivery(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    delivery_id: uuid.UUID,
    body: DeliveryUpdate,
) -> Delivery:
    """Edit recipient details while prepared, or move the delivery forward.

    Recipient details belong to the buyer; progress is reported by the
    shipping seller (or any seller on the order when no shipment is linked).
    """
    order, seller_ids = await load_visible_order(db, user, order_id)
    delivery = ensure_active(
        await _load_delivery(db, order.id, delivery_id, lock=True), "Delivery"
    )
    if DELIVERY_MACHINE.is_terminal(delivery.delivery_status):
        raise InvalidStateTransition(
            "Delivery has been completed and can no longer change"
        )

    changes = body.model_dump(exclude_unset=True)
    target = changes.pop("delivery_status", None) or delivery.delivery_status

    if changes:
        ensure_owner(user, order.buyer_id, action="edit recipient details")
        if delivery.delivery_status != DeliveryStatus.PREPARED:
            raise InvalidStateTransition(
                "Recipient details can only change while the delivery is prepared"
            )
        for field, value in changes.items():
            setattr(delivery, field, value)

    if target != delivery.delivery_status:
        if delivery.shipment_id is not None:
            shipment = await _ensure_order_shipment(db, order, delivery.shipment_id)
            seller_ids = {shipment.seller_id}
        ensure_assigned_seller(user, seller_ids, action="update delivery progress")
        DELIVERY_MACHINE.ensure_transition(delivery.delivery_status, target)

        if target == DeliveryStatus.DISPATCHED:
            delivery.delivery_attempts += 1
            delivery.dispatched_at = utc_now()
        elif target == DeliveryStatus.DELIVERED:
            delivery.confirmed_at = utc_now()
        delivery.delivery_status = target

    await db.commit()
    await db.refresh(delivery)
    logger.info(
        "Delivery %s updated by %s (status %s)",
        delivery.id,
        user.user_id,
        delivery.delivery_status.value,
    )
    return delivery


async def erase_delivery(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, delivery_id: uuid.UUID
) -> Delivery:
    order, _ = await load_visible_order(db, user, order_id)
    delivery = await _load_delivery(db, order.id, delivery_id, lock=True)
    if delivery is None:
        raise NotFound("Delivery not found")
    ensure_owner(user, order.buyer_id, action="delete this delivery")
    if not delivery.is_deleted and delivery.delivery_status != DeliveryStatus.PREPARED:
        raise InvalidStateTransition("Only prepared deliveries can be deleted")

    erase(delivery, actor_id=user.user_id, label="Delivery")
    await db.commit()
    logger.info("Delivery %s erased by %s", delivery.id, user.user_id)
    return delivery
