"""Cancellation workflow: request, resolve, and refund.

Approving a cancellation is one unit of work:

1. Lock the order and check nothing has left the warehouse
2. Erase pending shipments and cancel the order items
3. Refund confirmed payments: ledger debits are reversed, external ones are
   marked refunded for the provider to settle
4. Move the order to ``cancelled``

Approved and rejected cancellations are final.
"""

import random
import string
import uuid
from typing import Optional

from libs.auth.guard import (
    ensure_assigned_seller,
    ensure_owner,
    ensure_role,
    is_admin,
    is_seller,
)
from libs.auth.models import AuthUser, Role
from libs.common.datetime_utils import next_timestamp, utc_now
from libs.common.errors import InvalidStateTransition, NotFound
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import ensure_active, erase, only_active
from services.ledger_service.services.ledger_ops import reverse_transaction
from services.orders_service.models import (
    Cancellation,
    CancellationStatus,
    Order,
    OrderItem,
    OrderItemStatus,
    OrderStatus,
    Payment,
    PaymentStatus,
    Shipment,
    ShipmentStatus,
)
from services.orders_service.schemas import CancellationCreate, CancellationUpdate
from services.orders_service.services.order_ops import advance_order, load_visible_order
from services.orders_service.services.state_machine import (
    CANCELLABLE_ORDER_STATES,
    CANCELLATION_MACHINE,
)
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

logger = get_logger(__name__)


def generate_cancellation_code() -> str:
    """Generate a cancellation code like CX-20260104-A1B2C3."""
    date_part = utc_now().strftime("%Y%m%d")
    random_part = "".join(random.choices(string.ascii_uppercase + string.digits, k=6))
    return f"CX-{date_part}-{random_part}"


async def _load_cancellation(
    db: AsyncSession,
    order_id: uuid.UUID,
    cancellation_id: uuid.UUID,
    *,
    lock: bool = False,
) -> Optional[Cancellation]:
    query = select(Cancellation).where(
        Cancellation.id == cancellation_id, Cancellation.order_id == order_id
    )
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


async def create_cancellation(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, body: CancellationCreate
) -> Cancellation:
    """Ask for an order to be cancelled. One open request per order.

    The buyer, an assigned seller (for example when stock runs out) or an
    admin may file the request.
    """
    order, seller_ids = await load_visible_order(db, user, order_id, lock=True)
    if is_seller(user):
        ensure_assigned_seller(user, seller_ids, action="cancel this order")
    else:
        ensure_owner(user, order.buyer_id, action="cancel this order")
    if order.status not in CANCELLABLE_ORDER_STATES:
        raise InvalidStateTransition(
            f"Order is {order.status.value} and can no longer be cancelled"
        )

    open_request = await db.execute(
        only_active(
            select(Cancellation.id).where(
                Cancellation.order_id == order.id,
                Cancellation.status == CancellationStatus.REQUESTED,
            ),
            Cancellation,
        )
    )
    if open_request.first():
        raise InvalidStateTransition("A cancellation is already pending for this order")

    cancellation = Cancellation(
        order_id=order.id,
        cancellation_code=generate_cancellation_code(),
        requested_by=user.user_id,
        reason=body.reason,
        status=CancellationStatus.REQUESTED,
    )
    db.add(cancellation)
    await db.commit()
    await db.refresh(cancellation)
    logger.info(
        "Cancellation %s requested on order %s by %s",
        cancellation.cancellation_code,
        order.order_code,
        user.user_id,
    )
    return cancellation


async def get_cancellation(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, cancellation_id: uuid.UUID
) -> Cancellation:
    order, _ = await load_visible_order(db, user, order_id)
    return ensure_active(
        await _load_cancellation(db, order.id, cancellation_id), "Cancellation"
    )


async def list_cancellations(
    db: AsyncSession,
    user: AuthUser,
    *,
    order_id: Optional[uuid.UUID] = None,
    status: Optional[CancellationStatus] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Cancellation], int]:
    """Buyers see their own, sellers those on their orders, admins all."""
    query = only_active(select(Cancellation), Cancellation)
    if is_seller(user):
        query = query.where(
            Cancellation.order_id.in_(
                select(OrderItem.order_id).where(OrderItem.seller_id == user.user_id)
            )
        )
    elif not is_admin(user):
        query = query.where(
            Cancellation.order_id.in_(
                select(Order.id).where(Order.buyer_id == user.user_id)
            )
        )
    if order_id:
        query = query.where(Cancellation.order_id == order_id)
    if status:
        query = query.where(Cancellation.status == status)

    return await fetch_page(
        db, query, skip=skip, limit=limit, order_by=(Cancellation.created_at.desc(),)
    )


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


async def _apply_approval(
    db: AsyncSession, user: AuthUser, order: Order, cancellation: Cancellation
) -> None:
    if order.status not in CANCELLABLE_ORDER_STATES:
        raise InvalidStateTransition(
            f"Order is {order.status.value} and can no longer be cancelled"
        )

    shipments = (
        await db.execute(
            only_active(select(Shipment).where(Shipment.order_id == order.id), Shipment)
        )
    ).scalars().all()
    if any(s.status != ShipmentStatus.PENDING for s in shipments):
        raise InvalidStateTransition("Order has shipments that already left")
    for shipment in shipments:
        erase(shipment, actor_id=user.user_id, label="Shipment")
        shipment.updated_at = next_timestamp(shipment.updated_at)

    items = (
        await db.execute(select(OrderItem).where(OrderItem.order_id == order.id))
    ).scalars().all()
    for item in items:
        item.status = OrderItemStatus.CANCELLED

    payments = (
        await db.execute(select(Payment).where(Payment.order_id == order.id))
    ).scalars().all()
    for payment in payments:
        if payment.status == PaymentStatus.PENDING:
            payment.status = PaymentStatus.CANCELLED
        elif payment.status == PaymentStatus.CONFIRMED:
            if payment.ledger_transaction_id is not None:
                await reverse_transaction(
                    db,
                    transaction_id=payment.ledger_transaction_id,
                    evidence_reference=f"cancellation:{cancellation.cancellation_code}",
                    initiated_by=user.user_id,
                    reason=f"Refund for order {order.order_code}",
                )
            else:
                # Card and bank transfers are paid back by the provider
                logger.info(
                    "Payment %s (%s, ref %s) refunded externally for order %s",
                    payment.id,
                    payment.payment_type.value,
                    payment.external_payment_ref,
                    order.order_code,
                )
            payment.status = PaymentStatus.REFUNDED

    advance_order(
        db,
        order,
        OrderStatus.CANCELLED,
        changed_by=user.user_id,
        reason=cancellation.reason,
    )


async def update_cancellation(
    db: AsyncSession,
    user: AuthUser,
    order_id: uuid.UUID,
    cancellation_id: uuid.UUID,
    body: CancellationUpdate,
) -> Cancellation:
    """Amend the reason, or approve/reject the request."""
    order, seller_ids = await load_visible_order(db, user, order_id, lock=True)
    cancellation = ensure_active(
        await _load_cancellation(db, order.id, cancellation_id, lock=True),
        "Cancellation",
    )
    if CANCELLATION_MACHINE.is_terminal(cancellation.status):
        raise InvalidStateTransition(
            f"Cancellation is {cancellation.status.value} and can no longer change"
        )

    changes = body.model_dump(exclude_unset=True)
    target = changes.get("status") or cancellation.status

    if target != cancellation.status:
        ensure_assigned_seller(user, seller_ids, action="resolve this cancellation")
        CANCELLATION_MACHINE.ensure_transition(cancellation.status, target)
    elif changes.get("reason") is not None:
        ensure_owner(user, order.buyer_id, action="amend the cancellation reason")
    # A resolution may carry the resolver's rationale
    if changes.get("reason") is not None:
        cancellation.reason = changes["reason"]

    try:
        if target == CancellationStatus.APPROVED:
            await _apply_approval(db, user, order, cancellation)
        if target != cancellation.status:
            cancellation.status = target
            cancellation.resolved_by = user.user_id
            cancellation.resolved_at = utc_now()
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    await db.refresh(cancellation)
    logger.info(
        "Cancellation %s updated by %s (status %s)",
        cancellation.cancellation_code,
        user.user_id,
        cancellation.status.value,
    )
    return cancellation


async def erase_cancellation(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, cancellation_id: uuid.UUID
) -> Cancellation:
    ensure_role(user, Role.ADMIN)
    cancellation = await _load_cancellation(db, order_id, cancellation_id)
    if cancellation is None:
        raise NotFound("Cancellation not found")

    erase(cancellation, actor_id=user.user_id, label="Cancellation")
    await db.commit()
    logger.info(
        "Cancellation %s erased by %s", cancellation.cancellation_code, user.user_id
    )
    return cancellation
