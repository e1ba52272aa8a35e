"""Order aggregate operations: carts, order creation and order status.

An order is created from an active cart in one unit of work together with its
items, deliveries and payments. Mileage and deposit payments redeem the
buyer's ledger account inside the same unit, so a rejected redemption leaves
neither an order nor a balance change behind.

The order status is never edited directly. Child resources move it forward
through ``advance_order``, which records every change in the status history.
"""

import uuid
from typing import Optional

from libs.auth.guard import (
    ensure_owner,
    ensure_role,
    ensure_visible,
    is_admin,
    is_seller,
)
from libs.auth.models import AuthUser, Role
from libs.common.config import get_settings
from libs.common.datetime_utils import utc_now
from libs.common.errors import InvalidStateTransition, NotFound, ValidationFailed
from libs.common.logging import get_logger
from libs.common.pagination import fetch_page
from libs.db.soft_delete import erase, only_active
from services.catalog_service.services.product_ops import get_orderable_product
from services.ledger_service.models import LedgerAccount, TransactionType
from services.ledger_service.services.ledger_ops import post_transaction
from services.orders_service.models import (
    LEDGER_PAYMENT_TYPES,
    Cart,
    CartItem,
    CartStatus,
    Delivery,
    Order,
    OrderItem,
    OrderStatus,
    OrderStatusHistory,
    Payment,
    PaymentStatus,
)
from services.orders_service.schemas import (
    CartCreate,
    CartItemCreate,
    DeliveryResponse,
    OrderCreate,
    OrderItemResponse,
    OrderResponse,
    OrderSummaryResponse,
    PaymentResponse,
)
from services.orders_service.services.state_machine import ORDER_MACHINE
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

logger = get_logger(__name__)
settings = get_settings()


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------


async def _load_cart(
    db: AsyncSession, cart_id: uuid.UUID, *, lock: bool = False
) -> Optional[Cart]:
    query = select(Cart).where(Cart.id == cart_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


async def _load_open_cart(db: AsyncSession, user: AuthUser, cart_id: uuid.UUID) -> Cart:
    cart = await _load_cart(db, cart_id)
    if cart is None:
        raise NotFound("Cart not found")
    ensure_visible(user, label="Cart", owner_ids=[cart.buyer_id])
    ensure_owner(user, cart.buyer_id, action="change this cart")
    if cart.status != CartStatus.ACTIVE:
        raise InvalidStateTransition(f"Cart is {cart.status.value}")
    return cart


async def create_cart(db: AsyncSession, user: AuthUser, body: CartCreate) -> Cart:
    ensure_role(user, Role.BUYER)
    cart = Cart(buyer_id=user.user_id, channel_id=body.channel_id)
    db.add(cart)
    await db.commit()
    await db.refresh(cart)
    logger.info("Cart %s opened by %s", cart.id, user.user_id)
    return cart


async def add_cart_item(
    db: AsyncSession, user: AuthUser, cart_id: uuid.UUID, body: CartItemCreate
) -> CartItem:
    """Put a product in the cart at its current price."""
    cart = await _load_open_cart(db, user, cart_id)

    product = await get_orderable_product(db, body.product_id)
    if product is None:
        raise ValidationFailed(f"Product {body.product_id} is not available")

    item = CartItem(
        cart_id=cart.id,
        product_id=product.id,
        seller_id=product.seller_id,
        quantity=body.quantity,
        unit_price=product.price,
        created_by=user.user_id,
    )
    db.add(item)
    await db.commit()
    await db.refresh(item)
    return item


async def erase_cart_item(
    db: AsyncSession, user: AuthUser, cart_id: uuid.UUID, item_id: uuid.UUID
) -> CartItem:
    cart = await _load_open_cart(db, user, cart_id)
    result = await db.execute(
        select(CartItem).where(CartItem.id == item_id, CartItem.cart_id == cart.id)
    )
    item = result.scalar_one_or_none()
    if item is None:
        raise NotFound("Cart item not found")

    erase(item, actor_id=user.user_id, label="Cart item")
    await db.commit()
    return item


# ---------------------------------------------------------------------------
# Order loading and visibility
# ---------------------------------------------------------------------------


async def load_order(
    db: AsyncSession, order_id: uuid.UUID, *, lock: bool = False
) -> Optional[Order]:
    query = select(Order).where(Order.id == order_id)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    return (await db.execute(query)).scalar_one_or_none()


async def _load_order_graph(db: AsyncSession, order_id: uuid.UUID) -> Optional[Order]:
    query = (
        select(Order)
        .where(Order.id == order_id)
        .options(
            selectinload(Order.items),
            selectinload(Order.payments),
            selectinload(Order.deliveries),
        )
        .execution_options(populate_existing=True)
    )
    return (await db.execute(query)).scalar_one_or_none()


async def order_seller_ids(db: AsyncSession, order_id: uuid.UUID) -> set[str]:
    """Sellers holding at least one item in the order."""
    result = await db.execute(
        select(OrderItem.seller_id).where(OrderItem.order_id == order_id).distinct()
    )
    return set(result.scalars().all())


async def load_visible_order(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID, *, lock: bool = False
) -> tuple[Order, set[str]]:
    """Load an order the principal may see, with the order's seller ids."""
    order = await load_order(db, order_id, lock=lock)
    if order is None:
        raise NotFound("Order not found")
    seller_ids = await order_seller_ids(db, order.id)
    ensure_visible(user, label="Order", owner_ids=[order.buyer_id], seller_ids=seller_ids)
    return order, seller_ids


def present_order(user: AuthUser, order: Order) -> OrderResponse:
    """Shape a fully loaded order for ``user``.

    Sellers only see their own lines and never the buyer's payments.
    """
    seller_view = is_seller(user)
    items = [i for i in order.items if not seller_view or i.seller_id == user.user_id]
    payments = [] if seller_view else order.payments
    return OrderResponse(
        **OrderSummaryResponse.model_validate(order).model_dump(),
        items=[OrderItemResponse.model_validate(i) for i in items],
        payments=[PaymentResponse.model_validate(p) for p in payments],
        deliveries=[
            DeliveryResponse.model_validate(d)
            for d in order.deliveries
            if not d.is_deleted
        ],
    )


# ---------------------------------------------------------------------------
# Order status
# ---------------------------------------------------------------------------


def advance_order(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    *,
    changed_by: str,
    reason: Optional[str] = None,
) -> OrderStatusHistory:
    """Move the order to ``target`` and record the change. The caller commits."""
    ORDER_MACHINE.ensure_transition(order.status, target)
    entry = OrderStatusHistory(
        order_id=order.id,
        from_status=order.status,
        to_status=target,
        changed_by=changed_by,
        reason=reason,
    )
    db.add(entry)
    logger.info(
        "Order %s status %s -> %s by %s",
        order.order_code,
        order.status.value,
        target.value,
        changed_by,
    )
    order.status = target
    return entry


def advance_order_if_possible(
    db: AsyncSession,
    order: Order,
    target: OrderStatus,
    *,
    changed_by: str,
    reason: Optional[str] = None,
) -> bool:
    """Follow-up transition driven by a child resource; no-op when not allowed."""
    if not ORDER_MACHINE.can_transition(order.status, target):
        return False
    advance_order(db, order, target, changed_by=changed_by, reason=reason)
    return True


# ---------------------------------------------------------------------------
# Order creation
# ---------------------------------------------------------------------------


def _resolve_buyer(user: AuthUser, body: OrderCreate) -> str:
    if is_admin(user):
        if not body.buyer_id:
            raise ValidationFailed("buyer_id is required when an admin places an order")
        return body.buyer_id
    return user.user_id


async def _validate_items(db: AsyncSession, body: OrderCreate, currency: str) -> None:
    for line in body.items:
        product = await get_orderable_product(db, line.product_id)
        if product is None:
            raise ValidationFailed(f"Product {line.product_id} is not available")
        if product.seller_id != line.seller_id:
            raise ValidationFailed(
                f"Product {line.product_id} is not sold by {line.seller_id}"
            )
        if product.currency != currency:
            raise ValidationFailed(
                f"Product {line.product_id} is priced in {product.currency}"
            )
        if line.final_price > line.unit_price * line.quantity:
            raise ValidationFailed(
                f"final_price of product {line.product_id} exceeds unit_price x quantity"
            )

    line_total = sum(line.final_price for line in body.items)
    if line_total != body.total_amount:
        raise ValidationFailed(
            f"total_amount {body.total_amount} does not match item total {line_total}"
        )


async def _validate_payments(
    db: AsyncSession, body: OrderCreate, buyer_id: str, currency: str
) -> None:
    for payment in body.payments:
        if (payment.currency or currency).upper() != currency:
            raise ValidationFailed("Payments must use the order currency")
        if payment.status not in (PaymentStatus.PENDING, PaymentStatus.CONFIRMED):
            raise ValidationFailed(
                f"Payments cannot be created as {payment.status.value}"
            )

        if payment.payment_type in LEDGER_PAYMENT_TYPES:
            if payment.ledger_account_id is None:
                raise ValidationFailed(
                    f"{payment.payment_type.value} payments require ledger_account_id"
                )
            account = (
                await db.execute(
                    select(LedgerAccount).where(
                        LedgerAccount.id == payment.ledger_account_id
                    )
                )
            ).scalar_one_or_none()
            if account is None or account.owner_id != buyer_id:
                raise ValidationFailed("Ledger account does not belong to the buyer")
            if account.kind.value != payment.payment_type.value:
                raise ValidationFailed(
                    f"Ledger account is a {account.kind.value} account"
                )
        elif payment.ledger_account_id is not None:
            raise ValidationFailed(
                f"{payment.payment_type.value} payments cannot reference a ledger account"
            )

    paid = sum(p.amount for p in body.payments)
    if paid > body.total_amount:
        raise ValidationFailed(
            f"Payments ({paid}) exceed the order total ({body.total_amount})"
        )


async def create_order(db: AsyncSession, user: AuthUser, body: OrderCreate) -> Order:
    """Create an order with its items, deliveries and payments in one unit."""
    ensure_role(user, Role.BUYER, Role.ADMIN)
    buyer_id = _resolve_buyer(user, body)
    currency = (body.currency or settings.DEFAULT_CURRENCY).upper()

    cart = await _load_cart(db, body.cart_id, lock=True)
    if cart is None or cart.buyer_id != buyer_id:
        raise NotFound("Cart not found")
    if cart.status != CartStatus.ACTIVE:
        raise InvalidStateTransition(f"Cart is {cart.status.value}")

    await _validate_items(db, body, currency)
    await _validate_payments(db, body, buyer_id, currency)
    if any(d.shipment_id is not None for d in body.deliveries):
        raise ValidationFailed("A new order has no shipments to deliver")

    try:
        order = Order(
            order_code=Order.generate_order_code(),
            buyer_id=buyer_id,
            channel_id=body.channel_id,
            section_id=body.section_id,
            cart_id=cart.id,
            external_order_ref=body.external_order_ref,
            total_amount=body.total_amount,
            currency=currency,
            status=OrderStatus.CREATED,
        )
        db.add(order)
        await db.flush()

        for line in body.items:
            db.add(
                OrderItem(
                    order_id=order.id,
                    product_id=line.product_id,
                    seller_id=line.seller_id,
                    quantity=line.quantity,
                    unit_price=line.unit_price,
                    final_price=line.final_price,
                )
            )

        for delivery in body.deliveries:
            db.add(
                Delivery(
                    order_id=order.id,
                    recipient_name=delivery.recipient_name,
                    recipient_phone=delivery.recipient_phone,
                    address_snapshot=delivery.address_snapshot,
                    delivery_message=delivery.delivery_message,
                )
            )

        confirmed_total = 0
        for line in body.payments:
            payment = Payment(
                order_id=order.id,
                buyer_id=buyer_id,
                payment_type=line.payment_type,
                ledger_account_id=line.ledger_account_id,
                external_payment_ref=line.external_payment_ref,
                status=line.status,
                amount=line.amount,
                currency=currency,
            )
            if line.payment_type in LEDGER_PAYMENT_TYPES:
                txn = await post_transaction(
                    db,
                    account_id=line.ledger_account_id,
                    transaction_type=TransactionType.REDEMPTION,
                    amount=line.amount,
                    evidence_reference=f"order:{order.order_code}",
                    initiated_by=user.user_id,
                    reason=f"Payment for order {order.order_code}",
                    reference_type="order",
                    reference_id=str(order.id),
                    commit=False,
                )
                payment.ledger_transaction_id = txn.id
                payment.status = PaymentStatus.CONFIRMED
            if payment.status == PaymentStatus.CONFIRMED:
                payment.confirmed_at = utc_now()
                confirmed_total += payment.amount
            db.add(payment)

        initial_status = (
            OrderStatus.PAID
            if confirmed_total >= order.total_amount
            else OrderStatus.CREATED
        )
        order.status = initial_status
        db.add(
            OrderStatusHistory(
                order_id=order.id,
                from_status=None,
                to_status=initial_status,
                changed_by=user.user_id,
                reason="Order created",
            )
        )

        cart.status = CartStatus.CONVERTED
        await db.commit()
    except Exception:
        await db.rollback()
        raise

    logger.info(
        "Order %s created for %s: %d %s, %d item(s), status %s",
        order.order_code,
        buyer_id,
        order.total_amount,
        order.currency,
        len(body.items),
        order.status.value,
    )
    return await _load_order_graph(db, order.id)


# ---------------------------------------------------------------------------
# Order reads
# ---------------------------------------------------------------------------


async def get_order(db: AsyncSession, user: AuthUser, order_id: uuid.UUID) -> Order:
    order = await _load_order_graph(db, order_id)
    if order is None:
        raise NotFound("Order not found")
    ensure_visible(
        user,
        label="Order",
        owner_ids=[order.buyer_id],
        seller_ids={item.seller_id for item in order.items},
    )
    return order


async def list_orders(
    db: AsyncSession,
    user: AuthUser,
    *,
    status: Optional[OrderStatus] = None,
    buyer_id: Optional[str] = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Order], int]:
    """List orders visible to ``user``."""
    query = select(Order)
    if is_admin(user):
        if buyer_id:
            query = query.where(Order.buyer_id == buyer_id)
    elif is_seller(user):
        query = query.where(
            Order.id.in_(
                select(OrderItem.order_id).where(OrderItem.seller_id == user.user_id)
            )
        )
    else:
        query = query.where(Order.buyer_id == user.user_id)
    if status:
        query = query.where(Order.status == status)

    return await fetch_page(
        db, query, skip=skip, limit=limit, order_by=(Order.ordered_at.desc(),)
    )


async def list_status_history(
    db: AsyncSession, user: AuthUser, order_id: uuid.UUID
) -> list[OrderStatusHistory]:
    order, _ = await load_visible_order(db, user, order_id)
    result = await db.execute(
        select(OrderStatusHistory)
        .where(OrderStatusHistory.order_id == order.id)
        .order_by(OrderStatusHistory.created_at)
    )
    return list(result.scalars().all())


async def list_cart_items(
    db: AsyncSession, user: AuthUser, cart_id: uuid.UUID
) -> list[CartItem]:
    cart = await _load_cart(db, cart_id)
    if cart is None:
        raise NotFound("Cart not found")
    ensure_visible(user, label="Cart", owner_ids=[cart.buyer_id])
    result = await db.execute(
        only_active(select(CartItem).where(CartItem.cart_id == cart.id), CartItem)
        .order_by(CartItem.created_at)
    )
    return list(result.scalars().all())


async def get_cart(db: AsyncSession, user: AuthUser, cart_id: uuid.UUID) -> Cart:
    cart = await _load_cart(db, cart_id)
    if cart is None:
        raise NotFound("Cart not found")
    ensure_visible(user, label="Cart", owner_ids=[cart.buyer_id])
    return cart
