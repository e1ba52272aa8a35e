"""Unit tests for cancellation_ops: request, resolution and refunds."""

import pytest
from libs.common.errors import (
    AlreadyDeleted,
    AuthorizationDenied,
    InvalidStateTransition,
    NotFound,
)
from services.orders_service.models import (
    CancellationStatus,
    OrderItemStatus,
    OrderStatus,
    PaymentStatus,
    ShipmentStatus,
)
from services.orders_service.schemas import (
    CancellationCreate,
    CancellationUpdate,
    ShipmentCreate,
    ShipmentItemCreate,
    ShipmentUpdate,
)
from services.orders_service.services import (
    cancellation_ops,
    order_ops,
    shipment_ops,
)
from tests.conftest import make_admin, make_buyer, make_seller
from tests.factories import (
    LedgerAccountFactory,
    ProductFactory,
    first_order_item,
    place_order,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _order_for(db, seller, **payload_overrides):
    buyer = make_buyer()
    product = ProductFactory.create(seller_id=seller.user_id)
    db.add(product)
    await db.commit()
    order = await place_order(db, buyer, [(product, 1)], **payload_overrides)
    return buyer, order


async def _request(db, buyer, order, reason="Changed my mind"):
    return await cancellation_ops.create_cancellation(
        db, buyer, order.id, CancellationCreate(reason=reason)
    )


def _resolve(status):
    return CancellationUpdate(status=status)


# ---------------------------------------------------------------------------
# Requests
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_requests_cancellation(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)

    cancellation = await _request(db_session, buyer, order)

    assert cancellation.cancellation_code.startswith("CX-")
    assert cancellation.status == CancellationStatus.REQUESTED
    assert cancellation.requested_by == buyer.user_id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_one_open_request_per_order(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    await _request(db_session, buyer, order)

    with pytest.raises(InvalidStateTransition):
        await _request(db_session, buyer, order)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_assigned_seller_requests_cancellation(db_session):
    seller = make_seller()
    _, order = await _order_for(db_session, seller)

    cancellation = await _request(db_session, seller, order, reason="Out of stock")

    assert cancellation.status == CancellationStatus.REQUESTED
    assert cancellation.requested_by == seller.user_id

    with pytest.raises(NotFound):
        await _request(db_session, make_seller(), order)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_cancellations_is_scoped(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    other_buyer, other_order = await _order_for(db_session, make_seller())
    await _request(db_session, buyer, order)
    await _request(db_session, other_buyer, other_order)

    _, buyer_total = await cancellation_ops.list_cancellations(db_session, buyer)
    _, seller_total = await cancellation_ops.list_cancellations(db_session, seller)
    _, admin_total = await cancellation_ops.list_cancellations(db_session, make_admin())

    assert (buyer_total, seller_total, admin_total) == (1, 1, 2)


# ---------------------------------------------------------------------------
# Resolution
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_cannot_approve_own_request(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)

    with pytest.raises(AuthorizationDenied):
        await cancellation_ops.update_cancellation(
            db_session,
            buyer,
            order.id,
            cancellation.id,
            _resolve(CancellationStatus.APPROVED),
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyer_amends_reason_while_requested(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)

    amended = await cancellation_ops.update_cancellation(
        db_session,
        buyer,
        order.id,
        cancellation.id,
        CancellationUpdate(reason="Ordered the wrong size"),
    )

    assert amended.reason == "Ordered the wrong size"
    assert amended.status == CancellationStatus.REQUESTED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_seller_resolves_with_reason(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)

    approved = await cancellation_ops.update_cancellation(
        db_session,
        seller,
        order.id,
        cancellation.id,
        CancellationUpdate(
            status=CancellationStatus.APPROVED, reason="Approved: out of stock"
        ),
    )

    assert approved.status == CancellationStatus.APPROVED
    assert approved.reason == "Approved: out of stock"
    assert approved.resolved_by == seller.user_id
    history = await order_ops.list_status_history(db_session, buyer, order.id)
    assert any(
        h.to_status == OrderStatus.CANCELLED and h.reason == "Approved: out of stock"
        for h in history
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_seller_cannot_amend_reason_alone(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)

    with pytest.raises(AuthorizationDenied):
        await cancellation_ops.update_cancellation(
            db_session,
            seller,
            order.id,
            cancellation.id,
            CancellationUpdate(reason="Seller note"),
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approval_refunds_mileage_and_cancels_order(db_session):
    seller = make_seller()
    buyer = make_buyer()
    account = LedgerAccountFactory.create(owner_id=buyer.user_id, balance=10000)
    product = ProductFactory.create(seller_id=seller.user_id)
    db_session.add_all([account, product])
    await db_session.commit()
    order = await place_order(
        db_session,
        buyer,
        [(product, 1)],
        payments=[
            {
                "payment_type": "mileage",
                "amount": 9900,
                "ledger_account_id": str(account.id),
            }
        ],
    )
    await db_session.refresh(account)
    assert account.balance == 100

    cancellation = await _request(db_session, buyer, order)
    approved = await cancellation_ops.update_cancellation(
        db_session,
        seller,
        order.id,
        cancellation.id,
        _resolve(CancellationStatus.APPROVED),
    )

    assert approved.status == CancellationStatus.APPROVED
    assert approved.resolved_by == seller.user_id
    assert approved.resolved_at is not None

    await db_session.refresh(account)
    assert account.balance == 10000

    reloaded = await order_ops.get_order(db_session, buyer, order.id)
    assert reloaded.status == OrderStatus.CANCELLED
    assert reloaded.payments[0].status == PaymentStatus.REFUNDED
    assert all(i.status == OrderItemStatus.CANCELLED for i in reloaded.items)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approval_erases_pending_shipments(db_session):
    seller = make_seller()
    buyer, order = await _order_for(
        db_session, seller, payments=[{"payment_type": "card", "amount": 9900}]
    )
    shipment = await shipment_ops.create_shipment(
        db_session, seller, order.id, ShipmentCreate(shipment_code="SHP-1")
    )
    cancellation = await _request(db_session, buyer, order)

    await cancellation_ops.update_cancellation(
        db_session,
        seller,
        order.id,
        cancellation.id,
        _resolve(CancellationStatus.APPROVED),
    )

    with pytest.raises(AlreadyDeleted):
        await shipment_ops.get_shipment(db_session, seller, order.id, shipment.id)
    reloaded = await order_ops.get_order(db_session, buyer, order.id)
    assert reloaded.payments[0].status == PaymentStatus.CANCELLED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approval_marks_confirmed_card_payment_refunded(db_session):
    seller = make_seller()
    buyer, order = await _order_for(
        db_session,
        seller,
        payments=[
            {
                "payment_type": "card",
                "amount": 9900,
                "status": "confirmed",
                "external_payment_ref": "pg-123",
            }
        ],
    )
    assert order.status == OrderStatus.PAID
    cancellation = await _request(db_session, buyer, order)

    await cancellation_ops.update_cancellation(
        db_session,
        seller,
        order.id,
        cancellation.id,
        _resolve(CancellationStatus.APPROVED),
    )

    reloaded = await order_ops.get_order(db_session, buyer, order.id)
    assert reloaded.status == OrderStatus.CANCELLED
    assert reloaded.payments[0].status == PaymentStatus.REFUNDED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_shipped_order_cannot_be_cancelled(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)
    order_item = await first_order_item(db_session, order.id)
    shipment = await shipment_ops.create_shipment(
        db_session, seller, order.id, ShipmentCreate(shipment_code="SHP-1")
    )
    await shipment_ops.create_shipment_item(
        db_session,
        seller,
        order.id,
        shipment.id,
        ShipmentItemCreate(order_item_id=order_item.id, shipped_quantity=1),
    )
    await shipment_ops.update_shipment(
        db_session,
        seller,
        order.id,
        shipment.id,
        ShipmentUpdate(status=ShipmentStatus.SHIPPED),
    )

    # A failed approval rolls back and expires loaded objects
    order_id, cancellation_id = order.id, cancellation.id
    with pytest.raises(InvalidStateTransition):
        await cancellation_ops.update_cancellation(
            db_session,
            seller,
            order_id,
            cancellation_id,
            _resolve(CancellationStatus.APPROVED),
        )

    still_open = await cancellation_ops.get_cancellation(
        db_session, buyer, order_id, cancellation_id
    )
    assert still_open.status == CancellationStatus.REQUESTED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_resolved_cancellation_is_final(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)
    await cancellation_ops.update_cancellation(
        db_session,
        seller,
        order.id,
        cancellation.id,
        _resolve(CancellationStatus.REJECTED),
    )

    for body in (
        _resolve(CancellationStatus.APPROVED),
        CancellationUpdate(reason="Please"),
        CancellationUpdate(),
    ):
        with pytest.raises(InvalidStateTransition):
            await cancellation_ops.update_cancellation(
                db_session, make_admin(), order.id, cancellation.id, body
            )

    reloaded = await order_ops.get_order(db_session, buyer, order.id)
    assert reloaded.status == OrderStatus.CREATED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_erase_cancellation_is_admin_only(db_session):
    seller = make_seller()
    buyer, order = await _order_for(db_session, seller)
    cancellation = await _request(db_session, buyer, order)

    with pytest.raises(AuthorizationDenied):
        await cancellation_ops.erase_cancellation(
            db_session, buyer, order.id, cancellation.id
        )

    admin = make_admin()
    await cancellation_ops.erase_cancellation(db_session, admin, order.id, cancellation.id)
    with pytest.raises(AlreadyDeleted):
        await cancellation_ops.erase_cancellation(
            db_session, admin, order.id, cancellation.id
        )
    with pytest.raises(NotFound):
        await cancellation_ops.get_cancellation(
            db_session, make_buyer(), order.id, cancellation.id
        )
