"""Unit tests for order_ops: carts, order creation and visibility."""

import pytest
from libs.common.errors import (
    AlreadyDeleted,
    AuthorizationDenied,
    InsufficientFunds,
    InvalidStateTransition,
    NotFound,
    ValidationFailed,
)
from services.catalog_service.models import ProductStatus
from services.orders_service.models import (
    CartStatus,
    OrderStatus,
    PaymentStatus,
)
from services.orders_service.schemas import CartItemCreate, OrderCreate
from services.orders_service.services import order_ops
from tests.conftest import make_admin, make_buyer, make_seller
from tests.factories import (
    CartFactory,
    LedgerAccountFactory,
    ProductFactory,
    order_payload,
    place_order,
)

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


async def _seed_product(db, seller=None, **overrides):
    seller = seller or make_seller()
    product = ProductFactory.create(seller_id=seller.user_id, **overrides)
    db.add(product)
    await db.commit()
    return product


async def _seed_cart(db, buyer):
    cart = CartFactory.create(buyer_id=buyer.user_id)
    db.add(cart)
    await db.commit()
    return cart


async def _seed_mileage(db, buyer, balance):
    account = LedgerAccountFactory.create(owner_id=buyer.user_id, balance=balance)
    db.add(account)
    await db.commit()
    return account


# ---------------------------------------------------------------------------
# Carts
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cart_item_snapshots_current_price(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session, price=12000)
    cart = await _seed_cart(db_session, buyer)

    item = await order_ops.add_cart_item(
        db_session, buyer, cart.id, CartItemCreate(product_id=product.id, quantity=2)
    )

    assert item.unit_price == 12000
    assert item.seller_id == product.seller_id
    items = await order_ops.list_cart_items(db_session, buyer, cart.id)
    assert [i.id for i in items] == [item.id]


@pytest.mark.asyncio
@pytest.mark.unit
async def test_cart_rejects_products_not_on_sale(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session, status=ProductStatus.DRAFT)
    cart = await _seed_cart(db_session, buyer)

    with pytest.raises(ValidationFailed):
        await order_ops.add_cart_item(
            db_session, buyer, cart.id, CartItemCreate(product_id=product.id, quantity=1)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_other_buyers_cart_is_not_found(db_session):
    cart = await _seed_cart(db_session, make_buyer())

    with pytest.raises(NotFound):
        await order_ops.get_cart(db_session, make_buyer(), cart.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_erase_cart_item_twice(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, buyer)
    item = await order_ops.add_cart_item(
        db_session, buyer, cart.id, CartItemCreate(product_id=product.id, quantity=1)
    )

    await order_ops.erase_cart_item(db_session, buyer, cart.id, item.id)
    with pytest.raises(AlreadyDeleted):
        await order_ops.erase_cart_item(db_session, buyer, cart.id, item.id)

    assert await order_ops.list_cart_items(db_session, buyer, cart.id) == []


# ---------------------------------------------------------------------------
# Order creation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_create_order_converts_cart_and_records_history(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)

    order = await place_order(db_session, buyer, [(product, 2)])

    assert order.order_code.startswith("OR-")
    assert order.status == OrderStatus.CREATED
    assert order.total_amount == 19800
    assert len(order.items) == 1
    assert order.items[0].final_price == 19800
    assert len(order.deliveries) == 1

    cart = await order_ops.get_cart(db_session, buyer, order.cart_id)
    assert cart.status == CartStatus.CONVERTED

    history = await order_ops.list_status_history(db_session, buyer, order.id)
    assert len(history) == 1
    assert history[0].from_status is None
    assert history[0].to_status == OrderStatus.CREATED


@pytest.mark.asyncio
@pytest.mark.unit
async def test_total_mismatch_is_rejected(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)

    with pytest.raises(ValidationFailed):
        await place_order(db_session, buyer, [(product, 2)], total_amount=100)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_final_price_cannot_exceed_line_price(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, buyer)
    payload = order_payload(cart.id, [(product, 1)])
    payload["items"][0]["final_price"] = product.price + 1
    payload["total_amount"] = product.price + 1

    with pytest.raises(ValidationFailed):
        await order_ops.create_order(db_session, buyer, OrderCreate(**payload))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_item_seller_must_match_product(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, buyer)
    payload = order_payload(cart.id, [(product, 1)])
    payload["items"][0]["seller_id"] = "seller-impostor"

    with pytest.raises(ValidationFailed):
        await order_ops.create_order(db_session, buyer, OrderCreate(**payload))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_converted_cart_cannot_be_ordered_again(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    order = await place_order(db_session, buyer, [(product, 1)])

    body = OrderCreate(**order_payload(order.cart_id, [(product, 1)]))
    with pytest.raises(InvalidStateTransition):
        await order_ops.create_order(db_session, buyer, body)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_another_buyers_cart_is_not_found(db_session):
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, make_buyer())

    body = OrderCreate(**order_payload(cart.id, [(product, 1)]))
    with pytest.raises(NotFound):
        await order_ops.create_order(db_session, make_buyer(), body)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sellers_cannot_place_orders(db_session):
    seller = make_seller()
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, seller)

    body = OrderCreate(**order_payload(cart.id, [(product, 1)]))
    with pytest.raises(AuthorizationDenied):
        await order_ops.create_order(db_session, seller, body)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_admin_orders_on_behalf_of_named_buyer(db_session):
    admin = make_admin()
    buyer = make_buyer()
    product = await _seed_product(db_session)
    cart = await _seed_cart(db_session, buyer)
    payload = order_payload(cart.id, [(product, 1)])

    with pytest.raises(ValidationFailed):
        await order_ops.create_order(db_session, admin, OrderCreate(**payload))

    order = await order_ops.create_order(
        db_session, admin, OrderCreate(**payload, buyer_id=buyer.user_id)
    )
    assert order.buyer_id == buyer.user_id


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mileage_payment_redeems_and_marks_paid(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    account = await _seed_mileage(db_session, buyer, balance=20000)

    order = await place_order(
        db_session,
        buyer,
        [(product, 2)],
        payments=[
            {
                "payment_type": "mileage",
                "amount": 19800,
                "ledger_account_id": str(account.id),
            }
        ],
    )

    assert order.status == OrderStatus.PAID
    payment = order.payments[0]
    assert payment.status == PaymentStatus.CONFIRMED
    assert payment.ledger_transaction_id is not None
    assert payment.confirmed_at is not None

    await db_session.refresh(account)
    assert account.balance == 200


@pytest.mark.asyncio
@pytest.mark.unit
async def test_insufficient_mileage_leaves_nothing_behind(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    account = await _seed_mileage(db_session, buyer, balance=1000)
    cart = await _seed_cart(db_session, buyer)
    body = OrderCreate(
        **order_payload(
            cart.id,
            [(product, 1)],
            payments=[
                {
                    "payment_type": "mileage",
                    "amount": 9900,
                    "ledger_account_id": str(account.id),
                }
            ],
        )
    )

    with pytest.raises(InsufficientFunds):
        await order_ops.create_order(db_session, buyer, body)

    await db_session.refresh(account)
    await db_session.refresh(cart)
    assert account.balance == 1000
    assert cart.status == CartStatus.ACTIVE
    _, total = await order_ops.list_orders(db_session, buyer)
    assert total == 0


@pytest.mark.asyncio
@pytest.mark.unit
async def test_mileage_account_must_belong_to_buyer(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    account = await _seed_mileage(db_session, make_buyer(), balance=50000)

    with pytest.raises(ValidationFailed):
        await place_order(
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


@pytest.mark.asyncio
@pytest.mark.unit
async def test_pending_card_payment_keeps_order_created(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)

    order = await place_order(
        db_session,
        buyer,
        [(product, 1)],
        payments=[{"payment_type": "card", "amount": 9900}],
    )

    assert order.status == OrderStatus.CREATED
    assert order.payments[0].status == PaymentStatus.PENDING


@pytest.mark.asyncio
@pytest.mark.unit
async def test_payments_cannot_exceed_total(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)

    with pytest.raises(ValidationFailed):
        await place_order(
            db_session,
            buyer,
            [(product, 1)],
            payments=[{"payment_type": "card", "amount": 10000}],
        )


# ---------------------------------------------------------------------------
# Visibility
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_sellers_see_only_their_lines(db_session):
    buyer = make_buyer()
    seller_a = make_seller()
    seller_b = make_seller()
    product_a = await _seed_product(db_session, seller_a)
    product_b = await _seed_product(db_session, seller_b)
    order = await place_order(
        db_session,
        buyer,
        [(product_a, 1), (product_b, 1)],
        payments=[{"payment_type": "card", "amount": 5000}],
    )

    loaded = await order_ops.get_order(db_session, seller_a, order.id)
    view = order_ops.present_order(seller_a, loaded)
    assert [i.seller_id for i in view.items] == [seller_a.user_id]
    assert view.payments == []

    buyer_view = order_ops.present_order(buyer, loaded)
    assert len(buyer_view.items) == 2
    assert len(buyer_view.payments) == 1


@pytest.mark.asyncio
@pytest.mark.unit
async def test_unrelated_principals_get_not_found(db_session):
    product = await _seed_product(db_session)
    order = await place_order(db_session, make_buyer(), [(product, 1)])

    with pytest.raises(NotFound):
        await order_ops.get_order(db_session, make_buyer(), order.id)
    with pytest.raises(NotFound):
        await order_ops.get_order(db_session, make_seller(), order.id)
    assert (await order_ops.get_order(db_session, make_admin(), order.id)).id == order.id


@pytest.mark.asyncio
@pytest.mark.unit
async def test_list_orders_is_scoped_by_role(db_session):
    buyer = make_buyer()
    seller = make_seller()
    mine = await _seed_product(db_session, seller)
    other = await _seed_product(db_session)
    await place_order(db_session, buyer, [(mine, 1)])
    await place_order(db_session, buyer, [(other, 1)])
    await place_order(db_session, make_buyer(), [(other, 1)])

    _, buyer_total = await order_ops.list_orders(db_session, buyer)
    _, seller_total = await order_ops.list_orders(db_session, seller)
    _, admin_total = await order_ops.list_orders(db_session, make_admin())
    _, filtered = await order_ops.list_orders(
        db_session, make_admin(), buyer_id=buyer.user_id
    )

    assert buyer_total == 2
    assert seller_total == 1
    assert admin_total == 3
    assert filtered == 2


@pytest.mark.asyncio
@pytest.mark.unit
async def test_order_status_cannot_skip_ahead(db_session):
    buyer = make_buyer()
    product = await _seed_product(db_session)
    order = await place_order(db_session, buyer, [(product, 1)])

    with pytest.raises(InvalidStateTransition):
        order_ops.advance_order(
            db_session, order, OrderStatus.DELIVERED, changed_by=buyer.user_id
        )
    assert order.status == OrderStatus.CREATED
