"""
Model factories for creating valid test data.

Every factory produces a valid, insertable SQLAlchemy model instance.
Override any field via kwargs.

Usage:
    product = ProductFactory.create(seller_id=seller.user_id)
    db_session.add(product)
    await db_session.commit()
"""

import uuid
from datetime import datetime, timezone

# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _uuid() -> uuid.UUID:
    return uuid.uuid4()


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _suffix() -> str:
    return uuid.uuid4().hex[:8]


# ---------------------------------------------------------------------------
# Catalog Service
# ---------------------------------------------------------------------------


class ProductFactory:
    @staticmethod
    def create(**overrides):
        from services.catalog_service.models import Product, ProductStatus

        suffix = _suffix()
        defaults = {
            "id": _uuid(),
            "seller_id": f"seller-{suffix}",
            "title": f"Test Product {suffix}",
            "slug": f"test-product-{suffix}",
            "description": "A product for tests",
            "price": 9900,
            "currency": "KRW",
            "status": ProductStatus.ACTIVE,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Product(**defaults)


class TagFactory:
    @staticmethod
    def create(**overrides):
        from services.catalog_service.models import Tag, TagStatus

        defaults = {
            "id": _uuid(),
            "name": f"tag-{_suffix()}",
            "description": "A tag for tests",
            "status": TagStatus.ACTIVE,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Tag(**defaults)


# ---------------------------------------------------------------------------
# Ledger Service
# ---------------------------------------------------------------------------


class LedgerAccountFactory:
    @staticmethod
    def create(**overrides):
        from services.ledger_service.models import (
            AccountKind,
            AccountStatus,
            LedgerAccount,
        )

        defaults = {
            "id": _uuid(),
            "owner_id": f"buyer-{_suffix()}",
            "kind": AccountKind.MILEAGE,
            "code": f"MIL-{_suffix()}",
            "balance": 0,
            "status": AccountStatus.ACTIVE,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return LedgerAccount(**defaults)


# ---------------------------------------------------------------------------
# Orders Service
# ---------------------------------------------------------------------------


class CartFactory:
    @staticmethod
    def create(**overrides):
        from services.orders_service.models import Cart, CartStatus

        defaults = {
            "id": _uuid(),
            "buyer_id": f"buyer-{_suffix()}",
            "channel_id": "web",
            "status": CartStatus.ACTIVE,
            "created_at": _now(),
            "updated_at": _now(),
        }
        defaults.update(overrides)
        return Cart(**defaults)


def order_payload(cart_id, lines, *, payments=None, deliveries=None, **overrides):
    """Build an order creation body from ``(product, quantity)`` pairs."""
    items = [
        {
            "product_id": str(product.id),
            "seller_id": product.seller_id,
            "quantity": quantity,
            "unit_price": product.price,
            "final_price": product.price * quantity,
        }
        for product, quantity in lines
    ]
    payload = {
        "cart_id": str(cart_id),
        "channel_id": "web",
        "total_amount": sum(item["final_price"] for item in items),
        "currency": "KRW",
        "items": items,
        "deliveries": deliveries
        if deliveries is not None
        else [
            {
                "recipient_name": "Kim Test",
                "recipient_phone": "010-0000-0000",
                "address_snapshot": {"city": "Seoul", "line1": "1 Test-ro"},
            }
        ],
        "payments": payments or [],
    }
    payload.update(overrides)
    return payload


async def place_order(db, buyer, lines, **payload_overrides):
    """Create a cart and an order for ``buyer`` through the order operations."""
    from services.orders_service.schemas import OrderCreate
    from services.orders_service.services import order_ops

    cart = CartFactory.create(buyer_id=buyer.user_id)
    db.add(cart)
    await db.commit()

    body = OrderCreate(**order_payload(cart.id, lines, **payload_overrides))
    return await order_ops.create_order(db, buyer, body)


async def first_order_item(db, order_id):
    """Fetch an order's first item with an explicit query.

    Locked reloads of an order expire its ``items`` collection, so tests read
    items through the session instead of the relationship.
    """
    from sqlalchemy import select

    from services.orders_service.models import OrderItem

    result = await db.execute(
        select(OrderItem)
        .where(OrderItem.order_id == order_id)
        .order_by(OrderItem.created_at)
    )
    return result.scalars().first()
