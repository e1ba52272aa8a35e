"""Unit tests for catalog product and tag operations."""

import pytest
from pydantic import ValidationError
from libs.common.errors import (
    AlreadyDeleted,
    AuthorizationDenied,
    NotFound,
    ValidationFailed,
)
from services.catalog_service.models import ModerationAction, ProductStatus, TagStatus
from services.catalog_service.schemas import ProductCreate, TagCreate, TagUpdate
from services.catalog_service.services import product_ops, tag_ops
from tests.conftest import make_admin, make_buyer, make_seller
from tests.factories import ProductFactory, TagFactory


async def _product_with_tag(db, seller):
    product = ProductFactory.create(seller_id=seller.user_id)
    tag = TagFactory.create()
    db.add_all([product, tag])
    await db.commit()
    return product, tag


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_product_search_does_not_leak_across_sellers(db_session):
    seller_a = make_seller()
    seller_b = make_seller()
    product = await product_ops.create_product(
        db_session,
        seller_a,
        ProductCreate(title="Handmade Mug S-X", slug="s-x", price=15000),
    )

    others, other_total = await product_ops.search_products(
        db_session, seller_b, search="Handmade Mug S-X"
    )
    own, own_total = await product_ops.search_products(
        db_session, seller_a, search="Handmade Mug S-X"
    )

    assert other_total == 0 and others == []
    assert own_total == 1
    assert own[0].id == product.id
    with pytest.raises(NotFound):
        await product_ops.get_product(db_session, seller_b, product.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_only_sellers_list_products(db_session):
    with pytest.raises(AuthorizationDenied):
        await product_ops.create_product(
            db_session, make_buyer(), ProductCreate(title="X", slug="x", price=1)
        )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_slug_is_unique(db_session):
    seller = make_seller()
    body = ProductCreate(title="Cup", slug="cup", price=1000)
    await product_ops.create_product(db_session, seller, body)

    with pytest.raises(ValidationFailed):
        await product_ops.create_product(db_session, make_seller(), body)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_buyers_only_see_live_products(db_session):
    seller = make_seller()
    draft = ProductFactory.create(seller_id=seller.user_id, status=ProductStatus.DRAFT)
    live = ProductFactory.create(seller_id=seller.user_id)
    db_session.add_all([draft, live])
    await db_session.commit()

    items, total = await product_ops.search_products(db_session, make_buyer())

    assert total == 1
    assert items[0].id == live.id
    with pytest.raises(NotFound):
        await product_ops.get_product(db_session, make_buyer(), draft.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_erase_product_twice(db_session):
    seller = make_seller()
    product = ProductFactory.create(seller_id=seller.user_id)
    db_session.add(product)
    await db_session.commit()

    await product_ops.erase_product(db_session, seller, product.id)

    with pytest.raises(AlreadyDeleted):
        await product_ops.erase_product(db_session, seller, product.id)
    assert await product_ops.get_orderable_product(db_session, product.id) is None


# ---------------------------------------------------------------------------
# Tags and moderation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_new_tags_wait_for_moderation(db_session):
    admin = make_admin()
    tag = await tag_ops.create_tag(db_session, admin, TagCreate(name="eco"))

    assert tag.status == TagStatus.UNDER_REVIEW
    with pytest.raises(NotFound):
        await tag_ops.get_tag(db_session, make_buyer(), tag.id)
    with pytest.raises(AuthorizationDenied):
        await tag_ops.create_tag(db_session, make_seller(), TagCreate(name="other"))


@pytest.mark.asyncio
@pytest.mark.unit
async def test_approval_logs_exactly_one_entry(db_session):
    admin = make_admin()
    tag = await tag_ops.create_tag(db_session, admin, TagCreate(name="vegan"))

    entry = await tag_ops.moderate_tag(
        db_session, admin, tag.id, action=ModerationAction.APPROVE, reason="ok"
    )

    assert entry.tag_id == tag.id
    assert entry.moderated_by == admin.user_id
    entries, total = await tag_ops.list_moderations(db_session, admin, tag.id)
    assert total == 1
    assert entries[0].id == entry.id
    assert (await tag_ops.get_tag(db_session, make_buyer(), tag.id)).status == (
        TagStatus.ACTIVE
    )


@pytest.mark.asyncio
@pytest.mark.unit
async def test_every_status_change_is_logged(db_session):
    admin = make_admin()
    tag = await tag_ops.create_tag(db_session, admin, TagCreate(name="organic"))

    expected = [
        (ModerationAction.APPROVE, TagStatus.ACTIVE),
        (ModerationAction.FLAG, TagStatus.UNDER_REVIEW),
        (ModerationAction.SUSPEND, TagStatus.SUSPENDED),
    ]
    for count, (action, status) in enumerate(expected, start=1):
        await tag_ops.moderate_tag(db_session, admin, tag.id, action=action)
        _, total = await tag_ops.list_moderations(db_session, admin, tag.id)
        assert total == count
        assert (await tag_ops.get_tag(db_session, admin, tag.id)).status == status

    renamed = await tag_ops.update_tag(
        db_session, admin, tag.id, TagUpdate(name="organic-certified")
    )
    assert renamed.status == TagStatus.SUSPENDED
    _, total = await tag_ops.list_moderations(db_session, admin, tag.id)
    assert total == 3

    with pytest.raises(ValidationError):
        TagUpdate(status="active")


@pytest.mark.asyncio
@pytest.mark.unit
async def test_moderation_amend_keeps_action(db_session):
    admin = make_admin()
    tag = await tag_ops.create_tag(db_session, admin, TagCreate(name="local"))
    entry = await tag_ops.moderate_tag(
        db_session, admin, tag.id, action=ModerationAction.FLAG
    )

    amended = await tag_ops.update_moderation(
        db_session, admin, tag.id, entry.id, reason="Needs a clearer name"
    )

    assert amended.action == ModerationAction.FLAG
    assert amended.reason == "Needs a clearer name"

    await tag_ops.erase_moderation(db_session, admin, tag.id, entry.id)
    with pytest.raises(AlreadyDeleted):
        await tag_ops.erase_moderation(db_session, admin, tag.id, entry.id)


@pytest.mark.asyncio
@pytest.mark.unit
async def test_tag_names_are_unique(db_session):
    admin = make_admin()
    await tag_ops.create_tag(db_session, admin, TagCreate(name="sale"))

    with pytest.raises(ValidationFailed):
        await tag_ops.create_tag(db_session, admin, TagCreate(name="sale"))


# ---------------------------------------------------------------------------
# Product tags
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.unit
async def test_erase_product_tag_twice(db_session):
    seller = make_seller()
    product, tag = await _product_with_tag(db_session, seller)
    binding = await tag_ops.attach_tag(db_session, seller, product.id, tag.id)

    await tag_ops.erase_product_tag(db_session, seller, product.id, binding.id)

    with pytest.raises(AlreadyDeleted):
        await tag_ops.erase_product_tag(db_session, seller, product.id, binding.id)
    assert await tag_ops.list_product_tags(db_session, seller, product.id) == []


@pytest.mark.asyncio
@pytest.mark.unit
async def test_attach_requires_owner_and_active_tag(db_session):
    seller = make_seller()
    product, tag = await _product_with_tag(db_session, seller)
    pending = TagFactory.create(status=TagStatus.UNDER_REVIEW)
    db_session.add(pending)
    await db_session.commit()

    with pytest.raises(NotFound):
        await tag_ops.attach_tag(db_session, make_seller(), product.id, tag.id)
    with pytest.raises(ValidationFailed):
        await tag_ops.attach_tag(db_session, seller, product.id, pending.id)

    await tag_ops.attach_tag(db_session, seller, product.id, tag.id)
    with pytest.raises(ValidationFailed):
        await tag_ops.attach_tag(db_session, seller, product.id, tag.id)
