"""Integration tests for catalog_service endpoints."""

import pytest
from services.catalog_service.app.main import app
from tests.conftest import make_admin, make_buyer, make_seller, override_auth


async def _create_product(client, seller, **overrides):
    body = {"title": "Ceramic Bowl", "slug": "ceramic-bowl", "price": 9900}
    body.update(overrides)
    with override_auth(app, seller):
        response = await client.post("/catalog/products", json=body)
    assert response.status_code == 201, response.text
    return response.json()


async def _active_tag(client, name="handmade"):
    with override_auth(app, make_admin()):
        tag = (await client.post("/admin/catalog/tags", json={"name": name})).json()
        approved = await client.post(
            f"/admin/catalog/tags/{tag['id']}/moderation",
            json={"action": "approve", "reason": "Fits the catalog"},
        )
    assert approved.status_code == 201, approved.text
    return tag


# ---------------------------------------------------------------------------
# Products
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_product_search_is_seller_scoped(catalog_client, db_session):
    """A seller's search never returns another seller's listing."""
    seller_a = make_seller()
    seller_b = make_seller()
    product = await _create_product(
        catalog_client, seller_a, title="Scenario Mug", slug="s-x"
    )

    with override_auth(app, seller_b):
        theirs = await catalog_client.get(
            "/catalog/products", params={"search": "Scenario Mug"}
        )
    with override_auth(app, seller_a):
        mine = await catalog_client.get(
            "/catalog/products", params={"search": "Scenario Mug"}
        )

    assert theirs.json()["items"] == []
    assert [p["id"] for p in mine.json()["items"]] == [product["id"]]


@pytest.mark.asyncio
@pytest.mark.integration
async def test_invalid_slug_is_rejected(catalog_client, db_session):
    with override_auth(app, make_seller()):
        response = await catalog_client.post(
            "/catalog/products",
            json={"title": "Bad", "slug": "Not A Slug", "price": 100},
        )

    assert response.status_code == 422


@pytest.mark.asyncio
@pytest.mark.integration
async def test_other_seller_cannot_update_product(catalog_client, db_session):
    product = await _create_product(catalog_client, make_seller())

    with override_auth(app, make_seller()):
        response = await catalog_client.put(
            f"/catalog/products/{product['id']}", json={"price": 1}
        )

    assert response.status_code == 404


# ---------------------------------------------------------------------------
# Tags and moderation
# ---------------------------------------------------------------------------


@pytest.mark.asyncio
@pytest.mark.integration
async def test_moderation_log_records_each_decision(catalog_client, db_session):
    tag = await _active_tag(catalog_client)

    with override_auth(app, make_admin()):
        log = await catalog_client.get(f"/admin/catalog/tags/{tag['id']}/moderation")

    entries = log.json()["items"]
    assert len(entries) == 1
    assert entries[0]["action"] == "approve"
    assert entries[0]["tag_id"] == tag["id"]

    with override_auth(app, make_buyer()):
        public = await catalog_client.get(f"/catalog/tags/{tag['id']}")
    assert public.json()["status"] == "active"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tag_status_cannot_bypass_moderation(catalog_client, db_session):
    with override_auth(app, make_admin()):
        tag = (await catalog_client.post("/admin/catalog/tags", json={"name": "bio"})).json()
        response = await catalog_client.put(
            f"/admin/catalog/tags/{tag['id']}", json={"status": "active"}
        )
        log = await catalog_client.get(f"/admin/catalog/tags/{tag['id']}/moderation")
        current = await catalog_client.get(f"/catalog/tags/{tag['id']}")

    assert response.status_code == 422
    assert log.json()["total"] == 0
    assert current.json()["status"] == "under_review"


@pytest.mark.asyncio
@pytest.mark.integration
async def test_tag_admin_routes_reject_sellers(catalog_client, db_session):
    with override_auth(app, make_seller()):
        response = await catalog_client.post("/admin/catalog/tags", json={"name": "x"})

    assert response.status_code == 403


@pytest.mark.asyncio
@pytest.mark.integration
async def test_delete_product_tag_twice(catalog_client, db_session):
    seller = make_seller()
    product = await _create_product(catalog_client, seller)
    tag = await _active_tag(catalog_client)

    with override_auth(app, seller):
        binding = await catalog_client.post(
            f"/catalog/products/{product['id']}/tags", json={"tag_id": tag["id"]}
        )
        assert binding.status_code == 201, binding.text
        url = f"/catalog/products/{product['id']}/tags/{binding.json()['id']}"

        first = await catalog_client.delete(url)
        second = await catalog_client.delete(url)
        remaining = await catalog_client.get(f"/catalog/products/{product['id']}/tags")

    assert first.status_code == 204
    assert second.status_code == 410
    assert remaining.json() == []
