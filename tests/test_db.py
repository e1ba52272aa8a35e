import pytest
from sqlalchemy import inspect, text


@pytest.mark.asyncio
async def test_db_connection(db_session):
    """
    Test that we can connect to the DB and execute a query.
    """
    result = await db_session.execute(text("SELECT 1"))
    assert result.scalar() == 1


@pytest.mark.asyncio
async def test_all_service_tables_created(test_engine):
    async with test_engine.connect() as conn:
        tables = await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names())

    for name in (
        "catalog_products",
        "catalog_tags",
        "catalog_tag_moderations",
        "catalog_product_tags",
        "ledger_accounts",
        "ledger_transactions",
        "commerce_carts",
        "commerce_orders",
        "commerce_shipments",
        "commerce_deliveries",
        "commerce_cancellations",
    ):
        assert name in tables
