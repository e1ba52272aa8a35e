"""create_commerce_tables

Revision ID: c0a1f3e9d201
Revises:
Create Date: 2026-10-18 09:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision: str = "c0a1f3e9d201"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


# Enum types are shared across tables, so they are created once up front
ENUMS = {
    "record_state_enum": ("active", "deleted"),
    "catalog_product_status_enum": ("draft", "active", "suspended"),
    "catalog_tag_status_enum": ("under_review", "active", "suspended"),
    "catalog_moderation_action_enum": ("approve", "reject", "flag", "suspend"),
    "ledger_account_kind_enum": ("mileage", "deposit"),
    "ledger_account_status_enum": ("active", "frozen", "closed"),
    "ledger_transaction_type_enum": ("accrual", "redemption", "adjustment", "expiration"),
    "ledger_transaction_direction_enum": ("credit", "debit"),
    "ledger_business_status_enum": ("applied", "pending", "reversed"),
    "commerce_cart_status_enum": ("active", "converted", "abandoned"),
    "commerce_order_status_enum": (
        "created",
        "paid",
        "in_fulfillment",
        "shipping",
        "delivered",
        "completed",
        "cancelled",
    ),
    "commerce_order_item_status_enum": ("ordered", "fulfilled", "cancelled"),
    "commerce_payment_type_enum": ("card", "bank_transfer", "mileage", "deposit"),
    "commerce_payment_status_enum": ("pending", "confirmed", "cancelled", "refunded"),
    "commerce_shipment_status_enum": ("pending", "shipped", "delivered"),
    "commerce_delivery_status_enum": ("prepared", "dispatched", "delivered"),
    "commerce_cancellation_status_enum": ("requested", "approved", "rejected"),
}


def _enum(name: str) -> postgresql.ENUM:
    return postgresql.ENUM(*ENUMS[name], name=name, create_type=False)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
    ]


def _soft_delete() -> list[sa.Column]:
    return [
        sa.Column("record_state", _enum("record_state_enum"), nullable=False),
        sa.Column("deleted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("deleted_by", sa.String(length=255), nullable=True),
    ]


def upgrade() -> None:
    """Upgrade schema - Create catalog, ledger and order tables."""
    bind = op.get_bind()
    for name, values in ENUMS.items():
        postgresql.ENUM(*values, name=name).create(bind, checkfirst=True)

    # Catalog
    op.create_table(
        "catalog_products",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("slug", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("price", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", _enum("catalog_product_status_enum"), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.CheckConstraint(
            "price >= 0", name="ck_catalog_products_price_non_negative"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_products"),
        sa.UniqueConstraint("slug", name="uq_catalog_products_slug"),
    )
    op.create_index("ix_catalog_products_seller_id", "catalog_products", ["seller_id"])

    op.create_table(
        "catalog_tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", _enum("catalog_tag_status_enum"), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_tags"),
        sa.UniqueConstraint("name", name="uq_catalog_tags_name"),
    )

    op.create_table(
        "catalog_tag_moderations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.Column("moderated_by", sa.String(length=255), nullable=False),
        sa.Column("action", _enum("catalog_moderation_action_enum"), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["catalog_tags.id"],
            name="fk_catalog_tag_moderations_tag_id_catalog_tags",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_tag_moderations"),
    )
    op.create_index(
        "ix_catalog_tag_moderations_tag_id", "catalog_tag_moderations", ["tag_id"]
    )

    op.create_table(
        "catalog_product_tags",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("tag_id", sa.Uuid(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.ForeignKeyConstraint(
            ["product_id"],
            ["catalog_products.id"],
            name="fk_catalog_product_tags_product_id_catalog_products",
        ),
        sa.ForeignKeyConstraint(
            ["tag_id"],
            ["catalog_tags.id"],
            name="fk_catalog_product_tags_tag_id_catalog_tags",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_catalog_product_tags"),
    )
    op.create_index(
        "ix_catalog_product_tags_product_tag",
        "catalog_product_tags",
        ["product_id", "tag_id"],
    )

    # Ledger
    op.create_table(
        "ledger_accounts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("owner_id", sa.String(length=255), nullable=False),
        sa.Column("kind", _enum("ledger_account_kind_enum"), nullable=False),
        sa.Column("code", sa.String(length=64), nullable=False),
        sa.Column("balance", sa.Integer(), nullable=False),
        sa.Column("status", _enum("ledger_account_status_enum"), nullable=False),
        sa.Column("expired_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.CheckConstraint(
            "balance >= 0", name="ck_ledger_accounts_balance_non_negative"
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ledger_accounts"),
        sa.UniqueConstraint("code", name="uq_ledger_accounts_code"),
    )
    op.create_index("ix_ledger_accounts_owner_id", "ledger_accounts", ["owner_id"])

    op.create_table(
        "ledger_transactions",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("account_id", sa.Uuid(), nullable=False),
        sa.Column("type", _enum("ledger_transaction_type_enum"), nullable=False),
        sa.Column(
            "direction", _enum("ledger_transaction_direction_enum"), nullable=False
        ),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("balance_before", sa.Integer(), nullable=False),
        sa.Column("balance_after", sa.Integer(), nullable=False),
        sa.Column(
            "business_status", _enum("ledger_business_status_enum"), nullable=False
        ),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("evidence_reference", sa.String(length=255), nullable=False),
        sa.Column("reference_type", sa.String(length=50), nullable=True),
        sa.Column("reference_id", sa.String(length=255), nullable=True),
        sa.Column("initiated_by", sa.String(length=255), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.CheckConstraint(
            "amount >= 0", name="ck_ledger_transactions_amount_non_negative"
        ),
        sa.CheckConstraint(
            "balance_after >= 0",
            name="ck_ledger_transactions_balance_after_non_negative",
        ),
        sa.CheckConstraint(
            "evidence_reference <> ''",
            name="ck_ledger_transactions_evidence_required",
        ),
        sa.ForeignKeyConstraint(
            ["account_id"],
            ["ledger_accounts.id"],
            name="fk_ledger_transactions_account_id_ledger_accounts",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_ledger_transactions"),
    )
    op.create_index(
        "ix_ledger_transactions_account_id", "ledger_transactions", ["account_id"]
    )
    op.create_index(
        "ix_ledger_transactions_account_created",
        "ledger_transactions",
        ["account_id", "created_at"],
    )

    # Carts and orders
    op.create_table(
        "commerce_carts",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.String(length=255), nullable=False),
        sa.Column("channel_id", sa.String(length=100), nullable=False),
        sa.Column("status", _enum("commerce_cart_status_enum"), nullable=False),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_carts"),
    )
    op.create_index("ix_commerce_carts_buyer_id", "commerce_carts", ["buyer_id"])
    op.create_index(
        "ix_commerce_carts_buyer_status", "commerce_carts", ["buyer_id", "status"]
    )

    op.create_table(
        "commerce_cart_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("cart_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.CheckConstraint(
            "quantity > 0", name="ck_commerce_cart_items_positive_quantity"
        ),
        sa.ForeignKeyConstraint(
            ["cart_id"],
            ["commerce_carts.id"],
            name="fk_commerce_cart_items_cart_id_commerce_carts",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_cart_items"),
    )
    op.create_index("ix_commerce_cart_items_cart_id", "commerce_cart_items", ["cart_id"])

    op.create_table(
        "commerce_orders",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_code", sa.String(length=50), nullable=False),
        sa.Column("buyer_id", sa.String(length=255), nullable=False),
        sa.Column("channel_id", sa.String(length=100), nullable=False),
        sa.Column("section_id", sa.String(length=100), nullable=True),
        sa.Column("cart_id", sa.Uuid(), nullable=False),
        sa.Column("external_order_ref", sa.String(length=255), nullable=True),
        sa.Column("total_amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("status", _enum("commerce_order_status_enum"), nullable=False),
        sa.Column("ordered_at", sa.DateTime(timezone=True), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "total_amount >= 0", name="ck_commerce_orders_total_non_negative"
        ),
        sa.ForeignKeyConstraint(
            ["cart_id"],
            ["commerce_carts.id"],
            name="fk_commerce_orders_cart_id_commerce_carts",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_orders"),
    )
    op.create_index(
        "ix_commerce_orders_order_code", "commerce_orders", ["order_code"], unique=True
    )
    op.create_index("ix_commerce_orders_buyer_id", "commerce_orders", ["buyer_id"])
    op.create_index(
        "ix_commerce_orders_buyer_status", "commerce_orders", ["buyer_id", "status"]
    )

    op.create_table(
        "commerce_order_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("product_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False),
        sa.Column("unit_price", sa.Integer(), nullable=False),
        sa.Column("final_price", sa.Integer(), nullable=False),
        sa.Column("status", _enum("commerce_order_item_status_enum"), nullable=False),
        *_timestamps(),
        sa.CheckConstraint(
            "quantity > 0", name="ck_commerce_order_items_positive_quantity"
        ),
        sa.CheckConstraint(
            "final_price >= 0",
            name="ck_commerce_order_items_final_price_non_negative",
        ),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_order_items_order_id_commerce_orders",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_order_items"),
    )
    op.create_index(
        "ix_commerce_order_items_order_id", "commerce_order_items", ["order_id"]
    )
    op.create_index(
        "ix_commerce_order_items_seller_id", "commerce_order_items", ["seller_id"]
    )

    op.create_table(
        "commerce_payments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("buyer_id", sa.String(length=255), nullable=False),
        sa.Column("payment_type", _enum("commerce_payment_type_enum"), nullable=False),
        sa.Column("ledger_account_id", sa.Uuid(), nullable=True),
        sa.Column("ledger_transaction_id", sa.Uuid(), nullable=True),
        sa.Column("external_payment_ref", sa.String(length=255), nullable=True),
        sa.Column("status", _enum("commerce_payment_status_enum"), nullable=False),
        sa.Column("amount", sa.Integer(), nullable=False),
        sa.Column("currency", sa.String(length=3), nullable=False),
        sa.Column("requested_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount > 0", name="ck_commerce_payments_positive_amount"),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_payments_order_id_commerce_orders",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_payments"),
    )
    op.create_index("ix_commerce_payments_order_id", "commerce_payments", ["order_id"])

    op.create_table(
        "commerce_order_status_history",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("from_status", _enum("commerce_order_status_enum"), nullable=True),
        sa.Column("to_status", _enum("commerce_order_status_enum"), nullable=False),
        sa.Column("changed_by", sa.String(length=255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_order_status_history_order_id_commerce_orders",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_order_status_history"),
    )
    op.create_index(
        "ix_commerce_order_status_history_order_id",
        "commerce_order_status_history",
        ["order_id"],
    )

    # Fulfillment
    op.create_table(
        "commerce_shipments",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("seller_id", sa.String(length=255), nullable=False),
        sa.Column("shipment_code", sa.String(length=80), nullable=False),
        sa.Column("carrier", sa.String(length=100), nullable=True),
        sa.Column("external_tracking_number", sa.String(length=255), nullable=True),
        sa.Column("status", _enum("commerce_shipment_status_enum"), nullable=False),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", sa.String(length=255), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_shipments_order_id_commerce_orders",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_shipments"),
        sa.UniqueConstraint(
            "order_id", "shipment_code", name="unique_order_shipment_code"
        ),
    )
    op.create_index("ix_commerce_shipments_order_id", "commerce_shipments", ["order_id"])
    op.create_index(
        "ix_commerce_shipments_seller_id", "commerce_shipments", ["seller_id"]
    )

    op.create_table(
        "commerce_shipment_items",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("shipment_id", sa.Uuid(), nullable=False),
        sa.Column("order_item_id", sa.Uuid(), nullable=False),
        sa.Column("shipped_quantity", sa.Integer(), nullable=False),
        *_timestamps(),
        *_soft_delete(),
        sa.CheckConstraint(
            "shipped_quantity > 0",
            name="ck_commerce_shipment_items_positive_shipped_quantity",
        ),
        sa.ForeignKeyConstraint(
            ["shipment_id"],
            ["commerce_shipments.id"],
            name="fk_commerce_shipment_items_shipment_id_commerce_shipments",
        ),
        sa.ForeignKeyConstraint(
            ["order_item_id"],
            ["commerce_order_items.id"],
            name="fk_commerce_shipment_items_order_item_id_commerce_order_items",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_shipment_items"),
    )
    op.create_index(
        "ix_commerce_shipment_items_shipment_id",
        "commerce_shipment_items",
        ["shipment_id"],
    )
    op.create_index(
        "ix_commerce_shipment_items_order_item_id",
        "commerce_shipment_items",
        ["order_item_id"],
    )

    op.create_table(
        "commerce_deliveries",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("shipment_id", sa.Uuid(), nullable=True),
        sa.Column("recipient_name", sa.String(length=100), nullable=False),
        sa.Column("recipient_phone", sa.String(length=50), nullable=False),
        sa.Column("address_snapshot", sa.JSON(), nullable=False),
        sa.Column("delivery_message", sa.Text(), nullable=True),
        sa.Column(
            "delivery_status", _enum("commerce_delivery_status_enum"), nullable=False
        ),
        sa.Column("delivery_attempts", sa.Integer(), nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("confirmed_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_deliveries_order_id_commerce_orders",
        ),
        sa.ForeignKeyConstraint(
            ["shipment_id"],
            ["commerce_shipments.id"],
            name="fk_commerce_deliveries_shipment_id_commerce_shipments",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_deliveries"),
    )
    op.create_index(
        "ix_commerce_deliveries_order_id", "commerce_deliveries", ["order_id"]
    )

    op.create_table(
        "commerce_cancellations",
        sa.Column("id", sa.Uuid(), nullable=False),
        sa.Column("order_id", sa.Uuid(), nullable=False),
        sa.Column("cancellation_code", sa.String(length=50), nullable=False),
        sa.Column("requested_by", sa.String(length=255), nullable=False),
        sa.Column("reason", sa.Text(), nullable=False),
        sa.Column("status", _enum("commerce_cancellation_status_enum"), nullable=False),
        sa.Column("resolved_by", sa.String(length=255), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        *_soft_delete(),
        sa.ForeignKeyConstraint(
            ["order_id"],
            ["commerce_orders.id"],
            name="fk_commerce_cancellations_order_id_commerce_orders",
        ),
        sa.PrimaryKeyConstraint("id", name="pk_commerce_cancellations"),
        sa.UniqueConstraint(
            "cancellation_code", name="uq_commerce_cancellations_cancellation_code"
        ),
    )
    op.create_index(
        "ix_commerce_cancellations_order_id", "commerce_cancellations", ["order_id"]
    )

    # Soft-delete filters
    for table in (
        "catalog_products",
        "catalog_tags",
        "catalog_tag_moderations",
        "catalog_product_tags",
        "ledger_accounts",
        "ledger_transactions",
        "commerce_cart_items",
        "commerce_shipments",
        "commerce_shipment_items",
        "commerce_deliveries",
        "commerce_cancellations",
    ):
        op.create_index(f"ix_{table}_record_state", table, ["record_state"])


def downgrade() -> None:
    """Downgrade schema - Drop catalog, ledger and order tables."""
    for table in (
        "commerce_cancellations",
        "commerce_deliveries",
        "commerce_shipment_items",
        "commerce_shipments",
        "commerce_order_status_history",
        "commerce_payments",
        "commerce_order_items",
        "commerce_orders",
        "commerce_cart_items",
        "commerce_carts",
        "ledger_transactions",
        "ledger_accounts",
        "catalog_product_tags",
        "catalog_tag_moderations",
        "catalog_tags",
        "catalog_products",
    ):
        op.drop_table(table)

    bind = op.get_bind()
    for name in reversed(list(ENUMS)):
        postgresql.ENUM(name=name).drop(bind, checkfirst=True)
