"""Order core - products, quotes, orders and order items

Revision ID: 001
Revises:
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, UUID

# revision identifiers, used by Alembic.
revision: str = "001"
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
order_status_enum = ENUM(
    "CONFIRMED", "PROCESSING", "PARTIALLY_FULFILLED", "FULFILLED", "COMPLETED", "CANCELLED",
    name="orderstatus", create_type=False,
)
fulfillment_status_enum = ENUM(
    "PENDING", "ALLOCATED", "SHIPPED", "BACKORDERED", "CANCELLED",
    name="fulfillmentstatus", create_type=False,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    op.execute('CREATE EXTENSION IF NOT EXISTS "pgcrypto";')
    order_status_enum.create(op.get_bind(), checkfirst=True)
    fulfillment_status_enum.create(op.get_bind(), checkfirst=True)

    # 1. products
    op.create_table(
        "products",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("sku", sa.String(100), unique=True, nullable=False),
        sa.Column("name", sa.String(500), nullable=False),
        sa.Column("price_cents", sa.Integer, nullable=False),
        sa.Column("is_active", sa.Boolean, server_default="true", nullable=False),
        *_timestamps(),
        sa.CheckConstraint("price_cents >= 0", name="ck_products_price_non_negative"),
    )
    op.create_index("ix_products_sku", "products", ["sku"])

    # 2. quotes
    op.create_table(
        "quotes",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("quote_number", sa.String(50), unique=True, nullable=False),
        sa.Column("total_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("valid_until", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_quotes_quote_number", "quotes", ["quote_number"])

    # 3. quote_line_items
    op.create_table(
        "quote_line_items",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("quote_id", UUID(as_uuid=True), sa.ForeignKey("quotes.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.id", ondelete="CASCADE"), nullable=False),
        sa.Column("unit_price_cents", sa.Integer, nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        *_timestamps(),
        sa.UniqueConstraint("quote_id", "product_id", name="uq_quote_line_items_quote_product"),
        sa.CheckConstraint("unit_price_cents >= 0", name="ck_quote_line_items_unit_price_non_negative"),
        sa.CheckConstraint("quantity > 0", name="ck_quote_line_items_quantity_positive"),
    )
    op.create_index("ix_quote_line_items_quote_id", "quote_line_items", ["quote_id"])

    # 4. orders
    op.create_table(
        "orders",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("order_number", sa.String(50), unique=True, nullable=False),
        sa.Column("status", order_status_enum, server_default="CONFIRMED", nullable=False),
        sa.Column("quote_id", UUID(as_uuid=True), sa.ForeignKey("quotes.id", ondelete="SET NULL"), nullable=True),
        sa.Column("customer_id", UUID(as_uuid=True), nullable=True),
        sa.Column("version_number", sa.Integer, server_default="1", nullable=False),
        sa.Column("price_locked", sa.Boolean, server_default="false", nullable=False),
        sa.Column("price_lock_until", sa.DateTime(timezone=True), nullable=True),
        sa.Column("quote_prices_honored", sa.Boolean, server_default="false", nullable=False),
        sa.Column("subtotal_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("discount_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("tax_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("currency", sa.String(3), server_default="CAD", nullable=False),
        sa.Column("tax_jurisdiction", sa.String(10), nullable=True),
        sa.Column("last_modified_by", UUID(as_uuid=True), nullable=True),
        sa.Column("last_modified_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_orders_status", "orders", ["status"])
    op.create_index("ix_orders_quote_id", "orders", ["quote_id"])

    # 5. order_items
    op.create_table(
        "order_items",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("product_name", sa.String(500), nullable=False),
        sa.Column("product_sku", sa.String(100), nullable=True),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("price_at_order_cents", sa.Integer, nullable=False),
        sa.Column("line_total_cents", sa.Integer, nullable=False),
        sa.Column("quantity_fulfilled", sa.Integer, server_default="0", nullable=False),
        sa.Column("quantity_backordered", sa.Integer, server_default="0", nullable=False),
        sa.Column("quantity_cancelled", sa.Integer, server_default="0", nullable=False),
        sa.Column("fulfillment_status", fulfillment_status_enum, server_default="PENDING", nullable=False),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        sa.CheckConstraint("price_at_order_cents >= 0", name="ck_order_items_price_non_negative"),
        sa.CheckConstraint(
            "quantity_fulfilled >= 0 AND quantity_backordered >= 0 AND quantity_cancelled >= 0",
            name="ck_order_items_counters_non_negative",
        ),
        sa.CheckConstraint(
            "quantity_fulfilled + quantity_backordered + quantity_cancelled <= quantity",
            name="ck_order_items_counters_within_quantity",
        ),
    )
    op.create_index("ix_order_items_order_id", "order_items", ["order_id"])
    op.create_index("ix_order_items_product_id", "order_items", ["product_id"])


def downgrade() -> None:
    op.drop_table("order_items")
    op.drop_table("orders")
    op.drop_table("quote_line_items")
    op.drop_table("quotes")
    op.drop_table("products")
    fulfillment_status_enum.drop(op.get_bind(), checkfirst=True)
    order_status_enum.drop(op.get_bind(), checkfirst=True)
