"""Order amendments - amendments, versions, shipments and event outbox

Revision ID: 002
Revises: 001
Create Date: 2026-10-19

"""
from typing import Sequence, Union

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects.postgresql import ENUM, JSONB, UUID

# revision identifiers, used by Alembic.
revision: str = "002"
down_revision: Union[str, None] = "001"
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None

# --- Enum types ---
amendment_type_enum = ENUM(
    "ADD", "REMOVE", "MODIFY", "MIXED", name="amendmenttype", create_type=False
)
amendment_status_enum = ENUM(
    "DRAFT", "PENDING_APPROVAL", "APPROVED", "REJECTED", "APPLIED",
    name="amendmentstatus", create_type=False,
)
change_type_enum = ENUM("ADD", "REMOVE", "MODIFY", name="changetype", create_type=False)
price_source_enum = ENUM(
    "OVERRIDE", "PRICE_LOCK", "QUOTE_REQUESTED", "CATALOG", "ORDER",
    name="pricesource", create_type=False,
)
shipment_status_enum = ENUM(
    "SHIPPED", "IN_TRANSIT", "OUT_FOR_DELIVERY", "DELIVERED",
    name="shipmentstatus", create_type=False,
)
event_status_enum = ENUM(
    "PENDING", "DISPATCHED", name="eventstatus", create_type=False
)

ALL_ENUMS = (
    amendment_type_enum,
    amendment_status_enum,
    change_type_enum,
    price_source_enum,
    shipment_status_enum,
    event_status_enum,
)


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), server_default=sa.text("now()"), nullable=False),
    ]


def upgrade() -> None:
    for enum_type in ALL_ENUMS:
        enum_type.create(op.get_bind(), checkfirst=True)

    # 1. order_amendments
    op.create_table(
        "order_amendments",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("amendment_number", sa.String(50), unique=True, nullable=False),
        sa.Column("amendment_type", amendment_type_enum, nullable=False),
        sa.Column("status", amendment_status_enum, server_default="DRAFT", nullable=False),
        sa.Column("reason", sa.Text, nullable=True),
        sa.Column("previous_total_cents", sa.Integer, nullable=False),
        sa.Column("new_total_cents", sa.Integer, nullable=False),
        sa.Column("difference_cents", sa.Integer, nullable=False),
        sa.Column("use_quote_prices", sa.Boolean, server_default="false", nullable=False),
        sa.Column("requires_approval", sa.Boolean, server_default="false", nullable=False),
        sa.Column("requested_by", UUID(as_uuid=True), nullable=True),
        sa.Column("approved_by", UUID(as_uuid=True), nullable=True),
        sa.Column("approved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("approval_notes", sa.Text, nullable=True),
        sa.Column("rejected_by", UUID(as_uuid=True), nullable=True),
        sa.Column("rejected_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text, nullable=True),
        sa.Column("applied_by", UUID(as_uuid=True), nullable=True),
        sa.Column("applied_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_order_amendments_order_id", "order_amendments", ["order_id"])
    op.create_index("ix_order_amendments_status", "order_amendments", ["status"])

    # 2. order_amendment_items
    op.create_table(
        "order_amendment_items",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("amendment_id", UUID(as_uuid=True), sa.ForeignKey("order_amendments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("position", sa.Integer, server_default="0", nullable=False),
        sa.Column("change_type", change_type_enum, nullable=False),
        sa.Column("product_id", UUID(as_uuid=True), sa.ForeignKey("products.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("order_item_id", UUID(as_uuid=True), sa.ForeignKey("order_items.id", ondelete="SET NULL"), nullable=True),
        sa.Column("product_name", sa.String(500), nullable=True),
        sa.Column("product_sku", sa.String(100), nullable=True),
        sa.Column("previous_quantity", sa.Integer, nullable=True),
        sa.Column("new_quantity", sa.Integer, nullable=True),
        sa.Column("previous_price_cents", sa.Integer, nullable=True),
        sa.Column("new_price_cents", sa.Integer, nullable=True),
        sa.Column("line_total_change_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("price_source", price_source_enum, nullable=True),
        sa.Column("quote_price_cents", sa.Integer, nullable=True),
        sa.Column("catalog_price_cents", sa.Integer, nullable=True),
        sa.Column("has_price_change", sa.Boolean, server_default="false", nullable=False),
        *_timestamps(),
    )
    op.create_index("ix_order_amendment_items_amendment_id", "order_amendment_items", ["amendment_id"])

    # 3. order_versions
    op.create_table(
        "order_versions",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("version_number", sa.Integer, nullable=False),
        sa.Column("amendment_id", UUID(as_uuid=True), sa.ForeignKey("order_amendments.id", ondelete="SET NULL"), nullable=True),
        sa.Column("subtotal_cents", sa.Integer, nullable=False),
        sa.Column("tax_cents", sa.Integer, server_default="0", nullable=False),
        sa.Column("total_cents", sa.Integer, nullable=False),
        sa.Column("items_snapshot", JSONB, server_default="[]", nullable=False),
        sa.Column("change_summary", sa.Text, nullable=True),
        sa.Column("order_status", sa.String(30), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        *_timestamps(),
        sa.UniqueConstraint("order_id", "version_number", name="uq_order_versions_order_version"),
    )
    op.create_index("ix_order_versions_order_id", "order_versions", ["order_id"])

    # 4. order_shipments
    op.create_table(
        "order_shipments",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("order_id", UUID(as_uuid=True), sa.ForeignKey("orders.id", ondelete="CASCADE"), nullable=False),
        sa.Column("shipment_number", sa.String(50), unique=True, nullable=False),
        sa.Column("status", shipment_status_enum, server_default="SHIPPED", nullable=False),
        sa.Column("carrier", sa.String(100), nullable=True),
        sa.Column("tracking_number", sa.String(100), nullable=True),
        sa.Column("tracking_url", sa.String(500), nullable=True),
        sa.Column("shipping_cost_cents", sa.Integer, nullable=True),
        sa.Column("estimated_delivery", sa.DateTime(timezone=True), nullable=True),
        sa.Column("notes", sa.Text, nullable=True),
        sa.Column("shipped_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("delivered_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", UUID(as_uuid=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_order_shipments_order_id", "order_shipments", ["order_id"])
    op.create_index("ix_order_shipments_status", "order_shipments", ["status"])

    # 5. order_shipment_items
    op.create_table(
        "order_shipment_items",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("shipment_id", UUID(as_uuid=True), sa.ForeignKey("order_shipments.id", ondelete="CASCADE"), nullable=False),
        sa.Column("order_item_id", UUID(as_uuid=True), sa.ForeignKey("order_items.id", ondelete="CASCADE"), nullable=False),
        sa.Column("quantity", sa.Integer, nullable=False),
        sa.Column("serial_numbers", JSONB, nullable=True),
        *_timestamps(),
        sa.CheckConstraint("quantity > 0", name="ck_order_shipment_items_quantity_positive"),
    )
    op.create_index("ix_order_shipment_items_shipment_id", "order_shipment_items", ["shipment_id"])
    op.create_index("ix_order_shipment_items_order_item_id", "order_shipment_items", ["order_item_id"])

    # 6. event_outbox
    op.create_table(
        "event_outbox",
        sa.Column("id", UUID(as_uuid=True), server_default=sa.text("gen_random_uuid()"), primary_key=True),
        sa.Column("event_type", sa.String(255), nullable=False),
        sa.Column("aggregate_type", sa.String(255), nullable=False),
        sa.Column("aggregate_id", sa.String(255), nullable=False),
        sa.Column("payload", JSONB, server_default="{}", nullable=False),
        sa.Column("status", event_status_enum, server_default="PENDING", nullable=False),
        sa.Column("dispatched_at", sa.DateTime(timezone=True), nullable=True),
        *_timestamps(),
    )
    op.create_index("ix_event_outbox_status", "event_outbox", ["status"])
    op.create_index("ix_event_outbox_aggregate", "event_outbox", ["aggregate_type", "aggregate_id"])


def downgrade() -> None:
    op.drop_table("event_outbox")
    op.drop_table("order_shipment_items")
    op.drop_table("order_shipments")
    op.drop_table("order_versions")
    op.drop_table("order_amendment_items")
    op.drop_table("order_amendments")
    for enum_type in reversed(ALL_ENUMS):
        enum_type.drop(op.get_bind(), checkfirst=True)
