"""OrderItem model — a line on an order plus its fulfillment counters."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.models.enums import FulfillmentStatus

if TYPE_CHECKING:
    from orderdesk.models.order import Order


class OrderItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_items"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    product_name: Mapped[str] = mapped_column(String(500), nullable=False)
    product_sku: Mapped[str | None] = mapped_column(String(100))
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    price_at_order_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    line_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)

    # Fulfillment counters; fulfillment_status is derived from these
    quantity_fulfilled: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    quantity_backordered: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    quantity_cancelled: Mapped[int] = mapped_column(
        Integer, nullable=False, default=0, server_default="0"
    )
    fulfillment_status: Mapped[FulfillmentStatus] = mapped_column(
        nullable=False, default=FulfillmentStatus.PENDING, server_default="PENDING"
    )
    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    order: Mapped[Order] = relationship("Order", back_populates="items", lazy="noload")

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_items_quantity_positive"),
        CheckConstraint("price_at_order_cents >= 0", name="ck_order_items_price_non_negative"),
        CheckConstraint(
            "quantity_fulfilled >= 0 AND quantity_backordered >= 0 AND quantity_cancelled >= 0",
            name="ck_order_items_counters_non_negative",
        ),
        CheckConstraint(
            "quantity_fulfilled + quantity_backordered + quantity_cancelled <= quantity",
            name="ck_order_items_counters_within_quantity",
        ),
        Index("ix_order_items_order_id", "order_id"),
        Index("ix_order_items_product_id", "product_id"),
    )
