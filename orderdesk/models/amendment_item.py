"""OrderAmendmentItem model — one product-level change within an amendment."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.models.enums import ChangeType, PriceSource

if TYPE_CHECKING:
    from orderdesk.models.amendment import OrderAmendment


class OrderAmendmentItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_amendment_items"

    amendment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("order_amendments.id", ondelete="CASCADE"),
        nullable=False,
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    change_type: Mapped[ChangeType] = mapped_column(nullable=False)
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="RESTRICT"),
        nullable=False,
    )
    order_item_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("order_items.id", ondelete="SET NULL"),
    )
    product_name: Mapped[str | None] = mapped_column(String(500))
    product_sku: Mapped[str | None] = mapped_column(String(100))

    previous_quantity: Mapped[int | None] = mapped_column(Integer)
    new_quantity: Mapped[int | None] = mapped_column(Integer)
    previous_price_cents: Mapped[int | None] = mapped_column(Integer)
    new_price_cents: Mapped[int | None] = mapped_column(Integer)
    line_total_change_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    price_source: Mapped[PriceSource | None] = mapped_column()
    quote_price_cents: Mapped[int | None] = mapped_column(Integer)
    catalog_price_cents: Mapped[int | None] = mapped_column(Integer)
    has_price_change: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    # Relationships
    amendment: Mapped[OrderAmendment] = relationship(
        "OrderAmendment", back_populates="items", lazy="noload"
    )

    __table_args__ = (
        Index("ix_order_amendment_items_amendment_id", "amendment_id"),
    )
