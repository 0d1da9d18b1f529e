"""QuoteLineItem model — a priced product line on a quote."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Uuid, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from orderdesk.models.quote import Quote


class QuoteLineItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "quote_line_items"

    quote_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="CASCADE"),
        nullable=False,
    )
    product_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("products.id", ondelete="CASCADE"),
        nullable=False,
    )
    unit_price_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)

    # Relationships
    quote: Mapped[Quote] = relationship(
        "Quote", back_populates="line_items", lazy="noload"
    )

    __table_args__ = (
        UniqueConstraint("quote_id", "product_id", name="uq_quote_line_items_quote_product"),
        CheckConstraint("unit_price_cents >= 0", name="ck_quote_line_items_unit_price_non_negative"),
        CheckConstraint("quantity > 0", name="ck_quote_line_items_quantity_positive"),
        Index("ix_quote_line_items_quote_id", "quote_id"),
    )
