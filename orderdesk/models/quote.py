"""Quote model — the accepted quote an order's initial prices came from."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from orderdesk.models.quote_line_item import QuoteLineItem


class Quote(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "quotes"

    quote_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    valid_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    line_items: Mapped[list[QuoteLineItem]] = relationship(
        "QuoteLineItem", back_populates="quote", lazy="noload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_quotes_quote_number", "quote_number"),
    )
