"""Order model — a placed order, optionally derived from an accepted quote."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.models.enums import OrderStatus

if TYPE_CHECKING:
    from orderdesk.models.order_item import OrderItem
    from orderdesk.models.quote import Quote


class Order(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "orders"

    order_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    status: Mapped[OrderStatus] = mapped_column(
        nullable=False, default=OrderStatus.CONFIRMED, server_default="CONFIRMED"
    )
    # Where the initial prices came from; the order does not own the quote.
    quote_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("quotes.id", ondelete="SET NULL"),
    )
    customer_id: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Versioning / price lock
    version_number: Mapped[int] = mapped_column(
        Integer, nullable=False, default=1, server_default="1"
    )
    price_locked: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    price_lock_until: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    quote_prices_honored: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    # Totals (integer cents)
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    discount_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    currency: Mapped[str] = mapped_column(
        String(3), nullable=False, default="CAD", server_default="CAD"
    )
    tax_jurisdiction: Mapped[str | None] = mapped_column(String(10))

    last_modified_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    last_modified_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    quote: Mapped[Quote | None] = relationship("Quote", lazy="noload")
    items: Mapped[list[OrderItem]] = relationship(
        "OrderItem", back_populates="order", lazy="noload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_orders_status", "status"),
        Index("ix_orders_quote_id", "quote_id"),
    )

