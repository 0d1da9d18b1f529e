"""OrderAmendment model — a proposed change set against an order."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import Boolean, DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.models.enums import AmendmentStatus, AmendmentType

if TYPE_CHECKING:
    from orderdesk.models.amendment_item import OrderAmendmentItem
    from orderdesk.models.order import Order


class OrderAmendment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_amendments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    amendment_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    amendment_type: Mapped[AmendmentType] = mapped_column(nullable=False)
    status: Mapped[AmendmentStatus] = mapped_column(
        nullable=False, default=AmendmentStatus.DRAFT, server_default="DRAFT"
    )
    reason: Mapped[str | None] = mapped_column(Text)

    # Impact, fixed at creation time
    previous_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    new_total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    difference_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    use_quote_prices: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )
    requires_approval: Mapped[bool] = mapped_column(
        Boolean, nullable=False, default=False, server_default="false"
    )

    # Lifecycle actors
    requested_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    approved_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    approved_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    approval_notes: Mapped[str | None] = mapped_column(Text)
    rejected_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    rejected_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    rejection_reason: Mapped[str | None] = mapped_column(Text)
    applied_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)
    applied_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))

    # Relationships
    order: Mapped[Order] = relationship("Order", lazy="noload")
    items: Mapped[list[OrderAmendmentItem]] = relationship(
        "OrderAmendmentItem",
        back_populates="amendment",
        lazy="noload",
        cascade="all, delete-orphan",
        order_by="OrderAmendmentItem.position",
    )

    __table_args__ = (
        Index("ix_order_amendments_order_id", "order_id"),
        Index("ix_order_amendments_status", "status"),
    )

    def __repr__(self) -> str:
        return (
            f"<OrderAmendment id={self.id} number={self.amendment_number} "
            f"status={self.status}>"
        )
