"""OrderVersion model — immutable snapshot of an order's active lines."""

from __future__ import annotations

import uuid

from sqlalchemy import ForeignKey, Index, Integer, String, Text, UniqueConstraint, Uuid
from sqlalchemy.orm import Mapped, mapped_column

from orderdesk.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin


class OrderVersion(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_versions"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    version_number: Mapped[int] = mapped_column(Integer, nullable=False)
    amendment_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid,
        ForeignKey("order_amendments.id", ondelete="SET NULL"),
    )
    subtotal_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    tax_cents: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    total_cents: Mapped[int] = mapped_column(Integer, nullable=False)
    items_snapshot: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    change_summary: Mapped[str | None] = mapped_column(Text)
    order_status: Mapped[str | None] = mapped_column(String(30))
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    __table_args__ = (
        UniqueConstraint("order_id", "version_number", name="uq_order_versions_order_version"),
        Index("ix_order_versions_order_id", "order_id"),
    )
