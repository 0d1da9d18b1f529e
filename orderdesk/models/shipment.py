"""Shipment model — a physical shipment of some units of an order."""

from __future__ import annotations

import uuid
from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String, Text, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, TimestampMixin, UUIDPrimaryKeyMixin
from orderdesk.models.enums import ShipmentStatus

if TYPE_CHECKING:
    from orderdesk.models.shipment_item import ShipmentItem


class Shipment(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_shipments"

    order_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("orders.id", ondelete="CASCADE"),
        nullable=False,
    )
    shipment_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    status: Mapped[ShipmentStatus] = mapped_column(
        nullable=False, default=ShipmentStatus.SHIPPED, server_default="SHIPPED"
    )

    carrier: Mapped[str | None] = mapped_column(String(100))
    tracking_number: Mapped[str | None] = mapped_column(String(100))
    tracking_url: Mapped[str | None] = mapped_column(String(500))
    shipping_cost_cents: Mapped[int | None] = mapped_column(Integer)
    estimated_delivery: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    notes: Mapped[str | None] = mapped_column(Text)

    shipped_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    delivered_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True))
    created_by: Mapped[uuid.UUID | None] = mapped_column(Uuid)

    # Relationships
    items: Mapped[list[ShipmentItem]] = relationship(
        "ShipmentItem", back_populates="shipment", lazy="noload", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_order_shipments_order_id", "order_id"),
        Index("ix_order_shipments_status", "status"),
    )
