"""ShipmentItem model — units of one order line carried by a shipment."""

from __future__ import annotations

import uuid
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, ForeignKey, Index, Integer, Uuid
from sqlalchemy.orm import Mapped, mapped_column, relationship

from orderdesk.database.base import Base, JSONType, TimestampMixin, UUIDPrimaryKeyMixin

if TYPE_CHECKING:
    from orderdesk.models.shipment import Shipment


class ShipmentItem(UUIDPrimaryKeyMixin, TimestampMixin, Base):
    __tablename__ = "order_shipment_items"

    shipment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("order_shipments.id", ondelete="CASCADE"),
        nullable=False,
    )
    order_item_id: Mapped[uuid.UUID] = mapped_column(
        Uuid,
        ForeignKey("order_items.id", ondelete="CASCADE"),
        nullable=False,
    )
    quantity: Mapped[int] = mapped_column(Integer, nullable=False)
    serial_numbers: Mapped[list | None] = mapped_column(JSONType)

    # Relationships
    shipment: Mapped[Shipment] = relationship(
        "Shipment", back_populates="items", lazy="noload"
    )

    __table_args__ = (
        CheckConstraint("quantity > 0", name="ck_order_shipment_items_quantity_positive"),
        Index("ix_order_shipment_items_shipment_id", "shipment_id"),
        Index("ix_order_shipment_items_order_item_id", "order_item_id"),
    )
