"""Fulfillment service — shipments, backorders and the order's fulfillment summary."""

from __future__ import annotations

import logging
import uuid
from collections import defaultdict
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderdesk.database.session import atomic
from orderdesk.exceptions import InvalidStateTransitionException, NotFoundException
from orderdesk.models.enums import FulfillmentStatus, ShipmentStatus
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.models.order_version import OrderVersion
from orderdesk.models.shipment import Shipment
from orderdesk.models.shipment_item import ShipmentItem
from orderdesk.modules.catalog.base import TaxCalculatorBase
from orderdesk.modules.events.outbox_service import OutboxService
from orderdesk.modules.fulfillment.constants import (
    EVENT_ORDER_ITEMS_BACKORDERED,
    EVENT_SHIPMENT_CREATED,
    EVENT_SHIPMENT_STATUS_UPDATED,
    SHIPMENT_NUMBER_PREFIX,
    SHIPMENT_TRANSITIONS,
)
from orderdesk.modules.fulfillment.schemas import (
    BackorderCreate,
    FulfillmentSummaryResponse,
    OrderItemFulfillmentResponse,
    ShipmentCreate,
)
from orderdesk.modules.fulfillment.tracking import (
    ensure_backorderable,
    ensure_shippable,
    record_shipped_units,
    set_backordered_units,
    summarize_fulfillment,
)
from orderdesk.modules.orders.service import OrderService, generate_daily_number
from orderdesk.modules.versioning.service import VersionService

logger = logging.getLogger(__name__)


class FulfillmentService:
    def __init__(self, db: AsyncSession, tax_calculator: TaxCalculatorBase):
        self.db = db
        self.tax_calculator = tax_calculator
        self.orders = OrderService(db)
        self.versions = VersionService(db)

    def _order_item(
        self, by_id: dict[uuid.UUID, OrderItem], order: Order, order_item_id: uuid.UUID
    ) -> OrderItem:
        item = by_id.get(order_item_id)
        if item is None:
            raise NotFoundException(
                f"Order item {order_item_id} not found on order {order.order_number}",
                details=[{
                    "entity": "order_item",
                    "id": str(order_item_id),
                    "order_id": str(order.id),
                }],
            )
        return item

    async def _refresh_order(
        self, order: Order, modified_by: uuid.UUID | None
    ) -> list[OrderItem]:
        """Recompute totals and move the order status along with fulfillment."""
        items = await self.orders.list_items(order.id)
        self.orders.recompute_totals(order, items, self.tax_calculator, modified_by=modified_by)
        self.orders.sync_fulfillment_status(order, items)
        return items

    # ------------------------------------------------------------------
    # Shipments
    # ------------------------------------------------------------------

    async def create_shipment(self, order_id: uuid.UUID, data: ShipmentCreate) -> Shipment:
        """Record a shipment and add its units to the covered order lines."""
        async with atomic(self.db, "create shipment"):
            order = await self.orders.lock_order(order_id)
            self.orders.ensure_open(order, "ship")
            by_id = {
                item.id: item for item in await self.orders.list_items(order_id, for_update=True)
            }

            # Validate the whole shipment before touching any line
            requested: dict[uuid.UUID, int] = defaultdict(int)
            for entry in data.items:
                requested[entry.order_item_id] += entry.quantity
            for order_item_id, quantity in requested.items():
                ensure_shippable(self._order_item(by_id, order, order_item_id), quantity)

            now = datetime.now(UTC)
            shipment_number = await generate_daily_number(
                self.db, Shipment.shipment_number, SHIPMENT_NUMBER_PREFIX
            )
            shipment = Shipment(
                order_id=order_id,
                shipment_number=shipment_number,
                status=ShipmentStatus.SHIPPED,
                carrier=data.carrier,
                tracking_number=data.tracking_number,
                tracking_url=data.tracking_url,
                shipping_cost_cents=data.shipping_cost_cents,
                estimated_delivery=data.estimated_delivery,
                notes=data.notes,
                shipped_at=now,
                created_by=data.created_by,
                items=[
                    ShipmentItem(
                        order_item_id=entry.order_item_id,
                        quantity=entry.quantity,
                        serial_numbers=entry.serial_numbers,
                    )
                    for entry in data.items
                ],
            )
            self.db.add(shipment)

            for order_item_id, quantity in requested.items():
                item = by_id[order_item_id]
                record_shipped_units(item, quantity)
                if item.fulfillment_status == FulfillmentStatus.SHIPPED:
                    item.shipped_at = now
            await self.db.flush()

            await self._refresh_order(order, data.created_by)
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_SHIPMENT_CREATED,
                aggregate_type="shipment",
                aggregate_id=str(shipment.id),
                payload={
                    "shipment_id": str(shipment.id),
                    "shipment_number": shipment_number,
                    "order_id": str(order_id),
                    "carrier": data.carrier,
                    "tracking_number": data.tracking_number,
                    "items": [
                        {"order_item_id": str(item_id), "quantity": quantity}
                        for item_id, quantity in requested.items()
                    ],
                },
            )

        logger.info(
            "Created shipment %s for order %s (%d line(s))",
            shipment_number, order.order_number, len(requested),
        )
        return shipment

    async def get_shipment(self, shipment_id: uuid.UUID) -> Shipment:
        result = await self.db.execute(
            select(Shipment)
            .options(selectinload(Shipment.items))
            .where(Shipment.id == shipment_id)
        )
        shipment = result.scalar_one_or_none()
        if shipment is None:
            raise NotFoundException.for_entity("shipment", shipment_id)
        return shipment

    async def list_shipments(self, order_id: uuid.UUID) -> list[Shipment]:
        """Shipments of an order with their items, newest first."""
        await self.orders.get_order(order_id)
        result = await self.db.execute(
            select(Shipment)
            .options(selectinload(Shipment.items))
            .where(Shipment.order_id == order_id)
            .order_by(Shipment.created_at.desc(), Shipment.shipment_number.desc())
        )
        return list(result.scalars().all())

    async def update_shipment_status(
        self,
        shipment_id: uuid.UUID,
        new_status: ShipmentStatus,
        updated_by: uuid.UUID | None = None,
    ) -> Shipment:
        async with atomic(self.db, "update shipment status"):
            shipment = await self.get_shipment(shipment_id)

            allowed = SHIPMENT_TRANSITIONS.get(shipment.status, set())
            if new_status not in allowed:
                raise InvalidStateTransitionException(
                    "shipment",
                    shipment_id,
                    shipment.status.value,
                    f"move to {new_status.value}",
                )

            old_status = shipment.status
            shipment.status = new_status
            if new_status == ShipmentStatus.DELIVERED:
                shipment.delivered_at = datetime.now(UTC)
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_SHIPMENT_STATUS_UPDATED,
                aggregate_type="shipment",
                aggregate_id=str(shipment_id),
                payload={
                    "shipment_id": str(shipment_id),
                    "shipment_number": shipment.shipment_number,
                    "order_id": str(shipment.order_id),
                    "from_status": old_status.value,
                    "to_status": new_status.value,
                    "updated_by": str(updated_by) if updated_by else None,
                },
            )

        logger.info(
            "Shipment %s transitioned %s -> %s",
            shipment.shipment_number, old_status.value, new_status.value,
        )
        return shipment

    # ------------------------------------------------------------------
    # Backorders
    # ------------------------------------------------------------------

    async def mark_backordered(
        self, order_id: uuid.UUID, data: BackorderCreate
    ) -> tuple[OrderVersion, list[OrderItem]]:
        """Set backordered quantities and record a version of the order."""
        async with atomic(self.db, "mark backordered"):
            order = await self.orders.lock_order(order_id)
            self.orders.ensure_open(order, "backorder")
            by_id = {
                item.id: item for item in await self.orders.list_items(order_id, for_update=True)
            }

            for entry in data.items:
                ensure_backorderable(
                    self._order_item(by_id, order, entry.order_item_id), entry.quantity
                )

            updated: list[OrderItem] = []
            for entry in data.items:
                item = by_id[entry.order_item_id]
                set_backordered_units(item, entry.quantity)
                updated.append(item)
            await self.db.flush()

            await self._refresh_order(order, data.created_by)
            summary = ", ".join(
                f"{item.product_name} x{item.quantity_backordered}" for item in updated
            )
            version = await self.versions.snapshot(
                order_id,
                created_by=data.created_by,
                change_summary=f"Backordered: {summary}",
            )

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_ORDER_ITEMS_BACKORDERED,
                aggregate_type="order",
                aggregate_id=str(order_id),
                payload={
                    "order_id": str(order_id),
                    "order_number": order.order_number,
                    "version_number": version.version_number,
                    "items": [
                        {
                            "order_item_id": str(item.id),
                            "quantity_backordered": item.quantity_backordered,
                        }
                        for item in updated
                    ],
                    "notes": data.notes,
                },
            )

        logger.info(
            "Marked %d line(s) backordered on order %s", len(updated), order.order_number
        )
        return version, updated

    # ------------------------------------------------------------------
    # Summary
    # ------------------------------------------------------------------

    async def get_fulfillment_summary(self, order_id: uuid.UUID) -> FulfillmentSummaryResponse:
        await self.orders.get_order(order_id)
        items = await self.orders.list_items(order_id)
        summary = summarize_fulfillment(items)
        return FulfillmentSummaryResponse(
            order_id=order_id,
            total_items=summary.total_items,
            total_quantity=summary.total_quantity,
            fulfilled=summary.fulfilled,
            backordered=summary.backordered,
            cancelled=summary.cancelled,
            pending=summary.pending,
            fulfillment_percent=summary.fulfillment_percent,
            status=summary.status,
            items=[OrderItemFulfillmentResponse.model_validate(item) for item in items],
        )
