"""Shared order access used by the amendment, versioning and fulfillment services."""

from __future__ import annotations

import logging
import uuid
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import InstrumentedAttribute

from orderdesk.exceptions import InvalidStateTransitionException, NotFoundException
from orderdesk.models.enums import OrderStatus
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.catalog.base import TaxCalculatorBase
from orderdesk.modules.fulfillment.constants import (
    FULFILLMENT_TRACKED_ORDER_STATUSES,
    ORDER_STATUS_BY_FULFILLMENT,
)
from orderdesk.modules.fulfillment.tracking import summarize_fulfillment
from orderdesk.modules.orders.totals import OrderTotals, apply_totals, compute_totals

logger = logging.getLogger(__name__)

# Orders in these statuses accept no further amendments or shipments
CLOSED_ORDER_STATUSES: set[OrderStatus] = {
    OrderStatus.COMPLETED,
    OrderStatus.CANCELLED,
}


async def generate_daily_number(
    db: AsyncSession, column: InstrumentedAttribute, prefix: str
) -> str:
    """Generate PREFIX-YYYYMMDD-NNNN, counting today's existing numbers."""
    day_prefix = f"{prefix}-{datetime.now(UTC):%Y%m%d}-"
    result = await db.execute(
        select(func.count()).where(column.like(f"{day_prefix}%"))
    )
    count = result.scalar() or 0
    return f"{day_prefix}{count + 1:04d}"


class OrderService:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_order(self, order_id: uuid.UUID) -> Order:
        result = await self.db.execute(select(Order).where(Order.id == order_id))
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException.for_entity("order", order_id)
        return order

    async def lock_order(self, order_id: uuid.UUID) -> Order:
        """Read the order with an exclusive row lock, refreshing any cached state."""
        result = await self.db.execute(
            select(Order)
            .where(Order.id == order_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        order = result.scalar_one_or_none()
        if order is None:
            raise NotFoundException.for_entity("order", order_id)
        return order

    async def list_items(self, order_id: uuid.UUID, *, for_update: bool = False) -> list[OrderItem]:
        query = (
            select(OrderItem)
            .where(OrderItem.order_id == order_id)
            .order_by(OrderItem.created_at.asc(), OrderItem.id.asc())
        )
        if for_update:
            query = query.with_for_update().execution_options(populate_existing=True)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    def ensure_open(self, order: Order, attempted_action: str) -> None:
        if order.status in CLOSED_ORDER_STATUSES:
            raise InvalidStateTransitionException(
                "order", order.id, order.status.value, attempted_action
            )

    def recompute_totals(
        self,
        order: Order,
        items: list[OrderItem],
        tax_calculator: TaxCalculatorBase,
        modified_by: uuid.UUID | None = None,
    ) -> OrderTotals:
        """Rewrite the order's totals from its live lines."""
        totals = compute_totals(order, items, tax_calculator)
        apply_totals(order, totals)
        order.last_modified_at = datetime.now(UTC)
        if modified_by is not None:
            order.last_modified_by = modified_by
        logger.info(
            "Recomputed totals for order %s: subtotal=%d tax=%d total=%d",
            order.order_number, totals.subtotal_cents, totals.tax_cents, totals.total_cents,
        )
        return totals

    def sync_fulfillment_status(self, order: Order, items: list[OrderItem]) -> OrderStatus:
        """Set the order status from what its live lines have shipped.

        Closed orders and orders with nothing shipped keep their status.
        """
        summary = summarize_fulfillment(items)
        next_status = ORDER_STATUS_BY_FULFILLMENT.get(summary.status)
        if (
            next_status is not None
            and order.status in FULFILLMENT_TRACKED_ORDER_STATUSES
            and order.status != next_status
        ):
            logger.info(
                "Order %s status %s -> %s", order.order_number, order.status.value, next_status.value
            )
            order.status = next_status
        return order.status
