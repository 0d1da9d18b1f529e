"""Version ledger — append-only snapshots of an order's lines and totals."""

from __future__ import annotations

import logging
import uuid

from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.exceptions import NotFoundException
from orderdesk.models.order_version import OrderVersion
from orderdesk.modules.events.outbox_service import OutboxService
from orderdesk.modules.orders.service import OrderService
from orderdesk.modules.versioning.diff import (
    build_snapshot,
    diff_snapshots,
    dump_snapshot,
    load_snapshot,
)
from orderdesk.modules.versioning.schemas import VersionDiffResponse, VersionTotals

logger = logging.getLogger(__name__)

EVENT_ORDER_VERSION_CREATED = "order.version_created"


class VersionService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.orders = OrderService(db)

    # ------------------------------------------------------------------
    # Snapshot
    # ------------------------------------------------------------------

    async def snapshot(
        self,
        order_id: uuid.UUID,
        created_by: uuid.UUID | None = None,
        change_summary: str | None = None,
        amendment_id: uuid.UUID | None = None,
    ) -> OrderVersion:
        """Record the order's current lines and totals as the next version.

        Callers mutating the order hold its row lock, which also serialises
        version numbering for that order.
        """
        order = await self.orders.get_order(order_id)
        items = await self.orders.list_items(order_id)

        result = await self.db.execute(
            select(func.max(OrderVersion.version_number)).where(
                OrderVersion.order_id == order_id
            )
        )
        version_number = (result.scalar() or 0) + 1

        version = OrderVersion(
            order_id=order_id,
            version_number=version_number,
            amendment_id=amendment_id,
            subtotal_cents=order.subtotal_cents,
            tax_cents=order.tax_cents,
            total_cents=order.total_cents,
            items_snapshot=dump_snapshot(build_snapshot(items)),
            change_summary=change_summary,
            order_status=order.status.value,
            created_by=created_by,
        )
        self.db.add(version)
        order.version_number = version_number
        await self.db.flush()

        outbox = OutboxService(self.db)
        await outbox.publish_event(
            event_type=EVENT_ORDER_VERSION_CREATED,
            aggregate_type="order",
            aggregate_id=str(order_id),
            payload={
                "order_id": str(order_id),
                "version_id": str(version.id),
                "version_number": version_number,
                "amendment_id": str(amendment_id) if amendment_id else None,
                "change_summary": change_summary,
            },
        )

        logger.info(
            "Created version %d for order %s (%s)",
            version_number, order.order_number, change_summary or "no summary",
        )
        return version

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def list_versions(self, order_id: uuid.UUID) -> list[OrderVersion]:
        """All versions of an order, newest first."""
        await self.orders.get_order(order_id)
        result = await self.db.execute(
            select(OrderVersion)
            .where(OrderVersion.order_id == order_id)
            .order_by(OrderVersion.version_number.desc())
        )
        return list(result.scalars().all())

    async def get_version(self, order_id: uuid.UUID, version_number: int) -> OrderVersion:
        result = await self.db.execute(
            select(OrderVersion).where(
                OrderVersion.order_id == order_id,
                OrderVersion.version_number == version_number,
            )
        )
        version = result.scalar_one_or_none()
        if version is None:
            raise NotFoundException(
                f"Version {version_number} of order {order_id} not found",
                details=[{
                    "entity": "order_version",
                    "order_id": str(order_id),
                    "version_number": version_number,
                }],
            )
        return version

    # ------------------------------------------------------------------
    # Diff
    # ------------------------------------------------------------------

    async def diff_versions(
        self, order_id: uuid.UUID, version_1: int, version_2: int
    ) -> VersionDiffResponse:
        first = await self.get_version(order_id, version_1)
        second = await self.get_version(order_id, version_2)
        first_items = load_snapshot(first.items_snapshot)
        second_items = load_snapshot(second.items_snapshot)

        return VersionDiffResponse(
            order_id=order_id,
            version_1=_totals(first, len(first_items)),
            version_2=_totals(second, len(second_items)),
            total_difference_cents=second.total_cents - first.total_cents,
            changes=diff_snapshots(first_items, second_items),
        )


def _totals(version: OrderVersion, item_count: int) -> VersionTotals:
    return VersionTotals(
        version_number=version.version_number,
        subtotal_cents=version.subtotal_cents,
        tax_cents=version.tax_cents,
        total_cents=version.total_cents,
        item_count=item_count,
        created_at=version.created_at,
    )
