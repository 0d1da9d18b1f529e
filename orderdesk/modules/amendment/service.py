"""Amendment lifecycle service — preview, create, approve, reject, apply."""

from __future__ import annotations

import logging
import uuid
from dataclasses import asdict
from datetime import UTC, datetime
from typing import assert_never

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from orderdesk.config import settings
from orderdesk.database.session import atomic
from orderdesk.exceptions import (
    ApprovalRequiredException,
    ConsistencyViolationException,
    InvalidStateTransitionException,
    NotFoundException,
)
from orderdesk.models.amendment import OrderAmendment
from orderdesk.models.amendment_item import OrderAmendmentItem
from orderdesk.models.enums import AmendmentStatus, AmendmentType, ChangeType, FulfillmentStatus
from orderdesk.models.order import Order
from orderdesk.models.order_item import OrderItem
from orderdesk.modules.amendment.approval import ApprovalPolicy
from orderdesk.modules.amendment.constants import (
    AMENDMENT_NUMBER_PREFIX,
    AMENDMENT_TRANSITIONS,
    EVENT_AMENDMENT_APPLIED,
    EVENT_AMENDMENT_APPROVED,
    EVENT_AMENDMENT_CREATED,
    EVENT_AMENDMENT_REJECTED,
    TERMINAL_AMENDMENT_STATUSES,
)
from orderdesk.modules.amendment.impact import (
    ImpactResult,
    compute_impact,
    ensure_quantity_covers_shipped,
    ensure_removable,
    resolve_amendment_type,
)
from orderdesk.modules.amendment.schemas import (
    AmendmentChanges,
    AmendmentCreate,
    AmendmentPreviewResponse,
    ImpactItemResponse,
)
from orderdesk.modules.catalog.base import (
    ProductCatalogBase,
    QuoteLineLookupBase,
    TaxCalculatorBase,
)
from orderdesk.modules.events.outbox_service import OutboxService
from orderdesk.modules.fulfillment.tracking import refresh_fulfillment_status, unshipped_quantity
from orderdesk.modules.orders.service import OrderService, generate_daily_number
from orderdesk.modules.orders.totals import active_items, line_value_cents
from orderdesk.modules.versioning.service import VersionService

logger = logging.getLogger(__name__)


class AmendmentService:
    """Owns the amendment lifecycle and is the only writer of order lines.

    draft ──────────────► applied
    pending_approval ──► approved ──► applied
                    └──► rejected
    """

    def __init__(
        self,
        db: AsyncSession,
        catalog: ProductCatalogBase,
        quotes: QuoteLineLookupBase,
        tax_calculator: TaxCalculatorBase,
        policy: ApprovalPolicy | None = None,
    ):
        self.db = db
        self.catalog = catalog
        self.quotes = quotes
        self.tax_calculator = tax_calculator
        self.policy = policy or ApprovalPolicy.from_settings()
        self.orders = OrderService(db)
        self.versions = VersionService(db)

    # ------------------------------------------------------------------
    # Impact
    # ------------------------------------------------------------------

    async def _compute(
        self, order: Order, changes: AmendmentChanges
    ) -> ImpactResult:
        items = await self.orders.list_items(order.id)
        product_ids = [
            change.product_id
            for change in [*changes.add_items, *changes.remove_items, *changes.modify_items]
        ]
        products = await self.catalog.get_products(product_ids)
        quote_prices = (
            await self.quotes.get_quote_prices(order.quote_id) if order.quote_id else {}
        )
        return compute_impact(order, items, changes, products, quote_prices)

    async def preview(
        self,
        order_id: uuid.UUID,
        changes: AmendmentChanges,
        amendment_type: AmendmentType | None = None,
    ) -> AmendmentPreviewResponse:
        """Compute what an amendment would do without persisting anything."""
        order = await self.orders.get_order(order_id)
        impact = await self._compute(order, changes)
        resolved_type = resolve_amendment_type(amendment_type, impact.item_changes)
        return AmendmentPreviewResponse(
            order_id=order_id,
            amendment_type=resolved_type,
            previous_total_cents=impact.previous_total_cents,
            new_total_cents=impact.new_total_cents,
            difference_cents=impact.difference_cents,
            requires_approval=self.policy.requires_approval(
                impact.difference_cents, impact.previous_total_cents
            ),
            items=[ImpactItemResponse.model_validate(c) for c in impact.item_changes],
        )

    # ------------------------------------------------------------------
    # Create
    # ------------------------------------------------------------------

    async def create_amendment(
        self, order_id: uuid.UUID, data: AmendmentCreate
    ) -> OrderAmendment:
        async with atomic(self.db, "create amendment"):
            order = await self.orders.lock_order(order_id)
            self.orders.ensure_open(order, "amend")

            impact = await self._compute(order, data)
            amendment_type = resolve_amendment_type(data.amendment_type, impact.item_changes)
            requires_approval = self.policy.requires_approval(
                impact.difference_cents, impact.previous_total_cents
            )
            amendment_number = await generate_daily_number(
                self.db, OrderAmendment.amendment_number, AMENDMENT_NUMBER_PREFIX
            )

            amendment = OrderAmendment(
                order_id=order_id,
                amendment_number=amendment_number,
                amendment_type=amendment_type,
                status=(
                    AmendmentStatus.PENDING_APPROVAL if requires_approval
                    else AmendmentStatus.DRAFT
                ),
                reason=data.reason,
                previous_total_cents=impact.previous_total_cents,
                new_total_cents=impact.new_total_cents,
                difference_cents=impact.difference_cents,
                use_quote_prices=data.use_quote_prices,
                requires_approval=requires_approval,
                requested_by=data.requested_by,
                items=[
                    OrderAmendmentItem(position=position, **asdict(change))
                    for position, change in enumerate(impact.item_changes)
                ],
            )
            self.db.add(amendment)
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_AMENDMENT_CREATED,
                aggregate_type="order_amendment",
                aggregate_id=str(amendment.id),
                payload={
                    "amendment_id": str(amendment.id),
                    "amendment_number": amendment_number,
                    "order_id": str(order_id),
                    "order_number": order.order_number,
                    "amendment_type": amendment_type.value,
                    "status": amendment.status.value,
                    "difference_cents": impact.difference_cents,
                    "requires_approval": requires_approval,
                    "requested_by": str(data.requested_by) if data.requested_by else None,
                },
            )

        logger.info(
            "Created amendment %s for order %s: %s %+d cents (%s)",
            amendment_number, order.order_number, amendment_type.value,
            impact.difference_cents, amendment.status.value,
        )
        return amendment

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    async def get_amendment(self, amendment_id: uuid.UUID) -> OrderAmendment:
        result = await self.db.execute(
            select(OrderAmendment)
            .options(selectinload(OrderAmendment.items))
            .where(OrderAmendment.id == amendment_id)
        )
        amendment = result.scalar_one_or_none()
        if amendment is None:
            raise NotFoundException.for_entity("amendment", amendment_id)
        return amendment

    async def list_for_order(self, order_id: uuid.UUID) -> list[OrderAmendment]:
        """Amendments of an order, newest first."""
        await self.orders.get_order(order_id)
        result = await self.db.execute(
            select(OrderAmendment)
            .options(selectinload(OrderAmendment.items))
            .where(OrderAmendment.order_id == order_id)
            .order_by(OrderAmendment.created_at.desc(), OrderAmendment.amendment_number.desc())
        )
        return list(result.scalars().all())

    async def list_pending(self, limit: int | None = None) -> list[OrderAmendment]:
        """Amendments awaiting approval, oldest first."""
        result = await self.db.execute(
            select(OrderAmendment)
            .options(selectinload(OrderAmendment.items))
            .where(OrderAmendment.status == AmendmentStatus.PENDING_APPROVAL)
            .order_by(OrderAmendment.created_at.asc(), OrderAmendment.amendment_number.asc())
            .limit(limit or settings.pending_amendments_limit)
        )
        return list(result.scalars().all())

    async def _lock_amendment(self, amendment_id: uuid.UUID) -> OrderAmendment:
        result = await self.db.execute(
            select(OrderAmendment)
            .options(selectinload(OrderAmendment.items))
            .where(OrderAmendment.id == amendment_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        amendment = result.scalar_one_or_none()
        if amendment is None:
            raise NotFoundException.for_entity("amendment", amendment_id)
        return amendment

    def _ensure_transition(
        self, amendment: OrderAmendment, target: AmendmentStatus, action: str
    ) -> None:
        allowed = AMENDMENT_TRANSITIONS.get(amendment.status, set())
        if target not in allowed:
            logger.warning(
                "Rejected %s of amendment %s in status %s",
                action, amendment.amendment_number, amendment.status.value,
            )
            raise InvalidStateTransitionException(
                "amendment", amendment.id, amendment.status.value, action
            )

    # ------------------------------------------------------------------
    # Approve / Reject
    # ------------------------------------------------------------------

    async def approve_amendment(
        self,
        amendment_id: uuid.UUID,
        approved_by: uuid.UUID,
        notes: str | None = None,
    ) -> OrderAmendment:
        async with atomic(self.db, "approve amendment"):
            amendment = await self._lock_amendment(amendment_id)
            self._ensure_transition(amendment, AmendmentStatus.APPROVED, "approve")

            amendment.status = AmendmentStatus.APPROVED
            amendment.approved_by = approved_by
            amendment.approved_at = datetime.now(UTC)
            amendment.approval_notes = notes
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_AMENDMENT_APPROVED,
                aggregate_type="order_amendment",
                aggregate_id=str(amendment_id),
                payload={
                    "amendment_id": str(amendment_id),
                    "amendment_number": amendment.amendment_number,
                    "order_id": str(amendment.order_id),
                    "approved_by": str(approved_by),
                    "notes": notes,
                },
            )

        logger.info("Amendment %s approved by %s", amendment.amendment_number, approved_by)
        return amendment

    async def reject_amendment(
        self,
        amendment_id: uuid.UUID,
        rejected_by: uuid.UUID,
        reason: str,
    ) -> OrderAmendment:
        async with atomic(self.db, "reject amendment"):
            amendment = await self._lock_amendment(amendment_id)
            self._ensure_transition(amendment, AmendmentStatus.REJECTED, "reject")

            amendment.status = AmendmentStatus.REJECTED
            amendment.rejected_by = rejected_by
            amendment.rejected_at = datetime.now(UTC)
            amendment.rejection_reason = reason
            await self.db.flush()

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_AMENDMENT_REJECTED,
                aggregate_type="order_amendment",
                aggregate_id=str(amendment_id),
                payload={
                    "amendment_id": str(amendment_id),
                    "amendment_number": amendment.amendment_number,
                    "order_id": str(amendment.order_id),
                    "rejected_by": str(rejected_by),
                    "reason": reason,
                },
            )

        logger.info(
            "Amendment %s rejected by %s: %s", amendment.amendment_number, rejected_by, reason
        )
        return amendment

    # ------------------------------------------------------------------
    # Apply
    # ------------------------------------------------------------------

    async def apply_amendment(
        self, amendment_id: uuid.UUID, applied_by: uuid.UUID | None = None
    ) -> OrderAmendment:
        """Apply an amendment to the live order lines.

        Snapshots the order before and after, rewrites totals from the live
        lines and flips the amendment to APPLIED, all inside one savepoint.
        """
        async with atomic(self.db, "apply amendment"):
            amendment = await self._lock_amendment(amendment_id)
            if (
                amendment.requires_approval
                and amendment.status != AmendmentStatus.APPROVED
                and amendment.status not in TERMINAL_AMENDMENT_STATUSES
            ):
                logger.warning(
                    "Blocked apply of amendment %s: approval required (status %s)",
                    amendment.amendment_number, amendment.status.value,
                )
                raise ApprovalRequiredException(amendment.id, amendment.status.value)
            self._ensure_transition(amendment, AmendmentStatus.APPLIED, "apply")

            order = await self.orders.lock_order(amendment.order_id)
            self.orders.ensure_open(order, "amend")
            items = await self.orders.list_items(order.id, for_update=True)

            await self.versions.snapshot(
                order.id,
                created_by=applied_by,
                change_summary=f"Pre-amendment: {amendment.amendment_number}",
                amendment_id=amendment.id,
            )

            self._apply_items(order, items, amendment.items)
            await self.db.flush()

            live_items = await self.orders.list_items(order.id)
            totals = self.orders.recompute_totals(
                order, live_items, self.tax_calculator, modified_by=applied_by
            )
            self.orders.sync_fulfillment_status(order, live_items)
            if totals.subtotal_cents != amendment.new_total_cents:
                logger.warning(
                    "Order %s subtotal %d differs from amendment %s projection %d",
                    order.order_number, totals.subtotal_cents,
                    amendment.amendment_number, amendment.new_total_cents,
                )

            amendment.status = AmendmentStatus.APPLIED
            amendment.applied_by = applied_by
            amendment.applied_at = datetime.now(UTC)
            await self.db.flush()

            await self.versions.snapshot(
                order.id,
                created_by=applied_by,
                change_summary=f"Applied amendment: {amendment.amendment_number}",
                amendment_id=amendment.id,
            )

            outbox = OutboxService(self.db)
            await outbox.publish_event(
                event_type=EVENT_AMENDMENT_APPLIED,
                aggregate_type="order_amendment",
                aggregate_id=str(amendment_id),
                payload={
                    "amendment_id": str(amendment_id),
                    "amendment_number": amendment.amendment_number,
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "version_number": order.version_number,
                    "subtotal_cents": totals.subtotal_cents,
                    "tax_cents": totals.tax_cents,
                    "total_cents": totals.total_cents,
                    "order_status": order.status.value,
                    "applied_by": str(applied_by) if applied_by else None,
                },
            )

        logger.info(
            "Applied amendment %s to order %s (now version %d, total %d cents)",
            amendment.amendment_number, order.order_number,
            order.version_number, order.total_cents,
        )
        return amendment

    def _apply_items(
        self,
        order: Order,
        items: list[OrderItem],
        changes: list[OrderAmendmentItem],
    ) -> None:
        by_id = {item.id: item for item in items}
        active_products = {item.product_id for item in active_items(items)}

        for change in sorted(changes, key=lambda c: c.position):
            if change.change_type is ChangeType.ADD:
                if change.product_id in active_products:
                    raise ConsistencyViolationException(
                        f"Product {change.product_name} was added to order "
                        f"{order.order_number} after the amendment was created",
                        details=[{
                            "entity": "order_item",
                            "product_id": str(change.product_id),
                            "attempted_action": "add",
                        }],
                    )
                new_item = OrderItem(
                    order_id=order.id,
                    product_id=change.product_id,
                    product_name=change.product_name or str(change.product_id),
                    product_sku=change.product_sku,
                    quantity=change.new_quantity,
                    price_at_order_cents=change.new_price_cents,
                    line_total_cents=change.new_quantity * change.new_price_cents,
                    quantity_fulfilled=0,
                    quantity_backordered=0,
                    quantity_cancelled=0,
                    fulfillment_status=FulfillmentStatus.PENDING,
                )
                self.db.add(new_item)
                active_products.add(change.product_id)
            elif change.change_type is ChangeType.REMOVE:
                item = self._live_item(by_id, change)
                ensure_removable(item)
                item.quantity_cancelled = item.quantity - item.quantity_fulfilled
                item.quantity_backordered = 0
                refresh_fulfillment_status(item)
                active_products.discard(item.product_id)
            elif change.change_type is ChangeType.MODIFY:
                item = self._live_item(by_id, change)
                ensure_quantity_covers_shipped(item, change.new_quantity)
                item.quantity = change.new_quantity
                item.price_at_order_cents = change.new_price_cents
                item.line_total_cents = line_value_cents(item)
                item.quantity_backordered = min(
                    item.quantity_backordered, max(unshipped_quantity(item), 0)
                )
                refresh_fulfillment_status(item)
            else:
                assert_never(change.change_type)

    def _live_item(
        self, by_id: dict[uuid.UUID, OrderItem], change: OrderAmendmentItem
    ) -> OrderItem:
        item = by_id.get(change.order_item_id) if change.order_item_id else None
        if item is None or item.quantity_cancelled >= item.quantity:
            raise NotFoundException(
                f"Order line for product {change.product_id} is no longer active",
                details=[{
                    "entity": "order_item",
                    "id": str(change.order_item_id) if change.order_item_id else None,
                    "product_id": str(change.product_id),
                    "attempted_action": change.change_type.value.lower(),
                }],
            )
        return item
