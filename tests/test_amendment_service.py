"""Integration tests for AmendmentService — create, approve, reject, apply."""

import uuid

import pytest
from sqlalchemy import func, select

from orderdesk.exceptions import (
    ApprovalRequiredException,
    ConsistencyViolationException,
    InvalidStateTransitionException,
    NotFoundException,
    ValidationException,
)
from orderdesk.models import OrderAmendment, OrderItem, OrderVersion
from orderdesk.models.enums import (
    AmendmentStatus,
    AmendmentType,
    FulfillmentStatus,
    OrderFulfillmentState,
    OrderStatus,
    PriceSource,
)
from orderdesk.modules.amendment.schemas import AmendmentChanges, AmendmentCreate
from orderdesk.modules.events.outbox_service import OutboxService
from orderdesk.modules.fulfillment.schemas import ShipmentCreate


async def _count(session, model) -> int:
    result = await session.execute(select(func.count()).select_from(model))
    return result.scalar()


async def _items_by_product(session, order_id) -> dict[uuid.UUID, OrderItem]:
    result = await session.execute(
        select(OrderItem)
        .where(OrderItem.order_id == order_id)
        .execution_options(populate_existing=True)
    )
    return {item.product_id: item for item in result.scalars().all()}


class TestPreview:
    @pytest.mark.asyncio
    async def test_preview_persists_nothing(self, async_session, amendment_service, order, products):
        changes = AmendmentChanges(add_items=[{"product_id": products["filter"].id, "quantity": 1}])

        preview = await amendment_service.preview(order.id, changes)

        assert preview.amendment_type == AmendmentType.ADD
        assert preview.previous_total_cents == 18000
        assert preview.new_total_cents == 19500
        assert preview.difference_cents == 1500
        assert preview.requires_approval is False
        assert await _count(async_session, OrderAmendment) == 0

    @pytest.mark.asyncio
    async def test_preview_is_repeatable(self, amendment_service, order, products):
        changes = AmendmentChanges(
            modify_items=[{"product_id": products["cable"].id, "quantity": 6}],
            use_quote_prices=True,
        )

        first = await amendment_service.preview(order.id, changes)
        second = await amendment_service.preview(order.id, changes)

        assert first == second
        assert first.items[0].price_source == PriceSource.QUOTE_REQUESTED
        assert first.items[0].new_price_cents == 2300

    @pytest.mark.asyncio
    async def test_preview_unknown_order(self, amendment_service, products):
        changes = AmendmentChanges(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        with pytest.raises(NotFoundException):
            await amendment_service.preview(uuid.uuid4(), changes)


class TestCreateAmendment:
    @pytest.mark.asyncio
    async def test_small_change_is_created_as_draft(self, async_session, amendment_service, order, products):
        requester = uuid.uuid4()
        data = AmendmentCreate(
            add_items=[{"product_id": products["filter"].id, "quantity": 1}],
            reason="Spare filter",
            requested_by=requester,
        )

        amendment = await amendment_service.create_amendment(order.id, data)

        assert amendment.status == AmendmentStatus.DRAFT
        assert amendment.requires_approval is False
        assert amendment.amendment_number.startswith("AMD-")
        assert amendment.amendment_number.endswith("-0001")
        assert amendment.difference_cents == 1500
        assert len(amendment.items) == 1
        assert amendment.items[0].catalog_price_cents == 1500
        assert amendment.items[0].quote_price_cents == 1200

        events = await OutboxService(async_session).get_events_for_aggregate(
            "order_amendment", str(amendment.id), event_type="amendment.created"
        )
        assert len(events) == 1
        assert events[0].payload["requested_by"] == str(requester)

    @pytest.mark.asyncio
    async def test_large_change_needs_approval(self, amendment_service, order, products):
        data = AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 10}])

        amendment = await amendment_service.create_amendment(order.id, data)

        assert amendment.status == AmendmentStatus.PENDING_APPROVAL
        assert amendment.requires_approval is True

    @pytest.mark.asyncio
    async def test_amendment_numbers_increase(self, amendment_service, order, products):
        first = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        second = await amendment_service.create_amendment(
            order.id, AmendmentCreate(modify_items=[{"product_id": products["cable"].id, "quantity": 5}])
        )

        assert first.amendment_number.endswith("-0001")
        assert second.amendment_number.endswith("-0002")

    @pytest.mark.asyncio
    async def test_mismatched_type_is_rejected(self, async_session, amendment_service, order, products):
        data = AmendmentCreate(
            amendment_type=AmendmentType.REMOVE,
            add_items=[{"product_id": products["filter"].id, "quantity": 1}],
        )
        with pytest.raises(ValidationException):
            await amendment_service.create_amendment(order.id, data)
        assert await _count(async_session, OrderAmendment) == 0

    @pytest.mark.asyncio
    async def test_closed_order_cannot_be_amended(self, async_session, amendment_service, order, products):
        order.status = OrderStatus.COMPLETED
        await async_session.flush()

        data = AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        with pytest.raises(InvalidStateTransitionException) as exc_info:
            await amendment_service.create_amendment(order.id, data)
        assert exc_info.value.details[0]["current_status"] == "COMPLETED"


class TestApprovalFlow:
    @pytest.mark.asyncio
    async def test_apply_without_approval_is_blocked(self, async_session, amendment_service, order, products):
        order_id = order.id
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 10}])
        )

        with pytest.raises(ApprovalRequiredException):
            await amendment_service.apply_amendment(amendment.id)

        assert await _count(async_session, OrderVersion) == 1
        items = await _items_by_product(async_session, order_id)
        assert products["filter"].id not in items

    @pytest.mark.asyncio
    async def test_approve_then_apply(self, amendment_service, order, products):
        manager = uuid.uuid4()
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 10}])
        )

        approved = await amendment_service.approve_amendment(amendment.id, manager, "Store restock")
        assert approved.status == AmendmentStatus.APPROVED
        assert approved.approved_by == manager
        assert approved.approved_at is not None

        applied = await amendment_service.apply_amendment(amendment.id, manager)
        assert applied.status == AmendmentStatus.APPLIED
        assert applied.applied_by == manager

    @pytest.mark.asyncio
    async def test_rejected_amendment_cannot_be_applied(self, amendment_service, order, products):
        manager = uuid.uuid4()
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 10}])
        )

        rejected = await amendment_service.reject_amendment(amendment.id, manager, "Over budget")
        assert rejected.status == AmendmentStatus.REJECTED
        assert rejected.rejection_reason == "Over budget"

        with pytest.raises(InvalidStateTransitionException):
            await amendment_service.apply_amendment(amendment.id)
        with pytest.raises(InvalidStateTransitionException):
            await amendment_service.approve_amendment(amendment.id, manager)

    @pytest.mark.asyncio
    async def test_draft_cannot_be_approved_or_rejected(self, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )

        with pytest.raises(InvalidStateTransitionException):
            await amendment_service.approve_amendment(amendment.id, uuid.uuid4())
        with pytest.raises(InvalidStateTransitionException):
            await amendment_service.reject_amendment(amendment.id, uuid.uuid4(), "No")

    @pytest.mark.asyncio
    async def test_pending_queue_is_oldest_first(self, amendment_service, order, products):
        first = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 10}])
        )
        await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        second = await amendment_service.create_amendment(
            order.id, AmendmentCreate(remove_items=[{"product_id": products["lamp"].id}])
        )

        pending = await amendment_service.list_pending()

        assert [a.id for a in pending] == [first.id, second.id]

    @pytest.mark.asyncio
    async def test_unknown_amendment(self, amendment_service):
        with pytest.raises(NotFoundException):
            await amendment_service.approve_amendment(uuid.uuid4(), uuid.uuid4())


class TestApplyAmendment:
    @pytest.mark.asyncio
    async def test_apply_updates_lines_totals_and_versions(
        self, async_session, amendment_service, order, products
    ):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )

        await amendment_service.apply_amendment(amendment.id)

        await async_session.refresh(order)
        assert order.subtotal_cents == 19500
        assert order.tax_cents == 2535
        assert order.total_cents == 22035
        assert order.version_number == 3

        versions = (await async_session.execute(
            select(OrderVersion)
            .where(OrderVersion.order_id == order.id)
            .order_by(OrderVersion.version_number)
        )).scalars().all()
        assert [v.version_number for v in versions] == [1, 2, 3]
        assert versions[1].change_summary == f"Pre-amendment: {amendment.amendment_number}"
        assert versions[1].total_cents == 20340
        assert versions[2].change_summary == f"Applied amendment: {amendment.amendment_number}"
        assert versions[2].total_cents == 22035
        assert len(versions[2].items_snapshot) == 3

    @pytest.mark.asyncio
    async def test_apply_remove_and_modify(self, async_session, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id,
            AmendmentCreate(
                remove_items=[{"product_id": products["lamp"].id}],
                modify_items=[{"product_id": products["cable"].id, "quantity": 5}],
            ),
        )
        assert amendment.amendment_type == AmendmentType.MIXED

        await amendment_service.approve_amendment(amendment.id, uuid.uuid4())
        await amendment_service.apply_amendment(amendment.id)

        items = await _items_by_product(async_session, order.id)
        lamp = items[products["lamp"].id]
        cable = items[products["cable"].id]
        assert lamp.quantity_cancelled == 2
        assert lamp.fulfillment_status == FulfillmentStatus.CANCELLED
        assert cable.quantity == 5
        assert cable.line_total_cents == 12500

        await async_session.refresh(order)
        assert order.subtotal_cents == 12500

    @pytest.mark.asyncio
    async def test_apply_twice_is_rejected(self, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        await amendment_service.apply_amendment(amendment.id)

        with pytest.raises(InvalidStateTransitionException):
            await amendment_service.apply_amendment(amendment.id)

    @pytest.mark.asyncio
    async def test_apply_rechecks_shipped_units(
        self, async_session, amendment_service, fulfillment_service, order, products
    ):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(remove_items=[{"product_id": products["lamp"].id}])
        )
        amendment_id = amendment.id
        await amendment_service.approve_amendment(amendment_id, uuid.uuid4())
        lamp = (await _items_by_product(async_session, order.id))[products["lamp"].id]
        await fulfillment_service.create_shipment(
            order.id, ShipmentCreate(items=[{"order_item_id": lamp.id, "quantity": 1}])
        )
        versions_before = await _count(async_session, OrderVersion)

        with pytest.raises(ConsistencyViolationException):
            await amendment_service.apply_amendment(amendment_id)

        refreshed = await amendment_service.get_amendment(amendment_id)
        await async_session.refresh(refreshed)
        assert refreshed.status == AmendmentStatus.APPROVED
        assert await _count(async_session, OrderVersion) == versions_before

    @pytest.mark.asyncio
    async def test_list_for_order_is_newest_first(self, amendment_service, order, products):
        first = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        second = await amendment_service.create_amendment(
            order.id, AmendmentCreate(modify_items=[{"product_id": products["cable"].id, "quantity": 5}])
        )

        listed = await amendment_service.list_for_order(order.id)

        assert [a.id for a in listed] == [second.id, first.id]


class TestOrderStatusAfterApply:
    @pytest.mark.asyncio
    async def test_removing_unshipped_line_fulfills_order(
        self, async_session, amendment_service, fulfillment_service, order, products
    ):
        cable = (await _items_by_product(async_session, order.id))[products["cable"].id]
        await fulfillment_service.create_shipment(
            order.id, ShipmentCreate(items=[{"order_item_id": cable.id, "quantity": 4}])
        )
        assert order.status == OrderStatus.PARTIALLY_FULFILLED

        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(remove_items=[{"product_id": products["lamp"].id}])
        )
        await amendment_service.approve_amendment(amendment.id, uuid.uuid4())
        await amendment_service.apply_amendment(amendment.id)

        summary = await fulfillment_service.get_fulfillment_summary(order.id)
        assert summary.status == OrderFulfillmentState.COMPLETE
        assert order.status == OrderStatus.FULFILLED

    @pytest.mark.asyncio
    async def test_adding_units_reopens_fulfilled_order(
        self, async_session, amendment_service, fulfillment_service, order, products
    ):
        items = await _items_by_product(async_session, order.id)
        await fulfillment_service.create_shipment(
            order.id,
            ShipmentCreate(items=[
                {"order_item_id": items[products["cable"].id].id, "quantity": 4},
                {"order_item_id": items[products["lamp"].id].id, "quantity": 2},
            ]),
        )
        assert order.status == OrderStatus.FULFILLED

        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        await amendment_service.apply_amendment(amendment.id)

        summary = await fulfillment_service.get_fulfillment_summary(order.id)
        assert summary.status == OrderFulfillmentState.PARTIAL
        assert order.status == OrderStatus.PARTIALLY_FULFILLED

        applied = await OutboxService(async_session).get_events_for_aggregate(
            "order_amendment", str(amendment.id), event_type="amendment.applied"
        )
        assert applied[0].payload["order_status"] == "PARTIALLY_FULFILLED"

    @pytest.mark.asyncio
    async def test_unshipped_order_keeps_status(self, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        await amendment_service.apply_amendment(amendment.id)

        assert order.status == OrderStatus.CONFIRMED
