"""Unit tests for OutboxService — event recording."""

import uuid

import pytest

from orderdesk.models.enums import EventStatus
from orderdesk.modules.amendment.schemas import AmendmentCreate
from orderdesk.modules.events.outbox_service import OutboxService


class TestOutboxServicePublish:
    @pytest.mark.asyncio
    async def test_publish_event_creates_pending_event(self, async_session):
        service = OutboxService(async_session)
        order_id = str(uuid.uuid4())

        event = await service.publish_event(
            event_type="amendment.created",
            aggregate_type="order_amendment",
            aggregate_id=order_id,
            payload={"difference_cents": 1500},
        )

        assert event.id is not None
        assert event.status == EventStatus.PENDING
        assert event.dispatched_at is None
        assert event.payload["difference_cents"] == 1500


class TestOutboxServiceGetPending:
    @pytest.mark.asyncio
    async def test_get_pending_events_respects_batch_size(self, async_session):
        service = OutboxService(async_session)

        for i in range(5):
            await service.publish_event(
                event_type=f"test.event.{i}",
                aggregate_type="test",
                aggregate_id=str(uuid.uuid4()),
                payload={},
            )

        pending = await service.get_pending_events(batch_size=3)
        assert len(pending) == 3
        assert pending[0].event_type == "test.event.0"

    @pytest.mark.asyncio
    async def test_dispatched_events_are_skipped(self, async_session):
        service = OutboxService(async_session)
        done = await service.publish_event("order.version_created", "order", "o-1", {})
        await service.publish_event("shipment.created", "shipment", "s-1", {})

        assert await service.mark_dispatched([done]) == 1
        assert done.status == EventStatus.DISPATCHED
        assert done.dispatched_at is not None

        pending = await service.get_pending_events()

        assert [e.event_type for e in pending] == ["shipment.created"]


class TestOutboxServiceAggregateEvents:
    @pytest.mark.asyncio
    async def test_events_for_one_aggregate(self, async_session):
        service = OutboxService(async_session)
        await service.publish_event("amendment.created", "order_amendment", "a-1", {})
        await service.publish_event("amendment.created", "order_amendment", "a-2", {})
        await service.publish_event("amendment.approved", "order_amendment", "a-1", {})

        events = await service.get_events_for_aggregate("order_amendment", "a-1")
        approved = await service.get_events_for_aggregate(
            "order_amendment", "a-1", event_type="amendment.approved"
        )

        assert [e.event_type for e in events] == ["amendment.created", "amendment.approved"]
        assert len(approved) == 1

    @pytest.mark.asyncio
    async def test_amendment_lifecycle_is_recorded(self, async_session, amendment_service, order, products):
        amendment = await amendment_service.create_amendment(
            order.id, AmendmentCreate(add_items=[{"product_id": products["filter"].id, "quantity": 1}])
        )
        await amendment_service.apply_amendment(amendment.id)

        events = await OutboxService(async_session).get_events_for_aggregate(
            "order_amendment", str(amendment.id)
        )
        version_events = await OutboxService(async_session).get_events_for_aggregate(
            "order", str(order.id), event_type="order.version_created"
        )

        assert [e.event_type for e in events] == ["amendment.created", "amendment.applied"]
        assert events[1].payload["total_cents"] == 22035
        assert len(version_events) == 3


class TestOutboxServiceMarkDispatched:
    @pytest.mark.asyncio
    async def test_already_dispatched_events_are_not_counted(self, async_session):
        service = OutboxService(async_session)
        event = await service.publish_event("amendment.applied", "order_amendment", "a-1", {})
        await service.mark_dispatched([event])
        first_stamp = event.dispatched_at

        assert await service.mark_dispatched([event]) == 0
        assert event.dispatched_at == first_stamp
        assert await service.get_pending_events() == []
