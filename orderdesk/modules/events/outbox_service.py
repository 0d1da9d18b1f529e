"""Transactional outbox for order, amendment and shipment events.

Events are written through the caller's session, so they commit or roll back
together with the change that produced them. A relay outside this service
reads pending events and hands them back through ``mark_dispatched``.
"""

import logging
from datetime import UTC, datetime

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from orderdesk.models.enums import EventStatus
from orderdesk.models.event_outbox import EventOutbox

logger = logging.getLogger(__name__)


class OutboxService:
    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def publish_event(
        self,
        event_type: str,
        aggregate_type: str,
        aggregate_id: str,
        payload: dict,
    ) -> EventOutbox:
        event = EventOutbox(
            event_type=event_type,
            aggregate_type=aggregate_type,
            aggregate_id=aggregate_id,
            payload=payload,
            status=EventStatus.PENDING,
        )
        self.session.add(event)
        await self.session.flush()
        logger.debug("Queued %s for %s %s", event_type, aggregate_type, aggregate_id)
        return event

    async def get_pending_events(self, batch_size: int = 50) -> list[EventOutbox]:
        """Oldest undelivered events first."""
        result = await self.session.execute(
            select(EventOutbox)
            .where(EventOutbox.status == EventStatus.PENDING)
            .order_by(EventOutbox.created_at.asc())
            .limit(batch_size)
        )
        return list(result.scalars().all())

    async def mark_dispatched(self, events: list[EventOutbox]) -> int:
        now = datetime.now(UTC)
        marked = 0
        for event in events:
            if event.status == EventStatus.PENDING:
                event.status = EventStatus.DISPATCHED
                event.dispatched_at = now
                marked += 1
        await self.session.flush()
        logger.debug("Marked %d outbox event(s) dispatched", marked)
        return marked

    async def get_events_for_aggregate(
        self, aggregate_type: str, aggregate_id: str, event_type: str | None = None
    ) -> list[EventOutbox]:
        """Events recorded for one order, amendment or shipment, in write order."""
        query = select(EventOutbox).where(
            EventOutbox.aggregate_type == aggregate_type,
            EventOutbox.aggregate_id == aggregate_id,
        )
        if event_type is not None:
            query = query.where(EventOutbox.event_type == event_type)
        result = await self.session.execute(query.order_by(EventOutbox.created_at.asc()))
        return list(result.scalars().all())
