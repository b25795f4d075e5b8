import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import async_sessionmaker
from sqlmodel import select

from app.api.db.database import get_session_factory
from app.api.modules.v1.stripe_connect.models.webhook_event import (
    WebhookEvent,
    WebhookEventStatus,
)

logger = logging.getLogger(__name__)


@dataclass
class EventRecordResult:
    event: WebhookEvent
    already_recorded: bool = False


class WebhookEventStore:
    """
    Durable log of webhook events keyed by Stripe event id.

    Recording is idempotent: a second delivery of the same event id returns the
    stored row with ``already_recorded`` set instead of raising. There is no
    deletion path.
    """

    def __init__(self, session_factory: Optional[async_sessionmaker] = None):
        self.session_factory = session_factory or get_session_factory()

    async def record(self, event: WebhookEvent) -> EventRecordResult:
        async with self.session_factory() as session:
            session.add(event)
            try:
                await session.commit()
                await session.refresh(event)
                return EventRecordResult(event=event)
            except IntegrityError:
                await session.rollback()

        existing = await self.get(event.event_id)
        if existing is None:
            # The unique constraint fired on something other than event_id
            raise RuntimeError(f"Could not store webhook event {event.event_id}")

        logger.info(
            "Webhook event already recorded",
            extra={"event_id": existing.event_id, "status": existing.status.value},
        )
        return EventRecordResult(event=existing, already_recorded=True)

    async def get(self, event_id: str) -> Optional[WebhookEvent]:
        async with self.session_factory() as session:
            result = await session.execute(
                select(WebhookEvent).where(WebhookEvent.event_id == event_id)
            )
            return result.scalar_one_or_none()

    async def mark_status(
        self,
        event_id: str,
        status: WebhookEventStatus,
        error_message: Optional[str] = None,
    ) -> Optional[WebhookEvent]:
        """Move an event to ``processed`` or ``failed``; the only mutation allowed."""
        async with self.session_factory() as session:
            result = await session.execute(
                select(WebhookEvent).where(WebhookEvent.event_id == event_id)
            )
            event = result.scalar_one_or_none()
            if event is None:
                logger.warning("Cannot update status, webhook event %s not found", event_id)
                return None

            event.status = status
            event.error_message = error_message
            event.updated_at = datetime.now(timezone.utc)
            session.add(event)
            await session.commit()
            await session.refresh(event)
            return event
