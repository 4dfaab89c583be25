"""
Domain events and the in-process event bus.

Services publish after their unit of work commits. Delivery is
at-least-once and unordered across entities: a handler may see the same
event more than once (failed handlers are retried) and must reconcile
idempotently by re-reading current state.
"""
import logging
import uuid
from collections import defaultdict
from datetime import datetime
from decimal import Decimal
from typing import Any, Awaitable, Callable, Dict, List, Optional

from pydantic import BaseModel, Field
from tenacity import AsyncRetrying, RetryCallState, RetryError, stop_after_attempt, wait_exponential

from fulfillment.config import settings

logger = logging.getLogger(__name__)


class Topics:
    APPLICATION_APPROVED = "application.approved"
    APPLICATION_REJECTED = "application.rejected"
    TASK_STATUS_CHANGED = "task.status_changed"
    SHIPMENT_STATUS_CHANGED = "shipment.status_changed"
    CONTENT_UPLOADED = "content.uploaded"
    REVISION_REQUESTED = "content.revision_requested"
    PAYMENT_CREATED = "payment.created"
    PAYMENT_PAID = "payment.paid"
    PAYMENT_FAILED = "payment.failed"
    BATCH_PAYOUT_EXECUTED = "batch_payout.executed"
    DISPUTE_OPENED = "dispute.opened"
    DISPUTE_RESOLVED = "dispute.resolved"


class EventMetadata(BaseModel):
    """Tracking metadata attached to every event."""
    event_id: str = Field(default_factory=lambda: f"evt_{uuid.uuid4().hex}")
    timestamp: datetime = Field(default_factory=datetime.utcnow)
    actor_id: Optional[str] = None
    actor_role: Optional[str] = None


class DomainEvent(BaseModel):
    """A state change on one entity."""
    topic: str
    entity: str
    entity_id: str
    payload: Dict[str, Any] = Field(default_factory=dict)
    metadata: EventMetadata = Field(default_factory=EventMetadata)


EventHandler = Callable[[DomainEvent], Awaitable[None]]


class EventBus:
    """Named-topic publish/subscribe. Subscribe to "*" to receive every topic."""

    def __init__(self, max_attempts: Optional[int] = None, backoff_seconds: Optional[float] = None):
        self.max_attempts = max_attempts or settings.EVENT_DELIVERY_ATTEMPTS
        self.backoff_seconds = settings.EVENT_RETRY_BACKOFF_SECONDS if backoff_seconds is None else backoff_seconds
        self._handlers: Dict[str, List[EventHandler]] = defaultdict(list)

    def subscribe(self, topic: str, handler: EventHandler) -> None:
        self._handlers[topic].append(handler)

    def unsubscribe(self, topic: str, handler: EventHandler) -> None:
        if handler in self._handlers.get(topic, []):
            self._handlers[topic].remove(handler)

    def clear(self) -> None:
        self._handlers.clear()

    async def publish(self, event: DomainEvent) -> int:
        """
        Deliver an event to every subscriber of its topic.

        Returns the number of handlers that eventually succeeded. Handler
        failures never propagate to the publisher.
        """
        handlers = list(self._handlers.get(event.topic, [])) + list(self._handlers.get("*", []))
        delivered = 0
        for handler in handlers:
            if await self._deliver(handler, event):
                delivered += 1
        return delivered

    async def _deliver(self, handler: EventHandler, event: DomainEvent) -> bool:
        name = getattr(handler, "__name__", handler)

        def log_retry(state: RetryCallState) -> None:
            logger.warning(
                f"Handler {name} failed on {event.topic} "
                f"(attempt {state.attempt_number}/{self.max_attempts}): {state.outcome.exception()}"
            )

        try:
            async for attempt in AsyncRetrying(
                stop=stop_after_attempt(self.max_attempts),
                wait=wait_exponential(multiplier=self.backoff_seconds, max=10),
                before_sleep=log_retry,
            ):
                with attempt:
                    await handler(event)
        except RetryError as e:
            logger.error(
                f"Giving up delivering {event.metadata.event_id} ({event.topic}) to {name}: "
                f"{e.last_attempt.exception()}"
            )
            return False
        return True


# Process-wide bus
event_bus = EventBus()


def to_jsonable(value: Any) -> Any:
    if isinstance(value, uuid.UUID):
        return str(value)
    if isinstance(value, datetime):
        return value.isoformat()
    if isinstance(value, Decimal):
        return str(value)
    if isinstance(value, (list, tuple)):
        return [to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {key: to_jsonable(item) for key, item in value.items()}
    return value


async def emit(
    topic: str,
    entity: str,
    entity_id: Any,
    actor=None,
    bus: Optional[EventBus] = None,
    **payload: Any
) -> int:
    """Build a DomainEvent and publish it on the process-wide bus."""
    event = DomainEvent(
        topic=topic,
        entity=entity,
        entity_id=str(entity_id),
        payload={key: to_jsonable(value) for key, value in payload.items()},
        metadata=EventMetadata(
            actor_id=str(actor.id) if actor else None,
            actor_role=actor.role.value if actor else None,
        ),
    )
    return await (bus or event_bus).publish(event)
