"""EventPublisher port – where drained aggregate events go."""
from __future__ import annotations

from typing import Protocol, runtime_checkable

from filevault.kernel.ddd.domain_event import DomainEvent
from filevault.observability.logging import get_logger

__all__ = ["EventPublisher", "LoggingEventPublisher"]

logger = get_logger(__name__)


@runtime_checkable
class EventPublisher(Protocol):
    """Port: receives the events an aggregate raised during one use case.

    Example::

        events = aggregate.drain()
        await publisher.publish_events(events)
    """

    async def publish_events(self, events: list[DomainEvent]) -> None: ...


class LoggingEventPublisher:
    """Writes each event to the structured log."""

    async def publish_events(self, events: list[DomainEvent]) -> None:
        for event in events:
            logger.info("domain_event", **event.to_dict())
