"""Testing fakes – RecordingEventPublisher."""
from __future__ import annotations

from filevault.kernel.ddd import DomainEvent


class RecordingEventPublisher:
    def __init__(self) -> None:
        self.events: list[DomainEvent] = []

    async def publish_events(self, events: list[DomainEvent]) -> None:
        self.events.extend(events)

    def of_type(self, event_type: type[DomainEvent]) -> list[DomainEvent]:
        return [e for e in self.events if isinstance(e, event_type)]


__all__ = ["RecordingEventPublisher"]
