"""AggregateRoot – buffers domain events until the caller drains them."""

from __future__ import annotations

from filevault.kernel.ddd.domain_event import DomainEvent
from filevault.kernel.ddd.entity import Entity


class AggregateRoot(Entity):
    """Aggregate root owning an append-only buffer of pending events.

    Mutators call :meth:`_raise_event`; the application layer calls
    :meth:`drain` once per use case and forwards the events to audit
    and notification collaborators. Not safe for concurrent mutation.
    """

    def __init__(self, id: str) -> None:  # noqa: A002
        super().__init__(id)
        self._revision = 0
        self._events: list[DomainEvent] = []

    def _raise_event(self, event: DomainEvent) -> None:
        self._events.append(event)
        self._revision += 1

    def drain(self) -> list[DomainEvent]:
        """Return a copy of the pending events and clear the buffer."""
        events = list(self._events)
        self._events.clear()
        return events

    def pull_events(self) -> list[DomainEvent]:
        """Alias for :meth:`drain`."""
        return self.drain()

    @property
    def pending_events(self) -> tuple[DomainEvent, ...]:
        return tuple(self._events)

    @property
    def revision(self) -> int:
        """Number of events raised over the aggregate's in-memory lifetime."""
        return self._revision


__all__ = ["AggregateRoot"]
