"""Domain events recorded by aggregates."""

from __future__ import annotations

import dataclasses
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4


@dataclasses.dataclass(frozen=True)
class DomainEvent:
    """Base class for domain events.

    Subclasses add their payload as keyword-only fields so the base defaults
    never clash with required payload fields::

        @dataclasses.dataclass(frozen=True, kw_only=True)
        class FileDeleted(DomainEvent):
            file_id: str
            deleted_by: str
    """

    event_id: str = dataclasses.field(default_factory=lambda: str(uuid4()))
    occurred_at: datetime = dataclasses.field(default_factory=lambda: datetime.now(UTC))

    @property
    def event_type(self) -> str:
        return type(self).__name__

    def to_dict(self) -> dict[str, Any]:
        payload = dataclasses.asdict(self)
        payload["event_type"] = self.event_type
        return payload


__all__ = ["DomainEvent"]
