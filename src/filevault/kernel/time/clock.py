"""Kernel time – Clock protocol and implementations."""
from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Protocol


class Clock(Protocol):
    """Port: source of the current time, swappable in tests."""

    def now(self) -> datetime: ...
    def timestamp_ms(self) -> int: ...


class SystemClock:
    """Wall clock in UTC."""

    def now(self) -> datetime:
        return datetime.now(UTC)

    def timestamp_ms(self) -> int:
        return int(datetime.now(UTC).timestamp() * 1000)


class FrozenClock:
    """Clock pinned to a fixed instant until advanced explicitly."""

    def __init__(self, fixed: datetime) -> None:
        self._fixed = fixed

    def now(self) -> datetime:
        return self._fixed

    def timestamp_ms(self) -> int:
        return int(self._fixed.timestamp() * 1000)

    def advance(self, **kwargs: int | float) -> None:
        """Move the frozen instant forward by ``timedelta(**kwargs)``."""
        self._fixed += timedelta(**kwargs)


__all__ = ["Clock", "FrozenClock", "SystemClock"]
