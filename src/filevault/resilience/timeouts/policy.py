"""Resilience – TimeoutPolicy."""
from __future__ import annotations

import asyncio
import dataclasses
from typing import Awaitable, Callable, TypeVar

T = TypeVar("T")


@dataclasses.dataclass(frozen=True)
class TimeoutPolicy:
    """Race an awaitable against a timer.

    When the timer wins the operation is cancelled and the builtin
    :class:`TimeoutError` is raised; callers decide how to report it.
    """

    timeout_seconds: float

    @classmethod
    def from_millis(cls, timeout_ms: int) -> "TimeoutPolicy":
        return cls(timeout_seconds=timeout_ms / 1000)

    async def execute(self, func: Callable[[], Awaitable[T]]) -> T:
        try:
            return await asyncio.wait_for(func(), timeout=self.timeout_seconds)
        except asyncio.TimeoutError as exc:
            raise TimeoutError(f"Operation timed out after {self.timeout_seconds}s") from exc


__all__ = ["TimeoutPolicy"]
