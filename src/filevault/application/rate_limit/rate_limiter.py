"""Application rate limiting – RateLimitBackend port, Quota and RateLimitStatus."""
from __future__ import annotations

import abc
import dataclasses
from datetime import datetime

from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger

__all__ = ["FailOpenRateLimitBackend", "Quota", "RateLimitBackend", "RateLimitStatus"]

logger = get_logger(__name__)


@dataclasses.dataclass(frozen=True)
class Quota:
    """``limit`` operations per ``window_seconds``."""
    limit: int
    window_seconds: int = 60

    @property
    def window_label(self) -> str:
        return f"{self.limit} req/{self.window_seconds}s"


@dataclasses.dataclass(frozen=True)
class RateLimitStatus:
    allowed: bool
    limit: int
    remaining: int
    reset_time: datetime


class RateLimitBackend(abc.ABC):
    """Port: per-identifier operation counters.

    ``check_limit`` only reads; ``increment_counter`` records one operation.
    The two calls are not atomic together: concurrent callers can both pass
    the check before either increments.
    """

    @abc.abstractmethod
    async def check_limit(self, identifier: str, operation: str) -> RateLimitStatus: ...

    @abc.abstractmethod
    async def increment_counter(self, identifier: str, operation: str) -> None: ...

    @abc.abstractmethod
    async def reset(self, identifier: str, operation: str | None = None) -> None: ...


class FailOpenRateLimitBackend(RateLimitBackend):
    """Wrap a remote backend so its outages never block uploads.

    Failed checks are logged and reported as allowed with ``limit=0``; failed
    increments are logged and dropped.
    """

    def __init__(self, inner: RateLimitBackend, clock: Clock | None = None) -> None:
        self._inner = inner
        self._clock = clock or SystemClock()

    async def check_limit(self, identifier: str, operation: str) -> RateLimitStatus:
        try:
            return await self._inner.check_limit(identifier, operation)
        except Exception as exc:  # noqa: BLE001
            logger.error("rate_limit.check_failed", identifier=identifier, operation=operation, error=str(exc))
            return RateLimitStatus(allowed=True, limit=0, remaining=0, reset_time=self._clock.now())

    async def increment_counter(self, identifier: str, operation: str) -> None:
        try:
            await self._inner.increment_counter(identifier, operation)
        except Exception as exc:  # noqa: BLE001
            logger.error("rate_limit.increment_failed", identifier=identifier, operation=operation, error=str(exc))

    async def reset(self, identifier: str, operation: str | None = None) -> None:
        await self._inner.reset(identifier, operation)
