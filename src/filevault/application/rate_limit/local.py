"""Application rate limiting – in-memory fixed-window backend."""

from __future__ import annotations

import ipaddress
from datetime import datetime, timedelta

from filevault.application.rate_limit.rate_limiter import Quota, RateLimitBackend, RateLimitStatus
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger

__all__ = ["InMemoryRateLimitBackend", "is_ip_address"]

logger = get_logger(__name__)

# Share of the quota at which a warning is logged.
_WARN_RATIO = 0.8


def is_ip_address(identifier: str) -> bool:
    try:
        ipaddress.ip_address(identifier)
    except ValueError:
        return False
    return True


class InMemoryRateLimitBackend(RateLimitBackend):
    """Single-process fixed-window counters.

    Identifiers that parse as IP addresses use ``ip_quota``; anything else
    is treated as a user id and uses ``user_quota``. The window opens with
    the first increment and resets ``window_seconds`` later.
    """

    def __init__(
        self,
        user_quota: Quota = Quota(limit=10),
        ip_quota: Quota = Quota(limit=20),
        clock: Clock | None = None,
    ) -> None:
        self._user_quota = user_quota
        self._ip_quota = ip_quota
        self._clock = clock or SystemClock()
        # key -> (count, window_start)
        self._windows: dict[str, tuple[int, datetime]] = {}

    def quota_for(self, identifier: str) -> Quota:
        return self._ip_quota if is_ip_address(identifier) else self._user_quota

    def _key(self, identifier: str, operation: str) -> str:
        scope = "ip" if is_ip_address(identifier) else "user"
        return f"rate_limit:{scope}:{identifier}:{operation}"

    @property
    def active_windows(self) -> int:
        return len(self._windows)

    def _expired(self, started: datetime, now: datetime, quota: Quota) -> bool:
        return (now - started).total_seconds() >= quota.window_seconds

    def _current(self, key: str, quota: Quota) -> tuple[int, datetime]:
        now = self._clock.now()
        count, started = self._windows.get(key, (0, now))
        if self._expired(started, now, quota):
            self._windows.pop(key, None)
            return 0, now
        return count, started

    def _evict_expired(self) -> None:
        now = self._clock.now()
        for key, (_, started) in list(self._windows.items()):
            quota = self._ip_quota if key.startswith("rate_limit:ip:") else self._user_quota
            if self._expired(started, now, quota):
                del self._windows[key]

    async def check_limit(self, identifier: str, operation: str) -> RateLimitStatus:
        quota = self.quota_for(identifier)
        count, started = self._current(self._key(identifier, operation), quota)
        allowed = count < quota.limit
        logger.debug("rate_limit.checked", identifier=identifier, operation=operation, count=count, limit=quota.limit)
        return RateLimitStatus(
            allowed=allowed,
            limit=quota.limit,
            remaining=max(0, quota.limit - count),
            reset_time=started + timedelta(seconds=quota.window_seconds),
        )

    async def increment_counter(self, identifier: str, operation: str) -> None:
        self._evict_expired()
        quota = self.quota_for(identifier)
        key = self._key(identifier, operation)
        count, started = self._current(key, quota)
        count += 1
        self._windows[key] = (count, started)
        if count >= quota.limit * _WARN_RATIO:
            logger.warning("rate_limit.near_limit", identifier=identifier, operation=operation, count=count, limit=quota.limit)

    async def reset(self, identifier: str, operation: str | None = None) -> None:
        if operation is not None:
            self._windows.pop(self._key(identifier, operation), None)
            return
        prefix = self._key(identifier, "")
        for key in [k for k in self._windows if k.startswith(prefix)]:
            del self._windows[key]
