"""Resilience – backoff strategies."""
from __future__ import annotations

import abc


class BackoffStrategy(abc.ABC):
    """Seconds to wait after the *attempt*-th failure."""

    @abc.abstractmethod
    def compute(self, attempt: int) -> float: ...


class ExponentialBackoff(BackoffStrategy):
    """``base_delay * 2^(attempt + offset)``, capped at ``max_delay``.

    ``offset=0`` gives 2s, 4s, 8s... for ``base_delay=1``; ``offset=-1``
    gives 1s, 2s, 4s...
    """

    def __init__(self, base_delay: float = 1.0, max_delay: float = 60.0, offset: int = 0) -> None:
        self._base = base_delay
        self._max = max_delay
        self._offset = offset

    def compute(self, attempt: int) -> float:
        return min(self._base * (2 ** (attempt + self._offset)), self._max)


__all__ = ["BackoffStrategy", "ExponentialBackoff"]
