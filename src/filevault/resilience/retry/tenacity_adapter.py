"""Resilience – TenacityRetryPolicy.

Thin wrapper around :class:`tenacity.AsyncRetrying` giving every caller the
same ``execute_async`` entry point and debug logging between attempts.
"""
from __future__ import annotations

from typing import Any, Awaitable, Callable, TypeVar

import tenacity

from filevault.observability.logging import get_logger

T = TypeVar("T")
logger = get_logger(__name__)


def _log_before_sleep(retry_state: tenacity.RetryCallState) -> None:
    outcome = retry_state.outcome
    logger.debug(
        "retry.scheduled",
        attempt=retry_state.attempt_number,
        delay=round(retry_state.next_action.sleep, 3) if retry_state.next_action else None,
        exc=repr(outcome.exception()) if outcome is not None else None,
    )


class TenacityRetryPolicy:
    """Retry policy backed by ``tenacity``.

    Parameters
    ----------
    max_attempts:
        Total number of calls including the first.
    wait:
        A tenacity wait strategy. Defaults to ``wait_fixed(1)``.
    retry:
        A tenacity retry predicate. Defaults to retrying any exception.
    reraise:
        Re-raise the last attempt's exception unchanged once attempts run
        out (instead of ``tenacity.RetryError``).
    kwargs:
        Forwarded to :class:`tenacity.AsyncRetrying` (``sleep=`` is handy in
        tests).

    Example
    -------
    ::

        policy = TenacityRetryPolicy(
            max_attempts=3,
            wait=tenacity.wait_exponential(multiplier=1.0, exp_base=2),
        )
        result = await policy.execute_async(lambda: client.head_object(...))
    """

    def __init__(
        self,
        max_attempts: int = 3,
        wait: Any = None,
        retry: Any = None,
        reraise: bool = True,
        **kwargs: Any,
    ) -> None:
        self._max_attempts = max_attempts
        self._wait = wait or tenacity.wait_fixed(1)
        self._retry = retry or tenacity.retry_if_exception_type(Exception)
        self._reraise = reraise
        self._extra_kwargs = kwargs

    @property
    def max_attempts(self) -> int:
        return self._max_attempts

    def _build_async_retrying(self) -> tenacity.AsyncRetrying:
        return tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(self._max_attempts),
            wait=self._wait,
            retry=self._retry,
            reraise=self._reraise,
            before_sleep=_log_before_sleep,
            **self._extra_kwargs,
        )

    async def execute_async(self, func: Callable[[], Awaitable[T]]) -> T:
        """Await *func* until it succeeds or attempts are exhausted."""
        async for attempt in self._build_async_retrying():
            with attempt:
                result = await func()
        return result  # type: ignore[return-value]


__all__ = ["TenacityRetryPolicy"]
