"""Application processing – TaskQueue port and InMemoryTaskQueue."""
from __future__ import annotations

import abc
import itertools
from dataclasses import dataclass, field
from typing import Any

__all__ = ["Backoff", "EnqueuedJob", "InMemoryTaskQueue", "QueueStats", "TaskQueue"]


@dataclass(frozen=True)
class Backoff:
    """Retry schedule the queue applies between job attempts."""

    type: str = "exponential"
    delay_ms: int = 5000


@dataclass(frozen=True)
class QueueStats:
    waiting: int = 0
    active: int = 0
    completed: int = 0
    failed: int = 0
    paused: bool = False


@dataclass(frozen=True)
class EnqueuedJob:
    job_id: str
    name: str
    payload: dict[str, Any]
    priority: int
    attempts: int
    backoff: Backoff
    delay_ms: int = 0
    options: dict[str, Any] = field(default_factory=dict)


class TaskQueue(abc.ABC):
    """Port: the job queue consumed by an external worker pool.

    Retries of a failed job are the queue's responsibility, driven by the
    ``attempts`` and ``backoff`` given at enqueue time.
    """

    @abc.abstractmethod
    async def enqueue(
        self,
        job_name: str,
        payload: dict[str, Any],
        *,
        priority: int,
        attempts: int = 3,
        backoff: Backoff | None = None,
        delay_ms: int = 0,
    ) -> str: ...

    @abc.abstractmethod
    async def stats(self) -> QueueStats: ...


class InMemoryTaskQueue(TaskQueue):
    """Records jobs instead of running them; for tests and local use."""

    def __init__(self) -> None:
        self._ids = itertools.count(1)
        self._waiting: list[EnqueuedJob] = []
        self._active: dict[str, EnqueuedJob] = {}
        self._completed = 0
        self._failed = 0
        self.paused = False

    @property
    def jobs(self) -> tuple[EnqueuedJob, ...]:
        return tuple(self._waiting)

    async def enqueue(
        self,
        job_name: str,
        payload: dict[str, Any],
        *,
        priority: int,
        attempts: int = 3,
        backoff: Backoff | None = None,
        delay_ms: int = 0,
    ) -> str:
        job = EnqueuedJob(
            job_id=str(next(self._ids)),
            name=job_name,
            payload=dict(payload),
            priority=priority,
            attempts=attempts,
            backoff=backoff or Backoff(),
            delay_ms=delay_ms,
        )
        self._waiting.append(job)
        return job.job_id

    def take(self) -> EnqueuedJob | None:
        """Move the highest-priority waiting job to active (FIFO among equals)."""
        if self.paused or not self._waiting:
            return None
        job = max(self._waiting, key=lambda j: (j.priority, -int(j.job_id)))
        self._waiting.remove(job)
        self._active[job.job_id] = job
        return job

    def finish(self, job_id: str, *, failed: bool = False) -> None:
        del self._active[job_id]
        if failed:
            self._failed += 1
        else:
            self._completed += 1

    async def stats(self) -> QueueStats:
        return QueueStats(
            waiting=len(self._waiting),
            active=len(self._active),
            completed=self._completed,
            failed=self._failed,
            paused=self.paused,
        )
