"""Application processing – ProcessingOrchestrator.

Hands uploaded files to the external worker pool, snapshots files before
destructive edits, and records what workers report back::

    orchestrator = ProcessingOrchestrator(repository, queue, gateway)
    job = await orchestrator.queue_processing(file_id)
    ...
    await orchestrator.report_processing_result(file_id, ProcessingStatus.COMPLETED)
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Awaitable, Callable

from filevault.application.files.aggregate import FileAggregate
from filevault.application.files.enums import ProcessingStatus, VersionChangeType
from filevault.application.files.models import FileVersion, ProcessingDetails
from filevault.application.files.repository import FileMetadataRepository
from filevault.application.processing.priority import (
    ProcessingOptions,
    calculate_priority,
    estimate_duration,
    processing_delay_ms,
)
from filevault.application.processing.queue import Backoff, QueueStats, TaskQueue
from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.config.file_system import FileSystemSettings
from filevault.kernel.ddd import EventPublisher, LoggingEventPublisher
from filevault.kernel.errors import invalid_processing_state, not_found, processing_timeout
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger
from filevault.resilience.timeouts import TimeoutPolicy

__all__ = ["PROCESS_JOB_NAME", "ProcessingOrchestrator", "QueuedJob"]

logger = get_logger(__name__)

PROCESS_JOB_NAME = "process-uploaded-file"

_REPROCESSABLE = frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED, ProcessingStatus.SKIPPED})

Processor = Callable[[FileAggregate], Awaitable[dict[str, Any] | None]]


@dataclass(frozen=True)
class QueuedJob:
    job_id: str
    priority: int
    estimated_duration: int
    status: str = "queued"


class ProcessingOrchestrator:
    def __init__(
        self,
        repository: FileMetadataRepository,
        queue: TaskQueue,
        gateway: ObjectStorageGateway,
        *,
        publisher: EventPublisher | None = None,
        attempts: int = 3,
        backoff: Backoff | None = None,
        timeout_seconds: float = 300.0,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._queue = queue
        self._gateway = gateway
        self._publisher = publisher or LoggingEventPublisher()
        self._attempts = attempts
        self._backoff = backoff or Backoff(type="exponential", delay_ms=5000)
        self._timeout = TimeoutPolicy(timeout_seconds)
        self._clock = clock or SystemClock()

    @classmethod
    def from_settings(
        cls,
        settings: FileSystemSettings,
        repository: FileMetadataRepository,
        queue: TaskQueue,
        gateway: ObjectStorageGateway,
        *,
        publisher: EventPublisher | None = None,
        clock: Clock | None = None,
    ) -> "ProcessingOrchestrator":
        return cls(
            repository,
            queue,
            gateway,
            publisher=publisher,
            attempts=settings.processing_attempts,
            backoff=Backoff(type="exponential", delay_ms=settings.processing_backoff_ms),
            timeout_seconds=settings.processing_timeout_seconds,
            clock=clock,
        )

    async def queue_processing(self, file_id: str, options: ProcessingOptions | None = None) -> QueuedJob:
        """Enqueue a PENDING file; enqueue failures propagate unchanged."""
        file = await self._load(file_id)
        if file.processing_status is not ProcessingStatus.PENDING:
            raise invalid_processing_state(file_id, file.processing_status.value, ProcessingStatus.PENDING.value)
        return await self._enqueue(file, options or ProcessingOptions())

    async def reprocess(self, file_id: str, options: ProcessingOptions | None = None) -> QueuedJob:
        """Queue a finished (completed, failed or skipped) file again."""
        file = await self._load(file_id)
        if file.processing_status not in _REPROCESSABLE:
            raise invalid_processing_state(file_id, file.processing_status.value, "completed|failed|skipped")
        base = options or ProcessingOptions()
        return await self._enqueue(
            file,
            ProcessingOptions(
                priority=base.priority,
                urgent=base.urgent,
                force_reprocess=True,
                user_id=base.user_id,
                reason=base.reason or "reprocess",
            ),
        )

    async def queue_stats(self) -> QueueStats:
        return await self._queue.stats()

    async def create_version(
        self,
        file_id: str,
        user_id: str,
        change_type: VersionChangeType = VersionChangeType.MANUAL_EDIT,
        description: str = "",
    ) -> FileVersion:
        """Snapshot the current object, then record the new version."""
        file = await self._load(file_id)
        file.ensure_versionable()
        version_number = file.metadata.version_count + 1
        snapshot_key = f"{file_id}/versions/{version_number}/{self._clock.timestamp_ms()}"
        await self._gateway.copy(file.metadata.storage_key, snapshot_key)
        version = file.create_version(
            description or f"Version {version_number}",
            user_id,
            change_type,
            storage_key=snapshot_key,
        )
        await self._save(file)
        logger.info(
            "processing.version_created",
            file_id=file_id,
            version_number=version.version_number,
            storage_key=snapshot_key,
            created_by=user_id,
        )
        return version

    async def report_processing_result(
        self,
        file_id: str,
        status: ProcessingStatus,
        details: ProcessingDetails | None = None,
    ) -> FileAggregate:
        """Apply a status reported by a worker through the state machine."""
        file = await self._load(file_id)
        file.update_processing_status(status, details)
        await self._save(file)
        return file

    async def process_inline(
        self,
        file_id: str,
        processor: Processor,
        timeout_seconds: float | None = None,
    ) -> FileAggregate:
        """Run *processor* in-process for a PENDING file under a timeout.

        Raises:
            FileSystemError: ``PROCESSING_TIMEOUT`` after the file has been
                marked failed.
        """
        file = await self._load(file_id)
        if file.processing_status is not ProcessingStatus.PENDING:
            raise invalid_processing_state(file_id, file.processing_status.value, ProcessingStatus.PENDING.value)
        started = self._clock.now()
        file.update_processing_status(
            ProcessingStatus.PROCESSING, ProcessingDetails(processing_type="inline", started_at=started)
        )
        await self._save(file)

        policy = self._timeout if timeout_seconds is None else TimeoutPolicy(timeout_seconds)
        try:
            extra = await policy.execute(lambda: processor(file))
        except TimeoutError:
            logger.error("processing.timeout", file_id=file_id, timeout_seconds=policy.timeout_seconds)
            await self._fail(file, started, f"Processing timed out after {policy.timeout_seconds}s")
            raise processing_timeout(file_id, policy.timeout_seconds) from None
        except Exception as exc:
            logger.error("processing.failed", file_id=file_id, error=str(exc))
            await self._fail(file, started, str(exc))
            raise

        completed = self._clock.now()
        file.update_processing_status(
            ProcessingStatus.COMPLETED,
            ProcessingDetails(
                processing_type="inline",
                started_at=started,
                completed_at=completed,
                duration_ms=int((completed - started).total_seconds() * 1000),
                extra=dict(extra or {}),
            ),
        )
        await self._save(file)
        return file

    async def _enqueue(self, file: FileAggregate, options: ProcessingOptions) -> QueuedJob:
        metadata = file.metadata
        priority = calculate_priority(metadata, options)
        payload = {
            "fileId": file.id,
            "ownerId": metadata.owner_id,
            "priority": priority,
            "attempts": self._attempts,
            "userId": options.user_id,
            "reason": options.reason or "post-upload processing",
            "forceReprocess": options.force_reprocess,
        }
        job_id = await self._queue.enqueue(
            PROCESS_JOB_NAME,
            payload,
            priority=priority,
            attempts=self._attempts,
            backoff=self._backoff,
            delay_ms=processing_delay_ms(metadata.size),
        )
        job = QueuedJob(
            job_id=str(job_id),
            priority=priority,
            estimated_duration=estimate_duration(metadata.content_type, metadata.size),
        )
        logger.info(
            "processing.queued",
            file_id=file.id,
            job_id=job.job_id,
            priority=priority,
            estimated_duration=job.estimated_duration,
        )
        return job

    async def _fail(self, file: FileAggregate, started: datetime, message: str) -> None:
        file.update_processing_status(
            ProcessingStatus.FAILED,
            ProcessingDetails(
                processing_type="inline",
                started_at=started,
                completed_at=self._clock.now(),
                error_message=message,
            ),
        )
        await self._save(file)

    async def _load(self, file_id: str) -> FileAggregate:
        file = await self._repository.find_by_id(file_id)
        if file is None:
            raise not_found("File", file_id)
        return file

    async def _save(self, file: FileAggregate) -> None:
        await self._repository.update(file)
        await self._publisher.publish_events(file.drain())
