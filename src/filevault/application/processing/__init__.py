"""Application processing – job queueing and the processing orchestrator."""
from filevault.application.processing.orchestrator import PROCESS_JOB_NAME, ProcessingOrchestrator, QueuedJob
from filevault.application.processing.priority import (
    MAX_PRIORITY,
    MIN_PRIORITY,
    ProcessingOptions,
    calculate_priority,
    estimate_duration,
    processing_delay_ms,
)
from filevault.application.processing.queue import Backoff, EnqueuedJob, InMemoryTaskQueue, QueueStats, TaskQueue

__all__ = [
    "Backoff",
    "EnqueuedJob",
    "InMemoryTaskQueue",
    "MAX_PRIORITY",
    "MIN_PRIORITY",
    "PROCESS_JOB_NAME",
    "ProcessingOptions",
    "ProcessingOrchestrator",
    "QueueStats",
    "QueuedJob",
    "TaskQueue",
    "calculate_priority",
    "estimate_duration",
    "processing_delay_ms",
]
