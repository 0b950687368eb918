"""Application processing – job priority, start delay and duration estimates.

Priorities run from 1 (lowest) to 10 (highest).
"""
from __future__ import annotations

import math
from dataclasses import dataclass

from filevault.application.files.enums import DocumentType
from filevault.application.files.models import FileMetadata

__all__ = [
    "MAX_PRIORITY",
    "MIN_PRIORITY",
    "ProcessingOptions",
    "calculate_priority",
    "estimate_duration",
    "processing_delay_ms",
]

MIN_PRIORITY = 1
MAX_PRIORITY = 10
BASE_PRIORITY = 5
URGENT_FLOOR = 8

_MB = 1024 * 1024


@dataclass(frozen=True)
class ProcessingOptions:
    priority: int | None = None
    urgent: bool = False
    force_reprocess: bool = False
    user_id: str | None = None
    reason: str | None = None


def calculate_priority(metadata: FileMetadata, options: ProcessingOptions | None = None) -> int:
    """Score a job; small, confidential and urgent files go first.

    An explicit ``options.priority`` replaces the computed score before the
    urgency bump and the final clamp are applied.
    """
    options = options or ProcessingOptions()
    priority = BASE_PRIORITY
    if metadata.size < _MB:
        priority += 2
    if metadata.document_type is DocumentType.CONFIDENTIAL:
        priority += 2
    if options.force_reprocess:
        priority += 1
    if metadata.size > 50 * _MB:
        priority -= 1
    if options.priority is not None:
        priority = options.priority
    if options.urgent:
        priority = max(priority + 3, URGENT_FLOOR)
    return min(max(priority, MIN_PRIORITY), MAX_PRIORITY)


def processing_delay_ms(size: int) -> int:
    size_mb = size / _MB
    if size_mb < 1:
        return 0
    if size_mb < 10:
        return 1000
    if size_mb < 50:
        return 5000
    return 10000


def estimate_duration(content_type: str, size: int) -> int:
    """Rough processing time in seconds."""
    size_mb = size / _MB
    if content_type.startswith("image/"):
        return max(5, math.ceil(size_mb * 2))
    if content_type == "application/pdf":
        return max(10, math.ceil(size_mb * 3))
    return max(3, math.ceil(size_mb))
