"""Application files – domain events raised by FileAggregate."""
from __future__ import annotations

import dataclasses
from datetime import datetime
from typing import Any

from filevault.kernel.ddd import DomainEvent

__all__ = [
    "FileAccessed",
    "FileDeleted",
    "FileProcessingError",
    "FileProcessingStatusChanged",
    "FileQuarantined",
    "FileRestored",
    "FileUploaded",
    "FileVersionCreated",
    "FileVirusScanStatusChanged",
]

_event = dataclasses.dataclass(frozen=True, kw_only=True)


@_event
class FileUploaded(DomainEvent):
    file_id: str
    owner_id: str
    filename: str
    size: int
    content_type: str


@_event
class FileVersionCreated(DomainEvent):
    file_id: str
    version_id: str
    version_number: int
    changed_by: str
    change_type: str
    description: str = ""


@_event
class FileProcessingStatusChanged(DomainEvent):
    file_id: str
    previous_status: str
    new_status: str
    details: dict[str, Any] | None = None


@_event
class FileProcessingError(DomainEvent):
    file_id: str
    error_message: str


@_event
class FileVirusScanStatusChanged(DomainEvent):
    file_id: str
    previous_status: str
    new_status: str
    threat_details: str | None = None


@_event
class FileQuarantined(DomainEvent):
    file_id: str
    reason: str
    threat_details: str | None = None


@_event
class FileAccessed(DomainEvent):
    file_id: str
    user_id: str
    operation: str
    result: str
    ip_address: str | None = None
    user_agent: str | None = None


@_event
class FileDeleted(DomainEvent):
    file_id: str
    deleted_by: str
    reason: str
    deleted_at: datetime


@_event
class FileRestored(DomainEvent):
    file_id: str
    restored_by: str
    previous_deleted_at: datetime
