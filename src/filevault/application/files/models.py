"""Application files – FileMetadata, FileVersion and FileAccess records."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from filevault.application.files.enums import (
    AccessResult,
    DocumentType,
    FileOperation,
    ProcessingStatus,
    VersionChangeType,
    VirusScanStatus,
)

__all__ = ["FileAccess", "FileMetadata", "FileVersion", "ProcessingDetails"]


@dataclass
class FileMetadata:
    """Identity record of a stored file. Mutated only through FileAggregate."""

    id: str
    owner_id: str
    filename: str
    original_name: str
    content_type: str
    size: int
    storage_key: str
    checksum_md5: str
    checksum_sha256: str
    created_at: datetime
    updated_at: datetime
    project_id: str | None = None
    cdn_url: str | None = None
    virus_scan_status: VirusScanStatus = VirusScanStatus.PENDING
    processing_status: ProcessingStatus = ProcessingStatus.PENDING
    document_type: DocumentType = DocumentType.DOCUMENT
    version_count: int = 1
    tags: list[str] = field(default_factory=list)
    deleted_at: datetime | None = None

    @property
    def is_deleted(self) -> bool:
        return self.deleted_at is not None

    @property
    def size_mb(self) -> float:
        return self.size / (1024 * 1024)


@dataclass
class FileVersion:
    id: str
    file_id: str
    version_number: int
    created_at: datetime
    created_by: str
    change_type: VersionChangeType
    size: int
    checksum_md5: str
    checksum_sha256: str
    storage_key: str
    is_active: bool = True
    change_description: str = ""


@dataclass(frozen=True)
class FileAccess:
    id: str
    file_id: str
    user_id: str
    operation: FileOperation
    result: AccessResult
    accessed_at: datetime
    ip_address: str | None = None
    user_agent: str | None = None
    error_message: str | None = None


@dataclass(frozen=True)
class ProcessingDetails:
    """Free-form report attached to a processing-status transition."""

    processing_type: str | None = None
    started_at: datetime | None = None
    completed_at: datetime | None = None
    duration_ms: int | None = None
    error_message: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)
