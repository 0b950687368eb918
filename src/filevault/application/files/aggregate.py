"""Application files – FileAggregate.

Owns a file's metadata, its version history, a bounded in-memory access log
and the processing-status state machine::

    PENDING    -> PROCESSING | FAILED | SKIPPED
    PROCESSING -> COMPLETED | FAILED
    COMPLETED  -> PROCESSING      (reprocess)
    FAILED     -> PROCESSING      (retry)
    SKIPPED    -> PROCESSING

Every mutator records domain events; the application layer drains them with
:meth:`drain` after each use case. Callers must serialise mutations of
a single file.
"""
from __future__ import annotations

import dataclasses
import uuid
from typing import Iterable

from filevault.application.files.enums import (
    AccessResult,
    FileOperation,
    ProcessingStatus,
    VersionChangeType,
    VirusScanStatus,
)
from filevault.application.files.events import (
    FileAccessed,
    FileDeleted,
    FileProcessingError,
    FileProcessingStatusChanged,
    FileQuarantined,
    FileRestored,
    FileUploaded,
    FileVersionCreated,
    FileVirusScanStatusChanged,
)
from filevault.application.files.models import FileAccess, FileMetadata, FileVersion, ProcessingDetails
from filevault.application.files.upload import UploadedFile
from filevault.kernel.ddd import AggregateRoot, Invariant
from filevault.kernel.errors import invalid_state_transition, invalid_version, validation_error
from filevault.kernel.time import Clock, SystemClock

__all__ = ["ACCESS_LOG_LIMIT", "ALLOWED_TRANSITIONS", "FileAggregate"]

ACCESS_LOG_LIMIT = 100

ALLOWED_TRANSITIONS: dict[ProcessingStatus, frozenset[ProcessingStatus]] = {
    ProcessingStatus.PENDING: frozenset(
        {ProcessingStatus.PROCESSING, ProcessingStatus.FAILED, ProcessingStatus.SKIPPED}
    ),
    ProcessingStatus.PROCESSING: frozenset({ProcessingStatus.COMPLETED, ProcessingStatus.FAILED}),
    ProcessingStatus.COMPLETED: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.FAILED: frozenset({ProcessingStatus.PROCESSING}),
    ProcessingStatus.SKIPPED: frozenset({ProcessingStatus.PROCESSING}),
}

_READ_ONLY = frozenset({FileOperation.READ})


class FileAggregate(AggregateRoot):
    def __init__(
        self,
        metadata: FileMetadata,
        versions: Iterable[FileVersion] = (),
        access_logs: Iterable[FileAccess] = (),
        clock: Clock | None = None,
    ) -> None:
        super().__init__(metadata.id)
        self._metadata = metadata
        self._versions: list[FileVersion] = list(versions)
        self._access_logs: list[FileAccess] = list(access_logs)[-ACCESS_LOG_LIMIT:]
        self._clock = clock or SystemClock()
        self._validate_initial_state()

    @classmethod
    def create(
        cls,
        file: UploadedFile,
        owner_id: str,
        storage_key: str,
        *,
        file_id: str | None = None,
        clock: Clock | None = None,
    ) -> "FileAggregate":
        """Build a freshly uploaded file with its initial active version."""
        clock = clock or SystemClock()
        now = clock.now()
        file_id = file_id or str(uuid.uuid4())
        metadata = FileMetadata(
            id=file_id,
            owner_id=owner_id,
            project_id=file.project_id,
            filename=file.filename,
            original_name=file.original_name,
            content_type=file.content_type,
            size=file.size_bytes,
            storage_key=storage_key,
            checksum_md5=file.checksum_md5,
            checksum_sha256=file.checksum_sha256,
            document_type=file.document_type,
            tags=list(file.tags),
            created_at=now,
            updated_at=now,
        )
        initial = FileVersion(
            id=str(uuid.uuid4()),
            file_id=file_id,
            version_number=1,
            created_at=now,
            created_by=owner_id,
            change_type=VersionChangeType.INITIAL_UPLOAD,
            size=file.size_bytes,
            checksum_md5=file.checksum_md5,
            checksum_sha256=file.checksum_sha256,
            storage_key=storage_key,
            change_description="Initial upload",
        )
        aggregate = cls(metadata, versions=[initial], clock=clock)
        aggregate._raise_event(
            FileUploaded(
                occurred_at=now,
                file_id=file_id,
                owner_id=owner_id,
                filename=file.filename,
                size=file.size_bytes,
                content_type=file.content_type,
            )
        )
        return aggregate

    # ------------------------------------------------------------------
    # Read model
    # ------------------------------------------------------------------

    @property
    def metadata(self) -> FileMetadata:
        """A detached copy; mutate the file through the aggregate's methods."""
        return dataclasses.replace(self._metadata, tags=list(self._metadata.tags))

    @property
    def owner_id(self) -> str:
        return self._metadata.owner_id

    @property
    def processing_status(self) -> ProcessingStatus:
        return self._metadata.processing_status

    @property
    def virus_scan_status(self) -> VirusScanStatus:
        return self._metadata.virus_scan_status

    @property
    def is_deleted(self) -> bool:
        return self._metadata.deleted_at is not None

    @property
    def versions(self) -> tuple[FileVersion, ...]:
        return tuple(self._versions)

    @property
    def access_logs(self) -> tuple[FileAccess, ...]:
        return tuple(self._access_logs)

    def current_version(self) -> FileVersion | None:
        return next((v for v in self._versions if v.is_active), None)

    def get_version(self, version_number: int) -> FileVersion | None:
        return next((v for v in self._versions if v.version_number == version_number), None)

    def total_versions_size(self) -> int:
        return sum(v.size for v in self._versions)

    # ------------------------------------------------------------------
    # Versioning
    # ------------------------------------------------------------------

    def create_version(
        self,
        description: str,
        changed_by: str,
        change_type: VersionChangeType = VersionChangeType.MANUAL_EDIT,
        *,
        storage_key: str | None = None,
    ) -> FileVersion:
        """Append a new active version numbered ``version_count + 1``."""
        self.ensure_versionable()
        now = self._clock.now()
        for version in self._versions:
            version.is_active = False

        version = FileVersion(
            id=str(uuid.uuid4()),
            file_id=self.id,
            version_number=self._metadata.version_count + 1,
            created_at=now,
            created_by=changed_by,
            change_type=change_type,
            size=self._metadata.size,
            checksum_md5=self._metadata.checksum_md5,
            checksum_sha256=self._metadata.checksum_sha256,
            storage_key=storage_key or f"{self.id}/versions/{self._clock.timestamp_ms()}",
            change_description=description,
        )
        self._versions.append(version)
        self._metadata.version_count += 1
        self._touch()
        self._raise_event(
            FileVersionCreated(
                occurred_at=now,
                file_id=self.id,
                version_id=version.id,
                version_number=version.version_number,
                changed_by=changed_by,
                change_type=change_type.value,
                description=description,
            )
        )
        return version

    def restore_version(self, version_number: int, restored_by: str) -> FileVersion:
        """Make the content of *version_number* current again as a new version."""
        self.ensure_versionable()
        target = self.get_version(version_number)
        if target is None:
            raise invalid_version(self.id, f"version {version_number} does not exist")
        self._metadata.size = target.size
        self._metadata.checksum_md5 = target.checksum_md5
        self._metadata.checksum_sha256 = target.checksum_sha256
        self._metadata.storage_key = target.storage_key
        return self.create_version(
            f"Restored from version {version_number}",
            restored_by,
            VersionChangeType.RESTORE,
            storage_key=target.storage_key,
        )

    # ------------------------------------------------------------------
    # Status
    # ------------------------------------------------------------------

    def can_transition_to(self, status: ProcessingStatus) -> bool:
        return status in ALLOWED_TRANSITIONS[self._metadata.processing_status]

    def update_processing_status(self, status: ProcessingStatus, details: ProcessingDetails | None = None) -> None:
        previous = self._metadata.processing_status
        if not self.can_transition_to(status):
            raise invalid_state_transition(self.id, previous.value, status.value)

        self._metadata.processing_status = status
        self._touch()
        now = self._clock.now()
        self._raise_event(
            FileProcessingStatusChanged(
                occurred_at=now,
                file_id=self.id,
                previous_status=previous.value,
                new_status=status.value,
                details=dataclasses.asdict(details) if details is not None else None,
            )
        )
        if status is ProcessingStatus.FAILED and details is not None and details.error_message:
            self._raise_event(
                FileProcessingError(occurred_at=now, file_id=self.id, error_message=details.error_message)
            )

    def update_virus_scan_status(self, status: VirusScanStatus, threat_details: str | None = None) -> None:
        previous = self._metadata.virus_scan_status
        self._metadata.virus_scan_status = status
        self._touch()
        now = self._clock.now()
        self._raise_event(
            FileVirusScanStatusChanged(
                occurred_at=now,
                file_id=self.id,
                previous_status=previous.value,
                new_status=status.value,
                threat_details=threat_details,
            )
        )
        if status is VirusScanStatus.INFECTED:
            self._raise_event(
                FileQuarantined(
                    occurred_at=now,
                    file_id=self.id,
                    reason="MALWARE_DETECTED",
                    threat_details=threat_details,
                )
            )

    # ------------------------------------------------------------------
    # Access
    # ------------------------------------------------------------------

    def can_access(self, user_id: str, operation: FileOperation) -> bool:
        if user_id == self._metadata.owner_id:
            return True
        if self.is_deleted:
            return False
        if self._metadata.virus_scan_status is VirusScanStatus.INFECTED:
            return operation in _READ_ONLY
        if self._metadata.processing_status is ProcessingStatus.PROCESSING:
            return operation in _READ_ONLY
        # Shared and project-level access are not modelled yet.
        return False

    def log_access(
        self,
        user_id: str,
        operation: FileOperation,
        result: AccessResult,
        *,
        ip_address: str | None = None,
        user_agent: str | None = None,
        error_message: str | None = None,
    ) -> FileAccess:
        now = self._clock.now()
        access = FileAccess(
            id=str(uuid.uuid4()),
            file_id=self.id,
            user_id=user_id,
            operation=operation,
            result=result,
            accessed_at=now,
            ip_address=ip_address,
            user_agent=user_agent,
            error_message=error_message,
        )
        self._access_logs.append(access)
        if len(self._access_logs) > ACCESS_LOG_LIMIT:
            del self._access_logs[:-ACCESS_LOG_LIMIT]
        self._raise_event(
            FileAccessed(
                occurred_at=now,
                file_id=self.id,
                user_id=user_id,
                operation=operation.value,
                result=result.value,
                ip_address=ip_address,
                user_agent=user_agent,
            )
        )
        return access

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def mark_as_deleted(self, deleted_by: str, reason: str) -> None:
        if self.is_deleted:
            raise validation_error(f"File {self.id} is already deleted")
        now = self._clock.now()
        self._metadata.deleted_at = now
        self._touch()
        self._raise_event(
            FileDeleted(occurred_at=now, file_id=self.id, deleted_by=deleted_by, reason=reason, deleted_at=now)
        )

    def restore(self, restored_by: str) -> None:
        previous = self._metadata.deleted_at
        if previous is None:
            raise validation_error(f"File {self.id} is not deleted")
        self._metadata.deleted_at = None
        self._touch()
        self._raise_event(
            FileRestored(
                occurred_at=self._clock.now(),
                file_id=self.id,
                restored_by=restored_by,
                previous_deleted_at=previous,
            )
        )

    def add_tags(self, *tags: str) -> None:
        for tag in tags:
            if tag not in self._metadata.tags:
                self._metadata.tags.append(tag)
        self._touch()

    def remove_tags(self, *tags: str) -> None:
        self._metadata.tags = [t for t in self._metadata.tags if t not in tags]
        self._touch()

    # ------------------------------------------------------------------

    def ensure_versionable(self) -> None:
        """Raise ``INVALID_VERSION`` while the file is processing or deleted."""
        if self._metadata.processing_status is ProcessingStatus.PROCESSING:
            raise invalid_version(self.id, "file is being processed")
        if self.is_deleted:
            raise invalid_version(self.id, "file is deleted")

    def _touch(self) -> None:
        self._metadata.updated_at = self._clock.now()

    def _validate_initial_state(self) -> None:
        Invariant.not_blank(self._metadata.id, "id")
        Invariant.not_blank(self._metadata.owner_id, "owner_id")
        Invariant.require(self._metadata.size >= 0, "Invalid file size: cannot be negative")
        Invariant.not_blank(self._metadata.checksum_md5, "checksum_md5")
        Invariant.not_blank(self._metadata.checksum_sha256, "checksum_sha256")
        Invariant.require(self._metadata.version_count >= 1, "version_count must be at least 1")
