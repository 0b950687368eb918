"""Application files – FileMetadataRepository port and in-memory implementation."""
from __future__ import annotations

import abc
import copy
from dataclasses import dataclass, field
from datetime import datetime
from typing import Iterable

from filevault.application.files.aggregate import FileAggregate
from filevault.application.files.enums import DocumentType, ProcessingStatus, VirusScanStatus
from filevault.kernel.errors import not_found, validation_error

__all__ = ["FileFilters", "FileMetadataRepository", "InMemoryFileMetadataRepository", "StorageUsage"]


@dataclass(frozen=True)
class FileFilters:
    """Optional criteria for :meth:`FileMetadataRepository.find_by_user_id`."""

    project_id: str | None = None
    content_type: str | None = None
    document_type: DocumentType | None = None
    processing_status: ProcessingStatus | None = None
    virus_scan_status: VirusScanStatus | None = None
    tags: tuple[str, ...] = ()
    include_deleted: bool = False
    limit: int = 50
    offset: int = 0


@dataclass(frozen=True)
class StorageUsage:
    total_size: int = 0
    file_count: int = 0
    version_count: int = 0
    by_content_type: dict[str, int] = field(default_factory=dict)


class FileMetadataRepository(abc.ABC):
    """Port: persistence of file aggregates."""

    @abc.abstractmethod
    async def create(self, file: FileAggregate) -> FileAggregate: ...

    @abc.abstractmethod
    async def find_by_id(self, file_id: str) -> FileAggregate | None: ...

    @abc.abstractmethod
    async def find_by_user_id(self, user_id: str, filters: FileFilters | None = None) -> list[FileAggregate]: ...

    @abc.abstractmethod
    async def update(self, file: FileAggregate) -> FileAggregate: ...

    @abc.abstractmethod
    async def delete(self, file_id: str) -> None: ...

    @abc.abstractmethod
    async def find_by_storage_key(self, storage_key: str) -> FileAggregate | None: ...

    @abc.abstractmethod
    async def find_by_checksum(self, checksum_sha256: str) -> list[FileAggregate]: ...

    @abc.abstractmethod
    async def find_by_tags(self, tags: list[str], match_all: bool = False) -> list[FileAggregate]: ...

    @abc.abstractmethod
    async def find_pending_processing(self, limit: int = 100) -> list[FileAggregate]: ...

    @abc.abstractmethod
    async def find_expired_files(self, older_than: datetime) -> list[FileAggregate]: ...

    @abc.abstractmethod
    async def get_user_storage_usage(self, user_id: str) -> StorageUsage: ...

    @abc.abstractmethod
    async def get_project_storage_usage(self, project_id: str) -> StorageUsage: ...


class InMemoryFileMetadataRepository(FileMetadataRepository):
    """Dict-backed repository for tests and single-process use.

    Aggregates are deep-copied on the way in and out so callers never share
    mutable state with the store. Pending domain events are not persisted.
    """

    def __init__(self) -> None:
        self._files: dict[str, FileAggregate] = {}

    def _copy(self, file: FileAggregate) -> FileAggregate:
        # the clock is shared, not copied
        clock = file._clock  # noqa: SLF001
        return copy.deepcopy(file, {id(clock): clock})

    def _store(self, file: FileAggregate) -> None:
        stored = self._copy(file)
        stored.drain()
        self._files[file.id] = stored

    def _load(self, file: FileAggregate) -> FileAggregate:
        return self._copy(file)

    async def create(self, file: FileAggregate) -> FileAggregate:
        if file.id in self._files:
            raise validation_error(f"File {file.id} already exists")
        self._store(file)
        return file

    async def find_by_id(self, file_id: str) -> FileAggregate | None:
        stored = self._files.get(file_id)
        return self._load(stored) if stored is not None else None

    async def find_by_user_id(self, user_id: str, filters: FileFilters | None = None) -> list[FileAggregate]:
        filters = filters or FileFilters()
        matches = [f for f in self._files.values() if f.owner_id == user_id and _matches(f, filters)]
        matches.sort(key=lambda f: f.metadata.created_at, reverse=True)
        return [self._load(f) for f in matches[filters.offset : filters.offset + filters.limit]]

    async def update(self, file: FileAggregate) -> FileAggregate:
        if file.id not in self._files:
            raise not_found("File", file.id)
        self._store(file)
        return file

    async def delete(self, file_id: str) -> None:
        if self._files.pop(file_id, None) is None:
            raise not_found("File", file_id)

    async def find_by_storage_key(self, storage_key: str) -> FileAggregate | None:
        for f in self._files.values():
            if f.metadata.storage_key == storage_key:
                return self._load(f)
        return None

    async def find_by_checksum(self, checksum_sha256: str) -> list[FileAggregate]:
        return [self._load(f) for f in self._files.values() if f.metadata.checksum_sha256 == checksum_sha256]

    async def find_by_tags(self, tags: list[str], match_all: bool = False) -> list[FileAggregate]:
        wanted = set(tags)
        test = wanted.issubset if match_all else wanted.intersection
        return [self._load(f) for f in self._files.values() if not f.is_deleted and test(f.metadata.tags)]

    async def find_pending_processing(self, limit: int = 100) -> list[FileAggregate]:
        pending = [
            f for f in self._files.values()
            if not f.is_deleted and f.processing_status is ProcessingStatus.PENDING
        ]
        pending.sort(key=lambda f: f.metadata.created_at)
        return [self._load(f) for f in pending[:limit]]

    async def find_expired_files(self, older_than: datetime) -> list[FileAggregate]:
        """Soft-deleted files whose deletion predates *older_than*."""
        expired = []
        for f in self._files.values():
            deleted_at = f.metadata.deleted_at
            if deleted_at is not None and deleted_at < older_than:
                expired.append(self._load(f))
        return expired

    async def get_user_storage_usage(self, user_id: str) -> StorageUsage:
        return _usage(f for f in self._files.values() if f.owner_id == user_id and not f.is_deleted)

    async def get_project_storage_usage(self, project_id: str) -> StorageUsage:
        return _usage(
            f for f in self._files.values() if f.metadata.project_id == project_id and not f.is_deleted
        )


def _matches(file: FileAggregate, filters: FileFilters) -> bool:
    meta = file.metadata
    if meta.is_deleted and not filters.include_deleted:
        return False
    checks = (
        (filters.project_id, meta.project_id),
        (filters.content_type, meta.content_type),
        (filters.document_type, meta.document_type),
        (filters.processing_status, meta.processing_status),
        (filters.virus_scan_status, meta.virus_scan_status),
    )
    if any(wanted is not None and wanted != actual for wanted, actual in checks):
        return False
    return set(filters.tags).issubset(meta.tags)


def _usage(files: Iterable[FileAggregate]) -> StorageUsage:
    total = count = versions = 0
    by_type: dict[str, int] = {}
    for f in files:
        meta = f.metadata
        total += f.total_versions_size() or meta.size
        count += 1
        versions += meta.version_count
        by_type[meta.content_type] = by_type.get(meta.content_type, 0) + meta.size
    return StorageUsage(total_size=total, file_count=count, version_count=versions, by_content_type=by_type)
