"""Unit tests for UploadedFile and FileAggregate."""

from __future__ import annotations

import hashlib

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from filevault.application.files import (
    ACCESS_LOG_LIMIT,
    AccessResult,
    FileAccessed,
    FileAggregate,
    FileDeleted,
    FileOperation,
    FileProcessingError,
    FileProcessingStatusChanged,
    FileQuarantined,
    FileRestored,
    FileUploaded,
    FileVersionCreated,
    ProcessingDetails,
    ProcessingStatus,
    UploadedFile,
    VersionChangeType,
    VirusScanStatus,
)
from filevault.kernel.errors import ErrorKind, FileSystemError
from filevault.testing.fakes import FakeClock

OWNER = "owner-1"
OTHER = "user-2"


def _upload(data: bytes = b"hello world", name: str = "notes.txt") -> UploadedFile:
    return UploadedFile(filename=name, content_type="text/plain", data=data)


def _aggregate() -> FileAggregate:
    file = FileAggregate.create(_upload(), OWNER, "documents/f-1", file_id="f-1", clock=FakeClock())
    file.drain()
    return file


# ---------------------------------------------------------------------------
# UploadedFile
# ---------------------------------------------------------------------------


class TestUploadedFile:
    def test_derives_size_and_checksums(self) -> None:
        f = _upload(b"abc")
        assert f.size_bytes == 3
        assert f.checksum_sha256 == hashlib.sha256(b"abc").hexdigest()
        assert f.checksum_md5 == hashlib.md5(b"abc").hexdigest()
        assert f.original_name == "notes.txt"

    def test_extension(self) -> None:
        assert _upload(name="Report.PDF").extension == "pdf"
        assert _upload(name="README").extension == ""


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


class TestCreate:
    def test_initial_version_and_event(self) -> None:
        clock = FakeClock()
        file = FileAggregate.create(_upload(), OWNER, "documents/f-1", file_id="f-1", clock=clock)

        assert file.id == "f-1"
        assert file.metadata.version_count == 1
        assert file.processing_status is ProcessingStatus.PENDING
        assert file.virus_scan_status is VirusScanStatus.PENDING
        v1 = file.current_version()
        assert v1 is not None
        assert v1.version_number == 1
        assert v1.change_type is VersionChangeType.INITIAL_UPLOAD

        events = file.drain()
        assert len(events) == 1
        assert isinstance(events[0], FileUploaded)
        assert events[0].occurred_at == clock.now()

    def test_rejects_empty_checksum(self) -> None:
        file = _aggregate()
        meta = file.metadata
        meta.checksum_md5 = ""
        with pytest.raises(FileSystemError) as exc_info:
            FileAggregate(meta)
        assert exc_info.value.kind is ErrorKind.VALIDATION

    def test_rejects_negative_size(self) -> None:
        meta = _aggregate().metadata
        meta.size = -1
        with pytest.raises(FileSystemError):
            FileAggregate(meta)

    def test_metadata_is_a_copy(self) -> None:
        file = _aggregate()
        file.metadata.tags.append("x")
        assert file.metadata.tags == []


# ---------------------------------------------------------------------------
# Processing state machine
# ---------------------------------------------------------------------------


ALLOWED = [
    (ProcessingStatus.PENDING, ProcessingStatus.PROCESSING),
    (ProcessingStatus.PENDING, ProcessingStatus.FAILED),
    (ProcessingStatus.PENDING, ProcessingStatus.SKIPPED),
    (ProcessingStatus.PROCESSING, ProcessingStatus.COMPLETED),
    (ProcessingStatus.PROCESSING, ProcessingStatus.FAILED),
    (ProcessingStatus.COMPLETED, ProcessingStatus.PROCESSING),
    (ProcessingStatus.FAILED, ProcessingStatus.PROCESSING),
    (ProcessingStatus.SKIPPED, ProcessingStatus.PROCESSING),
]


def _in_status(status: ProcessingStatus) -> FileAggregate:
    file = _aggregate()
    path = {
        ProcessingStatus.PENDING: [],
        ProcessingStatus.PROCESSING: [ProcessingStatus.PROCESSING],
        ProcessingStatus.COMPLETED: [ProcessingStatus.PROCESSING, ProcessingStatus.COMPLETED],
        ProcessingStatus.FAILED: [ProcessingStatus.FAILED],
        ProcessingStatus.SKIPPED: [ProcessingStatus.SKIPPED],
    }[status]
    for step in path:
        file.update_processing_status(step)
    file.drain()
    return file


class TestProcessingStatus:
    @pytest.mark.parametrize(("current", "target"), ALLOWED)
    def test_allowed_transitions(self, current: ProcessingStatus, target: ProcessingStatus) -> None:
        file = _in_status(current)
        file.update_processing_status(target)

        assert file.processing_status is target
        event = file.drain()[0]
        assert isinstance(event, FileProcessingStatusChanged)
        assert (event.previous_status, event.new_status) == (current.value, target.value)

    @pytest.mark.parametrize("current", list(ProcessingStatus))
    @pytest.mark.parametrize("target", list(ProcessingStatus))
    def test_other_transitions_rejected(self, current: ProcessingStatus, target: ProcessingStatus) -> None:
        if (current, target) in ALLOWED:
            return
        file = _in_status(current)
        with pytest.raises(FileSystemError) as exc_info:
            file.update_processing_status(target)
        assert exc_info.value.kind is ErrorKind.INVALID_STATE_TRANSITION
        assert file.processing_status is current
        assert file.drain() == []

    def test_failure_with_message_emits_error_event(self) -> None:
        file = _in_status(ProcessingStatus.PROCESSING)
        file.update_processing_status(ProcessingStatus.FAILED, ProcessingDetails(error_message="corrupt pdf"))
        events = file.drain()
        assert [type(e) for e in events] == [FileProcessingStatusChanged, FileProcessingError]
        assert events[1].error_message == "corrupt pdf"


# ---------------------------------------------------------------------------
# Versions
# ---------------------------------------------------------------------------


class TestVersions:
    def test_create_version_deactivates_previous(self) -> None:
        file = _aggregate()
        v2 = file.create_version("edit", OWNER)

        assert v2.version_number == 2
        assert file.metadata.version_count == 2
        assert [v.is_active for v in file.versions] == [False, True]
        event = file.drain()[0]
        assert isinstance(event, FileVersionCreated)
        assert event.version_number == 2

    def test_default_storage_key(self) -> None:
        file = _aggregate()
        v2 = file.create_version("edit", OWNER)
        assert v2.storage_key == f"f-1/versions/{FakeClock().timestamp_ms()}"

    def test_rejected_while_processing(self) -> None:
        file = _in_status(ProcessingStatus.PROCESSING)
        with pytest.raises(FileSystemError) as exc_info:
            file.create_version("edit", OWNER)
        assert exc_info.value.kind is ErrorKind.INVALID_VERSION
        assert file.metadata.version_count == 1

    def test_rejected_when_deleted(self) -> None:
        file = _aggregate()
        file.mark_as_deleted(OWNER, "cleanup")
        with pytest.raises(FileSystemError):
            file.create_version("edit", OWNER)

    def test_restore_version(self) -> None:
        file = _aggregate()
        file.create_version("edit", OWNER, storage_key="f-1/v2")
        restored = file.restore_version(1, OWNER)

        assert restored.version_number == 3
        assert restored.change_type is VersionChangeType.RESTORE
        assert restored.storage_key == "documents/f-1"
        assert file.metadata.storage_key == "documents/f-1"

    def test_restore_unknown_version(self) -> None:
        with pytest.raises(FileSystemError) as exc_info:
            _aggregate().restore_version(9, OWNER)
        assert exc_info.value.kind is ErrorKind.INVALID_VERSION

    def test_total_versions_size(self) -> None:
        file = _aggregate()
        file.create_version("edit", OWNER)
        assert file.total_versions_size() == 2 * len(b"hello world")

    @settings(max_examples=25, deadline=None)
    @given(st.integers(min_value=0, max_value=15))
    def test_version_numbers_monotonic(self, edits: int) -> None:
        file = _aggregate()
        for n in range(edits):
            created = file.create_version(f"edit {n}", OWNER)
            assert created.version_number == file.metadata.version_count
        numbers = [v.version_number for v in file.versions]
        assert numbers == list(range(1, edits + 2))
        assert sum(v.is_active for v in file.versions) == 1
        assert file.current_version().version_number == edits + 1


# ---------------------------------------------------------------------------
# Access control and logging
# ---------------------------------------------------------------------------


class TestAccess:
    def test_owner_always_allowed(self) -> None:
        file = _aggregate()
        file.mark_as_deleted(OWNER, "x")
        file.update_virus_scan_status(VirusScanStatus.INFECTED)
        assert all(file.can_access(OWNER, op) for op in FileOperation)

    def test_deleted_denies_others_even_read(self) -> None:
        file = _aggregate()
        file.mark_as_deleted(OWNER, "x")
        assert file.can_access(OTHER, FileOperation.READ) is False

    def test_infected_is_read_only(self) -> None:
        file = _aggregate()
        file.update_virus_scan_status(VirusScanStatus.INFECTED)
        assert file.can_access(OTHER, FileOperation.READ) is True
        assert file.can_access(OTHER, FileOperation.WRITE) is False

    def test_processing_is_read_only(self) -> None:
        file = _in_status(ProcessingStatus.PROCESSING)
        assert file.can_access(OTHER, FileOperation.READ) is True
        assert file.can_access(OTHER, FileOperation.DELETE) is False

    def test_others_denied_by_default(self) -> None:
        assert _aggregate().can_access(OTHER, FileOperation.READ) is False

    def test_access_log_capped(self) -> None:
        file = _aggregate()
        for _ in range(ACCESS_LOG_LIMIT + 5):
            file.log_access(OWNER, FileOperation.READ, AccessResult.SUCCESS)
        assert len(file.access_logs) == ACCESS_LOG_LIMIT
        assert all(isinstance(e, FileAccessed) for e in file.drain())


# ---------------------------------------------------------------------------
# Virus scan status, lifecycle, tags
# ---------------------------------------------------------------------------


class TestLifecycle:
    def test_infected_emits_quarantined(self) -> None:
        file = _aggregate()
        file.update_virus_scan_status(VirusScanStatus.INFECTED, "Trojan.Generic.1234abcd")
        events = file.drain()
        assert isinstance(events[-1], FileQuarantined)
        assert events[-1].threat_details == "Trojan.Generic.1234abcd"

    def test_clean_does_not_quarantine(self) -> None:
        file = _aggregate()
        file.update_virus_scan_status(VirusScanStatus.CLEAN)
        assert not any(isinstance(e, FileQuarantined) for e in file.drain())

    def test_soft_delete_and_restore(self) -> None:
        file = _aggregate()
        file.mark_as_deleted(OWNER, "cleanup")
        assert file.is_deleted
        file.restore(OWNER)
        assert not file.is_deleted
        assert [type(e) for e in file.drain()] == [FileDeleted, FileRestored]

    def test_double_delete_rejected(self) -> None:
        file = _aggregate()
        file.mark_as_deleted(OWNER, "x")
        with pytest.raises(FileSystemError):
            file.mark_as_deleted(OWNER, "x")

    def test_restore_requires_deleted(self) -> None:
        with pytest.raises(FileSystemError):
            _aggregate().restore(OWNER)

    def test_tags(self) -> None:
        file = _aggregate()
        file.add_tags("a", "b", "a")
        file.remove_tags("b")
        assert file.metadata.tags == ["a"]
