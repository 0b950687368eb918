"""Unit tests for FileAccessGuard."""

from __future__ import annotations

import asyncio
import base64
import json
from datetime import timedelta
from unittest.mock import AsyncMock

import pytest

from filevault.application.files import (
    FileAggregate,
    FileMetadataRepository,
    InMemoryFileMetadataRepository,
    ProcessingStatus,
    UploadedFile,
)
from filevault.application.files.enums import AccessResult, FileOperation
from filevault.application.security import FileAccessGuard, UrlRequest
from filevault.application.storage import InMemoryStorageGateway, PresignOperation
from filevault.config import FileSystemSettings
from filevault.kernel.errors import ErrorKind, FileSystemError
from filevault.testing.fakes import FakeClock, RecordingAuditSink


def _setup(
    *, max_expiry: int = 3600, default_expiry: int = 3600
) -> tuple[FileAccessGuard, InMemoryFileMetadataRepository, RecordingAuditSink]:
    clock = FakeClock()
    repo = InMemoryFileMetadataRepository()
    upload = UploadedFile(filename="report.pdf", content_type="application/pdf", data=b"%PDF-1.7 %%EOF")
    asyncio.run(repo.create(FileAggregate.create(upload, "owner", "documents/f-1", file_id="f-1", clock=clock)))
    audit = RecordingAuditSink()
    guard = FileAccessGuard(
        repo,
        InMemoryStorageGateway(clock=clock),
        audit,
        max_expiry=max_expiry,
        default_expiry=default_expiry,
        clock=clock,
    )
    return guard, repo, audit


# ---------------------------------------------------------------------------
# check_access
# ---------------------------------------------------------------------------


class TestCheckAccess:
    def test_owner_allowed(self) -> None:
        guard, _, audit = _setup()
        assert asyncio.run(guard.check_access("f-1", "owner", FileOperation.DELETE)) is True
        record = audit.accesses[-1]
        assert record.result is AccessResult.SUCCESS
        assert record.details == {"reason": "OWNER"}

    def test_stranger_denied(self) -> None:
        guard, _, audit = _setup()
        assert asyncio.run(guard.check_access("f-1", "stranger", FileOperation.READ)) is False
        assert audit.accesses[-1].details["reason"] == "INSUFFICIENT_PERMISSIONS"

    def test_processing_file_is_readable(self) -> None:
        guard, repo, audit = _setup()

        async def run() -> bool:
            file = await repo.find_by_id("f-1")
            file.update_processing_status(ProcessingStatus.PROCESSING)
            await repo.update(file)
            return await guard.check_access("f-1", "stranger", FileOperation.READ)

        assert asyncio.run(run()) is True
        assert audit.accesses[-1].details == {"reason": "FILE_STATE"}

    def test_missing_file_is_audited(self) -> None:
        guard, _, audit = _setup()
        assert asyncio.run(guard.check_access("nope", "owner", FileOperation.READ)) is False
        record = audit.accesses[-1]
        assert (record.file_id, record.result) == ("nope", AccessResult.FAILURE)
        assert record.details == {"reason": "FILE_NOT_FOUND"}

    def test_repository_failure_denies(self) -> None:
        repo = AsyncMock(spec=FileMetadataRepository)
        repo.find_by_id.side_effect = ConnectionError("db down")
        audit = RecordingAuditSink()
        guard = FileAccessGuard(repo, InMemoryStorageGateway(), audit)

        assert asyncio.run(guard.check_access("f-1", "owner", FileOperation.READ)) is False
        assert audit.accesses[-1].details == {"reason": "SYSTEM_ERROR", "error": "db down"}


# ---------------------------------------------------------------------------
# generate_secure_presigned_url
# ---------------------------------------------------------------------------


class TestPresignedUrl:
    def test_expiry_is_clamped(self) -> None:
        guard, _, audit = _setup(max_expiry=1800, default_expiry=900)
        url = asyncio.run(guard.generate_secure_presigned_url("f-1", "owner", UrlRequest(expires_in=7200)))
        assert url.expires_in == 1800
        assert url.expires_at == FakeClock().now() + timedelta(seconds=1800)
        assert "documents/f-1" in url.url
        assert audit.url_generations == [("f-1", "owner", UrlRequest(expires_in=7200).to_dict())]

    def test_default_expiry(self) -> None:
        guard, _, _ = _setup(max_expiry=1800, default_expiry=900)
        url = asyncio.run(guard.generate_secure_presigned_url("f-1", "owner"))
        assert url.expires_in == 900

    def test_security_token_payload(self) -> None:
        guard, _, _ = _setup()
        request = UrlRequest(operation=PresignOperation.PUT, ip_restriction=("10.0.0.1",))
        url = asyncio.run(guard.generate_secure_presigned_url("f-1", "owner", request))
        payload = json.loads(base64.b64decode(url.security_token))
        assert payload == {
            "fileId": "f-1",
            "userId": "owner",
            "operation": "PUT",
            "timestamp": FakeClock().timestamp_ms(),
        }
        assert url.restrictions["ipAddress"] == ["10.0.0.1"]
        assert url.audit_id

    def test_unauthorized(self) -> None:
        guard, _, audit = _setup()
        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(guard.generate_secure_presigned_url("f-1", "stranger"))
        assert exc_info.value.kind is ErrorKind.UNAUTHORIZED_ACCESS
        assert audit.url_generations == []

    def test_storage_failure_is_wrapped(self) -> None:
        guard, _, _ = _setup()
        guard._gateway.presign = AsyncMock(side_effect=ConnectionError("garage down"))  # type: ignore[method-assign]
        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(guard.generate_secure_presigned_url("f-1", "owner"))
        assert exc_info.value.kind is ErrorKind.SECURITY_THREAT
        assert exc_info.value.detail["threats"] == ["URL_GENERATION_ERROR"]
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    @pytest.mark.parametrize("expires_in", [-600, 0])
    def test_non_positive_expiry_is_rejected(self, expires_in: int) -> None:
        guard, _, audit = _setup()
        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(guard.generate_secure_presigned_url("f-1", "owner", UrlRequest(expires_in=expires_in)))
        assert exc_info.value.kind is ErrorKind.VALIDATION
        assert exc_info.value.detail["errors"] == [f"expires_in must be positive, got {expires_in}"]
        assert audit.url_generations == []
        assert audit.accesses == []


# ---------------------------------------------------------------------------
# from_settings
# ---------------------------------------------------------------------------


class TestFromSettings:
    def test_expiry_policy_comes_from_settings(self) -> None:
        clock = FakeClock()
        repo = InMemoryFileMetadataRepository()
        upload = UploadedFile(filename="report.pdf", content_type="application/pdf", data=b"%PDF-1.7 %%EOF")
        asyncio.run(repo.create(FileAggregate.create(upload, "owner", "documents/f-1", file_id="f-1", clock=clock)))
        settings = FileSystemSettings(presigned_url_expiry=1800, presigned_url_default_expiry=600)
        guard = FileAccessGuard.from_settings(
            settings, repo, InMemoryStorageGateway(clock=clock), RecordingAuditSink(), clock=clock
        )

        assert asyncio.run(guard.generate_secure_presigned_url("f-1", "owner")).expires_in == 600
        clamped = asyncio.run(guard.generate_secure_presigned_url("f-1", "owner", UrlRequest(expires_in=86400)))
        assert clamped.expires_in == 1800
