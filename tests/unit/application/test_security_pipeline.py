"""Unit tests for SecurityValidationPipeline."""

from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import Any
from unittest.mock import AsyncMock

import pytest

from filevault.application.files import SecurityThreat, UploadedFile
from filevault.application.files.enums import AccessResult, FileOperation
from filevault.application.pipeline import Next, Stage
from filevault.application.rate_limit import InMemoryRateLimitBackend, Quota, RateLimitBackend, RateLimitStatus
from filevault.application.scanning.engine import ScanEngineConfig, VirusScanEngine
from filevault.application.scanning.signatures import EICAR_TEST_STRING, SignatureScanner
from filevault.application.security import (
    Mitigation,
    RateLimitStage,
    SecurityValidationPipeline,
    VirusScanStage,
)
from filevault.application.storage import InMemoryStorageGateway, ObjectMetadata, UploadResult
from filevault.config.file_system import FileSystemSettings
from filevault.kernel.errors import ErrorKind, FileSystemError
from filevault.testing.fakes import FakeClock, RecordingAuditSink, ScriptedAntivirus

EICAR = EICAR_TEST_STRING.encode("ascii")


class BrokenStorage(InMemoryStorageGateway):
    async def _put_object(self, key: str, data: bytes, metadata: ObjectMetadata, bucket: str) -> UploadResult:
        raise ConnectionError("storage unreachable")


class Boom(Stage):
    async def __call__(self, context: Any, next_: Next) -> Any:
        raise RuntimeError("boom")


def _pipeline(
    *,
    scanning: bool = False,
    backend: Any = None,
    gateway: InMemoryStorageGateway | None = None,
    audit: RecordingAuditSink | None = None,
    rate_limit: RateLimitBackend | None = None,
    timeout_ms: int = 30000,
    **settings: Any,
) -> SecurityValidationPipeline:
    clock = FakeClock()
    engine = VirusScanEngine(
        ScanEngineConfig(enabled=scanning, timeout_ms=timeout_ms, retries=0),
        backend or SignatureScanner(latency=None),
        clock=clock,
    )
    return SecurityValidationPipeline.from_settings(
        FileSystemSettings(scan_virus_enabled=scanning, **settings),
        gateway or InMemoryStorageGateway(clock=clock),
        audit=audit or RecordingAuditSink(),
        rate_limit=rate_limit,
        engine=engine,
        clock=clock,
    )


# ---------------------------------------------------------------------------
# Composition
# ---------------------------------------------------------------------------


class TestComposition:
    def test_scan_stage_only_when_enabled(self) -> None:
        assert not any(isinstance(s, VirusScanStage) for s in _pipeline(scanning=False).stages)
        stages = _pipeline(scanning=True).stages
        assert [s.label for s in stages] == ["rate_limit", "format", "content", "virus_scan", "behavior"]

    def test_rate_limit_runs_first(self) -> None:
        assert isinstance(_pipeline().stages[0], RateLimitStage)


# ---------------------------------------------------------------------------
# Verdicts
# ---------------------------------------------------------------------------


class TestVerdicts:
    def test_clean_png_passes(self, png_upload: UploadedFile, audit_sink: RecordingAuditSink) -> None:
        verdict = asyncio.run(_pipeline(audit=audit_sink).validate(png_upload, "u-1"))
        assert verdict.passed is True
        assert verdict.threats == []
        assert verdict.confidence_score == 100
        assert "virusScan" not in verdict.details
        assert audit_sink.validations[-1][0] == "u-1"
        assert audit_sink.last_validation.passed is True

    def test_small_jpeg_passes_without_scan(self) -> None:
        jpeg = b"\xff\xd8\xff\xe0" + b"\x00" * 2040 + b"\xff\xd9"
        upload = UploadedFile(filename="photo.jpg", content_type="image/jpeg", data=jpeg)
        verdict = asyncio.run(_pipeline().validate(upload, "u-1"))
        assert verdict.passed is True
        assert verdict.confidence_score == 100
        assert "virusScan" not in verdict.details

    def test_eicar_is_quarantined(self, audit_sink: RecordingAuditSink) -> None:
        gateway = InMemoryStorageGateway(clock=FakeClock())
        pipeline = _pipeline(scanning=True, gateway=gateway, audit=audit_sink)
        upload = UploadedFile(filename="eicar.txt", content_type="text/plain", data=EICAR)

        verdict = asyncio.run(pipeline.validate(upload, "u-1"))

        assert verdict.passed is False
        assert SecurityThreat.MALWARE_DETECTED in verdict.threats
        assert Mitigation.QUARANTINE in verdict.mitigations
        assert verdict.details["virusScan"]["clean"] is False
        assert verdict.details["quarantineId"]
        quarantined = [k for k in gateway.objects() if k.startswith("quarantine/")]
        assert len(quarantined) == 1
        assert quarantined[0].endswith("/eicar.txt")
        assert gateway.get(quarantined[0]) == EICAR
        access = audit_sink.accesses[-1]
        assert (access.user_id, access.operation, access.result) == ("SYSTEM", FileOperation.DELETE, AccessResult.SUCCESS)

    def test_scan_timeout_needs_manual_review(self, png_upload: UploadedFile) -> None:
        gateway = InMemoryStorageGateway()
        pipeline = _pipeline(scanning=True, backend=ScriptedAntivirus([5.0]), gateway=gateway, timeout_ms=20)

        verdict = asyncio.run(pipeline.validate(png_upload, "u-1"))

        assert verdict.passed is False
        assert verdict.threats == [SecurityThreat.SUSPICIOUS_CONTENT]
        assert verdict.mitigations == [Mitigation.MANUAL_REVIEW]
        assert gateway.objects() == {}

    def test_scan_error_needs_manual_review(self, png_upload: UploadedFile) -> None:
        gateway = InMemoryStorageGateway()
        pipeline = _pipeline(scanning=True, backend=ScriptedAntivirus([ConnectionError("clamd down")]), gateway=gateway)

        verdict = asyncio.run(pipeline.validate(png_upload, "u-1"))

        assert verdict.passed is False
        assert verdict.threats == [SecurityThreat.SUSPICIOUS_CONTENT]
        assert verdict.mitigations == [Mitigation.MANUAL_REVIEW]
        assert verdict.details["virusScan"]["clean"] is False
        assert "quarantineId" not in verdict.details
        assert gateway.objects() == {}

    def test_format_failure_still_runs_later_stages(self) -> None:
        upload = UploadedFile(filename="photo.png", content_type="image/png", data=b"GIF89a" + b"\x00" * 200)
        verdict = asyncio.run(_pipeline().validate(upload, "u-1"))
        assert verdict.passed is False
        assert verdict.threats == [SecurityThreat.INVALID_FORMAT]
        assert verdict.details["formatErrors"]
        assert verdict.confidence_score == 100

    def test_suspicious_behavior_only_flags(self) -> None:
        upload = UploadedFile(filename="notes.txt.ps1", content_type="text/plain", data=b"hello")
        verdict = asyncio.run(_pipeline(allowed_mime_types=["text/plain"]).validate(upload, "u-1"))
        assert SecurityThreat.INVALID_FORMAT not in verdict.threats
        assert verdict.confidence_score == 70


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------


class TestRateLimiting:
    def test_blocked_user_fails_fast(self, png_upload: UploadedFile, audit_sink: RecordingAuditSink) -> None:
        clock = FakeClock()
        backend = AsyncMock(spec=RateLimitBackend)
        backend.check_limit.return_value = RateLimitStatus(
            allowed=False, limit=10, remaining=0, reset_time=clock.now() + timedelta(seconds=60)
        )
        scanner = ScriptedAntivirus()
        pipeline = _pipeline(scanning=True, backend=scanner, rate_limit=backend, audit=audit_sink)

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(pipeline.validate(png_upload, "u-1"))

        assert exc_info.value.kind is ErrorKind.RATE_LIMIT_EXCEEDED
        assert exc_info.value.detail["limit"] == 10
        backend.increment_counter.assert_not_awaited()
        assert scanner.calls == 0
        assert len(audit_sink.validations) == 1
        assert audit_sink.last_validation.threats == [SecurityThreat.RATE_LIMIT_EXCEEDED]
        assert audit_sink.last_validation.mitigations == [Mitigation.TEMPORARY_BLOCK]

    def test_pass_increments_user_and_ip(self, png_upload: UploadedFile) -> None:
        backend = InMemoryRateLimitBackend(user_quota=Quota(5), ip_quota=Quota(5), clock=FakeClock())

        async def run() -> None:
            await _pipeline(rate_limit=backend).validate(png_upload, "u-1", ip_address="10.0.0.1")
            assert (await backend.check_limit("u-1", "upload")).remaining == 4
            assert (await backend.check_limit("10.0.0.1", "upload")).remaining == 4

        asyncio.run(run())

    def test_rejection_does_not_increment(self) -> None:
        backend = InMemoryRateLimitBackend(user_quota=Quota(5), clock=FakeClock())
        upload = UploadedFile(filename="a.txt", content_type="text/plain", data=b"<script>x</script>")

        async def run() -> None:
            verdict = await _pipeline(rate_limit=backend).validate(upload, "u-1")
            assert verdict.passed is False
            assert (await backend.check_limit("u-1", "upload")).remaining == 5

        asyncio.run(run())

    def test_ip_quota_applies(self, png_upload: UploadedFile) -> None:
        backend = InMemoryRateLimitBackend(user_quota=Quota(5), ip_quota=Quota(1), clock=FakeClock())
        pipeline = _pipeline(rate_limit=backend)

        async def run() -> None:
            await pipeline.validate(png_upload, "u-1", ip_address="10.0.0.1")
            await pipeline.validate(png_upload, "u-2", ip_address="10.0.0.1")

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.detail["user_id"] == "10.0.0.1"

    def test_quota_comes_from_settings(self, png_upload: UploadedFile) -> None:
        pipeline = _pipeline(max_uploads_per_minute=2)

        async def run() -> None:
            for _ in range(3):
                await pipeline.validate(png_upload, "u-1")

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(run())
        assert exc_info.value.kind is ErrorKind.RATE_LIMIT_EXCEEDED


# ---------------------------------------------------------------------------
# Fail closed
# ---------------------------------------------------------------------------


class TestFailClosed:
    def test_unexpected_error_becomes_security_threat(
        self, png_upload: UploadedFile, audit_sink: RecordingAuditSink
    ) -> None:
        pipeline = SecurityValidationPipeline([Boom()], audit_sink, InMemoryRateLimitBackend())

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(pipeline.validate(png_upload, "u-1"))

        error = exc_info.value
        assert error.kind is ErrorKind.SECURITY_THREAT
        assert error.message == "Security validation system error"
        assert error.detail["threats"] == ["SUSPICIOUS_CONTENT"]
        assert isinstance(error.__cause__, RuntimeError)
        verdict = audit_sink.last_validation
        assert verdict.passed is False
        assert verdict.mitigations == [Mitigation.SYSTEM_REJECTION]
        assert verdict.details["error"] == "boom"
        assert error.detail["scan_id"] == verdict.scan_id

    def test_quarantine_failure_propagates(self, audit_sink: RecordingAuditSink) -> None:
        pipeline = _pipeline(scanning=True, gateway=BrokenStorage(), audit=audit_sink)
        upload = UploadedFile(filename="eicar.txt", content_type="text/plain", data=EICAR)

        with pytest.raises(FileSystemError) as exc_info:
            asyncio.run(pipeline.validate(upload, "u-1"))

        assert exc_info.value.kind is ErrorKind.QUARANTINE
        verdict = audit_sink.last_validation
        assert verdict.passed is False
        assert SecurityThreat.MALWARE_DETECTED in verdict.threats
        assert verdict.mitigations[-1] == Mitigation.SYSTEM_REJECTION
