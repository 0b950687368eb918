"""Unit tests for the filevault error type and its factories."""

from __future__ import annotations

import json
from datetime import UTC, datetime

import pytest

from filevault.kernel.errors import (
    BaseError,
    ErrorKind,
    FileSystemError,
    invalid_processing_state,
    invalid_state_transition,
    not_found,
    quarantine_error,
    rate_limit_exceeded,
    security_threat,
    storage_error,
    unauthorized_access,
    validation_error,
)


# ---------------------------------------------------------------------------
# BaseError
# ---------------------------------------------------------------------------


class TestBaseError:
    def test_default_code(self) -> None:
        err = BaseError("boom")
        assert err.code == "filevault_error"
        assert err.message == "boom"
        assert err.detail == {}

    def test_str_is_json(self) -> None:
        err = BaseError("boom", code="x", detail={"a": 1})
        data = json.loads(str(err))
        assert data == {"code": "x", "message": "boom", "detail": {"a": 1}}

    def test_cause_is_chained(self) -> None:
        cause = ValueError("inner")
        err = BaseError("outer", cause=cause)
        assert err.__cause__ is cause
        assert "inner" in err.to_dict()["cause"]


# ---------------------------------------------------------------------------
# FileSystemError
# ---------------------------------------------------------------------------


class TestFileSystemError:
    def test_code_follows_kind(self) -> None:
        err = FileSystemError(ErrorKind.NOT_FOUND, "missing")
        assert err.code == "not_found"
        assert isinstance(err, BaseError)

    def test_is_kind(self) -> None:
        err = FileSystemError(ErrorKind.STORAGE, "x")
        assert err.is_kind(ErrorKind.STORAGE, ErrorKind.QUARANTINE)
        assert not err.is_kind(ErrorKind.NOT_FOUND)

    @pytest.mark.parametrize(
        ("kind", "status"),
        [
            (ErrorKind.VALIDATION, 400),
            (ErrorKind.RATE_LIMIT_EXCEEDED, 429),
            (ErrorKind.UNAUTHORIZED_ACCESS, 403),
            (ErrorKind.NOT_FOUND, 404),
            (ErrorKind.INVALID_STATE_TRANSITION, 409),
            (ErrorKind.PROCESSING_TIMEOUT, 408),
            (ErrorKind.STORAGE, 500),
        ],
    )
    def test_http_status(self, kind: ErrorKind, status: int) -> None:
        assert FileSystemError(kind, "x").http_status == status

    def test_every_kind_has_status(self) -> None:
        for kind in ErrorKind:
            assert kind.http_status >= 400


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


class TestFactories:
    def test_validation_error_lists_errors(self) -> None:
        err = validation_error("bad", ["a", "b"])
        assert err.kind is ErrorKind.VALIDATION
        assert err.detail["errors"] == ["a", "b"]

    def test_security_threat_carries_threats(self) -> None:
        err = security_threat("denied", ["MALWARE_DETECTED"], scan_id="s1")
        assert err.detail == {"threats": ["MALWARE_DETECTED"], "scan_id": "s1"}

    def test_rate_limit_carries_limit_and_reset(self) -> None:
        reset = datetime(2026, 1, 1, 12, 1, tzinfo=UTC)
        err = rate_limit_exceeded("u-1", 10, reset)
        assert err.kind is ErrorKind.RATE_LIMIT_EXCEEDED
        assert err.detail["limit"] == 10
        assert err.detail["reset_time"] == reset.isoformat()

    def test_storage_error_names_operation_and_key(self) -> None:
        cause = ConnectionError("reset by peer")
        err = storage_error("upload", "docs/a.pdf", cause)
        assert err.detail == {"operation": "upload", "key": "docs/a.pdf"}
        assert err.cause is cause
        assert "reset by peer" in err.message

    def test_quarantine_distinct_from_storage(self) -> None:
        err = quarantine_error("f-1", "bucket unavailable")
        assert err.kind is ErrorKind.QUARANTINE
        assert err.kind is not ErrorKind.STORAGE

    def test_state_errors(self) -> None:
        assert invalid_state_transition("f", "pending", "completed").detail["target"] == "completed"
        assert invalid_processing_state("f", "completed", "pending").detail["required"] == "pending"

    def test_not_found_and_unauthorized(self) -> None:
        assert not_found("File", "f-1").message == "File f-1 not found"
        err = unauthorized_access("f-1", "u-2", "READ")
        assert err.detail["operation"] == "READ"
