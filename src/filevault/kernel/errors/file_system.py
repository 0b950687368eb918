"""FileSystemError – one error type tagged with an :class:`ErrorKind`.

Callers branch on ``exc.kind`` instead of catching a family of subclasses::

    try:
        await pipeline.validate(upload, user_id)
    except FileSystemError as exc:
        if exc.kind is ErrorKind.RATE_LIMIT_EXCEEDED:
            retry_after = exc.detail["reset_time"]

The factory functions below build each kind with a consistent payload.
"""

from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Iterable

from filevault.kernel.errors.base import BaseError


class ErrorKind(str, Enum):
    VALIDATION = "validation_error"
    SECURITY_THREAT = "security_threat"
    RATE_LIMIT_EXCEEDED = "rate_limit_exceeded"
    UNAUTHORIZED_ACCESS = "unauthorized_access"
    NOT_FOUND = "not_found"
    INVALID_STATE_TRANSITION = "invalid_state_transition"
    INVALID_PROCESSING_STATE = "invalid_processing_state"
    INVALID_VERSION = "invalid_version"
    STORAGE = "storage_error"
    QUARANTINE = "quarantine_error"
    PROCESSING_TIMEOUT = "processing_timeout"
    VIRUS_SCAN = "virus_scan_error"

    @property
    def http_status(self) -> int:
        return _HTTP_STATUS[self]


_HTTP_STATUS: dict[ErrorKind, int] = {
    ErrorKind.VALIDATION: 400,
    ErrorKind.SECURITY_THREAT: 403,
    ErrorKind.RATE_LIMIT_EXCEEDED: 429,
    ErrorKind.UNAUTHORIZED_ACCESS: 403,
    ErrorKind.NOT_FOUND: 404,
    ErrorKind.INVALID_STATE_TRANSITION: 409,
    ErrorKind.INVALID_PROCESSING_STATE: 409,
    ErrorKind.INVALID_VERSION: 400,
    ErrorKind.STORAGE: 500,
    ErrorKind.QUARANTINE: 500,
    ErrorKind.PROCESSING_TIMEOUT: 408,
    ErrorKind.VIRUS_SCAN: 500,
}


class FileSystemError(BaseError):
    """The single error type raised by filevault components."""

    default_code = "file_system_error"

    def __init__(
        self,
        kind: ErrorKind,
        message: str,
        *,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message, code=kind.value, detail=detail, cause=cause)
        self.kind = kind

    @property
    def http_status(self) -> int:
        return self.kind.http_status

    def is_kind(self, *kinds: ErrorKind) -> bool:
        return self.kind in kinds

    def __repr__(self) -> str:
        return f"FileSystemError(kind={self.kind.name}, message={self.message!r})"


# ---------------------------------------------------------------------------
# Factories
# ---------------------------------------------------------------------------


def validation_error(message: str, errors: Iterable[str] = ()) -> FileSystemError:
    return FileSystemError(ErrorKind.VALIDATION, message, detail={"errors": list(errors)})


def security_threat(message: str, threats: Iterable[str], **detail: Any) -> FileSystemError:
    return FileSystemError(
        ErrorKind.SECURITY_THREAT, message, detail={"threats": list(threats), **detail}
    )


def rate_limit_exceeded(user_id: str, limit: int, reset_time: datetime) -> FileSystemError:
    return FileSystemError(
        ErrorKind.RATE_LIMIT_EXCEEDED,
        f"Rate limit exceeded: {limit} requests allowed",
        detail={"user_id": user_id, "limit": limit, "reset_time": reset_time.isoformat()},
    )


def unauthorized_access(file_id: str, user_id: str, operation: str) -> FileSystemError:
    return FileSystemError(
        ErrorKind.UNAUTHORIZED_ACCESS,
        f"User {user_id} is not allowed to {operation} file {file_id}",
        detail={"file_id": file_id, "user_id": user_id, "operation": operation},
    )


def not_found(resource: str, identifier: str) -> FileSystemError:
    return FileSystemError(
        ErrorKind.NOT_FOUND,
        f"{resource} {identifier} not found",
        detail={"resource": resource, "id": identifier},
    )


def invalid_state_transition(file_id: str, current: str, target: str) -> FileSystemError:
    return FileSystemError(
        ErrorKind.INVALID_STATE_TRANSITION,
        f"Cannot transition file {file_id} from {current} to {target}",
        detail={"file_id": file_id, "current": current, "target": target},
    )


def invalid_processing_state(file_id: str, current: str, required: str) -> FileSystemError:
    return FileSystemError(
        ErrorKind.INVALID_PROCESSING_STATE,
        f"File {file_id} is {current}, expected {required}",
        detail={"file_id": file_id, "current": current, "required": required},
    )


def invalid_version(file_id: str, reason: str) -> FileSystemError:
    return FileSystemError(
        ErrorKind.INVALID_VERSION,
        f"Cannot version file {file_id}: {reason}",
        detail={"file_id": file_id, "reason": reason},
    )


def storage_error(operation: str, key: str | None, cause: BaseException | None = None) -> FileSystemError:
    reason = str(cause) if cause is not None else "unknown error"
    return FileSystemError(
        ErrorKind.STORAGE,
        f"Storage operation '{operation}' failed for key '{key}': {reason}",
        detail={"operation": operation, "key": key},
        cause=cause,
    )


def quarantine_error(file_id: str, reason: str, cause: BaseException | None = None) -> FileSystemError:
    return FileSystemError(
        ErrorKind.QUARANTINE,
        f"Failed to quarantine file {file_id}: {reason}",
        detail={"file_id": file_id, "reason": reason},
        cause=cause,
    )


def processing_timeout(file_id: str, timeout_seconds: float) -> FileSystemError:
    return FileSystemError(
        ErrorKind.PROCESSING_TIMEOUT,
        f"Processing of file {file_id} timed out after {timeout_seconds}s",
        detail={"file_id": file_id, "timeout_seconds": timeout_seconds},
    )


def virus_scan_error(message: str, cause: BaseException | None = None) -> FileSystemError:
    return FileSystemError(ErrorKind.VIRUS_SCAN, message, cause=cause)


__all__ = [
    "ErrorKind",
    "FileSystemError",
    "invalid_processing_state",
    "invalid_state_transition",
    "invalid_version",
    "not_found",
    "processing_timeout",
    "quarantine_error",
    "rate_limit_exceeded",
    "security_threat",
    "storage_error",
    "unauthorized_access",
    "validation_error",
    "virus_scan_error",
]
