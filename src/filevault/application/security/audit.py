"""Application security – AuditSink port and its structlog-backed implementation."""
from __future__ import annotations

from typing import Any, Protocol, runtime_checkable

from filevault.application.files.enums import AccessResult, FileOperation
from filevault.application.security.validation import SecurityValidation
from filevault.observability.logging import AuditLogger, AuditOutcome

__all__ = ["AuditSink", "LoggingAuditSink"]


@runtime_checkable
class AuditSink(Protocol):
    """Port: durable record of security decisions."""

    async def log_security_validation(self, user_id: str, validation: SecurityValidation) -> None: ...

    async def log_file_access(
        self,
        user_id: str,
        file_id: str,
        operation: FileOperation,
        result: AccessResult,
        details: dict[str, Any] | None = None,
    ) -> None: ...

    async def log_url_generation(self, file_id: str, user_id: str, options: dict[str, Any]) -> None: ...


class LoggingAuditSink:
    """Writes audit records to the ``audit`` structured log stream."""

    def __init__(self, audit_logger: AuditLogger | None = None) -> None:
        self._audit = audit_logger or AuditLogger()

    async def log_security_validation(self, user_id: str, validation: SecurityValidation) -> None:
        self._audit.log_security_event(
            "security_validation",
            principal=user_id,
            outcome=(AuditOutcome.SUCCESS if validation.passed else AuditOutcome.DENIED).value,
            **validation.to_dict(),
        )

    async def log_file_access(
        self,
        user_id: str,
        file_id: str,
        operation: FileOperation,
        result: AccessResult,
        details: dict[str, Any] | None = None,
    ) -> None:
        self._audit.log_access(
            user_id,
            f"file:{file_id}",
            operation.value,
            AuditOutcome.SUCCESS if result is AccessResult.SUCCESS else AuditOutcome.DENIED,
            details=details or {},
        )

    async def log_url_generation(self, file_id: str, user_id: str, options: dict[str, Any]) -> None:
        self._audit.log_security_event("url_generation", principal=user_id, file_id=file_id, options=options)
