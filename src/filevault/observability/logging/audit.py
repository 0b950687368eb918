"""Observability – AuditLogger.

Structured sink for security-relevant actions: validation verdicts, file
access decisions and presigned URL issuance.
"""
from __future__ import annotations

from enum import Enum
from typing import Any

from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging.processors import get_logger


class AuditOutcome(str, Enum):
    SUCCESS = "success"
    FAILURE = "failure"
    DENIED = "denied"
    ERROR = "error"


class AuditLogger:
    """Emit audit entries at ``WARNING`` so level filters never drop them.

    Parameters
    ----------
    service:
        Logical service name stamped on every entry.
    logger:
        structlog logger to write to. Defaults to ``get_logger("audit")``.
    clock:
        Time source for the ``recorded_at`` field.
    """

    def __init__(self, service: str = "filevault", logger: Any = None, clock: Clock | None = None) -> None:
        self._service = service
        self._log = logger if logger is not None else get_logger("audit")
        self._clock = clock or SystemClock()

    def log_access(
        self,
        principal: str,
        resource: str,
        action: str,
        outcome: AuditOutcome | str = AuditOutcome.SUCCESS,
        **extra: Any,
    ) -> None:
        self._emit(
            "audit.access",
            principal_id=principal,
            resource=resource,
            action=action,
            outcome=outcome.value if isinstance(outcome, AuditOutcome) else str(outcome),
            **extra,
        )

    def log_security_event(self, event_type: str, principal: str | None = None, **extra: Any) -> None:
        fields: dict[str, Any] = {"event_type": event_type, **extra}
        if principal is not None:
            fields["principal_id"] = principal
        self._emit(f"audit.{event_type}", **fields)

    def _emit(self, event: str, **fields: Any) -> None:
        self._log.warning(
            event,
            service=self._service,
            recorded_at=self._clock.now().isoformat(),
            **fields,
        )


__all__ = ["AuditLogger", "AuditOutcome"]
