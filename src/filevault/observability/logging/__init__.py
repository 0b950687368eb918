"""Observability – structured logging helpers."""
from filevault.observability.logging.audit import AuditLogger, AuditOutcome
from filevault.observability.logging.factory import DEFAULT_SENSITIVE_FIELDS, JsonLoggerFactory, redact_sensitive
from filevault.observability.logging.processors import get_logger

__all__ = [
    "AuditLogger",
    "AuditOutcome",
    "DEFAULT_SENSITIVE_FIELDS",
    "JsonLoggerFactory",
    "get_logger",
    "redact_sensitive",
]
