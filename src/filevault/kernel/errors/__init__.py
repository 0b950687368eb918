"""Kernel errors – public re-export surface.

Hierarchy::

    BaseError
    ├── FileSystemError      (file_system.py, tagged by ErrorKind)
    └── ConfigError          (filevault.config.validation)
"""

from filevault.kernel.errors.base import BaseError
from filevault.kernel.errors.file_system import (
    ErrorKind,
    FileSystemError,
    invalid_processing_state,
    invalid_state_transition,
    invalid_version,
    not_found,
    processing_timeout,
    quarantine_error,
    rate_limit_exceeded,
    security_threat,
    storage_error,
    unauthorized_access,
    validation_error,
    virus_scan_error,
)

__all__ = [
    "BaseError",
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
