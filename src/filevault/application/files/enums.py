"""Application files – enumerations shared by the file domain."""
from __future__ import annotations

from enum import Enum

__all__ = [
    "AccessResult",
    "DocumentType",
    "FileOperation",
    "ProcessingStatus",
    "SecurityThreat",
    "VersionChangeType",
    "VirusScanStatus",
]


class VirusScanStatus(str, Enum):
    PENDING = "pending"
    SCANNING = "scanning"
    CLEAN = "clean"
    INFECTED = "infected"
    ERROR = "error"


class ProcessingStatus(str, Enum):
    PENDING = "pending"
    PROCESSING = "processing"
    COMPLETED = "completed"
    FAILED = "failed"
    SKIPPED = "skipped"


class DocumentType(str, Enum):
    DOCUMENT = "document"
    TEMPLATE = "template"
    PROJECT_DOCUMENT = "project_document"
    CONFIDENTIAL = "confidential"
    TEMPORARY = "temporary"
    ARCHIVE = "archive"


class FileOperation(str, Enum):
    READ = "READ"
    WRITE = "WRITE"
    DELETE = "DELETE"
    SHARE = "SHARE"
    GENERATE_URL = "GENERATE_URL"
    CREATE_VERSION = "CREATE_VERSION"
    RESTORE_VERSION = "RESTORE_VERSION"


class AccessResult(str, Enum):
    SUCCESS = "SUCCESS"
    FAILURE = "FAILURE"


class VersionChangeType(str, Enum):
    INITIAL_UPLOAD = "INITIAL_UPLOAD"
    MANUAL_EDIT = "MANUAL_EDIT"
    AUTOMATED_PROCESSING = "AUTOMATED_PROCESSING"
    RESTORE = "RESTORE"
    REPLACEMENT = "REPLACEMENT"


class SecurityThreat(str, Enum):
    INVALID_FORMAT = "INVALID_FORMAT"
    MALWARE_DETECTED = "MALWARE_DETECTED"
    SUSPICIOUS_CONTENT = "SUSPICIOUS_CONTENT"
    FILE_TOO_LARGE = "FILE_TOO_LARGE"
    RATE_LIMIT_EXCEEDED = "RATE_LIMIT_EXCEEDED"
    UNAUTHORIZED_ACCESS = "UNAUTHORIZED_ACCESS"
