"""Application files – the file aggregate, its records and persistence port."""
from filevault.application.files.aggregate import ACCESS_LOG_LIMIT, ALLOWED_TRANSITIONS, FileAggregate
from filevault.application.files.enums import (
    AccessResult,
    DocumentType,
    FileOperation,
    ProcessingStatus,
    SecurityThreat,
    VersionChangeType,
    VirusScanStatus,
)
from filevault.application.files.events import (
    FileAccessed,
    FileDeleted,
    FileProcessingError,
    FileProcessingStatusChanged,
    FileQuarantined,
    FileRestored,
    FileUploaded,
    FileVersionCreated,
    FileVirusScanStatusChanged,
)
from filevault.application.files.models import FileAccess, FileMetadata, FileVersion, ProcessingDetails
from filevault.application.files.repository import (
    FileFilters,
    FileMetadataRepository,
    InMemoryFileMetadataRepository,
    StorageUsage,
)
from filevault.application.files.upload import UploadedFile

__all__ = [
    "ACCESS_LOG_LIMIT",
    "ALLOWED_TRANSITIONS",
    "AccessResult",
    "DocumentType",
    "FileAccess",
    "FileAccessed",
    "FileAggregate",
    "FileDeleted",
    "FileFilters",
    "FileMetadata",
    "FileMetadataRepository",
    "FileOperation",
    "FileProcessingError",
    "FileProcessingStatusChanged",
    "FileQuarantined",
    "FileRestored",
    "FileUploaded",
    "FileVersion",
    "FileVersionCreated",
    "FileVirusScanStatusChanged",
    "InMemoryFileMetadataRepository",
    "ProcessingDetails",
    "ProcessingStatus",
    "SecurityThreat",
    "StorageUsage",
    "UploadedFile",
    "VersionChangeType",
    "VirusScanStatus",
]
