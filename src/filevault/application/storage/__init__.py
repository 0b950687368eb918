"""Application storage – object storage port, value objects and in-memory backend."""
from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.application.storage.memory import InMemoryStorageGateway, StoredObject
from filevault.application.storage.models import (
    CopyResult,
    DownloadMetadata,
    DownloadResult,
    MultipartUpload,
    ObjectInfo,
    ObjectList,
    ObjectMetadata,
    PartUploadResult,
    PresignOperation,
    PresignedUrl,
    PresignedUrlOptions,
    StorageConfig,
    UploadResult,
)

__all__ = [
    "CopyResult",
    "DownloadMetadata",
    "DownloadResult",
    "InMemoryStorageGateway",
    "MultipartUpload",
    "ObjectInfo",
    "ObjectList",
    "ObjectMetadata",
    "ObjectStorageGateway",
    "PartUploadResult",
    "PresignOperation",
    "PresignedUrl",
    "PresignedUrlOptions",
    "StorageConfig",
    "StoredObject",
    "UploadResult",
]
