"""Application storage – configuration and value objects of the gateway."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from filevault.kernel.errors import validation_error

__all__ = [
    "CopyResult",
    "DownloadMetadata",
    "DownloadResult",
    "MultipartUpload",
    "ObjectInfo",
    "ObjectList",
    "ObjectMetadata",
    "PartUploadResult",
    "PresignOperation",
    "PresignedUrl",
    "PresignedUrlOptions",
    "StorageConfig",
    "UploadResult",
]

MB = 1024 * 1024


@dataclass(frozen=True)
class StorageConfig:
    endpoint: str = "http://localhost:3900"
    region: str = "garage"
    access_key: str = ""
    secret_key: str = ""
    buckets: dict[str, str] = field(
        default_factory=lambda: {"documents": "documents", "backups": "backups", "temp": "temp"}
    )
    default_bucket: str = "documents"
    force_path_style: bool = True
    max_file_size: int = 100 * MB
    multipart_threshold: int = 100 * MB
    part_size: int = 50 * MB
    part_concurrency: int = 4
    max_retries: int = 3
    retry_base_delay: float = 1.0

    def bucket(self, name: str | None = None) -> str:
        """Resolve a logical bucket (``documents``/``backups``/``temp``) to its real name."""
        logical = name or self.default_bucket
        return self.buckets.get(logical, logical)


@dataclass(frozen=True)
class ObjectMetadata:
    """Metadata attached to every stored object."""

    content_type: str
    user_id: str
    project_id: str | None = None
    custom: dict[str, str] = field(default_factory=dict)

    def to_s3(self, uploaded_at: datetime) -> dict[str, str]:
        """User metadata headers (``x-amz-meta-*`` without the prefix)."""
        headers = {"user-id": self.user_id, "upload-timestamp": uploaded_at.isoformat()}
        if self.project_id:
            headers["project-id"] = self.project_id
        headers.update(self.custom)
        return headers


@dataclass(frozen=True)
class UploadResult:
    key: str
    bucket: str
    etag: str
    location: str
    size: int
    version_id: str | None = None
    multipart: bool = False


@dataclass(frozen=True)
class DownloadMetadata:
    content_type: str
    content_length: int
    last_modified: datetime | None
    etag: str


@dataclass(frozen=True)
class DownloadResult:
    body: bytes
    metadata: DownloadMetadata
    from_cache: bool = False


@dataclass(frozen=True)
class ObjectInfo:
    key: str
    size: int
    last_modified: datetime | None
    etag: str
    content_type: str | None = None
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass(frozen=True)
class ObjectList:
    objects: tuple[ObjectInfo, ...]
    truncated: bool
    next_token: str | None
    total_count: int


@dataclass(frozen=True)
class MultipartUpload:
    upload_id: str
    key: str
    bucket: str


@dataclass(frozen=True)
class PartUploadResult:
    part_number: int
    etag: str
    size: int


@dataclass(frozen=True)
class CopyResult:
    source_key: str
    destination_key: str
    etag: str
    bucket: str


class PresignOperation(str, Enum):
    GET = "GET"
    PUT = "PUT"

    @property
    def client_method(self) -> str:
        return "get_object" if self is PresignOperation.GET else "put_object"


@dataclass(frozen=True)
class PresignedUrlOptions:
    key: str
    operation: PresignOperation = PresignOperation.GET
    expires_in: int = 3600
    ip_restriction: tuple[str, ...] = ()
    user_agent: str | None = None
    content_type: str | None = None
    bucket: str | None = None

    def __post_init__(self) -> None:
        if self.expires_in <= 0:
            raise validation_error(
                "Invalid presign request", [f"expires_in must be positive, got {self.expires_in}"]
            )


@dataclass(frozen=True)
class PresignedUrl:
    url: str
    expires_at: datetime
    restrictions: dict[str, Any]
    expires_in: int

    @staticmethod
    def restrictions_for(options: PresignedUrlOptions) -> dict[str, Any]:
        return {
            "ipAddress": list(options.ip_restriction),
            "userAgent": options.user_agent,
            "operations": [options.operation.value],
        }
