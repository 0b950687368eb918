"""FileSystemSettings – the one configuration struct for every component.

Built once at startup (usually via :class:`EnvSettingsLoader` or
:class:`DotenvSettingsLoader`) and handed to each component's constructor::

    settings = DotenvSettingsLoader().load(FileSystemSettings)
    engine = VirusScanEngine(settings.scanner_config())

Environment variables use the ``FILEVAULT_`` prefix, e.g.
``FILEVAULT_VIRUS_SCAN_TIMEOUT_MS=5000``.
"""
from __future__ import annotations

import dataclasses
from typing import ClassVar
from typing import TYPE_CHECKING

from filevault.config.settings.base import Settings
from filevault.config.validation import InvalidSettingValueError

if TYPE_CHECKING:
    from filevault.application.scanning.engine import ScanEngineConfig
    from filevault.application.storage.models import StorageConfig

MB = 1024 * 1024
# S3 rejects non-final multipart parts smaller than this.
S3_MIN_PART_SIZE = 5 * MB

DEFAULT_ALLOWED_MIME_TYPES = [
    "application/pdf",
    "application/msword",
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document",
    "application/vnd.ms-excel",
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
    "application/vnd.ms-powerpoint",
    "application/vnd.openxmlformats-officedocument.presentationml.presentation",
    "application/json",
    "application/xml",
    "application/zip",
    "image/jpeg",
    "image/png",
    "image/gif",
    "image/webp",
    "text/plain",
    "text/csv",
    "text/xml",
]


@dataclasses.dataclass
class FileSystemSettings(Settings):
    _prefix: ClassVar[str] = "FILEVAULT"

    # storage
    storage_endpoint: str = "http://localhost:3900"
    storage_region: str = "garage"
    access_key: str = ""
    secret_key: str = ""
    bucket_documents: str = "documents"
    bucket_backups: str = "backups"
    bucket_temp: str = "temp"
    force_path_style: bool = True

    # processing
    max_file_size: int = 100 * MB
    multipart_threshold: int = 100 * MB
    multipart_part_size: int = 50 * MB
    multipart_concurrency: int = 4
    storage_max_retries: int = 3
    storage_retry_base_delay: float = 1.0
    processing_attempts: int = 3
    processing_backoff_ms: int = 5000
    processing_timeout_seconds: float = 300.0

    # security
    scan_virus_enabled: bool = True
    virus_scan_timeout_ms: int = 30000
    virus_scan_retries: int = 2
    presigned_url_expiry: int = 3600
    presigned_url_default_expiry: int = 3600
    max_uploads_per_minute: int = 10
    max_uploads_per_ip: int = 20
    rate_limit_window_seconds: int = 60
    strict_magic_numbers: bool = True
    allowed_mime_types: list[str] = dataclasses.field(
        default_factory=lambda: list(DEFAULT_ALLOWED_MIME_TYPES)
    )

    def _validate(self) -> None:
        for name in (
            "max_file_size",
            "multipart_threshold",
            "multipart_part_size",
            "multipart_concurrency",
            "storage_max_retries",
            "processing_attempts",
            "processing_backoff_ms",
            "processing_timeout_seconds",
            "virus_scan_timeout_ms",
            "presigned_url_expiry",
            "presigned_url_default_expiry",
            "max_uploads_per_minute",
            "rate_limit_window_seconds",
        ):
            value = getattr(self, name)
            if value <= 0:
                raise InvalidSettingValueError(name, value, "must be positive")
        if self.virus_scan_retries < 0:
            raise InvalidSettingValueError("virus_scan_retries", self.virus_scan_retries, "must not be negative")
        if self.multipart_part_size < S3_MIN_PART_SIZE:
            raise InvalidSettingValueError(
                "multipart_part_size", self.multipart_part_size, f"must be at least {S3_MIN_PART_SIZE} bytes"
            )
        if self.multipart_threshold < self.multipart_part_size:
            raise InvalidSettingValueError(
                "multipart_threshold", self.multipart_threshold, "must not be smaller than multipart_part_size"
            )
        if self.presigned_url_default_expiry > self.presigned_url_expiry:
            raise InvalidSettingValueError(
                "presigned_url_default_expiry",
                self.presigned_url_default_expiry,
                "must not exceed presigned_url_expiry",
            )

    def scanner_config(self) -> ScanEngineConfig:
        from filevault.application.scanning.engine import ScanEngineConfig

        return ScanEngineConfig(
            enabled=self.scan_virus_enabled,
            timeout_ms=self.virus_scan_timeout_ms,
            retries=self.virus_scan_retries,
        )

    def storage_config(self) -> StorageConfig:
        from filevault.application.storage.models import StorageConfig

        return StorageConfig(
            endpoint=self.storage_endpoint,
            region=self.storage_region,
            access_key=self.access_key,
            secret_key=self.secret_key,
            buckets={
                "documents": self.bucket_documents,
                "backups": self.bucket_backups,
                "temp": self.bucket_temp,
            },
            force_path_style=self.force_path_style,
            max_file_size=self.max_file_size,
            multipart_threshold=self.multipart_threshold,
            part_size=self.multipart_part_size,
            part_concurrency=self.multipart_concurrency,
            max_retries=self.storage_max_retries,
            retry_base_delay=self.storage_retry_base_delay,
        )


__all__ = ["DEFAULT_ALLOWED_MIME_TYPES", "FileSystemSettings", "MB"]
