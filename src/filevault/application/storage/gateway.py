"""Application storage – ObjectStorageGateway port.

The abstract operations map one-to-one onto S3 REST calls. ``upload`` is
implemented here once for every backend: it validates the request and routes
buffers above ``multipart_threshold`` through the multipart path, which
uploads ``part_size`` slices with at most ``part_concurrency`` parts in flight
and completes with the parts sorted by part number.
"""
from __future__ import annotations

import abc
import asyncio
import math
from datetime import timedelta

from filevault.application.storage.models import (
    CopyResult,
    DownloadResult,
    MultipartUpload,
    ObjectInfo,
    ObjectList,
    ObjectMetadata,
    PartUploadResult,
    PresignedUrl,
    PresignedUrlOptions,
    StorageConfig,
    UploadResult,
)
from filevault.kernel.errors import ErrorKind, FileSystemError, storage_error, validation_error
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger

__all__ = ["ObjectStorageGateway"]

logger = get_logger(__name__)


class ObjectStorageGateway(abc.ABC):
    def __init__(self, config: StorageConfig | None = None, clock: Clock | None = None) -> None:
        self._config = config or StorageConfig()
        self._clock = clock or SystemClock()
        self._sessions: dict[str, MultipartUpload] = {}

    @property
    def config(self) -> StorageConfig:
        return self._config

    # ------------------------------------------------------------------
    # Upload routing
    # ------------------------------------------------------------------

    def uses_multipart(self, size: int) -> bool:
        return size > self._config.multipart_threshold

    async def upload(
        self,
        key: str,
        data: bytes,
        metadata: ObjectMetadata,
        *,
        bucket: str | None = None,
    ) -> UploadResult:
        self._validate_upload(key, data, metadata)
        if self.uses_multipart(len(data)):
            return await self._upload_multipart(key, data, metadata, bucket)
        return await self._put_object(key, data, metadata, self._config.bucket(bucket))

    def _validate_upload(self, key: str, data: bytes, metadata: ObjectMetadata) -> None:
        errors: list[str] = []
        if not key or not key.strip():
            errors.append("key is required")
        if not data:
            errors.append("data must not be empty")
        if not metadata.content_type:
            errors.append("metadata.content_type is required")
        if not metadata.user_id:
            errors.append("metadata.user_id is required")
        if (
            data
            and not self.uses_multipart(len(data))
            and len(data) > self._config.max_file_size
        ):
            errors.append(f"size {len(data)} exceeds maximum of {self._config.max_file_size} bytes")
        if errors:
            raise validation_error("Invalid upload request: " + "; ".join(errors), errors)

    async def _upload_multipart(
        self,
        key: str,
        data: bytes,
        metadata: ObjectMetadata,
        bucket: str | None,
    ) -> UploadResult:
        part_size = self._config.part_size
        session = await self.initiate_multipart(key, metadata, bucket=bucket)
        semaphore = asyncio.Semaphore(self._config.part_concurrency)
        log = logger.bind(key=key, upload_id=session.upload_id)
        log.info("storage.multipart.started", size=len(data), parts=math.ceil(len(data) / part_size))

        async def _send(part_number: int, offset: int) -> PartUploadResult:
            async with semaphore:
                return await self.upload_part(
                    session.upload_id, part_number, data[offset : offset + part_size]
                )

        tasks = [
            asyncio.create_task(_send(index + 1, offset))
            for index, offset in enumerate(range(0, len(data), part_size))
        ]
        try:
            parts = await asyncio.gather(*tasks)
            result = await self.complete_multipart(
                session.upload_id, sorted(parts, key=lambda p: p.part_number)
            )
        except Exception:
            log.error("storage.multipart.failed", exc_info=True)
            # Sibling parts must be settled before the session is aborted.
            await self._cancel_parts(tasks)
            await self._abort_quietly(session.upload_id)
            raise
        log.info("storage.multipart.completed", etag=result.etag)
        return result

    @staticmethod
    async def _cancel_parts(tasks: list[asyncio.Task[PartUploadResult]]) -> None:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)

    async def _abort_quietly(self, upload_id: str) -> None:
        try:
            await self.abort_multipart(upload_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("storage.multipart.abort_failed", upload_id=upload_id, error=str(exc))

    # ------------------------------------------------------------------
    # Multipart session registry
    # ------------------------------------------------------------------

    def _register(self, session: MultipartUpload) -> MultipartUpload:
        self._sessions[session.upload_id] = session
        return session

    def _session(self, upload_id: str) -> MultipartUpload:
        try:
            return self._sessions[upload_id]
        except KeyError:
            raise storage_error("multipart", None, LookupError(f"unknown upload id {upload_id}")) from None

    def _forget(self, upload_id: str) -> None:
        self._sessions.pop(upload_id, None)

    @property
    def open_multipart_uploads(self) -> tuple[MultipartUpload, ...]:
        return tuple(self._sessions.values())

    # ------------------------------------------------------------------
    # Helpers shared by backends
    # ------------------------------------------------------------------

    def location(self, bucket: str, key: str) -> str:
        return f"{self._config.endpoint.rstrip('/')}/{bucket}/{key}"

    def _presigned(self, url: str, options: PresignedUrlOptions) -> PresignedUrl:
        now = self._clock.now()
        return PresignedUrl(
            url=url,
            expires_at=now + timedelta(seconds=options.expires_in),
            restrictions=PresignedUrl.restrictions_for(options),
            expires_in=options.expires_in,
        )

    async def exists(self, key: str, *, bucket: str | None = None) -> bool:
        try:
            await self.stat(key, bucket=bucket)
        except FileSystemError as exc:
            if exc.kind is ErrorKind.NOT_FOUND:
                return False
            raise
        return True

    # ------------------------------------------------------------------
    # Backend operations
    # ------------------------------------------------------------------

    @abc.abstractmethod
    async def _put_object(self, key: str, data: bytes, metadata: ObjectMetadata, bucket: str) -> UploadResult: ...

    @abc.abstractmethod
    async def download(self, key: str, *, bucket: str | None = None) -> DownloadResult: ...

    @abc.abstractmethod
    async def delete(self, key: str, *, bucket: str | None = None) -> None: ...

    @abc.abstractmethod
    async def stat(self, key: str, *, bucket: str | None = None) -> ObjectInfo: ...

    @abc.abstractmethod
    async def list(
        self,
        prefix: str = "",
        limit: int = 1000,
        *,
        continuation_token: str | None = None,
        bucket: str | None = None,
    ) -> ObjectList: ...

    @abc.abstractmethod
    async def initiate_multipart(
        self, key: str, metadata: ObjectMetadata, *, bucket: str | None = None
    ) -> MultipartUpload: ...

    @abc.abstractmethod
    async def upload_part(self, upload_id: str, part_number: int, data: bytes) -> PartUploadResult: ...

    @abc.abstractmethod
    async def complete_multipart(self, upload_id: str, parts: list[PartUploadResult]) -> UploadResult: ...

    @abc.abstractmethod
    async def abort_multipart(self, upload_id: str) -> None: ...

    @abc.abstractmethod
    async def copy(
        self,
        source_key: str,
        destination_key: str,
        *,
        bucket: str | None = None,
        destination_bucket: str | None = None,
    ) -> CopyResult: ...

    @abc.abstractmethod
    async def presign(self, options: PresignedUrlOptions) -> PresignedUrl: ...

    @abc.abstractmethod
    async def ping(self) -> bool: ...
