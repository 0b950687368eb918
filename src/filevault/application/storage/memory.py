"""Application storage – InMemoryStorageGateway for tests and local runs."""
from __future__ import annotations

import hashlib
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from urllib.parse import urlencode

from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.application.storage.models import (
    CopyResult,
    DownloadMetadata,
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
from filevault.kernel.errors import not_found, storage_error
from filevault.kernel.time import Clock

__all__ = ["InMemoryStorageGateway", "StoredObject"]


@dataclass
class StoredObject:
    body: bytes
    content_type: str
    etag: str
    last_modified: datetime
    metadata: dict[str, str] = field(default_factory=dict)


@dataclass
class _PendingUpload:
    session: MultipartUpload
    metadata: ObjectMetadata
    parts: dict[int, bytes] = field(default_factory=dict)


class InMemoryStorageGateway(ObjectStorageGateway):
    """Dict-backed gateway with S3-like semantics (ETags are MD5 digests)."""

    def __init__(self, config: StorageConfig | None = None, clock: Clock | None = None) -> None:
        super().__init__(config, clock)
        self._buckets: dict[str, dict[str, StoredObject]] = {}
        self._pending: dict[str, _PendingUpload] = {}
        self.healthy = True

    def objects(self, bucket: str | None = None) -> dict[str, StoredObject]:
        return self._buckets.setdefault(self._config.bucket(bucket), {})

    def get(self, key: str, bucket: str | None = None) -> bytes | None:
        stored = self.objects(bucket).get(key)
        return stored.body if stored is not None else None

    def _lookup(self, key: str, bucket: str | None) -> StoredObject:
        stored = self.objects(bucket).get(key)
        if stored is None:
            raise not_found("Object", key)
        return stored

    async def _put_object(self, key: str, data: bytes, metadata: ObjectMetadata, bucket: str) -> UploadResult:
        etag = hashlib.md5(data).hexdigest()  # noqa: S324
        self._buckets.setdefault(bucket, {})[key] = StoredObject(
            body=bytes(data),
            content_type=metadata.content_type,
            etag=etag,
            last_modified=self._clock.now(),
            metadata=metadata.to_s3(self._clock.now()),
        )
        return UploadResult(key=key, bucket=bucket, etag=etag, location=self.location(bucket, key), size=len(data))

    async def download(self, key: str, *, bucket: str | None = None) -> DownloadResult:
        stored = self._lookup(key, bucket)
        return DownloadResult(
            body=stored.body,
            metadata=DownloadMetadata(
                content_type=stored.content_type,
                content_length=len(stored.body),
                last_modified=stored.last_modified,
                etag=stored.etag,
            ),
        )

    async def delete(self, key: str, *, bucket: str | None = None) -> None:
        self.objects(bucket).pop(key, None)

    async def stat(self, key: str, *, bucket: str | None = None) -> ObjectInfo:
        stored = self._lookup(key, bucket)
        return ObjectInfo(
            key=key,
            size=len(stored.body),
            last_modified=stored.last_modified,
            etag=stored.etag,
            content_type=stored.content_type,
            metadata=dict(stored.metadata),
        )

    async def list(
        self,
        prefix: str = "",
        limit: int = 1000,
        *,
        continuation_token: str | None = None,
        bucket: str | None = None,
    ) -> ObjectList:
        keys = sorted(k for k in self.objects(bucket) if k.startswith(prefix))
        if continuation_token:
            keys = [k for k in keys if k > continuation_token]
        page = keys[:limit]
        truncated = len(keys) > limit
        infos = tuple([await self.stat(k, bucket=bucket) for k in page])
        return ObjectList(
            objects=infos,
            truncated=truncated,
            next_token=page[-1] if truncated else None,
            total_count=len(infos),
        )

    async def initiate_multipart(
        self, key: str, metadata: ObjectMetadata, *, bucket: str | None = None
    ) -> MultipartUpload:
        session = self._register(
            MultipartUpload(upload_id=uuid.uuid4().hex, key=key, bucket=self._config.bucket(bucket))
        )
        self._pending[session.upload_id] = _PendingUpload(session=session, metadata=metadata)
        return session

    async def upload_part(self, upload_id: str, part_number: int, data: bytes) -> PartUploadResult:
        pending = self._pending_upload(upload_id)
        pending.parts[part_number] = bytes(data)
        return PartUploadResult(
            part_number=part_number,
            etag=hashlib.md5(data).hexdigest(),  # noqa: S324
            size=len(data),
        )

    async def complete_multipart(self, upload_id: str, parts: list[PartUploadResult]) -> UploadResult:
        pending = self._pending_upload(upload_id)
        numbers = [p.part_number for p in parts]
        if numbers != sorted(numbers):
            raise storage_error("complete_multipart", pending.session.key, ValueError("parts must be in ascending order"))
        missing = [n for n in numbers if n not in pending.parts]
        if missing:
            raise storage_error("complete_multipart", pending.session.key, ValueError(f"unknown parts {missing}"))
        body = b"".join(pending.parts[n] for n in numbers)
        session = pending.session
        result = await self._put_object(session.key, body, pending.metadata, session.bucket)
        self._pending.pop(upload_id, None)
        self._forget(upload_id)
        return UploadResult(
            key=result.key,
            bucket=result.bucket,
            etag=f"{result.etag}-{len(numbers)}",
            location=result.location,
            size=len(body),
            multipart=True,
        )

    async def abort_multipart(self, upload_id: str) -> None:
        self._pending_upload(upload_id)
        self._pending.pop(upload_id, None)
        self._forget(upload_id)

    def _pending_upload(self, upload_id: str) -> _PendingUpload:
        self._session(upload_id)
        return self._pending[upload_id]

    async def copy(
        self,
        source_key: str,
        destination_key: str,
        *,
        bucket: str | None = None,
        destination_bucket: str | None = None,
    ) -> CopyResult:
        source = self._lookup(source_key, bucket)
        target_bucket = self._config.bucket(destination_bucket or bucket)
        self._buckets.setdefault(target_bucket, {})[destination_key] = StoredObject(
            body=source.body,
            content_type=source.content_type,
            etag=source.etag,
            last_modified=self._clock.now(),
            metadata=dict(source.metadata),
        )
        return CopyResult(
            source_key=source_key,
            destination_key=destination_key,
            etag=source.etag,
            bucket=target_bucket,
        )

    async def presign(self, options: PresignedUrlOptions) -> PresignedUrl:
        bucket = self._config.bucket(options.bucket)
        query = urlencode({"X-Amz-Expires": options.expires_in, "X-Amz-Method": options.operation.value})
        return self._presigned(f"{self.location(bucket, options.key)}?{query}", options)

    async def ping(self) -> bool:
        return self.healthy
