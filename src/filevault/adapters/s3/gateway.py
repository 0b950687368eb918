"""S3 adapter – S3StorageGateway (requires 'aiobotocore').

Talks to any S3-compatible endpoint (AWS, Garage, MinIO) with path-style
addressing by default. Every call runs under a :class:`TenacityRetryPolicy`
with ``max_retries`` attempts and ``retry_base_delay * 2^(attempt-1)``
backoff; client errors other than throttling are not retried. Once attempts
run out the last error is wrapped in a ``STORAGE`` :class:`FileSystemError`
naming the operation and key.
"""
from __future__ import annotations

import contextlib
from typing import Any, Awaitable, Callable, TypeVar

import tenacity

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
    PresignOperation,
    PresignedUrl,
    PresignedUrlOptions,
    StorageConfig,
    UploadResult,
)
from filevault.kernel.errors import FileSystemError, not_found, storage_error
from filevault.kernel.time import Clock
from filevault.observability.logging import get_logger
from filevault.resilience.retry import TenacityRetryPolicy

__all__ = ["S3StorageGateway", "is_retryable", "strip_etag"]

T = TypeVar("T")
logger = get_logger(__name__)

_NOT_FOUND_CODES = frozenset({"404", "NoSuchKey", "NotFound", "NoSuchUpload"})


def _require_aiobotocore() -> Any:  # pragma: no cover
    try:
        import aiobotocore.session  # noqa: PLC0415
        return aiobotocore.session
    except ImportError as exc:
        raise ImportError(
            "aiobotocore is required for S3StorageGateway. "
            "Install it with: pip install aiobotocore"
        ) from exc


def strip_etag(etag: str | None) -> str:
    return (etag or "").strip('"')


def _error_info(exc: BaseException) -> tuple[str | None, int | None]:
    response = getattr(exc, "response", None)
    if not isinstance(response, dict):
        return None, None
    code = response.get("Error", {}).get("Code")
    status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
    return code, status


def is_retryable(exc: BaseException) -> bool:
    """Transport failures, 5xx and throttling are retried; other 4xx are not."""
    if isinstance(exc, FileSystemError):
        return False
    code, status = _error_info(exc)
    if code in _NOT_FOUND_CODES:
        return False
    if status is not None and 400 <= status < 500 and status != 429:
        return False
    return True


class S3StorageGateway(ObjectStorageGateway):
    """ObjectStorageGateway backed by an aiobotocore S3 client.

    Use as an async context manager, or call :meth:`close` when done::

        async with S3StorageGateway(settings.storage_config()) as gateway:
            await gateway.upload(key, data, ObjectMetadata("image/png", user_id))

    Parameters
    ----------
    config:
        Endpoint, credentials, buckets and retry/multipart tuning.
    client:
        Pre-built S3 client. When omitted one is created lazily from
        ``aiobotocore.session.get_session()``.
    retry_kwargs:
        Extra keyword arguments for :class:`tenacity.AsyncRetrying`
        (tests pass ``sleep=``).
    """

    def __init__(
        self,
        config: StorageConfig | None = None,
        *,
        client: Any = None,
        clock: Clock | None = None,
        retry_kwargs: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(config, clock)
        self._client = client
        self._exit_stack: contextlib.AsyncExitStack | None = None
        self._retry = TenacityRetryPolicy(
            max_attempts=self._config.max_retries,
            wait=tenacity.wait_exponential(multiplier=self._config.retry_base_delay, exp_base=2),
            retry=tenacity.retry_if_exception(is_retryable),
            **(retry_kwargs or {}),
        )

    async def __aenter__(self) -> "S3StorageGateway":
        await self._get_client()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def close(self) -> None:
        if self._exit_stack is not None:
            await self._exit_stack.aclose()
            self._exit_stack = None
            self._client = None

    async def _get_client(self) -> Any:
        if self._client is None:  # pragma: no cover
            session_mod = _require_aiobotocore()
            from aiobotocore.config import AioConfig  # noqa: PLC0415

            kwargs: dict[str, Any] = {
                "region_name": self._config.region,
                "endpoint_url": self._config.endpoint,
            }
            if self._config.access_key:
                kwargs["aws_access_key_id"] = self._config.access_key
                kwargs["aws_secret_access_key"] = self._config.secret_key
            if self._config.force_path_style:
                kwargs["config"] = AioConfig(s3={"addressing_style": "path"})
            stack = contextlib.AsyncExitStack()
            self._client = await stack.enter_async_context(
                session_mod.get_session().create_client("s3", **kwargs)
            )
            self._exit_stack = stack
        return self._client

    async def _call(self, operation: str, key: str | None, func: Callable[[Any], Awaitable[T]]) -> T:
        client = await self._get_client()
        try:
            return await self._retry.execute_async(lambda: func(client))
        except FileSystemError:
            raise
        except Exception as exc:
            code, status = _error_info(exc)
            if code in _NOT_FOUND_CODES or status == 404:
                raise not_found("Object", key or "") from exc
            logger.error("storage.operation_failed", operation=operation, key=key, error=str(exc))
            raise storage_error(operation, key, exc) from exc

    # ------------------------------------------------------------------

    async def _put_object(self, key: str, data: bytes, metadata: ObjectMetadata, bucket: str) -> UploadResult:
        resp = await self._call(
            "upload",
            key,
            lambda c: c.put_object(
                Bucket=bucket,
                Key=key,
                Body=data,
                ContentType=metadata.content_type,
                ContentLength=len(data),
                Metadata=metadata.to_s3(self._clock.now()),
            ),
        )
        logger.info("storage.upload.completed", key=key, bucket=bucket, size=len(data))
        return UploadResult(
            key=key,
            bucket=bucket,
            etag=strip_etag(resp.get("ETag")),
            location=self.location(bucket, key),
            size=len(data),
            version_id=resp.get("VersionId"),
        )

    async def download(self, key: str, *, bucket: str | None = None) -> DownloadResult:
        name = self._config.bucket(bucket)

        async def _get(c: Any) -> tuple[dict[str, Any], bytes]:
            resp = await c.get_object(Bucket=name, Key=key)
            async with resp["Body"] as stream:
                body = await stream.read()
            return resp, body

        resp, body = await self._call("download", key, _get)
        return DownloadResult(
            body=body,
            metadata=DownloadMetadata(
                content_type=resp.get("ContentType", "application/octet-stream"),
                content_length=resp.get("ContentLength", len(body)),
                last_modified=resp.get("LastModified"),
                etag=strip_etag(resp.get("ETag")),
            ),
        )

    async def delete(self, key: str, *, bucket: str | None = None) -> None:
        name = self._config.bucket(bucket)
        await self._call("delete", key, lambda c: c.delete_object(Bucket=name, Key=key))
        logger.info("storage.delete.completed", key=key, bucket=name)

    async def stat(self, key: str, *, bucket: str | None = None) -> ObjectInfo:
        name = self._config.bucket(bucket)
        resp = await self._call("stat", key, lambda c: c.head_object(Bucket=name, Key=key))
        return ObjectInfo(
            key=key,
            size=resp.get("ContentLength", 0),
            last_modified=resp.get("LastModified"),
            etag=strip_etag(resp.get("ETag")),
            content_type=resp.get("ContentType"),
            metadata=dict(resp.get("Metadata") or {}),
        )

    async def list(
        self,
        prefix: str = "",
        limit: int = 1000,
        *,
        continuation_token: str | None = None,
        bucket: str | None = None,
    ) -> ObjectList:
        params: dict[str, Any] = {"Bucket": self._config.bucket(bucket), "Prefix": prefix, "MaxKeys": limit}
        if continuation_token:
            params["ContinuationToken"] = continuation_token
        resp = await self._call("list", prefix, lambda c: c.list_objects_v2(**params))
        objects = tuple(
            ObjectInfo(
                key=item["Key"],
                size=item.get("Size", 0),
                last_modified=item.get("LastModified"),
                etag=strip_etag(item.get("ETag")),
            )
            for item in resp.get("Contents", [])
        )
        return ObjectList(
            objects=objects,
            truncated=bool(resp.get("IsTruncated")),
            next_token=resp.get("NextContinuationToken"),
            total_count=resp.get("KeyCount", len(objects)),
        )

    async def initiate_multipart(
        self, key: str, metadata: ObjectMetadata, *, bucket: str | None = None
    ) -> MultipartUpload:
        name = self._config.bucket(bucket)
        resp = await self._call(
            "initiate_multipart",
            key,
            lambda c: c.create_multipart_upload(
                Bucket=name,
                Key=key,
                ContentType=metadata.content_type,
                Metadata=metadata.to_s3(self._clock.now()),
            ),
        )
        return self._register(MultipartUpload(upload_id=resp["UploadId"], key=key, bucket=name))

    async def upload_part(self, upload_id: str, part_number: int, data: bytes) -> PartUploadResult:
        session = self._session(upload_id)
        resp = await self._call(
            "upload_part",
            session.key,
            lambda c: c.upload_part(
                Bucket=session.bucket,
                Key=session.key,
                UploadId=upload_id,
                PartNumber=part_number,
                Body=data,
            ),
        )
        logger.debug("storage.multipart.part_uploaded", key=session.key, part_number=part_number, size=len(data))
        return PartUploadResult(part_number=part_number, etag=strip_etag(resp.get("ETag")), size=len(data))

    async def complete_multipart(self, upload_id: str, parts: list[PartUploadResult]) -> UploadResult:
        session = self._session(upload_id)
        manifest = {"Parts": [{"PartNumber": p.part_number, "ETag": f'"{p.etag}"'} for p in parts]}
        resp = await self._call(
            "complete_multipart",
            session.key,
            lambda c: c.complete_multipart_upload(
                Bucket=session.bucket,
                Key=session.key,
                UploadId=upload_id,
                MultipartUpload=manifest,
            ),
        )
        self._forget(upload_id)
        return UploadResult(
            key=session.key,
            bucket=session.bucket,
            etag=strip_etag(resp.get("ETag")),
            location=resp.get("Location") or self.location(session.bucket, session.key),
            size=sum(p.size for p in parts),
            version_id=resp.get("VersionId"),
            multipart=True,
        )

    async def abort_multipart(self, upload_id: str) -> None:
        session = self._session(upload_id)
        await self._call(
            "abort_multipart",
            session.key,
            lambda c: c.abort_multipart_upload(Bucket=session.bucket, Key=session.key, UploadId=upload_id),
        )
        self._forget(upload_id)
        logger.warning("storage.multipart.aborted", key=session.key, upload_id=upload_id)

    async def copy(
        self,
        source_key: str,
        destination_key: str,
        *,
        bucket: str | None = None,
        destination_bucket: str | None = None,
    ) -> CopyResult:
        source_bucket = self._config.bucket(bucket)
        target_bucket = self._config.bucket(destination_bucket or bucket)
        resp = await self._call(
            "copy",
            source_key,
            lambda c: c.copy_object(
                Bucket=target_bucket,
                Key=destination_key,
                CopySource=f"{source_bucket}/{source_key}",
            ),
        )
        return CopyResult(
            source_key=source_key,
            destination_key=destination_key,
            etag=strip_etag(resp.get("CopyObjectResult", {}).get("ETag")),
            bucket=target_bucket,
        )

    async def presign(self, options: PresignedUrlOptions) -> PresignedUrl:
        params: dict[str, Any] = {"Bucket": self._config.bucket(options.bucket), "Key": options.key}
        if options.operation is PresignOperation.PUT and options.content_type:
            params["ContentType"] = options.content_type
        url = await self._call(
            "presign",
            options.key,
            lambda c: c.generate_presigned_url(
                options.operation.client_method, Params=params, ExpiresIn=options.expires_in
            ),
        )
        return self._presigned(url, options)

    async def ping(self) -> bool:
        try:
            client = await self._get_client()
            await client.list_objects_v2(Bucket=self._config.bucket(), MaxKeys=1)
        except Exception as exc:  # noqa: BLE001
            logger.warning("storage.ping_failed", error=str(exc))
            return False
        return True
