"""Application security – FileAccessGuard.

Owner-only access decisions with a full audit trail, and issuance of
presigned URLs whose expiry is clamped to the configured policy maximum.
"""
from __future__ import annotations

import base64
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from filevault.application.files.enums import AccessResult, FileOperation
from filevault.application.files.repository import FileMetadataRepository
from filevault.application.security.audit import AuditSink
from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.application.storage.models import PresignedUrlOptions, PresignOperation
from filevault.config.file_system import FileSystemSettings
from filevault.kernel.errors import (
    ErrorKind,
    FileSystemError,
    security_threat,
    unauthorized_access,
    validation_error,
)
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger

__all__ = ["FileAccessGuard", "SecurePresignedUrl", "UrlRequest"]

logger = get_logger(__name__)

DEFAULT_MAX_EXPIRY = 3600

_PROPAGATED = frozenset({ErrorKind.UNAUTHORIZED_ACCESS, ErrorKind.SECURITY_THREAT})


@dataclass(frozen=True)
class UrlRequest:
    """What a caller asks for; ``expires_in=None`` means the default expiry."""

    operation: PresignOperation = PresignOperation.GET
    expires_in: int | None = None
    ip_restriction: tuple[str, ...] = ()
    user_agent: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "operation": self.operation.value,
            "expiresIn": self.expires_in,
            "ipRestriction": list(self.ip_restriction),
            "userAgent": self.user_agent,
        }


@dataclass(frozen=True)
class SecurePresignedUrl:
    url: str
    expires_at: datetime
    expires_in: int
    security_token: str
    audit_id: str
    restrictions: dict[str, Any] = field(default_factory=dict)


class FileAccessGuard:
    def __init__(
        self,
        repository: FileMetadataRepository,
        gateway: ObjectStorageGateway,
        audit: AuditSink,
        *,
        max_expiry: int = DEFAULT_MAX_EXPIRY,
        default_expiry: int = DEFAULT_MAX_EXPIRY,
        clock: Clock | None = None,
    ) -> None:
        self._repository = repository
        self._gateway = gateway
        self._audit = audit
        self._max_expiry = max_expiry
        self._default_expiry = default_expiry
        self._clock = clock or SystemClock()

    @classmethod
    def from_settings(
        cls,
        settings: FileSystemSettings,
        repository: FileMetadataRepository,
        gateway: ObjectStorageGateway,
        audit: AuditSink,
        *,
        clock: Clock | None = None,
    ) -> "FileAccessGuard":
        return cls(
            repository,
            gateway,
            audit,
            max_expiry=settings.presigned_url_expiry,
            default_expiry=settings.presigned_url_default_expiry,
            clock=clock,
        )

    def effective_expiry(self, requested: int | None) -> int:
        """``None`` means the default; anything else is clamped to the maximum."""
        if requested is None:
            return min(self._default_expiry, self._max_expiry)
        if requested <= 0:
            raise validation_error(
                "Invalid presigned URL request", [f"expires_in must be positive, got {requested}"]
            )
        return min(requested, self._max_expiry)

    async def check_access(self, file_id: str, user_id: str, operation: FileOperation) -> bool:
        """Decide and audit; lookup failures deny rather than raise."""
        try:
            file = await self._repository.find_by_id(file_id)
        except Exception as exc:  # noqa: BLE001
            logger.error("security.access_check_failed", file_id=file_id, user_id=user_id, exc_info=True)
            await self._deny(user_id, file_id, operation, "SYSTEM_ERROR", error=str(exc))
            return False

        if file is None:
            await self._deny(user_id, file_id, operation, "FILE_NOT_FOUND")
            return False

        if file.can_access(user_id, operation):
            reason = "OWNER" if file.owner_id == user_id else "FILE_STATE"
            await self._audit.log_file_access(user_id, file_id, operation, AccessResult.SUCCESS, {"reason": reason})
            return True

        logger.warning("security.access_denied", file_id=file_id, user_id=user_id, operation=operation.value)
        await self._deny(user_id, file_id, operation, "INSUFFICIENT_PERMISSIONS")
        return False

    async def generate_secure_presigned_url(
        self, file_id: str, user_id: str, request: UrlRequest | None = None
    ) -> SecurePresignedUrl:
        request = request or UrlRequest()
        expires_in = self.effective_expiry(request.expires_in)
        try:
            if not await self.check_access(file_id, user_id, FileOperation.READ):
                raise unauthorized_access(file_id, user_id, FileOperation.READ.value)
            file = await self._repository.find_by_id(file_id)
            if file is None:
                raise security_threat("File not found", ["FILE_NOT_FOUND"], file_id=file_id)

            presigned = await self._gateway.presign(
                PresignedUrlOptions(
                    key=file.metadata.storage_key,
                    operation=request.operation,
                    expires_in=expires_in,
                    ip_restriction=request.ip_restriction,
                    user_agent=request.user_agent,
                )
            )
            if not presigned.url:
                raise security_threat("Storage service failed to generate URL", ["STORAGE_ERROR"])

            result = SecurePresignedUrl(
                url=presigned.url,
                expires_at=presigned.expires_at,
                expires_in=expires_in,
                restrictions=dict(presigned.restrictions),
                security_token=self._security_token(file_id, user_id, request),
                audit_id=str(uuid.uuid4()),
            )
            await self._audit.log_url_generation(file_id, user_id, request.to_dict())
        except FileSystemError as exc:
            if exc.kind in _PROPAGATED:
                raise
            logger.error("security.url_generation_failed", file_id=file_id, error=exc.message)
            raise security_threat("Failed to generate secure presigned URL", ["URL_GENERATION_ERROR"]) from exc
        except Exception as exc:
            logger.error("security.url_generation_failed", file_id=file_id, error=str(exc), exc_info=True)
            raise security_threat("Failed to generate secure presigned URL", ["URL_GENERATION_ERROR"]) from exc

        logger.info("security.url_generated", file_id=file_id, user_id=user_id, expires_in=expires_in)
        return result

    def _security_token(self, file_id: str, user_id: str, request: UrlRequest) -> str:
        payload = {
            "fileId": file_id,
            "userId": user_id,
            "operation": request.operation.value,
            "timestamp": self._clock.timestamp_ms(),
        }
        return base64.b64encode(json.dumps(payload).encode("utf-8")).decode("ascii")

    async def _deny(
        self, user_id: str, file_id: str, operation: FileOperation, reason: str, **details: Any
    ) -> None:
        await self._audit.log_file_access(
            user_id, file_id, operation, AccessResult.FAILURE, {"reason": reason, **details}
        )
