"""Application security – QuarantineService.

Isolates infected content under ``quarantine/{scan_id}/...`` in object
storage. Every failure surfaces as a ``QUARANTINE`` error so callers can
tell "malware found but not isolated" apart from "scan failed".
"""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import datetime

from filevault.application.files.enums import AccessResult, FileOperation
from filevault.application.files.upload import UploadedFile
from filevault.application.scanning.result import VirusScanResult
from filevault.application.security.audit import AuditSink
from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.application.storage.models import ObjectMetadata
from filevault.kernel.errors import FileSystemError, quarantine_error
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger

__all__ = ["QUARANTINE_PREFIX", "QuarantineResult", "QuarantineService", "quarantine_key"]

logger = get_logger(__name__)

QUARANTINE_PREFIX = "quarantine"
SYSTEM_PRINCIPAL = "SYSTEM"


def quarantine_key(scan_id: str, name: str) -> str:
    return f"{QUARANTINE_PREFIX}/{scan_id}/{name.lstrip('/')}"


@dataclass(frozen=True)
class QuarantineResult:
    quarantine_id: str
    file_id: str
    reason: str
    storage_key: str
    quarantined_at: datetime
    threats: tuple[str, ...] = field(default_factory=tuple)
    automatic_action: bool = True


class QuarantineService:
    def __init__(
        self,
        gateway: ObjectStorageGateway,
        audit: AuditSink,
        clock: Clock | None = None,
    ) -> None:
        self._gateway = gateway
        self._audit = audit
        self._clock = clock or SystemClock()

    async def isolate(self, file: UploadedFile, user_id: str, scan: VirusScanResult) -> QuarantineResult:
        """Write the rejected upload to quarantine storage."""
        key = quarantine_key(scan.scan_id, file.filename)
        reason = f"Malware detected: {', '.join(scan.threats)}"
        try:
            await self._gateway.upload(
                key,
                file.data,
                ObjectMetadata(
                    content_type="application/octet-stream",
                    user_id=user_id,
                    custom={"quarantine-reason": "MALWARE_DETECTED", "original-content-type": file.content_type},
                ),
            )
            result = self._record(file.filename, key, scan.threats)
            await self._audit.log_file_access(
                SYSTEM_PRINCIPAL,
                file.filename,
                FileOperation.DELETE,
                AccessResult.SUCCESS,
                {"quarantineId": result.quarantine_id, "reason": reason, "storageKey": key},
            )
        except FileSystemError as exc:
            raise quarantine_error(file.filename, exc.message, exc) from exc
        except Exception as exc:
            raise quarantine_error(file.filename, str(exc), exc) from exc
        return result

    async def move(self, storage_key: str, scan_id: str, threats: tuple[str, ...] = ()) -> QuarantineResult:
        """Relocate an already stored object (copy, then delete the original)."""
        key = quarantine_key(scan_id, storage_key)
        try:
            await self._gateway.copy(storage_key, key)
            await self._gateway.delete(storage_key)
        except FileSystemError as exc:
            raise quarantine_error(storage_key, exc.message, exc) from exc
        return self._record(storage_key, key, threats)

    def _record(self, file_id: str, key: str, threats: tuple[str, ...]) -> QuarantineResult:
        result = QuarantineResult(
            quarantine_id=str(uuid.uuid4()),
            file_id=file_id,
            reason="MALWARE_DETECTED",
            storage_key=key,
            quarantined_at=self._clock.now(),
            threats=tuple(threats),
        )
        logger.error(
            "security.file_quarantined",
            file_id=file_id,
            quarantine_id=result.quarantine_id,
            storage_key=key,
            threats=list(threats),
        )
        return result
