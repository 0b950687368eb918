"""Application security – SecurityValidationPipeline.

Composes the validation stages once and runs every upload through them::

    pipeline = SecurityValidationPipeline.from_settings(settings, gateway, audit=sink)
    verdict = await pipeline.validate(upload, user_id="u-1", ip_address="10.0.0.1")

The pipeline fails closed: an unexpected error inside any stage turns the
verdict into a rejection, is audited, and surfaces as a generic
``SECURITY_THREAT`` error. Rate-limit and quarantine errors propagate as
they are.
"""
from __future__ import annotations

from typing import Iterable

from filevault.application.files.enums import SecurityThreat
from filevault.application.files.upload import UploadedFile
from filevault.application.pipeline import Pipeline, Stage
from filevault.application.rate_limit import InMemoryRateLimitBackend, Quota, RateLimitBackend
from filevault.application.scanning.engine import VirusScanEngine
from filevault.application.security.audit import AuditSink, LoggingAuditSink
from filevault.application.security.heuristics import BehaviorAnalyzer
from filevault.application.security.quarantine import QuarantineService
from filevault.application.security.stages import (
    UPLOAD_OPERATION,
    BehaviorStage,
    ContentStage,
    FormatStage,
    RateLimitStage,
    VirusScanStage,
    rate_limit_identifiers,
)
from filevault.application.security.validation import Mitigation, SecurityValidation, ValidationContext
from filevault.application.security.validators import ContentValidator, FileValidator
from filevault.application.storage.gateway import ObjectStorageGateway
from filevault.config.file_system import FileSystemSettings
from filevault.kernel.errors import ErrorKind, FileSystemError, security_threat
from filevault.kernel.time import Clock
from filevault.observability.logging import get_logger

__all__ = ["SecurityValidationPipeline"]

logger = get_logger(__name__)

_PROPAGATED = frozenset({ErrorKind.RATE_LIMIT_EXCEEDED, ErrorKind.UNAUTHORIZED_ACCESS})


class SecurityValidationPipeline:
    def __init__(
        self,
        stages: Iterable[Stage],
        audit: AuditSink,
        rate_limit: RateLimitBackend,
        operation: str = UPLOAD_OPERATION,
    ) -> None:
        self._pipeline = Pipeline(stages)
        self._audit = audit
        self._rate_limit = rate_limit
        self._operation = operation

    @classmethod
    def from_settings(
        cls,
        settings: FileSystemSettings,
        gateway: ObjectStorageGateway,
        *,
        audit: AuditSink | None = None,
        rate_limit: RateLimitBackend | None = None,
        engine: VirusScanEngine | None = None,
        clock: Clock | None = None,
    ) -> "SecurityValidationPipeline":
        """Build the standard stage order from *settings*.

        The virus-scan stage is left out entirely when scanning is disabled.
        """
        audit = audit or LoggingAuditSink()
        rate_limit = rate_limit or InMemoryRateLimitBackend(
            user_quota=Quota(settings.max_uploads_per_minute, settings.rate_limit_window_seconds),
            ip_quota=Quota(settings.max_uploads_per_ip, settings.rate_limit_window_seconds),
            clock=clock,
        )
        stages: list[Stage] = [
            RateLimitStage(rate_limit, audit),
            FormatStage(
                FileValidator(
                    max_size_bytes=settings.max_file_size,
                    allowed_content_types=settings.allowed_mime_types,
                    strict=settings.strict_magic_numbers,
                )
            ),
            ContentStage(ContentValidator()),
        ]
        if settings.scan_virus_enabled:
            engine = engine or VirusScanEngine(settings.scanner_config(), clock=clock)
            stages.append(VirusScanStage(engine, QuarantineService(gateway, audit, clock)))
        stages.append(BehaviorStage(BehaviorAnalyzer()))
        return cls(stages, audit, rate_limit)

    @property
    def stages(self) -> tuple[Stage, ...]:
        return self._pipeline.stages

    async def validate(
        self,
        file: UploadedFile,
        user_id: str,
        ip_address: str | None = None,
    ) -> SecurityValidation:
        """Run *file* through every stage and return the verdict.

        Raises:
            FileSystemError: ``RATE_LIMIT_EXCEEDED`` before any other check
                when the user is over quota; ``QUARANTINE`` when malware was
                found but could not be isolated; ``SECURITY_THREAT`` when a
                stage failed unexpectedly.
        """
        context = ValidationContext(file=file, user_id=user_id, ip_address=ip_address)
        log = logger.bind(user_id=user_id, filename=file.filename, scan_id=context.validation.scan_id)
        try:
            return await self._pipeline.execute(context, self._finish)
        except FileSystemError as exc:
            if exc.kind in _PROPAGATED:
                raise
            if exc.kind is ErrorKind.QUARANTINE:
                log.error("security.quarantine_failed", error=exc.message)
                await self._fail_closed(context, exc)
                raise
            await self._fail_closed(context, exc)
            raise self._system_error(context) from exc
        except Exception as exc:
            log.error("security.validation_error", error=str(exc), exc_info=True)
            await self._fail_closed(context, exc)
            raise self._system_error(context) from exc

    async def _finish(self, context: ValidationContext) -> SecurityValidation:
        validation = context.validation
        await self._audit.log_security_validation(context.user_id, validation)
        if validation.passed:
            for identifier in rate_limit_identifiers(context):
                await self._rate_limit.increment_counter(identifier, self._operation)
            logger.info(
                "security.validation_passed",
                user_id=context.user_id,
                filename=context.file.filename,
                confidence_score=validation.confidence_score,
            )
        else:
            logger.warning(
                "security.validation_failed",
                user_id=context.user_id,
                filename=context.file.filename,
                threats=[t.value for t in validation.threats],
            )
        return validation

    async def _fail_closed(self, context: ValidationContext, exc: BaseException) -> None:
        validation = context.validation
        validation.reject(SecurityThreat.SUSPICIOUS_CONTENT, Mitigation.SYSTEM_REJECTION)
        validation.details["error"] = exc.message if isinstance(exc, FileSystemError) else str(exc)
        await self._audit.log_security_validation(context.user_id, validation)

    @staticmethod
    def _system_error(context: ValidationContext) -> FileSystemError:
        return security_threat(
            "Security validation system error",
            [t.value for t in context.validation.threats],
            scan_id=context.validation.scan_id,
        )
