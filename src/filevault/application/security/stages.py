"""Application security – the stages of upload validation, in order.

1. :class:`RateLimitStage` – deny before any work; the counter is untouched
2. :class:`FormatStage`
3. :class:`ContentStage`
4. :class:`VirusScanStage` – quarantine on infection
5. :class:`BehaviorStage`

Format, content and scan failures mark the verdict as failed but let later
stages run so the full threat picture reaches the audit log.
"""
from __future__ import annotations

from typing import Any

from filevault.application.files.enums import SecurityThreat
from filevault.application.pipeline import Next, Stage
from filevault.application.rate_limit import RateLimitBackend
from filevault.application.scanning.engine import VirusScanEngine
from filevault.application.security.audit import AuditSink
from filevault.application.security.heuristics import BehaviorAnalyzer
from filevault.application.security.quarantine import QuarantineService
from filevault.application.security.validation import Mitigation, ValidationContext
from filevault.application.security.validators import ContentValidator, FileValidator
from filevault.kernel.errors import rate_limit_exceeded
from filevault.observability.logging import get_logger

__all__ = [
    "BehaviorStage",
    "ContentStage",
    "FormatStage",
    "RateLimitStage",
    "UPLOAD_OPERATION",
    "VirusScanStage",
    "rate_limit_identifiers",
]

logger = get_logger(__name__)

UPLOAD_OPERATION = "upload"


def rate_limit_identifiers(context: ValidationContext) -> list[str]:
    """The user id, followed by the client IP when one is known."""
    return [context.user_id] + ([context.ip_address] if context.ip_address else [])


class RateLimitStage(Stage):
    name = "rate_limit"

    def __init__(self, backend: RateLimitBackend, audit: AuditSink, operation: str = UPLOAD_OPERATION) -> None:
        self._backend = backend
        self._audit = audit
        self._operation = operation

    async def __call__(self, context: ValidationContext, next_: Next) -> Any:
        for identifier in rate_limit_identifiers(context):
            status = await self._backend.check_limit(identifier, self._operation)
            if not status.allowed:
                context.validation.reject(SecurityThreat.RATE_LIMIT_EXCEEDED, Mitigation.TEMPORARY_BLOCK)
                logger.warning("security.rate_limited", identifier=identifier, limit=status.limit)
                await self._audit.log_security_validation(context.user_id, context.validation)
                raise rate_limit_exceeded(identifier, status.limit, status.reset_time)
        return await next_(context)


class FormatStage(Stage):
    name = "format"

    def __init__(self, validator: FileValidator) -> None:
        self._validator = validator

    async def __call__(self, context: ValidationContext, next_: Next) -> Any:
        result = self._validator.validate(context.file)
        if not result.valid:
            context.validation.reject(SecurityThreat.INVALID_FORMAT, Mitigation.FORMAT_REJECTION)
            context.validation.details["formatErrors"] = list(result.errors)
        return await next_(context)


class ContentStage(Stage):
    name = "content"

    def __init__(self, validator: ContentValidator) -> None:
        self._validator = validator

    async def __call__(self, context: ValidationContext, next_: Next) -> Any:
        result = self._validator.validate(context.file)
        if not result.safe:
            context.validation.reject(SecurityThreat.SUSPICIOUS_CONTENT, Mitigation.CONTENT_SANITIZATION)
            context.validation.details["contentThreats"] = list(result.threats)
        return await next_(context)


class VirusScanStage(Stage):
    """Reject infected uploads and move them into quarantine.

    Only a completed scan that reports threats counts as ``MALWARE_DETECTED``
    and triggers quarantine. A scan that timed out or errored carries only
    the timeout or error marker; it rejects the upload as
    ``SUSPICIOUS_CONTENT`` with ``MANUAL_REVIEW`` and quarantines nothing,
    since no malware was confirmed.
    """

    name = "virus_scan"

    def __init__(self, engine: VirusScanEngine, quarantine: QuarantineService) -> None:
        self._engine = engine
        self._quarantine = quarantine

    async def __call__(self, context: ValidationContext, next_: Next) -> Any:
        scan = await self._engine.scan(context.file.data)
        context.virus_scan = scan
        validation = context.validation
        validation.details["virusScan"] = {
            "scanId": scan.scan_id,
            "clean": scan.clean,
            "threats": list(scan.threats),
            "scannerVersion": scan.scanner_version,
        }
        if scan.failed:
            # No verdict from the scanner: fail closed without quarantining.
            validation.reject(SecurityThreat.SUSPICIOUS_CONTENT, Mitigation.MANUAL_REVIEW)
        elif not scan.clean:
            validation.reject(SecurityThreat.MALWARE_DETECTED, Mitigation.QUARANTINE)
            logger.error(
                "security.malware_detected",
                filename=context.file.filename,
                user_id=context.user_id,
                threats=list(scan.threats),
            )
            result = await self._quarantine.isolate(context.file, context.user_id, scan)
            validation.details["quarantineId"] = result.quarantine_id
        return await next_(context)


class BehaviorStage(Stage):
    name = "behavior"

    def __init__(self, analyzer: BehaviorAnalyzer | None = None) -> None:
        self._analyzer = analyzer or BehaviorAnalyzer()

    async def __call__(self, context: ValidationContext, next_: Next) -> Any:
        file = context.file
        analysis = self._analyzer.analyze(file.filename, file.content_type, file.size_bytes)
        context.risk_score = analysis.risk_score
        context.suspicious_patterns = list(analysis.patterns)
        context.validation.confidence_score = max(0, 100 - analysis.risk_score)
        if analysis.suspicious:
            context.validation.flag(SecurityThreat.SUSPICIOUS_CONTENT, Mitigation.ENHANCED_MONITORING)
            logger.warning(
                "security.suspicious_behavior",
                user_id=context.user_id,
                risk_score=analysis.risk_score,
                patterns=list(analysis.patterns),
            )
        return await next_(context)
