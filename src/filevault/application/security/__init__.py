"""Application security – upload validation, quarantine and access control."""
from filevault.application.security.access import FileAccessGuard, SecurePresignedUrl, UrlRequest
from filevault.application.security.audit import AuditSink, LoggingAuditSink
from filevault.application.security.heuristics import RISK_THRESHOLD, BehaviorAnalysis, BehaviorAnalyzer
from filevault.application.security.pipeline import SecurityValidationPipeline
from filevault.application.security.quarantine import QuarantineResult, QuarantineService, quarantine_key
from filevault.application.security.stages import (
    BehaviorStage,
    ContentStage,
    FormatStage,
    RateLimitStage,
    VirusScanStage,
)
from filevault.application.security.validation import Mitigation, SecurityValidation, ValidationContext
from filevault.application.security.validators import (
    ContentValidationResult,
    ContentValidator,
    FileValidator,
    FormatValidationResult,
    detect_mime_type,
    shannon_entropy,
)

__all__ = [
    "AuditSink",
    "BehaviorAnalysis",
    "BehaviorAnalyzer",
    "BehaviorStage",
    "ContentStage",
    "ContentValidationResult",
    "ContentValidator",
    "FileAccessGuard",
    "FileValidator",
    "FormatStage",
    "FormatValidationResult",
    "LoggingAuditSink",
    "Mitigation",
    "QuarantineResult",
    "QuarantineService",
    "RISK_THRESHOLD",
    "RateLimitStage",
    "SecurePresignedUrl",
    "SecurityValidation",
    "SecurityValidationPipeline",
    "UrlRequest",
    "ValidationContext",
    "VirusScanStage",
    "detect_mime_type",
    "shannon_entropy",
    "quarantine_key",
]
