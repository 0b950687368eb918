"""Application security – SecurityValidation verdict and validation context."""
from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any

from filevault.application.files.enums import SecurityThreat
from filevault.application.files.upload import UploadedFile
from filevault.application.scanning.result import VirusScanResult

__all__ = ["Mitigation", "SecurityValidation", "ValidationContext"]


class Mitigation:
    TEMPORARY_BLOCK = "TEMPORARY_BLOCK"
    FORMAT_REJECTION = "FORMAT_REJECTION"
    CONTENT_SANITIZATION = "CONTENT_SANITIZATION"
    QUARANTINE = "QUARANTINE"
    MANUAL_REVIEW = "MANUAL_REVIEW"
    ENHANCED_MONITORING = "ENHANCED_MONITORING"
    SYSTEM_REJECTION = "SYSTEM_REJECTION"


@dataclass
class SecurityValidation:
    """Verdict accumulated while an upload moves through the stages."""

    passed: bool = True
    threats: list[SecurityThreat] = field(default_factory=list)
    mitigations: list[str] = field(default_factory=list)
    scan_id: str = field(default_factory=lambda: str(uuid.uuid4()))
    confidence_score: int = 100
    details: dict[str, Any] = field(default_factory=dict)

    def reject(self, threat: SecurityThreat, mitigation: str) -> None:
        """Record a threat that fails the upload."""
        self.passed = False
        self.flag(threat, mitigation)

    def flag(self, threat: SecurityThreat, mitigation: str) -> None:
        """Record a threat without changing the verdict."""
        self.threats.append(threat)
        self.mitigations.append(mitigation)

    def to_dict(self) -> dict[str, Any]:
        return {
            "passed": self.passed,
            "threats": [t.value for t in self.threats],
            "mitigations": list(self.mitigations),
            "scanId": self.scan_id,
            "confidenceScore": self.confidence_score,
            "details": dict(self.details),
        }


@dataclass
class ValidationContext:
    """State handed from stage to stage for one upload."""

    file: UploadedFile
    user_id: str
    validation: SecurityValidation = field(default_factory=SecurityValidation)
    ip_address: str | None = None
    virus_scan: VirusScanResult | None = None
    risk_score: int = 0
    suspicious_patterns: list[str] = field(default_factory=list)
