"""Application scanning – VirusScanResult."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

__all__ = ["SCAN_ERROR", "SCAN_TIMEOUT", "VirusScanResult"]

SCAN_TIMEOUT = "SCAN_TIMEOUT"
SCAN_ERROR = "SCAN_ERROR"


@dataclass(frozen=True)
class VirusScanResult:
    clean: bool
    scan_id: str
    file_hash: str
    scan_date: datetime
    scan_duration_ms: int
    scanner_version: str
    threats: tuple[str, ...] = ()
    attempt: int = 1
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def timed_out(self) -> bool:
        return SCAN_TIMEOUT in self.threats

    @property
    def failed(self) -> bool:
        """True when no verdict could be reached (timeout or scanner error)."""
        return self.timed_out or SCAN_ERROR in self.threats
