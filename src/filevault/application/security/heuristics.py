"""Application security – upload behaviour heuristics."""
from __future__ import annotations

import re
from dataclasses import dataclass, field

__all__ = ["BehaviorAnalysis", "BehaviorAnalyzer", "RISK_THRESHOLD"]

RISK_THRESHOLD = 50

_MB = 1024 * 1024
_SUSPICIOUS_NAMES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.[^.]{1,3}\.[^.]{1,4}$"),
    re.compile(r"\.(exe|scr|bat|cmd|com|pif)$", re.IGNORECASE),
    re.compile(r"\.(js|vbs|ps1)$", re.IGNORECASE),
)
_SIZE_CEILINGS: dict[str, int] = {
    "text/plain": 10 * _MB,
    "application/json": 5 * _MB,
    "image/png": 50 * _MB,
    "image/jpeg": 50 * _MB,
}
_MIN_IMAGE_SIZE = 100


@dataclass(frozen=True)
class BehaviorAnalysis:
    risk_score: int = 0
    patterns: tuple[str, ...] = field(default_factory=tuple)

    @property
    def suspicious(self) -> bool:
        return self.risk_score >= RISK_THRESHOLD


class BehaviorAnalyzer:
    """Scores an upload by its name and its size relative to its type."""

    extension_weight = 30
    size_weight = 20

    def analyze(self, filename: str, content_type: str, size: int) -> BehaviorAnalysis:
        score = 0
        patterns: list[str] = []
        if self.has_suspicious_extension(filename):
            patterns.append("MULTIPLE_EXTENSIONS")
            score += self.extension_weight
        if self.has_suspicious_size(content_type, size):
            patterns.append("SUSPICIOUS_SIZE")
            score += self.size_weight
        return BehaviorAnalysis(risk_score=score, patterns=tuple(patterns))

    @staticmethod
    def has_suspicious_extension(filename: str) -> bool:
        return any(p.search(filename) for p in _SUSPICIOUS_NAMES)

    @staticmethod
    def has_suspicious_size(content_type: str, size: int) -> bool:
        ceiling = _SIZE_CEILINGS.get(content_type)
        if ceiling is not None and size > ceiling:
            return True
        return content_type.startswith("image/") and size < _MIN_IMAGE_SIZE
