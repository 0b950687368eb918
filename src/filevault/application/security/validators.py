"""Application security – format and content validators.

``FileValidator`` checks what a file claims to be (size, name, MIME type,
magic numbers, structure). ``ContentValidator`` looks at what the bytes
contain (script fragments, shell commands, entropy).
"""
from __future__ import annotations

import json
import math
import re
from collections import Counter
from dataclasses import dataclass, field
from typing import Iterable

from filevault.application.files.upload import UploadedFile
from filevault.observability.logging import get_logger

__all__ = [
    "ContentValidationResult",
    "ContentValidator",
    "EXTENSION_MIME_TYPES",
    "FileValidator",
    "FormatValidationResult",
    "MAGIC_NUMBERS",
    "detect_mime_type",
    "shannon_entropy",
]

logger = get_logger(__name__)

MAGIC_NUMBERS: dict[str, tuple[bytes, ...]] = {
    "image/jpeg": (b"\xff\xd8\xff",),
    "image/png": (b"\x89PNG",),
    "image/gif": (b"GIF87a", b"GIF89a"),
    "image/webp": (b"RIFF",),
    "image/bmp": (b"BM",),
    "image/tiff": (b"II*\x00", b"MM\x00*"),
    "application/pdf": (b"%PDF-",),
    "application/zip": (b"PK\x03\x04", b"PK\x05\x06", b"PK\x07\x08"),
    "application/x-rar-compressed": (b"Rar!\x1a\x07\x00",),
    "application/x-7z-compressed": (b"7z\xbc\xaf\x27\x1c",),
    "application/vnd.openxmlformats-officedocument.wordprocessingml.document": (b"PK\x03\x04",),
    "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet": (b"PK\x03\x04",),
    "application/vnd.openxmlformats-officedocument.presentationml.presentation": (b"PK\x03\x04",),
    "application/msword": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
    "application/vnd.ms-excel": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
    "application/vnd.ms-powerpoint": (b"\xd0\xcf\x11\xe0\xa1\xb1\x1a\xe1",),
}

EXTENSION_MIME_TYPES: dict[str, tuple[str, ...]] = {
    "pdf": ("application/pdf",),
    "jpg": ("image/jpeg",),
    "jpeg": ("image/jpeg",),
    "png": ("image/png",),
    "gif": ("image/gif",),
    "webp": ("image/webp",),
    "bmp": ("image/bmp",),
    "txt": ("text/plain",),
    "csv": ("text/csv", "text/plain"),
    "json": ("application/json",),
    "xml": ("text/xml", "application/xml"),
    "html": ("text/html",),
    "htm": ("text/html",),
    "zip": ("application/zip",),
    "doc": ("application/msword",),
    "xls": ("application/vnd.ms-excel",),
    "ppt": ("application/vnd.ms-powerpoint",),
    "docx": ("application/vnd.openxmlformats-officedocument.wordprocessingml.document",),
    "xlsx": ("application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",),
    "pptx": ("application/vnd.openxmlformats-officedocument.presentationml.presentation",),
}

_DANGEROUS_FILENAME_PATTERNS: tuple[re.Pattern[str], ...] = (
    re.compile(r"\.\."),
    re.compile(r"[<>:\"|?*/\\]"),
    re.compile(r"^(CON|PRN|AUX|NUL|COM[1-9]|LPT[1-9])(\..*)?$", re.IGNORECASE),
    re.compile(r"^\.+$"),
    re.compile(r"\.(exe|scr|bat|cmd|com|pif|vbs|js|jar|app|deb|rpm)$", re.IGNORECASE),
)
_CONTROL_CHARS = re.compile(r"[\x00-\x1f\x7f-\x9f]")
_MIME_FORMAT = re.compile(r"^[a-zA-Z][a-zA-Z0-9][a-zA-Z0-9!#$&\-^.+]*/[a-zA-Z0-9][a-zA-Z0-9!#$&\-^.+]*$")
MAX_FILENAME_LENGTH = 255

_SUSPICIOUS_CONTENT: tuple[re.Pattern[str], ...] = (
    re.compile(r"javascript:", re.IGNORECASE),
    re.compile(r"<script[^>]*>", re.IGNORECASE),
    re.compile(r"\bon\w+\s*=\s*[\"']", re.IGNORECASE),
    re.compile(r"eval\s*\(", re.IGNORECASE),
    re.compile(r"document\.write", re.IGNORECASE),
    re.compile(r"innerHTML", re.IGNORECASE),
    re.compile(r"\bexec\s*\(", re.IGNORECASE),
    re.compile(r"system\s*\(", re.IGNORECASE),
    re.compile(r"\$_GET|\$_POST|\$_REQUEST", re.IGNORECASE),
    re.compile(r"base64_decode", re.IGNORECASE),
)
_DANGEROUS_COMMANDS = ("rm -rf", "del /s", "format c:", "mkfs.", "dd if=", "chmod 777", "sudo rm", ">/dev/null")

HEURISTIC_WINDOW = 8192
SCRIPT_WINDOW = 16384
HIGH_ENTROPY = 7.5


@dataclass
class FormatValidationResult:
    valid: bool = True
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    declared_mime_type: str | None = None
    detected_mime_type: str | None = None
    file_signature: str | None = None

    def fail(self, message: str) -> None:
        self.valid = False
        self.errors.append(message)


@dataclass
class ContentValidationResult:
    safe: bool = True
    threats: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    entropy: float | None = None

    def flag(self, threat: str) -> None:
        self.safe = False
        self.threats.append(threat)


def detect_mime_type(data: bytes) -> str | None:
    for mime_type, magics in MAGIC_NUMBERS.items():
        if any(data.startswith(m) for m in magics):
            return mime_type
    return None


def shannon_entropy(data: bytes) -> float:
    """Bits of entropy per byte, 0.0 for empty input."""
    if not data:
        return 0.0
    total = len(data)
    return -sum((n / total) * math.log2(n / total) for n in Counter(data).values())


class FileValidator:
    """Validates what an upload claims to be.

    Parameters
    ----------
    max_size_bytes:
        Hard ceiling on the declared size.
    allowed_content_types:
        Allow-list; entries ending in ``/*`` match a whole family.
    strict:
        When True, magic-number and extension mismatches are errors;
        otherwise they are reported as warnings.
    """

    def __init__(
        self,
        max_size_bytes: int = 100 * 1024 * 1024,
        allowed_content_types: Iterable[str] | None = None,
        strict: bool = True,
    ) -> None:
        self.max_size_bytes = max_size_bytes
        self.allowed_content_types = tuple(allowed_content_types) if allowed_content_types is not None else None
        self.strict = strict

    def validate(self, file: UploadedFile) -> FormatValidationResult:
        result = FormatValidationResult(declared_mime_type=file.content_type)
        if not (
            self._check_size(file, result)
            and self._check_filename(file.filename, result)
            and self._check_mime_type(file.content_type, result)
        ):
            self._log(file, result)
            return result

        self._check_magic_number(file, result)
        self._check_extension(file, result)
        if result.valid:
            self._check_structure(file, result)
        self._log(file, result)
        return result

    def _log(self, file: UploadedFile, result: FormatValidationResult) -> None:
        if not result.valid:
            logger.warning("format_validation.failed", filename=file.filename, errors=result.errors)

    def _check_size(self, file: UploadedFile, result: FormatValidationResult) -> bool:
        if file.size_bytes <= 0:
            result.fail("File size must be greater than 0")
        elif file.size_bytes > self.max_size_bytes:
            result.fail(f"File size {file.size_bytes} exceeds maximum allowed size {self.max_size_bytes}")
        return result.valid

    def _check_filename(self, filename: str, result: FormatValidationResult) -> bool:
        if not filename or not filename.strip():
            result.fail("Filename is required")
            return False
        for pattern in _DANGEROUS_FILENAME_PATTERNS:
            if pattern.search(filename):
                result.fail(f"Filename contains dangerous pattern: {pattern.pattern}")
                return False
        if len(filename) > MAX_FILENAME_LENGTH:
            result.fail(f"Filename too long (max {MAX_FILENAME_LENGTH} characters)")
            return False
        if _CONTROL_CHARS.search(filename):
            result.fail("Filename contains control characters")
            return False
        return True

    def _check_mime_type(self, mime_type: str, result: FormatValidationResult) -> bool:
        if not mime_type or not mime_type.strip():
            result.fail("MIME type is required")
            return False
        if not _MIME_FORMAT.match(mime_type):
            result.fail("Invalid MIME type format")
            return False
        if self.allowed_content_types is not None and not any(
            mime_type.startswith(allowed[:-1]) if allowed.endswith("/*") else mime_type == allowed
            for allowed in self.allowed_content_types
        ):
            result.fail(f"MIME type {mime_type} not allowed")
            return False
        return True

    def _check_magic_number(self, file: UploadedFile, result: FormatValidationResult) -> None:
        result.file_signature = file.data[:16].hex().upper()
        expected = MAGIC_NUMBERS.get(file.content_type)
        if not expected or any(file.data.startswith(m) for m in expected):
            return
        result.detected_mime_type = detect_mime_type(file.data)
        if self.strict:
            result.fail(
                f"File signature {result.file_signature} does not match declared MIME type {file.content_type}"
            )
        else:
            result.warnings.append(
                f"File signature mismatch. Declared: {file.content_type}, "
                f"Detected: {result.detected_mime_type or 'unknown'}"
            )

    def _check_extension(self, file: UploadedFile, result: FormatValidationResult) -> None:
        expected = EXTENSION_MIME_TYPES.get(file.extension)
        if not expected or file.content_type in expected:
            return
        if self.strict:
            result.fail(f"Extension .{file.extension} does not match MIME type {file.content_type}")
        else:
            result.warnings.append(f"Extension/MIME type mismatch: .{file.extension} vs {file.content_type}")

    def _check_structure(self, file: UploadedFile, result: FormatValidationResult) -> None:
        data = file.data
        content_type = file.content_type
        if content_type == "application/pdf":
            if not data.startswith(b"%PDF-"):
                result.fail("Invalid PDF header")
            elif b"%%EOF" not in data[-128:]:
                result.warnings.append("PDF may be truncated (missing %%EOF)")
        elif content_type == "application/json":
            try:
                json.loads(data.decode("utf-8"))
            except ValueError as exc:
                result.fail(f"Invalid JSON: {exc}")
        elif content_type in ("text/xml", "application/xml"):
            if not data.decode("utf-8", errors="replace").lstrip().startswith("<"):
                result.fail("Invalid XML: must start with <")
        elif content_type == "image/jpeg":
            if not data.endswith(b"\xff\xd9"):
                result.warnings.append("JPEG may be truncated (missing EOI marker)")
        elif content_type == "image/png":
            if b"IEND\xaeB`\x82" not in data[-12:]:
                result.warnings.append("PNG may be truncated (missing IEND chunk)")


class ContentValidator:
    """Heuristic inspection of the bytes of an upload."""

    def validate(self, file: UploadedFile) -> ContentValidationResult:
        result = ContentValidationResult()
        if not file.data:
            result.warnings.append("No content available for validation")
            return result

        self._heuristics(file.data, result)
        self._by_type(file, result)
        self._scripts(file.data, result)
        self._entropy(file.data, result)

        if not result.safe:
            logger.warning("content_validation.failed", filename=file.filename, threats=result.threats)
        return result

    def _heuristics(self, data: bytes, result: ContentValidationResult) -> None:
        content = data[:HEURISTIC_WINDOW].decode("utf-8", errors="replace")
        for pattern in _SUSPICIOUS_CONTENT:
            if pattern.search(content):
                result.flag(f"Suspicious pattern detected: {pattern.pattern}")

    def _by_type(self, file: UploadedFile, result: ContentValidationResult) -> None:
        if file.content_type.startswith("text/"):
            try:
                file.data.decode("utf-8")
            except UnicodeDecodeError:
                result.warnings.append("Invalid UTF-8 encoding detected")
        if file.content_type == "application/json":
            try:
                json.loads(file.data.decode("utf-8"))
            except ValueError:
                result.flag("Invalid JSON structure")

    def _scripts(self, data: bytes, result: ContentValidationResult) -> None:
        content = data[:SCRIPT_WINDOW].decode("ascii", errors="replace").lower()
        if content.startswith("#!"):
            result.flag("Shell script detected")
        for command in _DANGEROUS_COMMANDS:
            if command in content:
                result.flag(f"Dangerous command detected: {command}")

    def _entropy(self, data: bytes, result: ContentValidationResult) -> None:
        result.entropy = shannon_entropy(data)
        if result.entropy > HIGH_ENTROPY:
            result.warnings.append(
                f"High entropy detected ({result.entropy:.2f}), file may be encrypted or highly compressed"
            )
