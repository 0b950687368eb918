"""Application files – UploadedFile value object."""
from __future__ import annotations

import hashlib
import os
from dataclasses import dataclass, field

from filevault.application.files.enums import DocumentType

__all__ = ["UploadedFile"]


@dataclass
class UploadedFile:
    """An untrusted file as received from a client, fully buffered."""

    filename: str
    content_type: str
    data: bytes
    size_bytes: int = -1
    original_name: str = ""
    document_type: DocumentType = DocumentType.DOCUMENT
    project_id: str | None = None
    tags: list[str] = field(default_factory=list)
    checksum_sha256: str = ""
    checksum_md5: str = ""

    def __post_init__(self) -> None:
        if self.size_bytes < 0:
            self.size_bytes = len(self.data)
        if not self.original_name:
            self.original_name = self.filename
        if not self.checksum_sha256:
            self.checksum_sha256 = hashlib.sha256(self.data).hexdigest()
        if not self.checksum_md5:
            self.checksum_md5 = hashlib.md5(self.data).hexdigest()  # noqa: S324

    @classmethod
    def from_bytes(cls, filename: str, content_type: str, data: bytes, **kwargs: object) -> "UploadedFile":
        return cls(filename=filename, content_type=content_type, data=data, **kwargs)  # type: ignore[arg-type]

    @property
    def extension(self) -> str:
        """Lower-cased extension without the dot, ``""`` when absent."""
        return os.path.splitext(self.filename)[1].lstrip(".").lower()
