"""Shared pytest fixtures."""
from __future__ import annotations

import pytest

from filevault.application.files import UploadedFile
from filevault.kernel.time import FrozenClock
from filevault.testing.fakes import FakeClock, RecordingAuditSink

PNG_HEADER = b"\x89PNG\r\n\x1a\n"
PNG_TRAILER = b"IEND\xaeB`\x82"


def make_png(size: int = 2048) -> bytes:
    """Bytes that pass the PNG signature and trailer checks."""
    filler = b"\x00" * max(0, size - len(PNG_HEADER) - len(PNG_TRAILER))
    return PNG_HEADER + filler + PNG_TRAILER


@pytest.fixture
def fake_clock() -> FrozenClock:
    """A clock pinned to 2026-01-01 12:00 UTC."""
    return FakeClock()


@pytest.fixture
def audit_sink() -> RecordingAuditSink:
    return RecordingAuditSink()


@pytest.fixture
def png_upload() -> UploadedFile:
    return UploadedFile(filename="photo.png", content_type="image/png", data=make_png())
