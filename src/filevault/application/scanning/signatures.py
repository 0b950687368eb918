"""Application scanning – signature matching scanner.

A stand-in for a real antivirus daemon: exact substring matching over the
head of the buffer plus executable magic-number detection.
"""
from __future__ import annotations

import asyncio
import hashlib
import random
from typing import Protocol, runtime_checkable

__all__ = [
    "AntivirusBackend",
    "EICAR_TEST_STRING",
    "MALWARE_SIGNATURES",
    "SCAN_WINDOW_BYTES",
    "SUSPICIOUS_EXECUTABLE",
    "SignatureScanner",
    "is_executable",
    "threat_name",
]

SCAN_WINDOW_BYTES = 8192
SUSPICIOUS_EXECUTABLE = "Suspicious.Executable.Generic"

EICAR_TEST_STRING = r"X5O!P%@AP[4\PZX54(P^)7CC)7}$EICAR-STANDARD-ANTIVIRUS-TEST-FILE!$H+H*"

MALWARE_SIGNATURES: tuple[str, ...] = (
    "EICAR-STANDARD-ANTIVIRUS-TEST-FILE",
    r"X5O!P%@AP[4\PZX54(P^)7CC)7}",
    "MALWARE_SIGNATURE",
    "#!/bin/bash",
    "rm -rf /",
    "<script>alert",
    "eval(",
    "WScript.Shell",
)

_PE = b"MZ"
_ELF = b"\x7fELF"
_MACHO = (0xFEEDFACE, 0xFEEDFACF)


@runtime_checkable
class AntivirusBackend(Protocol):
    """Port: inspect bytes and return the names of detected threats."""

    async def inspect(self, data: bytes) -> list[str]: ...

    @property
    def version(self) -> str: ...


def threat_name(pattern: str) -> str:
    digest = hashlib.md5(pattern.encode("utf-8")).hexdigest()  # noqa: S324
    return f"Trojan.Generic.{digest[:8]}"


def is_executable(data: bytes) -> bool:
    if data.startswith(_PE) or data.startswith(_ELF):
        return True
    if len(data) >= 4:
        return int.from_bytes(data[:4], "big") in _MACHO
    return False


class SignatureScanner:
    """Signature matcher with a simulated scan latency.

    Parameters
    ----------
    latency:
        ``(minimum, spread)`` in seconds; each scan sleeps
        ``minimum + random() * spread``. ``None`` disables the delay.
    """

    version = "ClamAV-Simulator-1.0.0"

    def __init__(self, latency: tuple[float, float] | None = (0.1, 0.5)) -> None:
        self._latency = latency

    async def inspect(self, data: bytes) -> list[str]:
        if self._latency is not None:
            minimum, spread = self._latency
            await asyncio.sleep(minimum + random.random() * spread)  # noqa: S311

        head = data[:SCAN_WINDOW_BYTES].decode("ascii", errors="replace")
        threats = [threat_name(p) for p in MALWARE_SIGNATURES if p in head]

        if is_executable(data):
            threats.append(SUSPICIOUS_EXECUTABLE)
        return threats
