"""Application scanning – VirusScanEngine.

Runs an :class:`AntivirusBackend` under a timeout and retry protocol:

* disabled engine: clean result, ``scanner_version="disabled"``
* empty buffer: ``VIRUS_SCAN`` error
* buffer above ``max_scan_size``: clean "skipped" result
* otherwise up to ``retries + 1`` attempts; a timeout ends the loop at once
  with a timeout result, any other failure sleeps ``2^attempt`` seconds and
  retries; exhausting attempts yields an error result (never an exception)
"""
from __future__ import annotations

import asyncio
import hashlib
import secrets
import string
import time
from dataclasses import dataclass
from typing import Any, Awaitable, Callable

from filevault.application.scanning.result import SCAN_ERROR, SCAN_TIMEOUT, VirusScanResult
from filevault.application.scanning.signatures import EICAR_TEST_STRING, AntivirusBackend, SignatureScanner
from filevault.kernel.errors import virus_scan_error
from filevault.kernel.time import Clock, SystemClock
from filevault.observability.logging import get_logger
from filevault.resilience.retry import BackoffStrategy, ExponentialBackoff
from filevault.resilience.timeouts import TimeoutPolicy

__all__ = ["ScanEngineConfig", "VirusScanEngine"]

logger = get_logger(__name__)

_ID_ALPHABET = string.ascii_lowercase + string.digits


@dataclass(frozen=True)
class ScanEngineConfig:
    enabled: bool = True
    timeout_ms: int = 30000
    retries: int = 2
    max_scan_size: int = 100 * 1024 * 1024


class VirusScanEngine:
    def __init__(
        self,
        config: ScanEngineConfig | None = None,
        backend: AntivirusBackend | None = None,
        *,
        backoff: BackoffStrategy | None = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        clock: Clock | None = None,
    ) -> None:
        self._config = config or ScanEngineConfig()
        self._backend = backend or SignatureScanner()
        self._backoff = backoff or ExponentialBackoff(base_delay=1.0)
        self._sleep = sleep
        self._clock = clock or SystemClock()
        self._timeout = TimeoutPolicy.from_millis(self._config.timeout_ms)

    @property
    def config(self) -> ScanEngineConfig:
        return self._config

    def generate_scan_id(self) -> str:
        suffix = "".join(secrets.choice(_ID_ALPHABET) for _ in range(6))
        return f"scan_{self._clock.timestamp_ms()}_{suffix}"

    async def scan(self, buffer: bytes) -> VirusScanResult:
        """Scan *buffer*; infected, timed-out and failed scans are results, not errors."""
        scan_id = self.generate_scan_id()
        started = time.monotonic()

        if not self._config.enabled:
            return self._result(
                buffer, scan_id, clean=True, version="disabled", duration_ms=0,
                details={"scanMethod": "DISABLED"},
            )
        if not buffer:
            raise virus_scan_error("Cannot scan an empty buffer")

        file_hash = hashlib.sha256(buffer).hexdigest()
        log = logger.bind(scan_id=scan_id, size=len(buffer))

        if len(buffer) > self._config.max_scan_size:
            log.warning("virus_scan.skipped", reason="FILE_TOO_LARGE", limit=self._config.max_scan_size)
            return self._result(
                buffer, scan_id, clean=True, version="skipped", duration_ms=_elapsed_ms(started),
                file_hash=file_hash, details={"reason": "FILE_TOO_LARGE", "maxSize": self._config.max_scan_size},
            )

        attempts = self._config.retries + 1
        last_error: BaseException | None = None
        for attempt in range(1, attempts + 1):
            try:
                threats = await self._timeout.execute(lambda: self._backend.inspect(buffer))
            except TimeoutError:
                log.error("virus_scan.timeout", attempt=attempt, timeout_ms=self._config.timeout_ms)
                return self._result(
                    buffer, scan_id, clean=False, version="timeout", duration_ms=_elapsed_ms(started),
                    threats=(SCAN_TIMEOUT,), attempt=attempt, file_hash=file_hash,
                    details={"timeoutMs": self._config.timeout_ms},
                )
            except Exception as exc:  # noqa: BLE001
                last_error = exc
                log.warning("virus_scan.attempt_failed", attempt=attempt, error=str(exc))
                if attempt <= self._config.retries:
                    await self._sleep(self._backoff.compute(attempt))
                continue

            result = self._result(
                buffer, scan_id, clean=not threats, version=self._backend.version,
                duration_ms=_elapsed_ms(started), threats=tuple(threats), attempt=attempt,
                file_hash=file_hash, details={"scanMethod": "SIGNATURE", "bytesScanned": len(buffer)},
            )
            if threats:
                log.error("virus_scan.threats_detected", threats=list(threats), attempt=attempt)
            else:
                log.info("virus_scan.clean", attempt=attempt, duration_ms=result.scan_duration_ms)
            return result

        log.error("virus_scan.failed", attempts=attempts, error=str(last_error))
        return self._result(
            buffer, scan_id, clean=False, version="error", duration_ms=_elapsed_ms(started),
            threats=(SCAN_ERROR,), attempt=attempts, file_hash=file_hash,
            details={"error": str(last_error), "attempts": attempts},
        )

    async def health_check(self) -> dict[str, Any]:
        """Healthy only if the EICAR test string is reported as a threat."""
        try:
            result = await self.scan(EICAR_TEST_STRING.encode("ascii"))
        except Exception as exc:  # noqa: BLE001
            logger.error("virus_scan.health_check_failed", error=str(exc))
            return {"healthy": False, "error": str(exc)}
        return {"healthy": not result.clean, "version": result.scanner_version}

    def _result(
        self,
        buffer: bytes,
        scan_id: str,
        *,
        clean: bool,
        version: str,
        duration_ms: int,
        threats: tuple[str, ...] = (),
        attempt: int = 1,
        file_hash: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> VirusScanResult:
        return VirusScanResult(
            clean=clean,
            scan_id=scan_id,
            file_hash=file_hash or hashlib.sha256(buffer).hexdigest(),
            scan_date=self._clock.now(),
            scan_duration_ms=duration_ms,
            scanner_version=version,
            threats=threats,
            attempt=attempt,
            details=details or {},
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)
