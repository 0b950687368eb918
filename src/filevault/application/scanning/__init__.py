"""Application scanning – virus scan engine and signature scanner."""
from filevault.application.scanning.engine import ScanEngineConfig, VirusScanEngine
from filevault.application.scanning.result import SCAN_ERROR, SCAN_TIMEOUT, VirusScanResult
from filevault.application.scanning.signatures import (
    EICAR_TEST_STRING,
    MALWARE_SIGNATURES,
    SUSPICIOUS_EXECUTABLE,
    AntivirusBackend,
    SignatureScanner,
    is_executable,
    threat_name,
)

__all__ = [
    "AntivirusBackend",
    "EICAR_TEST_STRING",
    "MALWARE_SIGNATURES",
    "SCAN_ERROR",
    "SCAN_TIMEOUT",
    "SUSPICIOUS_EXECUTABLE",
    "ScanEngineConfig",
    "SignatureScanner",
    "VirusScanEngine",
    "VirusScanResult",
    "is_executable",
    "threat_name",
]
