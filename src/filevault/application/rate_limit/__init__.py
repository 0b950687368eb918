"""Application rate limiting – backend port and in-memory implementation."""
from filevault.application.rate_limit.local import InMemoryRateLimitBackend, is_ip_address
from filevault.application.rate_limit.rate_limiter import (
    FailOpenRateLimitBackend,
    Quota,
    RateLimitBackend,
    RateLimitStatus,
)

__all__ = [
    "FailOpenRateLimitBackend",
    "InMemoryRateLimitBackend",
    "Quota",
    "RateLimitBackend",
    "RateLimitStatus",
    "is_ip_address",
]
