"""Resilience – retry policies and backoff strategies."""
from filevault.resilience.retry.backoff import BackoffStrategy, ExponentialBackoff
from filevault.resilience.retry.tenacity_adapter import TenacityRetryPolicy

__all__ = ["BackoffStrategy", "ExponentialBackoff", "TenacityRetryPolicy"]
