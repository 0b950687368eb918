"""Resilience – timeout policies."""
from filevault.resilience.timeouts.policy import TimeoutPolicy

__all__ = ["TimeoutPolicy"]
