"""Resilience – retry and timeout policies."""
