"""Observability – structured logging and the security audit log."""
