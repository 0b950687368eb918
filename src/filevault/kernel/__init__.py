"""Kernel – error type, DDD building blocks and time abstractions."""
