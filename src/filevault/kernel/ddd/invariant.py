"""Invariant helpers for asserting domain rules."""

from __future__ import annotations

from typing import TypeVar

from filevault.kernel.errors import validation_error

T = TypeVar("T")


class Invariant:
    """Namespace for invariant assertions raising ``VALIDATION`` errors."""

    @staticmethod
    def require(condition: bool, message: str) -> None:
        if not condition:
            raise validation_error(message, [message])

    @staticmethod
    def not_blank(value: str | None, name: str) -> str:
        if value is None or not str(value).strip():
            raise validation_error(f"{name} is required", [f"{name} is required"])
        return value


__all__ = ["Invariant"]
