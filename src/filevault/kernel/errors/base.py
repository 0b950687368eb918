"""Root error class shared by every filevault error."""

from __future__ import annotations

import json
from typing import Any


class BaseError(Exception):
    """Exception carrying a machine-readable code and a structured payload.

    Args:
        message: Human-readable description, safe to show to callers.
        code: Stable slug; falls back to ``default_code``.
        detail: JSON-friendly context for logs and API responses.
        cause: Lower-level exception, chained as ``__cause__``.
    """

    default_code: str = "filevault_error"

    def __init__(
        self,
        message: str,
        *,
        code: str | None = None,
        detail: dict[str, Any] | None = None,
        cause: BaseException | None = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or self.default_code
        self.detail: dict[str, Any] = dict(detail or {})
        self.cause = cause
        if cause is not None:
            self.__cause__ = cause

    def __str__(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, default=str)

    def __repr__(self) -> str:
        return f"{type(self).__name__}(code={self.code!r}, message={self.message!r})"

    def to_dict(self) -> dict[str, Any]:
        """Plain-dict form used by the audit log and the HTTP layer."""
        data: dict[str, Any] = {"code": self.code, "message": self.message, "detail": self.detail}
        if self.cause is not None:
            data["cause"] = repr(self.cause)
        return data


__all__ = ["BaseError"]
