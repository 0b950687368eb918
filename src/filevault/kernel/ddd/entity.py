"""Entity base class – equality by identity."""

from __future__ import annotations


class Entity:
    """Two entities are equal when they share a type and an ``id``."""

    def __init__(self, id: str) -> None:  # noqa: A002
        self._id = id

    @property
    def id(self) -> str:
        return self._id

    def __eq__(self, other: object) -> bool:
        return isinstance(other, type(self)) and self._id == other._id

    def __hash__(self) -> int:
        return hash((type(self).__name__, self._id))

    def __repr__(self) -> str:  # pragma: no cover
        return f"{type(self).__name__}(id={self._id!r})"


__all__ = ["Entity"]
