"""Application pipeline – Stage base."""
from __future__ import annotations

import abc
from typing import Any, Awaitable, Callable

Handler = Callable[[Any], Awaitable[Any]]
Next = Callable[[Any], Awaitable[Any]]


class Stage(abc.ABC):
    """One step of a pipeline.

    A stage either awaits ``next_(context)`` to continue or raises to end
    the run with a terminal error.
    """

    name: str = ""

    @abc.abstractmethod
    async def __call__(self, context: Any, next_: Next) -> Any: ...

    @property
    def label(self) -> str:
        return self.name or type(self).__name__


__all__ = ["Handler", "Next", "Stage"]
