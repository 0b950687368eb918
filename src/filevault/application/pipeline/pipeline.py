"""Application pipeline – Pipeline class."""
from __future__ import annotations

from typing import Any, Iterable

from filevault.application.pipeline.stage import Handler, Stage


class Pipeline:
    """An ordered chain of stages ending in a handler, composed once."""

    def __init__(self, stages: Iterable[Stage] = ()) -> None:
        self._stages: list[Stage] = list(stages)

    def add(self, stage: Stage) -> "Pipeline":
        """Append a stage (fluent API)."""
        self._stages.append(stage)
        return self

    @property
    def stages(self) -> tuple[Stage, ...]:
        return tuple(self._stages)

    async def execute(self, context: Any, handler: Handler) -> Any:
        """Run every stage in order, then *handler*."""
        chain = handler
        for stage in reversed(self._stages):

            async def _link(ctx: Any, *, _stage: Stage = stage, _next: Handler = chain) -> Any:
                return await _stage(ctx, _next)

            chain = _link
        return await chain(context)


__all__ = ["Pipeline"]
