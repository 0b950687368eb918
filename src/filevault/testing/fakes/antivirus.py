"""Testing fakes – ScriptedAntivirus."""
from __future__ import annotations

import asyncio
from typing import Iterable


class ScriptedAntivirus:
    """AntivirusBackend that replays a script, one entry per ``inspect`` call.

    An entry is a list of threat names, an exception instance to raise, or a
    float number of seconds to hang before returning no threats. The last
    entry repeats once the script runs out.
    """

    version = "scripted-1.0"

    def __init__(self, script: Iterable[list[str] | BaseException | float] = ([],)) -> None:
        self._script = list(script)
        self.calls = 0

    async def inspect(self, data: bytes) -> list[str]:
        step = self._script[min(self.calls, len(self._script) - 1)]
        self.calls += 1
        if isinstance(step, BaseException):
            raise step
        if isinstance(step, float):
            await asyncio.sleep(step)
            return []
        return list(step)


__all__ = ["ScriptedAntivirus"]
