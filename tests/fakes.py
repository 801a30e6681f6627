from __future__ import annotations

import asyncio
import heapq
import io
from typing import Any

from rich.console import Console, RenderableType


async def settle(rounds: int = 20) -> None:
    for _ in range(rounds):
        await asyncio.sleep(0)


class VirtualClock:
    """Stands in for asyncio.sleep; time only moves when advance() is awaited."""

    def __init__(self) -> None:
        self.now = 0.0
        self._sleepers: list[tuple[float, int, asyncio.Future[None]]] = []
        self._seq = 0

    async def sleep(self, seconds: float) -> None:
        fut: asyncio.Future[None] = asyncio.get_running_loop().create_future()
        self._seq += 1
        heapq.heappush(self._sleepers, (self.now + seconds, self._seq, fut))
        await fut

    async def advance(self, seconds: float) -> None:
        target = self.now + seconds
        await settle()
        while self._sleepers and self._sleepers[0][0] <= target:
            deadline, _, fut = heapq.heappop(self._sleepers)
            if fut.done():
                continue
            self.now = deadline
            fut.set_result(None)
            await settle()
        self.now = target
        await settle()


class ScriptedSource:
    """Plays back one scripted step per fetch.

    A step is a list of rows, an exception to raise, or a future resolving to
    either (to hold the fetch in flight).
    """

    def __init__(self, *script: Any, default: Any = ()) -> None:
        self.script = list(script)
        self.default = default
        self.calls: list[str] = []
        self.closed = False

    async def fetch_rows(self, table_name: str) -> list[dict[str, Any]]:
        self.calls.append(table_name)
        step = self.script.pop(0) if self.script else list(self.default)
        if isinstance(step, asyncio.Future):
            step = await step
        if isinstance(step, BaseException):
            raise step
        return step

    async def aclose(self) -> None:
        self.closed = True


class RecordingConnect:
    def __init__(self, source: ScriptedSource) -> None:
        self.source = source
        self.calls: list[tuple[str, str]] = []

    async def __call__(self, url: str, key: str) -> ScriptedSource:
        self.calls.append((url, key))
        return self.source


def recording_console(width: int = 120) -> Console:
    return Console(record=True, width=width, file=io.StringIO(), color_system=None)


def render_text(renderable: RenderableType, width: int = 120) -> str:
    console = recording_console(width)
    console.print(renderable)
    return console.export_text()
