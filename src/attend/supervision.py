from __future__ import annotations

import asyncio
import logging
import sys
from collections.abc import Awaitable, Iterable
from typing import Any, TextIO

logger = logging.getLogger(__name__)

CHUNK_SIZE = 64 * 1024


class SubprocessSupervisor:
    """Counts announced child processes of one step until each has closed.

    A process is closed once it has exited and every awaitable registered
    alongside it (typically stream consumers) has finished.
    """

    def __init__(self) -> None:
        self._pending = 0
        self._idle = asyncio.Event()
        self._idle.set()
        self._tasks: set[asyncio.Task[None]] = set()

    @property
    def pending(self) -> int:
        return self._pending

    def add(self, process: Any, watchers: Iterable[Awaitable[Any]] = ()) -> bool:
        pending_work = list(watchers)
        if getattr(process, "returncode", None) is not None and not pending_work:
            return False

        self._pending += 1
        self._idle.clear()
        task = asyncio.ensure_future(self._close(process, pending_work))
        self._tasks.add(task)
        task.add_done_callback(self._on_closed)
        return True

    async def _close(self, process: Any, watchers: list[Awaitable[Any]]) -> None:
        outcomes = await asyncio.gather(process.wait(), *watchers, return_exceptions=True)
        for outcome in outcomes:
            if isinstance(outcome, Exception):
                logger.warning("Subprocess watcher failed: %s", outcome)

    def _on_closed(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        self._pending -= 1
        if self._pending == 0:
            self._idle.set()

    async def drained(self) -> None:
        if self._pending == 0:
            return
        await self._idle.wait()


async def pump_stream(stream: asyncio.StreamReader, target: TextIO) -> int:
    total = 0
    while True:
        chunk = await stream.read(CHUNK_SIZE)
        if not chunk:
            break
        total += len(chunk)
        target.write(chunk.decode("utf-8", errors="replace"))
        target.flush()
    return total


def forward_streams(process: Any, target: TextIO | None = None) -> list[Awaitable[int]]:
    """Copy a process's stdout and stderr to `target` (stderr by default)."""
    destination = target if target is not None else sys.stderr
    streams = [getattr(process, "stdout", None), getattr(process, "stderr", None)]
    return [pump_stream(stream, destination) for stream in streams if stream is not None]


def describe_command(command: Iterable[str]) -> str:
    parts = [str(part) for part in command]
    if not parts:
        return ""
    executable = parts[0].replace("\\", "/").rsplit("/", 1)[-1]
    if sys.platform == "win32":
        for suffix in (".cmd", ".exe", ".bat"):
            if executable.lower().endswith(suffix):
                executable = executable[: -len(suffix)]
    return " ".join([executable, *parts[1:]])
