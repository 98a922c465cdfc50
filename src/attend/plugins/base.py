from __future__ import annotations

import asyncio
import inspect
import os
from collections.abc import Awaitable, Callable, Iterable, Mapping
from pathlib import Path
from typing import Any

from attend.diagnostics import StepResult
from attend.errors import ExpectedError
from attend.project import Project
from attend.supervision import describe_command, forward_streams

Hook = Callable[[Project], Awaitable[StepResult | None]]
ProjectSource = Callable[[], Iterable[Project] | Awaitable[Iterable[Project]]]
SubprocessListener = Callable[[Any, str], None]


class Plugin:
    """A unit of work exposing some lifecycle hooks and/or project discovery.

    Hooks are looked up by step name (`prelint`, `fix`, `postinit`, ...),
    first in the explicit `hooks` mapping, then among methods a subclass
    defines under that name.
    """

    name: str = "plugin"

    def __init__(
        self,
        *,
        name: str | None = None,
        hooks: Mapping[str, Hook] | None = None,
        projects: ProjectSource | None = None,
    ) -> None:
        if name:
            self.name = name
        self.hooks: dict[str, Hook] = dict(hooks or {})
        self._project_source = projects
        self._listeners: list[SubprocessListener] = []

    def hook(self, step_name: str) -> Hook | None:
        if step_name in self.hooks:
            return self.hooks[step_name]
        if not step_name or step_name.startswith("_") or hasattr(Plugin, step_name):
            return None
        candidate = getattr(self, step_name, None)
        return candidate if callable(candidate) else None

    @property
    def discovers(self) -> bool:
        return self._project_source is not None or type(self).projects is not Plugin.projects

    async def projects(self) -> list[Project]:
        if self._project_source is None:
            return []
        discovered = self._project_source()
        if inspect.isawaitable(discovered):
            discovered = await discovered
        return list(discovered)

    def subscribe(self, listener: SubprocessListener) -> None:
        self._listeners.append(listener)

    def unsubscribe(self, listener: SubprocessListener) -> None:
        if listener in self._listeners:
            self._listeners.remove(listener)

    def announce(self, process: Any, description: str = "") -> bool:
        """Notify subscribers of a started child process.

        Returns False when nobody is listening, in which case the caller
        owns the process's output streams.
        """
        listeners = list(self._listeners)
        for listener in listeners:
            listener(process, description)
        return bool(listeners)

    def origin(self, rule: str) -> str:
        return f"{self.name}:{rule}"

    async def run_command(
        self,
        command: list[str],
        *,
        cwd: Path,
        env: Mapping[str, str] | None = None,
        shell: bool = False,
    ) -> int:
        process_env = {**os.environ, **env} if env else None
        try:
            if shell:
                process = await asyncio.create_subprocess_shell(
                    " ".join(command),
                    cwd=str(cwd),
                    env=process_env,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
            else:
                process = await asyncio.create_subprocess_exec(
                    *command,
                    cwd=str(cwd),
                    env=process_env,
                    stdin=asyncio.subprocess.DEVNULL,
                    stdout=asyncio.subprocess.PIPE,
                    stderr=asyncio.subprocess.PIPE,
                )
        except FileNotFoundError as exc:
            raise ExpectedError(f"Command not found: {command[0]}") from exc

        if self.announce(process, describe_command(command)):
            return await process.wait()

        outcomes = await asyncio.gather(process.wait(), *forward_streams(process))
        return outcomes[0]

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.name}>"
