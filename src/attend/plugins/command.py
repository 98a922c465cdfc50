from __future__ import annotations

import re
import shlex
from collections.abc import Mapping, Sequence
from functools import partial

from attend.diagnostics import DiagnosticSink, StepResult
from attend.plugins.base import Plugin
from attend.project import Project

SHELL_REQUIRED_PATTERN = re.compile(r"(?:\|\||&&|[|;<>`]|[$]\()")


def split_command(command: str) -> tuple[list[str], bool]:
    """Return the argv to spawn and whether it must go through the shell."""
    text = command.strip()
    if SHELL_REQUIRED_PATTERN.search(text):
        return [text], True
    try:
        return shlex.split(text), False
    except ValueError:
        return [text], True


class CommandPlugin(Plugin):
    """Runs configured shell commands as steps; a non-zero exit is fatal.

    `commands` maps step names (`lint`, `prefix`, `postinit`, ...) to one
    command or a list of commands run in order.
    """

    name = "command"

    def __init__(
        self,
        commands: Mapping[str, str | Sequence[str]],
        *,
        name: str | None = None,
        frail: bool = False,
    ) -> None:
        super().__init__(name=name)
        self.frail = frail
        self.commands: dict[str, list[str]] = {}
        for step_name, value in commands.items():
            entries = [value] if isinstance(value, str) else list(value)
            entries = [entry for entry in entries if entry.strip()]
            if not entries:
                continue
            self.commands[step_name] = entries
            self.hooks[step_name] = partial(self._run, step_name)

    async def _run(self, step_name: str, project: Project) -> StepResult:
        sink = DiagnosticSink(cwd=project.working_directory)
        for command in self.commands[step_name]:
            argv, shell = split_command(command)
            if not argv:
                continue
            exit_code = await self.run_command(argv, cwd=project.working_directory, shell=shell)
            if exit_code != 0:
                sink.fail(
                    f"`{command}` exited with code {exit_code}",
                    self.origin(step_name),
                )
                break
        return StepResult(sinks=[sink], frail=self.frail)
