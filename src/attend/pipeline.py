from __future__ import annotations

from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass

from attend.diagnostics import StepResult
from attend.plugins.base import Plugin
from attend.project import Project

PREFIXES = ("pre", "", "post")

Work = Callable[[Project], Awaitable[StepResult | None]]


@dataclass(frozen=True, slots=True)
class Step:
    name: str
    work: Work
    plugin: Plugin | None = None


def step_names(task: str) -> list[str]:
    return [f"{prefix}{task}" for prefix in PREFIXES]


def assemble_pipeline(plugins: Sequence[Plugin], task: str) -> list[Step]:
    """Every `pre<task>` hook in registration order, then `<task>`, then `post<task>`."""
    if not task or not task.isidentifier():
        raise ValueError(f"Invalid task name: {task!r}")

    steps: list[Step] = []
    for name in step_names(task):
        for plugin in plugins:
            work = plugin.hook(name)
            if work is not None:
                steps.append(Step(name=name, work=work, plugin=plugin))
    return steps
