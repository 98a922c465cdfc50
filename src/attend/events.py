from __future__ import annotations

import inspect
import logging
from collections.abc import Awaitable, Iterable
from dataclasses import dataclass, field
from typing import Any

from attend.diagnostics import DiagnosticSink, StepResult
from attend.project import Project

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class StepEvent:
    project: Project
    name: str


@dataclass(slots=True)
class SubprocessEvent:
    project: Project
    step: str
    process: Any
    description: str = ""
    watchers: list[Awaitable[Any]] = field(default_factory=list)

    def watch(self, work: Awaitable[Any]) -> None:
        """Delay the step's completion until `work` (e.g. a stream reader) is done."""
        self.watchers.append(work)


@dataclass(frozen=True, slots=True)
class ResultEvent:
    project: Project
    step: str
    result: StepResult

    @property
    def sinks(self) -> list[DiagnosticSink]:
        return self.result.sinks

    @property
    def frail(self) -> bool:
        return self.result.frail

    @property
    def passed(self) -> bool:
        return self.result.passed


@dataclass(frozen=True, slots=True)
class RunSummary:
    task: str
    planned: int
    passed: int
    failed: int

    @property
    def ok(self) -> bool:
        return self.failed == 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "task": self.task,
            "planned": self.planned,
            "passed": self.passed,
            "failed": self.failed,
        }


class Reporter:
    """Consumer of run events. Every method is optional."""

    def step(self, event: StepEvent) -> None:
        return None

    def subprocess(self, event: SubprocessEvent) -> bool:
        """Return True to take ownership of the process's output streams."""
        return False

    def result(self, event: ResultEvent) -> None:
        return None

    def end(self, summary: RunSummary) -> None:
        return None


class EventSink:
    def __init__(self, reporters: Iterable[Reporter] = ()) -> None:
        self.reporters = list(reporters)

    def step(self, event: StepEvent) -> None:
        for reporter in self.reporters:
            reporter.step(event)

    def subprocess(self, event: SubprocessEvent) -> bool:
        """Offer the process to every reporter. True if any claimed its streams.

        A reporter that raises counts as not claiming, and the watchers it
        registered before failing are discarded.
        """
        claimed = False
        for reporter in self.reporters:
            registered = len(event.watchers)
            try:
                accepted = reporter.subprocess(event)
            except Exception:
                logger.warning(
                    "%s failed to handle subprocess %r",
                    type(reporter).__name__,
                    event.description,
                    exc_info=True,
                )
                for work in event.watchers[registered:]:
                    if inspect.iscoroutine(work):
                        work.close()
                del event.watchers[registered:]
                continue
            if accepted:
                claimed = True
        return claimed

    def result(self, event: ResultEvent) -> None:
        for reporter in self.reporters:
            reporter.result(event)

    def end(self, summary: RunSummary) -> None:
        for reporter in self.reporters:
            reporter.end(summary)
