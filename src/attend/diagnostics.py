from __future__ import annotations

import traceback
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any

from attend.errors import ExpectedError


class Severity(str, Enum):
    INFO = "info"
    WARNING = "warning"
    FATAL = "fatal"


@dataclass(frozen=True, slots=True)
class Position:
    start_line: int
    start_column: int | None = None
    end_line: int | None = None
    end_column: int | None = None

    def __str__(self) -> str:
        start = f"{self.start_line}:{self.start_column or 1}"
        if self.end_line is None:
            return start
        return f"{start}-{self.end_line}:{self.end_column or 1}"


@dataclass(frozen=True, slots=True)
class Diagnostic:
    text: str
    origin: str
    severity: Severity = Severity.WARNING
    position: Position | None = None

    @property
    def fatal(self) -> bool:
        return self.severity is Severity.FATAL

    def to_dict(self) -> dict[str, Any]:
        return {
            "text": self.text,
            "origin": self.origin,
            "severity": self.severity.value,
            "position": str(self.position) if self.position else None,
        }


@dataclass(slots=True)
class DiagnosticSink:
    """Diagnostics raised for one path of a project during one step."""

    path: str = "."
    cwd: Path | None = None
    diagnostics: list[Diagnostic] = field(default_factory=list)

    def message(
        self,
        text: str,
        origin: str,
        severity: Severity = Severity.WARNING,
        position: Position | None = None,
    ) -> Diagnostic:
        diagnostic = Diagnostic(text=text, origin=origin, severity=severity, position=position)
        self.diagnostics.append(diagnostic)
        return diagnostic

    def info(self, text: str, origin: str, position: Position | None = None) -> Diagnostic:
        return self.message(text, origin, Severity.INFO, position)

    def warn(self, text: str, origin: str, position: Position | None = None) -> Diagnostic:
        return self.message(text, origin, Severity.WARNING, position)

    def fail(self, text: str, origin: str, position: Position | None = None) -> Diagnostic:
        return self.message(text, origin, Severity.FATAL, position)

    def has(self, severity: Severity) -> bool:
        return any(item.severity is severity for item in self.diagnostics)


@dataclass(slots=True)
class StepResult:
    sinks: list[DiagnosticSink] = field(default_factory=list)
    frail: bool = False

    @property
    def passed(self) -> bool:
        for sink in self.sinks:
            if sink.has(Severity.FATAL):
                return False
            if self.frail and sink.has(Severity.WARNING):
                return False
        return True

    @property
    def diagnostics(self) -> list[Diagnostic]:
        return [item for sink in self.sinks for item in sink.diagnostics]

    @classmethod
    def from_error(cls, exc: BaseException, origin: str, cwd: Path | None = None) -> StepResult:
        if isinstance(exc, ExpectedError):
            text = str(exc)
        else:
            text = "".join(traceback.format_exception(exc)).strip()
        sink = DiagnosticSink(path=".", cwd=cwd)
        sink.fail(text or type(exc).__name__, origin)
        return cls(sinks=[sink])
