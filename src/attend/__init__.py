from attend.diagnostics import Diagnostic, DiagnosticSink, Position, Severity, StepResult
from attend.errors import (
    AttendError,
    ExpectedError,
    InvalidPluginError,
    InvalidProjectError,
    SuiteFrozenError,
)
from attend.events import Reporter, ResultEvent, RunSummary, StepEvent, SubprocessEvent
from attend.githost import GitHost
from attend.plugins.base import Plugin
from attend.project import Project
from attend.suite import Suite

__version__ = "0.1.0"


def attend(*, frail: bool = False, bail: bool = False) -> Suite:
    return Suite(frail=frail, bail=bail)


__all__ = [
    "AttendError",
    "Diagnostic",
    "DiagnosticSink",
    "ExpectedError",
    "GitHost",
    "InvalidPluginError",
    "InvalidProjectError",
    "Plugin",
    "Position",
    "Project",
    "Reporter",
    "ResultEvent",
    "RunSummary",
    "Severity",
    "StepEvent",
    "StepResult",
    "SubprocessEvent",
    "Suite",
    "SuiteFrozenError",
    "__version__",
    "attend",
]
