from __future__ import annotations

from attend import git
from attend.diagnostics import DiagnosticSink, StepResult
from attend.errors import ExpectedError
from attend.plugins.base import Plugin
from attend.project import Project


class GitCommit(Plugin):
    name = "git-commit"

    def __init__(self, message: str) -> None:
        super().__init__()
        if not isinstance(message, str) or not message.strip():
            raise ExpectedError("Commit message must be a non-empty string")
        self.message = message

    async def lint(self, project: Project) -> StepResult | None:
        if not await git.is_dirty(project.working_directory):
            return None
        sink = DiagnosticSink(cwd=project.working_directory)
        sink.info("Working tree has uncommitted changes", self.origin("dirty"))
        return StepResult(sinks=[sink])

    async def fix(self, project: Project) -> None:
        await git.commit_all(project.working_directory, self.message)
