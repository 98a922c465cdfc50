from __future__ import annotations

from attend import git
from attend.errors import ExpectedError
from attend.plugins.base import Plugin
from attend.project import Project


class GitBranch(Plugin):
    """Checks out a working branch created from the remote default branch."""

    name = "git-branch"

    def __init__(self, branch: str, *, remote: str = "origin") -> None:
        super().__init__()
        try:
            self.branch = git.validate_branch_name(branch)
        except (TypeError, ValueError) as exc:
            raise ExpectedError(str(exc)) from exc
        self.remote = remote

    async def fix(self, project: Project) -> None:
        await git.checkout_branch(project.working_directory, self.branch, remote=self.remote)
