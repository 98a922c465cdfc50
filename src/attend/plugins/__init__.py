from attend.plugins.base import Hook, Plugin
from attend.plugins.command import CommandPlugin
from attend.plugins.git_branch import GitBranch
from attend.plugins.git_commit import GitCommit
from attend.plugins.local_projects import LocalProjects
from attend.plugins.project_clone import ClonedProject, ProjectClone

__all__ = [
    "ClonedProject",
    "CommandPlugin",
    "GitBranch",
    "GitCommit",
    "Hook",
    "LocalProjects",
    "Plugin",
    "ProjectClone",
]
