from __future__ import annotations

import asyncio
import re
from collections.abc import Iterable
from pathlib import Path

from attend.errors import ExpectedError
from attend.githost import GitHost
from attend.plugins.base import Plugin
from attend.project import Project

SAFE_FILENAME_PATTERN = re.compile(r"^[A-Za-z\d.\-_]+$")


class LocalProjects(Plugin):
    """Discovers every subdirectory of `basedir` as a project."""

    name = "local-projects"

    def __init__(
        self,
        basedir: str | Path,
        *,
        only: Iterable[str] = (),
        ignore: Iterable[str] = (),
        has_file: Iterable[str] | str = (),
    ) -> None:
        super().__init__()
        if not str(basedir).strip():
            raise ExpectedError("The basedir option is required")
        self.basedir = Path(basedir).expanduser().resolve()
        self.only = {item.lower() for item in only}
        self.ignore = {item.lower() for item in ignore}
        required = [has_file] if isinstance(has_file, str) else list(has_file)
        for filename in required:
            if not SAFE_FILENAME_PATTERN.match(filename) or filename in {".", ".."}:
                raise ExpectedError(f"Unsafe filename {filename!r}")
        self.has_file = required

    def include(self, directory: Path) -> bool:
        lowered = directory.name.lower()
        if lowered.startswith("."):
            return False
        if lowered in self.ignore:
            return False
        if self.only and lowered not in self.only:
            return False
        return all((directory / filename).exists() for filename in self.has_file)

    async def projects(self) -> list[Project]:
        if not self.basedir.is_dir():
            raise ExpectedError(f"Project directory does not exist: {self.basedir}")
        directories = sorted(
            (entry for entry in self.basedir.iterdir() if entry.is_dir()),
            key=lambda entry: entry.name.lower(),
        )
        projects = []
        for directory in directories:
            if self.include(directory):
                identity = None
                # Nested plain directories would otherwise report the enclosing repository.
                if (directory / ".git").exists():
                    identity = await asyncio.to_thread(GitHost.from_directory, directory)
                projects.append(Project(directory, identity=identity))
        return projects
