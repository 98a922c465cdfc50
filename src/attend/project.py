from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from attend.errors import InvalidProjectError
from attend.githost import GitHost


@dataclass(frozen=True, slots=True, eq=False)
class Project:
    """One working directory processed by a run.

    `data` is shared by reference between all plugins operating on the
    project; the suite never reads or writes it.
    """

    working_directory: Path
    identity: GitHost | None = None
    label: str | None = None
    data: dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        try:
            raw = os.fspath(self.working_directory)
        except TypeError as exc:
            raise InvalidProjectError("Project working directory must be a path") from exc
        if not isinstance(raw, str) or not raw.strip():
            raise InvalidProjectError("Project working directory must be a non-empty path")
        object.__setattr__(self, "working_directory", Path(raw).expanduser().resolve())

    @property
    def name(self) -> str:
        if self.label:
            return self.label
        if self.identity is not None:
            return self.identity.slug()
        return self.working_directory.name or str(self.working_directory)

    async def open(self) -> None:
        """Materialize the working directory. Local projects already exist."""

    def __repr__(self) -> str:
        return f"{type(self).__name__}<{self.name}>"


def validate_project(project: object) -> Project:
    if not isinstance(project, Project):
        raise InvalidProjectError(
            f"Discovered project must be a Project instance, got {type(project).__name__}"
        )
    if not project.working_directory.is_absolute():
        raise InvalidProjectError(f"Project working directory is not absolute: {project!r}")
    return project
