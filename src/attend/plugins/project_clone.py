from __future__ import annotations

import hashlib
import json
import logging
import shutil
from dataclasses import dataclass
from pathlib import Path
from typing import Literal

from attend import git
from attend.githost import GitHost
from attend.plugins.base import Plugin
from attend.project import Project

logger = logging.getLogger(__name__)

CloneProtocol = Literal["ssh", "https"]
CLONE_PROTOCOLS = ("ssh", "https")


def clone_location(
    identity: GitHost,
    cache_dir: Path,
    *,
    depth: int | None = None,
    sparse: bool | tuple[str, ...] = False,
) -> Path:
    subfolder = Path(identity.type, identity.owner, identity.name)
    if depth or sparse:
        key = json.dumps([depth, list(sparse) if isinstance(sparse, tuple) else sparse])
        digest = hashlib.sha1(key.encode("utf-8")).hexdigest()[:10]
        return cache_dir / "partial" / digest / subfolder
    return cache_dir / "complete" / subfolder


@dataclass(frozen=True, slots=True, eq=False)
class ClonedProject(Project):
    url: str = ""
    depth: int | None = None
    sparse: bool | tuple[str, ...] = False

    async def open(self) -> None:
        if self.working_directory.exists():
            logger.debug("Reusing clone of %s at %s", self.name, self.working_directory)
            return

        self.working_directory.parent.mkdir(parents=True, exist_ok=True)
        clone_args = [f"--depth={self.depth}"] if self.depth else []
        target = str(self.working_directory)
        logger.info("Cloning %s into %s", self.url, target)

        try:
            await self._clone(clone_args, target)
        except BaseException:
            shutil.rmtree(self.working_directory, ignore_errors=True)
            raise

    async def _clone(self, clone_args: list[str], target: str) -> None:
        # Sparse checkouts need git >= 2.25.
        if self.sparse:
            await git.run_git(
                ["clone", *clone_args, "--no-checkout", self.url, target],
                self.working_directory.parent,
            )
            await git.run_git(["sparse-checkout", "init", "--cone"], self.working_directory)
            if isinstance(self.sparse, tuple) and self.sparse:
                await git.run_git(
                    ["sparse-checkout", "set", *self.sparse], self.working_directory
                )
            await git.run_git(["checkout"], self.working_directory)
        else:
            await git.run_git(
                ["clone", *clone_args, "--recurse-submodules", self.url, target],
                self.working_directory.parent,
            )


class ProjectClone(Plugin):
    """Contributes one remote repository, cloned into the cache on open."""

    name = "project-clone"

    def __init__(
        self,
        repository: str | GitHost,
        *,
        cache_dir: str | Path = ".attend",
        depth: int | None = None,
        sparse: bool | list[str] | tuple[str, ...] = False,
        protocol: CloneProtocol = "ssh",
    ) -> None:
        super().__init__()
        if protocol not in CLONE_PROTOCOLS:
            raise ValueError(f"Unsupported clone protocol {protocol!r}, expected ssh or https")
        identity = repository if isinstance(repository, GitHost) else GitHost.from_url(repository)
        if depth is not None and depth < 1:
            depth = None
        sparse_value: bool | tuple[str, ...] = (
            tuple(sparse) if isinstance(sparse, (list, tuple)) else bool(sparse)
        )
        root = Path(cache_dir).expanduser().resolve()
        self.project = ClonedProject(
            clone_location(identity, root, depth=depth, sparse=sparse_value),
            identity=identity,
            url=identity.ssh() if protocol == "ssh" else identity.https(),
            depth=depth,
            sparse=sparse_value,
        )

    async def projects(self) -> list[Project]:
        return [self.project]
