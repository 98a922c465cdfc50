from __future__ import annotations

import asyncio
import re
from pathlib import Path

from attend.errors import ExpectedError, GitError

BRANCH_PATTERN = re.compile(r"^[A-Za-z0-9/._-]+$")
HEAD_BRANCH_PATTERN = re.compile(r"^\s*HEAD branch:\s*(?P<branch>\S+)", re.IGNORECASE | re.MULTILINE)


def validate_branch_name(name: object) -> str:
    if not isinstance(name, str):
        raise TypeError("Branch name must be a string")
    if (
        not BRANCH_PATTERN.match(name)
        or name.startswith(("-", "/"))
        or name.endswith(("/", ".", ".lock"))
        or ".." in name
        or "//" in name
    ):
        raise ValueError(f"Branch name {name!r} is invalid")
    return name


async def run_git(args: list[str], cwd: Path) -> str:
    try:
        process = await asyncio.create_subprocess_exec(
            "git",
            "--no-pager",
            *args,
            cwd=str(cwd),
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
        )
    except FileNotFoundError as exc:
        raise GitError("git executable not found", args=args) from exc

    stdout, stderr = await process.communicate()
    out = stdout.decode("utf-8", errors="replace")
    if process.returncode != 0:
        detail = stderr.decode("utf-8", errors="replace").strip() or out.strip()
        raise GitError(
            f"git {' '.join(args)} failed with exit code {process.returncode}: {detail}",
            args=args,
            exit_code=process.returncode,
        )
    return out


async def current_branch(cwd: Path) -> str:
    return (await run_git(["branch", "--show-current"], cwd)).strip()


async def default_branch(cwd: Path, remote: str = "origin") -> str | None:
    output = await run_git(["remote", "show", remote], cwd)
    match = HEAD_BRANCH_PATTERN.search(output)
    if match is None:
        return None
    branch = match.group("branch")
    return None if branch == "(unknown)" else branch


async def has_staged_changes(cwd: Path) -> bool:
    return (await run_git(["diff", "--staged", "--shortstat"], cwd)).strip() != ""


async def is_dirty(cwd: Path) -> bool:
    return (await run_git(["status", "--porcelain"], cwd)).strip() != ""


async def checkout_branch(cwd: Path, name: str, *, remote: str = "origin") -> bool:
    """Switch to `name`, creating it from the remote default branch when needed.

    Returns False when already on the branch.
    """
    validate_branch_name(name)
    if await current_branch(cwd) == name:
        return False

    base = await default_branch(cwd, remote) or "main"
    if name == base:
        await run_git(["checkout", name], cwd)
        await run_git(["pull"], cwd)
    else:
        await run_git(["fetch", "--tags", "--recurse-submodules=no", remote], cwd)
        await run_git(["checkout", "--no-track", "-B", name, f"{remote}/{base}"], cwd)
    return True


async def commit_all(cwd: Path, message: str) -> bool:
    if not isinstance(message, str) or not message.strip():
        raise TypeError("Commit message must be a non-empty string")

    await run_git(["add", "-A"], cwd)
    if not await has_staged_changes(cwd):
        return False
    if not await current_branch(cwd):
        raise ExpectedError("Must be on a branch to commit")
    await run_git(["commit", "-m", message], cwd)
    return True
