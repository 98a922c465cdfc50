import asyncio
import shlex
import subprocess
import sys
from pathlib import Path

import pytest

from attend import git
from attend.diagnostics import Severity
from attend.errors import ExpectedError, GitError
from attend.githost import GitHost
from attend.plugins import (
    ClonedProject,
    CommandPlugin,
    GitBranch,
    GitCommit,
    LocalProjects,
    ProjectClone,
)
from attend.plugins.command import split_command
from attend.plugins.project_clone import clone_location
from attend.project import Project
from attend.suite import Suite


def _run(cmd: list[str], cwd: Path) -> str:
    proc = subprocess.run(cmd, cwd=cwd, check=True, text=True, capture_output=True)
    return proc.stdout.strip()


@pytest.fixture(autouse=True)
def _git_identity(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GIT_AUTHOR_NAME", "Test User")
    monkeypatch.setenv("GIT_AUTHOR_EMAIL", "test@example.com")
    monkeypatch.setenv("GIT_COMMITTER_NAME", "Test User")
    monkeypatch.setenv("GIT_COMMITTER_EMAIL", "test@example.com")


def _init_source_repo(repo_path: Path) -> None:
    repo_path.mkdir(parents=True)
    _run(["git", "init"], cwd=repo_path)
    _run(["git", "checkout", "-b", "main"], cwd=repo_path)
    (repo_path / "README.md").write_text("seed\n", encoding="utf-8")
    _run(["git", "add", "README.md"], cwd=repo_path)
    _run(["git", "commit", "-m", "seed"], cwd=repo_path)


def _clone(source: Path, target: Path) -> Path:
    _run(["git", "clone", str(source), str(target)], cwd=source.parent)
    return target


def test_local_projects_filters_subdirectories(tmp_path: Path) -> None:
    for name in ["alpha", "Beta", "gamma", ".github", ".hidden"]:
        (tmp_path / name).mkdir()
    (tmp_path / "notes.txt").write_text("not a project", encoding="utf-8")
    (tmp_path / "alpha" / "pyproject.toml").write_text("", encoding="utf-8")
    (tmp_path / "Beta" / "pyproject.toml").write_text("", encoding="utf-8")

    everything = asyncio.run(LocalProjects(tmp_path).projects())
    filtered = asyncio.run(
        LocalProjects(tmp_path, ignore=["ALPHA"], has_file="pyproject.toml").projects()
    )
    only = asyncio.run(LocalProjects(tmp_path, only=["gamma"]).projects())

    assert [project.name for project in everything] == ["alpha", "Beta", "gamma"]
    assert [project.name for project in filtered] == ["Beta"]
    assert [project.name for project in only] == ["gamma"]


def test_local_projects_rejects_unsafe_filenames(tmp_path: Path) -> None:
    with pytest.raises(ExpectedError):
        LocalProjects(tmp_path, has_file="../secrets")


def test_local_projects_requires_existing_basedir(tmp_path: Path) -> None:
    plugin = LocalProjects(tmp_path / "missing")

    with pytest.raises(ExpectedError):
        asyncio.run(plugin.projects())


def test_split_command_detects_shell_syntax() -> None:
    assert split_command("ruff check src") == (["ruff", "check", "src"], False)
    assert split_command("make lint && make test") == (["make lint && make test"], True)
    assert split_command("echo 'unterminated") == (["echo 'unterminated"], True)


def test_command_plugin_registers_hooks_for_configured_steps() -> None:
    plugin = CommandPlugin({"lint": "ruff check .", "fix": [], "prefix": ["a", "b"]})

    assert sorted(plugin.hooks) == ["lint", "prefix"]
    assert plugin.hook("fix") is None


def test_command_plugin_reports_failing_command(tmp_path: Path) -> None:
    python = shlex.quote(sys.executable)
    plugin = CommandPlugin(
        {
            "lint": [
                f"{python} -c \"print('ok')\"",
                f"{python} -c \"import sys; sys.exit(3)\"",
                f"{python} -c \"print('never')\"",
            ]
        },
        name="checks",
    )

    result = asyncio.run(plugin.hooks["lint"](Project(tmp_path)))

    assert result is not None
    assert result.passed is False
    diagnostics = result.diagnostics
    assert len(diagnostics) == 1
    assert diagnostics[0].origin == "checks:lint"
    assert "exited with code 3" in diagnostics[0].text


def test_command_plugin_in_suite_marks_project_failed(tmp_path: Path) -> None:
    project_dir = tmp_path / "repo"
    project_dir.mkdir()
    python = shlex.quote(sys.executable)
    suite = (
        Suite()
        .use(LocalProjects(tmp_path))
        .use(CommandPlugin({"lint": f"{python} -c \"import sys; sys.exit(1)\""}))
    )

    summary = asyncio.run(suite.lint())

    assert (summary.planned, summary.failed) == (1, 1)


def test_git_commit_commits_changes_and_reports_dirty_tree(tmp_path: Path) -> None:
    source = tmp_path / "source"
    _init_source_repo(source)
    project = Project(source)
    plugin = GitCommit("Update notes")

    assert asyncio.run(plugin.lint(project)) is None

    (source / "NOTES.md").write_text("notes\n", encoding="utf-8")
    lint_result = asyncio.run(plugin.lint(project))
    assert lint_result is not None
    assert [item.severity for item in lint_result.diagnostics] == [Severity.INFO]
    assert lint_result.passed is True

    asyncio.run(plugin.fix(project))

    assert _run(["git", "log", "-1", "--format=%s"], cwd=source) == "Update notes"
    assert _run(["git", "status", "--porcelain"], cwd=source) == ""


def test_git_commit_without_changes_is_a_noop(tmp_path: Path) -> None:
    source = tmp_path / "source"
    _init_source_repo(source)

    asyncio.run(GitCommit("Nothing").fix(Project(source)))

    assert _run(["git", "log", "-1", "--format=%s"], cwd=source) == "seed"


def test_git_commit_rejects_empty_message() -> None:
    with pytest.raises(ExpectedError):
        GitCommit("   ")


def test_git_branch_creates_branch_from_remote_default(tmp_path: Path) -> None:
    source = tmp_path / "source"
    _init_source_repo(source)
    work = _clone(source, tmp_path / "work")

    asyncio.run(GitBranch("attend/bump").fix(Project(work)))

    assert _run(["git", "branch", "--show-current"], cwd=work) == "attend/bump"

    asyncio.run(GitBranch("attend/bump").fix(Project(work)))
    assert _run(["git", "branch", "--show-current"], cwd=work) == "attend/bump"


@pytest.mark.parametrize("name", ["-x", "a..b", "has space", "trailing/", ""])
def test_git_branch_rejects_invalid_names(name: str) -> None:
    with pytest.raises(ExpectedError):
        GitBranch(name)


def test_clone_location_separates_partial_clones(tmp_path: Path) -> None:
    identity = GitHost("github", "Level", "bench")

    complete = clone_location(identity, tmp_path)
    shallow = clone_location(identity, tmp_path, depth=1)
    sparse = clone_location(identity, tmp_path, depth=1, sparse=("src",))

    assert complete == tmp_path / "complete" / "github" / "Level" / "bench"
    relative = shallow.relative_to(tmp_path).parts
    assert relative[0] == "partial"
    assert len(relative[1]) == 10
    assert relative[2:] == ("github", "Level", "bench")
    assert shallow != sparse


def test_project_clone_discovers_one_cloned_project(tmp_path: Path) -> None:
    plugin = ProjectClone("Level/bench", cache_dir=tmp_path / "cache", protocol="https")

    projects = asyncio.run(plugin.projects())

    assert len(projects) == 1
    project = projects[0]
    assert isinstance(project, ClonedProject)
    assert project.url == "https://github.com/Level/bench.git"
    assert project.name == "Level/bench"
    assert project.working_directory == (
        tmp_path / "cache" / "complete" / "github" / "Level" / "bench"
    ).resolve()


def test_cloned_project_open_clones_once(tmp_path: Path) -> None:
    source = tmp_path / "source"
    _init_source_repo(source)
    target = tmp_path / "cache" / "complete" / "github" / "Level" / "bench"
    project = ClonedProject(target, url=str(source))

    asyncio.run(project.open())
    assert (target / "README.md").read_text(encoding="utf-8") == "seed\n"

    (target / "local.txt").write_text("kept\n", encoding="utf-8")
    asyncio.run(project.open())
    assert (target / "local.txt").exists()


def test_local_projects_detect_origin_identity(tmp_path: Path) -> None:
    keyspace = tmp_path / "keyspace"
    keyspace.mkdir()
    _run(["git", "init"], cwd=keyspace)
    _run(
        ["git", "remote", "add", "origin", "git@github.com:vweevers/keyspace.git"],
        cwd=keyspace,
    )
    (tmp_path / "scratch").mkdir()

    projects = asyncio.run(LocalProjects(tmp_path).projects())

    by_directory = {project.working_directory.name: project for project in projects}
    assert by_directory["keyspace"].identity == GitHost("github", "vweevers", "keyspace")
    assert by_directory["keyspace"].name == "vweevers/keyspace"
    assert by_directory["scratch"].identity is None
    assert by_directory["scratch"].name == "scratch"


def test_project_clone_rejects_unknown_protocol(tmp_path: Path) -> None:
    with pytest.raises(ValueError, match="protocol"):
        ProjectClone("Level/bench", cache_dir=tmp_path, protocol="git")  # type: ignore[arg-type]


def test_cloned_project_removes_incomplete_checkout(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    source = tmp_path / "source"
    _init_source_repo(source)
    target = tmp_path / "cache" / "partial" / "abc" / "github" / "Level" / "bench"
    project = ClonedProject(target, url=str(source), sparse=True)
    real_run_git = git.run_git

    async def failing_checkout(args: list[str], cwd: Path) -> str:
        if args[0] == "checkout":
            raise GitError("git checkout failed", args=args, exit_code=128)
        return await real_run_git(args, cwd)

    monkeypatch.setattr(git, "run_git", failing_checkout)

    with pytest.raises(GitError):
        asyncio.run(project.open())
    assert not target.exists()

    monkeypatch.setattr(git, "run_git", real_run_git)
    asyncio.run(project.open())
    assert (target / "README.md").read_text(encoding="utf-8") == "seed\n"
