from __future__ import annotations

import asyncio
import json
import logging
import tomllib
from collections.abc import Callable
from pathlib import Path
from typing import Any

import click

from attend.config import AttendConfig, load_config, save_config
from attend.errors import AttendError
from attend.events import RunSummary
from attend.plugins import CommandPlugin, LocalProjects, ProjectClone
from attend.reporting import ConsoleReporter
from attend.suite import TASKS, Suite


def _resolve_config_path(root: Path, config_value: str) -> Path:
    config_path = Path(config_value)
    if not config_path.is_absolute():
        config_path = root / config_path
    return config_path.resolve()


def _load(config_path: Path) -> AttendConfig:
    try:
        return load_config(config_path)
    except (TypeError, ValueError, tomllib.TOMLDecodeError) as exc:
        raise click.ClickException(f"Invalid config {config_path}: {exc}") from exc


def _configure_logging(config: AttendConfig, verbose: bool) -> None:
    level = logging.DEBUG if verbose else getattr(logging, config.logging.level, logging.WARNING)
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")


def build_suite(
    config: AttendConfig,
    root: Path,
    *,
    reporter: ConsoleReporter | None = None,
    frail: bool = False,
    bail: bool = False,
) -> Suite:
    suite = Suite(
        reporter=reporter,
        frail=frail or config.suite.frail,
        bail=bail or config.suite.bail,
    )
    cache_dir = root / config.suite.cache_dir
    projects = config.projects
    if projects.basedir:
        suite.use(
            LocalProjects(
                root / projects.basedir,
                only=projects.only,
                ignore=projects.ignore,
                has_file=projects.has_file,
            )
        )
    for repository in projects.clone:
        suite.use(
            ProjectClone(
                repository,
                cache_dir=cache_dir,
                depth=projects.depth or None,
                sparse=projects.sparse,
                protocol=projects.protocol,
            )
        )
    commands = {name: entries for name, entries in config.commands.items() if entries}
    if commands:
        suite.use(CommandPlugin(commands))
    return suite


def _run_task(
    task: str,
    *,
    config_value: str,
    branch: str | None,
    commit: str | None,
    frail: bool,
    bail: bool,
    verbose: bool,
) -> RunSummary:
    root = Path.cwd().resolve()
    config = _load(_resolve_config_path(root, config_value))
    _configure_logging(config, verbose)
    try:
        suite = build_suite(
            config,
            root,
            reporter=ConsoleReporter(verbose=verbose),
            frail=frail,
            bail=bail,
        )
        return asyncio.run(suite.run_task(task, branch=branch, commit=commit))
    except (AttendError, TypeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc


def _task_options(command: Callable[..., Any]) -> Callable[..., Any]:
    decorators = [
        click.option("--config", "config_value", default="attend.toml", show_default=True),
        click.option("--branch", default=None, help="Check out this branch before the task."),
        click.option("--commit", default=None, help="Commit changes with this message after."),
        click.option("--frail", is_flag=True, default=False, help="Fail projects on warnings."),
        click.option("--bail", is_flag=True, default=False, help="Stop at the first failure."),
        click.option("--verbose", is_flag=True, default=False),
    ]
    for decorator in reversed(decorators):
        command = decorator(command)
    return command


def _finish(summary: RunSummary) -> None:
    if not summary.ok:
        click.get_current_context().exit(1)


@click.group()
def cli() -> None:
    """Run maintenance tasks across a fleet of projects."""


def _register_task(task: str) -> None:
    @_task_options
    def command(**options: Any) -> None:
        _finish(_run_task(task, **options))

    command.__doc__ = f"Run the {task} pipeline on every project."
    cli.command(task)(command)


for _task in TASKS:
    _register_task(_task)


@cli.command("run")
@click.argument("task")
@_task_options
def run_command(task: str, **options: Any) -> None:
    """Run the pipeline for an arbitrary TASK name."""
    _finish(_run_task(task, **options))


@cli.command("projects")
@click.option("--config", "config_value", default="attend.toml", show_default=True)
def projects_command(config_value: str) -> None:
    """List the projects a task would run on."""
    root = Path.cwd().resolve()
    config = _load(_resolve_config_path(root, config_value))
    try:
        suite = build_suite(config, root)
        projects = asyncio.run(suite.resolve_projects())
    except (AttendError, TypeError, ValueError) as exc:
        raise click.ClickException(str(exc)) from exc
    for project in projects:
        click.echo(f"{project.name}\t{project.working_directory}")


@cli.command("write-config")
@click.option("--config", "config_value", default="attend.toml", show_default=True)
@click.option("--force", is_flag=True, default=False)
def write_config_command(config_value: str, force: bool) -> None:
    """Write a default configuration file."""
    root = Path.cwd().resolve()
    config_path = _resolve_config_path(root, config_value)
    if config_path.exists() and not force:
        raise click.ClickException(f"{config_path} already exists (use --force to overwrite)")
    save_config(config_path, AttendConfig.default())
    click.echo(f"Config: {config_path}")


@cli.command("show-config")
@click.option("--config", "config_value", default="attend.toml", show_default=True)
def show_config_command(config_value: str) -> None:
    """Print the effective configuration as JSON."""
    root = Path.cwd().resolve()
    config = _load(_resolve_config_path(root, config_value))
    click.echo(json.dumps(config.to_dict(), ensure_ascii=False, indent=2))
