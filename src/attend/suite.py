from __future__ import annotations

import contextlib
import inspect
import logging
from collections.abc import Iterable, Mapping
from dataclasses import replace
from pathlib import Path
from typing import Any

from attend import git
from attend.diagnostics import StepResult
from attend.errors import ExpectedError, InvalidPluginError, SuiteFrozenError
from attend.events import (
    EventSink,
    Reporter,
    ResultEvent,
    RunSummary,
    StepEvent,
    SubprocessEvent,
)
from attend.pipeline import Step, Work, assemble_pipeline
from attend.plugins.base import Plugin
from attend.project import Project, validate_project
from attend.supervision import SubprocessSupervisor, forward_streams

logger = logging.getLogger(__name__)

NAMESPACE = "attend"
TASKS = ("init", "lint", "fix")


async def _open_project(project: Project) -> None:
    await project.open()
    if not project.working_directory.is_dir():
        raise ExpectedError(f"Working directory does not exist: {project.working_directory}")


class Suite:
    """Runs plugin pipelines over a set of projects, one project at a time.

    Plugins are registered with `use` until the first task runs. Each task
    call assembles a fresh pipeline (`pre<task>` hooks, then `<task>`, then
    `post<task>`, each group in registration order) and drives every
    resolved project through it. A project stops at its first failing
    result; other projects are unaffected unless `bail` is set.
    """

    def __init__(
        self,
        *,
        reporter: Reporter | Iterable[Reporter] | None = None,
        frail: bool = False,
        bail: bool = False,
    ) -> None:
        if reporter is None:
            reporters: list[Reporter] = []
        elif isinstance(reporter, Reporter):
            reporters = [reporter]
        else:
            reporters = list(reporter)
        self.events = EventSink(reporters)
        self.frail = frail
        self.bail = bail
        self._plugins: list[Plugin] = []
        self._projects: list[Project] | None = None
        self._frozen = False

    @property
    def plugins(self) -> list[Plugin]:
        return list(self._plugins)

    @property
    def frozen(self) -> bool:
        return self._frozen

    def use(self, plugin: Any, options: Any = None) -> Suite:
        if self._frozen:
            raise SuiteFrozenError("Plugins cannot be registered after the suite has run")
        self._plugins.extend(self._expand(plugin, options))
        return self

    def _expand(self, plugin: Any, options: Any, *, allow_factory: bool = True) -> list[Plugin]:
        if plugin is None:
            return []
        if plugin is self:
            raise InvalidPluginError("A suite cannot use itself")
        if isinstance(plugin, Plugin):
            return [plugin]
        if isinstance(plugin, tuple):
            if len(plugin) != 2:
                raise InvalidPluginError("Plugin pairs must be (plugin, options) tuples")
            return self._expand(plugin[0], plugin[1])
        if isinstance(plugin, list):
            expanded: list[Plugin] = []
            for element in plugin:
                expanded.extend(self._expand(element, options))
            return expanded
        if isinstance(plugin, Suite):
            return self._expand(plugin.plugins, None)
        if allow_factory and callable(plugin):
            if options is None:
                produced = plugin()
            elif isinstance(options, Mapping):
                produced = plugin(**options)
            else:
                produced = plugin(options)
            return self._expand(produced, None, allow_factory=False)
        raise InvalidPluginError(f"Not a plugin, plugin factory or suite: {plugin!r}")

    async def resolve_projects(self) -> list[Project]:
        if self._projects is None:
            projects: list[Project] = []
            discovered = False
            for plugin in self._plugins:
                if not plugin.discovers:
                    continue
                discovered = True
                for project in await plugin.projects():
                    projects.append(validate_project(project))
            if not discovered:
                projects.append(Project(Path.cwd()))
            logger.info("Resolved %d project(s)", len(projects))
            self._projects = projects
        return list(self._projects)

    def reset(self) -> None:
        self._projects = None

    def pipeline(self, task: str) -> list[Step]:
        return assemble_pipeline(self._plugins, task)

    async def run_task(
        self,
        task: str,
        *,
        branch: str | None = None,
        commit: str | None = None,
    ) -> RunSummary:
        steps = self.pipeline(task)
        if branch is not None:
            branch_name = git.validate_branch_name(branch)

            async def checkout(project: Project) -> None:
                await git.checkout_branch(project.working_directory, branch_name)

            steps.insert(0, Step(name="branch", work=checkout))
        if commit is not None:
            if not isinstance(commit, str) or not commit.strip():
                raise ValueError("Commit message must be a non-empty string")
            message = commit

            async def commit_changes(project: Project) -> None:
                await git.commit_all(project.working_directory, message)

            steps.append(Step(name="commit", work=commit_changes))
        return await self._run(task, steps)

    async def init(self, **options: Any) -> RunSummary:
        return await self.run_task("init", **options)

    async def lint(self, **options: Any) -> RunSummary:
        return await self.run_task("lint", **options)

    async def fix(self, **options: Any) -> RunSummary:
        return await self.run_task("fix", **options)

    async def _run(self, task: str, steps: list[Step]) -> RunSummary:
        self._frozen = True
        projects = await self.resolve_projects()

        passed = 0
        failed = 0
        aborted = False
        for project in projects:
            if aborted:
                failed += 1
                continue
            if await self._run_project(project, steps):
                passed += 1
            else:
                failed += 1
                if self.bail:
                    logger.info("Aborting %s after failure in %s", task, project.name)
                    aborted = True

        summary = RunSummary(task=task, planned=len(projects), passed=passed, failed=failed)
        logger.info("%s: %d passed, %d failed", task, passed, failed)
        self.events.end(summary)
        return summary

    async def _run_project(self, project: Project, steps: list[Step]) -> bool:
        try:
            await self._step(project, "open", _open_project)
        except Exception as exc:
            logger.warning("Failed to open %s: %s", project.name, exc)
            result = StepResult.from_error(exc, f"{NAMESPACE}:open", project.working_directory)
            self.events.result(ResultEvent(project=project, step="open", result=result))
            return False

        # External tools invoked by plugins rely on the process working directory.
        with contextlib.chdir(project.working_directory):
            for step in steps:
                result = await self._run_step(project, step)
                self.events.result(ResultEvent(project=project, step=step.name, result=result))
                if not result.passed:
                    return False
        return True

    async def _run_step(self, project: Project, step: Step) -> StepResult:
        try:
            outcome = await self._step(project, step.name, step.work, step.plugin)
            if outcome is None:
                result = StepResult()
            elif isinstance(outcome, StepResult):
                result = outcome
            else:
                raise TypeError(
                    f"Step {step.name} returned {type(outcome).__name__}, expected StepResult"
                )
        except Exception as exc:
            logger.debug("Step %s failed for %s", step.name, project.name, exc_info=True)
            result = StepResult.from_error(
                exc, f"{NAMESPACE}:{step.name}", project.working_directory
            )
        if self.frail and not result.frail:
            result = replace(result, frail=True)
        return result

    async def _step(
        self,
        project: Project,
        name: str,
        work: Work,
        plugin: Plugin | None = None,
    ) -> Any:
        logger.debug("Running %s for %s", name, project.name)
        self.events.step(StepEvent(project=project, name=name))

        supervisor = SubprocessSupervisor()

        def on_subprocess(process: Any, description: str) -> None:
            event = SubprocessEvent(
                project=project, step=name, process=process, description=description
            )
            claimed = self.events.subprocess(event)
            watchers = list(event.watchers)
            if not claimed:
                watchers.extend(forward_streams(process))
            supervisor.add(process, watchers)

        if plugin is not None:
            plugin.subscribe(on_subprocess)
        try:
            outcome = work(project)
            if inspect.isawaitable(outcome):
                outcome = await outcome
            return outcome
        finally:
            if plugin is not None:
                plugin.unsubscribe(on_subprocess)
            await supervisor.drained()
