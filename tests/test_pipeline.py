from functools import partial

import pytest

from attend.diagnostics import StepResult
from attend.pipeline import PREFIXES, assemble_pipeline, step_names
from attend.plugins.base import Plugin
from attend.project import Project


async def _noop(label: str, project: Project) -> StepResult | None:
    _ = label, project
    return None


def _plugin(name: str, *hook_names: str) -> Plugin:
    return Plugin(name=name, hooks={hook: partial(_noop, f"{hook}{name}") for hook in hook_names})


class LintPlugin(Plugin):
    name = "lint-plugin"

    async def lint(self, project: Project) -> StepResult | None:
        _ = project
        return None

    async def postfix(self, project: Project) -> StepResult | None:
        _ = project
        return None


def test_step_names_follow_prefix_order() -> None:
    assert PREFIXES == ("pre", "", "post")
    assert step_names("fix") == ["prefix", "fix", "postfix"]


def test_prefix_groups_run_before_registration_order() -> None:
    a = _plugin("A", "prelint", "lint")
    b = _plugin("B", "lint")
    c = _plugin("C", "prelint", "lint")

    steps = assemble_pipeline([a, b, c], "lint")

    assert [(step.name, step.plugin.name) for step in steps if step.plugin] == [
        ("prelint", "A"),
        ("prelint", "C"),
        ("lint", "A"),
        ("lint", "B"),
        ("lint", "C"),
    ]


def test_methods_defined_by_subclasses_are_hooks() -> None:
    plugin = LintPlugin()

    assert [step.name for step in assemble_pipeline([plugin], "lint")] == ["lint"]
    assert [step.name for step in assemble_pipeline([plugin], "fix")] == ["postfix"]
    assert assemble_pipeline([plugin], "init") == []


def test_plugin_machinery_is_never_a_hook() -> None:
    plugin = LintPlugin()

    assert plugin.hook("projects") is None
    assert plugin.hook("subscribe") is None
    assert plugin.hook("_run") is None


def test_assembly_is_idempotent() -> None:
    plugins = [_plugin("A", "prefix", "fix"), LintPlugin(), _plugin("B", "fix", "postfix")]

    first = assemble_pipeline(plugins, "fix")
    second = assemble_pipeline(plugins, "fix")

    assert [(step.name, step.plugin) for step in first] == [
        (step.name, step.plugin) for step in second
    ]
    assert first == second


def test_invalid_task_names_are_rejected() -> None:
    with pytest.raises(ValueError):
        assemble_pipeline([], "")
    with pytest.raises(ValueError):
        assemble_pipeline([], "lint fix")
