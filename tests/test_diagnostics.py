from pathlib import Path

from attend.diagnostics import DiagnosticSink, Position, Severity, StepResult
from attend.errors import ExpectedError


def _sink(*severities: Severity) -> DiagnosticSink:
    sink = DiagnosticSink(path="README.md", cwd=Path("."))
    for index, severity in enumerate(severities):
        sink.message(f"finding {index}", "test:rule", severity)
    return sink


def test_empty_result_passes() -> None:
    assert StepResult().passed is True
    assert StepResult(sinks=[DiagnosticSink()]).passed is True


def test_info_never_fails() -> None:
    assert StepResult(sinks=[_sink(Severity.INFO)], frail=True).passed is True


def test_warning_fails_only_when_frail() -> None:
    sinks = [_sink(Severity.INFO, Severity.WARNING)]

    assert StepResult(sinks=sinks).passed is True
    assert StepResult(sinks=sinks, frail=True).passed is False


def test_fatal_always_fails() -> None:
    result = StepResult(sinks=[_sink(), _sink(Severity.FATAL)])

    assert result.passed is False
    assert [item.fatal for item in result.diagnostics] == [True]


def test_from_error_produces_single_fatal_with_traceback() -> None:
    try:
        raise ValueError("boom")
    except ValueError as exc:
        result = StepResult.from_error(exc, "attend:lint", Path("/tmp"))

    diagnostics = result.diagnostics
    assert len(diagnostics) == 1
    assert diagnostics[0].severity is Severity.FATAL
    assert diagnostics[0].origin == "attend:lint"
    assert "boom" in diagnostics[0].text
    assert "Traceback" in diagnostics[0].text
    assert result.passed is False


def test_from_error_uses_message_for_expected_errors() -> None:
    result = StepResult.from_error(ExpectedError("Must be on a branch"), "attend:commit")

    assert result.diagnostics[0].text == "Must be on a branch"


def test_position_rendering_and_serialization() -> None:
    sink = DiagnosticSink(path="setup.cfg")
    diagnostic = sink.warn("Unexpected key", "lint:keys", Position(3, 5, 3, 12))

    assert str(Position(7)) == "7:1"
    assert diagnostic.to_dict() == {
        "text": "Unexpected key",
        "origin": "lint:keys",
        "severity": "warning",
        "position": "3:5-3:12",
    }
