from __future__ import annotations

import asyncio
import textwrap
from typing import TextIO

import click

from attend.diagnostics import Diagnostic, Severity
from attend.events import Reporter, ResultEvent, RunSummary, StepEvent, SubprocessEvent
from attend.project import Project
from attend.supervision import CHUNK_SIZE

SEVERITY_COLORS = {
    Severity.INFO: "blue",
    Severity.WARNING: "yellow",
    Severity.FATAL: "red",
}


class ConsoleReporter(Reporter):
    """Terminal renderer for run events.

    Subprocess output is streamed as it arrives in verbose mode. Otherwise it
    is buffered and only shown when the step that produced it fails.
    """

    def __init__(self, *, verbose: bool = False, stream: TextIO | None = None) -> None:
        self.verbose = verbose
        self._stream = stream
        self._buffer: list[str] = []

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else click.get_text_stream("stderr")

    def _echo(self, message: str = "") -> None:
        click.echo(message, file=self.stream)

    @staticmethod
    def header(project: Project | None, *extra: str) -> str:
        parts = [project.name] if project is not None else []
        parts.extend(part for part in extra if part)
        if not parts:
            return ""
        separator = click.style(" | ", fg="bright_black")
        return click.style("| ", fg="bright_black") + separator.join(parts)

    def step(self, event: StepEvent) -> None:
        if self.verbose:
            self._echo(self.header(event.project, event.name))

    def subprocess(self, event: SubprocessEvent) -> bool:
        heading = self.header(event.project, event.step, event.description)
        streams = [event.process.stdout, event.process.stderr]
        state = {"started": False}
        for stream in streams:
            if stream is not None:
                event.watch(self._consume(stream, heading, state))
        return True

    async def _consume(
        self, stream: asyncio.StreamReader, heading: str, state: dict[str, bool]
    ) -> None:
        while True:
            chunk = await stream.read(CHUNK_SIZE)
            if not chunk:
                return
            text = chunk.decode("utf-8", errors="replace")
            if not state["started"]:
                state["started"] = True
                if self.verbose:
                    self._echo(heading)
                else:
                    self._buffer.append(heading + "\n")
            if self.verbose:
                self.stream.write(text)
                self.stream.flush()
            else:
                self._buffer.append(text)

    def format_diagnostic(self, path: str, diagnostic: Diagnostic) -> str:
        location = f"{path}:{diagnostic.position}" if diagnostic.position else path
        label = click.style(
            f"{diagnostic.severity.value:<7}", fg=SEVERITY_COLORS[diagnostic.severity]
        )
        first, *rest = diagnostic.text.splitlines() or [""]
        origin = click.style(diagnostic.origin, fg="bright_black")
        line = f"  {location}  {label}  {first}  {origin}"
        if rest:
            line += "\n" + textwrap.indent("\n".join(rest), " " * 4)
        return line

    def result(self, event: ResultEvent) -> None:
        lines: list[str] = []
        for sink in event.sinks:
            for diagnostic in sink.diagnostics:
                if diagnostic.severity is Severity.INFO and not self.verbose:
                    continue
                lines.append(self.format_diagnostic(sink.path, diagnostic))

        if lines:
            if self._buffer and not event.passed:
                self.stream.write("".join(self._buffer))
                self._echo()
            self._echo(self.header(event.project, event.step))
            for line in lines:
                self._echo(line)
        self._buffer.clear()

    def end(self, summary: RunSummary) -> None:
        if summary.planned <= 1:
            return
        self._echo()
        self._echo(click.style(f"  {summary.passed} projects passed", fg="green"))
        self._echo(
            click.style(
                f"  {summary.failed} projects failed",
                fg="red" if summary.failed else "bright_black",
            )
        )
