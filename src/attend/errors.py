from __future__ import annotations


class AttendError(RuntimeError):
    """Base class for orchestration errors."""


class SuiteFrozenError(AttendError):
    """Raised when plugins are registered after a suite has run."""


class InvalidPluginError(AttendError, TypeError):
    """Raised when `Suite.use` receives something that is not a plugin."""


class InvalidProjectError(AttendError, TypeError):
    """Raised when project discovery yields a malformed project."""


class ExpectedError(AttendError):
    """A failure whose message is sufficient; its traceback is not reported."""


class GitError(AttendError):
    def __init__(
        self,
        message: str,
        *,
        args: list[str] | None = None,
        exit_code: int | None = None,
    ) -> None:
        super().__init__(message)
        self.git_args = list(args or [])
        self.exit_code = exit_code
