"""Exceptions for the command runner module."""

from .models import CommandResult


class RunnerError(Exception):
    """Base exception for external command errors."""

    pass


class CommandFailure(RunnerError):
    """Raised when an external command exits non-zero and is not best-effort.

    Attributes:
        result: The captured result of the failed command.
    """

    def __init__(self, result: CommandResult, message: str | None = None):
        self.result = result
        detail = result.stderr.strip() or result.stdout.strip()
        if message is None:
            message = f"{result.command_line} exited with code {result.exit_code}"
            if detail:
                message += f": {detail}"
        super().__init__(message)

    @property
    def exit_code(self) -> int:
        return self.result.exit_code

    @property
    def stderr(self) -> str:
        return self.result.stderr


class CommandTimeout(CommandFailure):
    """Raised when an external command exceeds its wall-clock timeout."""

    def __init__(self, result: CommandResult, timeout: float):
        self.timeout = timeout
        super().__init__(
            result, f"{result.command_line} timed out after {timeout:g}s"
        )
