"""Data models for external command execution."""

import shlex
from dataclasses import dataclass, field
from typing import Any

# Exit code reported when the executable cannot be found (shell convention)
EXIT_NOT_FOUND = 127
# Exit code reported when the command was killed for exceeding its timeout
EXIT_TIMEOUT = 124


@dataclass(frozen=True)
class CommandResult:
    """Outcome of one external command.

    Attributes:
        command: Executable that was invoked.
        args: Arguments passed to the executable.
        exit_code: Process exit status.
        stdout: Captured standard output.
        stderr: Captured standard error.
        duration_seconds: Wall-clock duration of the call.
    """

    command: str
    args: tuple[str, ...] = field(default_factory=tuple)
    exit_code: int = 0
    stdout: str = ""
    stderr: str = ""
    duration_seconds: float = 0.0

    @property
    def succeeded(self) -> bool:
        return self.exit_code == 0

    @property
    def command_line(self) -> str:
        """Shell-quoted command line for logs and error messages."""
        return shlex.join([self.command, *self.args])

    def to_dict(self) -> dict[str, Any]:
        """Serialize to dictionary."""
        return {
            "command": self.command,
            "args": list(self.args),
            "exit_code": self.exit_code,
            "duration_seconds": self.duration_seconds,
        }
