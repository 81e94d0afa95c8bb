"""External command execution for pipeline stages.

Public API:
    - CommandRunner: Runs a collaborator command and captures its result
    - CommandResult: Exit code, stdout and stderr of one command
    - RunnerError: Base exception for command errors
    - CommandFailure: Non-zero exit from a command that is not best-effort
    - CommandTimeout: Command exceeded its wall-clock timeout
"""

from .command_runner import CommandRunner
from .exceptions import CommandFailure, CommandTimeout, RunnerError
from .models import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult

__all__ = [
    "CommandRunner",
    "CommandResult",
    "EXIT_NOT_FOUND",
    "EXIT_TIMEOUT",
    "RunnerError",
    "CommandFailure",
    "CommandTimeout",
]
