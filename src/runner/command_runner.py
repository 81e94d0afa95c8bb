"""CommandRunner - executes external collaborator commands."""

import logging
import subprocess
import time
from pathlib import Path
from typing import Mapping, Optional, Sequence

from .exceptions import CommandFailure, CommandTimeout
from .models import EXIT_NOT_FOUND, EXIT_TIMEOUT, CommandResult

logger = logging.getLogger(__name__)


class CommandRunner:
    """Runs external tools (build tool, container engine, scanner, helm, kubectl).

    The runner only looks at exit codes. Callers that need to inspect the
    output of a failed command (for example to detect a "not found"
    sentinel) catch CommandFailure and read its ``result``.

    Example:
        runner = CommandRunner(base_env=env, cwd=Path("/workspace"))
        result = runner.execute("docker", ["build", "-t", "alice/app:42", "."])
    """

    def __init__(
        self,
        base_env: Mapping[str, str],
        cwd: Optional[Path] = None,
        default_timeout: Optional[float] = None,
    ):
        """Initialize the runner.

        Args:
            base_env: Environment every command starts from, copied at
                construction.
            cwd: Working directory for every command. Defaults to the current directory.
            default_timeout: Wall-clock limit in seconds applied when a call
                does not pass its own. None means no limit.
        """
        self._cwd = Path(cwd) if cwd else None
        self._base_env = dict(base_env)
        self._default_timeout = default_timeout

    @property
    def cwd(self) -> Optional[Path]:
        return self._cwd

    def _build_env(self, env: Optional[Mapping[str, str]]) -> dict[str, str]:
        merged = dict(self._base_env)
        if env:
            merged.update(env)
        return merged

    def execute(
        self,
        command: str,
        args: Sequence[str] = (),
        env: Optional[Mapping[str, str]] = None,
        *,
        best_effort: bool = False,
        input: Optional[str] = None,
        timeout: Optional[float] = None,
    ) -> CommandResult:
        """Run a command and capture its exit status and output.

        Args:
            command: Executable name or path.
            args: Arguments for the executable.
            env: Extra environment variables for this call only.
            best_effort: If True, a non-zero exit is logged as a warning and
                the result returned instead of raising.
            input: Text written to the process's stdin (used for secrets so
                they never appear in argv).
            timeout: Wall-clock limit in seconds for this call.

        Returns:
            CommandResult with exit code and captured output.

        Raises:
            CommandTimeout: The command ran past its timeout (not best-effort).
            CommandFailure: The command exited non-zero or could not be
                started (not best-effort).
        """
        args = tuple(str(a) for a in args)
        effective_timeout = timeout if timeout is not None else self._default_timeout
        logger.info("Running: %s", CommandResult(command=command, args=args).command_line)

        start = time.monotonic()
        try:
            completed = subprocess.run(
                [command, *args],
                cwd=self._cwd,
                env=self._build_env(env),
                input=input,
                capture_output=True,
                text=True,
                timeout=effective_timeout,
                check=False,
            )
            result = CommandResult(
                command=command,
                args=args,
                exit_code=completed.returncode,
                stdout=completed.stdout or "",
                stderr=completed.stderr or "",
                duration_seconds=round(time.monotonic() - start, 2),
            )
        except FileNotFoundError as e:
            result = CommandResult(
                command=command,
                args=args,
                exit_code=EXIT_NOT_FOUND,
                stderr=str(e),
                duration_seconds=round(time.monotonic() - start, 2),
            )
        except subprocess.TimeoutExpired as e:
            result = CommandResult(
                command=command,
                args=args,
                exit_code=EXIT_TIMEOUT,
                stdout=_as_text(e.stdout),
                stderr=_as_text(e.stderr),
                duration_seconds=round(time.monotonic() - start, 2),
            )
            if best_effort:
                logger.warning(
                    "Best-effort command timed out after %ss: %s",
                    effective_timeout,
                    result.command_line,
                )
                return result
            raise CommandTimeout(result, effective_timeout) from e

        if result.succeeded:
            logger.debug(
                "Command finished in %.2fs: %s", result.duration_seconds, result.command_line
            )
            return result

        if best_effort:
            logger.warning(
                "Best-effort command exited with code %d: %s (%s)",
                result.exit_code,
                result.command_line,
                result.stderr.strip() or "no stderr",
            )
            return result

        raise CommandFailure(result)


def _as_text(output: bytes | str | None) -> str:
    if output is None:
        return ""
    if isinstance(output, bytes):
        return output.decode(errors="replace")
    return output
