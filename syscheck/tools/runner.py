"""
External command execution.

Every call to kubectl, az, aws, helm or a firewall tool goes through
run_command() so timeouts and missing binaries are handled in one place.
"""

import logging
import shutil
import subprocess
from dataclasses import dataclass
from typing import List, Optional, Sequence

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 60


class CommandError(Exception):
    """Base error for external command failures."""

    def __init__(self, command: Sequence[str], message: str):
        self.command = list(command)
        super().__init__(message)


class ToolNotFoundError(CommandError):
    """The executable is not installed or not on PATH."""

    def __init__(self, command: Sequence[str]):
        super().__init__(command, f"{command[0]} not installed or not on PATH")


class CommandTimeoutError(CommandError):
    """The command did not finish within its time bound."""

    def __init__(self, command: Sequence[str], timeout: float):
        self.timeout = timeout
        super().__init__(command, f"'{' '.join(command)}' timed out after {timeout}s")


class CommandFailedError(CommandError):
    """The command exited non-zero where success was required."""

    def __init__(self, result: "CommandResult"):
        self.result = result
        detail = (result.stderr or result.stdout).strip()
        super().__init__(result.command, f"'{' '.join(result.command)}' failed: {detail}")


@dataclass
class CommandResult:
    """Outcome of one external command."""
    command: List[str]
    returncode: int
    stdout: str = ""
    stderr: str = ""

    @property
    def ok(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """Combined stdout/stderr, stripped."""
        return "\n".join(s for s in (self.stdout.strip(), self.stderr.strip()) if s)

    def check(self) -> "CommandResult":
        """Raise CommandFailedError unless the command succeeded."""
        if not self.ok:
            raise CommandFailedError(self)
        return self


def which(tool: str) -> Optional[str]:
    """Resolve a tool on PATH."""
    return shutil.which(tool)


def run_command(
    command: Sequence[str],
    timeout: Optional[float] = DEFAULT_TIMEOUT,
    input: Optional[str] = None,
) -> CommandResult:
    """
    Run an external command and capture its output.

    Args:
        command: Executable and arguments
        timeout: Seconds before the command is killed
        input: Optional text piped to stdin

    Returns:
        CommandResult, whatever the exit code

    Raises:
        ToolNotFoundError: If the executable does not exist
        CommandTimeoutError: If the timeout was exceeded
    """
    command = [str(c) for c in command]
    logger.debug("Running: %s", " ".join(command))

    try:
        proc = subprocess.run(
            command,
            capture_output=True,
            text=True,
            timeout=timeout,
            input=input,
        )
    except FileNotFoundError:
        raise ToolNotFoundError(command)
    except subprocess.TimeoutExpired:
        raise CommandTimeoutError(command, timeout)

    result = CommandResult(
        command=command,
        returncode=proc.returncode,
        stdout=proc.stdout or "",
        stderr=proc.stderr or "",
    )
    if not result.ok:
        logger.debug("Exit %d from %s: %s", result.returncode, command[0], result.stderr.strip())
    return result
