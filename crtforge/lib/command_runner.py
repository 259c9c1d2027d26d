"""Synchronous execution of external tools (openssl, sudo, security)."""

import subprocess
from collections.abc import Sequence
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from .exceptions import format_command
from .logging_config import LOGGER

# Conventional shell status for "command not found"
COMMAND_NOT_FOUND = 127


@dataclass(frozen=True)
class CommandResult:
    """Exit status and combined stdout/stderr of one invocation."""

    exit_status: int
    output: str

    @property
    def ok(self) -> bool:
        return self.exit_status == 0


class CommandRunner(Protocol):
    """Capability to invoke an external program and wait for it."""

    def run(self, args: Sequence[str], cwd: Path | None = None) -> CommandResult: ...


class SubprocessRunner:
    """CommandRunner backed by subprocess.run.

    No timeout is applied: a hung tool blocks the caller.
    """

    def run(self, args: Sequence[str], cwd: Path | None = None) -> CommandResult:
        argv = [str(arg) for arg in args]
        LOGGER.debug("Running: %s", format_command(argv))
        try:
            completed = subprocess.run(
                argv,
                cwd=cwd,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                stdin=subprocess.DEVNULL,
                text=True,
                check=False,
            )
        except OSError as e:
            # Missing binaries surface as a failed invocation, not a crash
            return CommandResult(exit_status=COMMAND_NOT_FOUND, output=str(e))
        return CommandResult(exit_status=completed.returncode, output=completed.stdout)
