"""Execution of check commands as external processes.

The runner talks to a CommandExecutor so tests (and other hosts) can replace
real subprocesses. Failures to start a process and timeouts are reported in
the CommandOutcome, never raised.
"""

import asyncio
import logging
import os
import signal
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

# Hint for tools that change behavior when run non-interactively
NON_INTERACTIVE_ENV = {"CI": "true"}


@dataclass(frozen=True)
class CommandOutcome:
    """What happened when a command was executed.

    Attributes:
        exit_code: Process exit code (None if it never started or was killed)
        stdout: Captured standard output
        stderr: Captured standard error
        timed_out: True if the command exceeded its timeout and was killed
        start_error: Error text when the process could not be started
        duration_ms: Wall-clock time spent
    """

    exit_code: int | None
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    start_error: str | None = None
    duration_ms: int = 0

    @property
    def combined_output(self) -> str:
        return self.stdout + (f"\n{self.stderr}" if self.stderr else "")


class CommandExecutor(Protocol):
    """Runs one shell command to completion or timeout."""

    def run(self, command: str, cwd: Path, timeout: float) -> CommandOutcome:
        ...


class SubprocessCommandExecutor:
    """Shell command executor using asyncio subprocesses.

    Uses asyncio.run() to wrap the async implementation in a sync interface,
    so each call blocks its calling thread only.
    """

    def __init__(self, extra_env: dict[str, str] | None = None) -> None:
        self._env = {**os.environ, **NON_INTERACTIVE_ENV, **(extra_env or {})}

    def run(self, command: str, cwd: Path, timeout: float) -> CommandOutcome:
        return asyncio.run(self._async_run(command, cwd, timeout))

    async def _async_run(self, command: str, cwd: Path, timeout: float) -> CommandOutcome:
        started = time.monotonic()
        logger.debug(f"Running check command in {cwd}: {command}")

        try:
            process = await asyncio.create_subprocess_shell(
                command,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                cwd=str(cwd),
                env=self._env,
                start_new_session=True,
            )
        except OSError as e:
            return CommandOutcome(
                exit_code=None,
                start_error=f"Failed to start '{command}': {e}",
                duration_ms=_elapsed_ms(started),
            )

        try:
            # Wait for process completion with timeout
            stdout_data, stderr_data = await asyncio.wait_for(
                process.communicate(),
                timeout=timeout,
            )
        except asyncio.TimeoutError:
            _kill_process_group(process.pid)
            await process.wait()
            logger.debug(f"Check command timed out after {timeout}s: {command}")
            return CommandOutcome(
                exit_code=None,
                timed_out=True,
                duration_ms=_elapsed_ms(started),
            )

        return CommandOutcome(
            exit_code=process.returncode,
            stdout=stdout_data.decode(errors="replace") if stdout_data else "",
            stderr=stderr_data.decode(errors="replace") if stderr_data else "",
            duration_ms=_elapsed_ms(started),
        )


def _elapsed_ms(started: float) -> int:
    return int((time.monotonic() - started) * 1000)


def _kill_process_group(pid: int) -> None:
    """Kill the shell and everything it spawned.

    The process runs in its own session, so its pid is also its group id.
    Children of a compound command would otherwise keep the output pipes open.
    """
    try:
        os.killpg(pid, signal.SIGKILL)
    except ProcessLookupError:
        logger.debug(f"Process group {pid} already gone")
