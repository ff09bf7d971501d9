"""Readiness-gated launching of long-running background servers.

``ProcessSupervisor.launch`` spawns a shell command, drains its merged
stdout/stderr in a background task and returns once a line containing the
readiness marker has been read.  The child is then left running: the
returned ``SupervisedProcess`` hands ownership to the caller, who stops it
later through the port reaper.  The supervisor itself only ever kills a
child that never became ready.
"""

from __future__ import annotations

import asyncio
import os
import signal
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path

from rich.markup import escape

from railsgen.supervisor.readiness import ReadinessCondition
from railsgen.utils import console

# Lines of child output kept for error reports.
OUTPUT_TAIL_LINES = 20

# Per-line buffer limit for the output reader; longer lines are dropped.
_READ_LIMIT = 1024 * 1024

# Grace period for a never-ready child to exit and for its output to close.
_EXIT_GRACE_SECONDS = 5.0


# ---------------------------------------------------------------------------
# Exceptions
# ---------------------------------------------------------------------------


class SupervisorError(Exception):
    """Raised when a supervised process does not become ready."""

    def __init__(self, message: str, command: str, output_tail: list[str] | None = None) -> None:
        self.command = command
        self.output_tail = output_tail or []
        super().__init__(message)


class StartupFailed(SupervisorError):
    """The process exited before printing its readiness marker."""

    def __init__(self, command: str, returncode: int | None, output_tail: list[str]) -> None:
        self.returncode = returncode
        super().__init__(
            f"'{command}' exited with code {returncode} before becoming ready",
            command,
            output_tail,
        )


class ReadinessTimeout(SupervisorError):
    """The readiness marker did not appear within the allotted time."""

    def __init__(self, command: str, timeout: float, output_tail: list[str]) -> None:
        self.timeout = timeout
        super().__init__(
            f"'{command}' did not become ready within {timeout:g}s",
            command,
            output_tail,
        )


# ---------------------------------------------------------------------------
# Supervised process handle
# ---------------------------------------------------------------------------


@dataclass
class SupervisedProcess:
    """A started, ready, still-running child process.

    Holding this handle means owning the process: the supervisor will not
    stop it.  ``port`` is what the reaper needs to terminate it.
    """

    command: str
    pid: int
    port: int | None
    ready_line: str
    _process: asyncio.subprocess.Process = field(repr=False)
    _ready: asyncio.Future = field(repr=False)
    _drain_task: asyncio.Task = field(repr=False)
    _output_tail: deque = field(repr=False)

    @property
    def is_ready(self) -> bool:
        return self._ready.done() and not self._ready.cancelled() and self._ready.result() is not None

    @property
    def returncode(self) -> int | None:
        return self._process.returncode

    @property
    def is_running(self) -> bool:
        return self._process.returncode is None

    @property
    def output_tail(self) -> list[str]:
        """The most recent output lines seen from the process."""
        return list(self._output_tail)

    async def wait(self) -> int:
        """Wait for the process to exit (after the reaper stopped it)."""
        returncode = await self._process.wait()
        await self._drain_task
        return returncode


# ---------------------------------------------------------------------------
# Supervisor
# ---------------------------------------------------------------------------


class ProcessSupervisor:
    """Starts servers and blocks until they announce readiness.

    Args:
        timeout: Seconds to wait for the readiness marker.  ``None`` waits
            until the marker appears or the process exits.
        tail_lines: How many recent output lines to keep for diagnostics.
    """

    def __init__(self, timeout: float | None = 60.0, tail_lines: int = OUTPUT_TAIL_LINES) -> None:
        self.timeout = timeout
        self.tail_lines = tail_lines

    async def launch(
        self,
        command: str,
        ready_marker: str | ReadinessCondition,
        *,
        port: int | None = None,
        cwd: str | Path | None = None,
        env: dict[str, str] | None = None,
    ) -> SupervisedProcess:
        """Start *command* and return once it prints *ready_marker*.

        Args:
            command: Shell command starting the server.
            ready_marker: Substring (or condition) announcing readiness.
            port: TCP port the server is expected to listen on; recorded on
                the handle for the reaper.
            cwd: Working directory for the server.
            env: Extra environment variables.

        Returns:
            The running, ready process.

        Raises:
            StartupFailed: The process exited before printing the marker.
            ReadinessTimeout: The marker did not appear within ``timeout``;
                the process has been killed.
        """
        condition = (
            ready_marker
            if isinstance(ready_marker, ReadinessCondition)
            else ReadinessCondition(ready_marker)
        )

        merged_env: dict[str, str] | None = None
        if env:
            merged_env = {**os.environ, **env}

        process = await asyncio.create_subprocess_shell(
            command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.STDOUT,
            cwd=str(cwd) if cwd else None,
            env=merged_env,
            start_new_session=True,
            limit=_READ_LIMIT,
        )
        console.print(f"  [dim]started pid {process.pid}: {escape(command)}[/dim]")

        ready: asyncio.Future[str | None] = asyncio.get_running_loop().create_future()
        tail: deque[str] = deque(maxlen=self.tail_lines)
        drain_task = asyncio.create_task(
            _drain_output(process, condition, ready, tail),
            name=f"drain-output-{process.pid}",
        )
        exit_task = asyncio.create_task(process.wait(), name=f"wait-exit-{process.pid}")

        try:
            await asyncio.wait(
                {ready, exit_task},
                timeout=self.timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            exit_task.cancel()
            await _kill_process_group(process, drain_task)
            raise

        if ready.done() and ready.result() is not None:
            exit_task.cancel()
            return SupervisedProcess(
                command=command,
                pid=process.pid,
                port=port,
                ready_line=ready.result(),
                _process=process,
                _ready=ready,
                _drain_task=drain_task,
                _output_tail=tail,
            )

        if not ready.done() and not exit_task.done():
            exit_task.cancel()
            await _kill_process_group(process, drain_task)
            raise ReadinessTimeout(command, self.timeout or 0, list(tail))

        if not exit_task.done():
            # Output closed without a readiness line; the process can never become ready.
            try:
                await asyncio.wait_for(exit_task, timeout=_EXIT_GRACE_SECONDS)
            except asyncio.TimeoutError:
                pass
        # The shell may have exited while jobs it started still hold the pipe.
        await _kill_process_group(process, drain_task)
        raise StartupFailed(command, process.returncode, list(tail))


# ---------------------------------------------------------------------------
# Internal helpers
# ---------------------------------------------------------------------------


async def _drain_output(
    process: asyncio.subprocess.Process,
    condition: ReadinessCondition,
    ready: asyncio.Future,
    tail: deque,
) -> None:
    """Read the child's output to EOF, resolving *ready* at most once.

    *ready* gets the first matching line, or ``None`` when the stream ends
    without a match.  Reading continues after the match so the child never
    blocks on a full pipe.
    """
    assert process.stdout is not None  # guaranteed by PIPE
    try:
        while True:
            try:
                raw = await process.stdout.readline()
            except ValueError:
                # Line exceeded the buffer limit and was discarded.
                continue
            if not raw:
                break
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            tail.append(line)
            if not ready.done() and condition.matches(line):
                ready.set_result(line)
    finally:
        if not ready.done():
            ready.set_result(None)


async def _kill_process_group(
    process: asyncio.subprocess.Process,
    drain_task: asyncio.Task,
) -> None:
    """Kill a never-ready child together with everything its shell started.

    The whole session group is signalled even when the shell itself has
    already exited, since background jobs it left behind may still hold the
    output pipe open.
    """
    try:
        if hasattr(os, "killpg"):
            os.killpg(process.pid, signal.SIGKILL)
        elif process.returncode is None:
            process.kill()
    except (ProcessLookupError, PermissionError):
        # The group is already gone.
        pass
    await process.wait()
    try:
        # wait_for cancels the reader if a detached job keeps the pipe open.
        await asyncio.wait_for(drain_task, timeout=_EXIT_GRACE_SECONDS)
    except asyncio.TimeoutError:
        pass
