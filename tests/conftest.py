"""Shared pytest fixtures for the railsgen test suite.

Provides reusable fixtures for:
- Scripted operator input (DecisionGate fed from a list)
- Free TCP ports and throwaway listener processes
- Project options rooted in a temporary directory
- Mock subprocess helpers
- Fake external commands for the generation steps
"""

from __future__ import annotations

import shlex
import socket
import subprocess
import sys
import textwrap
from pathlib import Path
from typing import Callable, Iterator
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from railsgen.config import FrontKind, ProjectOptions, ServerConfig
from railsgen.pipeline import DecisionGate


# ---------------------------------------------------------------------------
# Operator input
# ---------------------------------------------------------------------------


class ScriptedReader:
    """Stands in for the console: returns queued answers, then EOF."""

    def __init__(self, answers: list[str]) -> None:
        self.answers = list(answers)
        self.prompts: list[str] = []

    def __call__(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if not self.answers:
            raise EOFError
        return self.answers.pop(0)

    @property
    def calls(self) -> int:
        return len(self.prompts)


@pytest.fixture
def scripted_gate() -> Callable[..., tuple[DecisionGate, ScriptedReader]]:
    """Factory returning a ``DecisionGate`` that answers from a list.

    Usage:
        def test_something(scripted_gate):
            gate, reader = scripted_gate("xyz", "n")
            ...
            assert reader.calls == 2
    """
    def factory(*answers: str) -> tuple[DecisionGate, ScriptedReader]:
        reader = ScriptedReader(list(answers))
        return DecisionGate(reader=reader), reader

    return factory


# ---------------------------------------------------------------------------
# Ports & processes
# ---------------------------------------------------------------------------


@pytest.fixture
def free_port() -> int:
    """A TCP port that nothing was listening on a moment ago."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def _python_command(code: str) -> str:
    return f"{shlex.quote(sys.executable)} -u -c {shlex.quote(textwrap.dedent(code))}"


def _listener_code(port: int, marker: str = "ready", delay: float = 0.0) -> str:
    return textwrap.dedent(
        f"""
        import socket, time
        time.sleep({delay})
        s = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        s.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        s.bind(("127.0.0.1", {port}))
        s.listen()
        print("{marker}", flush=True)
        time.sleep(60)
        """
    )


@pytest.fixture
def python_cmd() -> Callable[[str], str]:
    """Shell command running a Python snippet with the current interpreter, unbuffered.

    Usage:
        cmd = python_cmd("print('ready')")
    """
    return _python_command


@pytest.fixture
def listener_cmd() -> Callable[..., str]:
    """Factory for a dummy server command: bind a port, announce a marker, idle.

    Usage:
        cmd = listener_cmd(port, marker="ready", delay=0.5)
    """
    def factory(port: int, marker: str = "ready", delay: float = 0.0) -> str:
        return _python_command(_listener_code(port, marker, delay))

    return factory


@pytest.fixture
def listener_process(free_port: int) -> Iterator[subprocess.Popen]:
    """A real process listening on ``free_port``, killed after the test."""
    proc = subprocess.Popen(
        [sys.executable, "-u", "-c", _listener_code(free_port)],
        stdout=subprocess.PIPE,
        text=True,
    )
    assert proc.stdout is not None
    assert proc.stdout.readline().strip() == "ready"
    yield proc
    if proc.poll() is None:
        proc.kill()
    proc.wait(timeout=10)
    proc.stdout.close()


# ---------------------------------------------------------------------------
# Options
# ---------------------------------------------------------------------------


@pytest.fixture
def project_options(tmp_path: Path) -> ProjectOptions:
    """Options for a ``blog`` project with an Elm front under tmp_path."""
    return ProjectOptions(
        name="blog",
        path=tmp_path,
        front=FrontKind.ELM,
        server=ServerConfig(port=3999, ready_timeout=5),
    )


# ---------------------------------------------------------------------------
# Mock Subprocess (generic)
# ---------------------------------------------------------------------------


@pytest.fixture
def mock_subprocess():
    """Mock asyncio subprocess for testing command execution.

    Returns a factory that creates mock subprocess instances with configurable
    stdout, stderr, and return codes.

    Usage:
        def test_command(mock_subprocess):
            proc = mock_subprocess(stdout="output", returncode=0)
            with patch("asyncio.create_subprocess_exec", return_value=proc):
                ...
    """
    def factory(
        stdout: str = "",
        stderr: str = "",
        returncode: int = 0,
    ) -> AsyncMock:
        mock_proc = AsyncMock()
        mock_proc.communicate = AsyncMock(
            return_value=(stdout.encode("utf-8"), stderr.encode("utf-8"))
        )
        mock_proc.returncode = returncode
        mock_proc.pid = 99999
        mock_proc.kill = MagicMock()
        mock_proc.wait = AsyncMock(return_value=returncode)
        return mock_proc

    return factory


# ---------------------------------------------------------------------------
# Fake external commands (generation steps)
# ---------------------------------------------------------------------------


class FakeCommands:
    """Records commands and answers them from a table of scripted results.

    Keys are the command as a single string (list commands joined by spaces);
    unknown commands succeed with empty output.
    """

    def __init__(self) -> None:
        self.calls: list[tuple[str, Path | None, str | None]] = []
        self.results: dict[str, list[tuple[int, str, str]]] = {}

    def reply(self, cmd: str, *results: tuple[int, str, str]) -> None:
        """Queue results for *cmd*; the last one repeats."""
        self.results[cmd] = list(results)

    @property
    def commands(self) -> list[str]:
        return [cmd for cmd, _, _ in self.calls]

    async def __call__(self, cmd, cwd=None, timeout=600, input_text=None, env=None):
        key = cmd if isinstance(cmd, str) else " ".join(cmd)
        self.calls.append((key, Path(cwd) if cwd else None, input_text))
        queued = self.results.get(key)
        if not queued:
            return (0, "", "")
        return queued.pop(0) if len(queued) > 1 else queued[0]


@pytest.fixture
def fake_commands() -> Iterator[FakeCommands]:
    """Patch every ``run_command`` used by the generation steps.

    Usage:
        def test_step(fake_commands):
            fake_commands.reply("rails db:create", (1, "", "boom"))
            ...
            assert "rails db:create" in fake_commands.commands
    """
    fake = FakeCommands()
    with patch("railsgen.scaffolder.commands.run_command", new=fake), patch(
        "railsgen.scaffolder.api.run_command", new=fake
    ):
        yield fake
