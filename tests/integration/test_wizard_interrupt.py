"""Integration test: Ctrl-C at an operator prompt ends the wizard.

Runs ``python -m railsgen.wizard`` as a real child process with stdin left
open, waits for the first question and interrupts it.
"""

from __future__ import annotations

import os
import select
import signal
import subprocess
import sys
import time
from pathlib import Path

import pytest

REPO_ROOT = Path(__file__).resolve().parents[2]


def _read_until(proc: subprocess.Popen, needle: bytes, timeout: float) -> bytes:
    """Collect the child's stdout until *needle* shows up."""
    assert proc.stdout is not None
    output = b""
    deadline = time.monotonic() + timeout
    while needle not in output:
        remaining = deadline - time.monotonic()
        assert remaining > 0, f"no {needle!r} in output: {output!r}"
        readable, _, _ = select.select([proc.stdout], [], [], remaining)
        if readable:
            chunk = os.read(proc.stdout.fileno(), 4096)
            assert chunk, f"child exited early: {output!r}"
            output += chunk
    return output


@pytest.mark.integration
class TestInterruptAtPrompt:
    @pytest.mark.skipif(sys.platform == "win32", reason="needs POSIX signals")
    def test_sigint_while_waiting_for_name(self, tmp_path):
        env = {**os.environ, "PYTHONPATH": str(REPO_ROOT)}
        proc = subprocess.Popen(
            [sys.executable, "-m", "railsgen.wizard", "-p", str(tmp_path)],
            stdin=subprocess.PIPE,
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            cwd=tmp_path,
            env=env,
        )
        try:
            _read_until(proc, b"What is the name of your project?", timeout=30)

            proc.send_signal(signal.SIGINT)
            returncode = proc.wait(timeout=10)
            rest = proc.stdout.read()
        finally:
            if proc.poll() is None:
                proc.kill()
                proc.wait()
            proc.stdin.close()
            proc.stdout.close()

        assert returncode == 130
        assert b"Aborting generation" in rest
        assert not any(tmp_path.iterdir())
