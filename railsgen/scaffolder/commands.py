"""External command helpers shared by the generation steps."""

from __future__ import annotations

from pathlib import Path

from rich.markup import escape

from railsgen.pipeline import StepFailed, StepStatus
from railsgen.utils import print_warning, run_command


def _last_line(text: str) -> str:
    lines = [line for line in text.splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""


def _display(cmd: str | list[str]) -> str:
    return cmd if isinstance(cmd, str) else " ".join(cmd)


def failure_reason(cmd: str | list[str], returncode: int, stdout: str, stderr: str) -> str:
    """One-line explanation of a failed command, for step reports."""
    reason = _last_line(stderr) or _last_line(stdout) or f"exit code {returncode}"
    return f"'{_display(cmd)}' failed: {reason}"


async def run_required(
    label: str,
    cmd: str | list[str],
    cwd: Path,
    input_text: str | None = None,
) -> str:
    """Run a command the rest of the run depends on.

    Returns stdout.  Raises ``StepFailed`` on a non-zero exit, which stops
    the pipeline.
    """
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, input_text=input_text)
    if returncode != 0:
        raise StepFailed(label, failure_reason(cmd, returncode, stdout, stderr))
    return stdout


async def run_tolerated(
    cmd: str | list[str],
    cwd: Path,
    input_text: str | None = None,
) -> StepStatus:
    """Run a command whose failure should be reported but not stop the run."""
    returncode, stdout, stderr = await run_command(cmd, cwd=cwd, input_text=input_text)
    if returncode != 0:
        print_warning(f"    {escape(failure_reason(cmd, returncode, stdout, stderr))}")
        return StepStatus.FAILED
    return StepStatus.SUCCEEDED
