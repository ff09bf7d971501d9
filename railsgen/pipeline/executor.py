"""Sequential step runner with progress reporting.

Steps run strictly in order; each one sees the filesystem and processes
left behind by the ones before it.  A step reports how it went by
returning a ``StepStatus`` (``None`` means it succeeded):

* ``FAILED`` / ``SKIPPED`` are tolerated and the run continues.
* ``ABORTED`` (the operator chose to stop) ends the run cleanly.
* Raising ``StepFailed`` escalates a failure and ends the run.
* Any other exception is a bug or a broken environment; the run ends with
  a ``FATAL`` outcome and the traceback is printed.
"""

from __future__ import annotations

import time
import traceback
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Sequence

from rich.markup import escape

from railsgen.utils import console, format_duration


class StepStatus(str, Enum):
    SUCCEEDED = "succeeded"
    FAILED = "failed"
    SKIPPED = "skipped"
    ABORTED = "aborted"


class PipelineOutcome(str, Enum):
    SUCCEEDED = "succeeded"
    ABORTED = "aborted"
    FAILED = "failed"
    FATAL = "fatal"


class StepFailed(Exception):
    """Raised by a step whose failure must stop the run."""

    def __init__(self, label: str, message: str) -> None:
        self.label = label
        super().__init__(f"{label}: {message}")


StepAction = Callable[[], Awaitable["StepStatus | None"]]


@dataclass(frozen=True)
class PipelineStep:
    """A labelled unit of work."""

    label: str
    action: StepAction


@dataclass
class StepRecord:
    label: str
    status: StepStatus
    duration: float
    error: str | None = None


@dataclass
class PipelineResult:
    """What happened during a run."""

    outcome: PipelineOutcome
    records: list[StepRecord] = field(default_factory=list)
    error: str | None = None

    @property
    def succeeded(self) -> bool:
        return self.outcome is PipelineOutcome.SUCCEEDED

    @property
    def executed(self) -> list[str]:
        return [record.label for record in self.records]


_STATUS_MARKS: dict[StepStatus, str] = {
    StepStatus.SUCCEEDED: "[green]+[/green]",
    StepStatus.FAILED: "[red]x[/red]",
    StepStatus.SKIPPED: "[yellow]-[/yellow]",
    StepStatus.ABORTED: "[yellow]![/yellow]",
}


class StepPipeline:
    """Runs ``PipelineStep`` lists and records every step it ran."""

    def __init__(self) -> None:
        self.records: list[StepRecord] = []

    async def run_step(self, step: PipelineStep) -> StepStatus:
        """Run one step with progress output.

        Public so a step can run a nested sub-step of its own.  Exceptions
        from the action are reported and re-raised.
        """
        console.print(f"  [cyan]...[/cyan] {step.label}")
        start = time.monotonic()
        try:
            status = await step.action() or StepStatus.SUCCEEDED
        except Exception as exc:
            self._record(step, StepStatus.FAILED, time.monotonic() - start, str(exc))
            raise
        self._record(step, status, time.monotonic() - start)
        return status

    async def run(self, steps: Sequence[PipelineStep]) -> PipelineResult:
        """Run *steps* in order until they finish or one stops the run.

        Each call starts a fresh record list.
        """
        self.records = []
        for step in steps:
            try:
                status = await self.run_step(step)
            except StepFailed as exc:
                return PipelineResult(PipelineOutcome.FAILED, list(self.records), str(exc))
            except Exception as exc:
                tb = traceback.format_exc()
                console.print(f"[dim]{escape(tb)}[/dim]")
                return PipelineResult(
                    PipelineOutcome.FATAL,
                    list(self.records),
                    f"{type(exc).__name__}: {exc}",
                )

            if status is StepStatus.ABORTED:
                return PipelineResult(PipelineOutcome.ABORTED, list(self.records))

        return PipelineResult(PipelineOutcome.SUCCEEDED, list(self.records))

    def _record(
        self,
        step: PipelineStep,
        status: StepStatus,
        duration: float,
        error: str | None = None,
    ) -> None:
        self.records.append(StepRecord(step.label, status, duration, error))
        line = f"  {_STATUS_MARKS[status]} {step.label} [dim]({format_duration(duration)})[/dim]"
        if error:
            line += f" [red]{escape(error)}[/red]"
        console.print(line)
