"""Step pipeline and operator decision gate."""

from railsgen.pipeline.executor import (
    PipelineOutcome,
    PipelineResult,
    PipelineStep,
    StepFailed,
    StepPipeline,
    StepRecord,
    StepStatus,
)
from railsgen.pipeline.gate import YES_NO_ABORT, DecisionGate, DecisionOutcome

__all__ = [
    "DecisionGate",
    "DecisionOutcome",
    "PipelineOutcome",
    "PipelineResult",
    "PipelineStep",
    "StepFailed",
    "StepPipeline",
    "StepRecord",
    "StepStatus",
    "YES_NO_ABORT",
]
