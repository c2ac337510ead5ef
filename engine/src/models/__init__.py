from engine.src.models.step import (
    StepStatus,
    StepReason,
    RetryPolicy,
    StepDefinition,
    ExecutionRequest,
    ExecutionOutput,
    ExecutionOutcome,
    ParsedMetric,
    StepResult,
)
from engine.src.models.run import PipelineSummary, PipelineRunResult

__all__ = [
    "StepStatus",
    "StepReason",
    "RetryPolicy",
    "StepDefinition",
    "ExecutionRequest",
    "ExecutionOutput",
    "ExecutionOutcome",
    "ParsedMetric",
    "StepResult",
    "PipelineSummary",
    "PipelineRunResult",
]
