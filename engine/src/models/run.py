from pydantic import model_validator
from typing import List, Literal

from engine.src.models.step import EngineModel, StepResult, StepStatus

class PipelineSummary(EngineModel):
    total: int
    passed: int
    failed: int
    skipped: int
    timed_out: int
    duration_ms: int

    @classmethod
    def from_results(cls, results: List[StepResult], duration_ms: int) -> "PipelineSummary":
        def count(status: StepStatus) -> int:
            return sum(1 for r in results if r.status == status)

        return cls(
            total=len(results),
            passed=count(StepStatus.PASSED),
            failed=count(StepStatus.FAILED),
            skipped=count(StepStatus.SKIPPED),
            timed_out=count(StepStatus.TIMED_OUT),
            duration_ms=duration_ms,
        )

    @property
    def exit_code(self) -> int:
        return 1 if self.failed > 0 or self.timed_out > 0 else 0

class PipelineRunResult(EngineModel):
    steps: List[StepResult]
    summary: PipelineSummary
    exit_code: Literal[0, 1]
    started_at: int
    finished_at: int

    @model_validator(mode="after")
    def check_exit_code(self) -> "PipelineRunResult":
        if self.exit_code != self.summary.exit_code:
            raise ValueError(
                f"exit_code {self.exit_code} does not match summary "
                f"(failed={self.summary.failed}, timed_out={self.summary.timed_out})"
            )
        return self
