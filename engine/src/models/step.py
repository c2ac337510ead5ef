"""
Step definition and step execution models.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, Dict, Union
from enum import Enum

class StepStatus(str, Enum):
    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    TIMED_OUT = "timed_out"

class StepReason(str, Enum):
    COMMAND_FAILED = "command_failed"
    COMMAND_TIMEOUT = "command_timeout"
    OPTIONAL_STEP_FAILED = "optional_step_failed"

class EngineModel(BaseModel):
    """Immutable model serialized with camelCase keys."""

    class Config:
        frozen = True
        alias_generator = to_camel
        populate_by_name = True

class RetryPolicy(EngineModel):
    max_attempts: int = 1
    delay_ms: int = 0
    retry_on_timeout: bool = False

class StepDefinition(EngineModel):
    id: str
    name: str
    command: str
    cwd: Optional[str] = None
    env: Dict[str, str] = {}
    optional: bool = False
    timeout_ms: Optional[int] = None
    retry: Optional[RetryPolicy] = None

class ExecutionRequest(EngineModel):
    command: str
    cwd: str
    env: Dict[str, str] = {}
    timeout_ms: Optional[int] = None

class ExecutionOutput(EngineModel):
    """Captured process output of one attempt."""

    exit_code: Optional[int] = None
    signal: Optional[str] = None
    stdout: str = ""
    stderr: str = ""

class ExecutionOutcome(ExecutionOutput):
    successful: bool = False
    timed_out: bool = False
    duration_ms: int = 0
    error: Optional[str] = None

    def to_output(self) -> ExecutionOutput:
        return ExecutionOutput(
            exit_code=self.exit_code,
            signal=self.signal,
            stdout=self.stdout,
            stderr=self.stderr,
        )

class ParsedMetric(EngineModel):
    label: str
    value: Union[int, float, str]

class StepResult(EngineModel):
    id: str
    name: str
    status: StepStatus
    reason: Optional[StepReason] = None
    attempts: int = Field(ge=0)
    retried: bool
    started_at: int
    finished_at: int
    duration_ms: int
    output: ExecutionOutput
    metrics: Optional[ParsedMetric] = None

    @property
    def is_hard_failure(self) -> bool:
        return self.status in (StepStatus.FAILED, StepStatus.TIMED_OUT)
