"""Tests for the sequential pipeline runner."""

import sys

import pytest

from engine.src.models.run import PipelineRunResult, PipelineSummary
from engine.src.models.step import RetryPolicy, StepDefinition, StepReason, StepStatus
from engine.src.services.executor import execute_command
from engine.src.services.reporting import PipelineReporter
from engine.src.services.runner import run_pipeline
from engine.tests.fakes import (
    FAIL,
    PASS,
    TIMEOUT,
    CommandTableExecutor,
    FakeClock,
    RecordingSleep,
    ScriptedExecutor,
)

def step(step_id, command=None, **kwargs):
    return StepDefinition(id=step_id, name=step_id.title(), command=command or step_id, **kwargs)

class RecordingReporter(PipelineReporter):
    def __init__(self):
        self.events = []

    def on_pipeline_start(self, steps):
        self.events.append(("pipeline_start", [s.id for s in steps]))

    def on_step_start(self, step, index):
        self.events.append(("step_start", step.id, index))

    def on_step_complete(self, result, index):
        self.events.append(("step_complete", result.id, index))

    def on_pipeline_complete(self, result):
        self.events.append(("pipeline_complete", result.exit_code))

class AsyncReporter:
    """Duck-typed reporter with coroutine hooks and one hook missing."""

    def __init__(self):
        self.completed = []

    async def on_step_complete(self, result, index):
        self.completed.append(result.id)

    async def on_pipeline_complete(self, result):
        self.completed.append("done")

@pytest.mark.asyncio
async def test_single_passing_step():
    result = await run_pipeline([step("lint")], ScriptedExecutor(PASS))

    assert isinstance(result, PipelineRunResult)
    assert result.steps[0].status == StepStatus.PASSED
    assert result.exit_code == 0
    assert result.summary.passed == 1

@pytest.mark.asyncio
async def test_optional_failure_keeps_exit_code_zero():
    result = await run_pipeline([step("audit", optional=True)], ScriptedExecutor(FAIL))

    assert result.steps[0].status == StepStatus.SKIPPED
    assert result.steps[0].reason == StepReason.OPTIONAL_STEP_FAILED
    assert result.exit_code == 0
    assert result.summary.skipped == 1

@pytest.mark.asyncio
async def test_retry_recovers_step():
    result = await run_pipeline(
        [step("flaky", retry=RetryPolicy(max_attempts=2))],
        ScriptedExecutor(FAIL, PASS),
        sleep=RecordingSleep(),
    )

    only = result.steps[0]
    assert only.status == StepStatus.PASSED
    assert only.retried is True
    assert only.attempts == 2
    assert result.exit_code == 0

@pytest.mark.asyncio
async def test_timed_out_step_fails_run():
    result = await run_pipeline([step("slow", timeout_ms=100)], ScriptedExecutor(TIMEOUT))

    assert result.steps[0].status == StepStatus.TIMED_OUT
    assert result.summary.timed_out == 1
    assert result.exit_code == 1

@pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX shell")
@pytest.mark.asyncio
async def test_real_command_exceeding_timeout():
    result = await run_pipeline([step("slow", "sleep 0.4", timeout_ms=100)], execute_command)

    only = result.steps[0]
    assert only.status == StepStatus.TIMED_OUT
    assert only.reason == StepReason.COMMAND_TIMEOUT
    assert result.exit_code == 1

@pytest.mark.asyncio
async def test_fail_fast_stops_after_first_hard_failure():
    executor = CommandTableExecutor({"build": [FAIL], "test": [PASS]})

    result = await run_pipeline(
        [step("build"), step("test")], executor, continue_on_error=False
    )

    assert [r.id for r in result.steps] == ["build"]
    assert executor.commands == ["build"]
    assert result.exit_code == 1

@pytest.mark.asyncio
async def test_fail_fast_ignores_optional_failures():
    executor = CommandTableExecutor({"audit": [FAIL], "test": [PASS]})

    result = await run_pipeline(
        [step("audit", optional=True), step("test")], executor, continue_on_error=False
    )

    assert [r.status for r in result.steps] == [StepStatus.SKIPPED, StepStatus.PASSED]
    assert result.exit_code == 0

@pytest.mark.asyncio
async def test_continue_on_error_runs_every_step():
    executor = CommandTableExecutor({"build": [FAIL], "test": [PASS], "lint": [TIMEOUT]})

    result = await run_pipeline([step("build"), step("test"), step("lint")], executor)

    assert [r.id for r in result.steps] == ["build", "test", "lint"]
    assert result.summary == PipelineSummary(
        total=3, passed=1, failed=1, skipped=0, timed_out=1, duration_ms=result.summary.duration_ms
    )
    assert result.exit_code == 1

@pytest.mark.asyncio
async def test_results_follow_definition_order():
    executor = CommandTableExecutor({"c": [PASS], "a": [PASS], "b": [PASS]})

    result = await run_pipeline([step("c"), step("a"), step("b")], executor)

    assert [r.id for r in result.steps] == ["c", "a", "b"]
    assert executor.commands == ["c", "a", "b"]

@pytest.mark.asyncio
async def test_empty_pipeline_passes():
    result = await run_pipeline([], ScriptedExecutor(PASS))

    assert result.steps == []
    assert result.summary.total == 0
    assert result.exit_code == 0

@pytest.mark.asyncio
async def test_duplicate_ids_are_rejected():
    with pytest.raises(ValueError, match="lint"):
        await run_pipeline([step("lint"), step("lint", "eslint .")], ScriptedExecutor(PASS))

@pytest.mark.asyncio
async def test_reporter_hooks_fire_in_order():
    reporter = RecordingReporter()
    executor = CommandTableExecutor({"build": [PASS], "test": [FAIL]})

    await run_pipeline([step("build"), step("test")], executor, reporters=[reporter])

    assert reporter.events == [
        ("pipeline_start", ["build", "test"]),
        ("step_start", "build", 0),
        ("step_complete", "build", 0),
        ("step_start", "test", 1),
        ("step_complete", "test", 1),
        ("pipeline_complete", 1),
    ]

@pytest.mark.asyncio
async def test_async_reporter_hooks_are_awaited():
    reporter = AsyncReporter()

    await run_pipeline([step("build")], ScriptedExecutor(PASS), reporters=[reporter])

    assert reporter.completed == ["build", "done"]

@pytest.mark.asyncio
async def test_run_timestamps_come_from_clock():
    clock = FakeClock(start=0)

    result = await run_pipeline([step("build")], ScriptedExecutor(PASS), now=clock)

    assert result.started_at == 10
    assert result.finished_at == 40
    assert result.summary.duration_ms == 30
    assert result.steps[0].started_at == 20
    assert result.steps[0].finished_at == 30

@pytest.mark.asyncio
async def test_run_env_and_cwd_reach_executor():
    executor = ScriptedExecutor(PASS)

    await run_pipeline(
        [step("build", env={"STEP": "1"})],
        executor,
        cwd="/repo",
        env={"RUN": "1"},
    )

    assert executor.requests[0].cwd == "/repo"
    assert executor.requests[0].env == {"RUN": "1", "STEP": "1"}

def test_exit_code_must_match_summary():
    summary = PipelineSummary(total=1, passed=0, failed=1, skipped=0, timed_out=0, duration_ms=5)

    with pytest.raises(ValueError):
        PipelineRunResult(steps=[], summary=summary, exit_code=0, started_at=0, finished_at=5)
