"""
Pipeline runner - executes steps in order and aggregates the run result.
"""

import logging
from typing import Iterable, List, Mapping, Optional, Sequence

from engine.src.models.run import PipelineRunResult, PipelineSummary
from engine.src.models.step import StepDefinition, StepResult
from engine.src.parsers.registry import StepParserRegistry
from engine.src.services.executor import CommandExecutor
from engine.src.services.reporting import emit
from engine.src.services.retry import Clock, Sleep, now_ms, run_step, sleep_ms

logger = logging.getLogger(__name__)

def ensure_unique_ids(steps: Sequence[StepDefinition]):
    seen = set()
    for step in steps:
        if step.id in seen:
            raise ValueError(f"Duplicate step id in pipeline: {step.id}")
        seen.add(step.id)

async def run_pipeline(
    steps: Sequence[StepDefinition],
    executor: CommandExecutor,
    reporters: Iterable[object] = (),
    parser_resolver: Optional[StepParserRegistry] = None,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    continue_on_error: bool = True,
    now: Clock = now_ms,
    sleep: Sleep = sleep_ms,
) -> PipelineRunResult:
    """
    Execute a pipeline run.

    Steps run strictly one after another. With ``continue_on_error``
    off, the run stops after the first failed or timed out step and the
    remaining steps are left out of the result.
    """
    steps = list(steps)
    reporters = list(reporters)
    ensure_unique_ids(steps)

    started_at = now()
    results: List[StepResult] = []

    logger.info(f"Starting pipeline with {len(steps)} steps")
    await emit(reporters, "on_pipeline_start", steps)

    for i, step in enumerate(steps):
        await emit(reporters, "on_step_start", step, i)

        result = await run_step(
            step,
            executor,
            cwd=cwd,
            env=env,
            parser_resolver=parser_resolver,
            sleep=sleep,
            now=now,
        )
        results.append(result)
        logger.info(f"Step {i} ({step.id}) finished with status: {result.status.value}")

        await emit(reporters, "on_step_complete", result, i)

        if result.is_hard_failure and not continue_on_error:
            logger.info(f"Stopping after step {i} ({step.id}), fail-fast is enabled")
            break

    finished_at = now()
    summary = PipelineSummary.from_results(results, finished_at - started_at)
    run_result = PipelineRunResult(
        steps=results,
        summary=summary,
        exit_code=summary.exit_code,
        started_at=started_at,
        finished_at=finished_at,
    )

    logger.info(f"Pipeline finished with exit code {run_result.exit_code}")
    await emit(reporters, "on_pipeline_complete", run_result)
    return run_result
