"""
Retry/timeout controller - runs the attempt loop for a single step.
"""

import asyncio
import logging
import os
import time
from typing import Awaitable, Callable, Mapping, Optional, Tuple

from engine.src.models.step import (
    ExecutionOutcome,
    ExecutionRequest,
    RetryPolicy,
    StepDefinition,
    StepReason,
    StepResult,
    StepStatus,
)
from engine.src.parsers.registry import StepParserRegistry
from engine.src.services.executor import CommandExecutor, merge_environment

logger = logging.getLogger(__name__)

Sleep = Callable[[int], Awaitable[None]]
Clock = Callable[[], int]

def now_ms() -> int:
    """Wall clock in Unix milliseconds."""
    return int(time.time() * 1000)

async def sleep_ms(duration_ms: int):
    await asyncio.sleep(duration_ms / 1000)

def normalize_retry_policy(step: StepDefinition) -> RetryPolicy:
    policy = step.retry or RetryPolicy()
    return RetryPolicy(
        max_attempts=max(1, policy.max_attempts),
        delay_ms=max(0, policy.delay_ms),
        retry_on_timeout=policy.retry_on_timeout,
    )

def can_retry(policy: RetryPolicy, attempts: int, outcome: ExecutionOutcome) -> bool:
    """Timeouts only retry when the policy opts in."""
    return (
        attempts < policy.max_attempts
        and (not outcome.timed_out or policy.retry_on_timeout)
        and policy.max_attempts > 1
    )

def classify_failure(step: StepDefinition, outcome: ExecutionOutcome) -> Tuple[StepStatus, StepReason]:
    # Optional steps are skipped even when they time out.
    if step.optional:
        return StepStatus.SKIPPED, StepReason.OPTIONAL_STEP_FAILED
    if outcome.timed_out:
        return StepStatus.TIMED_OUT, StepReason.COMMAND_TIMEOUT
    return StepStatus.FAILED, StepReason.COMMAND_FAILED

def build_request(
    step: StepDefinition,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
) -> ExecutionRequest:
    return ExecutionRequest(
        command=step.command,
        cwd=step.cwd or cwd or os.getcwd(),
        env=merge_environment(env or {}, step.env),
        timeout_ms=step.timeout_ms,
    )

async def run_step(
    step: StepDefinition,
    executor: CommandExecutor,
    cwd: Optional[str] = None,
    env: Optional[Mapping[str, str]] = None,
    parser_resolver: Optional[StepParserRegistry] = None,
    sleep: Sleep = sleep_ms,
    now: Clock = now_ms,
) -> StepResult:
    """
    Execute a step under its retry policy and return the final result.

    Command failures never raise; they end up in the result's status
    and reason.
    """
    started_at = now()
    policy = normalize_retry_policy(step)
    request = build_request(step, cwd, env)

    attempts = 0
    last_outcome: Optional[ExecutionOutcome] = None

    while attempts < policy.max_attempts:
        attempts += 1
        outcome = await executor(request)
        last_outcome = outcome

        if outcome.successful:
            return _build_result(
                step, StepStatus.PASSED, None, attempts, started_at, outcome, parser_resolver, now
            )

        if can_retry(policy, attempts, outcome):
            logger.info(
                f"Step {step.id} attempt {attempts}/{policy.max_attempts} failed, "
                f"retrying in {policy.delay_ms}ms"
            )
            if policy.delay_ms > 0:
                await sleep(policy.delay_ms)
            continue

        status, reason = classify_failure(step, outcome)
        return _build_result(
            step, status, reason, attempts, started_at, outcome, parser_resolver, now
        )

    return _build_result(
        step,
        StepStatus.FAILED,
        StepReason.COMMAND_FAILED,
        attempts,
        started_at,
        last_outcome or ExecutionOutcome(),
        parser_resolver,
        now,
    )

def _build_result(
    step: StepDefinition,
    status: StepStatus,
    reason: Optional[StepReason],
    attempts: int,
    started_at: int,
    outcome: ExecutionOutcome,
    parser_resolver: Optional[StepParserRegistry],
    now: Clock,
) -> StepResult:
    finished_at = now()
    output = outcome.to_output()
    metrics = parser_resolver.parse(step, output) if parser_resolver else None

    return StepResult(
        id=step.id,
        name=step.name,
        status=status,
        reason=reason,
        attempts=attempts,
        retried=attempts > 1,
        started_at=started_at,
        finished_at=finished_at,
        duration_ms=finished_at - started_at,
        output=output,
        metrics=metrics,
    )
