"""
Map a loaded pipeline config onto engine run options.
"""

import os
from typing import Dict, List, Mapping, Optional

from engine.src.models.step import RetryPolicy, StepDefinition
from cli.src.models.config import ConfigStep, PipelineConfig, TargetConfig
from cli.src.models.run import ExcludedStep, MappedRun
from cli.src.services.config_loader import PipelineConfigError

def select_target_steps(config: PipelineConfig, target_id: Optional[str]) -> List[ConfigStep]:
    """Steps for ``target_id`` in declared order, or all steps without a target."""
    if not target_id:
        return list(config.steps)

    target = find_target(config, target_id)
    steps = config.steps
    if target.include_step_ids is not None:
        include = set(target.include_step_ids)
        steps = [step for step in steps if step.id in include]
    if target.exclude_step_ids:
        exclude = set(target.exclude_step_ids)
        steps = [step for step in steps if step.id not in exclude]
    return list(steps)

def find_target(config: PipelineConfig, target_id: str) -> TargetConfig:
    for target in config.targets or []:
        if target.id == target_id:
            return target
    known = ", ".join(t.id for t in config.targets or []) or "none configured"
    raise PipelineConfigError(f"Unknown target '{target_id}' (available: {known})")

def map_config_to_run(
    config: PipelineConfig,
    cwd: str,
    fail_fast: bool = False,
    target: Optional[str] = None,
    base_env: Optional[Mapping[str, str]] = None,
) -> MappedRun:
    """
    Build engine run options from config.

    Disabled steps and steps whose ``when.env`` conditions are not met
    are reported as excluded instead of executed. Fail-fast always wins
    over the configured ``continue_on_error``.
    """
    run_cwd = os.path.normpath(os.path.join(cwd, config.cwd)) if config.cwd else cwd
    env = dict(os.environ if base_env is None else base_env)
    env.update(config.env)

    steps: List[StepDefinition] = []
    excluded: List[ExcludedStep] = []

    for step in select_target_steps(config, target):
        exclusion = get_exclusion(step, env)
        if exclusion is not None:
            excluded.append(exclusion)
            continue
        steps.append(map_step(step, run_cwd))

    if fail_fast:
        continue_on_error = False
    elif config.continue_on_error is not None:
        continue_on_error = config.continue_on_error
    else:
        continue_on_error = True

    return MappedRun(
        steps=steps,
        excluded_steps=excluded,
        cwd=run_cwd,
        env=env,
        continue_on_error=continue_on_error,
    )

def map_step(step: ConfigStep, run_cwd: str) -> StepDefinition:
    return StepDefinition(
        id=step.id,
        name=step.name,
        command=step.command,
        cwd=os.path.normpath(os.path.join(run_cwd, step.cwd)) if step.cwd else run_cwd,
        env=step.env,
        optional=step.optional,
        timeout_ms=step.timeout_ms,
        retry=RetryPolicy(**step.retry.model_dump()) if step.retry else None,
    )

def get_exclusion(step: ConfigStep, env: Dict[str, str]) -> Optional[ExcludedStep]:
    if not step.enabled:
        return ExcludedStep(id=step.id, name=step.name, reason="disabled")

    if step.when is None or not step.when.env:
        return None

    missing = {
        key: expected
        for key, expected in step.when.env.items()
        if env.get(key) != expected
    }
    if missing:
        return ExcludedStep(id=step.id, name=step.name, reason="env_mismatch", required_env=missing)

    return None
