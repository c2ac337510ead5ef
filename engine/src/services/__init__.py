from engine.src.services.executor import (
    CommandExecutor,
    execute_command,
    merge_environment,
)
from engine.src.services.reporting import PipelineReporter, emit
from engine.src.services.retry import run_step, normalize_retry_policy, now_ms, sleep_ms
from engine.src.services.runner import run_pipeline

__all__ = [
    "CommandExecutor",
    "execute_command",
    "merge_environment",
    "PipelineReporter",
    "emit",
    "run_step",
    "normalize_retry_policy",
    "now_ms",
    "sleep_ms",
    "run_pipeline",
]
