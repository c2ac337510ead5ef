"""
Lifecycle hooks for pipeline reporters.
"""

import inspect
from typing import Iterable, List

from engine.src.models.run import PipelineRunResult
from engine.src.models.step import StepDefinition, StepResult

class PipelineReporter:
    """
    Base reporter with no-op hooks.

    Subclasses override only the hooks they need; any hook may be a
    coroutine function. Duck-typed reporters work too, missing hooks
    are skipped.
    """

    def on_pipeline_start(self, steps: List[StepDefinition]):
        pass

    def on_step_start(self, step: StepDefinition, index: int):
        pass

    def on_step_complete(self, result: StepResult, index: int):
        pass

    def on_pipeline_complete(self, result: PipelineRunResult):
        pass

async def emit(reporters: Iterable[object], hook: str, *args):
    """Call ``hook`` on each reporter in order, awaiting async hooks."""
    for reporter in reporters:
        callback = getattr(reporter, hook, None)
        if callback is None:
            continue
        value = callback(*args)
        if inspect.isawaitable(value):
            await value
