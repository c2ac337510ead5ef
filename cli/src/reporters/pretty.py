"""
Compact console reporter with failure-focused output.
"""

import sys
from typing import List, Optional, TextIO

from rich.console import Console

from engine.src.models.run import PipelineRunResult
from engine.src.models.step import StepDefinition, StepResult, StepStatus
from engine.src.services.reporting import PipelineReporter
from cli.src.models.run import ExcludedStep

class PrettyReporter(PipelineReporter):
    """
    Prints one line per step. Output of failed and skipped steps is
    always shown; output of passed steps only when ``verbose``.

    Colour follows the terminal unless ``color`` forces it on or off.
    """

    def __init__(self, verbose: bool = False, stream: Optional[TextIO] = None, color: Optional[bool] = None):
        self.verbose = verbose
        self.stream = stream or sys.stdout
        # Step output is printed verbatim.
        self.console = Console(
            file=self.stream,
            force_terminal=color,
            color_system=None if color is False else ("standard" if color else "auto"),
            markup=False,
            emoji=False,
            highlight=False,
            soft_wrap=True,
            legacy_windows=False,
        )

    def on_pipeline_start(self, steps: List[StepDefinition]):
        self._write(f"ci-runner: executing {len(steps)} steps\n", "blue")

    def on_step_start(self, step: StepDefinition, index: int):
        self._write(f"-> {step.name}\n", "blue")

    def on_step_complete(self, result: StepResult, index: int):
        duration = f"{result.duration_ms}ms"
        reason = result.reason.value if result.reason else "no reason"

        if result.status == StepStatus.PASSED:
            metric = ""
            if result.metrics and isinstance(result.metrics.value, (int, float)):
                metric = f" ({result.metrics.value} {result.metrics.label})"
            retried = f" after {result.attempts} attempts" if result.retried else ""
            self._write(f"✓ {result.name} {duration}{retried}{metric}\n", "green")
            if self.verbose:
                self._print_output(result)
            return

        if result.status == StepStatus.SKIPPED:
            self._write(f"⚠ {result.name} skipped ({reason}, {duration})\n", "yellow")
            self._print_output(result)
            return

        self._write(f"✗ {result.name} {result.status.value} ({reason}, {duration})\n", "red")
        self._print_output(result)

    def on_pipeline_complete(self, result: PipelineRunResult):
        summary = result.summary
        self._write("\n")
        self._write(
            f"Summary: total={summary.total} passed={summary.passed} "
            f"skipped={summary.skipped} failed={summary.failed} "
            f"timedOut={summary.timed_out} duration={summary.duration_ms}ms\n"
        )
        if result.exit_code == 0:
            self._write("Result: PASS\n", "green")
        else:
            self._write("Result: FAIL\n", "red")

    def print_excluded(self, excluded: List[ExcludedStep]):
        for step in excluded:
            detail = step.reason
            if step.required_env:
                detail += ": requires " + ", ".join(f"{k}={v}" for k, v in step.required_env.items())
            self._write(f"- {step.name} excluded ({detail})\n", "yellow")

    def _print_output(self, result: StepResult):
        stdout = result.output.stdout.strip()
        stderr = result.output.stderr.strip()

        if stdout:
            self._write("  stdout:\n", "yellow")
            self._write(_indent(stdout) + "\n")
        if stderr:
            self._write("  stderr:\n", "yellow")
            self._write(_indent(stderr) + "\n")

    def _write(self, text: str, color: Optional[str] = None):
        self.console.print(text, style=color, end="", crop=False)

def _indent(text: str) -> str:
    return "\n".join(f"    {line}" for line in text.split("\n"))
