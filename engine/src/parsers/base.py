"""
Base class for tool-specific output parsers.
"""

import re
from typing import Optional

from engine.src.models.step import ExecutionOutput, ParsedMetric, StepDefinition

_ANSI_ESCAPE = re.compile(r"\x1b\[[0-9;]*m")

def strip_ansi(text: str) -> str:
    return _ANSI_ESCAPE.sub("", text)

def combined_output(output: ExecutionOutput) -> str:
    """stdout and stderr joined, with colour codes removed."""
    return strip_ansi(f"{output.stdout}\n{output.stderr}")

def step_contains_keyword(step: StepDefinition, keyword: str) -> bool:
    source = f"{step.id} {step.name} {step.command}".lower()
    return keyword.lower() in source

class StepOutputParser:
    """
    Extracts a metric from one tool's output format.

    Subclasses set ``id`` and override ``matches`` and ``parse``.
    ``parse`` returns None when the output holds no metric.
    """

    id: str = "base"

    def matches(self, step: StepDefinition) -> bool:
        raise NotImplementedError

    def parse(self, output: ExecutionOutput) -> Optional[ParsedMetric]:
        raise NotImplementedError

class KeywordCountParser(StepOutputParser):
    """Matches steps by keyword and reads an integer count with a regex."""

    keywords: tuple = ()
    pattern: re.Pattern = None
    group: int = 1
    label: str = "tests_passed"

    def matches(self, step: StepDefinition) -> bool:
        return any(step_contains_keyword(step, keyword) for keyword in self.keywords)

    def parse(self, output: ExecutionOutput) -> Optional[ParsedMetric]:
        match = self.pattern.search(combined_output(output))
        if not match:
            return None
        return ParsedMetric(label=self.label, value=int(match.group(self.group)))
