"""
Default parsers for common test runner and workspace task output.
"""

import re
from typing import List, Optional

from engine.src.models.step import ExecutionOutput, ParsedMetric
from engine.src.parsers.base import KeywordCountParser, StepOutputParser, combined_output

class VitestSummaryParser(KeywordCountParser):
    id = "vitest-summary-parser"
    keywords = ("vitest",)
    pattern = re.compile(r"\bTests?\s+(\d+)\s+passed\b", re.IGNORECASE)

class PlaywrightSummaryParser(KeywordCountParser):
    id = "playwright-summary-parser"
    keywords = ("playwright", "e2e")
    pattern = re.compile(r"^\s*(\d+)\s+passed(?:\s|\()", re.IGNORECASE | re.MULTILINE)

class PytestSummaryParser(KeywordCountParser):
    # "==== 12 passed, 1 skipped in 0.31s ===="
    id = "pytest-summary-parser"
    keywords = ("pytest",)
    pattern = re.compile(r"\b(\d+)\s+passed\b(?=[^\n]*\bin\s+[\d.]+s)", re.IGNORECASE)

class WorkspaceTaskParser(KeywordCountParser):
    # turbo: " Tasks:    3 successful, 3 total"
    # nx:    "Successfully ran target build for 4 projects"
    id = "workspace-task-parser"
    keywords = ("turbo", "nx")
    pattern = re.compile(
        r"Tasks:\s+(\d+)\s+successful|Successfully ran target \S+ for (\d+) projects?",
        re.IGNORECASE,
    )
    label = "tasks_successful"

    def parse(self, output: ExecutionOutput) -> Optional[ParsedMetric]:
        match = self.pattern.search(combined_output(output))
        if not match:
            return None
        return ParsedMetric(label=self.label, value=int(match.group(1) or match.group(2)))

class GenericTestsParser(KeywordCountParser):
    id = "generic-tests-parser"
    keywords = ("test",)
    pattern = re.compile(r"(^|\s)(\d+)\s+passed(\s|$)", re.IGNORECASE)
    group = 2

def create_default_step_parsers() -> List[StepOutputParser]:
    """Default parsers in priority order."""
    return [
        VitestSummaryParser(),
        PlaywrightSummaryParser(),
        PytestSummaryParser(),
        WorkspaceTaskParser(),
        GenericTestsParser(),
    ]
