"""
Ordered parser registry used to attach metrics to step results.
"""

import logging
from typing import Iterable, List, Optional

from engine.src.models.step import ExecutionOutput, ParsedMetric, StepDefinition
from engine.src.parsers.base import StepOutputParser

logger = logging.getLogger(__name__)

class StepParserRegistry:
    """
    Tries parsers in registration order.

    The first non-None result from a matching parser wins; a matching
    parser that finds nothing falls through to the next one.
    """

    def __init__(self, parsers: Iterable[StepOutputParser] = ()):
        self._parsers: List[StepOutputParser] = list(parsers)

    def register(self, parser: StepOutputParser):
        self._parsers.append(parser)

    @property
    def parsers(self) -> List[StepOutputParser]:
        return list(self._parsers)

    def parse(self, step: StepDefinition, output: ExecutionOutput) -> Optional[ParsedMetric]:
        for parser in self._parsers:
            try:
                if not parser.matches(step):
                    continue
                metric = parser.parse(output)
            except Exception as e:
                logger.debug(f"Parser {parser.id} failed on step {step.id}: {e}")
                continue

            if metric is not None:
                return metric

        return None
