from engine.src.parsers.base import (
    StepOutputParser,
    KeywordCountParser,
    strip_ansi,
    step_contains_keyword,
)
from engine.src.parsers.registry import StepParserRegistry
from engine.src.parsers.defaults import create_default_step_parsers

__all__ = [
    "StepOutputParser",
    "KeywordCountParser",
    "strip_ansi",
    "step_contains_keyword",
    "StepParserRegistry",
    "create_default_step_parsers",
]
