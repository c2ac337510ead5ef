from cli.src.models.config import (
    OutputFormat,
    RetryConfig,
    StepCondition,
    ConfigStep,
    TargetConfig,
    OutputConfig,
    WatchConfig,
    PipelineConfig,
    LoadedConfig,
)
from cli.src.models.run import ExcludedStep, MappedRun, CliRunOptions

__all__ = [
    "OutputFormat",
    "RetryConfig",
    "StepCondition",
    "ConfigStep",
    "TargetConfig",
    "OutputConfig",
    "WatchConfig",
    "PipelineConfig",
    "LoadedConfig",
    "ExcludedStep",
    "MappedRun",
    "CliRunOptions",
]
