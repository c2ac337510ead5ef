from cli.src.services.config_loader import (
    PipelineConfigError,
    find_config_file,
    load_pipeline_config,
    parse_pipeline_config,
    parse_pipeline_dict,
)
from cli.src.services.run_mapping import (
    map_config_to_run,
    select_target_steps,
)
from cli.src.services.pipeline import CliPipeline, run_cli_pipeline

__all__ = [
    "PipelineConfigError",
    "find_config_file",
    "load_pipeline_config",
    "parse_pipeline_config",
    "parse_pipeline_dict",
    "map_config_to_run",
    "select_target_steps",
    "CliPipeline",
    "run_cli_pipeline",
]
