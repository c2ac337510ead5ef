"""
Pipeline config file loader and validator.
"""

import os
import yaml
from typing import List, Dict, Any, Optional
from pydantic import ValidationError

from engine.src.config import get_settings
from cli.src.models.config import LoadedConfig, PipelineConfig

class PipelineConfigError(Exception):
    """Raised when pipeline configuration is invalid."""
    pass

def find_config_file(cwd: str, config_path: Optional[str] = None) -> Optional[str]:
    """
    Resolve the config file to load.
    An explicit path is resolved against ``cwd`` and returned as is.
    """
    if config_path:
        return os.path.abspath(os.path.join(cwd, config_path))

    for file_name in get_settings().config_file_names:
        candidate = os.path.join(cwd, file_name)
        if os.path.isfile(candidate):
            return candidate

    return None

def load_pipeline_config(cwd: str, config_path: Optional[str] = None) -> LoadedConfig:
    """Find, read and validate the pipeline config."""
    path = find_config_file(cwd, config_path)
    if path is None:
        names = " or ".join(get_settings().config_file_names)
        raise PipelineConfigError(f"No config file found. Expected {names}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            content = f.read()
    except OSError as e:
        raise PipelineConfigError(f"Cannot read config file {path}: {e}")

    return LoadedConfig(config=parse_pipeline_config(content), path=path)

def parse_pipeline_config(content: str) -> PipelineConfig:
    """Parse pipeline configuration from YAML (or JSON) text."""
    try:
        data = yaml.safe_load(content)
    except yaml.YAMLError as e:
        raise PipelineConfigError(f"Invalid YAML: {e}")

    return validate_config(data)

def parse_pipeline_dict(data: Dict[str, Any]) -> PipelineConfig:
    """Validate pipeline configuration from dict."""
    return validate_config(data)

def validate_config(data: Optional[Dict[str, Any]]) -> PipelineConfig:
    """Validate pipeline configuration structure."""
    if not data:
        raise PipelineConfigError("Empty pipeline configuration")

    if not isinstance(data, dict):
        raise PipelineConfigError("Pipeline configuration must be a mapping")

    if "steps" not in data:
        raise PipelineConfigError("Pipeline must have 'steps' defined")

    try:
        config = PipelineConfig.model_validate(data)
    except ValidationError as e:
        raise PipelineConfigError(format_validation_error(e)) from e

    _check_unique([step.id for step in config.steps], "steps")
    if config.targets:
        _check_unique([target.id for target in config.targets], "targets")
        _check_target_references(config)

    return config

def format_validation_error(error: ValidationError) -> str:
    """One "path: message" line per problem, e.g. ``steps[0].id: ...``."""
    lines = []
    for detail in error.errors():
        path = ""
        for part in detail["loc"]:
            path += f"[{part}]" if isinstance(part, int) else (f".{part}" if path else str(part))
        lines.append(f"{path or 'config'}: {detail['msg']}")
    return "Invalid pipeline configuration:\n  " + "\n  ".join(lines)

def _check_unique(ids: List[str], path: str):
    seen = set()
    for item_id in ids:
        if item_id in seen:
            raise PipelineConfigError(f"{path} must use unique ids (duplicate: {item_id})")
        seen.add(item_id)

def _check_target_references(config: PipelineConfig):
    known = {step.id for step in config.steps}

    for i, target in enumerate(config.targets):
        for field in ("include_step_ids", "exclude_step_ids"):
            for j, step_id in enumerate(getattr(target, field) or []):
                if step_id not in known:
                    raise PipelineConfigError(
                        f"targets[{i}].{field}[{j}] references unknown step id: {step_id}"
                    )
