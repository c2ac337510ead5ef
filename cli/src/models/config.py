"""
Pipeline configuration file models.

Keys may be written in snake_case or camelCase.
"""

from pydantic import BaseModel, Field
from pydantic.alias_generators import to_camel
from typing import Optional, List, Dict
from enum import Enum

class OutputFormat(str, Enum):
    PRETTY = "pretty"
    JSON = "json"

class ConfigModel(BaseModel):
    class Config:
        alias_generator = to_camel
        populate_by_name = True

class RetryConfig(ConfigModel):
    max_attempts: int = Field(ge=1)
    delay_ms: int = Field(0, ge=0)
    retry_on_timeout: bool = False

class StepCondition(ConfigModel):
    env: Dict[str, str] = {}

class ConfigStep(ConfigModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    command: str = Field(min_length=1)
    enabled: bool = True
    cwd: Optional[str] = None
    env: Dict[str, str] = {}
    optional: bool = False
    timeout_ms: Optional[int] = Field(None, gt=0)
    retry: Optional[RetryConfig] = None
    when: Optional[StepCondition] = None

class TargetConfig(ConfigModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    description: Optional[str] = None
    include_step_ids: Optional[List[str]] = None
    exclude_step_ids: Optional[List[str]] = None

class OutputConfig(ConfigModel):
    format: Optional[OutputFormat] = None
    verbose: Optional[bool] = None

class WatchConfig(ConfigModel):
    exclude: List[str] = []

class PipelineConfig(ConfigModel):
    steps: List[ConfigStep] = Field(min_length=1)
    targets: Optional[List[TargetConfig]] = None
    continue_on_error: Optional[bool] = None
    env: Dict[str, str] = {}
    cwd: Optional[str] = None
    output: OutputConfig = OutputConfig()
    watch: WatchConfig = WatchConfig()

class LoadedConfig(BaseModel):
    config: PipelineConfig
    path: str
