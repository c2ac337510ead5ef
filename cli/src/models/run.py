from pydantic import BaseModel
from typing import Optional, List, Dict, Literal

from engine.src.models.step import StepDefinition
from cli.src.models.config import OutputFormat

class ExcludedStep(BaseModel):
    id: str
    name: str
    reason: Literal["disabled", "env_mismatch"]
    required_env: Optional[Dict[str, str]] = None

class MappedRun(BaseModel):
    steps: List[StepDefinition]
    excluded_steps: List[ExcludedStep] = []
    cwd: str
    env: Dict[str, str]
    continue_on_error: bool = True

class CliRunOptions(BaseModel):
    cwd: str
    config_path: Optional[str] = None
    target: Optional[str] = None
    format: Optional[OutputFormat] = None
    verbose: bool = False
    fail_fast: bool = False
    watch: bool = False
