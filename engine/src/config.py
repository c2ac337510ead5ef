from pydantic_settings import BaseSettings
from functools import lru_cache
from typing import List

class Settings(BaseSettings):
    # Logging
    log_level: str = "WARNING"
    log_format: str = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"

    # Step execution
    kill_grace_ms: int = 2000  # SIGKILL follows SIGTERM after this long

    # Watch mode
    debounce_ms: int = 250
    watcher_health_interval_ms: int = 1000

    # Config discovery, in priority order
    config_file_names: List[str] = ["ci.config.yml", "ci.config.yaml", "ci.config.json"]

    class Config:
        env_file = ".env"
        env_prefix = "CI_RUNNER_"
        extra = "ignore"

@lru_cache()
def get_settings() -> Settings:
    return Settings()
