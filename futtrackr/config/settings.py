"""Process settings for the analytics service.

Everything that tunes the engine itself lives in ``defaults.yaml``; these are
the knobs that belong to the running process.
"""

from functools import lru_cache
from pathlib import Path
from typing import Any, Literal

import yaml
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_ENGINE_YAML = Path(__file__).parent / "defaults.yaml"


class Settings(BaseSettings):
    """Settings read from ``FUTTRACKR_*`` environment variables or ``.env``."""

    model_config = SettingsConfigDict(
        env_prefix="FUTTRACKR_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    debug: bool = Field(default=False, description="Enable FastAPI debug mode")
    log_level: str = Field(default="INFO", description="Logging level")
    log_format: Literal["json", "console"] = Field(
        default="json",
        description="structlog renderer: JSON lines or human-readable console",
    )

    engine_config_path: Path = Field(
        default=DEFAULT_ENGINE_YAML,
        description="YAML file holding the engine: section",
    )

    def load_engine_yaml(self) -> dict[str, Any]:
        """Read the engine YAML; a missing or empty file is an empty mapping."""
        if not self.engine_config_path.exists():
            return {}
        with open(self.engine_config_path) as f:
            return yaml.safe_load(f) or {}


@lru_cache
def get_settings() -> Settings:
    """Get cached process settings."""
    return Settings()
