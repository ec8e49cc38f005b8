"""Configuration for FUTTrackr."""

from futtrackr.config.engine import (
    ChunkConfig,
    CpsConfig,
    CpsWeights,
    EngineConfig,
    InsightThresholds,
    get_engine_config,
    load_engine_config,
)
from futtrackr.config.settings import Settings, get_settings

__all__ = [
    "Settings",
    "get_settings",
    "EngineConfig",
    "CpsConfig",
    "CpsWeights",
    "ChunkConfig",
    "InsightThresholds",
    "get_engine_config",
    "load_engine_config",
]
