"""Analytics engine configuration.

The engine is a pure function of (data, config). Configuration is an
explicit, immutable value handed to each entry point; when a caller omits it
the cached defaults from ``defaults.yaml`` are used.
"""

from dataclasses import dataclass, field, fields
from functools import lru_cache
from typing import Any

import structlog

from futtrackr.config.settings import get_settings

logger = structlog.get_logger(__name__)

REQUIRED_CPS_WEIGHTS = ("goals", "xg", "rating", "conceded", "cards", "result")


@dataclass(frozen=True)
class CpsWeights:
    """Component weights for the Composite Performance Score.

    These sum to 1.30, not 1.0. Historical scores depend on it.
    """
    goals: float = 0.30
    xg: float = 0.25
    rating: float = 0.20
    conceded: float = 0.15
    cards: float = 0.10
    result: float = 0.30


@dataclass(frozen=True)
class CpsConfig:
    """Composite Performance Score configuration."""
    weights: CpsWeights = field(default_factory=CpsWeights)
    min_score: float = 1
    max_score: float = 100


@dataclass(frozen=True)
class ChunkConfig:
    """Run segmentation: ``window_count`` windows of ``window_size`` games."""
    window_size: int = 5
    window_count: int = 3


@dataclass(frozen=True)
class InsightThresholds:
    """Gates, sample sizes and spreads used by the insight rules."""

    # Sample gates
    min_games_basic: int = 5
    min_games_extended: int = 10

    # Recent form
    recent_window: int = 10
    recent_min_sample: int = 5
    recent_drift_pct: float = 15

    # Players
    player_min_appearances: int = 5
    veteran_min_appearances: int = 10
    veteran_max_rating: float = 6.5
    scorer_min_goals_per_game: float = 1.0

    # Match context
    rage_quit_min_rate: float = 20
    disruption_min_rate: float = 15
    penalty_min_games: int = 5

    # Paired bucket comparisons
    bucket_min_games: int = 3
    time_of_day_spread: float = 20
    server_quality_spread: float = 20
    stress_spread: float = 20
    duration_spread: float = 15
    possession_spread: float = 15
    cross_play_spread: float = 15
    short_game_minutes: float = 15

    # Expected goals
    xg_min_matches: int = 10
    xg_margin_per_game: float = 0.5

    # Current run
    active_run_min_games: int = 5
    active_run_delta_pct: float = 15

    # Latest run against the one before it
    run_change_pct: float = 10
    run_change_min_games: int = 5

    # Tags and runs
    comeback_min_count: int = 3
    bottled_min_count: int = 3
    consistency_min_runs: int = 3


@dataclass(frozen=True)
class EngineConfig:
    """Complete analytics engine configuration."""
    run_match_cap: int = 15
    cps: CpsConfig = field(default_factory=CpsConfig)
    chunks: ChunkConfig = field(default_factory=ChunkConfig)
    insights: InsightThresholds = field(default_factory=InsightThresholds)

    @classmethod
    def from_mapping(cls, data: dict[str, Any] | None) -> "EngineConfig":
        """
        Build a config from the ``engine`` section of defaults.yaml.

        Missing keys keep their built-in defaults. Unknown keys are ignored.

        Raises:
            ValueError: If the CPS weights section is missing a component.
        """
        data = data or {}
        cps_data = data.get("cps", {}) or {}
        weights_data = cps_data.get("weights")
        if weights_data is not None:
            for w in REQUIRED_CPS_WEIGHTS:
                if w not in weights_data:
                    raise ValueError(f"Missing weight: {w}")

        return cls(
            run_match_cap=int(data.get("run_match_cap", cls.run_match_cap)),
            cps=CpsConfig(
                weights=_build(CpsWeights, weights_data),
                min_score=cps_data.get("min_score", CpsConfig.min_score),
                max_score=cps_data.get("max_score", CpsConfig.max_score),
            ),
            chunks=_build(ChunkConfig, data.get("chunks")),
            insights=_build(InsightThresholds, data.get("insights")),
        )


def _build(config_cls: type, values: dict[str, Any] | None):
    """Instantiate a flat config dataclass from a partial mapping."""
    values = values or {}
    known = {f.name for f in fields(config_cls)}
    unknown = sorted(set(values) - known)
    if unknown:
        logger.warning("unknown_config_keys", section=config_cls.__name__, keys=unknown)
    return config_cls(**{k: v for k, v in values.items() if k in known})


def load_engine_config(config: dict[str, Any] | None = None) -> EngineConfig:
    """
    Load engine configuration.

    Args:
        config: Optional full config mapping. If not provided, loads from
               defaults.yaml via settings.
    """
    if config is None:
        config = get_settings().load_engine_yaml()
    if not config:
        logger.info("engine_config_fallback")
        return EngineConfig()
    return EngineConfig.from_mapping(config.get("engine", {}))


@lru_cache
def get_engine_config() -> EngineConfig:
    """Get cached engine configuration."""
    return load_engine_config()
