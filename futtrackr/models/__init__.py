"""Domain models for FUTTrackr."""

from futtrackr.models.domain import (
    DEFAULT_RUN_MATCH_CAP,
    ChunkRecord,
    Insight,
    InsightCategory,
    InsightPriority,
    MatchContext,
    MatchRecord,
    MatchResult,
    PlayerAggregate,
    PlayerKey,
    PlayerPerformance,
    Run,
    TeamStats,
)

__all__ = [
    "DEFAULT_RUN_MATCH_CAP",
    # Enums
    "MatchResult",
    "MatchContext",
    "InsightCategory",
    "InsightPriority",
    # Records
    "TeamStats",
    "PlayerPerformance",
    "PlayerKey",
    "PlayerAggregate",
    "MatchRecord",
    "Run",
    "ChunkRecord",
    "Insight",
]
