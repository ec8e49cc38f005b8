"""Domain models for FUTTrackr analytics.

Every model is an immutable value object. Collections are stored as tuples
and frozensets so that two records with the same content hash the same; the
memoized services key their caches on that.
"""

import re
from dataclasses import dataclass, field, replace
from datetime import date
from enum import Enum
from typing import Any, NamedTuple

from futtrackr.errors import RunCompletedError

DEFAULT_RUN_MATCH_CAP = 15


class MatchResult(str, Enum):
    """Outcome of a single match."""
    WIN = "win"
    LOSS = "loss"


class MatchContext(str, Enum):
    """How a match ended or what disrupted it."""
    NORMAL = "normal"
    RAGE_QUIT = "rage_quit"        # Opponent quit early
    EXTRA_TIME = "extra_time"
    PENALTIES = "penalties"        # Decided by shootout
    DISCONNECT = "disconnect"
    HACKER = "hacker"
    FREE_WIN = "free_win"


class InsightCategory(str, Enum):
    """SWOT-style category of an insight."""
    STRENGTH = "strength"
    WEAKNESS = "weakness"
    OPPORTUNITY = "opportunity"
    THREAT = "threat"


class InsightPriority(str, Enum):
    """Display priority of an insight."""
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        """Sort rank, higher first."""
        return {"high": 3, "medium": 2, "low": 1}[self.value]


class PlayerKey(NamedTuple):
    """Identity of a player in the aggregate table.

    Name alone is ambiguous: the same card can be used in two positions.
    """

    name: str
    position: str

    def slug(self) -> str:
        """Lowercase identifier fragment for insight ids."""
        raw = f"{self.name}-{self.position}".lower()
        return re.sub(r"[^a-z0-9]+", "-", raw).strip("-")


@dataclass(frozen=True)
class TeamStats:
    """Team-level statistics for one match. All fields optional."""

    possession_pct: float | None = None
    expected_goals_for: float | None = None
    expected_goals_against: float | None = None
    pass_accuracy_pct: float | None = None
    shots: int | None = None
    shots_on_target: int | None = None

    # Discipline
    fouls: int | None = None
    yellow_cards: int | None = None
    red_cards: int | None = None


@dataclass(frozen=True)
class PlayerPerformance:
    """One player's line in one match."""

    name: str
    position: str
    rating: float
    goals: int = 0
    assists: int = 0
    minutes_played: int = 0
    yellow_cards: int = 0
    red_cards: int = 0

    @property
    def key(self) -> PlayerKey:
        return PlayerKey(self.name, self.position)


@dataclass(frozen=True)
class MatchRecord:
    """A single completed match, as produced by the normalizer."""

    sequence_number: int
    result: MatchResult
    goals_for: int
    goals_against: int
    duration_minutes: float
    context: MatchContext = MatchContext.NORMAL

    # Optional 1-10 scales
    opponent_skill: int | None = None
    stress_level: int | None = None
    server_quality: int | None = None

    cross_play_enabled: bool | None = None
    team_stats: TeamStats | None = None
    player_stats: tuple[PlayerPerformance, ...] = ()
    tags: frozenset[str] = field(default_factory=frozenset)
    time_of_day: str | None = None

    @property
    def is_win(self) -> bool:
        return self.result is MatchResult.WIN

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def is_clean_sheet(self) -> bool:
        return self.goals_against == 0

    @property
    def hour(self) -> int | None:
        """
        Hour of day the match was played, if recorded.

        Unparseable or out-of-range values such as ``"7pm"`` read as
        unrecorded.
        """
        if not self.time_of_day:
            return None
        try:
            hour = int(str(self.time_of_day).split(":", 1)[0])
        except ValueError:
            return None
        return hour if 0 <= hour <= 23 else None


@dataclass(frozen=True)
class Run:
    """
    An ordered, append-only sequence of matches (a "weekly run").

    Runs are never mutated. ``append`` and ``complete`` return new instances,
    so a grown in-progress run never compares equal to its earlier self.
    """

    run_id: str
    display_name: str
    start_date: date | None = None
    end_date: date | None = None
    matches: tuple[MatchRecord, ...] = ()
    is_completed: bool = False

    # Denormalized cache; never read by the engine
    cached_cps_score: float | None = None

    def __post_init__(self) -> None:
        ordered = tuple(sorted(self.matches, key=lambda m: m.sequence_number))
        if ordered != self.matches:
            object.__setattr__(self, "matches", ordered)

    @property
    def game_count(self) -> int:
        return len(self.matches)

    @property
    def wins(self) -> int:
        return sum(1 for m in self.matches if m.is_win)

    def append(self, match: MatchRecord, cap: int = DEFAULT_RUN_MATCH_CAP) -> "Run":
        """
        Return a new run with ``match`` added.

        A match with an existing sequence number replaces the old one (an
        edit). The run completes once it holds ``cap`` matches.

        Raises:
            RunCompletedError: If the run is already completed.
        """
        if self.is_completed:
            raise RunCompletedError(self.run_id)

        kept = tuple(
            m for m in self.matches if m.sequence_number != match.sequence_number
        )
        matches = kept + (match,)
        return replace(
            self,
            matches=matches,
            is_completed=len(matches) >= cap,
        )

    def complete(self, end_date: date | None = None) -> "Run":
        """Return a completed copy of this run."""
        return replace(
            self,
            is_completed=True,
            end_date=end_date if end_date is not None else self.end_date,
        )

    def with_cached_cps(self, score: float | None) -> "Run":
        """Return a copy carrying a refreshed CPS cache value."""
        return replace(self, cached_cps_score=score)


@dataclass(frozen=True)
class ChunkRecord:
    """Win/loss and goals record for one contiguous window of a run.

    ``game_count == 0`` means "no data", not a 0-0 record.
    """

    wins: int = 0
    losses: int = 0
    goals_for: int = 0
    goals_against: int = 0
    game_count: int = 0

    @property
    def goal_difference(self) -> int:
        return self.goals_for - self.goals_against

    @property
    def has_data(self) -> bool:
        return self.game_count > 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "wins": self.wins,
            "losses": self.losses,
            "goals_for": self.goals_for,
            "goals_against": self.goals_against,
            "game_count": self.game_count,
        }


@dataclass(frozen=True)
class Insight:
    """A ranked, categorized observation produced by the insight engine."""

    id: str
    category: InsightCategory
    priority: InsightPriority
    confidence: int
    title: str
    description: str
    advice: str
    data_points: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for API responses."""
        return {
            "id": self.id,
            "category": self.category.value,
            "priority": self.priority.value,
            "confidence": self.confidence,
            "title": self.title,
            "description": self.description,
            "advice": self.advice,
            "data_points": list(self.data_points),
        }


@dataclass(frozen=True)
class PlayerAggregate:
    """Career totals for one (name, position) pair."""

    key: PlayerKey
    appearances: int = 0
    total_rating: float = 0.0
    goals: int = 0
    assists: int = 0

    @property
    def average_rating(self) -> float:
        return self.total_rating / self.appearances if self.appearances else 0.0

    @property
    def goals_per_game(self) -> float:
        return self.goals / self.appearances if self.appearances else 0.0

    @property
    def assists_per_game(self) -> float:
        return self.assists / self.appearances if self.appearances else 0.0

    @property
    def goal_involvements(self) -> int:
        return self.goals + self.assists

    def add(self, performance: PlayerPerformance) -> "PlayerAggregate":
        """Fold one appearance into the aggregate."""
        return PlayerAggregate(
            key=self.key,
            appearances=self.appearances + 1,
            total_rating=self.total_rating + performance.rating,
            goals=self.goals + performance.goals,
            assists=self.assists + performance.assists,
        )
