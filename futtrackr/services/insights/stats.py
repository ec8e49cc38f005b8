"""Precomputed aggregates shared by the insight rules.

Every rule reads from one ``InsightStats`` built in a single pass over the
match history, instead of re-scanning the matches per rule.
"""

import re
from collections import Counter
from collections.abc import Callable, Sequence
from dataclasses import dataclass, field

from futtrackr.config.engine import InsightThresholds
from futtrackr.models.domain import (
    MatchContext,
    MatchRecord,
    PlayerAggregate,
    PlayerKey,
    Run,
)
from futtrackr.services.aggregation import (
    count_wins,
    deviation_around,
    get_time_of_day_bucket,
    group_by,
    mean,
    rate_pct,
    safe_div,
    weighted_mean,
    win_rate,
)
from futtrackr.services.profiling.summary import build_player_table

# Bucket boundaries for the paired comparisons (inclusive)
GOOD_SERVER_MIN = 7
POOR_SERVER_MAX = 4
CALM_STRESS_MAX = 4
HIGH_STRESS_MIN = 7
HIGH_POSSESSION_MIN = 55
LOW_POSSESSION_MAX = 45

COMEBACK_TAG = "comeback"
BOTTLED_TAG = "bottled"
MIN_COMEBACK_DEFICIT = 2

# "down-2", "down 3", "trailed-by-2", "trailing 3", "behind-2", "2-goals-down"
DEFICIT_PATTERNS = (
    re.compile(r"\bdown[\s_-]*(?:by[\s_-]*)?(\d+)\b"),
    re.compile(r"\b(?:trailed|trailing|behind)[\s_-]*(?:by[\s_-]*)?(\d+)\b"),
    re.compile(r"\b(\d+)[\s_-]*goals?[\s_-]*(?:down|behind)\b"),
)


def tag_deficit(tag: str) -> int | None:
    """Goal deficit stated by a tag such as ``down-2``, or None."""
    for pattern in DEFICIT_PATTERNS:
        match = pattern.search(tag)
        if match:
            return int(match.group(1))
    return None


def is_comeback(match: MatchRecord) -> bool:
    """
    Whether a match was a comeback.

    Either the match carries the exact ``comeback`` tag, or it was won after
    a tag-stated deficit of at least two goals. Tags that merely contain the
    word, such as ``failed-comeback``, do not count.
    """
    if COMEBACK_TAG in match.tags:
        return True
    if not match.is_win:
        return False
    return any(
        (tag_deficit(tag) or 0) >= MIN_COMEBACK_DEFICIT for tag in match.tags
    )


@dataclass(frozen=True)
class BucketRecord:
    """Games and wins for one bucket of a paired comparison."""

    games: int = 0
    wins: int = 0

    @property
    def win_rate(self) -> float:
        return rate_pct(self.wins, self.games)

    @classmethod
    def of(cls, matches: Sequence[MatchRecord]) -> "BucketRecord":
        return cls(games=len(matches), wins=count_wins(matches))


@dataclass(frozen=True)
class RunRecord:
    run_id: str
    display_name: str
    games: int
    win_rate: float


def _split(
    matches: Sequence[MatchRecord],
    first: Callable[[MatchRecord], bool],
    second: Callable[[MatchRecord], bool],
) -> tuple[BucketRecord, BucketRecord]:
    return (
        BucketRecord.of([m for m in matches if first(m)]),
        BucketRecord.of([m for m in matches if second(m)]),
    )


def _team(match: MatchRecord, attr: str) -> float | None:
    if match.team_stats is None:
        return None
    return getattr(match.team_stats, attr)


@dataclass
class InsightStats:
    """Aggregate table read by every insight rule."""

    all_matches: tuple[MatchRecord, ...]
    historical_matches: tuple[MatchRecord, ...]
    active_matches: tuple[MatchRecord, ...]

    # Overall
    total: int = 0
    wins: int = 0
    goals_for: int = 0
    goals_against: int = 0
    opponent_skills: list[int] = field(default_factory=list)

    players: dict[PlayerKey, PlayerAggregate] = field(default_factory=dict)
    contexts: Counter = field(default_factory=Counter)
    penalties: BucketRecord = field(default_factory=BucketRecord)

    # Paired comparisons
    time_of_day: dict[str, BucketRecord] = field(default_factory=dict)
    good_server: BucketRecord = field(default_factory=BucketRecord)
    poor_server: BucketRecord = field(default_factory=BucketRecord)
    calm: BucketRecord = field(default_factory=BucketRecord)
    stressed: BucketRecord = field(default_factory=BucketRecord)
    short_games: BucketRecord = field(default_factory=BucketRecord)
    long_games: BucketRecord = field(default_factory=BucketRecord)
    high_possession: BucketRecord = field(default_factory=BucketRecord)
    low_possession: BucketRecord = field(default_factory=BucketRecord)
    cross_play_on: BucketRecord = field(default_factory=BucketRecord)
    cross_play_off: BucketRecord = field(default_factory=BucketRecord)

    # Expected goals, over matches that recorded each side
    xg_for_matches: int = 0
    xg_for_total: float = 0.0
    xg_for_goals: int = 0
    xg_against_matches: int = 0
    xg_against_total: float = 0.0
    xg_against_goals: int = 0

    # Tags
    comeback_count: int = 0
    bottled_count: int = 0

    # Runs
    run_records: list[RunRecord] = field(default_factory=list)
    historical_win_rate: float = 0.0
    active_run_name: str | None = None
    active_win_rate: float = 0.0
    active_record: RunRecord | None = None

    @property
    def win_rate(self) -> float:
        return rate_pct(self.wins, self.total)

    @property
    def goals_per_game(self) -> float:
        return safe_div(self.goals_for, self.total)

    @property
    def conceded_per_game(self) -> float:
        return safe_div(self.goals_against, self.total)

    @property
    def goal_difference_per_game(self) -> float:
        return safe_div(self.goals_for - self.goals_against, self.total)

    @property
    def average_opponent_skill(self) -> float:
        return mean(self.opponent_skills)

    @property
    def run_consistency(self) -> float:
        """Spread of per-run win rates around the game-weighted overall rate."""
        center = weighted_mean((r.win_rate, r.games) for r in self.run_records)
        return deviation_around([r.win_rate for r in self.run_records], center)

    @property
    def latest_runs(self) -> tuple[RunRecord, RunRecord] | None:
        """The most recent run and the one before it; the active run counts."""
        records = list(self.run_records)
        if self.active_record is not None:
            records.append(self.active_record)
        if len(records) < 2:
            return None
        return records[-2], records[-1]

    def context_rate(self, *contexts: MatchContext) -> float:
        return rate_pct(sum(self.contexts[c] for c in contexts), self.total)

    def recent_matches(self, window: int) -> tuple[MatchRecord, ...]:
        return self.all_matches[-window:] if window > 0 else ()

    @classmethod
    def build(
        cls,
        historical_runs: Sequence[Run],
        active_run: Run | None = None,
        thresholds: InsightThresholds | None = None,
    ) -> "InsightStats":
        """
        Compute every aggregate once.

        ``all_matches`` is historical matches in run then sequence order,
        followed by the active run, so its tail is the most recent form.
        """
        thresholds = thresholds or InsightThresholds()
        historical = tuple(m for run in historical_runs for m in run.matches)
        active = active_run.matches if active_run is not None else ()
        matches = historical + active

        stats = cls(
            all_matches=matches,
            historical_matches=historical,
            active_matches=active,
            total=len(matches),
            wins=count_wins(matches),
            goals_for=sum(m.goals_for for m in matches),
            goals_against=sum(m.goals_against for m in matches),
            opponent_skills=[
                m.opponent_skill for m in matches if m.opponent_skill is not None
            ],
            players=build_player_table(matches),
            contexts=Counter(m.context for m in matches),
            penalties=BucketRecord.of(
                [m for m in matches if m.context is MatchContext.PENALTIES]
            ),
        )

        by_hour = group_by(
            matches,
            lambda m: get_time_of_day_bucket(m.hour) if m.hour is not None else None,
        )
        stats.time_of_day = {name: BucketRecord.of(ms) for name, ms in by_hour.items()}

        stats.good_server, stats.poor_server = _split(
            matches,
            lambda m: m.server_quality is not None and m.server_quality >= GOOD_SERVER_MIN,
            lambda m: m.server_quality is not None and m.server_quality <= POOR_SERVER_MAX,
        )
        stats.calm, stats.stressed = _split(
            matches,
            lambda m: m.stress_level is not None and m.stress_level <= CALM_STRESS_MAX,
            lambda m: m.stress_level is not None and m.stress_level >= HIGH_STRESS_MIN,
        )
        stats.short_games, stats.long_games = _split(
            matches,
            lambda m: m.duration_minutes < thresholds.short_game_minutes,
            lambda m: m.duration_minutes >= thresholds.short_game_minutes,
        )
        stats.high_possession, stats.low_possession = _split(
            matches,
            lambda m: (_team(m, "possession_pct") or 0) >= HIGH_POSSESSION_MIN,
            lambda m: _team(m, "possession_pct") is not None
            and _team(m, "possession_pct") <= LOW_POSSESSION_MAX,
        )
        stats.cross_play_on, stats.cross_play_off = _split(
            matches,
            lambda m: m.cross_play_enabled is True,
            lambda m: m.cross_play_enabled is False,
        )

        with_xg_for = [m for m in matches if _team(m, "expected_goals_for") is not None]
        stats.xg_for_matches = len(with_xg_for)
        stats.xg_for_total = sum(m.team_stats.expected_goals_for for m in with_xg_for)
        stats.xg_for_goals = sum(m.goals_for for m in with_xg_for)

        with_xg_against = [
            m for m in matches if _team(m, "expected_goals_against") is not None
        ]
        stats.xg_against_matches = len(with_xg_against)
        stats.xg_against_total = sum(
            m.team_stats.expected_goals_against for m in with_xg_against
        )
        stats.xg_against_goals = sum(m.goals_against for m in with_xg_against)

        stats.comeback_count = sum(1 for m in matches if is_comeback(m))
        stats.bottled_count = sum(1 for m in matches if BOTTLED_TAG in m.tags)

        stats.run_records = [
            RunRecord(run.run_id, run.display_name, run.game_count, win_rate(run.matches))
            for run in historical_runs
            if run.matches
        ]
        stats.historical_win_rate = win_rate(historical)
        if active_run is not None:
            stats.active_run_name = active_run.display_name
            stats.active_win_rate = win_rate(active)
            if active:
                stats.active_record = RunRecord(
                    active_run.run_id, active_run.display_name, len(active), stats.active_win_rate
                )

        return stats
