"""Dashboard summary and match tag statistics.

Lifetime headline numbers across all runs, plus per-tag win rates.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from futtrackr.models.domain import MatchRecord, PlayerAggregate, PlayerKey, Run
from futtrackr.services.aggregation import (
    bucket_value,
    count_wins,
    longest_win_streak,
    mean,
    rate_pct,
    round1,
    safe_div,
)

logger = structlog.get_logger(__name__)

MVP_MIN_APPEARANCES = 10

# (exclusive upper bound of the per-game index, grade)
DISCIPLINE_BANDS = (
    (0.2, "A+"),
    (0.4, "A"),
    (0.6, "B"),
    (0.8, "C"),
    (1.0, "D"),
)
DISCIPLINE_FAIL = "F"
NO_GRADE = "N/A"

TAG_LABELS = {
    "comeback": "Comeback Win",
    "bottled": "Bottled Lead",
    "bad-servers": "Bad Servers",
    "scripting": "Scripting",
    "good-opponent": "Good Opponent",
    "lucky-win": "Lucky Win",
    "unlucky-loss": "Unlucky Loss",
    "dominated": "Dominated",
    "close-game": "Close Game",
}


@dataclass(frozen=True)
class DashboardStats:
    """Lifetime headline statistics."""

    run_count: int = 0
    total_games: int = 0
    total_wins: int = 0
    best_record: int = 0
    average_wins_per_run: float = 0.0
    most_goals_in_run: int = 0
    longest_win_streak: int = 0

    # Goals
    total_goals: int = 0
    total_conceded: int = 0
    goal_difference: int = 0
    average_goals_per_game: float = 0.0
    xg_vs_goals_ratio: float = 0.0

    # Team
    average_player_rating: float = 0.0
    average_possession: float = 0.0
    average_pass_accuracy: float = 0.0
    average_shot_accuracy: float = 0.0
    clean_sheets: int = 0

    mvp: PlayerKey | None = None
    discipline_grade: str = NO_GRADE

    @property
    def win_rate(self) -> float:
        return rate_pct(self.total_wins, self.total_games)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_count": self.run_count,
            "total_games": self.total_games,
            "total_wins": self.total_wins,
            "win_rate": round1(self.win_rate),
            "best_record": self.best_record,
            "average_wins_per_run": self.average_wins_per_run,
            "most_goals_in_run": self.most_goals_in_run,
            "longest_win_streak": self.longest_win_streak,
            "total_goals": self.total_goals,
            "total_conceded": self.total_conceded,
            "goal_difference": self.goal_difference,
            "average_goals_per_game": self.average_goals_per_game,
            "xg_vs_goals_ratio": self.xg_vs_goals_ratio,
            "average_player_rating": self.average_player_rating,
            "average_possession": self.average_possession,
            "average_pass_accuracy": self.average_pass_accuracy,
            "average_shot_accuracy": self.average_shot_accuracy,
            "clean_sheets": self.clean_sheets,
            "mvp": {"name": self.mvp.name, "position": self.mvp.position} if self.mvp else None,
            "discipline_grade": self.discipline_grade,
        }


@dataclass(frozen=True)
class TagStats:
    """Win/loss record of matches carrying one tag."""

    tag: str
    label: str
    count: int
    wins: int
    losses: int
    win_rate: float

    def to_dict(self) -> dict[str, Any]:
        return {
            "tag": self.tag,
            "label": self.label,
            "count": self.count,
            "wins": self.wins,
            "losses": self.losses,
            "win_rate": self.win_rate,
        }


def build_player_table(matches: Sequence[MatchRecord]) -> dict[PlayerKey, PlayerAggregate]:
    """Fold every player appearance into per-(name, position) aggregates."""
    table: dict[PlayerKey, PlayerAggregate] = {}
    for match in matches:
        for performance in match.player_stats:
            key = performance.key
            current = table.get(key) or PlayerAggregate(key=key)
            table[key] = current.add(performance)
    return table


def select_mvp(table: dict[PlayerKey, PlayerAggregate]) -> PlayerKey | None:
    """
    Pick the most valuable player.

    Candidates need MVP_MIN_APPEARANCES appearances unless nobody has them,
    in which case everyone is considered. Ranked by average rating, then
    goal involvements, then name.
    """
    if not table:
        return None
    candidates = [a for a in table.values() if a.appearances >= MVP_MIN_APPEARANCES]
    if not candidates:
        candidates = list(table.values())
    best = min(
        candidates,
        key=lambda a: (-a.average_rating, -a.goal_involvements, a.key.name, a.key.position),
    )
    return best.key


def discipline_grade(matches: Sequence[MatchRecord]) -> str:
    """Grade discipline from team fouls and cards per game."""
    if not matches:
        return NO_GRADE
    fouls = yellow = red = 0
    for m in matches:
        if m.team_stats is None:
            continue
        fouls += m.team_stats.fouls or 0
        yellow += m.team_stats.yellow_cards or 0
        red += m.team_stats.red_cards or 0
    index = (fouls * 0.1 + yellow * 0.5 + red * 1) / len(matches)
    return bucket_value(index, DISCIPLINE_BANDS, DISCIPLINE_FAIL)


def _team_values(matches: Sequence[MatchRecord], attr: str) -> list[float]:
    values = []
    for m in matches:
        if m.team_stats is None:
            continue
        value = getattr(m.team_stats, attr)
        if value is not None:
            values.append(value)
    return values


def _shot_accuracy(matches: Sequence[MatchRecord]) -> float:
    accuracies = [
        rate_pct(m.team_stats.shots_on_target, m.team_stats.shots)
        for m in matches
        if m.team_stats is not None
        and m.team_stats.shots
        and m.team_stats.shots_on_target is not None
    ]
    return mean(accuracies)


def compute_dashboard_stats(runs: Sequence[Run]) -> DashboardStats:
    """
    Compute lifetime dashboard figures over every run.

    Team averages are taken over matches that recorded the stat.
    """
    runs = list(runs)
    matches = [m for run in runs for m in run.matches]
    if not matches:
        return DashboardStats(run_count=len(runs))

    total_goals = sum(m.goals_for for m in matches)
    total_conceded = sum(m.goals_against for m in matches)
    total_xg = sum(_team_values(matches, "expected_goals_for"))
    ratings = [p.rating for m in matches for p in m.player_stats]
    run_wins = [run.wins for run in runs]

    stats = DashboardStats(
        run_count=len(runs),
        total_games=len(matches),
        total_wins=count_wins(matches),
        best_record=max(run_wins),
        average_wins_per_run=round1(mean(run_wins)),
        most_goals_in_run=max(sum(m.goals_for for m in run.matches) for run in runs),
        longest_win_streak=max(longest_win_streak(run.matches) for run in runs),
        total_goals=total_goals,
        total_conceded=total_conceded,
        goal_difference=total_goals - total_conceded,
        average_goals_per_game=round(safe_div(total_goals, len(matches)), 2),
        xg_vs_goals_ratio=round(safe_div(total_xg, total_goals), 2),
        average_player_rating=round(mean(ratings), 2),
        average_possession=round1(mean(_team_values(matches, "possession_pct"))),
        average_pass_accuracy=round1(mean(_team_values(matches, "pass_accuracy_pct"))),
        average_shot_accuracy=round1(_shot_accuracy(matches)),
        clean_sheets=sum(1 for m in matches if m.is_clean_sheet),
        mvp=select_mvp(build_player_table(matches)),
        discipline_grade=discipline_grade(matches),
    )

    logger.debug(
        "dashboard_stats_computed",
        runs=stats.run_count,
        games=stats.total_games,
        mvp=stats.mvp.name if stats.mvp else None,
    )
    return stats


def tag_label(tag: str) -> str:
    """Human label for a tag; unknown tags are title-cased."""
    if tag in TAG_LABELS:
        return TAG_LABELS[tag]
    return tag.replace("-", " ").replace("_", " ").title()


def compute_tag_stats(matches: Sequence[MatchRecord]) -> list[TagStats]:
    """Per-tag record, most common tag first."""
    counts: dict[str, list[int]] = {}
    for match in matches:
        for tag in match.tags:
            record = counts.setdefault(tag, [0, 0])
            record[0 if match.is_win else 1] += 1

    stats = [
        TagStats(
            tag=tag,
            label=tag_label(tag),
            count=wins + losses,
            wins=wins,
            losses=losses,
            win_rate=round1(rate_pct(wins, wins + losses)),
        )
        for tag, (wins, losses) in counts.items()
    ]
    stats.sort(key=lambda s: (-s.count, s.tag))
    return stats
