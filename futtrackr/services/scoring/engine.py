"""Composite Performance Score (CPS) engine.

Reduces a collection of matches to one bounded 1-100 score.

CRITICAL: the weights are NOT a convex combination. Goals and result both
carry 30%, so the weights sum to 1.30 and the raw sum can exceed 100
before clamping. Stored historical scores depend on this arithmetic.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import structlog

from futtrackr.config.engine import CpsConfig, EngineConfig, get_engine_config
from futtrackr.models.domain import MatchRecord, Run
from futtrackr.services.aggregation import clamp, count_wins, rate_pct, round1, safe_div

logger = structlog.get_logger(__name__)

FORMULA_FULL = "full"
FORMULA_REDUCED = "reduced"


@dataclass(frozen=True)
class MatchTotals:
    """Aggregate sums over a match collection used by every CPS component."""

    game_count: int
    wins: int
    goals_for: int
    goals_against: int
    xg_for: float
    xg_against: float
    rating_sum: float
    rating_count: int
    yellow_cards: int
    red_cards: int

    @classmethod
    def from_matches(cls, matches: Sequence[MatchRecord]) -> "MatchTotals":
        # fsum keeps float totals exact regardless of input order
        ratings = [p.rating for m in matches for p in m.player_stats]
        return cls(
            game_count=len(matches),
            wins=count_wins(matches),
            goals_for=sum(m.goals_for for m in matches),
            goals_against=sum(m.goals_against for m in matches),
            xg_for=math.fsum(
                m.team_stats.expected_goals_for or 0.0
                for m in matches
                if m.team_stats is not None
            ),
            xg_against=math.fsum(
                m.team_stats.expected_goals_against or 0.0
                for m in matches
                if m.team_stats is not None
            ),
            rating_sum=math.fsum(ratings),
            rating_count=len(ratings),
            yellow_cards=sum(p.yellow_cards for m in matches for p in m.player_stats),
            red_cards=sum(p.red_cards for m in matches for p in m.player_stats),
        )

    @property
    def avg_goals_per_game(self) -> float:
        return safe_div(self.goals_for, self.game_count)

    @property
    def avg_conceded_per_game(self) -> float:
        return safe_div(self.goals_against, self.game_count)

    @property
    def avg_player_rating(self) -> float:
        """Unweighted mean over every individual player appearance."""
        return safe_div(self.rating_sum, self.rating_count)

    @property
    def win_rate_pct(self) -> float:
        return rate_pct(self.wins, self.game_count)


@dataclass(frozen=True)
class CpsResult:
    """Result of a CPS calculation with weighted component breakdown."""

    score: float | None
    goals_component: float
    xg_component: float
    rating_component: float
    conceded_component: float
    cards_component: float
    result_component: float
    game_count: int
    formula: str = FORMULA_FULL

    # Guards triggered
    guards_failed: tuple[str, ...] | None = None

    @property
    def has_score(self) -> bool:
        return self.score is not None

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for storage."""
        return {
            "score": self.score,
            "goals_component": self.goals_component,
            "xg_component": self.xg_component,
            "rating_component": self.rating_component,
            "conceded_component": self.conceded_component,
            "cards_component": self.cards_component,
            "result_component": self.result_component,
            "game_count": self.game_count,
            "formula": self.formula,
            "guards_failed": list(self.guards_failed) if self.guards_failed else None,
        }


@dataclass(frozen=True)
class RunCpsPoint:
    """One run's score for trend charting."""

    run_id: str
    display_name: str
    score: float | None
    formula: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "display_name": self.display_name,
            "score": self.score,
            "formula": self.formula,
        }


class CpsEngine:
    """
    Calculate Composite Performance Scores.

    Formula:
    score = clamp(round1(
        w_goals    × min(100, goals_pg × 25)
      + w_xg       × clamp(50 + (xG_for − xG_against) × 10, 0, 100)
      + w_rating   × min(100, avg_rating × 10)
      + w_conceded × clamp(100 − conceded_pg × 25, 0, 100)
      + w_cards    × clamp(100 − (yellow × 5 + red × 15), 0, 100)
      + w_result   × win_rate_pct
    ), 1, 100)

    The reduced formula keeps only the goals, xG and result terms. It is a
    different score, not an approximation, and is labelled as such.
    """

    def __init__(self, config: CpsConfig | None = None):
        """
        Initialize CPS engine.

        Args:
            config: Optional CPS configuration. If not provided, uses the
                   engine defaults from defaults.yaml
        """
        self.config = config or get_engine_config().cps
        self.weights = self.config.weights

    # Component functions return the unweighted 0-100 sub-score

    @staticmethod
    def f_goals(totals: MatchTotals) -> float:
        return min(100, totals.avg_goals_per_game * 25)

    @staticmethod
    def f_xg(totals: MatchTotals) -> float:
        return clamp(50 + (totals.xg_for - totals.xg_against) * 10, 0, 100)

    @staticmethod
    def f_rating(totals: MatchTotals) -> float:
        return min(100, (totals.avg_player_rating / 10) * 100)

    @staticmethod
    def f_conceded(totals: MatchTotals) -> float:
        return clamp(100 - totals.avg_conceded_per_game * 25, 0, 100)

    @staticmethod
    def f_cards(totals: MatchTotals) -> float:
        return clamp(100 - (totals.yellow_cards * 5 + totals.red_cards * 15), 0, 100)

    @staticmethod
    def f_result(totals: MatchTotals) -> float:
        return totals.win_rate_pct

    def check_guards(self, matches: Sequence[MatchRecord]) -> list[str]:
        """
        Check that there is enough data to score.

        Returns list of failed guard names (empty = all passed).
        """
        failed = []
        if len(matches) < 1:
            failed.append("no_matches")
        return failed

    def _no_score(self, guards_failed: list[str], formula: str) -> CpsResult:
        logger.debug("cps_guards_failed", guards=guards_failed, formula=formula)
        return CpsResult(
            score=None,
            goals_component=0,
            xg_component=0,
            rating_component=0,
            conceded_component=0,
            cards_component=0,
            result_component=0,
            game_count=0,
            formula=formula,
            guards_failed=tuple(guards_failed),
        )

    def _finalise(self, raw_score: float) -> float:
        return clamp(round1(raw_score), self.config.min_score, self.config.max_score)

    def calculate_score(self, matches: Sequence[MatchRecord]) -> CpsResult:
        """
        Calculate the full CPS with component breakdown.

        Args:
            matches: Any collection of matches (order does not matter)

        Returns:
            CpsResult; ``score`` is None when there are no matches
        """
        guards_failed = self.check_guards(matches)
        if guards_failed:
            return self._no_score(guards_failed, FORMULA_FULL)

        totals = MatchTotals.from_matches(matches)
        w = self.weights

        goals = self.f_goals(totals) * w.goals
        xg = self.f_xg(totals) * w.xg
        rating = self.f_rating(totals) * w.rating
        conceded = self.f_conceded(totals) * w.conceded
        cards = self.f_cards(totals) * w.cards
        result = self.f_result(totals) * w.result

        score = self._finalise(goals + xg + rating + conceded + cards + result)

        logger.debug(
            "cps_calculated",
            score=score,
            games=totals.game_count,
            goals=round(goals, 2),
            xg=round(xg, 2),
            rating=round(rating, 2),
            conceded=round(conceded, 2),
            cards=round(cards, 2),
            result=round(result, 2),
        )

        return CpsResult(
            score=score,
            goals_component=round(goals, 2),
            xg_component=round(xg, 2),
            rating_component=round(rating, 2),
            conceded_component=round(conceded, 2),
            cards_component=round(cards, 2),
            result_component=round(result, 2),
            game_count=totals.game_count,
            formula=FORMULA_FULL,
        )

    def calculate_reduced_score(self, matches: Sequence[MatchRecord]) -> CpsResult:
        """
        Calculate the reduced (goals, xG, result) score.

        Used for runs without per-player rating data.
        """
        guards_failed = self.check_guards(matches)
        if guards_failed:
            return self._no_score(guards_failed, FORMULA_REDUCED)

        totals = MatchTotals.from_matches(matches)
        w = self.weights

        goals = self.f_goals(totals) * w.goals
        xg = self.f_xg(totals) * w.xg
        result = self.f_result(totals) * w.result

        return CpsResult(
            score=self._finalise(goals + xg + result),
            goals_component=round(goals, 2),
            xg_component=round(xg, 2),
            rating_component=0,
            conceded_component=0,
            cards_component=0,
            result_component=round(result, 2),
            game_count=totals.game_count,
            formula=FORMULA_REDUCED,
        )


@lru_cache(maxsize=512)
def _cps_cached(matches: tuple[MatchRecord, ...], config: CpsConfig, reduced: bool) -> CpsResult:
    engine = CpsEngine(config)
    if reduced:
        return engine.calculate_reduced_score(matches)
    return engine.calculate_score(matches)


def compute_cps(
    matches: Sequence[MatchRecord],
    config: EngineConfig | None = None,
) -> CpsResult:
    """
    Compute the full CPS for any collection of matches.

    Memoized on match content, so a grown in-progress run is a new key.
    """
    config = config or get_engine_config()
    return _cps_cached(tuple(matches), config.cps, False)


def compute_reduced_cps(
    matches: Sequence[MatchRecord],
    config: EngineConfig | None = None,
) -> CpsResult:
    """Compute the reduced (goals, xG, result) CPS."""
    config = config or get_engine_config()
    return _cps_cached(tuple(matches), config.cps, True)


def has_rating_data(matches: Sequence[MatchRecord]) -> bool:
    return any(m.player_stats for m in matches)


def compute_run_cps_trend(
    runs: Sequence[Run],
    config: EngineConfig | None = None,
) -> list[RunCpsPoint]:
    """
    Score every run for trend charting.

    Runs with player ratings use the full formula; runs without use the
    reduced one. Empty runs are skipped.
    """
    config = config or get_engine_config()
    points = []
    for run in runs:
        if not run.matches:
            continue
        if has_rating_data(run.matches):
            result = compute_cps(run.matches, config)
        else:
            result = compute_reduced_cps(run.matches, config)
        points.append(
            RunCpsPoint(
                run_id=run.run_id,
                display_name=run.display_name,
                score=result.score,
                formula=result.formula,
            )
        )
    return points


def refresh_cached_cps(run: Run, config: EngineConfig | None = None) -> Run:
    """Return the run with its denormalized CPS cache recomputed."""
    return run.with_cached_cps(compute_cps(run.matches, config).score)
