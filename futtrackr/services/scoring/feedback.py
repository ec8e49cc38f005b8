"""Short feedback notes for a single match and a whole run.

Companion to the letter grades in ``rating``: where a grade scores a match,
these notes say something about it. Everything is derived from the records
themselves, never from the wall clock.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from typing import Any

from futtrackr.models.domain import MatchRecord, Run
from futtrackr.services.aggregation import count_wins, rate_pct

# Note kinds
ENCOURAGEMENT = "encouragement"
MOTIVATION = "motivation"
ANALYSIS = "analysis"
TIP = "tip"

MAX_MATCH_NOTES = 3

STRONG_OPPONENT_SKILL = 8
WEAK_OPPONENT_SKILL = 3
QUICK_WIN_MINUTES = 15
HIGH_STRESS_LEVEL = 8
WIN_STREAK_MIN = 3
FORM_WINDOW = 5
HOT_FORM_WINS = 4
COLD_FORM_WINS = 1
NEAR_TARGET_SHARE = 0.8
TOUGH_RUN_WIN_RATE = 30

# (minimum win rate, tier), highest first
RUN_TIERS = (
    (75, "outstanding"),
    (60, "solid"),
    (45, "improving"),
)
LOWEST_RUN_TIER = "challenging"
RUN_CHANGE_PCT = 10


@dataclass(frozen=True)
class MatchNote:
    id: str
    kind: str
    message: str

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "kind": self.kind, "message": self.message}


@dataclass(frozen=True)
class RunReview:
    """Tier for one run and how it moved against the run before it."""

    run_id: str
    display_name: str
    game_count: int
    win_rate: float
    tier: str
    previous_win_rate: float | None = None
    change: str | None = None  # "improved", "declined" or None

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "display_name": self.display_name,
            "game_count": self.game_count,
            "win_rate": round(self.win_rate, 1),
            "tier": self.tier,
            "previous_win_rate": (
                round(self.previous_win_rate, 1)
                if self.previous_win_rate is not None else None
            ),
            "change": self.change,
        }


def _current_streak(matches: Sequence[MatchRecord]) -> int:
    streak = 0
    for match in reversed(matches):
        if not match.is_win:
            break
        streak += 1
    return streak


def match_feedback(
    match: MatchRecord,
    previous_matches: Sequence[MatchRecord] = (),
    win_target: int | None = None,
) -> list[MatchNote]:
    """
    Feedback notes for a just-played match.

    Args:
        match: The match to comment on
        previous_matches: Earlier matches of the same run, in play order
        win_target: Optional wins goal for the run

    Returns:
        At most MAX_MATCH_NOTES notes, in a fixed order
    """
    notes: list[MatchNote] = []
    played = list(previous_matches) + [match]
    run_wins = count_wins(played)
    skill = match.opponent_skill

    if match.is_win:
        if skill is not None and skill >= STRONG_OPPONENT_SKILL:
            notes.append(MatchNote(
                "strong-opponent-beaten", ENCOURAGEMENT,
                f"Beating a {skill}/10 opponent shows real improvement.",
            ))
        if match.duration_minutes <= QUICK_WIN_MINUTES:
            notes.append(MatchNote(
                "quick-win", ENCOURAGEMENT,
                "Quick victory: you took control early and kept it.",
            ))
        streak = _current_streak(played)
        if streak >= WIN_STREAK_MIN:
            notes.append(MatchNote(
                "win-streak", ENCOURAGEMENT,
                f"That's {streak} wins in a row. Keep the momentum going.",
            ))
    else:
        if skill is not None and skill <= WEAK_OPPONENT_SKILL:
            notes.append(MatchNote(
                "weak-opponent-loss", TIP,
                "Losing to a weaker opponent points to concentration; take a break between games.",
            ))
        if match.stress_level is not None and match.stress_level >= HIGH_STRESS_LEVEL:
            notes.append(MatchNote(
                "high-stress", TIP,
                "High stress recorded. Play when you're more relaxed.",
            ))
        if rate_pct(run_wins, len(played)) < TOUGH_RUN_WIN_RATE:
            notes.append(MatchNote(
                "tough-run", MOTIVATION,
                "Tough spell. Review your games and come back stronger.",
            ))

    recent = list(previous_matches)[-FORM_WINDOW:]
    if len(recent) >= FORM_WINDOW:
        recent_wins = count_wins(recent)
        if recent_wins >= HOT_FORM_WINS:
            notes.append(MatchNote(
                "hot-form", ANALYSIS,
                f"{recent_wins} wins in your last {FORM_WINDOW}: you're in the zone.",
            ))
        elif recent_wins <= COLD_FORM_WINS:
            notes.append(MatchNote(
                "cold-form", ANALYSIS,
                f"Only {recent_wins} of your last {FORM_WINDOW} games won. "
                "Try a formation change or a longer break.",
            ))

    if win_target and NEAR_TARGET_SHARE * win_target <= run_wins < win_target:
        notes.append(MatchNote(
            "near-target", ENCOURAGEMENT,
            f"{run_wins} of {win_target} target wins. Stay focused and finish strong.",
        ))

    return notes[:MAX_MATCH_NOTES]


def run_tier(win_rate: float) -> str:
    for minimum, tier in RUN_TIERS:
        if win_rate >= minimum:
            return tier
    return LOWEST_RUN_TIER


def review_run(
    run: Run,
    previous: Run | None = None,
    change_pct: float = RUN_CHANGE_PCT,
) -> RunReview:
    """
    Tier a run and compare it with the run before it.

    A run moves by more than ``change_pct`` win-rate points to count as
    improved or declined. An empty previous run gives no comparison.
    """
    rate = rate_pct(count_wins(run.matches), run.game_count)
    previous_rate = None
    change = None
    if previous is not None and previous.matches:
        previous_rate = rate_pct(count_wins(previous.matches), previous.game_count)
        if rate > previous_rate + change_pct:
            change = "improved"
        elif rate < previous_rate - change_pct:
            change = "declined"
    return RunReview(
        run_id=run.run_id,
        display_name=run.display_name,
        game_count=run.game_count,
        win_rate=rate,
        tier=run_tier(rate),
        previous_win_rate=previous_rate,
        change=change,
    )


def review_runs(runs: Sequence[Run], change_pct: float = RUN_CHANGE_PCT) -> list[RunReview]:
    """Review each run against the one before it, in the order given."""
    return [
        review_run(run, runs[i - 1] if i else None, change_pct)
        for i, run in enumerate(runs)
    ]
