"""Letter grades for single matches and whole runs.

Grades are a presentation-friendly companion to CPS: a 0-100 score built
from fixed adjustments, mapped to S/A/B/C/D/F.
"""

from dataclasses import dataclass

from futtrackr.models.domain import MatchContext, MatchRecord, Run
from futtrackr.services.aggregation import clamp, mean, safe_div

# (minimum score, letter), highest first
GRADE_BANDS = (
    (95, "S"),
    (85, "A"),
    (75, "B"),
    (65, "C"),
    (50, "D"),
)
FAIL_GRADE = "F"

CONTEXT_ADJUSTMENTS = {
    MatchContext.RAGE_QUIT: -5,
    MatchContext.DISCONNECT: -10,
    MatchContext.HACKER: -15,
}


@dataclass(frozen=True)
class Grade:
    letter: str
    score: int

    def to_dict(self) -> dict:
        return {"letter": self.letter, "score": self.score}


def letter_for(score: float) -> str:
    for minimum, letter in GRADE_BANDS:
        if score >= minimum:
            return letter
    return FAIL_GRADE


def _grade(raw: float) -> Grade:
    score = int(round(clamp(raw, 0, 100)))
    return Grade(letter=letter_for(score), score=score)


def _opponent_bonus(skill: float | None, high: float, mid: float) -> int:
    if skill is None:
        return 0
    if skill >= high:
        return 10
    if skill >= mid:
        return 5
    return 0


def rate_match(match: MatchRecord) -> Grade:
    """
    Grade a single match.

    Starts at 50, then adjusts for the result, the margin, finishing against
    xG, opponent strength, bonus achievements and disrupted contexts.
    """
    score = 50.0
    score += 40 if match.is_win else -20
    score += clamp(match.goal_difference * 5, -20, 20)

    xg_for = match.team_stats.expected_goals_for if match.team_stats else None
    if xg_for is not None:
        score += clamp((match.goals_for - xg_for) * 3, -10, 15)

    score += _opponent_bonus(match.opponent_skill, high=8, mid=6)
    if match.opponent_skill is not None and match.opponent_skill <= 3:
        score -= 5

    if match.is_win and match.is_clean_sheet:
        score += 5
    if match.goals_for >= 4:
        score += 5
    if match.is_win and match.context is MatchContext.PENALTIES:
        score += 5

    score += CONTEXT_ADJUSTMENTS.get(match.context, 0)
    return _grade(score)


def rate_run(run: Run, win_target: int | None = None) -> Grade:
    """
    Grade a whole run.

    Args:
        run: The run to grade
        win_target: Optional wins goal; meeting it earns a bonus

    Returns:
        Grade; an empty run is F/0
    """
    matches = run.matches
    if not matches:
        return Grade(letter=FAIL_GRADE, score=0)

    wins = sum(1 for m in matches if m.is_win)
    score = 50.0
    score += safe_div(wins, len(matches)) * 40
    if win_target is not None and wins >= win_target:
        score += 20

    score += clamp(sum(m.goal_difference for m in matches), -15, 15)

    with_xg = [
        m for m in matches
        if m.team_stats is not None and m.team_stats.expected_goals_for is not None
    ]
    if with_xg:
        goals = sum(m.goals_for for m in with_xg)
        xg = sum(m.team_stats.expected_goals_for for m in with_xg)
        score += clamp((goals - xg) * 2, -10, 15)

    skills = [m.opponent_skill for m in matches if m.opponent_skill is not None]
    if skills:
        score += _opponent_bonus(mean(skills), high=7, mid=5)

    match_scores = [rate_match(m).score for m in matches]
    spread = max(match_scores) - min(match_scores)
    score += (100 - spread) / 100 * 10

    return _grade(score)
