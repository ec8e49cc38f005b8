"""Unit tests for the match record normalizer."""

import pytest

from futtrackr.errors import ValidationError
from futtrackr.models.domain import MatchContext, MatchResult
from futtrackr.services.ingestion.normalizer import (
    normalize_match,
    normalize_run,
    parse_context,
    parse_score_line,
)


def _raw(**overrides):
    raw = {"sequence_number": 1, "goals_for": 2, "goals_against": 1, "duration_minutes": 20}
    raw.update(overrides)
    return raw


class TestNormalizeMatch:
    """Test normalize_match."""

    def test_result_is_derived_from_score(self):
        """A supplied result that disagrees with the score is ignored."""
        match = normalize_match(_raw(goals_for=3, goals_against=1, result="loss"))
        assert match.result is MatchResult.WIN

    def test_draw_is_a_loss(self):
        """Only a strictly higher score is a win."""
        match = normalize_match(_raw(goals_for=2, goals_against=2, result="win"))
        assert match.result is MatchResult.LOSS

    def test_full_payload(self, raw_match):
        """Every field of a populated payload is shaped and clamped."""
        match = normalize_match(raw_match)

        assert match.result is MatchResult.WIN
        assert match.context is MatchContext.RAGE_QUIT
        assert match.opponent_skill == 10, "Skill is clamped to 10"
        assert match.stress_level == 1, "Stress is clamped to 1"
        assert match.server_quality == 7, "Scales are rounded to int"
        assert match.cross_play_enabled is True
        assert match.tags == frozenset({"comeback", "close-game"})
        assert match.time_of_day == "21:45"
        assert match.hour == 21

        team = match.team_stats
        assert team.possession_pct == 100
        assert team.expected_goals_against == 0
        assert team.shots_on_target == 7

        striker, defender = match.player_stats
        assert striker.name == "Mbappé"
        assert striker.position == "ST"
        assert striker.rating == 9.4
        assert defender.rating == 10.0
        assert defender.yellow_cards == 1

    def test_score_line_used_when_goals_absent(self):
        """A score line stands in for missing goal fields."""
        raw = _raw(score_line="4 - 2")
        del raw["goals_for"], raw["goals_against"]
        match = normalize_match(raw)
        assert (match.goals_for, match.goals_against) == (4, 2)

    def test_integral_float_goals_accepted(self):
        """3.0 goals is accepted as 3."""
        match = normalize_match(_raw(goals_for=3.0))
        assert match.goals_for == 3

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"goals_for": -1}, "goals_for"),
            ({"goals_for": 1.5}, "goals_for"),
            ({"goals_against": True}, "goals_against"),
            ({"goals_against": None}, "goals_against"),
            ({"sequence_number": 0}, "sequence_number"),
            ({"sequence_number": None}, "sequence_number"),
            ({"duration_minutes": 0}, "duration_minutes"),
            ({"duration_minutes": "90"}, "duration_minutes"),
            ({"context": "abandoned"}, "context"),
            ({"opponent_skill": "high"}, "opponent_skill"),
            ({"cross_play_enabled": "yes"}, "cross_play_enabled"),
            ({"tags": "comeback"}, "tags"),
            ({"time_of_day": "25:00"}, "time_of_day"),
            ({"team_stats": {"possession_pct": "lots"}}, "team_stats.possession_pct"),
        ],
    )
    def test_invalid_fields_rejected(self, overrides, field):
        """Malformed fields raise ValidationError naming the field."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_match(_raw(**overrides))
        assert exc_info.value.field == field, (
            f"Expected field {field}, got {exc_info.value.field}"
        )

    @pytest.mark.parametrize(
        "overrides, field",
        [
            ({"duration_minutes": float("nan")}, "duration_minutes"),
            ({"duration_minutes": float("inf")}, "duration_minutes"),
            ({"opponent_skill": float("nan")}, "opponent_skill"),
            ({"team_stats": {"expected_goals_for": float("inf")}},
             "team_stats.expected_goals_for"),
            ({"player_stats": [{"name": "Saka", "position": "RW", "rating": float("nan")}]},
             "player_stats[0].rating"),
        ],
    )
    def test_non_finite_numbers_rejected(self, overrides, field):
        """NaN and infinity never reach a MatchRecord."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_match(_raw(**overrides))
        assert exc_info.value.field == field, (
            f"Expected field {field}, got {exc_info.value.field}"
        )

    def test_player_errors_name_the_index(self):
        """Player field errors carry their list index."""
        players = [
            {"name": "Kane", "position": "ST", "rating": 8.0},
            {"name": "Foden", "position": "LW", "rating": 7.0, "goals": -2},
        ]
        with pytest.raises(ValidationError) as exc_info:
            normalize_match(_raw(player_stats=players))
        assert exc_info.value.field == "player_stats[1].goals"

    def test_player_requires_name(self):
        """A blank player name is rejected."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_match(_raw(player_stats=[{"name": "  ", "position": "GK", "rating": 6}]))
        assert exc_info.value.field == "player_stats[0].name"

    def test_validation_error_is_value_error(self):
        """Callers may catch plain ValueError."""
        with pytest.raises(ValueError):
            normalize_match(_raw(goals_for="two"))


class TestParsers:
    """Test the small parsing helpers."""

    @pytest.mark.parametrize("label", ["rage_quit", "RAGE_QUIT", "rage-quit", "Rage Quit"])
    def test_context_spellings(self, label):
        """Context parsing ignores case and separators."""
        assert parse_context(label) is MatchContext.RAGE_QUIT

    def test_missing_context_is_normal(self):
        """No context means a normal match."""
        assert parse_context(None) is MatchContext.NORMAL
        assert parse_context("") is MatchContext.NORMAL

    def test_score_line(self):
        """Both dash and colon separators parse."""
        assert parse_score_line("3-1") == (3, 1)
        assert parse_score_line("0:2") == (0, 2)

    def test_bad_score_line(self):
        """Unparseable score lines are rejected."""
        with pytest.raises(ValidationError):
            parse_score_line("three-one")


class TestNormalizeRun:
    """Test normalize_run."""

    def test_matches_sorted_and_completed_at_cap(self, engine_config):
        """Matches are ordered by sequence and a full run is completed."""
        raw = {
            "run_id": "w12",
            "matches": [_raw(sequence_number=n) for n in range(15, 0, -1)],
        }
        run = normalize_run(raw, engine_config)
        assert [m.sequence_number for m in run.matches] == list(range(1, 16))
        assert run.is_completed is True
        assert run.display_name == "Run w12"

    def test_partial_run_in_progress(self, engine_config):
        """A short run defaults to in progress."""
        run = normalize_run({"run_id": 1, "matches": [_raw()]}, engine_config)
        assert run.run_id == "1"
        assert run.is_completed is False

    def test_duplicate_sequence_rejected(self, engine_config):
        """Two matches cannot share a sequence number."""
        raw = {"run_id": "w1", "matches": [_raw(), _raw()]}
        with pytest.raises(ValidationError) as exc_info:
            normalize_run(raw, engine_config)
        assert exc_info.value.field == "matches[1].sequence_number"

    def test_match_errors_prefixed(self, engine_config):
        """Errors inside a match name its position in the run."""
        raw = {"run_id": "w1", "matches": [_raw(), _raw(sequence_number=2, goals_for=-3)]}
        with pytest.raises(ValidationError) as exc_info:
            normalize_run(raw, engine_config)
        assert exc_info.value.field == "matches[1].goals_for"

    def test_dates_parsed(self, engine_config):
        """ISO dates and datetimes are accepted."""
        run = normalize_run(
            {"run_id": "w1", "start_date": "2024-03-01", "end_date": "2024-03-04T22:10:00"},
            engine_config,
        )
        assert run.start_date.isoformat() == "2024-03-01"
        assert run.end_date.isoformat() == "2024-03-04"

    def test_missing_run_id(self, engine_config):
        """A run needs an id."""
        with pytest.raises(ValidationError) as exc_info:
            normalize_run({"matches": []}, engine_config)
        assert exc_info.value.field == "run_id"
