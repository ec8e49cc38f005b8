"""Unit tests for shared aggregation helpers and run lifecycle."""

import pytest

from futtrackr.errors import RunCompletedError
from futtrackr.models.domain import PlayerKey
from futtrackr.services.aggregation import (
    bucket_value,
    clamp,
    deviation_around,
    get_time_of_day_bucket,
    group_by,
    longest_win_streak,
    mean,
    rate_pct,
    safe_div,
    weighted_mean,
    win_rate,
)


class TestGuardedArithmetic:
    """Test helpers that must never produce NaN or Infinity."""

    def test_safe_div_zero_denominator(self):
        """Division by zero returns 0."""
        assert safe_div(5, 0) == 0
        assert safe_div(5, 2) == 2.5

    def test_rate_pct(self):
        """Percentages are on a 0-100 scale."""
        assert rate_pct(1, 4) == 25
        assert rate_pct(3, 0) == 0

    def test_mean_of_empty(self):
        """Empty mean is 0."""
        assert mean([]) == 0
        assert mean([1, 2, 3]) == 2

    def test_weighted_mean(self):
        """Weights scale each value's contribution."""
        assert weighted_mean([(100, 1), (0, 3)]) == 25
        assert weighted_mean([(50, 0)]) == 0

    def test_deviation_around_center(self):
        """Deviation is measured from the supplied center."""
        assert deviation_around([40, 60], 50) == 10
        assert deviation_around([], 50) == 0

    def test_clamp(self):
        """Values outside the range snap to the nearest bound."""
        assert clamp(150, 1, 100) == 100
        assert clamp(-3, 1, 100) == 1
        assert clamp(42, 1, 100) == 42


class TestBucketing:
    """Test grouping and bucketing."""

    @pytest.mark.parametrize(
        "hour, bucket",
        [(5, "morning"), (11, "morning"), (12, "afternoon"), (16, "afternoon"),
         (17, "evening"), (21, "evening"), (22, "night"), (0, "night"), (4, "night")],
    )
    def test_time_of_day_buckets(self, hour, bucket):
        """Bucket edges are inclusive at the start."""
        assert get_time_of_day_bucket(hour) == bucket

    def test_bucket_value(self):
        """Values land in the first band they are below."""
        bands = ((10, "low"), (20, "mid"))
        assert bucket_value(5, bands, "high") == "low"
        assert bucket_value(10, bands, "high") == "mid"
        assert bucket_value(25, bands, "high") == "high"

    def test_group_by_drops_none_keys(self):
        """Items without a key are left out; key order is first-seen."""
        groups = group_by([3, None, 1, 3], lambda x: x)
        assert list(groups) == [3, 1]
        assert groups[3] == [3, 3]


class TestMatchHelpers:
    """Test helpers over match collections."""

    def test_win_rate_and_streak(self, make_sequence):
        """Streaks follow the order given."""
        matches = make_sequence([(1, 0), (2, 0), (0, 1), (3, 0), (1, 0), (1, 0)])
        assert win_rate(matches) == pytest.approx(83.333, rel=1e-3)
        assert longest_win_streak(matches) == 3
        assert win_rate([]) == 0


class TestRunLifecycle:
    """Test immutable run operations."""

    def test_append_returns_new_run(self, make_run, make_match):
        """Appending never mutates the original."""
        run = make_run("w1", [make_match(1)])
        grown = run.append(make_match(2))
        assert run.game_count == 1
        assert grown.game_count == 2
        assert grown != run

    def test_append_replaces_same_sequence(self, make_run, make_match):
        """An edit replaces the match at its sequence number."""
        run = make_run("w1", [make_match(1, 1, 0), make_match(2, 1, 0)])
        edited = run.append(make_match(1, 0, 3))
        assert edited.game_count == 2
        assert edited.matches[0].goals_against == 3

    def test_append_completes_at_cap(self, make_run, make_sequence):
        """The run closes when it reaches the cap."""
        run = make_run("w1", make_sequence([(1, 0)] * 14))
        full = run.append(make_sequence([(1, 0)], start=15)[0])
        assert full.is_completed is True

    def test_append_to_completed_run_raises(self, make_run, make_match):
        """A completed run cannot take more matches."""
        run = make_run("w1", [make_match(1)]).complete()
        with pytest.raises(RunCompletedError):
            run.append(make_match(2))

    def test_matches_kept_in_sequence_order(self, make_run, make_match):
        """Matches are ordered by sequence number on construction."""
        run = make_run("w1", [make_match(3), make_match(1), make_match(2)])
        assert [m.sequence_number for m in run.matches] == [1, 2, 3]

    @pytest.mark.parametrize(
        "time_of_day, hour",
        [("21:45", 21), ("07:00", 7), ("7pm", None), ("25:00", None), ("", None), (None, None)],
    )
    def test_match_hour_is_lenient(self, make_match, time_of_day, hour):
        """Unparseable times of day read as unrecorded."""
        assert make_match(1, time_of_day=time_of_day).hour == hour

    def test_player_key_slug(self):
        """Slugs are lowercase and hyphenated."""
        assert PlayerKey("Van Dijk", "CB").slug() == "van-dijk-cb"
