"""Pytest configuration and fixtures for FUTTrackr tests."""

import pytest

from futtrackr.config.engine import EngineConfig
from futtrackr.models.domain import (
    MatchRecord,
    MatchResult,
    PlayerPerformance,
    Run,
    TeamStats,
)


def build_match(
    sequence_number: int = 1,
    goals_for: int = 2,
    goals_against: int = 1,
    duration_minutes: float = 20,
    **overrides,
) -> MatchRecord:
    """Build a normalized match; the result follows the score."""
    result = MatchResult.WIN if goals_for > goals_against else MatchResult.LOSS
    return MatchRecord(
        sequence_number=sequence_number,
        result=result,
        goals_for=goals_for,
        goals_against=goals_against,
        duration_minutes=duration_minutes,
        **overrides,
    )


def build_run(run_id: str = "run-1", matches=(), **overrides) -> Run:
    """Build a run; matches are sorted by sequence number."""
    return Run(
        run_id=run_id,
        display_name=overrides.pop("display_name", f"Run {run_id}"),
        matches=tuple(matches),
        **overrides,
    )


def build_sequence(scores, start: int = 1, **overrides) -> list[MatchRecord]:
    """Build consecutive matches from ``(goals_for, goals_against)`` pairs."""
    return [
        build_match(start + i, gf, ga, **overrides)
        for i, (gf, ga) in enumerate(scores)
    ]


@pytest.fixture
def make_match():
    """Builder for MatchRecord values."""
    return build_match


@pytest.fixture
def make_run():
    """Builder for Run values."""
    return build_run


@pytest.fixture
def make_sequence():
    """Builder for lists of consecutive matches."""
    return build_sequence


@pytest.fixture
def engine_config():
    """Built-in engine defaults, independent of defaults.yaml."""
    return EngineConfig()


@pytest.fixture
def raw_match():
    """A fully populated raw match as sent by the host application."""
    return {
        "sequence_number": 3,
        "goals_for": 3,
        "goals_against": 1,
        "result": "loss",
        "duration_minutes": 18,
        "context": "RAGE-QUIT",
        "opponent_skill": 12,
        "stress_level": 0,
        "server_quality": 6.6,
        "cross_play_enabled": True,
        "team_stats": {
            "possession_pct": 104,
            "expected_goals_for": 2.4,
            "expected_goals_against": -0.3,
            "pass_accuracy_pct": 86.5,
            "shots": 12,
            "shots_on_target": 7,
            "fouls": 2,
            "yellow_cards": 1,
            "red_cards": 0,
        },
        "player_stats": [
            {
                "name": " Mbappé ",
                "position": "st",
                "rating": 9.44,
                "goals": 2,
                "assists": 1,
                "minutes_played": 90,
            },
            {
                "name": "Van Dijk",
                "position": "CB",
                "rating": 11,
                "goals": 0,
                "assists": 0,
                "minutes_played": 90,
                "yellow_cards": 1,
            },
        ],
        "tags": [" Comeback ", "close-game", ""],
        "time_of_day": "21:45:10",
    }


@pytest.fixture
def dominant_history():
    """
    Two runs, 20 matches: 14 wins, 3.2 goals for and 0.8 against per game,
    every appearance rated 7.4.
    """
    # Each run: 7 wins at 4-0, one 0-2 loss, two 2-3 losses
    # Totals over both runs: GF 64, GA 16
    scores = [(4, 0)] * 7 + [(0, 2)] + [(2, 3)] * 2
    players = (
        PlayerPerformance(name="Salah", position="RW", rating=7.4, goals=1),
        PlayerPerformance(name="Rodri", position="CDM", rating=7.4),
    )
    return [
        build_run(
            run_id,
            build_sequence(
                scores,
                player_stats=players,
                team_stats=TeamStats(possession_pct=55, fouls=1),
            ),
        )
        for run_id in ("run-1", "run-2")
    ]
