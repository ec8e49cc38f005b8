"""Match record normalizer.

Validates and shapes raw match fields from the host application into the
canonical ``MatchRecord``. The result is always derived from the score;
a caller-supplied result is never trusted.

Rules:
- Goals must be non-negative integers
- Optional 1-10 scales and ratings outside range are clamped, not rejected
- Unknown match contexts are rejected
"""

import math
import re
from collections.abc import Mapping
from datetime import date
from typing import Any

import structlog

from futtrackr.config.engine import EngineConfig, get_engine_config
from futtrackr.errors import ValidationError
from futtrackr.models.domain import (
    MatchContext,
    MatchRecord,
    MatchResult,
    PlayerPerformance,
    Run,
    TeamStats,
)
from futtrackr.services.aggregation import clamp

logger = structlog.get_logger(__name__)

SCORE_LINE_PATTERN = re.compile(r"^\s*(\d+)\s*[-:]\s*(\d+)\s*$")
TIME_OF_DAY_PATTERN = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)(?::([0-5]\d))?$")

SCALE_MIN = 1
SCALE_MAX = 10
RATING_MIN = 0.0
RATING_MAX = 10.0


def _is_number(value: Any) -> bool:
    """Real, finite number; NaN and infinity are rejected."""
    if not isinstance(value, (int, float)) or isinstance(value, bool):
        return False
    return math.isfinite(value)


def _require_count(value: Any, field: str) -> int:
    """Validate a non-negative integer count."""
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or isinstance(value, bool):
        raise ValidationError(field, "must be an integer")
    if value < 0:
        raise ValidationError(field, "must be non-negative")
    return value


def _optional_count(raw: Mapping[str, Any], key: str, field: str) -> int | None:
    value = raw.get(key)
    if value is None:
        return None
    return _require_count(value, field)


def _optional_scale(raw: Mapping[str, Any], key: str) -> int | None:
    """Read an optional 1-10 scale, clamping out-of-range values."""
    value = raw.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise ValidationError(key, "must be a number")
    return int(round(clamp(value, SCALE_MIN, SCALE_MAX)))


def _optional_pct(raw: Mapping[str, Any], key: str, field: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise ValidationError(field, "must be a number")
    return float(clamp(value, 0, 100))


def _optional_xg(raw: Mapping[str, Any], key: str, field: str) -> float | None:
    value = raw.get(key)
    if value is None:
        return None
    if not _is_number(value):
        raise ValidationError(field, "must be a number")
    return float(max(0.0, value))


def parse_context(value: Any) -> MatchContext:
    """
    Parse a match context label.

    Accepts any case and hyphen or underscore separators
    ("rage-quit", "RAGE_QUIT"). Missing means NORMAL.
    """
    if value is None or value == "":
        return MatchContext.NORMAL
    if isinstance(value, MatchContext):
        return value
    if not isinstance(value, str):
        raise ValidationError("context", "must be a string")
    key = value.strip().lower().replace("-", "_").replace(" ", "_")
    try:
        return MatchContext(key)
    except ValueError:
        raise ValidationError("context", f"unknown match context '{value}'") from None


def parse_score_line(score_line: Any) -> tuple[int, int]:
    """Parse a score line such as ``"3-1"`` into (goals_for, goals_against)."""
    if not isinstance(score_line, str):
        raise ValidationError("score_line", "must be a string like '3-1'")
    match = SCORE_LINE_PATTERN.match(score_line)
    if not match:
        raise ValidationError("score_line", f"cannot parse '{score_line}'")
    return int(match.group(1)), int(match.group(2))


def _parse_goals(raw: Mapping[str, Any]) -> tuple[int, int]:
    goals_for = raw.get("goals_for")
    goals_against = raw.get("goals_against")
    if goals_for is None and goals_against is None and "score_line" in raw:
        return parse_score_line(raw["score_line"])
    if goals_for is None:
        raise ValidationError("goals_for", "is required")
    if goals_against is None:
        raise ValidationError("goals_against", "is required")
    return (
        _require_count(goals_for, "goals_for"),
        _require_count(goals_against, "goals_against"),
    )


def _parse_team_stats(raw: Any) -> TeamStats | None:
    if raw is None:
        return None
    if not isinstance(raw, Mapping):
        raise ValidationError("team_stats", "must be an object")
    return TeamStats(
        possession_pct=_optional_pct(raw, "possession_pct", "team_stats.possession_pct"),
        expected_goals_for=_optional_xg(
            raw, "expected_goals_for", "team_stats.expected_goals_for"
        ),
        expected_goals_against=_optional_xg(
            raw, "expected_goals_against", "team_stats.expected_goals_against"
        ),
        pass_accuracy_pct=_optional_pct(
            raw, "pass_accuracy_pct", "team_stats.pass_accuracy_pct"
        ),
        shots=_optional_count(raw, "shots", "team_stats.shots"),
        shots_on_target=_optional_count(
            raw, "shots_on_target", "team_stats.shots_on_target"
        ),
        fouls=_optional_count(raw, "fouls", "team_stats.fouls"),
        yellow_cards=_optional_count(raw, "yellow_cards", "team_stats.yellow_cards"),
        red_cards=_optional_count(raw, "red_cards", "team_stats.red_cards"),
    )


def _parse_player(raw: Any, index: int) -> PlayerPerformance:
    prefix = f"player_stats[{index}]"
    if not isinstance(raw, Mapping):
        raise ValidationError(prefix, "must be an object")

    name = raw.get("name")
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(f"{prefix}.name", "must be a non-empty string")
    position = raw.get("position")
    if not isinstance(position, str) or not position.strip():
        raise ValidationError(f"{prefix}.position", "must be a non-empty string")

    rating = raw.get("rating")
    if not _is_number(rating):
        raise ValidationError(f"{prefix}.rating", "must be a number")

    def count(key: str) -> int:
        return _require_count(raw.get(key, 0), f"{prefix}.{key}")

    return PlayerPerformance(
        name=name.strip(),
        position=position.strip().upper(),
        rating=round(clamp(float(rating), RATING_MIN, RATING_MAX), 1),
        goals=count("goals"),
        assists=count("assists"),
        minutes_played=count("minutes_played"),
        yellow_cards=count("yellow_cards"),
        red_cards=count("red_cards"),
    )


def _parse_tags(raw: Any) -> frozenset[str]:
    if raw is None:
        return frozenset()
    if isinstance(raw, str) or not hasattr(raw, "__iter__"):
        raise ValidationError("tags", "must be a list of strings")
    tags = set()
    for tag in raw:
        if not isinstance(tag, str):
            raise ValidationError("tags", "must be a list of strings")
        cleaned = tag.strip().lower()
        if cleaned:
            tags.add(cleaned)
    return frozenset(tags)


def _parse_time_of_day(raw: Any) -> str | None:
    if raw is None or raw == "":
        return None
    if not isinstance(raw, str) or not TIME_OF_DAY_PATTERN.match(raw.strip()):
        raise ValidationError("time_of_day", "must be HH:MM or HH:MM:SS")
    hour, minute = raw.strip().split(":")[:2]
    return f"{int(hour):02d}:{minute}"


def normalize_match(raw: Mapping[str, Any]) -> MatchRecord:
    """
    Validate a raw match and produce a canonical MatchRecord.

    Args:
        raw: Match fields keyed by snake_case name

    Returns:
        MatchRecord with ``result`` derived from the score

    Raises:
        ValidationError: Naming the first offending field
    """
    if not isinstance(raw, Mapping):
        raise ValidationError("match", "must be an object")

    sequence_number = raw.get("sequence_number")
    if sequence_number is None:
        raise ValidationError("sequence_number", "is required")
    sequence_number = _require_count(sequence_number, "sequence_number")
    if sequence_number < 1:
        raise ValidationError("sequence_number", "must be 1 or greater")

    goals_for, goals_against = _parse_goals(raw)
    result = MatchResult.WIN if goals_for > goals_against else MatchResult.LOSS

    supplied = raw.get("result")
    if supplied is not None and str(supplied).strip().lower() != result.value:
        logger.debug(
            "result_overridden",
            sequence_number=sequence_number,
            supplied=supplied,
            derived=result.value,
        )

    duration = raw.get("duration_minutes")
    if not _is_number(duration):
        raise ValidationError("duration_minutes", "must be a number")
    if duration <= 0:
        raise ValidationError("duration_minutes", "must be positive")

    cross_play = raw.get("cross_play_enabled")
    if cross_play is not None and not isinstance(cross_play, bool):
        raise ValidationError("cross_play_enabled", "must be a boolean")

    players_raw = raw.get("player_stats") or []
    if not isinstance(players_raw, (list, tuple)):
        raise ValidationError("player_stats", "must be a list")

    return MatchRecord(
        sequence_number=sequence_number,
        result=result,
        goals_for=goals_for,
        goals_against=goals_against,
        duration_minutes=float(duration),
        context=parse_context(raw.get("context")),
        opponent_skill=_optional_scale(raw, "opponent_skill"),
        stress_level=_optional_scale(raw, "stress_level"),
        server_quality=_optional_scale(raw, "server_quality"),
        cross_play_enabled=cross_play,
        team_stats=_parse_team_stats(raw.get("team_stats")),
        player_stats=tuple(_parse_player(p, i) for i, p in enumerate(players_raw)),
        tags=_parse_tags(raw.get("tags")),
        time_of_day=_parse_time_of_day(raw.get("time_of_day")),
    )


def _parse_date(raw: Any, field: str) -> date | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, date):
        return raw
    try:
        return date.fromisoformat(str(raw)[:10])
    except ValueError:
        raise ValidationError(field, "must be an ISO date") from None


def normalize_run(raw: Mapping[str, Any], config: EngineConfig | None = None) -> Run:
    """
    Normalize a whole run and its matches.

    Raises:
        ValidationError: On any bad field, or duplicate sequence numbers
    """
    config = config or get_engine_config()
    if not isinstance(raw, Mapping):
        raise ValidationError("run", "must be an object")

    run_id = raw.get("run_id")
    if run_id is None or str(run_id).strip() == "":
        raise ValidationError("run_id", "is required")
    run_id = str(run_id)

    matches_raw = raw.get("matches") or []
    if not isinstance(matches_raw, (list, tuple)):
        raise ValidationError("matches", "must be a list")

    matches = []
    seen: set[int] = set()
    for i, match_raw in enumerate(matches_raw):
        try:
            match = normalize_match(match_raw)
        except ValidationError as e:
            raise ValidationError(f"matches[{i}].{e.field}", e.message) from e
        if match.sequence_number in seen:
            raise ValidationError(
                f"matches[{i}].sequence_number",
                f"duplicate sequence number {match.sequence_number}",
            )
        seen.add(match.sequence_number)
        matches.append(match)

    is_completed = raw.get("is_completed")
    if is_completed is None:
        is_completed = len(matches) >= config.run_match_cap

    cached = raw.get("cached_cps_score")
    return Run(
        run_id=run_id,
        display_name=str(raw.get("display_name") or f"Run {run_id}"),
        start_date=_parse_date(raw.get("start_date"), "start_date"),
        end_date=_parse_date(raw.get("end_date"), "end_date"),
        matches=tuple(matches),
        is_completed=bool(is_completed),
        cached_cps_score=float(cached) if _is_number(cached) else None,
    )
