"""Shared aggregation helpers.

Grouping, guarded averages and rates, and bucketing of continuous values
into discrete ranges. Every division here returns 0 on an empty
denominator so NaN/Infinity never reach callers.
"""

from collections.abc import Callable, Hashable, Iterable, Sequence
from statistics import mean as _mean
from typing import TypeVar

from futtrackr.models.domain import MatchRecord

T = TypeVar("T")
K = TypeVar("K", bound=Hashable)


def clamp(value: float, min_val: float, max_val: float) -> float:
    """Clamp value between min and max."""
    return max(min_val, min(value, max_val))


def round1(value: float) -> float:
    """Round to one decimal place."""
    return round(value, 1)


def safe_div(numerator: float, denominator: float) -> float:
    """Divide, returning 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return numerator / denominator


def rate_pct(part: float, whole: float) -> float:
    """Percentage of ``part`` in ``whole`` (0-100), 0 for an empty whole."""
    return safe_div(part, whole) * 100


def mean(values: Iterable[float]) -> float:
    """Arithmetic mean, 0 for an empty input."""
    values = list(values)
    return _mean(values) if values else 0.0


def weighted_mean(pairs: Iterable[tuple[float, float]]) -> float:
    """Mean of ``(value, weight)`` pairs, 0 when total weight is 0."""
    total = 0.0
    total_weight = 0.0
    for value, weight in pairs:
        total += value * weight
        total_weight += weight
    return safe_div(total, total_weight)


def deviation_around(values: Sequence[float], center: float) -> float:
    """Population standard deviation of ``values`` around a fixed center."""
    if not values:
        return 0.0
    variance = sum((v - center) ** 2 for v in values) / len(values)
    return variance ** 0.5


def group_by(items: Iterable[T], key: Callable[[T], K | None]) -> dict[K, list[T]]:
    """
    Group items by key, preserving first-seen key order.

    Items whose key is None are dropped.
    """
    groups: dict[K, list[T]] = {}
    for item in items:
        k = key(item)
        if k is None:
            continue
        groups.setdefault(k, []).append(item)
    return groups


def bucket_value(value: float, bands: Sequence[tuple[float, str]], default: str) -> str:
    """
    Place a value into the first band whose upper bound it is below.

    Args:
        value: Value to bucket
        bands: ``(exclusive_upper_bound, label)`` pairs in ascending order
        default: Label for values at or above the last bound
    """
    for upper, label in bands:
        if value < upper:
            return label
    return default


def get_time_of_day_bucket(hour: int) -> str:
    """
    Determine time-of-day bucket from the local hour.

    Buckets:
    - 'morning': 05:00 - 11:59
    - 'afternoon': 12:00 - 16:59
    - 'evening': 17:00 - 21:59
    - 'night': 22:00 - 04:59
    """
    if 5 <= hour < 12:
        return "morning"
    elif 12 <= hour < 17:
        return "afternoon"
    elif 17 <= hour < 22:
        return "evening"
    else:
        return "night"


def count_wins(matches: Iterable[MatchRecord]) -> int:
    return sum(1 for m in matches if m.is_win)


def win_rate(matches: Sequence[MatchRecord]) -> float:
    """Win percentage (0-100) of a match collection."""
    return rate_pct(count_wins(matches), len(matches))


def longest_win_streak(matches: Iterable[MatchRecord]) -> int:
    """Longest run of consecutive wins, in the order given."""
    best = current = 0
    for match in matches:
        current = current + 1 if match.is_win else 0
        best = max(best, current)
    return best
