"""Scoring module for FUTTrackr."""

from futtrackr.services.scoring.engine import (
    CpsEngine,
    CpsResult,
    RunCpsPoint,
    compute_cps,
    compute_reduced_cps,
    compute_run_cps_trend,
    refresh_cached_cps,
)
from futtrackr.services.scoring.feedback import (
    MatchNote,
    RunReview,
    match_feedback,
    review_run,
    review_runs,
)
from futtrackr.services.scoring.rating import Grade, rate_match, rate_run

__all__ = [
    "CpsEngine",
    "CpsResult",
    "RunCpsPoint",
    "compute_cps",
    "compute_reduced_cps",
    "compute_run_cps_trend",
    "refresh_cached_cps",
    "MatchNote",
    "RunReview",
    "match_feedback",
    "review_run",
    "review_runs",
    "Grade",
    "rate_match",
    "rate_run",
]
