"""FUTTrackr performance analytics and insight engine."""

__version__ = "0.1.0"

from futtrackr.errors import AnalyticsError, RunCompletedError, ValidationError
from futtrackr.services.ingestion import normalize_match, normalize_run
from futtrackr.services.insights import generate_insights
from futtrackr.services.profiling import (
    compute_all_time_chunk_extremes,
    compute_chunk_stats,
)
from futtrackr.services.scoring import compute_cps

__all__ = [
    "__version__",
    "AnalyticsError",
    "RunCompletedError",
    "ValidationError",
    "normalize_match",
    "normalize_run",
    "compute_cps",
    "compute_chunk_stats",
    "compute_all_time_chunk_extremes",
    "generate_insights",
]
