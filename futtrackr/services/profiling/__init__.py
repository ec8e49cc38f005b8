"""Profiling module for FUTTrackr."""

from futtrackr.services.profiling.chunks import (
    ChunkExtreme,
    ChunkExtremes,
    RunChunkStats,
    compute_all_time_chunk_extremes,
    compute_chunk_stats,
)
from futtrackr.services.profiling.summary import (
    DashboardStats,
    TagStats,
    compute_dashboard_stats,
    compute_tag_stats,
)

__all__ = [
    "ChunkExtreme",
    "ChunkExtremes",
    "RunChunkStats",
    "compute_all_time_chunk_extremes",
    "compute_chunk_stats",
    "DashboardStats",
    "TagStats",
    "compute_dashboard_stats",
    "compute_tag_stats",
]
