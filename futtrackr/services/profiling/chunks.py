"""Chunk / form analyzer.

Splits a run into fixed sequence-number windows (games 1-5, 6-10, 11-15 by
default) and finds the best and worst window of each kind across history.
"""

from collections.abc import Sequence
from dataclasses import dataclass
from functools import lru_cache
from typing import Any

import structlog

from futtrackr.config.engine import ChunkConfig, EngineConfig, get_engine_config
from futtrackr.models.domain import ChunkRecord, MatchRecord, Run

logger = structlog.get_logger(__name__)

WINDOW_NAMES = ("beginning", "middle", "end")


@dataclass(frozen=True)
class RunChunkStats:
    """Per-window records for one run."""

    run_id: str
    display_name: str
    beginning: ChunkRecord
    middle: ChunkRecord
    end: ChunkRecord

    def window(self, name: str) -> ChunkRecord:
        return getattr(self, name)

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "display_name": self.display_name,
            "beginning": self.beginning.to_dict(),
            "middle": self.middle.to_dict(),
            "end": self.end.to_dict(),
        }


@dataclass(frozen=True)
class ChunkExtreme:
    """The run that holds a best or worst window record."""

    run_id: str
    display_name: str
    record: ChunkRecord

    def to_dict(self) -> dict[str, Any]:
        return {
            "run_id": self.run_id,
            "display_name": self.display_name,
            "record": self.record.to_dict(),
        }


@dataclass(frozen=True)
class ChunkExtremes:
    """All-time best and worst record for each window."""

    best_beginning: ChunkExtreme | None = None
    worst_beginning: ChunkExtreme | None = None
    best_middle: ChunkExtreme | None = None
    worst_middle: ChunkExtreme | None = None
    best_end: ChunkExtreme | None = None
    worst_end: ChunkExtreme | None = None

    def to_dict(self) -> dict[str, Any]:
        result = {}
        for name in WINDOW_NAMES:
            for side in ("best", "worst"):
                extreme = getattr(self, f"{side}_{name}")
                result[f"{side}_{name}"] = extreme.to_dict() if extreme else None
        return result


def summarize_window(matches: Sequence[MatchRecord]) -> ChunkRecord:
    """Fold a window's matches into a ChunkRecord."""
    wins = sum(1 for m in matches if m.is_win)
    return ChunkRecord(
        wins=wins,
        losses=len(matches) - wins,
        goals_for=sum(m.goals_for for m in matches),
        goals_against=sum(m.goals_against for m in matches),
        game_count=len(matches),
    )


def window_bounds(index: int, config: ChunkConfig) -> tuple[int, int]:
    """Inclusive sequence-number bounds of window ``index`` (0-based)."""
    start = index * config.window_size + 1
    return start, start + config.window_size - 1


@lru_cache(maxsize=256)
def _chunk_stats_cached(run: Run, config: ChunkConfig) -> RunChunkStats:
    records = []
    for i in range(len(WINDOW_NAMES)):
        if i >= config.window_count:
            records.append(ChunkRecord())
            continue
        low, high = window_bounds(i, config)
        window = [m for m in run.matches if low <= m.sequence_number <= high]
        records.append(summarize_window(window))

    beginning, middle, end = records
    return RunChunkStats(
        run_id=run.run_id,
        display_name=run.display_name,
        beginning=beginning,
        middle=middle,
        end=end,
    )


def compute_chunk_stats(run: Run, config: EngineConfig | None = None) -> RunChunkStats:
    """
    Compute window records for a run.

    Windows are keyed on sequence number, so an edited or partially logged
    run keeps matches in the window they were played in. Matches beyond the
    last window are ignored. An empty window is an all-zero record.
    """
    config = config or get_engine_config()
    return _chunk_stats_cached(run, config.chunks)


def _rank_key(record: ChunkRecord) -> tuple[int, int]:
    return (record.goal_difference, record.wins)


@lru_cache(maxsize=64)
def _extremes_cached(runs: tuple[Run, ...], config: ChunkConfig) -> ChunkExtremes:
    best: dict[str, ChunkExtreme] = {}
    worst: dict[str, ChunkExtreme] = {}

    for run in runs:
        stats = _chunk_stats_cached(run, config)
        for name in WINDOW_NAMES:
            record = stats.window(name)
            if not record.has_data:
                continue
            candidate = ChunkExtreme(run.run_id, run.display_name, record)
            # Strict comparisons keep the earliest run on a full tie
            if name not in best or _rank_key(record) > _rank_key(best[name].record):
                best[name] = candidate
            if name not in worst or _rank_key(record) < _rank_key(worst[name].record):
                worst[name] = candidate

    extremes = ChunkExtremes(
        **{f"best_{name}": best.get(name) for name in WINDOW_NAMES},
        **{f"worst_{name}": worst.get(name) for name in WINDOW_NAMES},
    )
    logger.debug("chunk_extremes_computed", runs=len(runs), windows=len(best))
    return extremes


def compute_all_time_chunk_extremes(
    runs: Sequence[Run],
    config: EngineConfig | None = None,
) -> ChunkExtremes:
    """
    Find the best and worst record for each window across runs.

    Best is the highest (goal difference, wins); worst the lowest. Windows
    with no games are skipped. Returns all-None extremes for empty input.
    """
    config = config or get_engine_config()
    return _extremes_cached(tuple(runs), config.chunks)
