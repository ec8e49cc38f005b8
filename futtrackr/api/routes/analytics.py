"""Analytics API endpoints.

Stateless HTTP adapter over the analytics engine. The host application
posts raw match data; nothing is stored between requests.
"""

from dataclasses import asdict
from datetime import date
from typing import Any

import structlog
from fastapi import APIRouter, Depends, HTTPException
from pydantic import BaseModel, Field

from futtrackr.config.engine import EngineConfig, get_engine_config
from futtrackr.errors import ValidationError
from futtrackr.models.domain import MatchRecord, Run
from futtrackr.services.ingestion import normalize_match, normalize_run
from futtrackr.services.insights import generate_insights
from futtrackr.services.profiling import (
    compute_all_time_chunk_extremes,
    compute_chunk_stats,
    compute_dashboard_stats,
    compute_tag_stats,
)
from futtrackr.services.scoring import (
    compute_cps,
    compute_run_cps_trend,
    match_feedback,
    review_runs,
)

logger = structlog.get_logger(__name__)

router = APIRouter(prefix="/api/analytics", tags=["analytics"])


# ============================================================================
# Request Models
# ============================================================================

class RunPayload(BaseModel):
    """A run with raw, unvalidated matches."""
    run_id: str
    display_name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    is_completed: bool | None = None
    matches: list[dict[str, Any]] = Field(default_factory=list)


class MatchesRequest(BaseModel):
    """A loose collection of raw matches."""
    matches: list[dict[str, Any]] = Field(default_factory=list)


class RunRequest(BaseModel):
    run: RunPayload


class RunsRequest(BaseModel):
    runs: list[RunPayload] = Field(default_factory=list)


class InsightsRequest(BaseModel):
    historical_runs: list[RunPayload] = Field(default_factory=list)
    active_run: RunPayload | None = None


class FeedbackRequest(BaseModel):
    run: RunPayload
    win_target: int | None = Field(default=None, ge=1)


# ============================================================================
# Response Models
# ============================================================================

class CpsResponse(BaseModel):
    """Composite Performance Score with weighted breakdown."""
    score: float | None
    goals_component: float
    xg_component: float
    rating_component: float
    conceded_component: float
    cards_component: float
    result_component: float
    game_count: int
    formula: str
    guards_failed: list[str] | None


class TrendPoint(BaseModel):
    run_id: str
    display_name: str
    score: float | None
    formula: str


class ChunkResponse(BaseModel):
    wins: int
    losses: int
    goals_for: int
    goals_against: int
    game_count: int


class RunChunksResponse(BaseModel):
    run_id: str
    display_name: str
    beginning: ChunkResponse
    middle: ChunkResponse
    end: ChunkResponse


class RunReviewResponse(BaseModel):
    run_id: str
    display_name: str
    game_count: int
    win_rate: float
    tier: str
    previous_win_rate: float | None
    change: str | None


class MatchNoteResponse(BaseModel):
    id: str
    kind: str
    message: str


class MatchFeedbackResponse(BaseModel):
    sequence_number: int
    notes: list[MatchNoteResponse]


class InsightResponse(BaseModel):
    id: str
    category: str
    priority: str
    confidence: int
    title: str
    description: str
    advice: str
    data_points: list[str]


# ============================================================================
# Helpers
# ============================================================================

def _invalid(e: ValidationError) -> HTTPException:
    logger.info("analytics_input_rejected", field=e.field, message=e.message)
    return HTTPException(status_code=422, detail=e.to_dict())


def _to_run(payload: RunPayload, config: EngineConfig, prefix: str = "run") -> Run:
    try:
        return normalize_run(payload.model_dump(), config)
    except ValidationError as e:
        raise _invalid(ValidationError(f"{prefix}.{e.field}", e.message)) from e


def _to_runs(payloads: list[RunPayload], config: EngineConfig, prefix: str) -> list[Run]:
    return [_to_run(p, config, f"{prefix}[{i}]") for i, p in enumerate(payloads)]


def _to_matches(raw_matches: list[dict[str, Any]]) -> list[MatchRecord]:
    matches = []
    for i, raw in enumerate(raw_matches):
        try:
            matches.append(normalize_match(raw))
        except ValidationError as e:
            raise _invalid(ValidationError(f"matches[{i}].{e.field}", e.message)) from e
    return matches


def match_to_dict(match: MatchRecord) -> dict[str, Any]:
    """Serialize a normalized match for JSON responses."""
    data = asdict(match)
    data["result"] = match.result.value
    data["context"] = match.context.value
    data["tags"] = sorted(match.tags)
    data["player_stats"] = [asdict(p) for p in match.player_stats]
    return data


# ============================================================================
# Endpoints
# ============================================================================

@router.post("/normalize")
async def normalize(request: MatchesRequest) -> list[dict[str, Any]]:
    """
    Validate raw matches and return their canonical form.

    The result is always derived from the score.
    """
    return [match_to_dict(m) for m in _to_matches(request.matches)]


@router.post("/cps", response_model=CpsResponse)
async def cps(
    request: MatchesRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Composite Performance Score for any collection of matches."""
    return compute_cps(_to_matches(request.matches), config).to_dict()


@router.post("/cps/trend", response_model=list[TrendPoint])
async def cps_trend(
    request: RunsRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Per-run CPS for trend charts."""
    runs = _to_runs(request.runs, config, "runs")
    return [p.to_dict() for p in compute_run_cps_trend(runs, config)]


@router.post("/chunks", response_model=RunChunksResponse)
async def chunks(
    request: RunRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Beginning, middle and end window records for one run."""
    return compute_chunk_stats(_to_run(request.run, config), config).to_dict()


@router.post("/chunks/extremes")
async def chunk_extremes(
    request: RunsRequest,
    config: EngineConfig = Depends(get_engine_config),
) -> dict[str, Any]:
    """All-time best and worst record for each window."""
    runs = _to_runs(request.runs, config, "runs")
    return compute_all_time_chunk_extremes(runs, config).to_dict()


@router.post("/insights", response_model=list[InsightResponse])
async def insights(
    request: InsightsRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Ranked insights over the match history."""
    historical = _to_runs(request.historical_runs, config, "historical_runs")
    active = None
    if request.active_run is not None:
        active = _to_run(request.active_run, config, "active_run")
    return [i.to_dict() for i in generate_insights(historical, active, config)]


@router.post("/summary")
async def summary(
    request: RunsRequest,
    config: EngineConfig = Depends(get_engine_config),
) -> dict[str, Any]:
    """Dashboard headline figures and match tag breakdown."""
    runs = _to_runs(request.runs, config, "runs")
    matches = [m for run in runs for m in run.matches]
    return {
        "dashboard": compute_dashboard_stats(runs).to_dict(),
        "tags": [t.to_dict() for t in compute_tag_stats(matches)],
    }


@router.post("/review", response_model=list[RunReviewResponse])
async def review(
    request: RunsRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Tier each run and compare it with the run before it."""
    runs = _to_runs(request.runs, config, "runs")
    return [r.to_dict() for r in review_runs(runs, config.insights.run_change_pct)]


@router.post("/feedback", response_model=list[MatchFeedbackResponse])
async def feedback(
    request: FeedbackRequest,
    config: EngineConfig = Depends(get_engine_config),
):
    """Feedback notes for every match of a run, as they stood when played."""
    matches = _to_run(request.run, config).matches
    return [
        {
            "sequence_number": match.sequence_number,
            "notes": [
                n.to_dict()
                for n in match_feedback(match, matches[:i], request.win_target)
            ],
        }
        for i, match in enumerate(matches)
    ]
