"""Health check endpoints."""

from datetime import datetime, timezone

from fastapi import APIRouter
from pydantic import BaseModel

from futtrackr.config.engine import get_engine_config

router = APIRouter(tags=["health"])


class HealthResponse(BaseModel):
    """Health check response."""

    status: str
    timestamp: datetime
    run_match_cap: int


@router.get("/health", response_model=HealthResponse)
async def health():
    """
    Basic health check.

    Returns healthy if the service is running and its engine config loads.
    """
    return HealthResponse(
        status="healthy",
        timestamp=datetime.now(timezone.utc),
        run_match_cap=get_engine_config().run_match_cap,
    )
