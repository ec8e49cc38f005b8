"""Insights module for FUTTrackr."""

from futtrackr.services.insights.engine import MAX_INSIGHTS, generate_insights
from futtrackr.services.insights.stats import InsightStats

__all__ = ["MAX_INSIGHTS", "generate_insights", "InsightStats"]
