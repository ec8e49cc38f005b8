"""Insight engine.

Builds the shared aggregate table, runs every rule, then ranks and
truncates the results.

Ranking:
1. Priority (HIGH > MEDIUM > LOW)
2. Confidence, descending
3. Rule evaluation order
"""

from collections.abc import Callable, Iterable, Sequence

import structlog

from futtrackr.config.engine import EngineConfig, InsightThresholds, get_engine_config
from futtrackr.models.domain import Insight, Run
from futtrackr.services.insights.rules import RULES
from futtrackr.services.insights.stats import InsightStats

logger = structlog.get_logger(__name__)

MAX_INSIGHTS = 12

Rule = Callable[[InsightStats, InsightThresholds], Insight | Iterable[Insight] | None]


def _as_list(produced: Insight | Iterable[Insight] | None) -> list[Insight]:
    if produced is None:
        return []
    if isinstance(produced, Insight):
        return [produced]
    return list(produced)


def run_rules(
    stats: InsightStats,
    thresholds: InsightThresholds,
    rules: Sequence[Rule] = RULES,
) -> list[Insight]:
    """
    Evaluate rules in order, collecting their insights.

    A rule that raises is logged and contributes nothing; the rest still run.
    """
    insights = []
    for rule in rules:
        try:
            insights.extend(_as_list(rule(stats, thresholds)))
        except Exception as e:
            logger.warning("insight_rule_failed", rule=rule.__name__, error=str(e))
    return insights


def rank_insights(insights: Sequence[Insight], limit: int = MAX_INSIGHTS) -> list[Insight]:
    """Sort by priority then confidence, keeping rule order for ties."""
    ranked = sorted(insights, key=lambda i: (-i.priority.rank, -i.confidence))
    return ranked[:limit]


def generate_insights(
    historical_runs: Sequence[Run],
    active_run: Run | None = None,
    config: EngineConfig | None = None,
) -> list[Insight]:
    """
    Generate ranked insights from match history.

    Args:
        historical_runs: Past runs, oldest first
        active_run: The run in progress, if any
        config: Engine configuration; defaults from defaults.yaml

    Returns:
        At most MAX_INSIGHTS insights, highest priority first
    """
    config = config or get_engine_config()
    thresholds = config.insights

    stats = InsightStats.build(historical_runs, active_run, thresholds)
    produced = run_rules(stats, thresholds)
    insights = rank_insights(produced)

    logger.info(
        "insights_generated",
        matches=stats.total,
        produced=len(produced),
        returned=len(insights),
    )
    return insights
