"""Insight rule battery.

Each rule is a plain function ``rule(stats, thresholds)`` returning an
``Insight``, ``None``, or a sequence of insights. Rules never see each
other's output. Tier boundaries and confidences are fixed here; gates,
sample sizes and spreads come from ``InsightThresholds``.
"""

from futtrackr.config.engine import InsightThresholds
from futtrackr.models.domain import (
    Insight,
    InsightCategory,
    InsightPriority,
    MatchContext,
)
from futtrackr.services.aggregation import safe_div, win_rate
from futtrackr.services.insights.stats import BucketRecord, InsightStats

STRENGTH = InsightCategory.STRENGTH
WEAKNESS = InsightCategory.WEAKNESS
OPPORTUNITY = InsightCategory.OPPORTUNITY
THREAT = InsightCategory.THREAT

HIGH = InsightPriority.HIGH
MEDIUM = InsightPriority.MEDIUM
LOW = InsightPriority.LOW

# Win rate tiers
ELITE_WIN_RATE = 70
SOLID_WIN_RATE = 50
STRUGGLING_WIN_RATE = 35

# Per-game output tiers
HIGH_SCORING_GPG = 2.5
LOW_SCORING_GPG = 1.2
ELITE_DEFENSE_GAPG = 1.0
LEAKY_DEFENSE_GAPG = 2.5
DOMINANT_GD_PG = 1.5
NEGATIVE_GD_PG = -0.5

TOUGH_OPPONENT_SKILL = 7.5
EASY_OPPONENT_SKILL = 4.0

PENALTY_EXPERT_RATE = 70
PENALTY_POOR_RATE = 30

CONSISTENT_RUN_STDEV = 15
INCONSISTENT_RUN_STDEV = 30

MAX_UNDERPERFORMERS = 3


def _insight(
    insight_id: str,
    category: InsightCategory,
    priority: InsightPriority,
    confidence: int,
    title: str,
    description: str,
    advice: str,
    *data_points: str,
) -> Insight:
    return Insight(
        id=insight_id,
        category=category,
        priority=priority,
        confidence=confidence,
        title=title,
        description=description,
        advice=advice,
        data_points=tuple(data_points),
    )


def _pct(value: float) -> str:
    return f"{value:.1f}%"


def _record(label: str, bucket: BucketRecord) -> str:
    return f"{label}: {bucket.wins}/{bucket.games} ({_pct(bucket.win_rate)})"


def _both_sampled(a: BucketRecord, b: BucketRecord, t: InsightThresholds) -> bool:
    return a.games >= t.bucket_min_games and b.games >= t.bucket_min_games


# Results


def win_rate_tier(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_basic:
        return None
    rate = stats.win_rate
    points = (f"Win rate: {_pct(rate)}", f"Record: {stats.wins}W-{stats.total - stats.wins}L")

    if rate >= ELITE_WIN_RATE:
        return _insight(
            "win-rate-elite", STRENGTH, LOW, 95,
            "Elite Level Performance",
            f"Outstanding {_pct(rate)} win rate demonstrates exceptional skill and consistency.",
            "Keep the routine that got you here and push for higher divisions.",
            *points,
        )
    if rate >= SOLID_WIN_RATE:
        return _insight(
            "win-rate-solid", STRENGTH, MEDIUM, 85,
            "Solid Performance Level",
            f"{_pct(rate)} win rate shows good consistency with room for improvement.",
            "Review your losses for a repeated pattern; small fixes convert close games.",
            *points,
        )
    if rate >= STRUGGLING_WIN_RATE:
        return _insight(
            "win-rate-below-par", WEAKNESS, MEDIUM, 85,
            "Performance Improvement Needed",
            f"{_pct(rate)} win rate indicates clear areas for improvement.",
            "Focus on one weakness at a time and keep sessions short.",
            *points,
        )
    return _insight(
        "win-rate-struggling", WEAKNESS, HIGH, 90,
        "Results Are Falling Short",
        f"Only {_pct(rate)} of matches won so far.",
        "Rebuild fundamentals in lower-stakes modes before your next run.",
        *points,
    )


def recent_form(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    recent = stats.recent_matches(t.recent_window)
    if len(recent) < t.recent_min_sample:
        return None
    recent_rate = win_rate(recent)
    delta = recent_rate - stats.win_rate
    if abs(delta) < t.recent_drift_pct:
        return None

    points = (
        f"Last {len(recent)} games: {_pct(recent_rate)}",
        f"Overall: {_pct(stats.win_rate)}",
    )
    if delta > 0:
        return _insight(
            "recent-form-up", STRENGTH, MEDIUM, 80,
            "Excellent Recent Form",
            f"{_pct(recent_rate)} win rate in your last {len(recent)} games shows you're in peak form.",
            "Play while you're hot and keep the same setup.",
            *points,
        )
    return _insight(
        "recent-form-down", THREAT, HIGH, 85,
        "Form Slump Detected",
        f"Only {_pct(recent_rate)} wins in your last {len(recent)} games suggests a dip in form.",
        "Take a break, then review recent losses before playing again.",
        *points,
    )


def attack_output(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_basic:
        return None
    gpg = stats.goals_per_game
    point = f"Goals per game: {gpg:.2f}"

    if gpg >= HIGH_SCORING_GPG:
        return _insight(
            "attack-clinical", STRENGTH, LOW, 88,
            "Clinical Attacking Play",
            f"Averaging {gpg:.1f} goals per game shows excellent offensive capabilities.",
            "Keep creating high-quality chances; your finishing is a weapon.",
            point,
        )
    if gpg < LOW_SCORING_GPG:
        return _insight(
            "attack-blunt", WEAKNESS, MEDIUM, 85,
            "Attacking Improvement Required",
            f"Only {gpg:.1f} goals per game suggests difficulty creating and finishing chances.",
            "Work on chance creation and shoot from better positions.",
            point,
        )
    return None


def defensive_output(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_basic:
        return None
    gapg = stats.conceded_per_game
    point = f"Conceded per game: {gapg:.2f}"

    if gapg < ELITE_DEFENSE_GAPG:
        return _insight(
            "defense-elite", STRENGTH, LOW, 90,
            "Elite Defense",
            f"Conceding only {gapg:.1f} goals per game shows exceptional defensive organization.",
            "Your shape is working; build attacks from that foundation.",
            point,
        )
    if gapg >= LEAKY_DEFENSE_GAPG:
        return _insight(
            "defense-leaky", WEAKNESS, HIGH, 88,
            "Defensive Vulnerabilities",
            f"Conceding {gapg:.1f} goals per game indicates defensive weaknesses.",
            "Drop a deeper line and stop pulling defenders out of position.",
            point,
        )
    return None


def goal_difference(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_extended:
        return None
    gd = stats.goal_difference_per_game
    points = (
        f"Goal difference per game: {gd:+.2f}",
        f"Total: {stats.goals_for - stats.goals_against:+d}",
    )

    if gd >= DOMINANT_GD_PG:
        return _insight(
            "goal-difference-dominant", STRENGTH, LOW, 92,
            "Dominant Goal Difference",
            f"{gd:+.1f} goals per game shows you consistently outplay opponents.",
            "Maintain the balance between attack and defense.",
            *points,
        )
    if gd <= NEGATIVE_GD_PG:
        return _insight(
            "goal-difference-negative", WEAKNESS, HIGH, 88,
            "Negative Goal Difference",
            f"{gd:+.1f} goals per game indicates struggles in both scoring and defending.",
            "Tighten up at the back first; close losses are easier to turn around.",
            *points,
        )
    return None


def opponent_strength(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_extended or not stats.opponent_skills:
        return None
    skill = stats.average_opponent_skill
    point = f"Average opponent skill: {skill:.1f}/10"

    if skill >= TOUGH_OPPONENT_SKILL:
        return _insight(
            "opponents-elite", OPPORTUNITY, MEDIUM, 92,
            "Competing at Elite Level",
            f"Facing opponents averaging {skill:.1f}/10 skill shows high-level competition.",
            "Study how the best opponents break you down and borrow their ideas.",
            point,
        )
    if skill <= EASY_OPPONENT_SKILL:
        return _insight(
            "opponents-weak", OPPORTUNITY, MEDIUM, 85,
            "Consider Tougher Competition",
            f"Opponents averaging {skill:.1f}/10 skill may not challenge your development.",
            "Push into harder divisions to keep improving.",
            point,
        )
    return None


# Players


def top_rated_player(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    eligible = [
        p for p in stats.players.values() if p.appearances >= t.player_min_appearances
    ]
    if not eligible:
        return None
    best = min(eligible, key=lambda p: (-p.average_rating, p.key.name, p.key.position))
    return _insight(
        f"player-top-rated-{best.key.slug()}", STRENGTH, LOW, 85,
        f"Star Player: {best.key.name}",
        f"{best.key.name} ({best.key.position}) averages a {best.average_rating:.1f} rating "
        f"over {best.appearances} appearances.",
        "Build your tactics to get them on the ball in dangerous areas.",
        f"Average rating: {best.average_rating:.2f}",
        f"Appearances: {best.appearances}",
    )


def best_scorer(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    eligible = [
        p for p in stats.players.values()
        if p.appearances >= t.player_min_appearances
        and p.goals_per_game >= t.scorer_min_goals_per_game
    ]
    if not eligible:
        return None
    best = min(eligible, key=lambda p: (-p.goals_per_game, -p.goals, p.key.name, p.key.position))
    return _insight(
        f"player-top-scorer-{best.key.slug()}", STRENGTH, LOW, 82,
        f"Goal Machine: {best.key.name}",
        f"{best.key.name} scores {best.goals_per_game:.2f} goals per game "
        f"({best.goals} in {best.appearances}).",
        "Keep feeding your striker; their finishing is paying off.",
        f"Goals: {best.goals}",
        f"Assists: {best.assists} ({best.assists_per_game:.2f} per game)",
    )


def underperforming_veterans(stats: InsightStats, t: InsightThresholds) -> list[Insight]:
    veterans = [
        p for p in stats.players.values()
        if p.appearances >= t.veteran_min_appearances
        and p.average_rating < t.veteran_max_rating
    ]
    veterans.sort(key=lambda p: (p.average_rating, p.key.name, p.key.position))
    return [
        _insight(
            f"player-underperforming-{p.key.slug()}", WEAKNESS, MEDIUM, 78,
            f"Underperformer: {p.key.name}",
            f"{p.key.name} ({p.key.position}) averages only {p.average_rating:.1f} "
            f"across {p.appearances} appearances.",
            "Consider a replacement or a different role for this player.",
            f"Average rating: {p.average_rating:.2f}",
            f"Appearances: {p.appearances}",
        )
        for p in veterans[:MAX_UNDERPERFORMERS]
    ]


# Match context


def opponent_rage_quits(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_extended:
        return None
    rate = stats.context_rate(MatchContext.RAGE_QUIT)
    if rate < t.rage_quit_min_rate:
        return None
    return _insight(
        "opponents-rage-quit", STRENGTH, LOW, 75,
        "Opponents Can't Handle You",
        f"{_pct(rate)} of your opponents quit before the final whistle.",
        "Early pressure breaks opponents; keep starting fast.",
        f"Rage quits: {stats.contexts[MatchContext.RAGE_QUIT]}",
    )


def disrupted_matches(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.total < t.min_games_extended:
        return None
    rate = stats.context_rate(MatchContext.DISCONNECT, MatchContext.HACKER)
    if rate < t.disruption_min_rate:
        return None
    return _insight(
        "matches-disrupted", THREAT, MEDIUM, 70,
        "Frequent Disrupted Matches",
        f"{_pct(rate)} of matches were hit by disconnects or cheating opponents.",
        "Check your connection and report hackers; these results are out of your hands.",
        f"Disconnects: {stats.contexts[MatchContext.DISCONNECT]}",
        f"Hackers: {stats.contexts[MatchContext.HACKER]}",
    )


def penalty_shootouts(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    pens = stats.penalties
    if pens.games < t.penalty_min_games:
        return None
    rate = pens.win_rate
    point = _record("Shootouts", pens)

    if rate >= PENALTY_EXPERT_RATE:
        return _insight(
            "penalties-expert", STRENGTH, LOW, 85,
            "Penalty Shootout Expert",
            f"{rate:.0f}% success rate in penalty shootouts shows excellent composure.",
            "Don't fear a draw; shootouts are in your favor.",
            point,
        )
    if rate <= PENALTY_POOR_RATE:
        return _insight(
            "penalties-poor", WEAKNESS, MEDIUM, 80,
            "Penalty Shootout Improvement Needed",
            f"{rate:.0f}% penalty success rate suggests room for improvement under pressure.",
            "Practise shootouts and try to win matches before they get there.",
            point,
        )
    return None


# Paired bucket comparisons


def time_of_day(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    sampled = {
        name: bucket
        for name, bucket in stats.time_of_day.items()
        if bucket.games >= t.bucket_min_games
    }
    if len(sampled) < 2:
        return None
    # Ties resolve alphabetically
    ordered = sorted(sampled.items(), key=lambda kv: (-kv[1].win_rate, kv[0]))
    best_name, best = ordered[0]
    worst_name, worst = ordered[-1]
    if best.win_rate - worst.win_rate < t.time_of_day_spread:
        return None
    return _insight(
        "time-of-day", OPPORTUNITY, MEDIUM, 75,
        f"You Play Best in the {best_name.title()}",
        f"{_pct(best.win_rate)} win rate in the {best_name} against "
        f"{_pct(worst.win_rate)} in the {worst_name}.",
        f"Schedule important matches for the {best_name}.",
        *(_record(name.title(), bucket) for name, bucket in ordered),
    )


def server_quality(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    good, poor = stats.good_server, stats.poor_server
    if not _both_sampled(good, poor, t):
        return None
    if good.win_rate - poor.win_rate < t.server_quality_spread:
        return None
    return _insight(
        "server-quality", THREAT, MEDIUM, 72,
        "Bad Servers Are Costing You",
        f"{_pct(good.win_rate)} win rate on good servers drops to "
        f"{_pct(poor.win_rate)} on poor ones.",
        "Avoid playing when the connection feels off.",
        _record("Good servers", good),
        _record("Poor servers", poor),
    )


def stress_level(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    calm, stressed = stats.calm, stats.stressed
    if not _both_sampled(calm, stressed, t):
        return None
    if calm.win_rate - stressed.win_rate < t.stress_spread:
        return None
    return _insight(
        "stress-impact", WEAKNESS, MEDIUM, 78,
        "Stress Hurts Your Results",
        f"You win {_pct(calm.win_rate)} when calm but only "
        f"{_pct(stressed.win_rate)} when stressed.",
        "Take a short break after a frustrating loss before queuing again.",
        _record("Calm", calm),
        _record("Stressed", stressed),
    )


def game_duration(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    short, long = stats.short_games, stats.long_games
    if not _both_sampled(short, long, t):
        return None
    spread = short.win_rate - long.win_rate
    if abs(spread) < t.duration_spread:
        return None
    better = "shorter" if spread > 0 else "longer"
    return _insight(
        "game-duration", OPPORTUNITY, MEDIUM, 70,
        f"You Do Better in {better.title()} Games",
        f"{_pct(short.win_rate)} win rate in short games against "
        f"{_pct(long.win_rate)} in long ones.",
        "Start fast and kill games early." if spread > 0
        else "Stay patient; you get stronger as games go on.",
        _record("Short", short),
        _record("Long", long),
    )


def possession_style(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    high, low = stats.high_possession, stats.low_possession
    if not _both_sampled(high, low, t):
        return None
    spread = high.win_rate - low.win_rate
    if abs(spread) < t.possession_spread:
        return None
    style = "possession" if spread > 0 else "counter-attacking"
    return _insight(
        "possession-style", OPPORTUNITY, LOW, 72,
        f"Your Best Style: {style.title()}",
        f"{_pct(high.win_rate)} win rate with high possession against "
        f"{_pct(low.win_rate)} with low possession.",
        f"Lean into a {style} game plan.",
        _record("High possession", high),
        _record("Low possession", low),
    )


def cross_play(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    on, off = stats.cross_play_on, stats.cross_play_off
    if not _both_sampled(on, off, t):
        return None
    spread = on.win_rate - off.win_rate
    if abs(spread) < t.cross_play_spread:
        return None
    better = "on" if spread > 0 else "off"
    return _insight(
        "cross-play", OPPORTUNITY, LOW, 68,
        f"Cross-Play Works Better {better.title()}",
        f"{_pct(on.win_rate)} win rate with cross-play on against "
        f"{_pct(off.win_rate)} with it off.",
        f"Keep cross-play {better} for your run matches.",
        _record("Cross-play on", on),
        _record("Cross-play off", off),
    )


# Expected goals


def xg_attack(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.xg_for_matches < t.xg_min_matches:
        return None
    margin = safe_div(stats.xg_for_goals - stats.xg_for_total, stats.xg_for_matches)
    points = (
        f"Goals: {stats.xg_for_goals}",
        f"xG: {stats.xg_for_total:.1f}",
    )
    if margin >= t.xg_margin_per_game:
        return _insight(
            "xg-attack-overperforming", STRENGTH, LOW, 80,
            "Finishing Above Expectation",
            f"You score {margin:+.2f} goals per game more than your chances suggest.",
            "Your finishing is elite; keep shooting from those positions.",
            *points,
        )
    if margin <= -t.xg_margin_per_game:
        return _insight(
            "xg-attack-underperforming", WEAKNESS, MEDIUM, 80,
            "Wasteful Finishing",
            f"You score {abs(margin):.2f} goals per game fewer than your chances suggest.",
            "Practise finishing and choose higher-percentage shots.",
            *points,
        )
    return None


def xg_defense(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.xg_against_matches < t.xg_min_matches:
        return None
    margin = safe_div(
        stats.xg_against_total - stats.xg_against_goals, stats.xg_against_matches
    )
    points = (
        f"Conceded: {stats.xg_against_goals}",
        f"xG against: {stats.xg_against_total:.1f}",
    )
    if margin >= t.xg_margin_per_game:
        return _insight(
            "xg-defense-overperforming", STRENGTH, LOW, 78,
            "Conceding Less Than Expected",
            f"You concede {margin:.2f} goals per game fewer than opponents' chances suggest.",
            "Your goalkeeper and last-ditch defending are saving you points.",
            *points,
        )
    if margin <= -t.xg_margin_per_game:
        return _insight(
            "xg-defense-underperforming", WEAKNESS, MEDIUM, 78,
            "Conceding Soft Goals",
            f"You concede {abs(margin):.2f} goals per game more than opponents' chances suggest.",
            "Review the goals you concede; low-quality chances are going in.",
            *points,
        )
    return None


# Runs and tags


def current_run(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if len(stats.active_matches) < t.active_run_min_games:
        return None
    if len(stats.historical_matches) < t.active_run_min_games:
        return None
    delta = stats.active_win_rate - stats.historical_win_rate
    if abs(delta) < t.active_run_delta_pct:
        return None

    points = (
        f"This run: {_pct(stats.active_win_rate)}",
        f"History: {_pct(stats.historical_win_rate)}",
    )
    if delta > 0:
        return _insight(
            "current-run-up", STRENGTH, MEDIUM, 80,
            "Best Run Form",
            f"{stats.active_run_name} is running {delta:.1f} points above your usual win rate.",
            "Ride the momentum and finish the run strong.",
            *points,
        )
    return _insight(
        "current-run-down", THREAT, HIGH, 82,
        "This Run Is Slipping",
        f"{stats.active_run_name} is {abs(delta):.1f} points below your usual win rate.",
        "Reset between matches; one bad spell doesn't have to define the run.",
        *points,
    )


def run_over_run(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    pair = stats.latest_runs
    if pair is None:
        return None
    previous, latest = pair
    if min(previous.games, latest.games) < t.run_change_min_games:
        return None
    delta = latest.win_rate - previous.win_rate

    points = (
        f"{latest.display_name}: {_pct(latest.win_rate)}",
        f"{previous.display_name}: {_pct(previous.win_rate)}",
    )
    if delta > t.run_change_pct:
        return _insight(
            "run-improved", STRENGTH, MEDIUM, 78,
            "Big Step Up From Last Run",
            f"{latest.display_name} is {delta:.1f} points ahead of {previous.display_name}.",
            "Note what changed since last run and keep doing it.",
            *points,
        )
    if delta < -t.run_change_pct:
        return _insight(
            "run-declined", THREAT, MEDIUM, 78,
            "Down On Last Run",
            f"{latest.display_name} is {abs(delta):.1f} points behind {previous.display_name}.",
            "Work out what changed since last run: squad, formation or when you play.",
            *points,
        )
    return None


def comebacks(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.comeback_count < t.comeback_min_count:
        return None
    return _insight(
        "comebacks", STRENGTH, LOW, 80,
        "Comeback Specialist",
        f"You've turned {stats.comeback_count} matches around after falling behind.",
        "Your resilience is a weapon; never give up on a game.",
        f"Comebacks: {stats.comeback_count}",
    )


def bottled_leads(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if stats.bottled_count < t.bottled_min_count:
        return None
    return _insight(
        "bottled-leads", WEAKNESS, MEDIUM, 76,
        "Leads Slipping Away",
        f"You've thrown away a winning position in {stats.bottled_count} matches.",
        "When ahead, slow the game down and protect the lead.",
        f"Bottled leads: {stats.bottled_count}",
    )


def run_consistency(stats: InsightStats, t: InsightThresholds) -> Insight | None:
    if len(stats.run_records) < t.consistency_min_runs:
        return None
    deviation = stats.run_consistency
    point = f"Run-to-run variation: {_pct(deviation)}"

    if deviation <= CONSISTENT_RUN_STDEV:
        return _insight(
            "runs-consistent", STRENGTH, LOW, 88,
            "Remarkable Consistency",
            f"Low run-to-run variation ({_pct(deviation)}) shows excellent mental strength.",
            "Your preparation works; keep the same routine.",
            point,
        )
    if deviation >= INCONSISTENT_RUN_STDEV:
        return _insight(
            "runs-inconsistent", WEAKNESS, MEDIUM, 82,
            "Performance Inconsistency",
            f"High run-to-run variation ({_pct(deviation)}) suggests inconsistent performance levels.",
            "Find what your best runs had in common and repeat it.",
            point,
        )
    return None


# Evaluation order; ties in ranking fall back to this order
RULES = (
    win_rate_tier,
    recent_form,
    attack_output,
    defensive_output,
    goal_difference,
    opponent_strength,
    top_rated_player,
    best_scorer,
    underperforming_veterans,
    opponent_rage_quits,
    disrupted_matches,
    penalty_shootouts,
    time_of_day,
    server_quality,
    stress_level,
    game_duration,
    possession_style,
    cross_play,
    xg_attack,
    xg_defense,
    current_run,
    run_over_run,
    comebacks,
    bottled_leads,
    run_consistency,
)
