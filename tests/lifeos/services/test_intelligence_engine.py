"""
Tests for IntelligenceEngine.

Covers:
- Pillar health from event statistics (scores, trends, status, messages)
- Placeholder pillars and pillars without data
- Overall score weighting and weekly change ratchet
- Insight generation, impact classification and action templates
- Week forecast heuristics and headline selection
- Full LifeIntelligence snapshot
"""

from datetime import timedelta

import pytest

from lifeos.config.constants import COACH_MESSAGES, Pillar
from lifeos.lib.exceptions import ConfigurationError
from lifeos.models.intelligence import (
    ConfidenceLevel,
    HealthStatus,
    Impact,
    Pattern,
    PatternType,
    PillarHealth,
    Productivity,
    Trend,
)
from lifeos.services.intelligence_engine import IntelligenceEngine, score_status, trend_from_delta
from lifeos.services.pattern_miner import PatternMiner
from lifeos.services.repositories import Repositories

# =============================================================================
# Fixtures & helpers
# =============================================================================


@pytest.fixture
def miner(event_store, repositories, clock):
    return PatternMiner(event_store, repositories.patterns, clock=clock)


@pytest.fixture
def engine(event_store, miner, repositories, clock):
    return IntelligenceEngine(
        event_store,
        miner,
        repositories.insights,
        repositories.last_overall_score,
        clock=clock,
    )


def health(pillar, score, trend=Trend.STABLE, measured=True):
    return PillarHealth(
        pillar=pillar,
        score=score,
        trend=trend,
        status=score_status(score),
        message="",
        measured=measured,
    )


def make_pattern(clock, event_a, event_b, correlation, occurrences, pillar_a=Pillar.HEALTH, pillar_b=Pillar.DECISIONS):
    return Pattern(
        id=f"pattern_{event_a}_{event_b}",
        type=PatternType.CAUSAL,
        pillar_a=pillar_a,
        pillar_b=pillar_b,
        event_a=event_a,
        event_b=event_b,
        correlation=correlation,
        occurrences=occurrences,
        confidence=ConfidenceLevel.MEDIUM,
        strength=correlation,
        description=f"{event_a} -> {event_b}",
        created_at=clock(),
        last_seen=clock(),
    )


async def add_series(event_store, pillar, metric, values):
    for value in values:
        await event_store.add(pillar, metric, value)


# =============================================================================
# Pillar Health
# =============================================================================


@pytest.mark.asyncio
async def test_pillar_health_order_and_placeholders(engine):
    result = await engine.calculate_pillar_health()

    assert [h.pillar for h in result] == [
        Pillar.HEALTH,
        Pillar.PROCRASTINATION,
        Pillar.DECISIONS,
        Pillar.RELATIONSHIPS,
        Pillar.SIMULATOR,
    ]
    relationships, simulator = result[3], result[4]
    assert (relationships.score, relationships.trend, relationships.status) == (
        8.0, Trend.STABLE, HealthStatus.EXCELLENT,
    )
    assert (simulator.score, simulator.trend, simulator.status) == (
        7.2, Trend.IMPROVING, HealthStatus.GOOD,
    )
    assert not relationships.measured and not simulator.measured


@pytest.mark.asyncio
async def test_pillar_without_data_scores_zero(engine):
    """No data means a zero score flagged as unmeasured, not a failure."""
    result = await engine.calculate_pillar_health()

    for pillar_health in result[:3]:
        assert pillar_health.score == 0.0
        assert pillar_health.trend == Trend.STABLE
        assert pillar_health.measured is False
    assert result[2].message == "No decisions data yet"


@pytest.mark.asyncio
async def test_health_from_mood(engine, event_store):
    await add_series(event_store, Pillar.HEALTH, "mood", [8, 8, 9, 9])

    result = await engine.calculate_pillar_health()

    health_pillar = result[0]
    assert health_pillar.score == pytest.approx(8.5)
    assert health_pillar.trend == Trend.IMPROVING
    assert health_pillar.status == HealthStatus.EXCELLENT
    assert health_pillar.message == "Excellent health streak!"
    assert health_pillar.measured is True


@pytest.mark.asyncio
async def test_procrastination_is_inverted_avoidance(engine, event_store):
    """Rising avoidance lowers the score and reads as declining."""
    await add_series(event_store, Pillar.PROCRASTINATION, "avoidance_rate", [2, 2, 6, 6])

    procrastination = (await engine.calculate_pillar_health())[1]

    assert procrastination.score == pytest.approx(6.0)
    assert procrastination.trend == Trend.DECLINING
    assert procrastination.status == HealthStatus.WARNING
    assert procrastination.message == "Procrastination increasing"


@pytest.mark.asyncio
async def test_procrastination_score_floor(engine, event_store):
    await add_series(event_store, Pillar.PROCRASTINATION, "avoidance_rate", [12, 12])

    procrastination = (await engine.calculate_pillar_health())[1]

    assert procrastination.score == 0.0
    assert procrastination.status == HealthStatus.CRITICAL


@pytest.mark.asyncio
async def test_decision_messages(engine, event_store):
    await add_series(event_store, Pillar.DECISIONS, "decision_quality", [7, 7, 7])

    decisions = (await engine.calculate_pillar_health())[2]

    assert decisions.score == pytest.approx(7.0)
    assert decisions.status == HealthStatus.GOOD
    assert decisions.message == "Good decision quality"


@pytest.mark.parametrize(
    "score,expected",
    [
        (9.0, HealthStatus.EXCELLENT),
        (8.5, HealthStatus.EXCELLENT),
        (7.0, HealthStatus.GOOD),
        (5.5, HealthStatus.WARNING),
        (5.4, HealthStatus.CRITICAL),
    ],
)
def test_score_status_thresholds(score, expected):
    assert score_status(score) == expected


def test_trend_threshold():
    assert trend_from_delta(0.6) == Trend.IMPROVING
    assert trend_from_delta(0.5) == Trend.STABLE
    assert trend_from_delta(-0.6) == Trend.DECLINING
    assert trend_from_delta(0.6, higher_is_better=False) == Trend.DECLINING


# =============================================================================
# Overall Score
# =============================================================================


def test_overall_score_weighted(event_store, miner, repositories):
    """8, 6, 7 with weights 0.25, 0.25, 0.5 -> 7.0."""
    engine = IntelligenceEngine(
        event_store,
        miner,
        repositories.insights,
        repositories.last_overall_score,
        weights={Pillar.HEALTH: 0.25, Pillar.DECISIONS: 0.25, Pillar.RELATIONSHIPS: 0.5},
    )

    score = engine.calculate_overall_score([
        health(Pillar.HEALTH, 8),
        health(Pillar.DECISIONS, 6),
        health(Pillar.RELATIONSHIPS, 7),
    ])

    assert score == 7.0


@pytest.mark.parametrize("value", [0.0, 3.3, 6.0, 7.5, 10.0])
def test_overall_score_of_equal_pillars(engine, value):
    pillar_health = [health(pillar, value) for pillar in Pillar]

    assert engine.calculate_overall_score(pillar_health) == pytest.approx(value)


def test_overall_score_rounds_to_one_decimal(engine):
    pillar_health = [
        health(Pillar.HEALTH, 7.33),
        health(Pillar.PROCRASTINATION, 5.0),
        health(Pillar.DECISIONS, 6.0),
        health(Pillar.RELATIONSHIPS, 8.0),
        health(Pillar.SIMULATOR, 7.2),
    ]

    # 7.33*0.25 + 5*0.15 + 6*0.2 + 8*0.25 + 7.2*0.15 = 6.8625
    assert engine.calculate_overall_score(pillar_health) == 6.9


def test_overall_score_empty(engine):
    assert engine.calculate_overall_score([]) == 0.0


def test_weights_must_sum_to_one(event_store, miner, repositories):
    with pytest.raises(ConfigurationError):
        IntelligenceEngine(
            event_store,
            miner,
            repositories.insights,
            repositories.last_overall_score,
            weights={Pillar.HEALTH: 0.5, Pillar.DECISIONS: 0.2},
        )


# =============================================================================
# Weekly Change
# =============================================================================


@pytest.mark.asyncio
async def test_weekly_change_ratchet(engine, repositories):
    """First call returns 0; each call compares with the previous score."""
    assert await engine.calculate_weekly_change(7.0) == 0.0
    assert await engine.calculate_weekly_change(7.6) == 0.6
    assert await engine.calculate_weekly_change(7.1) == -0.5
    assert await repositories.last_overall_score.get() == 7.1


@pytest.mark.asyncio
async def test_weekly_change_with_unreadable_store(failing_store, event_store, miner):
    repos = Repositories(failing_store)
    await repos.last_overall_score.set(5.0)
    engine = IntelligenceEngine(event_store, miner, repos.insights, repos.last_overall_score)

    failing_store.fail_reads = True
    assert await engine.calculate_weekly_change(8.0) == 0.0

    failing_store.fail_reads = False
    assert await repos.last_overall_score.get() == 5.0
    assert len(repos.degradations) == 1


# =============================================================================
# Insights
# =============================================================================


@pytest.mark.asyncio
async def test_insights_from_mined_pattern(engine, miner, event_store, clock, repositories):
    now = clock()
    for i in range(10):
        await event_store.add(Pillar.HEALTH, "sleep", 6.0, timestamp=now - timedelta(hours=10 * i))
        await event_store.add(
            Pillar.PROCRASTINATION, "avoidance_rate", 7.0, timestamp=now - timedelta(hours=10 * i + 5)
        )
    await miner.mine_patterns()

    insights = await engine.generate_insights()

    assert len(insights) == 1
    insight = insights[0]
    assert insight.message == insight.pattern.description
    assert insight.impact == Impact.POSITIVE
    assert insight.actions == ["Set sleep goal: 7+ hours", "Track sleep-productivity correlation"]
    assert insight.score == insight.pattern.correlation * insight.pattern.occurrences
    assert [i.id for i in await repositories.insights.load()] == [insight.id]


@pytest.mark.asyncio
async def test_insights_top_n_by_score(event_store, miner, repositories, clock):
    await repositories.patterns.save([
        make_pattern(clock, "a", "b", 0.6, 10),   # 6.0
        make_pattern(clock, "c", "d", 0.9, 20),   # 18.0
        make_pattern(clock, "e", "f", 0.8, 10),   # 8.0
    ])
    engine = IntelligenceEngine(
        event_store, miner, repositories.insights, repositories.last_overall_score, insight_limit=2,
    )

    insights = await engine.generate_insights()

    assert [i.pattern.event_a for i in insights] == ["c", "e"]


@pytest.mark.asyncio
async def test_insights_replace_stored_list(engine, repositories, clock):
    await repositories.patterns.save([make_pattern(clock, "a", "b", 0.6, 10)])
    await engine.generate_insights()

    await repositories.patterns.save([])
    assert await engine.generate_insights() == []
    assert await engine.get_insights() == []


def test_generic_actions(clock):
    pattern = make_pattern(clock, "conflict", "decision_quality_low", 0.6, 6, pillar_a=Pillar.RELATIONSHIPS)

    assert IntelligenceEngine.generate_actions(pattern) == [
        "Monitor conflict in relationships",
        "Track impact on decision_quality_low in decisions",
    ]


def test_template_actions_match_on_keywords(clock):
    pattern = make_pattern(clock, "job_stress_high", "health_decline", 0.6, 6, pillar_a=Pillar.SIMULATOR)

    assert IntelligenceEngine.generate_actions(pattern)[0] == "Negotiate work-life balance"


@pytest.mark.parametrize(
    "correlation,expected",
    [
        (0.95, Impact.POSITIVE),
        (0.7, Impact.NEUTRAL),
        (0.5, Impact.NEUTRAL),
        (0.3, Impact.NEUTRAL),
        (0.2, Impact.NEGATIVE),
    ],
)
def test_classify_impact(correlation, expected):
    assert IntelligenceEngine.classify_impact(correlation) == expected


# =============================================================================
# Forecast & Headline
# =============================================================================


def test_forecast_good_week():
    forecast = IntelligenceEngine.generate_week_forecast([
        health(Pillar.HEALTH, 8.5),
        health(Pillar.PROCRASTINATION, 7.0),
        health(Pillar.SIMULATOR, 7.2, trend=Trend.IMPROVING),
    ])

    assert forecast.energy == 8.5
    assert forecast.mood == 8.5
    assert forecast.productivity == Productivity.HIGH
    assert forecast.career == Trend.IMPROVING
    assert forecast.risks == []
    assert forecast.opportunities == [
        "High energy - tackle big tasks",
        "Great mood - make important decisions",
    ]


def test_forecast_rough_week():
    forecast = IntelligenceEngine.generate_week_forecast([
        health(Pillar.HEALTH, 4.0),
        health(Pillar.PROCRASTINATION, 3.0),
    ])

    assert forecast.productivity == Productivity.LOW
    assert forecast.career == Trend.STABLE
    assert forecast.risks == [
        "Low energy - burnout risk",
        "Low mood - postpone big decisions",
        "High procrastination",
    ]
    assert forecast.opportunities == []


def test_forecast_defaults_without_pillars():
    forecast = IntelligenceEngine.generate_week_forecast([])

    assert forecast.energy == 7.0
    assert forecast.productivity == Productivity.LOW
    assert forecast.risks == ["High procrastination"]


def test_forecast_medium_productivity():
    forecast = IntelligenceEngine.generate_week_forecast([health(Pillar.PROCRASTINATION, 5.5)])

    assert forecast.productivity == Productivity.MEDIUM


def test_headline_is_deterministic():
    pillar_health = [health(Pillar.HEALTH, 9.0)]

    first = IntelligenceEngine.choose_headline(9.0, 0.0, pillar_health)

    assert first == IntelligenceEngine.choose_headline(9.0, 0.0, pillar_health)
    assert first in COACH_MESSAGES["high_score"]


def test_headline_categories():
    assert IntelligenceEngine.choose_headline(6.0, 0.4, []) in COACH_MESSAGES["improving"]
    assert IntelligenceEngine.choose_headline(6.0, -0.4, []) in COACH_MESSAGES["declining"]

    critical = [health(Pillar.HEALTH, 2.0), health(Pillar.DECISIONS, 3.0)]
    assert IntelligenceEngine.choose_headline(6.0, 0.4, critical) in COACH_MESSAGES["burnout_risk"]


def test_headline_ignores_unmeasured_pillars():
    """Pillars without data do not raise a burnout alert."""
    unmeasured = [
        health(Pillar.HEALTH, 0.0, measured=False),
        health(Pillar.DECISIONS, 0.0, measured=False),
    ]

    assert IntelligenceEngine.choose_headline(3.5, 0.0, unmeasured) not in COACH_MESSAGES["burnout_risk"]


# =============================================================================
# Snapshot
# =============================================================================


@pytest.mark.asyncio
async def test_generate_life_intelligence(engine, event_store, clock):
    await add_series(event_store, Pillar.HEALTH, "mood", [8, 8, 8])
    await add_series(event_store, Pillar.PROCRASTINATION, "avoidance_rate", [2, 2, 2])
    await add_series(event_store, Pillar.DECISIONS, "decision_quality", [8, 8, 8])

    snapshot = await engine.generate_life_intelligence()

    # 8*0.25 + 8*0.15 + 8*0.2 + 8.0*0.25 + 7.2*0.15 = 7.88
    assert snapshot.overall_score == 7.9
    assert snapshot.weekly_change == 0.0
    assert snapshot.top_insight is None
    assert snapshot.smart_actions == []
    assert snapshot.updated_at == clock()
    assert snapshot.health_for(Pillar.HEALTH).score == pytest.approx(8.0)
    assert snapshot.week_forecast.productivity == Productivity.HIGH
    assert snapshot.headline

    data = snapshot.to_dict()
    assert data["overall_score"] == 7.9
    assert len(data["pillar_health"]) == 5
