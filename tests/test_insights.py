"""
Unit tests for the Insight & Strategy Generator.

These tests verify:
1. Rule-based fallback insights for each threshold
2. Strategy catalog lookup, preference promotion and capping
3. Strict parsing of collaborator payloads
4. Fallback on collaborator failure

The narrative collaborator is replaced with AsyncMock.

Usage:
    pytest tests/test_insights.py -v
"""
import json
import logging
import pytest
from unittest.mock import AsyncMock

from emotion_analytics.config import EngineSettings
from emotion_analytics.insights import SOURCE_FALLBACK, SOURCE_MODEL, InsightGenerator
from emotion_analytics.models import (
    EmotionCategory,
    EmotionStatistics,
    InsightType,
    StrategyCategory,
    UserPreferences,
)
from emotion_analytics.narrative import NarrativeUnavailableError


def _stats(stability=55.0, confidence=75.0, total=5, dominant=EmotionCategory.NEUTRAL):
    return EmotionStatistics(
        total_count=total,
        average_confidence=confidence,
        category_counts={dominant: total} if total else {},
        dominant_category=dominant,
        stability_score=stability,
    )


def _narrative(response=None, side_effect=None):
    narrative = AsyncMock()
    narrative.generate = AsyncMock(return_value=response, side_effect=side_effect)
    return narrative


@pytest.fixture
def generator(settings):
    return InsightGenerator(settings=settings)


INSIGHTS_JSON = json.dumps({
    "insights": [
        {
            "type": "positive",
            "title": "Steady Week",
            "description": "Your mood stayed steady across most conversations.",
            "recommendation": "Keep your evening wind-down routine.",
            "confidence": 88,
        }
    ]
})

STRATEGIES_JSON = json.dumps({
    "strategies": [
        {
            "id": f"strategy-{i}",
            "title": f"Strategy {i}",
            "description": "Take a short walk after lunch.",
            "category": "behavioral",
            "effectiveness": 80,
            "personalizedReason": "Movement has helped on your calmer days.",
        }
        for i in range(7)
    ]
})


class TestFallbackInsights:
    """Test rule-based insights."""

    @pytest.mark.asyncio
    async def test_empty_window_getting_started(self, generator):
        insights = await generator.generate_insights(EmotionStatistics())
        assert len(insights) == 1
        assert insights[0].title == "Getting Started"
        assert insights[0].type == InsightType.NEUTRAL

    @pytest.mark.asyncio
    async def test_all_positive_rules(self, generator):
        insights = await generator.generate_insights(_stats(stability=80, confidence=85, total=25))
        assert [i.title for i in insights] == [
            "Strong Emotional Stability",
            "Active Engagement",
            "High Emotional Awareness",
        ]
        assert all(i.type == InsightType.POSITIVE for i in insights)

    @pytest.mark.asyncio
    async def test_low_stability_concern(self, generator):
        insights = await generator.generate_insights(_stats(stability=30))
        assert insights[0].type == InsightType.CONCERN
        assert insights[0].title == "Emotional Variability"
        assert "30%" in insights[0].description

    @pytest.mark.asyncio
    async def test_no_rule_fired_still_returns_insight(self, generator):
        insights = await generator.generate_insights(_stats())
        assert len(insights) == 1
        assert insights[0].type == InsightType.NEUTRAL


class TestNarrativeInsights:
    """Test the collaborator path for insights."""

    @pytest.mark.asyncio
    async def test_uses_model_payload(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        narrative = _narrative(response=f"```json\n{INSIGHTS_JSON}\n```")
        generator = InsightGenerator(narrative, settings)

        result = await generator.generate_insights_with_source(_stats())

        assert result.source == SOURCE_MODEL
        assert [i.title for i in result.items] == ["Steady Week"]
        assert result.items[0].confidence == 88

    @pytest.mark.asyncio
    async def test_failure_falls_back(self, settings, caplog):
        settings = settings.model_copy(update={"narrative_enabled": True})
        narrative = _narrative(side_effect=NarrativeUnavailableError("down"))
        generator = InsightGenerator(narrative, settings)

        with caplog.at_level(logging.WARNING):
            result = await generator.generate_insights_with_source(_stats(stability=80))

        assert result.source == SOURCE_FALLBACK
        assert result.items[0].title == "Strong Emotional Stability"
        assert "[NARRATIVE]" in caplog.text

    @pytest.mark.asyncio
    async def test_malformed_json_falls_back(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        generator = InsightGenerator(_narrative(response="Here are some insights!"), settings)
        result = await generator.generate_insights_with_source(_stats())
        assert result.source == SOURCE_FALLBACK
        assert result.items

    @pytest.mark.asyncio
    async def test_nonconforming_payload_falls_back(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        bad = json.dumps({"insights": [{"type": "great", "title": "x", "description": "y",
                                        "recommendation": "z", "confidence": 90}]})
        generator = InsightGenerator(_narrative(response=bad), settings)
        result = await generator.generate_insights_with_source(_stats())
        assert result.source == SOURCE_FALLBACK

    @pytest.mark.asyncio
    async def test_empty_insight_list_falls_back(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        generator = InsightGenerator(_narrative(response='{"insights": []}'), settings)
        result = await generator.generate_insights_with_source(_stats())
        assert result.source == SOURCE_FALLBACK

    @pytest.mark.asyncio
    async def test_empty_window_skips_collaborator(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        narrative = _narrative(response=INSIGHTS_JSON)
        generator = InsightGenerator(narrative, settings)
        await generator.generate_insights(EmotionStatistics())
        narrative.generate.assert_not_called()

    @pytest.mark.asyncio
    async def test_prompt_sample_is_bounded(self, settings, make_message):
        """At most ten recent messages, each truncated, reach the collaborator."""
        settings = settings.model_copy(update={"narrative_enabled": True})
        narrative = _narrative(response=INSIGHTS_JSON)
        generator = InsightGenerator(narrative, settings)
        sample = [make_message("sad", text=f"{i:02d}" + "x" * 150, index=i) for i in range(15)]

        await generator.generate_insights(_stats(total=15), sample)

        prompt = narrative.generate.call_args.args[0]
        assert prompt.count('"preview"') == 10
        assert "x" * 98 in prompt
        assert "x" * 99 not in prompt
        assert "00xx" not in prompt
        assert "14xx" in prompt

    @pytest.mark.asyncio
    async def test_disabled_narrative_never_called(self, settings):
        narrative = _narrative(response=INSIGHTS_JSON)
        generator = InsightGenerator(narrative, settings)
        result = await generator.generate_insights_with_source(_stats())
        assert result.source == SOURCE_FALLBACK
        narrative.generate.assert_not_called()


class TestStrategies:
    """Test coping strategy generation."""

    @pytest.mark.asyncio
    async def test_empty_window_defaults(self, generator):
        strategies = await generator.generate_strategies(EmotionStatistics())
        assert [s.id for s in strategies] == ["breathing-basic", "mindfulness-present"]

    @pytest.mark.asyncio
    async def test_dominant_emotion_first(self, generator):
        strategies = await generator.generate_strategies(_stats(dominant=EmotionCategory.ANXIOUS))
        assert strategies[0].id == "anxiety-breathing"
        assert strategies[0].category == StrategyCategory.BREATHING
        assert "breathing-basic" in [s.id for s in strategies]

    @pytest.mark.asyncio
    async def test_sad_gets_behavioral(self, generator):
        strategies = await generator.generate_strategies(_stats(dominant=EmotionCategory.SAD))
        assert strategies[0].category == StrategyCategory.BEHAVIORAL

    @pytest.mark.asyncio
    async def test_lonely_gets_social(self, generator):
        strategies = await generator.generate_strategies(_stats(dominant=EmotionCategory.LONELY))
        assert strategies[0].category == StrategyCategory.SOCIAL

    @pytest.mark.asyncio
    async def test_preferences_promoted(self, generator):
        preferences = UserPreferences(preferred_categories=(StrategyCategory.SOCIAL,))
        strategies = await generator.generate_strategies(
            _stats(dominant=EmotionCategory.ANXIOUS), preferences
        )
        assert strategies[0].category == StrategyCategory.SOCIAL
        assert strategies[1].id == "anxiety-breathing"

    @pytest.mark.asyncio
    async def test_capped_and_unique(self, generator):
        preferences = UserPreferences(preferred_categories=tuple(StrategyCategory))
        strategies = await generator.generate_strategies(
            _stats(dominant=EmotionCategory.TIRED), preferences
        )
        ids = [s.id for s in strategies]
        assert len(strategies) == 5
        assert len(set(ids)) == len(ids)

    @pytest.mark.asyncio
    async def test_model_strategies_capped(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        generator = InsightGenerator(_narrative(response=STRATEGIES_JSON), settings)
        result = await generator.generate_strategies_with_source(_stats())
        assert result.source == SOURCE_MODEL
        assert len(result.items) == 5
        assert result.items[0].personalized_reason.startswith("Movement")

    @pytest.mark.asyncio
    async def test_model_failure_falls_back(self, settings):
        settings = settings.model_copy(update={"narrative_enabled": True})
        generator = InsightGenerator(_narrative(side_effect=TimeoutError()), settings)
        strategies = await generator.generate_strategies(_stats(dominant=EmotionCategory.ANGRY))
        assert strategies
        assert strategies[0].category == StrategyCategory.COGNITIVE


class TestGeneratorConstruction:
    """Test collaborator selection."""

    def test_no_key_means_no_collaborator(self):
        generator = InsightGenerator(settings=EngineSettings(narrative_api_key=""))
        assert generator.narrative is None

    def test_key_builds_gemini_client(self):
        generator = InsightGenerator(settings=EngineSettings(narrative_api_key="abc"))
        assert generator.narrative is not None
