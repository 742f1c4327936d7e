"""
Insight & Strategy Generator.

Produces human-readable insights and personalised coping strategies from
window statistics. The narrative collaborator is asked first; its answer must
match a strict JSON shape. Any failure (no collaborator, timeout, transport
error, empty or malformed payload) falls back to deterministic, rule-based
content, so callers always receive a non-empty, well-shaped list.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, replace
from typing import Generic, List, Literal, Optional, Sequence, Type, TypeVar

from pydantic import BaseModel, ConfigDict, Field

from .config import EngineSettings, get_settings
from .models import (
    CopingStrategy,
    EmotionCategory,
    EmotionStatistics,
    Insight,
    InsightType,
    LabeledMessage,
    StrategyCategory,
    UserPreferences,
)
from .narrative import GeminiNarrativeClient, NarrativeGenerator, strip_json_fences

logger = logging.getLogger(__name__)

SOURCE_MODEL = "model"
SOURCE_FALLBACK = "fallback"

T = TypeVar("T")
P = TypeVar("P", bound=BaseModel)


# ============================================================================
# Collaborator payloads
# ============================================================================


class InsightPayload(BaseModel):
    """One insight as the collaborator must return it."""

    model_config = ConfigDict(extra="ignore")

    type: Literal["positive", "concern", "neutral"]
    title: str = Field(min_length=1, max_length=80)
    description: str = Field(min_length=1)
    recommendation: str = Field(min_length=1)
    confidence: int = Field(ge=0, le=100)


class InsightsPayload(BaseModel):
    insights: List[InsightPayload] = Field(min_length=1)


class StrategyPayload(BaseModel):
    """One coping strategy as the collaborator must return it."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=80)
    description: str = Field(min_length=1)
    category: Literal["breathing", "mindfulness", "cognitive", "behavioral", "social"]
    effectiveness: int = Field(ge=0, le=100)
    personalized_reason: str = Field(alias="personalizedReason", min_length=1)


class StrategiesPayload(BaseModel):
    strategies: List[StrategyPayload] = Field(min_length=1)


@dataclass
class GeneratedContent(Generic[T]):
    """Generated items plus where they came from (``model`` or ``fallback``)."""

    items: List[T]
    source: str


# ============================================================================
# Fallback content
# ============================================================================

GETTING_STARTED = Insight(
    type=InsightType.NEUTRAL,
    title="Getting Started",
    description="Start chatting to begin building your mental health insights.",
    recommendation="Share your thoughts and feelings to help us understand your emotional patterns.",
    confidence=100,
)

KEEP_SHARING = Insight(
    type=InsightType.NEUTRAL,
    title="Patterns Still Emerging",
    description="Your emotional patterns are still taking shape and no strong trend stands out yet.",
    recommendation="Keep sharing regularly so clearer patterns can emerge over time.",
    confidence=70,
)

DEFAULT_STRATEGIES = (
    CopingStrategy(
        id="breathing-basic",
        title="4-7-8 Breathing Technique",
        description=(
            "Inhale for 4 counts, hold for 7, exhale for 8. Repeat 4 times to activate "
            "your parasympathetic nervous system and reduce anxiety."
        ),
        category=StrategyCategory.BREATHING,
        effectiveness=85,
        personalized_reason=(
            "Breathing exercises are universally effective for stress management "
            "and emotional regulation."
        ),
    ),
    CopingStrategy(
        id="mindfulness-present",
        title="5-4-3-2-1 Grounding",
        description=(
            "Notice 5 things you see, 4 you can touch, 3 you hear, 2 you smell, 1 you taste. "
            "This brings you into the present moment."
        ),
        category=StrategyCategory.MINDFULNESS,
        effectiveness=80,
        personalized_reason=(
            "Grounding techniques help manage overwhelming emotions by focusing on the present."
        ),
    ),
)

# Keyed by dominant emotion category
EMOTION_STRATEGIES = {
    EmotionCategory.ANXIOUS: (
        CopingStrategy(
            id="anxiety-breathing",
            title="Box Breathing for Anxiety",
            description="Breathe in for 4, hold for 4, out for 4, hold for 4. Repeat 5 times when feeling anxious.",
            category=StrategyCategory.BREATHING,
            effectiveness=90,
            personalized_reason="Your anxiety patterns show this breathing technique would be particularly effective.",
        ),
    ),
    EmotionCategory.SAD: (
        CopingStrategy(
            id="mood-behavioral",
            title="Gentle Movement Therapy",
            description="Take a 10-minute walk or do light stretching. Physical movement can help lift mood naturally.",
            category=StrategyCategory.BEHAVIORAL,
            effectiveness=85,
            personalized_reason="Based on your mood patterns, gentle physical activity can help improve emotional state.",
        ),
    ),
    EmotionCategory.ANGRY: (
        CopingStrategy(
            id="anger-reframe",
            title="Pause and Reframe",
            description=(
                "When anger rises, pause for ten slow breaths, then write down the thought "
                "driving it and one other way to see the situation."
            ),
            category=StrategyCategory.COGNITIVE,
            effectiveness=85,
            personalized_reason="Frustration shows up often in your messages, and reframing helps loosen its grip.",
        ),
    ),
    EmotionCategory.LONELY: (
        CopingStrategy(
            id="connection-reach-out",
            title="Reach Out to Someone",
            description="Send a short message or call one person today, even just to say hello or share a small moment.",
            category=StrategyCategory.SOCIAL,
            effectiveness=85,
            personalized_reason="You've mentioned feeling alone, and small moments of connection can ease loneliness.",
        ),
    ),
    EmotionCategory.TIRED: (
        CopingStrategy(
            id="rest-restorative",
            title="Restorative Rest Break",
            description="Schedule a 20-minute screen-free break today. Lie down, rest your eyes, or step outside for fresh air.",
            category=StrategyCategory.BEHAVIORAL,
            effectiveness=80,
            personalized_reason="Your messages point to fatigue, so deliberate rest can help restore your energy.",
        ),
    ),
    EmotionCategory.CONFUSED: (
        CopingStrategy(
            id="clarity-journaling",
            title="Mindful Journaling for Clarity",
            description="Spend 10 minutes writing whatever is on your mind without judging it, then circle what matters most.",
            category=StrategyCategory.MINDFULNESS,
            effectiveness=80,
            personalized_reason="Writing thoughts down can untangle the uncertainty that comes through in your messages.",
        ),
    ),
    EmotionCategory.HAPPY: (
        CopingStrategy(
            id="gratitude-savoring",
            title="Savor the Good Moments",
            description="At the end of the day, write down three things that went well and what made them meaningful.",
            category=StrategyCategory.MINDFULNESS,
            effectiveness=80,
            personalized_reason="You're often in a positive place, and savoring it helps those feelings last.",
        ),
    ),
    EmotionCategory.EXCITED: (
        CopingStrategy(
            id="energy-channel",
            title="Channel Your Energy",
            description="Pick one project you're excited about and plan a concrete first step you can take this week.",
            category=StrategyCategory.BEHAVIORAL,
            effectiveness=80,
            personalized_reason="Your excitement is a resource, and directing it keeps momentum going.",
        ),
    ),
    EmotionCategory.HOPEFUL: (
        CopingStrategy(
            id="hope-small-goal",
            title="Set One Small Goal",
            description="Choose one achievable goal for the next few days and note each step you complete.",
            category=StrategyCategory.COGNITIVE,
            effectiveness=80,
            personalized_reason="Your hopeful outlook is a good base for building progress one step at a time.",
        ),
    ),
}

# One per category, used to honour stated preferences
PREFERENCE_STRATEGIES = {
    StrategyCategory.BREATHING: CopingStrategy(
        id="breathing-extended-exhale",
        title="Extended Exhale Breathing",
        description="Breathe in for 4 counts and out for 6 to 8 counts. Continue for two minutes.",
        category=StrategyCategory.BREATHING,
        effectiveness=80,
        personalized_reason="You've said breathing exercises work well for you.",
    ),
    StrategyCategory.MINDFULNESS: CopingStrategy(
        id="mindfulness-body-scan",
        title="Body Scan Meditation",
        description="Slowly move your attention from your feet to your head, noticing sensations without changing them.",
        category=StrategyCategory.MINDFULNESS,
        effectiveness=80,
        personalized_reason="You've said mindfulness practices work well for you.",
    ),
    StrategyCategory.COGNITIVE: CopingStrategy(
        id="cognitive-thought-record",
        title="Thought Record",
        description="Write down a difficult thought, the evidence for and against it, and a more balanced alternative.",
        category=StrategyCategory.COGNITIVE,
        effectiveness=80,
        personalized_reason="You've said cognitive techniques work well for you.",
    ),
    StrategyCategory.BEHAVIORAL: CopingStrategy(
        id="behavioral-pleasant-activity",
        title="Schedule a Pleasant Activity",
        description="Put one small enjoyable activity in your calendar today and treat it as an appointment.",
        category=StrategyCategory.BEHAVIORAL,
        effectiveness=80,
        personalized_reason="You've said activity-based techniques work well for you.",
    ),
    StrategyCategory.SOCIAL: CopingStrategy(
        id="social-check-in",
        title="Regular Check-In with a Friend",
        description="Agree on a regular time to check in with a friend or family member, even for five minutes.",
        category=StrategyCategory.SOCIAL,
        effectiveness=80,
        personalized_reason="You've said connecting with others works well for you.",
    ),
}


INSIGHTS_PROMPT = """Analyze this user's mental health data and provide 4-5 key insights.

STATISTICS:
{statistics}

RECENT MESSAGES (most recent last):
{sample}

Respond with JSON only, in exactly this shape:
{{
  "insights": [
    {{
      "type": "positive|concern|neutral",
      "title": "Brief insight title (max 50 chars)",
      "description": "Detailed analysis (100-200 chars)",
      "recommendation": "Specific actionable advice (100-200 chars)",
      "confidence": 75
    }}
  ]
}}

Focus on emotional patterns, stability, strengths and areas needing attention.
Make insights specific, actionable and encouraging."""

STRATEGIES_PROMPT = """Generate 5 personalized coping strategies for this user.

STATISTICS:
{statistics}

PREFERENCES:
{preferences}

Respond with JSON only, in exactly this shape:
{{
  "strategies": [
    {{
      "id": "strategy-1",
      "title": "Strategy name (max 40 chars)",
      "description": "Clear implementation steps (150-250 chars)",
      "category": "breathing|mindfulness|cognitive|behavioral|social",
      "effectiveness": 85,
      "personalizedReason": "Why this works for this user (100-200 chars)"
    }}
  ]
}}

Strategies must be specific to these emotional patterns, practical and evidence-based.
Use a {tone} tone."""


class InsightGenerator:
    """
    Builds insights and coping strategies.

    Args:
        narrative: Collaborator used for the primary path. When omitted, a
            Gemini client is created if narrative generation is enabled and
            an API key is configured; otherwise only fallback content is used.
        settings: Thresholds and narrative settings
    """

    def __init__(
        self,
        narrative: Optional[NarrativeGenerator] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.settings = settings or get_settings()
        if narrative is None and self.settings.narrative_enabled and self.settings.narrative_api_key:
            narrative = GeminiNarrativeClient(self.settings)
        self.narrative = narrative if self.settings.narrative_enabled else None

    # ------------------------------------------------------------------
    # Primary path
    # ------------------------------------------------------------------

    async def _ask(self, prompt: str, payload_type: Type[P]) -> Optional[P]:
        """Ask the collaborator and strictly parse its answer. None on any failure."""
        if self.narrative is None:
            return None
        try:
            text = await asyncio.wait_for(
                self.narrative.generate(prompt),
                timeout=self.settings.narrative_timeout_seconds,
            )
            if not isinstance(text, str) or not text.strip():
                raise ValueError("empty response")
            return payload_type.model_validate_json(strip_json_fences(text))
        except Exception as e:
            logger.warning(
                f"[NARRATIVE] {payload_type.__name__} request failed, using fallback: "
                f"{type(e).__name__}"
            )
            return None

    def _statistics_context(self, stats: EmotionStatistics) -> str:
        return json.dumps(stats.to_dict(), indent=2)

    def _sample_context(self, sample: Optional[Sequence[LabeledMessage]]) -> str:
        if not sample:
            return "[]"
        recent = sorted(sample, key=lambda m: m.timestamp)[-self.settings.narrative_sample_size:]
        limit = self.settings.narrative_preview_chars
        return json.dumps(
            [
                {
                    "date": m.timestamp.date().isoformat(),
                    "emotion": m.emotion.value,
                    "confidence": m.confidence,
                    "preview": m.text[:limit],
                }
                for m in recent
            ],
            indent=2,
        )

    # ------------------------------------------------------------------
    # Insights
    # ------------------------------------------------------------------

    def fallback_insights(self, stats: EmotionStatistics) -> List[Insight]:
        """Rule-based insights; never empty."""
        if stats.total_count == 0:
            return [replace(GETTING_STARTED)]

        s = self.settings
        stability = round(stats.stability_score)
        awareness = round(stats.average_confidence)
        insights = []

        if stats.stability_score > s.stable_insight_threshold:
            insights.append(Insight(
                type=InsightType.POSITIVE,
                title="Strong Emotional Stability",
                description=(
                    f"Your emotional patterns show {stability}% stability, "
                    "indicating good emotional regulation."
                ),
                recommendation="Continue your current coping strategies and maintain this positive trend.",
                confidence=85,
            ))
        elif stats.stability_score < s.variable_insight_threshold:
            insights.append(Insight(
                type=InsightType.CONCERN,
                title="Emotional Variability",
                description=(
                    f"Your emotions show high variability ({stability}% stability). "
                    "This might indicate stress."
                ),
                recommendation="Consider practicing mindfulness or speaking with a mental health professional.",
                confidence=80,
            ))

        if stats.total_count > s.engagement_insight_threshold:
            insights.append(Insight(
                type=InsightType.POSITIVE,
                title="Active Engagement",
                description=(
                    f"You've shared {stats.total_count} messages, showing commitment "
                    "to your mental health journey."
                ),
                recommendation="Keep up this excellent engagement with self-reflection and growth.",
                confidence=90,
            ))

        if stats.average_confidence > s.awareness_insight_threshold:
            insights.append(Insight(
                type=InsightType.POSITIVE,
                title="High Emotional Awareness",
                description=(
                    f"Your {awareness}% average confidence suggests strong emotional self-awareness."
                ),
                recommendation="Use this self-awareness to continue building emotional intelligence.",
                confidence=85,
            ))

        if not insights:
            insights.append(replace(KEEP_SHARING))
        return insights

    async def generate_insights_with_source(
        self,
        stats: EmotionStatistics,
        sample: Optional[Sequence[LabeledMessage]] = None,
    ) -> GeneratedContent[Insight]:
        if stats.total_count == 0:
            return GeneratedContent([replace(GETTING_STARTED)], SOURCE_FALLBACK)

        prompt = INSIGHTS_PROMPT.format(
            statistics=self._statistics_context(stats),
            sample=self._sample_context(sample),
        )
        payload = await self._ask(prompt, InsightsPayload)
        if payload is None:
            insights = self.fallback_insights(stats)
            logger.info(f"[INSIGHTS] {len(insights)} fallback insights")
            return GeneratedContent(insights, SOURCE_FALLBACK)

        insights = [
            Insight(
                type=InsightType(p.type),
                title=p.title,
                description=p.description,
                recommendation=p.recommendation,
                confidence=p.confidence,
            )
            for p in payload.insights
        ]
        logger.info(f"[INSIGHTS] {len(insights)} insights from narrative model")
        return GeneratedContent(insights, SOURCE_MODEL)

    async def generate_insights(
        self,
        stats: EmotionStatistics,
        sample: Optional[Sequence[LabeledMessage]] = None,
    ) -> List[Insight]:
        """
        Generate insights for a window.

        Args:
            stats: Window statistics
            sample: Recent labeled messages given to the collaborator as context

        Returns:
            Non-empty list of Insight
        """
        return (await self.generate_insights_with_source(stats, sample)).items

    # ------------------------------------------------------------------
    # Coping strategies
    # ------------------------------------------------------------------

    def fallback_strategies(
        self,
        stats: EmotionStatistics,
        preferences: Optional[UserPreferences] = None,
    ) -> List[CopingStrategy]:
        """
        Catalog-based strategies.

        Entries for the dominant emotion come first, then one entry per
        preferred category, then the universal defaults. Strategies in a
        preferred category are moved to the front, duplicates are dropped and
        the list is capped.
        """
        preferred = list(preferences.preferred_categories) if preferences else []

        candidates: List[CopingStrategy] = []
        if stats.total_count > 0:
            candidates.extend(EMOTION_STRATEGIES.get(stats.dominant_category, ()))
        candidates.extend(PREFERENCE_STRATEGIES[c] for c in preferred)
        candidates.extend(DEFAULT_STRATEGIES)

        seen = set()
        unique = []
        for strategy in candidates:
            if strategy.id not in seen:
                seen.add(strategy.id)
                unique.append(replace(strategy))

        unique.sort(key=lambda st: 0 if st.category in preferred else 1)
        return unique[:self.settings.max_strategies]

    async def generate_strategies_with_source(
        self,
        stats: EmotionStatistics,
        preferences: Optional[UserPreferences] = None,
    ) -> GeneratedContent[CopingStrategy]:
        preferences = preferences or UserPreferences()
        if stats.total_count == 0:
            return GeneratedContent(self.fallback_strategies(stats, preferences), SOURCE_FALLBACK)

        prompt = STRATEGIES_PROMPT.format(
            statistics=self._statistics_context(stats),
            preferences=json.dumps(preferences.to_dict(), indent=2),
            tone=preferences.response_tone,
        )
        payload = await self._ask(prompt, StrategiesPayload)
        if payload is None:
            strategies = self.fallback_strategies(stats, preferences)
            logger.info(f"[INSIGHTS] {len(strategies)} fallback strategies")
            return GeneratedContent(strategies, SOURCE_FALLBACK)

        strategies = [
            CopingStrategy(
                id=p.id,
                title=p.title,
                description=p.description,
                category=StrategyCategory(p.category),
                effectiveness=p.effectiveness,
                personalized_reason=p.personalized_reason,
            )
            for p in payload.strategies[:self.settings.max_strategies]
        ]
        logger.info(f"[INSIGHTS] {len(strategies)} strategies from narrative model")
        return GeneratedContent(strategies, SOURCE_MODEL)

    async def generate_strategies(
        self,
        stats: EmotionStatistics,
        preferences: Optional[UserPreferences] = None,
    ) -> List[CopingStrategy]:
        """
        Generate coping strategies for a window.

        Args:
            stats: Window statistics
            preferences: Read-only user preferences

        Returns:
            Non-empty list of at most ``max_strategies`` CopingStrategy
        """
        return (await self.generate_strategies_with_source(stats, preferences)).items
