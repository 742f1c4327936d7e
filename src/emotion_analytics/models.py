"""
Data Model for the Emotional Analytics Engine.

All types here are transient, request-scoped values computed over message
batches supplied by the caller. None of them are persisted by the engine;
each exposes ``to_dict()`` for JSON serialization.
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, StrictStr, ValidationError, field_validator

logger = logging.getLogger(__name__)


class InvalidMessageError(ValueError):
    """Raised when a message handed to the engine has an invalid shape."""


class EmotionCategory(str, Enum):
    """Closed set of emotion labels.

    Definition order is the fixed tie-break order used by the classifier
    and the aggregator.
    """

    HAPPY = "happy"
    SAD = "sad"
    ANXIOUS = "anxious"
    ANGRY = "angry"
    LONELY = "lonely"
    CONFUSED = "confused"
    HOPEFUL = "hopeful"
    TIRED = "tired"
    EXCITED = "excited"
    NEUTRAL = "neutral"


CATEGORY_ORDER = tuple(EmotionCategory)


class RiskLevel(str, Enum):
    """Crisis risk tiers, lowest first."""

    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class Trend(str, Enum):
    """Direction of a progress metric between two periods."""

    IMPROVING = "improving"
    STABLE = "stable"
    DECLINING = "declining"


class InsightType(str, Enum):
    POSITIVE = "positive"
    CONCERN = "concern"
    NEUTRAL = "neutral"


class StrategyCategory(str, Enum):
    BREATHING = "breathing"
    MINDFULNESS = "mindfulness"
    COGNITIVE = "cognitive"
    BEHAVIORAL = "behavioral"
    SOCIAL = "social"


class UrgencyLevel(str, Enum):
    STABLE = "stable"
    MONITOR = "monitor"
    URGENT = "urgent"


def parse_category(value: Any) -> EmotionCategory:
    """Coerce a stored label into an EmotionCategory or reject it."""
    if isinstance(value, EmotionCategory):
        return value
    try:
        return EmotionCategory(str(value).strip().lower())
    except ValueError:
        raise InvalidMessageError(f"Unknown emotion category: {value!r}") from None


# ============================================================================
# Input boundary
# ============================================================================

# Messages dated further ahead than this are treated as impossible.
MAX_CLOCK_SKEW = timedelta(days=1)
EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def check_timestamp(value: datetime) -> datetime:
    """Treat naive timestamps as UTC and reject pre-epoch or future ones."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    if value < EPOCH:
        raise ValueError("timestamp precedes the Unix epoch")
    if value > datetime.now(timezone.utc) + MAX_CLOCK_SKEW:
        raise ValueError("timestamp is in the future")
    return value


class RawMessage(BaseModel):
    """A user message as supplied by the storage layer."""

    model_config = ConfigDict(frozen=True)

    timestamp: datetime
    text: StrictStr

    @field_validator("timestamp")
    @classmethod
    def _check_timestamp(cls, value: datetime) -> datetime:
        return check_timestamp(value)


def validate_raw_message(data: Any) -> RawMessage:
    """
    Validate a ``{timestamp, text}`` pair.

    Args:
        data: A RawMessage, a mapping, or any object with timestamp/text attributes

    Returns:
        A validated RawMessage

    Raises:
        InvalidMessageError: If the pair does not have the expected shape
    """
    if isinstance(data, RawMessage):
        return data
    if not isinstance(data, dict):
        data = {
            "timestamp": getattr(data, "timestamp", None),
            "text": getattr(data, "text", None),
        }
    try:
        return RawMessage.model_validate(data)
    except ValidationError as e:
        raise InvalidMessageError(f"Invalid message: {e.errors()[0]['msg']}") from e


# ============================================================================
# Engine outputs
# ============================================================================


@dataclass(frozen=True)
class LabeledMessage:
    """A user message with its detected emotion."""

    timestamp: datetime
    text: str
    emotion: EmotionCategory
    confidence: int  # 0..100

    def __post_init__(self):
        # Stored labels enter the engine here without passing through RawMessage.
        if not isinstance(self.timestamp, datetime):
            raise InvalidMessageError(
                f"Message timestamp must be a datetime, got {type(self.timestamp).__name__}"
            )
        if not isinstance(self.text, str):
            raise InvalidMessageError(f"Message text must be a string, got {type(self.text).__name__}")
        if isinstance(self.confidence, bool) or not isinstance(self.confidence, int):
            raise InvalidMessageError(f"Confidence must be an integer, got {self.confidence!r}")
        if not 0 <= self.confidence <= 100:
            raise InvalidMessageError(f"Confidence out of range: {self.confidence}")
        try:
            timestamp = check_timestamp(self.timestamp)
        except ValueError as e:
            raise InvalidMessageError(f"Invalid message: {e}") from e
        object.__setattr__(self, "timestamp", timestamp)
        object.__setattr__(self, "emotion", parse_category(self.emotion))

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "timestamp": self.timestamp.isoformat(),
            "text": self.text,
            "emotion": self.emotion.value,
            "confidence": self.confidence,
        }


@dataclass
class EmotionStatistics:
    """Aggregate view over a window of labeled messages."""

    total_count: int = 0
    average_confidence: float = 0.0
    category_counts: Dict[EmotionCategory, int] = field(default_factory=dict)
    dominant_category: EmotionCategory = EmotionCategory.NEUTRAL
    stability_score: float = 50.0

    @property
    def distinct_categories(self) -> int:
        return sum(1 for count in self.category_counts.values() if count > 0)

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "totalCount": self.total_count,
            "averageConfidence": round(self.average_confidence, 2),
            "categoryCounts": {c.value: n for c, n in self.category_counts.items()},
            "dominantCategory": self.dominant_category.value,
            "stabilityScore": round(self.stability_score, 2),
            "distinctCategories": self.distinct_categories,
        }


@dataclass
class CrisisAssessment:
    """Tiered crisis risk for a recent-message window."""

    risk_level: RiskLevel
    score: int
    factors: List[str] = field(default_factory=list)
    recommendations: List[str] = field(default_factory=list)
    urgent: bool = False

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "riskLevel": self.risk_level.value,
            "score": self.score,
            "factors": list(self.factors),
            "recommendations": list(self.recommendations),
            "urgent": self.urgent,
        }


@dataclass
class ProgressMetric:
    """One tracked dimension compared across two periods."""

    name: str
    current_value: float
    previous_value: float
    trend: Trend
    change_percentage: int  # magnitude only, direction is in trend
    insight: str = ""

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "name": self.name,
            "currentValue": self.current_value,
            "previousValue": self.previous_value,
            "trend": self.trend.value,
            "changePercentage": self.change_percentage,
            "insight": self.insight,
        }


@dataclass
class Insight:
    """A human-readable observation about the user's emotional patterns."""

    type: InsightType
    title: str
    description: str
    recommendation: str
    confidence: int

    def to_dict(self) -> dict:
        return {
            "type": self.type.value,
            "title": self.title,
            "description": self.description,
            "recommendation": self.recommendation,
            "confidence": self.confidence,
        }


@dataclass
class CopingStrategy:
    """A suggested coping technique."""

    id: str
    title: str
    description: str
    category: StrategyCategory
    effectiveness: int  # 0..100
    personalized_reason: str

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "description": self.description,
            "category": self.category.value,
            "effectiveness": self.effectiveness,
            "personalizedReason": self.personalized_reason,
        }


@dataclass(frozen=True)
class UserPreferences:
    """Read-only personalization settings owned by the account layer."""

    response_tone: str = "supportive"
    preferred_categories: tuple = ()

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "UserPreferences":
        """Build preferences from a loosely-shaped account document."""
        data = data or {}
        preferred = []
        for value in data.get("preferredCategories") or data.get("preferred_categories") or []:
            try:
                preferred.append(StrategyCategory(str(value).lower()))
            except ValueError:
                logger.debug(f"[PREFERENCES] Ignoring unknown strategy category {value!r}")
        tone = data.get("responseTone") or data.get("response_tone") or cls.response_tone
        return cls(response_tone=str(tone), preferred_categories=tuple(preferred))

    def to_dict(self) -> dict:
        return {
            "responseTone": self.response_tone,
            "preferredCategories": [c.value for c in self.preferred_categories],
        }


@dataclass
class MoodPatternSummary:
    """Positive/negative balance and direction within one window."""

    positive_percentage: int = 33
    neutral_percentage: int = 34
    negative_percentage: int = 33
    sadness_score: int = 50
    wellbeing_index: int = 50
    urgency_level: UrgencyLevel = UrgencyLevel.STABLE
    trend_direction: Trend = Trend.STABLE

    def to_dict(self) -> dict:
        return {
            "positivePercentage": self.positive_percentage,
            "neutralPercentage": self.neutral_percentage,
            "negativePercentage": self.negative_percentage,
            "sadnessScore": self.sadness_score,
            "wellbeingIndex": self.wellbeing_index,
            "urgencyLevel": self.urgency_level.value,
            "trendDirection": self.trend_direction.value,
        }


@dataclass
class TriggerSummary:
    """Recurring life themes mentioned across a window."""

    trigger_counts: Dict[str, int] = field(default_factory=dict)
    top_triggers: List[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "triggerCounts": dict(self.trigger_counts),
            "topTriggers": list(self.top_triggers),
        }


@dataclass
class AnalyticsReport:
    """Everything the presentation layer needs for the insights dashboard."""

    statistics: EmotionStatistics
    previous_statistics: EmotionStatistics
    insights: List[Insight]
    coping_strategies: List[CopingStrategy]
    crisis_assessment: CrisisAssessment
    progress_metrics: List[ProgressMetric]
    mood_patterns: MoodPatternSummary
    triggers: TriggerSummary
    labeled_messages: List[LabeledMessage] = field(default_factory=list)
    narrative_source: str = "fallback"
    generated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def chart_series(self, limit: int = 30) -> List[dict]:
        """Last ``limit`` points for the confidence/emotion chart."""
        points = self.labeled_messages[-limit:]
        return [
            {
                "date": m.timestamp.date().isoformat(),
                "emotion": m.emotion.value,
                "confidence": m.confidence,
                "index": i,
            }
            for i, m in enumerate(points)
        ]

    def to_dict(self) -> dict:
        """Convert to dictionary for serialization."""
        return {
            "statistics": self.statistics.to_dict(),
            "previousStatistics": self.previous_statistics.to_dict(),
            "insights": [i.to_dict() for i in self.insights],
            "copingStrategies": [s.to_dict() for s in self.coping_strategies],
            "crisisAssessment": self.crisis_assessment.to_dict(),
            "progressMetrics": [m.to_dict() for m in self.progress_metrics],
            "moodPatterns": self.mood_patterns.to_dict(),
            "triggers": self.triggers.to_dict(),
            "emotionData": self.chart_series(),
            "narrativeSource": self.narrative_source,
            "generatedAt": self.generated_at.isoformat(),
        }
