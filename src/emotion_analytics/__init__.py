"""
Emotional Analytics Engine.

Turns batches of chat messages into emotion labels, crisis risk tiers,
period-over-period progress metrics, and narrative insights with coping
strategies.
"""

from .aggregator import StatisticsAggregator, aggregate, analyze_mood_patterns, extract_triggers
from .classifier import EmotionClassifier, classify
from .config import EngineSettings, get_settings
from .crisis import CrisisRiskAssessor, assess, detect_crisis_language
from .insights import InsightGenerator
from .lexicon import Lexicon, LexiconError, default_lexicon
from .models import (
    AnalyticsReport,
    CopingStrategy,
    CrisisAssessment,
    EmotionCategory,
    EmotionStatistics,
    Insight,
    InvalidMessageError,
    LabeledMessage,
    ProgressMetric,
    RiskLevel,
    Trend,
    UserPreferences,
)
from .narrative import GeminiNarrativeClient, NarrativeGenerator, NarrativeUnavailableError
from .pipeline import AnalyticsPipeline, window_bounds
from .progress import ProgressComparator, compare

__all__ = [
    "AnalyticsPipeline",
    "AnalyticsReport",
    "CopingStrategy",
    "CrisisAssessment",
    "CrisisRiskAssessor",
    "EmotionCategory",
    "EmotionClassifier",
    "EmotionStatistics",
    "EngineSettings",
    "GeminiNarrativeClient",
    "Insight",
    "InsightGenerator",
    "InvalidMessageError",
    "LabeledMessage",
    "Lexicon",
    "LexiconError",
    "NarrativeGenerator",
    "NarrativeUnavailableError",
    "ProgressComparator",
    "ProgressMetric",
    "RiskLevel",
    "StatisticsAggregator",
    "Trend",
    "UserPreferences",
    "aggregate",
    "analyze_mood_patterns",
    "assess",
    "classify",
    "compare",
    "default_lexicon",
    "detect_crisis_language",
    "extract_triggers",
    "get_settings",
    "window_bounds",
]
