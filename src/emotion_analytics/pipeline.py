"""
Analytics Pipeline.

Runs the full dashboard analysis for one user: labels both windows, then
fans out to statistics, crisis assessment, progress comparison and narrative
content. Invalid input is rejected as a whole; any other component failure
degrades to that component's safe default so the rest of the report is still
delivered.
"""

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, List, Optional, Sequence, TypeVar

from .aggregator import StatisticsAggregator
from .classifier import EmotionClassifier
from .config import EngineSettings, get_settings
from .crisis import EMPTY_WINDOW_RECOMMENDATIONS, CrisisRiskAssessor
from .insights import SOURCE_FALLBACK, SOURCE_MODEL, GeneratedContent, InsightGenerator
from .lexicon import Lexicon, default_lexicon
from .models import (
    AnalyticsReport,
    CrisisAssessment,
    EmotionStatistics,
    InvalidMessageError,
    LabeledMessage,
    MoodPatternSummary,
    RiskLevel,
    TriggerSummary,
    UserPreferences,
)
from .narrative import NarrativeGenerator
from .progress import ProgressComparator

logger = logging.getLogger(__name__)

T = TypeVar("T")


@dataclass(frozen=True)
class WindowBounds:
    """Current and previous analysis windows of equal length."""

    current_start: datetime
    current_end: datetime
    previous_start: datetime
    previous_end: datetime

    def to_dict(self) -> dict:
        return {
            "currentStart": self.current_start.isoformat(),
            "currentEnd": self.current_end.isoformat(),
            "previousStart": self.previous_start.isoformat(),
            "previousEnd": self.previous_end.isoformat(),
        }


def window_bounds(end: datetime, days: int) -> WindowBounds:
    """
    Compute the current window ``[end - days, end]`` and the previous window
    of the same length immediately before it.

    Raises:
        ValueError: If days is not positive
    """
    if days < 1:
        raise ValueError(f"Window length must be at least one day, got {days}")
    span = timedelta(days=days)
    current_start = end - span
    return WindowBounds(
        current_start=current_start,
        current_end=end,
        previous_start=current_start - span,
        previous_end=current_start,
    )


def _fallback_crisis() -> CrisisAssessment:
    return CrisisAssessment(
        risk_level=RiskLevel.LOW,
        score=0,
        factors=[],
        recommendations=list(EMPTY_WINDOW_RECOMMENDATIONS),
        urgent=False,
    )


class AnalyticsPipeline:
    """Wires the engine components together for one dashboard request."""

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        settings: Optional[EngineSettings] = None,
        narrative: Optional[NarrativeGenerator] = None,
    ):
        self.lexicon = lexicon or default_lexicon()
        self.settings = settings or get_settings()
        self.classifier = EmotionClassifier(self.lexicon, self.settings)
        self.aggregator = StatisticsAggregator(self.lexicon)
        self.assessor = CrisisRiskAssessor(self.lexicon, self.settings)
        self.comparator = ProgressComparator(self.lexicon, self.settings)
        self.generator = InsightGenerator(narrative, self.settings)

    def _safe(self, component: str, fn: Callable[[], T], default: Callable[[], T]) -> T:
        try:
            return fn()
        except InvalidMessageError:
            raise
        except Exception:
            logger.warning(f"[PIPELINE] {component} failed, using default", exc_info=True)
            return default()

    def label(self, messages: Sequence) -> List[LabeledMessage]:
        """
        Label a window, keeping messages that already carry a label.

        Returns:
            Labeled messages sorted by timestamp
        """
        unlabeled = [m for m in messages if not isinstance(m, LabeledMessage)]
        labeled = iter(self.classifier.classify_batch(unlabeled))
        result = [m if isinstance(m, LabeledMessage) else next(labeled) for m in messages]
        return sorted(result, key=lambda m: m.timestamp)

    async def run(
        self,
        current: Sequence,
        previous: Sequence = (),
        preferences: Optional[UserPreferences] = None,
    ) -> AnalyticsReport:
        """
        Analyze the current window against the previous one.

        Args:
            current: Raw ``{timestamp, text}`` pairs (or LabeledMessage) for the current window
            previous: Same for the previous window of equal length
            preferences: Read-only user preferences

        Returns:
            AnalyticsReport

        Raises:
            InvalidMessageError: If any message in either window is malformed
        """
        labeled_current = self.label(current)
        labeled_previous = self.label(previous)

        stats = self._safe(
            "Statistics", lambda: self.aggregator.aggregate(labeled_current), EmotionStatistics
        )
        previous_stats = self._safe(
            "Previous statistics", lambda: self.aggregator.aggregate(labeled_previous), EmotionStatistics
        )
        crisis = self._safe(
            "Crisis assessment", lambda: self.assessor.assess(labeled_current), _fallback_crisis
        )
        progress = self._safe(
            "Progress comparison", lambda: self.comparator.compare(stats, previous_stats), list
        )
        mood = self._safe(
            "Mood patterns", lambda: self.aggregator.mood_patterns(labeled_current), MoodPatternSummary
        )
        triggers = self._safe(
            "Triggers", lambda: self.aggregator.triggers(labeled_current), TriggerSummary
        )

        insights, strategies = await asyncio.gather(
            self.generator.generate_insights_with_source(stats, labeled_current),
            self.generator.generate_strategies_with_source(stats, preferences),
            return_exceptions=True,
        )
        if isinstance(insights, Exception):
            logger.warning(f"[PIPELINE] Insights failed, using fallback: {type(insights).__name__}")
            insights = GeneratedContent(self.generator.fallback_insights(stats), SOURCE_FALLBACK)
        if isinstance(strategies, Exception):
            logger.warning(f"[PIPELINE] Strategies failed, using fallback: {type(strategies).__name__}")
            strategies = GeneratedContent(
                self.generator.fallback_strategies(stats, preferences), SOURCE_FALLBACK
            )

        source = (
            SOURCE_MODEL
            if insights.source == SOURCE_MODEL and strategies.source == SOURCE_MODEL
            else SOURCE_FALLBACK
        )

        logger.info(
            f"[PIPELINE] current={stats.total_count}, previous={previous_stats.total_count}, "
            f"risk={crisis.risk_level.value}, narrative={source}"
        )

        return AnalyticsReport(
            statistics=stats,
            previous_statistics=previous_stats,
            insights=insights.items,
            coping_strategies=strategies.items,
            crisis_assessment=crisis,
            progress_metrics=progress,
            mood_patterns=mood,
            triggers=triggers,
            labeled_messages=labeled_current,
            narrative_source=source,
        )
