"""
Progress Comparator.

Compares the statistics of a current period against a previous period of
equal length and classifies each tracked dimension as improving, stable or
declining. Per-metric thresholds keep noise-level fluctuations from being
reported as trends.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from typing import Callable, List, Optional

from .config import EngineSettings, get_settings
from .lexicon import Lexicon, default_lexicon
from .models import EmotionStatistics, ProgressMetric, Trend

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MetricDefinition:
    """How one progress dimension is measured and judged."""

    name: str
    threshold_setting: str  # EngineSettings attribute holding the trend threshold
    improving_insight: str
    declining_insight: str
    stable_insight: str
    uses_message_delta: bool = False  # trend on raw message counts, not on the value


class ProgressComparator:
    """
    Builds ProgressMetric entries from two EmotionStatistics.

    Tracked dimensions:
        Emotional Stability: stability score
        Emotional Awareness: average classification confidence
        Engagement Level: message count against a saturation point
        Emotional Range: distinct categories against the lexicon size
    """

    METRICS = [
        MetricDefinition(
            name="Emotional Stability",
            threshold_setting="stability_trend_threshold",
            improving_insight="Your emotional stability has improved, showing better emotional regulation.",
            declining_insight="Your emotional stability has decreased. Consider focusing on stress management.",
            stable_insight="Your emotional stability remains consistent.",
        ),
        MetricDefinition(
            name="Emotional Awareness",
            threshold_setting="awareness_trend_threshold",
            improving_insight="Your emotional self-awareness has increased.",
            declining_insight="Your emotional clarity may need attention. Consider mindfulness practices.",
            stable_insight="Your emotional awareness remains steady.",
        ),
        MetricDefinition(
            name="Engagement Level",
            threshold_setting="engagement_trend_threshold",
            improving_insight="Increased engagement shows commitment to your mental health journey.",
            declining_insight="Consider regular check-ins for better mental health tracking.",
            stable_insight="You're maintaining consistent engagement with your mental health.",
            uses_message_delta=True,
        ),
        MetricDefinition(
            name="Emotional Range",
            threshold_setting="range_trend_threshold",
            improving_insight="You're experiencing a wider range of emotions, which is healthy.",
            declining_insight="Your emotional range has narrowed. This might indicate mood patterns to explore.",
            stable_insight="Your emotional range remains consistent.",
        ),
    ]

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.lexicon = lexicon or default_lexicon()
        self.settings = settings or get_settings()
        if self.settings.engagement_saturation <= 0:
            raise ValueError("engagement_saturation must be positive")

        self._values: dict[str, Callable[[EmotionStatistics], float]] = {
            "Emotional Stability": lambda s: s.stability_score,
            "Emotional Awareness": lambda s: s.average_confidence,
            "Engagement Level": self._engagement,
            "Emotional Range": self._range,
        }

    def _engagement(self, stats: EmotionStatistics) -> float:
        return min(100.0, stats.total_count / self.settings.engagement_saturation * 100)

    def _range(self, stats: EmotionStatistics) -> float:
        return min(100.0, stats.distinct_categories / self.lexicon.category_count * 100)

    @staticmethod
    def classify_trend(delta: float, threshold: float) -> Trend:
        """Improving above +threshold, declining below -threshold, else stable."""
        if delta > threshold:
            return Trend.IMPROVING
        if delta < -threshold:
            return Trend.DECLINING
        return Trend.STABLE

    def compare(
        self,
        current: EmotionStatistics,
        previous: EmotionStatistics,
    ) -> List[ProgressMetric]:
        """
        Compare two periods.

        Args:
            current: Statistics for the current period
            previous: Statistics for the previous period (may be the empty default)

        Returns:
            One ProgressMetric per tracked dimension, in fixed order
        """
        metrics = []
        for definition in self.METRICS:
            value_of = self._values[definition.name]
            current_value = value_of(current)
            previous_value = value_of(previous)

            if definition.uses_message_delta:
                delta = current.total_count - previous.total_count
            else:
                delta = current_value - previous_value

            threshold = getattr(self.settings, definition.threshold_setting)
            trend = self.classify_trend(delta, threshold)
            insight = {
                Trend.IMPROVING: definition.improving_insight,
                Trend.DECLINING: definition.declining_insight,
                Trend.STABLE: definition.stable_insight,
            }[trend]

            metrics.append(ProgressMetric(
                name=definition.name,
                current_value=round(current_value),
                previous_value=round(previous_value),
                trend=trend,
                change_percentage=round(abs(current_value - previous_value)),
                insight=insight,
            ))

        logger.info(
            "[PROGRESS] " + ", ".join(f"{m.name}={m.trend.value}" for m in metrics)
        )
        return metrics


@lru_cache(maxsize=1)
def get_comparator() -> ProgressComparator:
    return ProgressComparator()


def compare(current: EmotionStatistics, previous: EmotionStatistics) -> List[ProgressMetric]:
    """Convenience function to compare periods with default settings."""
    return get_comparator().compare(current, previous)
