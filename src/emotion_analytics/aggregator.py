"""
Statistics Aggregator.

Computes distributional statistics over a window of labeled messages:
counts per category, dominant category, mean confidence, and a stability
score derived from the variance of per-message valence weights. Also
summarises the positive/negative balance of a window and the life themes
its messages mention.
"""

import logging
import math
import statistics
from collections import Counter
from functools import lru_cache
from typing import List, Optional, Sequence

from .classifier import keyword_pattern
from .lexicon import Lexicon, default_lexicon, normalize_text
from .models import (
    CATEGORY_ORDER,
    EmotionCategory,
    EmotionStatistics,
    InvalidMessageError,
    LabeledMessage,
    MoodPatternSummary,
    Trend,
    TriggerSummary,
    UrgencyLevel,
)

logger = logging.getLogger(__name__)

EMPTY_STABILITY = 50.0

# Mood pattern cut points
URGENT_WELLBEING = 30
MONITOR_WELLBEING = 50
URGENT_SADNESS = 80
MONITOR_SADNESS = 60
TREND_BAND = 0.1  # change in positive share between halves

TOP_TRIGGER_COUNT = 3


def _check_messages(messages: Sequence[LabeledMessage]) -> None:
    for m in messages:
        if not isinstance(m, LabeledMessage) or not isinstance(m.emotion, EmotionCategory):
            raise InvalidMessageError(
                f"Expected labeled messages, got {type(m).__name__}"
            )


class StatisticsAggregator:
    """Aggregates labeled messages into EmotionStatistics and related views."""

    def __init__(self, lexicon: Optional[Lexicon] = None):
        self.lexicon = lexicon or default_lexicon()
        self._trigger_patterns = {
            theme: [keyword_pattern(cue) for cue in cues]
            for theme, cues in self.lexicon.trigger_themes.items()
        }

    def stability(self, messages: Sequence[LabeledMessage]) -> float:
        """
        Stability score for a message sequence.

        Each message maps to its category's valence weight; stability is
        ``max(0, 100 - sqrt(population variance))``. A user swinging between
        distant categories scores lower than one who stays in one category.
        """
        if not messages:
            return EMPTY_STABILITY
        weights = [self.lexicon.valence(m.emotion) for m in messages]
        variance = statistics.pvariance(weights) if len(weights) > 1 else 0.0
        return max(0.0, 100.0 - math.sqrt(variance))

    def aggregate(self, messages: Sequence[LabeledMessage]) -> EmotionStatistics:
        """
        Compute statistics for a window.

        Args:
            messages: Labeled messages in the window

        Returns:
            EmotionStatistics; the documented neutral default for an empty window
        """
        _check_messages(messages)
        if not messages:
            return EmotionStatistics()

        counts = Counter(m.emotion for m in messages)
        category_counts = {c: counts[c] for c in CATEGORY_ORDER if counts[c] > 0}
        top = max(category_counts.values())
        dominant = next(c for c, n in category_counts.items() if n == top)

        ordered = sorted(messages, key=lambda m: m.timestamp)
        result = EmotionStatistics(
            total_count=len(messages),
            average_confidence=statistics.fmean(m.confidence for m in messages),
            category_counts=category_counts,
            dominant_category=dominant,
            stability_score=self.stability(ordered),
        )

        logger.debug(
            f"[STATS] n={result.total_count}, dominant={dominant.value}, "
            f"stability={result.stability_score:.1f}, "
            f"avg_confidence={result.average_confidence:.1f}"
        )
        return result

    def mood_patterns(self, messages: Sequence[LabeledMessage]) -> MoodPatternSummary:
        """
        Positive/neutral/negative balance, wellbeing index and trend direction.

        Positive and negative groups follow the sign of each category's
        valence weight. The trend compares the positive share of the later
        half of the window with the earlier half.
        """
        _check_messages(messages)
        if not messages:
            return MoodPatternSummary()

        def is_positive(m):
            return self.lexicon.valence(m.emotion) > 0

        def is_negative(m):
            return self.lexicon.valence(m.emotion) < 0

        total = len(messages)
        positive = sum(1 for m in messages if is_positive(m))
        negative = sum(1 for m in messages if is_negative(m))
        sadness = sum(m.confidence for m in messages if m.emotion is EmotionCategory.SAD)

        positive_pct = round(positive / total * 100)
        negative_pct = round(negative / total * 100)
        neutral_pct = 100 - positive_pct - negative_pct
        wellbeing = round(max(0, min(100, positive_pct + neutral_pct * 0.5)))
        sadness_score = round(sadness / max(1, negative))

        if wellbeing < URGENT_WELLBEING or sadness_score > URGENT_SADNESS:
            urgency = UrgencyLevel.URGENT
        elif wellbeing < MONITOR_WELLBEING or sadness_score > MONITOR_SADNESS:
            urgency = UrgencyLevel.MONITOR
        else:
            urgency = UrgencyLevel.STABLE

        ordered = sorted(messages, key=lambda m: m.timestamp)
        midpoint = total // 2
        trend = Trend.STABLE
        if midpoint > 0:
            first, second = ordered[:midpoint], ordered[midpoint:]
            first_share = sum(1 for m in first if is_positive(m)) / len(first)
            second_share = sum(1 for m in second if is_positive(m)) / len(second)
            if second_share > first_share + TREND_BAND:
                trend = Trend.IMPROVING
            elif second_share < first_share - TREND_BAND:
                trend = Trend.DECLINING

        return MoodPatternSummary(
            positive_percentage=positive_pct,
            neutral_percentage=neutral_pct,
            negative_percentage=negative_pct,
            sadness_score=sadness_score,
            wellbeing_index=wellbeing,
            urgency_level=urgency,
            trend_direction=trend,
        )

    def triggers(self, messages: Sequence[LabeledMessage]) -> TriggerSummary:
        """Count how many messages mention each trigger theme."""
        _check_messages(messages)
        counts = Counter()
        for m in messages:
            text = normalize_text(m.text)
            for theme, patterns in self._trigger_patterns.items():
                if any(p.search(text) for p in patterns):
                    counts[theme] += 1

        theme_order = list(self._trigger_patterns)
        ranked: List[str] = sorted(counts, key=lambda t: (-counts[t], theme_order.index(t)))
        return TriggerSummary(
            trigger_counts={t: counts[t] for t in ranked},
            top_triggers=ranked[:TOP_TRIGGER_COUNT],
        )


@lru_cache(maxsize=1)
def get_aggregator() -> StatisticsAggregator:
    return StatisticsAggregator()


def aggregate(messages: Sequence[LabeledMessage]) -> EmotionStatistics:
    """Convenience function to aggregate with the default lexicon."""
    return get_aggregator().aggregate(messages)


def analyze_mood_patterns(messages: Sequence[LabeledMessage]) -> MoodPatternSummary:
    """Convenience function for the positive/negative balance of a window."""
    return get_aggregator().mood_patterns(messages)


def extract_triggers(messages: Sequence[LabeledMessage]) -> TriggerSummary:
    """Convenience function for trigger themes mentioned in a window."""
    return get_aggregator().triggers(messages)
