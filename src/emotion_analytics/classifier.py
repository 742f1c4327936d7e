"""
Emotion Classifier.

Scores a single message against the lexicon and returns the dominant
emotion category with a confidence value. Keywords are matched on word
boundaries, and keywords longer than a few characters weigh double so that
specific cues outrank short generic ones.
"""

import logging
import re
from concurrent.futures import ThreadPoolExecutor
from functools import lru_cache
from typing import Dict, Iterable, List, Optional, Pattern, Tuple

from .config import EngineSettings, get_settings
from .lexicon import Lexicon, default_lexicon, normalize_text
from .models import (
    EmotionCategory,
    InvalidMessageError,
    LabeledMessage,
    validate_raw_message,
)

logger = logging.getLogger(__name__)


def keyword_pattern(keyword: str) -> Pattern:
    # Lookarounds instead of \b so keywords ending in punctuation still anchor.
    return re.compile(r"(?<!\w)" + re.escape(keyword.lower()) + r"(?!\w)")


class EmotionClassifier:
    """
    Keyword-weighted emotion classifier.

    The instance holds only compiled, read-only patterns, so one classifier
    can be shared across threads and requests.
    """

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        settings: Optional[EngineSettings] = None,
    ):
        """
        Initialize the classifier.

        Args:
            lexicon: Keyword tables (defaults to the built-in lexicon)
            settings: Scoring constants (defaults to environment settings)
        """
        self.lexicon = lexicon or default_lexicon()
        self.settings = settings or get_settings()

        self._patterns: Dict[EmotionCategory, List[Tuple[Pattern, int]]] = {}
        for category, entry in self.lexicon.emotions.items():
            self._patterns[category] = [
                (keyword_pattern(keyword), self._keyword_weight(keyword))
                for keyword in entry.keywords
            ]

    def _keyword_weight(self, keyword: str) -> int:
        if len(keyword) > self.settings.long_keyword_length:
            return self.settings.long_keyword_weight
        return 1

    def score(self, text: str) -> Dict[EmotionCategory, int]:
        """Per-category keyword score for a text, in fixed category order."""
        normalized = normalize_text(text)
        return {
            category: sum(weight for pattern, weight in patterns if pattern.search(normalized))
            for category, patterns in self._patterns.items()
        }

    def classify(self, text: str) -> Tuple[EmotionCategory, int]:
        """
        Classify a single text.

        Args:
            text: Message text

        Returns:
            Tuple of (category, confidence)

        Raises:
            InvalidMessageError: If text is not a string
        """
        if not isinstance(text, str):
            raise InvalidMessageError(f"Message text must be a string, got {type(text).__name__}")

        floor = self.settings.confidence_floor
        if not text.strip():
            return EmotionCategory.NEUTRAL, floor

        scores = self.score(text)
        top_score = max(scores.values())
        if top_score <= 0:
            return EmotionCategory.NEUTRAL, floor

        # Dict order is the fixed category order, so the first max wins ties.
        category = next(c for c, s in scores.items() if s == top_score)
        total = sum(s for s in scores.values() if s > 0)
        share = 100 * top_score / total
        confidence = round(
            min(self.settings.confidence_max, max(self.settings.confidence_min_matched, share))
        )

        logger.debug(
            f"[CLASSIFIER] {category.value} (score={top_score}, total={total}, "
            f"confidence={confidence})"
        )
        return category, confidence

    def classify_message(self, message) -> LabeledMessage:
        """Validate a raw ``{timestamp, text}`` pair and label it."""
        raw = validate_raw_message(message)
        category, confidence = self.classify(raw.text)
        return LabeledMessage(
            timestamp=raw.timestamp,
            text=raw.text,
            emotion=category,
            confidence=confidence,
        )

    def classify_batch(
        self,
        messages: Iterable,
        max_workers: Optional[int] = None,
    ) -> List[LabeledMessage]:
        """
        Label a batch of raw messages.

        The whole batch is validated before any message is classified, so an
        invalid entry rejects the batch instead of yielding a partial result.
        Output order matches input order.

        Args:
            messages: Raw ``{timestamp, text}`` pairs
            max_workers: Thread pool size (defaults to settings)

        Returns:
            List of LabeledMessage
        """
        raws = [validate_raw_message(m) for m in messages]
        workers = max_workers or self.settings.classify_max_workers

        if workers <= 1 or len(raws) <= 1:
            labeled = [self.classify_message(raw) for raw in raws]
        else:
            with ThreadPoolExecutor(max_workers=workers) as pool:
                labeled = list(pool.map(self.classify_message, raws))

        logger.info(f"[CLASSIFIER] Labeled {len(labeled)} messages")
        return labeled


@lru_cache(maxsize=1)
def get_classifier() -> EmotionClassifier:
    """Shared classifier built from the default lexicon and settings."""
    return EmotionClassifier()


def classify(text: str) -> Tuple[EmotionCategory, int]:
    """
    Convenience function to classify text with the shared classifier.

    Args:
        text: Message text

    Returns:
        Tuple of (category, confidence)
    """
    return get_classifier().classify(text)
