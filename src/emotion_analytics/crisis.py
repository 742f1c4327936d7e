"""
Crisis Risk Assessor.

Scores a bounded window of recent messages against high-severity and
moderate-concern phrase sets plus the recent emotion mix, and maps the score
onto a fixed risk tier. Runs entirely locally so it keeps working when the
narrative collaborator is down.

Scoring is deliberately over-inclusive: overlapping phrases each add
points, because a false positive only surfaces extra support resources.
"""

import logging
from functools import lru_cache
from typing import Dict, List, Optional, Sequence, Tuple

from .config import EngineSettings, get_settings
from .lexicon import Lexicon, default_lexicon, normalize_text
from .models import CrisisAssessment, InvalidMessageError, LabeledMessage, RiskLevel

logger = logging.getLogger(__name__)


MAX_WINDOW = 20  # most recent messages a single assessment may consider

EMPTY_WINDOW_RECOMMENDATIONS = ("Continue regular check-ins to keep track of how you're feeling",)

EMERGENCY_INSTRUCTION = "Contact emergency services (911) immediately"

NEGATIVE_PATTERN_FACTOR = "Predominantly negative emotional patterns"

TIER_RECOMMENDATIONS: Dict[RiskLevel, Tuple[str, ...]] = {
    RiskLevel.CRITICAL: (
        EMERGENCY_INSTRUCTION,
        "Call or text the Suicide & Crisis Lifeline: 988",
        "Reach out to a trusted friend or family member now",
        "Go to your nearest emergency room",
    ),
    RiskLevel.HIGH: (
        "Contact a mental health professional today",
        "Call or text the Suicide & Crisis Lifeline: 988",
        "Reach out to your trusted support network",
        "Consider crisis counseling services",
    ),
    RiskLevel.MEDIUM: (
        "Schedule an appointment with a mental health professional",
        "Practice your coping strategies regularly",
        "Stay connected with your support network",
        "Monitor your mood and seek help if things get worse",
    ),
    RiskLevel.LOW: (
        "Continue your regular self-care practices",
        "Maintain healthy routines",
        "Stay connected with your support network",
        "Keep checking in for ongoing support",
    ),
}


class CrisisRiskAssessor:
    """
    Tiered crisis risk assessment over recent messages.

    Configuration (from EngineSettings):
        crisis_window_size: Most recent messages considered
        crisis_phrase_points / concern_phrase_points: Points per matched phrase
        negative_share_threshold: Share of negative messages that adds points
        critical/high/medium_threshold: Tier cut points, evaluated highest first
    """

    def __init__(
        self,
        lexicon: Optional[Lexicon] = None,
        settings: Optional[EngineSettings] = None,
    ):
        self.lexicon = lexicon or default_lexicon()
        self.settings = settings or get_settings()

    def tier_for(self, score: int) -> RiskLevel:
        """Map a score onto a risk tier."""
        s = self.settings
        if score >= s.critical_threshold:
            return RiskLevel.CRITICAL
        if score >= s.high_threshold:
            return RiskLevel.HIGH
        if score >= s.medium_threshold:
            return RiskLevel.MEDIUM
        return RiskLevel.LOW

    def _window(
        self,
        messages: Sequence[LabeledMessage],
        max_window: Optional[int],
    ) -> List[LabeledMessage]:
        size = self.settings.crisis_window_size if max_window is None else max_window
        if not 1 <= size <= MAX_WINDOW:
            raise InvalidMessageError(
                f"Crisis window must hold between 1 and {MAX_WINDOW} messages, got {size}"
            )
        for m in messages:
            if not isinstance(m, LabeledMessage):
                raise InvalidMessageError(
                    f"Crisis assessment expects labeled messages, got {type(m).__name__}"
                )
        return sorted(messages, key=lambda m: m.timestamp)[-size:]

    def assess(
        self,
        recent_messages: Sequence[LabeledMessage],
        max_window: Optional[int] = None,
    ) -> CrisisAssessment:
        """
        Assess crisis risk for a window of recent messages.

        Args:
            recent_messages: Labeled messages, any order
            max_window: Most recent messages to consider (defaults to settings)

        Returns:
            CrisisAssessment with tier, score, factors and recommendations
        """
        window = self._window(recent_messages, max_window)
        s = self.settings

        if not window:
            return CrisisAssessment(
                risk_level=RiskLevel.LOW,
                score=s.crisis_empty_score,
                factors=[],
                recommendations=list(EMPTY_WINDOW_RECOMMENDATIONS),
                urgent=False,
            )

        content = " ".join(normalize_text(m.text) for m in window)
        score = 0
        factors: List[str] = []

        for label, phrases in self.lexicon.crisis_phrases.items():
            hits = sum(1 for phrase in phrases if phrase in content)
            if hits:
                score += hits * s.crisis_phrase_points
                factors.append(label)

        concern_factors = 0
        seen = set()
        for label, phrases in self.lexicon.concern_phrases.items():
            for phrase in phrases:
                if phrase in seen or phrase not in content:
                    continue
                seen.add(phrase)
                score += s.concern_phrase_points
                if label not in factors and concern_factors < s.concern_factor_limit:
                    factors.append(label)
                    concern_factors += 1

        negative = sum(1 for m in window if m.emotion in self.lexicon.negative_categories)
        if negative > len(window) * s.negative_share_threshold:
            score += s.negative_pattern_points
            factors.append(NEGATIVE_PATTERN_FACTOR)

        risk_level = self.tier_for(score)
        urgent = risk_level is RiskLevel.CRITICAL

        if urgent:
            logger.warning(
                f"[CRISIS] Critical risk: score={score}, factors={len(factors)}, "
                f"window={len(window)}"
            )
        else:
            logger.info(f"[CRISIS] Risk {risk_level.value}: score={score}, window={len(window)}")

        return CrisisAssessment(
            risk_level=risk_level,
            score=score,
            factors=factors,
            recommendations=list(TIER_RECOMMENDATIONS[risk_level]),
            urgent=urgent,
        )

    def contains_crisis_language(self, text: str) -> bool:
        """Check a single message for any high-severity phrase."""
        if not isinstance(text, str):
            raise InvalidMessageError(f"Message text must be a string, got {type(text).__name__}")
        content = normalize_text(text)
        return any(
            phrase in content
            for phrases in self.lexicon.crisis_phrases.values()
            for phrase in phrases
        )


@lru_cache(maxsize=1)
def get_assessor() -> CrisisRiskAssessor:
    """Shared assessor built from the default lexicon and settings."""
    return CrisisRiskAssessor()


def assess(
    recent_messages: Sequence[LabeledMessage],
    max_window: Optional[int] = None,
) -> CrisisAssessment:
    """Convenience function to assess risk with the shared assessor."""
    return get_assessor().assess(recent_messages, max_window)


def detect_crisis_language(text: str) -> bool:
    """Convenience function for the single-message crisis check."""
    return get_assessor().contains_crisis_language(text)
