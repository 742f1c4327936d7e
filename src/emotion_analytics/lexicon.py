"""
Lexicon Store.

Static keyword tables for emotion classification, crisis phrase detection
and trigger themes. A Lexicon is immutable once built and is handed to the
classifier and the crisis assessor explicitly, so tests can swap in their
own tables.
"""

import logging
from dataclasses import dataclass
from functools import lru_cache
from types import MappingProxyType
from typing import Mapping, Tuple

from .models import EmotionCategory

logger = logging.getLogger(__name__)


class LexiconError(ValueError):
    """Raised when a lexicon table is incomplete or malformed."""


_APOSTROPHES = str.maketrans({"’": "'", "‘": "'", "ʼ": "'"})


def normalize_text(text: str) -> str:
    """Lower-case, unify apostrophes and collapse whitespace."""
    return " ".join(text.translate(_APOSTROPHES).lower().split())


def _normalize_group(label: str, phrases) -> Tuple[str, ...]:
    normalized = tuple(normalize_text(p) for p in phrases)
    if not normalized:
        raise LexiconError(f"Phrase group {label!r} is empty")
    if not all(normalized):
        raise LexiconError(f"Phrase group {label!r} contains an empty phrase")
    # Order-preserving dedupe after normalization
    return tuple(dict.fromkeys(normalized))


def _category(key) -> EmotionCategory:
    try:
        return EmotionCategory(key)
    except ValueError:
        raise LexiconError(f"Unknown emotion category in lexicon: {key!r}") from None


@dataclass(frozen=True)
class CategoryEntry:
    """Keywords and valence weight for one emotion category."""

    keywords: Tuple[str, ...]
    valence: int  # -100 (most negative) .. 100 (most positive)


@dataclass(frozen=True)
class Lexicon:
    """
    Immutable lexicon table.

    Attributes:
        emotions: Keyword entry for every EmotionCategory
        crisis_phrases: High-severity phrases grouped by factor label
        concern_phrases: Moderate-concern phrases grouped by factor label
        negative_categories: Categories counted as negative valence by the assessor
        trigger_themes: Life themes mapped to their cue words
    """

    emotions: Mapping[EmotionCategory, CategoryEntry]
    crisis_phrases: Mapping[str, Tuple[str, ...]]
    concern_phrases: Mapping[str, Tuple[str, ...]]
    negative_categories: frozenset
    trigger_themes: Mapping[str, Tuple[str, ...]]

    def __post_init__(self):
        emotions = {_category(key): entry for key, entry in self.emotions.items()}

        missing = [c.value for c in EmotionCategory if c not in emotions]
        if missing:
            raise LexiconError(f"Lexicon is missing categories: {missing}")

        for category, entry in emotions.items():
            if not -100 <= entry.valence <= 100:
                raise LexiconError(f"Valence for {category.value} out of range: {entry.valence}")
            if not entry.keywords and category is not EmotionCategory.NEUTRAL:
                raise LexiconError(f"No keywords defined for {category.value}")

        negatives = frozenset(_category(c) for c in self.negative_categories)

        # Text is normalized before matching, so every table entry is too.
        ordered = {}
        for category in EmotionCategory:
            entry = emotions[category]
            keywords = _normalize_group(category.value, entry.keywords) if entry.keywords else ()
            ordered[category] = CategoryEntry(keywords=keywords, valence=entry.valence)
        crisis = {label: _normalize_group(label, p) for label, p in self.crisis_phrases.items()}
        concern = {label: _normalize_group(label, p) for label, p in self.concern_phrases.items()}
        themes = {theme: _normalize_group(theme, cues) for theme, cues in self.trigger_themes.items()}

        object.__setattr__(self, "emotions", MappingProxyType(ordered))
        object.__setattr__(self, "crisis_phrases", MappingProxyType(crisis))
        object.__setattr__(self, "concern_phrases", MappingProxyType(concern))
        object.__setattr__(self, "negative_categories", negatives)
        object.__setattr__(self, "trigger_themes", MappingProxyType(themes))

    def valence(self, category: EmotionCategory) -> int:
        return self.emotions[category].valence

    @property
    def category_count(self) -> int:
        return len(self.emotions)


EMOTION_KEYWORDS = {
    EmotionCategory.HAPPY: CategoryEntry(
        keywords=(
            "happy", "glad", "joy", "joyful", "great", "wonderful", "amazing",
            "fantastic", "good", "delighted", "cheerful", "excited", "pleased",
        ),
        valence=80,
    ),
    EmotionCategory.SAD: CategoryEntry(
        keywords=(
            "sad", "depressed", "feeling down", "feeling low", "unhappy", "miserable",
            "heartbroken", "crying", "upset", "gloomy", "hopeless",
        ),
        valence=-80,
    ),
    EmotionCategory.ANXIOUS: CategoryEntry(
        keywords=(
            "anxious", "anxiety", "worried", "worry", "nervous", "panic",
            "stress", "stressed", "overwhelmed", "scared", "afraid", "tense",
            "on edge",
        ),
        valence=-60,
    ),
    EmotionCategory.ANGRY: CategoryEntry(
        keywords=(
            "angry", "mad", "furious", "frustrated", "irritated", "annoyed",
            "rage", "resentful", "fed up",
        ),
        valence=-70,
    ),
    EmotionCategory.LONELY: CategoryEntry(
        keywords=(
            "lonely", "alone", "isolated", "disconnected", "abandoned",
            "left out", "nobody cares", "no one cares",
        ),
        valence=-70,
    ),
    EmotionCategory.CONFUSED: CategoryEntry(
        keywords=(
            "confused", "lost", "uncertain", "unclear", "mixed up", "unsure",
            "conflicted", "torn",
        ),
        valence=-20,
    ),
    EmotionCategory.HOPEFUL: CategoryEntry(
        keywords=(
            "hopeful", "optimistic", "positive", "confident", "motivated",
            "looking forward", "encouraged", "better",
        ),
        valence=60,
    ),
    EmotionCategory.TIRED: CategoryEntry(
        keywords=(
            "tired", "exhausted", "drained", "weary", "burnt out", "burned out",
            "fatigued", "worn out", "sleepy",
        ),
        valence=-30,
    ),
    EmotionCategory.EXCITED: CategoryEntry(
        keywords=(
            "thrilled", "ecstatic", "can't wait", "pumped", "stoked", "eager",
            "exhilarated", "psyched",
        ),
        valence=90,
    ),
    EmotionCategory.NEUTRAL: CategoryEntry(keywords=(), valence=0),
}

# Matched as plain substrings of the lower-cased window text.
CRISIS_PHRASES = {
    "Language suggesting suicidal thoughts": (
        "suicide", "suicidal", "kill myself", "killing myself", "end my life",
        "ending my life", "take my life", "want to die", "wanna die",
        "wish i was dead", "wish i were dead", "better off dead",
        "no point living", "no reason to live", "don't want to live",
        "end it all", "want to end",
    ),
    "Language suggesting self-harm": (
        "self harm", "self-harm", "hurt myself", "harm myself", "cut myself",
        "cutting myself",
    ),
    "Statements of being unable to go on": (
        "can't go on", "cannot go on", "give up on life", "giving up on life",
    ),
}

CONCERN_PHRASES = {
    "Expressions of hopelessness": (
        "hopeless", "no point", "what's the point", "pointless", "give up",
        "no future",
    ),
    "Expressions of low self-worth": ("worthless", "useless", "a burden"),
    "Expressions of isolation": (
        "alone", "isolated", "lonely", "nobody cares", "no one cares",
        "no one to talk to",
    ),
    "Expressions of feeling overwhelmed": (
        "overwhelmed", "can't cope", "cannot cope", "breaking down",
        "falling apart", "too much to handle",
    ),
    "Expressions of acute distress": ("depressed", "desperate", "lost", "empty", "numb"),
}

NEGATIVE_CATEGORIES = frozenset({
    EmotionCategory.SAD,
    EmotionCategory.ANXIOUS,
    EmotionCategory.ANGRY,
    EmotionCategory.LONELY,
})

TRIGGER_THEMES = {
    "Physical activity": ("exercise", "workout", "gym", "run", "running", "walk", "yoga"),
    "Social connection": ("friend", "friends", "family", "mom", "dad", "sister", "brother"),
    "Rest and recovery": ("sleep", "rest", "nap", "slept"),
    "Work stress": ("work", "job", "boss", "deadline", "deadlines", "office", "coworker"),
    "Financial concerns": ("money", "financial", "bills", "debt", "rent", "paycheck"),
    "Relationship issues": (
        "relationship", "partner", "breakup", "boyfriend", "girlfriend",
        "husband", "wife", "divorce",
    ),
}


@lru_cache(maxsize=1)
def default_lexicon() -> Lexicon:
    """Build the built-in lexicon once per process."""
    lexicon = Lexicon(
        emotions=EMOTION_KEYWORDS,
        crisis_phrases=CRISIS_PHRASES,
        concern_phrases=CONCERN_PHRASES,
        negative_categories=NEGATIVE_CATEGORIES,
        trigger_themes=TRIGGER_THEMES,
    )
    logger.info(
        f"[LEXICON] Loaded {lexicon.category_count} categories, "
        f"{sum(len(p) for p in lexicon.crisis_phrases.values())} crisis phrases, "
        f"{sum(len(p) for p in lexicon.concern_phrases.values())} concern phrases"
    )
    return lexicon
