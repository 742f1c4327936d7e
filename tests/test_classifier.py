"""
Unit tests for the Emotion Classifier.

These tests verify:
1. Keyword scoring, weighting and tie-breaking
2. Confidence bounds for matched and unmatched text
3. Boundary validation of raw messages
4. Batch labeling preserves input order

Usage:
    pytest tests/test_classifier.py -v
"""
import pytest
from datetime import datetime, timedelta, timezone

from emotion_analytics.classifier import EmotionClassifier, normalize_text
from emotion_analytics.lexicon import CategoryEntry, EMOTION_KEYWORDS, Lexicon, LexiconError, default_lexicon
from emotion_analytics.models import EmotionCategory, InvalidMessageError


@pytest.fixture
def classifier(settings):
    return EmotionClassifier(settings=settings)


class TestClassify:
    """Test single-message classification."""

    def test_happy_and_excited_message(self, classifier):
        """A clearly positive message is labeled with high confidence."""
        category, confidence = classifier.classify("I am so happy and excited today!")
        assert category in (EmotionCategory.HAPPY, EmotionCategory.EXCITED)
        assert confidence >= 80

    def test_empty_text_is_neutral(self, classifier):
        """Empty and whitespace-only text resolve to neutral at the floor."""
        assert classifier.classify("") == (EmotionCategory.NEUTRAL, 70)
        assert classifier.classify("   \n\t") == (EmotionCategory.NEUTRAL, 70)

    def test_no_keyword_is_neutral(self, classifier):
        """Text without any lexicon keyword resolves to neutral."""
        assert classifier.classify("The weather report is out") == (EmotionCategory.NEUTRAL, 70)

    def test_word_boundary_matching(self, classifier):
        """Keywords do not match inside longer words."""
        assert classifier.classify("The gladiator film")[0] == EmotionCategory.NEUTRAL

    def test_case_insensitive(self, classifier):
        """Matching ignores case."""
        assert classifier.classify("I AM SO ANXIOUS")[0] == EmotionCategory.ANXIOUS

    def test_tie_goes_to_first_category(self, classifier):
        """Equal scores resolve to the earlier category in the fixed order."""
        category, confidence = classifier.classify("I feel sad and mad")
        assert category == EmotionCategory.SAD
        assert confidence == 75

    def test_long_keywords_weigh_double(self, classifier):
        """A long keyword outranks a short one from another category."""
        scores = classifier.score("worried but glad")
        assert scores[EmotionCategory.ANXIOUS] == 2
        assert scores[EmotionCategory.HAPPY] == 1
        assert classifier.classify("worried but glad")[0] == EmotionCategory.ANXIOUS

    def test_typographic_apostrophe(self, classifier):
        """Curly apostrophes match keywords written with straight ones."""
        assert classifier.classify("I can’t wait for the trip")[0] == EmotionCategory.EXCITED

    def test_down_and_low_need_feeling_context(self, classifier):
        """Everyday uses of "down" and "low" are not sadness cues."""
        assert classifier.classify("Slow down, the low battery light is on")[0] == EmotionCategory.NEUTRAL
        assert classifier.classify("I've been feeling down all week")[0] == EmotionCategory.SAD

    def test_single_category_confidence_capped(self, classifier):
        """A sole matching category is capped at the maximum confidence."""
        assert classifier.classify("so anxious and worried about the exam") == (
            EmotionCategory.ANXIOUS,
            95,
        )

    def test_confidence_always_in_range(self, classifier):
        """Confidence stays within [70, 95] for a mix of inputs."""
        texts = [
            "",
            "happy sad anxious angry lonely confused hopeful tired thrilled",
            "I'm exhausted and drained but hopeful",
            "nothing to report",
            "furious, frustrated and annoyed",
        ]
        for text in texts:
            category, confidence = classifier.classify(text)
            assert isinstance(category, EmotionCategory)
            assert 70 <= confidence <= 95

    def test_deterministic(self, classifier):
        """The same text always gets the same label."""
        text = "feeling lonely and a bit lost tonight"
        assert classifier.classify(text) == classifier.classify(text)

    def test_non_string_rejected(self, classifier):
        """Non-string text is a validation failure."""
        with pytest.raises(InvalidMessageError):
            classifier.classify(123)
        with pytest.raises(InvalidMessageError):
            classifier.classify(None)


class TestNormalizeText:
    """Test text normalization."""

    def test_collapses_whitespace_and_lowercases(self):
        assert normalize_text("  Hello\n  WORLD \t") == "hello world"

    def test_unifies_apostrophes(self):
        assert normalize_text("Can’t") == "can't"


class TestClassifyBatch:
    """Test batch labeling of raw messages."""

    def test_preserves_order(self, classifier, raw_message):
        """Output order matches input order."""
        texts = ["I'm so happy", "really sad today", "so tired", "nothing much", "lonely again"]
        raws = [raw_message(t, index=i) for i, t in enumerate(texts)]

        labeled = classifier.classify_batch(raws, max_workers=4)

        assert [m.text for m in labeled] == texts
        assert [m.emotion for m in labeled] == [
            EmotionCategory.HAPPY,
            EmotionCategory.SAD,
            EmotionCategory.TIRED,
            EmotionCategory.NEUTRAL,
            EmotionCategory.LONELY,
        ]

    def test_empty_batch(self, classifier):
        assert classifier.classify_batch([]) == []

    def test_invalid_entry_rejects_whole_batch(self, classifier, raw_message):
        """One malformed message fails the batch with no partial result."""
        raws = [raw_message("happy"), {"timestamp": datetime(2024, 5, 1), "text": 42}]
        with pytest.raises(InvalidMessageError):
            classifier.classify_batch(raws)

    def test_pre_epoch_timestamp_rejected(self, classifier):
        with pytest.raises(InvalidMessageError):
            classifier.classify_message({"timestamp": datetime(1960, 1, 1), "text": "hi"})

    def test_future_timestamp_rejected(self, classifier):
        future = datetime.now(timezone.utc) + timedelta(days=3)
        with pytest.raises(InvalidMessageError):
            classifier.classify_message({"timestamp": future, "text": "hi"})

    def test_naive_timestamp_treated_as_utc(self, classifier):
        labeled = classifier.classify_message({"timestamp": datetime(2024, 5, 1, 12), "text": "glad"})
        assert labeled.timestamp.tzinfo == timezone.utc
        assert labeled.emotion == EmotionCategory.HAPPY


class TestLexiconValidation:
    """Test that malformed lexicons are rejected at construction."""

    def _build(self, emotions):
        lexicon = default_lexicon()
        return Lexicon(
            emotions=emotions,
            crisis_phrases=lexicon.crisis_phrases,
            concern_phrases=lexicon.concern_phrases,
            negative_categories=lexicon.negative_categories,
            trigger_themes=lexicon.trigger_themes,
        )

    def test_missing_category(self):
        emotions = {k: v for k, v in EMOTION_KEYWORDS.items() if k != EmotionCategory.TIRED}
        with pytest.raises(LexiconError):
            self._build(emotions)

    def test_unknown_category(self):
        emotions = dict(EMOTION_KEYWORDS)
        emotions["bored"] = CategoryEntry(keywords=("bored",), valence=-10)
        with pytest.raises(LexiconError):
            self._build(emotions)

    def test_valence_out_of_range(self):
        emotions = dict(EMOTION_KEYWORDS)
        emotions[EmotionCategory.HAPPY] = CategoryEntry(keywords=("happy",), valence=150)
        with pytest.raises(LexiconError):
            self._build(emotions)

    def test_alternate_lexicon_is_used(self, settings):
        """A substituted lexicon changes classification."""
        emotions = dict(EMOTION_KEYWORDS)
        emotions[EmotionCategory.TIRED] = CategoryEntry(keywords=("meh",), valence=-30)
        classifier = EmotionClassifier(self._build(emotions), settings)
        assert classifier.classify("meh")[0] == EmotionCategory.TIRED

    def test_keywords_are_normalized(self, settings):
        """Mixed-case and padded keywords still match normalized text."""
        emotions = dict(EMOTION_KEYWORDS)
        emotions[EmotionCategory.TIRED] = CategoryEntry(keywords=("  Running  On Empty ",), valence=-30)
        classifier = EmotionClassifier(self._build(emotions), settings)
        assert classifier.classify("Honestly running on empty today")[0] == EmotionCategory.TIRED

    def test_empty_keyword_rejected(self):
        emotions = dict(EMOTION_KEYWORDS)
        emotions[EmotionCategory.TIRED] = CategoryEntry(keywords=("tired", " "), valence=-30)
        with pytest.raises(LexiconError):
            self._build(emotions)
