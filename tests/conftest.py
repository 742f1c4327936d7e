"""
Pytest fixtures for Emotional Analytics Engine tests.
"""
import sys
import pytest
from pathlib import Path
from datetime import datetime, timedelta, timezone
from dotenv import load_dotenv

# Ensure src/ and the repo root are on sys.path so tests can import
# emotion_analytics and the server package.
ROOT = Path(__file__).resolve().parent.parent
SRC = ROOT / "src"
for path in (SRC, ROOT):
    if str(path) not in sys.path:
        sys.path.insert(0, str(path))

# Load environment variables
load_dotenv()

from emotion_analytics.config import EngineSettings
from emotion_analytics.models import EmotionCategory, LabeledMessage

BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=timezone.utc)


@pytest.fixture
def settings():
    """Engine settings with the narrative collaborator switched off."""
    return EngineSettings(narrative_enabled=False, narrative_api_key="")


@pytest.fixture
def make_message():
    """
    Factory fixture for labeled messages.

    Messages are spaced one minute apart from a fixed base time by index.
    """

    def _make(emotion, text="Checking in", confidence=80, index=0):
        return LabeledMessage(
            timestamp=BASE_TIME + timedelta(minutes=index),
            text=text,
            emotion=EmotionCategory(emotion),
            confidence=confidence,
        )

    return _make


@pytest.fixture
def make_messages(make_message):
    """Build a timestamp-ordered window from a list of emotion labels."""

    def _make_all(emotions, confidence=80):
        return [make_message(e, confidence=confidence, index=i) for i, e in enumerate(emotions)]

    return _make_all


@pytest.fixture
def raw_message():
    """Factory fixture for raw ``{timestamp, text}`` pairs."""

    def _raw(text, index=0):
        return {"timestamp": BASE_TIME + timedelta(minutes=index), "text": text}

    return _raw
