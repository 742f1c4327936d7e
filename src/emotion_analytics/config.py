"""Engine configuration loaded from environment variables.

The scoring constants below were chosen empirically. They are not derived
from a validated clinical scale and must not be treated as calibrated.
"""
from functools import lru_cache
from pydantic import Field
from pydantic_settings import BaseSettings


class EngineSettings(BaseSettings):
    """Scoring constants and narrative collaborator settings."""

    # Emotion classifier
    confidence_floor: int = 70  # no keyword matched
    confidence_min_matched: int = 75
    confidence_max: int = 95
    long_keyword_length: int = 4  # keywords longer than this weigh double
    long_keyword_weight: int = 2
    classify_max_workers: int = 4

    # Crisis risk assessor
    crisis_window_size: int = Field(default=20, ge=1, le=20)
    crisis_empty_score: int = 10
    crisis_phrase_points: int = 20
    concern_phrase_points: int = 5
    concern_factor_limit: int = 5
    negative_pattern_points: int = 15
    negative_share_threshold: float = 0.8
    critical_threshold: int = 40
    high_threshold: int = 25
    medium_threshold: int = 15

    # Progress comparator
    engagement_saturation: int = 30  # messages per period that count as 100%
    stability_trend_threshold: float = 5.0
    awareness_trend_threshold: float = 5.0
    range_trend_threshold: float = 5.0
    engagement_trend_threshold: int = 2  # raw message count delta

    # Fallback insights
    stable_insight_threshold: float = 70.0
    variable_insight_threshold: float = 40.0
    engagement_insight_threshold: int = 20
    awareness_insight_threshold: float = 80.0
    max_strategies: int = 5

    # Narrative collaborator (Google Generative Language API)
    narrative_enabled: bool = True
    narrative_api_key: str = ""
    narrative_model: str = "gemini-1.5-flash"
    narrative_base_url: str = "https://generativelanguage.googleapis.com/v1beta"
    narrative_timeout_seconds: float = 15.0
    narrative_sample_size: int = 10
    narrative_preview_chars: int = 100

    class Config:
        env_prefix = "EMOTION_ENGINE_"


@lru_cache
def get_settings() -> EngineSettings:
    return EngineSettings()
