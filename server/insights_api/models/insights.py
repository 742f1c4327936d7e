"""Insights API request and response models."""
from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class MessageIn(BaseModel):
    """A user message as sent by the client."""

    timestamp: datetime
    text: str


class PreferencesIn(BaseModel):
    """User preferences relevant to strategy personalisation."""

    model_config = ConfigDict(populate_by_name=True)

    response_tone: str = Field(default="supportive", alias="responseTone")
    preferred_categories: list[str] = Field(default_factory=list, alias="preferredCategories")


class ClassifyRequest(BaseModel):
    """Batch of messages to label."""

    messages: list[MessageIn]


class ClassifiedMessage(BaseModel):
    """Emotion label for one message, for the caller to persist."""

    timestamp: datetime
    emotion: str
    confidence: int = Field(ge=0, le=100)


class ClassifyResponse(BaseModel):
    """Labels in input order."""

    results: list[ClassifiedMessage]


class CrisisRequest(BaseModel):
    """Recent messages to assess for crisis risk."""

    messages: list[MessageIn]
    max_window: Optional[int] = Field(default=None, ge=1, le=20, alias="maxWindow")

    model_config = ConfigDict(populate_by_name=True)


class AnalyzeRequest(BaseModel):
    """Current and previous windows for the full dashboard analysis."""

    current: list[MessageIn]
    previous: list[MessageIn] = Field(default_factory=list)
    preferences: Optional[PreferencesIn] = None
