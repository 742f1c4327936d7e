"""Pydantic models for insights API requests and responses."""
from .insights import (
    MessageIn,
    PreferencesIn,
    ClassifyRequest,
    ClassifiedMessage,
    ClassifyResponse,
    CrisisRequest,
    AnalyzeRequest,
)

__all__ = [
    "MessageIn",
    "PreferencesIn",
    "ClassifyRequest",
    "ClassifiedMessage",
    "ClassifyResponse",
    "CrisisRequest",
    "AnalyzeRequest",
]
