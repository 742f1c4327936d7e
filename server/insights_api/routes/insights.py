"""Emotional analytics API routes.

Thin adapter over the analytics engine. Requests carry the messages to analyze;
nothing is stored.
"""
from functools import lru_cache

from fastapi import APIRouter, Depends, HTTPException

from emotion_analytics import AnalyticsPipeline, InvalidMessageError, UserPreferences

from ..models.insights import (
    AnalyzeRequest,
    ClassifiedMessage,
    ClassifyRequest,
    ClassifyResponse,
    CrisisRequest,
)

router = APIRouter(prefix="/api/insights", tags=["Emotional Insights"])


@lru_cache
def get_pipeline() -> AnalyticsPipeline:
    return AnalyticsPipeline()


def _invalid(e: InvalidMessageError) -> HTTPException:
    return HTTPException(status_code=422, detail=str(e))


@router.post("/classify", response_model=ClassifyResponse)
async def classify_messages(
    request: ClassifyRequest,
    pipeline: AnalyticsPipeline = Depends(get_pipeline),
):
    """Label each message with an emotion category and confidence."""
    try:
        labeled = pipeline.classifier.classify_batch(m.model_dump() for m in request.messages)
    except InvalidMessageError as e:
        raise _invalid(e)

    return ClassifyResponse(
        results=[
            ClassifiedMessage(timestamp=m.timestamp, emotion=m.emotion.value, confidence=m.confidence)
            for m in labeled
        ]
    )


@router.post("/crisis")
async def assess_crisis(
    request: CrisisRequest,
    pipeline: AnalyticsPipeline = Depends(get_pipeline),
):
    """
    Assess crisis risk over the most recent messages.

    Returns the tiered assessment; ``urgent`` is true only for critical risk.
    """
    try:
        labeled = pipeline.label([m.model_dump() for m in request.messages])
        assessment = pipeline.assessor.assess(labeled, request.max_window)
    except InvalidMessageError as e:
        raise _invalid(e)
    return assessment.to_dict()


@router.post("/analyze")
async def analyze(
    request: AnalyzeRequest,
    pipeline: AnalyticsPipeline = Depends(get_pipeline),
):
    """
    Full dashboard analysis of the current window against the previous one.

    Narrative content falls back to rule-based insights when the language
    model is unavailable; ``narrativeSource`` reports which path was used.
    """
    preferences = (
        UserPreferences.from_dict(request.preferences.model_dump(by_alias=True))
        if request.preferences
        else None
    )
    try:
        report = await pipeline.run(
            [m.model_dump() for m in request.current],
            [m.model_dump() for m in request.previous],
            preferences,
        )
    except InvalidMessageError as e:
        raise _invalid(e)
    return report.to_dict()
