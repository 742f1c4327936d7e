"""Narrative collaborator client.

The insight generator asks an external language model to phrase insights and
coping strategies. Anything implementing ``NarrativeGenerator`` can stand in
for the model; ``GeminiNarrativeClient`` talks to the Google Generative
Language REST API with a single, time-bounded attempt.
"""
import logging
import re
from typing import Optional, Protocol

import httpx

from .config import EngineSettings, get_settings

logger = logging.getLogger(__name__)


class NarrativeUnavailableError(RuntimeError):
    """Raised when the narrative collaborator cannot produce a usable answer."""


class NarrativeGenerator(Protocol):
    """Turns a prompt into free text."""

    async def generate(self, prompt: str) -> str:
        ...


def strip_json_fences(text: str) -> str:
    """Strip markdown code fences from model output.

    Models often wrap JSON in ```json ... ``` even when asked not to.
    """
    text = text.strip()
    text = re.sub(r"^```(?:json)?\s*\n?", "", text, flags=re.IGNORECASE)
    text = re.sub(r"\n?```\s*$", "", text)
    return text.strip()


class GeminiNarrativeClient:
    """Async client for ``models/{model}:generateContent``."""

    def __init__(
        self,
        settings: Optional[EngineSettings] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        """
        Initialize the client.

        Args:
            settings: Endpoint, model, key and timeout (defaults to environment settings)
            transport: Optional httpx transport, used by tests to fake the endpoint
        """
        self.settings = settings or get_settings()
        self._transport = transport

    @property
    def endpoint(self) -> str:
        base = self.settings.narrative_base_url.rstrip("/")
        return f"{base}/models/{self.settings.narrative_model}:generateContent"

    async def generate(self, prompt: str) -> str:
        """
        Send a prompt and return the first candidate's text.

        Raises:
            NarrativeUnavailableError: On missing key, timeout, connection
                failure, non-200 status or an unexpected response shape
        """
        if not self.settings.narrative_api_key:
            raise NarrativeUnavailableError("No narrative API key configured")

        try:
            async with httpx.AsyncClient(
                timeout=httpx.Timeout(self.settings.narrative_timeout_seconds),
                transport=self._transport,
            ) as client:
                response = await client.post(
                    self.endpoint,
                    params={"key": self.settings.narrative_api_key},
                    json={"contents": [{"parts": [{"text": prompt}]}]},
                )
        except httpx.TimeoutException as e:
            raise NarrativeUnavailableError("Narrative request timed out") from e
        except httpx.ConnectError as e:
            raise NarrativeUnavailableError("Cannot connect to narrative endpoint") from e

        if response.status_code != 200:
            raise NarrativeUnavailableError(
                f"Narrative endpoint returned status {response.status_code}"
            )

        try:
            text = response.json()["candidates"][0]["content"]["parts"][0]["text"]
        except (ValueError, KeyError, IndexError, TypeError) as e:
            raise NarrativeUnavailableError("Unexpected narrative response shape") from e

        if not isinstance(text, str) or not text.strip():
            raise NarrativeUnavailableError("Narrative response was empty")

        logger.debug(f"[NARRATIVE] Received {len(text)} characters")
        return text
