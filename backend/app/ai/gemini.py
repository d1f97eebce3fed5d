"""Gemini-backed research gap extraction and abstract summaries."""
from __future__ import annotations

import logging
import threading
from enum import Enum
from functools import lru_cache
from typing import Any, Callable, Optional

from google import genai

from backend.app.config import AIConfig, gemini_api_key
from backend.app.errors import AIUnavailable

LOGGER = logging.getLogger(__name__)

NO_GAPS_MESSAGE = "No explicit gaps mentioned."
SUMMARY_MISSING_KEY_MESSAGE = "AI summarization unavailable: Missing API Key."
SUMMARY_EMPTY_MESSAGE = "Summary unavailable."
SUMMARY_FAILED_MESSAGE = "Could not generate summary at this time."


class ClientState(str, Enum):
    """Lifecycle of the shared AI client."""

    UNINITIALIZED = "uninitialized"
    READY = "ready"


def _default_factory(api_key: str) -> Any:
    return genai.Client(api_key=api_key)


class LazyGeminiClient:
    """Construct a ``genai.Client`` once, on first use.

    Without a credential the holder stays ``UNINITIALIZED`` forever and
    :meth:`get` raises :class:`AIUnavailable`. With one, the first caller
    builds the client under a lock; later callers share it read-only.
    """

    def __init__(
        self,
        api_key: Optional[str],
        *,
        factory: Callable[[str], Any] = _default_factory,
    ) -> None:
        self._api_key = api_key or None
        self._factory = factory
        self._client: Any = None
        self._lock = threading.Lock()

    @property
    def available(self) -> bool:
        return self._api_key is not None

    @property
    def state(self) -> ClientState:
        return ClientState.READY if self._client is not None else ClientState.UNINITIALIZED

    def get(self) -> Any:
        """Return the shared client, constructing it if needed.

        Raises:
            AIUnavailable: If no API key is configured.
        """

        if self._api_key is None:
            raise AIUnavailable("GEMINI_API_KEY environment variable is required")
        if self._client is None:
            with self._lock:
                if self._client is None:
                    self._client = self._factory(self._api_key)
                    LOGGER.info("Gemini client initialized")
        return self._client


@lru_cache(maxsize=1)
def shared_gemini_client() -> LazyGeminiClient:
    """Return the process-wide client holder keyed by ``GEMINI_API_KEY``."""

    return LazyGeminiClient(gemini_api_key())


class GeminiResearchAssistant:
    """Prompt Gemini for research gaps and summaries, degrading quietly.

    Neither method raises: a missing credential or a failed call becomes
    ``None`` for gap extraction and a fixed message for summaries.
    """

    def __init__(self, config: AIConfig, client: LazyGeminiClient) -> None:
        self._config = config
        self._client = client

    @property
    def available(self) -> bool:
        return self._client.available

    async def extract_gap(self, abstract: str) -> Optional[str]:
        """Return 1-2 sentences describing limitations or future work."""

        if not self._client.available:
            return None
        try:
            text = await self._generate(self._config.gap_prompt, abstract)
        except Exception as exc:  # noqa: BLE001 - SDK raises many error types
            LOGGER.error("Gemini API Error: %s", exc)
            return None
        return text or NO_GAPS_MESSAGE

    async def summarize(self, abstract: str) -> str:
        """Return a 2-3 sentence plain-language summary of ``abstract``."""

        if not self._client.available:
            return SUMMARY_MISSING_KEY_MESSAGE
        try:
            text = await self._generate(self._config.summary_prompt, abstract)
        except Exception as exc:  # noqa: BLE001 - SDK raises many error types
            LOGGER.error("Gemini API Error: %s", exc)
            return SUMMARY_FAILED_MESSAGE
        return text or SUMMARY_EMPTY_MESSAGE

    async def _generate(self, instruction: str, abstract: str) -> str:
        client = self._client.get()
        response = await client.aio.models.generate_content(
            model=self._config.model,
            contents=f"{instruction}\n\n{abstract}",
        )
        return (getattr(response, "text", None) or "").strip()


__all__ = [
    "ClientState",
    "GeminiResearchAssistant",
    "LazyGeminiClient",
    "NO_GAPS_MESSAGE",
    "SUMMARY_EMPTY_MESSAGE",
    "SUMMARY_FAILED_MESSAGE",
    "SUMMARY_MISSING_KEY_MESSAGE",
    "shared_gemini_client",
]
