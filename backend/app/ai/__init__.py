"""Generative-AI adapters."""

from .gemini import (
    ClientState,
    GeminiResearchAssistant,
    LazyGeminiClient,
    shared_gemini_client,
)

__all__ = [
    "ClientState",
    "GeminiResearchAssistant",
    "LazyGeminiClient",
    "shared_gemini_client",
]
