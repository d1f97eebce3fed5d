"""Error taxonomy shared by the relay service and HTTP routes."""
from __future__ import annotations

from typing import Optional

RATE_LIMIT_MESSAGE = (
    "Semantic Scholar API rate limit exceeded. Please try again in a few minutes."
)


class GapGraphError(RuntimeError):
    """Base class for errors surfaced to API callers."""

    status_code: int = 500

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(GapGraphError):
    """Raised when a required request field is missing or blank."""

    status_code = 400


class UpstreamError(GapGraphError):
    """Raised when a collaborator returns a non-2xx status or malformed body."""

    def __init__(self, message: str, *, upstream_status: Optional[int] = None) -> None:
        super().__init__(message)
        self.upstream_status = upstream_status


class UpstreamRateLimited(UpstreamError):
    """Raised when the academic search service answers with HTTP 429."""

    def __init__(self, message: str = RATE_LIMIT_MESSAGE) -> None:
        super().__init__(message, upstream_status=429)


class AIUnavailable(GapGraphError):
    """Raised internally when no AI credential is configured.

    Callers degrade to ``None`` or placeholder text instead of propagating it.
    """


__all__ = [
    "AIUnavailable",
    "GapGraphError",
    "RATE_LIMIT_MESSAGE",
    "UpstreamError",
    "UpstreamRateLimited",
    "ValidationError",
]
