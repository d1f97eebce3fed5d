"""Academic search service client."""

from .client import INVALID_JSON_MESSAGE, SemanticScholarClient

__all__ = ["INVALID_JSON_MESSAGE", "SemanticScholarClient"]
