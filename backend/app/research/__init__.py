"""Research-gap relay orchestration."""

from .service import PaperSource, ResearchAssistant, ResearchGapService, require_field

__all__ = ["PaperSource", "ResearchAssistant", "ResearchGapService", "require_field"]
