"""Private journal with AI-assisted mood scoring."""

from .router import router
from .scoring import MoodScorer
from .service import JournalError, JournalService, JournalUnavailableError


__all__ = [
    "JournalError",
    "JournalService",
    "JournalUnavailableError",
    "MoodScorer",
    "router",
]
