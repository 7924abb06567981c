"""AI chat companion.

- Conversation history stored per user in Cassandra
- Replies framed by the user's journal and chat summaries
- Rolling summaries and wellness recommendations
"""

from .insights import InsightsService
from .repository import ChatRepository
from .router import insights_router, router
from .service import ChatError, ChatService


__all__ = [
    "ChatError",
    "ChatRepository",
    "ChatService",
    "InsightsService",
    "insights_router",
    "router",
]
