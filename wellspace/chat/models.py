"""Database models for the chat companion.

Cassandra table definitions for:
- Chat messages: one partition per user, newest first
- User insights: one row per user holding the rolling chat and diary
  summaries, the current recommendations and the prompt counter that
  decides when the chat summary is refreshed
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

CHAT_MESSAGE_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.chat_messages (
    user_id UUID,
    created_at TIMESTAMP,
    message_id UUID,
    role TEXT,
    content TEXT,
    PRIMARY KEY ((user_id), created_at, message_id)
) WITH CLUSTERING ORDER BY (created_at DESC, message_id ASC)
"""

USER_INSIGHTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.user_insights (
    user_id UUID PRIMARY KEY,
    chat_summary TEXT,
    diary_summary TEXT,
    recommendations LIST<TEXT>,
    prompt_count INT,
    updated_at TIMESTAMP
)
"""

CHAT_TABLES_CQL = [
    CHAT_MESSAGE_TABLE_CQL,
    USER_INSIGHTS_TABLE_CQL,
]


def _now() -> datetime:
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# ==============================================================================
# Entity Classes
# ==============================================================================


class ChatRole(str, Enum):
    """Who wrote a message; the values are the generation API's turn roles."""

    USER = "user"
    MODEL = "model"


@dataclass
class ChatMessage:
    """One turn of a user's conversation with the assistant."""

    message_id: UUID
    user_id: UUID
    created_at: datetime
    role: ChatRole
    content: str

    @classmethod
    def from_row(cls, row: Any) -> "ChatMessage":
        """Create ChatMessage from Cassandra row."""
        return cls(
            message_id=row.message_id,
            user_id=row.user_id,
            created_at=row.created_at,
            role=ChatRole(row.role),
            content=row.content,
        )


@dataclass
class UserInsights:
    """Rolling summaries and recommendations for one user."""

    user_id: UUID
    chat_summary: str | None = None
    diary_summary: str | None = None
    recommendations: list[str] = field(default_factory=list)
    prompt_count: int = 0
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "UserInsights":
        """Create UserInsights from Cassandra row."""
        return cls(
            user_id=row.user_id,
            chat_summary=row.chat_summary,
            diary_summary=row.diary_summary,
            recommendations=list(row.recommendations or []),
            prompt_count=row.prompt_count or 0,
            updated_at=row.updated_at,
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_chat_message(
    user_id: UUID, role: ChatRole, content: str, created_at: datetime | None = None
) -> ChatMessage:
    return ChatMessage(
        message_id=uuid4(),
        user_id=user_id,
        created_at=created_at or _now(),
        role=role,
        content=content,
    )
