"""Cassandra access for chat messages and user insights.

Insights columns are written independently: bumping the prompt counter never
touches the summaries, and a diary summary update never resets the counter.
"""

from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from wellspace.core.database.queries import execute, first_row

from .models import ChatMessage, UserInsights


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


class ChatRepository:
    """Chat history and the per-user insights row."""

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Messages
        self._insert_message = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.chat_messages
            (user_id, created_at, message_id, role, content)
            VALUES (?, ?, ?, ?, ?)
        """)

        self._recent_messages = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.chat_messages
            WHERE user_id = ?
            LIMIT ?
        """)

        # Insights
        self._get_insights = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.user_insights WHERE user_id = ?
        """)

        self._set_prompt_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.user_insights
            SET prompt_count = ?, updated_at = ?
            WHERE user_id = ?
        """)

        self._set_chat_summary = self.session.prepare(f"""
            UPDATE {self.keyspace}.user_insights
            SET chat_summary = ?, recommendations = ?, prompt_count = ?, updated_at = ?
            WHERE user_id = ?
        """)

        self._set_diary_summary = self.session.prepare(f"""
            UPDATE {self.keyspace}.user_insights
            SET diary_summary = ?, recommendations = ?, updated_at = ?
            WHERE user_id = ?
        """)

        self._set_recommendations = self.session.prepare(f"""
            UPDATE {self.keyspace}.user_insights
            SET recommendations = ?, updated_at = ?
            WHERE user_id = ?
        """)

    async def _execute(self, operation: str, statement: Any, params: list[Any]) -> Any:
        return await execute(self.session, operation, statement, params)

    # ==========================================================================
    # Messages
    # ==========================================================================

    async def insert_message(self, message: ChatMessage) -> None:
        await self._execute(
            "insert_chat_message",
            self._insert_message,
            [
                message.user_id,
                message.created_at,
                message.message_id,
                message.role.value,
                message.content,
            ],
        )

    async def recent_messages(self, user_id: UUID, limit: int) -> list[ChatMessage]:
        """The last ``limit`` messages of a user, oldest first."""
        rows = await self._execute(
            "recent_chat_messages", self._recent_messages, [user_id, limit]
        )
        messages = [ChatMessage.from_row(row) for row in rows]
        messages.reverse()
        return messages

    # ==========================================================================
    # Insights
    # ==========================================================================

    async def get_insights(self, user_id: UUID) -> UserInsights:
        """The user's insights row, or an empty one if none was written yet."""
        row = first_row(
            await self._execute("get_user_insights", self._get_insights, [user_id])
        )
        if row is None:
            return UserInsights(user_id=user_id)
        return UserInsights.from_row(row)

    async def set_prompt_count(self, user_id: UUID, count: int) -> None:
        await self._execute(
            "set_prompt_count",
            self._set_prompt_count,
            [count, datetime.now(UTC), user_id],
        )

    async def save_chat_summary(
        self, user_id: UUID, summary: str, recommendations: list[str]
    ) -> None:
        """Store a new chat summary and its recommendations; resets the counter."""
        await self._execute(
            "save_chat_summary",
            self._set_chat_summary,
            [summary, recommendations, 0, datetime.now(UTC), user_id],
        )
        logger.info(
            "chat_summary_saved",
            user_id=str(user_id),
            recommendations=len(recommendations),
        )

    async def save_diary_summary(
        self, user_id: UUID, summary: str, recommendations: list[str]
    ) -> None:
        await self._execute(
            "save_diary_summary",
            self._set_diary_summary,
            [summary, recommendations, datetime.now(UTC), user_id],
        )
        logger.info(
            "diary_summary_saved",
            user_id=str(user_id),
            recommendations=len(recommendations),
        )

    async def save_recommendations(self, user_id: UUID, recommendations: list[str]) -> None:
        await self._execute(
            "save_recommendations",
            self._set_recommendations,
            [recommendations, datetime.now(UTC), user_id],
        )
