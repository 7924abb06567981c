"""Journal service layer.

Business logic for:
- Entry CRUD scoped to the owner
- Mood scoring on create and on every content change
- Store failures surfaced as JournalUnavailableError
"""

from datetime import UTC, datetime, time
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from wellspace.auth.schemas import SessionUser
from wellspace.core.database.queries import StoreError, execute, fetch_all, first_row

from .models import JournalEntry, create_journal_entry
from .schemas import (
    CreateEntryRequest,
    EntryListResponse,
    EntryResponse,
    UpdateEntryRequest,
)
from .scoring import MIN_ENTRY_LENGTH, MoodScorer, plain_text


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from wellspace.chat.insights import InsightsService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class JournalError(Exception):
    """Base journal error."""

    def __init__(self, message: str, code: str = "journal_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class EntryNotFoundError(JournalError):
    """Entry not found (or owned by someone else)."""

    def __init__(self, message: str = "Journal entry not found"):
        super().__init__(message, "entry_not_found")


class EntryTooShortError(JournalError):
    """Entry text below the minimum length."""

    def __init__(self, message: str = "Entry is too short. Please write a bit more to save."):
        super().__init__(message, "entry_too_short")


class JournalUnavailableError(JournalError):
    """The journal store could not be reached."""

    def __init__(self, message: str = "Journal is unavailable right now. Please try again."):
        super().__init__(message, "store_unavailable")


class JournalService:
    """Service for private journal entries."""

    LIST_LIMIT = 500

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        scorer: MoodScorer,
        insights: "InsightsService | None" = None,
    ):
        """Initialize with Cassandra session, mood scorer and optional insights."""
        self.session = session
        self.keyspace = keyspace
        self.scorer = scorer
        self.insights = insights
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_entry = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.journal_entries
            (user_id, created_at, entry_id, title, content, mood_score, tags, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_entry_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.journal_entries_by_id (entry_id, user_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_entry_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.journal_entries_by_id WHERE entry_id = ?
        """)

        self._get_entry = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.journal_entries
            WHERE user_id = ? AND created_at = ? AND entry_id = ?
        """)

        self._list_entries = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.journal_entries
            WHERE user_id = ?
            LIMIT ?
        """)

        self._update_entry = self.session.prepare(f"""
            UPDATE {self.keyspace}.journal_entries
            SET title = ?, content = ?, mood_score = ?, tags = ?, updated_at = ?
            WHERE user_id = ? AND created_at = ? AND entry_id = ?
        """)

        self._delete_entry = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.journal_entries
            WHERE user_id = ? AND created_at = ? AND entry_id = ?
        """)

        self._delete_entry_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.journal_entries_by_id WHERE entry_id = ?
        """)

    async def _run(self, operation: str, statement, params: list) -> list:
        try:
            return await execute(self.session, operation, statement, params)
        except StoreError as e:
            raise JournalUnavailableError() from e

    def _check_length(self, content: str) -> None:
        if len(plain_text(content)) < MIN_ENTRY_LENGTH:
            raise EntryTooShortError()

    async def _find_entry(self, user: SessionUser, entry_id: UUID) -> JournalEntry:
        lookup = first_row(
            await self._run("get_entry_lookup", self._get_entry_lookup, [entry_id])
        )
        # Someone else's entry looks exactly like a missing one
        if lookup is None or lookup.user_id != user.id:
            raise EntryNotFoundError()

        row = first_row(
            await self._run(
                "get_entry", self._get_entry, [user.id, lookup.created_at, entry_id]
            )
        )
        if row is None:
            raise EntryNotFoundError()
        return JournalEntry.from_row(row)

    async def recent_entries(self, user_id: UUID, limit: int) -> list[JournalEntry]:
        """Up to ``limit`` of a user's entries, newest first."""
        try:
            rows = await fetch_all(
                self.session, "list_entries", self._list_entries, [user_id, limit]
            )
        except StoreError as e:
            raise JournalUnavailableError() from e
        return [JournalEntry.from_row(row) for row in rows]

    async def create_entry(
        self, user: SessionUser, data: CreateEntryRequest
    ) -> EntryResponse:
        """Score and store a new entry."""
        self._check_length(data.content)
        mood_score = await self.scorer.score(data.content)

        created_at = None
        if data.entry_date is not None:
            created_at = datetime.combine(data.entry_date, time(), tzinfo=UTC)

        entry = create_journal_entry(
            user_id=user.id,
            content=data.content,
            mood_score=mood_score,
            title=data.title,
            tags=data.tags,
            created_at=created_at,
        )

        await self._run(
            "insert_entry",
            self._insert_entry,
            [
                entry.user_id,
                entry.created_at,
                entry.entry_id,
                entry.title,
                entry.content,
                entry.mood_score,
                entry.tags,
                entry.updated_at,
            ],
        )
        await self._run(
            "insert_entry_lookup",
            self._insert_entry_lookup,
            [entry.entry_id, entry.user_id, entry.created_at],
        )

        logger.info(
            "journal_entry_created",
            entry_id=str(entry.entry_id),
            mood_score=entry.mood_score,
        )
        return EntryResponse.from_entry(entry)

    async def refresh_diary_summary(self, user: SessionUser, content: str) -> None:
        """Fold a newly saved entry into the diary summary the chat companion reads.

        Runs after the save has been answered; the insights side logs and
        swallows its own failures.
        """
        if self.insights is None:
            return
        await self.insights.update_diary_summary(user.id, plain_text(content))

    async def list_entries(self, user: SessionUser) -> EntryListResponse:
        """The caller's entries, newest first."""
        entries = await self.recent_entries(user.id, self.LIST_LIMIT)
        items = [EntryResponse.from_entry(entry) for entry in entries]
        return EntryListResponse(items=items, total=len(items))

    async def get_entry(self, user: SessionUser, entry_id: UUID) -> EntryResponse:
        entry = await self._find_entry(user, entry_id)
        return EntryResponse.from_entry(entry)

    async def update_entry(
        self, user: SessionUser, entry_id: UUID, data: UpdateEntryRequest
    ) -> EntryResponse:
        """Update an entry; a content change is re-scored."""
        entry = await self._find_entry(user, entry_id)

        if data.content is not None and data.content != entry.content:
            self._check_length(data.content)
            entry.content = data.content
            entry.mood_score = await self.scorer.score(data.content)
        if data.title is not None:
            entry.title = data.title
        if data.tags is not None:
            entry.tags = data.tags
        entry.updated_at = datetime.now(UTC)

        await self._run(
            "update_entry",
            self._update_entry,
            [
                entry.title,
                entry.content,
                entry.mood_score,
                entry.tags,
                entry.updated_at,
                entry.user_id,
                entry.created_at,
                entry.entry_id,
            ],
        )

        logger.info(
            "journal_entry_updated",
            entry_id=str(entry.entry_id),
            mood_score=entry.mood_score,
        )
        return EntryResponse.from_entry(entry)

    async def delete_entry(self, user: SessionUser, entry_id: UUID) -> None:
        entry = await self._find_entry(user, entry_id)

        await self._run(
            "delete_entry",
            self._delete_entry,
            [entry.user_id, entry.created_at, entry.entry_id],
        )
        await self._run("delete_entry_lookup", self._delete_entry_lookup, [entry.entry_id])

        logger.info("journal_entry_deleted", entry_id=str(entry_id))
