"""Database models for the journal.

Entries are partitioned by owner and ordered newest first. A lookup table
resolves an entry ID to its owner and clustering key.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


JOURNAL_ENTRY_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.journal_entries (
    user_id UUID,
    created_at TIMESTAMP,
    entry_id UUID,
    title TEXT,
    content TEXT,
    mood_score INT,
    tags LIST<TEXT>,
    updated_at TIMESTAMP,
    PRIMARY KEY ((user_id), created_at, entry_id)
) WITH CLUSTERING ORDER BY (created_at DESC, entry_id ASC)
"""

JOURNAL_ENTRIES_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.journal_entries_by_id (
    entry_id UUID PRIMARY KEY,
    user_id UUID,
    created_at TIMESTAMP
)
"""

JOURNAL_TABLES_CQL = [
    JOURNAL_ENTRY_TABLE_CQL,
    JOURNAL_ENTRIES_BY_ID_TABLE_CQL,
]


def _now() -> datetime:
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


@dataclass
class JournalEntry:
    """A private journal entry."""

    entry_id: UUID
    user_id: UUID
    created_at: datetime
    title: str
    content: str
    mood_score: int
    tags: list[str] = field(default_factory=list)
    updated_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "JournalEntry":
        """Create JournalEntry from Cassandra row."""
        return cls(
            entry_id=row.entry_id,
            user_id=row.user_id,
            created_at=row.created_at,
            title=row.title,
            content=row.content,
            mood_score=row.mood_score,
            tags=list(row.tags or []),
            updated_at=row.updated_at,
        )


def default_title(day: datetime) -> str:
    """Title used when the author leaves it empty, e.g. "Entry for March 3, 2026"."""
    return f"Entry for {day.strftime('%B')} {day.day}, {day.year}"


def create_journal_entry(
    user_id: UUID,
    content: str,
    mood_score: int,
    title: str | None = None,
    tags: list[str] | None = None,
    created_at: datetime | None = None,
) -> JournalEntry:
    """Create a new journal entry."""
    now = _now()
    created_at = created_at or now
    return JournalEntry(
        entry_id=uuid4(),
        user_id=user_id,
        created_at=created_at,
        title=title or default_title(created_at),
        content=content,
        mood_score=mood_score,
        tags=list(tags or []),
        updated_at=now,
    )
