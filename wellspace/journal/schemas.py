"""Pydantic schemas for the journal."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import JournalEntry


MAX_ENTRY_LENGTH = 50000


def _clean_tags(tags: list[str]) -> list[str]:
    cleaned: list[str] = []
    for tag in tags:
        tag = tag.strip()
        if tag and tag not in cleaned:
            cleaned.append(tag)
    return cleaned


class CreateEntryRequest(BaseModel):
    """Request to write a journal entry.

    ``content`` may be HTML from the rich-text editor. ``entry_date`` backdates
    the entry to a day picked in the calendar.
    """

    content: str = Field(..., max_length=MAX_ENTRY_LENGTH)
    title: str | None = Field(None, max_length=200)
    tags: list[str] = Field(default_factory=list, max_length=20)
    entry_date: date | None = None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str]) -> list[str]:
        return _clean_tags(v)


class UpdateEntryRequest(BaseModel):
    """Partial update; omitted fields are kept."""

    content: str | None = Field(None, max_length=MAX_ENTRY_LENGTH)
    title: str | None = Field(None, max_length=200)
    tags: list[str] | None = Field(None, max_length=20)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        return _clean_tags(v) if v is not None else None


class EntryResponse(BaseModel):
    """Journal entry."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    title: str
    content: str
    mood_score: int
    tags: list[str]
    created_at: datetime
    updated_at: datetime | None

    @classmethod
    def from_entry(cls, entry: JournalEntry) -> "EntryResponse":
        return cls(
            id=entry.entry_id,
            title=entry.title,
            content=entry.content,
            mood_score=entry.mood_score,
            tags=entry.tags,
            created_at=entry.created_at,
            updated_at=entry.updated_at,
        )


class EntryListResponse(BaseModel):
    """The caller's entries, newest first."""

    items: list[EntryResponse]
    total: int
