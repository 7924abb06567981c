"""Tests for JournalService against a mocked Cassandra session."""

from datetime import UTC, date, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, Mock
from uuid import uuid4

import pytest
from cassandra import OperationTimedOut
from cassandra.cluster import Session

from wellspace.journal.schemas import CreateEntryRequest, UpdateEntryRequest
from wellspace.journal.scoring import MoodScorer
from wellspace.journal.service import (
    EntryNotFoundError,
    EntryTooShortError,
    JournalService,
    JournalUnavailableError,
)


ENTRY_TEXT = "<p>Long walk by the river, feeling calmer than yesterday.</p>"


@pytest.fixture
def mock_session():
    """Mock Cassandra session."""
    session = Mock(spec=Session)
    session.prepare = Mock(side_effect=lambda cql: cql)
    session.aexecute = AsyncMock(return_value=[])
    return session


@pytest.fixture
def scorer():
    scorer = Mock(spec=MoodScorer)
    scorer.score = AsyncMock(return_value=7)
    return scorer


@pytest.fixture
def journal_service(mock_session, scorer) -> JournalService:
    return JournalService(session=mock_session, keyspace="test_keyspace", scorer=scorer)


def entry_row(user_id, entry_id=None, **overrides):
    row = {
        "entry_id": entry_id or uuid4(),
        "user_id": user_id,
        "created_at": datetime(2026, 3, 1, 9, 30),
        "title": "Entry for March 1, 2026",
        "content": ENTRY_TEXT,
        "mood_score": 6,
        "tags": None,
        "updated_at": None,
    }
    row.update(overrides)
    return SimpleNamespace(**row)


def lookup_row(row):
    return SimpleNamespace(entry_id=row.entry_id, user_id=row.user_id, created_at=row.created_at)


class TestCreateEntry:
    """Tests for create_entry."""

    @pytest.mark.asyncio
    async def test_scores_and_stores(self, journal_service, mock_session, scorer, user) -> None:
        entry = await journal_service.create_entry(
            user, CreateEntryRequest(content=ENTRY_TEXT, tags=[" calm ", "calm", ""])
        )

        assert entry.mood_score == 7
        assert entry.tags == ["calm"]
        assert entry.title.startswith("Entry for ")
        scorer.score.assert_awaited_once_with(ENTRY_TEXT)
        assert mock_session.aexecute.await_count == 2

    @pytest.mark.asyncio
    async def test_backdated_entry(self, journal_service, user) -> None:
        entry = await journal_service.create_entry(
            user, CreateEntryRequest(content=ENTRY_TEXT, entry_date=date(2026, 2, 14))
        )

        assert entry.created_at == datetime(2026, 2, 14, tzinfo=UTC)
        assert entry.title == "Entry for February 14, 2026"

    @pytest.mark.asyncio
    async def test_too_short(self, journal_service, mock_session, scorer, user) -> None:
        with pytest.raises(EntryTooShortError):
            await journal_service.create_entry(user, CreateEntryRequest(content="<p>meh</p>"))

        scorer.score.assert_not_awaited()
        mock_session.aexecute.assert_not_awaited()


class TestReadAndModify:
    """Tests for get, update, delete and list."""

    @pytest.mark.asyncio
    async def test_get_own_entry(self, journal_service, mock_session, user) -> None:
        row = entry_row(user.id)
        mock_session.aexecute.side_effect = [[lookup_row(row)], [row]]

        entry = await journal_service.get_entry(user, row.entry_id)

        assert entry.id == row.entry_id
        assert entry.tags == []

    @pytest.mark.asyncio
    async def test_other_users_entry_is_not_found(
        self, journal_service, mock_session, user, other_user
    ) -> None:
        row = entry_row(other_user.id)
        mock_session.aexecute.side_effect = [[lookup_row(row)]]

        with pytest.raises(EntryNotFoundError):
            await journal_service.get_entry(user, row.entry_id)

    @pytest.mark.asyncio
    async def test_update_rescores_changed_content(
        self, journal_service, mock_session, scorer, user
    ) -> None:
        row = entry_row(user.id)
        mock_session.aexecute.side_effect = [[lookup_row(row)], [row], []]
        new_text = "<p>Rough afternoon but talked to a friend about it.</p>"

        entry = await journal_service.update_entry(
            user, row.entry_id, UpdateEntryRequest(content=new_text)
        )

        assert entry.mood_score == 7
        assert entry.content == new_text
        scorer.score.assert_awaited_once_with(new_text)

    @pytest.mark.asyncio
    async def test_update_title_only_keeps_score(
        self, journal_service, mock_session, scorer, user
    ) -> None:
        row = entry_row(user.id)
        mock_session.aexecute.side_effect = [[lookup_row(row)], [row], []]

        entry = await journal_service.update_entry(
            user, row.entry_id, UpdateEntryRequest(title="River walk")
        )

        assert entry.title == "River walk"
        assert entry.mood_score == 6
        scorer.score.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_delete(self, journal_service, mock_session, user) -> None:
        row = entry_row(user.id)
        mock_session.aexecute.side_effect = [[lookup_row(row)], [row], [], []]

        await journal_service.delete_entry(user, row.entry_id)

        assert mock_session.aexecute.await_count == 4

    @pytest.mark.asyncio
    async def test_list(self, journal_service, mock_session, user) -> None:
        mock_session.aexecute.return_value = SimpleNamespace(
            current_rows=[entry_row(user.id), entry_row(user.id)], paging_state=None
        )

        result = await journal_service.list_entries(user)

        assert result.total == 2
        assert mock_session.aexecute.await_args.args[1] == [user.id, journal_service.LIST_LIMIT]

    @pytest.mark.asyncio
    async def test_list_reads_every_page(self, journal_service, mock_session, user) -> None:
        mock_session.aexecute.side_effect = [
            SimpleNamespace(current_rows=[entry_row(user.id)], paging_state=b"more"),
            SimpleNamespace(current_rows=[entry_row(user.id)], paging_state=None),
        ]

        result = await journal_service.list_entries(user)

        assert result.total == 2
        assert mock_session.aexecute.await_args.kwargs == {"paging_state": b"more"}


class TestStoreFailures:
    """Driver errors surface as JournalUnavailableError."""

    @pytest.mark.asyncio
    async def test_create(self, journal_service, mock_session, user) -> None:
        mock_session.aexecute.side_effect = OperationTimedOut("timed out")

        with pytest.raises(JournalUnavailableError) as excinfo:
            await journal_service.create_entry(user, CreateEntryRequest(content=ENTRY_TEXT))

        assert excinfo.value.code == "store_unavailable"

    @pytest.mark.asyncio
    async def test_list(self, journal_service, mock_session, user) -> None:
        mock_session.aexecute.side_effect = OperationTimedOut("timed out")

        with pytest.raises(JournalUnavailableError):
            await journal_service.list_entries(user)

    @pytest.mark.asyncio
    async def test_get(self, journal_service, mock_session, user) -> None:
        mock_session.aexecute.side_effect = OperationTimedOut("timed out")

        with pytest.raises(JournalUnavailableError):
            await journal_service.get_entry(user, uuid4())


class TestDiarySummary:
    """Tests for refresh_diary_summary."""

    @pytest.mark.asyncio
    async def test_without_insights_does_nothing(self, journal_service, mock_session, user) -> None:
        await journal_service.refresh_diary_summary(user, ENTRY_TEXT)

        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_passes_plain_text(self, mock_session, scorer, user) -> None:
        insights = Mock()
        insights.update_diary_summary = AsyncMock()
        service = JournalService(mock_session, "test_keyspace", scorer, insights=insights)

        await service.refresh_diary_summary(user, ENTRY_TEXT)

        insights.update_diary_summary.assert_awaited_once_with(
            user.id, "Long walk by the river, feeling calmer than yesterday."
        )
