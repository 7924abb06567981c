"""Journal API endpoints."""

from uuid import UUID

from fastapi import APIRouter, BackgroundTasks, status

from wellspace.auth.dependencies import CurrentUser

from .dependencies import JournalServiceDep, handle_journal_error
from .schemas import CreateEntryRequest, EntryListResponse, EntryResponse, UpdateEntryRequest
from .service import JournalError


router = APIRouter(prefix="/v1/journal", tags=["journal"])


@router.post(
    "/entries",
    response_model=EntryResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create journal entry",
)
async def create_entry(
    data: CreateEntryRequest,
    background_tasks: BackgroundTasks,
    journal_service: JournalServiceDep,
    user: CurrentUser,
) -> EntryResponse:
    """Save an entry; its mood score (1-10) is computed on save.

    The diary summary used by the chat companion is refreshed after the
    response is sent.
    """
    try:
        entry = await journal_service.create_entry(user, data)
    except JournalError as e:
        raise handle_journal_error(e) from e
    background_tasks.add_task(journal_service.refresh_diary_summary, user, data.content)
    return entry


@router.get(
    "/entries",
    response_model=EntryListResponse,
    summary="List journal entries",
)
async def list_entries(
    journal_service: JournalServiceDep,
    user: CurrentUser,
) -> EntryListResponse:
    try:
        return await journal_service.list_entries(user)
    except JournalError as e:
        raise handle_journal_error(e) from e


@router.get(
    "/entries/{entry_id}",
    response_model=EntryResponse,
    summary="Get journal entry",
)
async def get_entry(
    entry_id: UUID,
    journal_service: JournalServiceDep,
    user: CurrentUser,
) -> EntryResponse:
    try:
        return await journal_service.get_entry(user, entry_id)
    except JournalError as e:
        raise handle_journal_error(e) from e


@router.patch(
    "/entries/{entry_id}",
    response_model=EntryResponse,
    summary="Update journal entry",
)
async def update_entry(
    entry_id: UUID,
    data: UpdateEntryRequest,
    journal_service: JournalServiceDep,
    user: CurrentUser,
) -> EntryResponse:
    """Update an entry. Changed content is scored again."""
    try:
        return await journal_service.update_entry(user, entry_id, data)
    except JournalError as e:
        raise handle_journal_error(e) from e


@router.delete(
    "/entries/{entry_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete journal entry",
)
async def delete_entry(
    entry_id: UUID,
    journal_service: JournalServiceDep,
    user: CurrentUser,
) -> None:
    try:
        await journal_service.delete_entry(user, entry_id)
    except JournalError as e:
        raise handle_journal_error(e) from e
