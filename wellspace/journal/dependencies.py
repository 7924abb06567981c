"""FastAPI dependencies for the journal."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import JournalError, JournalService


async def get_journal_service(request: Request) -> JournalService:
    """Get journal service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "journal_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Journal service not available",
        )
    return app_state.journal_service


JournalServiceDep = Annotated[JournalService, Depends(get_journal_service)]


def handle_journal_error(error: JournalError) -> HTTPException:
    """Convert journal errors to HTTP exceptions."""
    status_map = {
        "entry_not_found": status.HTTP_404_NOT_FOUND,
        "entry_too_short": status.HTTP_422_UNPROCESSABLE_ENTITY,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
