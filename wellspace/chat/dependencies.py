"""FastAPI dependencies for the chat companion and insights."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .insights import InsightsError, InsightsService
from .service import ChatError, ChatService


async def get_chat_service(request: Request) -> ChatService:
    """Get chat service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "chat_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Chat service not available",
        )
    return app_state.chat_service


async def get_insights_service(request: Request) -> InsightsService:
    """Get insights service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "insights_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Insights service not available",
        )
    return app_state.insights_service


ChatServiceDep = Annotated[ChatService, Depends(get_chat_service)]
InsightsServiceDep = Annotated[InsightsService, Depends(get_insights_service)]


def handle_chat_error(error: ChatError | InsightsError) -> HTTPException:
    """Convert chat and insights errors to HTTP exceptions.

    Every failure here is transient from the user's point of view.
    """
    status_map = {
        "assistant_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
        "recommendations_failed": status.HTTP_503_SERVICE_UNAVAILABLE,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    return HTTPException(
        status_code=status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR),
        detail=error.message,
    )
