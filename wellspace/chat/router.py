"""Chat companion and insights API endpoints."""

from fastapi import APIRouter, BackgroundTasks, status

from wellspace.auth.dependencies import CurrentUser

from .dependencies import ChatServiceDep, InsightsServiceDep, handle_chat_error
from .insights import InsightsError
from .schemas import ChatHistoryResponse, ChatReplyResponse, InsightsResponse, SendMessageRequest
from .service import ChatError


router = APIRouter(prefix="/v1/chat", tags=["chat"])
insights_router = APIRouter(prefix="/v1/insights", tags=["insights"])


@router.get(
    "/messages",
    response_model=ChatHistoryResponse,
    summary="Get chat history",
)
async def get_messages(
    chat_service: ChatServiceDep,
    user: CurrentUser,
) -> ChatHistoryResponse:
    """The last messages of the conversation, oldest first."""
    try:
        return await chat_service.get_history(user)
    except ChatError as e:
        raise handle_chat_error(e) from e


@router.post(
    "/messages",
    response_model=ChatReplyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Send a message to the assistant",
)
async def send_message(
    data: SendMessageRequest,
    background_tasks: BackgroundTasks,
    chat_service: ChatServiceDep,
    user: CurrentUser,
) -> ChatReplyResponse:
    """Answer a message; summaries are kept up to date after the response."""
    try:
        result = await chat_service.send_message(user, data.content)
    except ChatError as e:
        raise handle_chat_error(e) from e
    background_tasks.add_task(chat_service.update_insights, user)
    return result


@insights_router.get(
    "",
    response_model=InsightsResponse,
    summary="Get summaries and recommendations",
)
async def get_insights(
    insights_service: InsightsServiceDep,
    user: CurrentUser,
) -> InsightsResponse:
    try:
        return await insights_service.get_insights(user.id)
    except InsightsError as e:
        raise handle_chat_error(e) from e


@insights_router.post(
    "/recommendations/refresh",
    response_model=InsightsResponse,
    summary="Generate new recommendations",
)
async def refresh_recommendations(
    insights_service: InsightsServiceDep,
    user: CurrentUser,
) -> InsightsResponse:
    try:
        return await insights_service.refresh_recommendations(user.id)
    except InsightsError as e:
        raise handle_chat_error(e) from e
