"""Chat companion service layer.

Business logic for:
- Storing both sides of the conversation
- History-aware generation framed by the user's name and journal summary
- Retrying transient generation failures with a doubling delay
"""

import asyncio

import structlog

from wellspace.ai.client import AIRequestError, AIServiceError, GenerativeClient
from wellspace.auth.schemas import SessionUser
from wellspace.core.database.queries import StoreError

from .insights import InsightsService
from .models import ChatMessage, ChatRole, create_chat_message
from .prompts import GREETING, build_system_prompt
from .repository import ChatRepository
from .schemas import ChatHistoryResponse, ChatMessageResponse, ChatReplyResponse


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class ChatError(Exception):
    """Base chat error."""

    def __init__(self, message: str, code: str = "chat_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class AssistantUnavailableError(ChatError):
    """No reply could be generated."""

    def __init__(self, message: str = "The assistant is having trouble right now. Please try again."):
        super().__init__(message, "assistant_unavailable")


class ChatUnavailableError(ChatError):
    """Chat history could not be read or stored."""

    def __init__(self, message: str = "Chat is unavailable right now. Please try again."):
        super().__init__(message, "store_unavailable")


class ChatService:
    """Conversations with the wellness assistant."""

    def __init__(
        self,
        repository: ChatRepository,
        client: GenerativeClient,
        insights: InsightsService,
        history_limit: int = 10,
        max_retries: int = 3,
        retry_delay: float = 2.0,
    ):
        self.repository = repository
        self.client = client
        self.insights = insights
        self.history_limit = history_limit
        self.max_retries = max_retries
        self.retry_delay = retry_delay

    async def _recent(self, user: SessionUser) -> list[ChatMessage]:
        try:
            return await self.repository.recent_messages(user.id, self.history_limit)
        except StoreError as e:
            raise ChatUnavailableError() from e

    async def _store(self, message: ChatMessage) -> None:
        try:
            await self.repository.insert_message(message)
        except StoreError as e:
            raise ChatUnavailableError() from e

    async def get_history(self, user: SessionUser) -> ChatHistoryResponse:
        """Recent messages, or the greeting for a conversation not started yet."""
        messages = await self._recent(user)
        if not messages:
            greeting = ChatMessageResponse(role=ChatRole.MODEL, content=GREETING)
            return ChatHistoryResponse(items=[greeting])
        return ChatHistoryResponse(
            items=[ChatMessageResponse.from_message(m) for m in messages]
        )

    async def send_message(self, user: SessionUser, content: str) -> ChatReplyResponse:
        """Store the user's message, generate the reply and store it too."""
        history = await self._recent(user)

        message = create_chat_message(user.id, ChatRole.USER, content)
        await self._store(message)

        context = await self.insights.load(user.id)
        reply_text = await self._generate(
            content,
            history=[(m.role.value, m.content) for m in history],
            system_instruction=build_system_prompt(
                user.display_name, context.diary_summary, context.chat_summary
            ),
        )

        reply = create_chat_message(user.id, ChatRole.MODEL, reply_text)
        await self._store(reply)

        logger.info("chat_reply_sent", history_turns=len(history))
        return ChatReplyResponse(
            message=ChatMessageResponse.from_message(message),
            reply=ChatMessageResponse.from_message(reply),
        )

    async def _generate(
        self, prompt: str, history: list[tuple[str, str]], system_instruction: str
    ) -> str:
        delay = self.retry_delay
        for attempt in range(1, self.max_retries + 1):
            try:
                text = await self.client.generate(
                    prompt, history=history, system_instruction=system_instruction
                )
                return text.strip()
            except AIRequestError as e:
                if not e.retryable or attempt == self.max_retries:
                    logger.error("chat_reply_failed", error_code=e.code, attempts=attempt)
                    raise AssistantUnavailableError() from e
                logger.warning(
                    "chat_reply_retry",
                    attempt=attempt,
                    status_code=e.status_code,
                    delay_seconds=delay,
                )
                await asyncio.sleep(delay)
                delay *= 2
            except AIServiceError as e:
                logger.error("chat_reply_failed", error_code=e.code, attempts=attempt)
                raise AssistantUnavailableError() from e
        raise AssistantUnavailableError()

    async def update_insights(self, user: SessionUser) -> None:
        """Feed the latest conversation to the summary upkeep."""
        try:
            conversation = await self.repository.recent_messages(user.id, self.history_limit)
        except StoreError as e:
            logger.warning("chat_summary_skipped", operation=e.operation)
            return
        await self.insights.record_exchange(user.id, conversation)
