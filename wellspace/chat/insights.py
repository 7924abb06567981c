"""Rolling summaries and personal wellness recommendations.

The chat summary is refreshed every ``summary_interval`` exchanges once a
conversation has a few turns; the diary summary after every saved journal
entry. Both refreshes also replace the recommendations. They run after the
triggering request has been answered, so their failures are logged and
dropped.
"""

from uuid import UUID

import structlog

from wellspace.ai.client import AIServiceError, GenerativeClient
from wellspace.core.database.queries import StoreError

from .models import ChatMessage, UserInsights
from .prompts import (
    DEFAULT_RECOMMENDATIONS,
    SUMMARY_SEPARATOR,
    build_chat_summary_prompt,
    build_diary_summary_prompt,
    build_recommendations_prompt,
    parse_recommendations,
    split_summary_reply,
)
from .repository import ChatRepository
from .schemas import InsightsResponse


logger = structlog.get_logger(__name__)

# A conversation shorter than this is not summarized
MIN_SUMMARY_MESSAGES = 4


class InsightsError(Exception):
    """Base insights error."""

    def __init__(self, message: str, code: str = "insights_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class InsightsUnavailableError(InsightsError):
    """Insights could not be read or stored."""

    def __init__(self, message: str = "Insights are unavailable right now. Please try again."):
        super().__init__(message, "store_unavailable")


class RecommendationsFailedError(InsightsError):
    """No new recommendations could be generated."""

    def __init__(
        self, message: str = "Could not get new recommendations right now. Please try again."
    ):
        super().__init__(message, "recommendations_failed")


def conversation_text(messages: list[ChatMessage]) -> str:
    return "\n".join(f"{message.role.value}: {message.content}" for message in messages)


class InsightsService:
    """Maintains the per-user summaries and recommendations."""

    def __init__(
        self,
        repository: ChatRepository,
        client: GenerativeClient,
        summary_interval: int = 5,
    ):
        self.repository = repository
        self.client = client
        self.summary_interval = summary_interval

    async def load(self, user_id: UUID) -> UserInsights:
        """Insights for prompt context; an empty row when the store fails."""
        try:
            return await self.repository.get_insights(user_id)
        except StoreError as e:
            logger.warning("insights_context_unavailable", operation=e.operation)
            return UserInsights(user_id=user_id)

    async def get_insights(self, user_id: UUID) -> InsightsResponse:
        """Summaries and recommendations; defaults until the first summary exists."""
        try:
            insights = await self.repository.get_insights(user_id)
        except StoreError as e:
            raise InsightsUnavailableError() from e
        return InsightsResponse.from_insights(insights, DEFAULT_RECOMMENDATIONS)

    async def refresh_recommendations(self, user_id: UUID) -> InsightsResponse:
        """Generate a fresh set of recommendations from the current summaries."""
        try:
            insights = await self.repository.get_insights(user_id)
        except StoreError as e:
            raise InsightsUnavailableError() from e

        prompt = build_recommendations_prompt(insights.diary_summary, insights.chat_summary)
        try:
            raw = await self.client.generate(prompt)
        except AIServiceError as e:
            logger.warning("recommendations_refresh_failed", error_code=e.code)
            raise RecommendationsFailedError() from e

        recommendations = parse_recommendations(raw)
        if not recommendations:
            logger.warning("recommendations_refresh_empty")
            raise RecommendationsFailedError()

        try:
            await self.repository.save_recommendations(user_id, recommendations)
        except StoreError as e:
            raise InsightsUnavailableError() from e

        insights.recommendations = recommendations
        logger.info("recommendations_refreshed", count=len(recommendations))
        return InsightsResponse.from_insights(insights, DEFAULT_RECOMMENDATIONS)

    async def record_exchange(self, user_id: UUID, conversation: list[ChatMessage]) -> None:
        """Count one exchange and refresh the chat summary when it is due."""
        if len(conversation) < MIN_SUMMARY_MESSAGES:
            return

        try:
            insights = await self.repository.get_insights(user_id)
            count = insights.prompt_count + 1
            await self.repository.set_prompt_count(user_id, count)
            if count < self.summary_interval:
                return

            raw = await self.client.generate(
                build_chat_summary_prompt(
                    insights.chat_summary,
                    conversation_text(conversation),
                    insights.diary_summary,
                )
            )
            parsed = split_summary_reply(raw)
            if parsed is None:
                # The counter stays due, so the next exchange tries again
                logger.warning("chat_summary_unparsable", prompt_count=count)
                return
            summary, recommendations = parsed
            await self.repository.save_chat_summary(user_id, summary, recommendations)
        except (StoreError, AIServiceError) as e:
            logger.warning(
                "chat_summary_update_failed",
                error_type=type(e).__name__,
                error=str(e),
            )

    async def update_diary_summary(self, user_id: UUID, entry_text: str) -> None:
        """Fold a new journal entry into the diary summary."""
        try:
            insights = await self.repository.get_insights(user_id)
            raw = await self.client.generate(
                build_diary_summary_prompt(
                    insights.diary_summary, entry_text, insights.chat_summary
                )
            )
            summary, _, rest = raw.partition(SUMMARY_SEPARATOR)
            summary = summary.strip()
            if not summary:
                logger.warning("diary_summary_empty")
                return
            recommendations = parse_recommendations(rest) or insights.recommendations
            await self.repository.save_diary_summary(user_id, summary, recommendations)
        except (StoreError, AIServiceError) as e:
            logger.warning(
                "diary_summary_update_failed",
                error_type=type(e).__name__,
                error=str(e),
            )
