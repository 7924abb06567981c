"""Pydantic schemas for the chat companion and insights."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from .models import ChatMessage, ChatRole, UserInsights


MAX_MESSAGE_LENGTH = 4000


class SendMessageRequest(BaseModel):
    """A message to the assistant."""

    content: str = Field(..., min_length=1, max_length=MAX_MESSAGE_LENGTH)

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("Message cannot be empty")
        return v


class ChatMessageResponse(BaseModel):
    """One chat turn; the greeting shown to new users has no id."""

    id: UUID | None = None
    role: ChatRole
    content: str
    created_at: datetime | None = None

    @classmethod
    def from_message(cls, message: ChatMessage) -> "ChatMessageResponse":
        return cls(
            id=message.message_id,
            role=message.role,
            content=message.content,
            created_at=message.created_at,
        )


class ChatHistoryResponse(BaseModel):
    """Recent conversation, oldest first."""

    items: list[ChatMessageResponse]


class ChatReplyResponse(BaseModel):
    """The stored user message and the assistant's answer."""

    message: ChatMessageResponse
    reply: ChatMessageResponse


class InsightsResponse(BaseModel):
    """Summaries and recommendations for the signed-in user."""

    chat_summary: str | None = None
    diary_summary: str | None = None
    recommendations: list[str]
    personalized: bool = Field(
        description="False while the defaults are shown instead of generated recommendations"
    )
    updated_at: datetime | None = None

    @classmethod
    def from_insights(
        cls, insights: UserInsights, defaults: list[str]
    ) -> "InsightsResponse":
        personalized = bool(insights.recommendations)
        return cls(
            chat_summary=insights.chat_summary,
            diary_summary=insights.diary_summary,
            recommendations=insights.recommendations if personalized else list(defaults),
            personalized=personalized,
            updated_at=insights.updated_at,
        )
