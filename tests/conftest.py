"""Shared fixtures: in-memory stores, fake Redis, scripted AI client, auth tokens."""

import json
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock
from uuid import UUID, uuid4

import pytest
from cassandra import DriverException
from fastapi import FastAPI
from fastapi.testclient import TestClient
from jose import jwt
from redis.exceptions import ConnectionError as RedisConnectionError

from wellspace.ai.client import GenerativeClient
from wellspace.auth.schemas import SessionUser
from wellspace.chat.insights import InsightsService
from wellspace.chat.models import ChatMessage, ChatRole, UserInsights, create_chat_message
from wellspace.chat.service import ChatService
from wellspace.community.models import Comment, Post
from wellspace.community.pending import PendingSubmissionStore
from wellspace.community.repository import StoreError
from wellspace.community.service import CommunityService
from wellspace.config import get_settings
from wellspace.main import create_app
from wellspace.moderation.classifier import ModerationClassifier
from wellspace.moderation.support import SupportMessageGenerator


class InMemoryCommunityRepository:
    """Stands in for CommunityRepository; keeps rows in insertion order.

    Operations listed in ``failing`` raise StoreError like a driver failure.
    """

    def __init__(self) -> None:
        self.posts: dict[UUID, Post] = {}
        self.comments: list[Comment] = []
        self.failing: set[str] = set()
        self.calls: list[str] = []

    def _op(self, name: str) -> None:
        self.calls.append(name)
        if name in self.failing:
            raise StoreError(name, DriverException("simulated failure"))

    async def insert_post(self, post: Post) -> None:
        self._op("insert_post")
        self.posts[post.post_id] = post

    async def get_post(self, post_id: UUID) -> Post | None:
        self._op("get_post")
        return self.posts.get(post_id)

    async def list_posts(self, user_id: UUID | None = None, limit: int | None = None) -> list[Post]:
        self._op("list_posts")
        posts = sorted(self.posts.values(), key=lambda p: p.created_at, reverse=True)
        if user_id is not None:
            posts = [p for p in posts if p.user_id == user_id]
        return posts[:limit] if limit else posts

    async def update_comment_count(self, post: Post, count: int) -> bool:
        self._op("update_comment_count")
        if post.post_id not in self.posts:
            return False
        self.posts[post.post_id].comment_count = count
        return True

    async def delete_post(self, post: Post) -> None:
        self._op("delete_post")
        self.posts.pop(post.post_id, None)
        self.comments = [c for c in self.comments if c.post_id != post.post_id]

    async def insert_comment(self, comment: Comment) -> None:
        self._op("insert_comment")
        self.comments.append(comment)

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        self._op("get_comment")
        return next((c for c in self.comments if c.comment_id == comment_id), None)

    async def list_comments(self, post_id: UUID) -> list[Comment]:
        self._op("list_comments")
        return [c for c in self.comments if c.post_id == post_id]

    async def delete_comments(self, comments: list[Comment]) -> None:
        self._op("delete_comments")
        doomed = {c.comment_id for c in comments}
        self.comments = [c for c in self.comments if c.comment_id not in doomed]


class FakeRedis:
    """The subset of redis.asyncio.Redis used by PendingSubmissionStore.

    Commands listed in ``failing`` raise like a dropped connection.
    """

    def __init__(self) -> None:
        self.data: dict[str, str] = {}
        self.expiries: dict[str, int] = {}
        self.failing: set[str] = set()

    def _command(self, name: str) -> None:
        if name in self.failing:
            raise RedisConnectionError("redis down")

    async def set(self, key: str, value: str, ex: int | None = None) -> bool:
        self._command("set")
        self.data[key] = value
        if ex is not None:
            self.expiries[key] = ex
        return True

    async def get(self, key: str) -> str | None:
        self._command("get")
        return self.data.get(key)

    async def getdel(self, key: str) -> str | None:
        self._command("getdel")
        return self.data.pop(key, None)


class InMemoryChatRepository:
    """Stands in for ChatRepository.

    Operations listed in ``failing`` raise StoreError like a driver failure.
    """

    def __init__(self) -> None:
        self.messages: list[ChatMessage] = []
        self.insights: dict[UUID, UserInsights] = {}
        self.failing: set[str] = set()

    def _op(self, name: str) -> None:
        if name in self.failing:
            raise StoreError(name, DriverException("simulated failure"))

    def _row(self, user_id: UUID) -> UserInsights:
        return self.insights.setdefault(user_id, UserInsights(user_id=user_id))

    def seed(self, user_id: UUID, *turns: tuple[ChatRole, str]) -> None:
        for role, content in turns:
            self.messages.append(create_chat_message(user_id, role, content))

    async def insert_message(self, message: ChatMessage) -> None:
        self._op("insert_chat_message")
        self.messages.append(message)

    async def recent_messages(self, user_id: UUID, limit: int) -> list[ChatMessage]:
        self._op("recent_chat_messages")
        own = [m for m in self.messages if m.user_id == user_id]
        return own[-limit:]

    async def get_insights(self, user_id: UUID) -> UserInsights:
        self._op("get_user_insights")
        row = self.insights.get(user_id)
        if row is None:
            return UserInsights(user_id=user_id)
        return UserInsights(
            user_id=user_id,
            chat_summary=row.chat_summary,
            diary_summary=row.diary_summary,
            recommendations=list(row.recommendations),
            prompt_count=row.prompt_count,
        )

    async def set_prompt_count(self, user_id: UUID, count: int) -> None:
        self._op("set_prompt_count")
        self._row(user_id).prompt_count = count

    async def save_chat_summary(
        self, user_id: UUID, summary: str, recommendations: list[str]
    ) -> None:
        self._op("save_chat_summary")
        row = self._row(user_id)
        row.chat_summary = summary
        row.recommendations = recommendations
        row.prompt_count = 0

    async def save_diary_summary(
        self, user_id: UUID, summary: str, recommendations: list[str]
    ) -> None:
        self._op("save_diary_summary")
        row = self._row(user_id)
        row.diary_summary = summary
        row.recommendations = recommendations

    async def save_recommendations(self, user_id: UUID, recommendations: list[str]) -> None:
        self._op("save_recommendations")
        self._row(user_id).recommendations = recommendations


def classifier_reply(category: str, reason: str = "test reason") -> str:
    """Raw model text with the JSON verdict wrapped in prose."""
    return f"Here is my analysis:\n{json.dumps({'category': category, 'reason': reason})}\nDone."


def scripted_ai_client(*replies: str | Exception) -> Mock:
    """AI client whose generate() returns (or raises) the given replies in order."""
    client = Mock(spec=GenerativeClient)
    client.is_configured = True
    client.generate = AsyncMock(side_effect=list(replies))
    return client


@pytest.fixture
def repository() -> InMemoryCommunityRepository:
    return InMemoryCommunityRepository()


@pytest.fixture
def fake_redis() -> FakeRedis:
    return FakeRedis()


@pytest.fixture
def pending_store(fake_redis: FakeRedis) -> PendingSubmissionStore:
    return PendingSubmissionStore(fake_redis, ttl_seconds=600)


@pytest.fixture
def make_service(repository, pending_store):
    """Build a CommunityService whose AI calls follow a script."""

    def _make(*replies: str | Exception) -> CommunityService:
        ai_client = scripted_ai_client(*replies)
        return CommunityService(
            repository=repository,
            classifier=ModerationClassifier(ai_client),
            support=SupportMessageGenerator(ai_client),
            pending=pending_store,
        )

    return _make


@pytest.fixture
def user() -> SessionUser:
    return SessionUser(id=uuid4(), email="sam@example.com", display_name="Sam")


@pytest.fixture
def other_user() -> SessionUser:
    return SessionUser(id=uuid4(), email="alex@example.com", display_name="Alex")


def make_token(user: SessionUser, expires_in: timedelta = timedelta(hours=1)) -> str:
    """Access token shaped like the external auth provider's."""
    settings = get_settings()
    claims = {
        "sub": str(user.id),
        "email": user.email,
        "aud": settings.auth_audience,
        "exp": datetime.now(UTC) + expires_in,
        "user_metadata": {"display_name": user.display_name},
    }
    return jwt.encode(claims, settings.auth_jwt_secret, algorithm=settings.auth_algorithm)


@pytest.fixture
def auth_headers(user: SessionUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(user)}"}


@pytest.fixture
def other_auth_headers(other_user: SessionUser) -> dict[str, str]:
    return {"Authorization": f"Bearer {make_token(other_user)}"}


@pytest.fixture
def app() -> FastAPI:
    """Application without lifespan; tests put services on app.state."""
    return create_app()


@pytest.fixture
def client(app: FastAPI) -> TestClient:
    return TestClient(app)


@pytest.fixture
def verdict_reply():
    """Factory for raw classifier replies."""
    return classifier_reply


@pytest.fixture
def ai_client_factory():
    """Factory for scripted AI clients."""
    return scripted_ai_client


@pytest.fixture
def token_factory():
    """Factory for provider-style access tokens."""
    return make_token


@pytest.fixture
def chat_repository() -> InMemoryChatRepository:
    return InMemoryChatRepository()


@pytest.fixture
def make_insights(chat_repository):
    """Build an InsightsService whose AI calls follow a script."""

    def _make(*replies: str | Exception) -> InsightsService:
        return InsightsService(chat_repository, scripted_ai_client(*replies), summary_interval=5)

    return _make


@pytest.fixture
def make_chat(chat_repository):
    """Build a ChatService (and its InsightsService) sharing one scripted AI client."""

    def _make(*replies: str | Exception, max_retries: int = 3) -> ChatService:
        client = scripted_ai_client(*replies)
        insights = InsightsService(chat_repository, client, summary_interval=5)
        return ChatService(
            repository=chat_repository,
            client=client,
            insights=insights,
            history_limit=10,
            max_retries=max_retries,
            retry_delay=0,
        )

    return _make
