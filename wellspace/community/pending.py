"""Submissions waiting for the author's "post anyway" decision.

A ``support_needed`` verdict parks the submission under a random token. The
token is single-use: confirming or cancelling consumes it, and it expires
after the configured TTL. Redis holds the entries when connected; otherwise,
or while a Redis call fails, they live in process memory.
"""

import secrets
import time
from enum import Enum
from typing import TYPE_CHECKING
from uuid import UUID

import structlog
from pydantic import BaseModel, Field
from redis.exceptions import RedisError

from wellspace.moderation.models import ModerationVerdict


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


class SubmissionKind(str, Enum):
    """What a submission would create once persisted."""

    POST = "post"
    COMMENT = "comment"


class PendingSubmission(BaseModel):
    """Everything needed to persist a submission later, verdict included."""

    kind: SubmissionKind
    content: str
    author_id: UUID | None = None
    author_name: str | None = None
    tags: list[str] = Field(default_factory=list)
    post_id: UUID | None = None
    parent_comment_id: UUID | None = None
    verdict: ModerationVerdict


class PendingSubmissionStore:
    """Single-use, expiring storage for pending submissions."""

    KEY_PREFIX = "pending_submission:"

    def __init__(self, redis: "Redis | None" = None, ttl_seconds: int = 600):
        self.redis = redis
        self.ttl_seconds = ttl_seconds
        # token -> (expires_at, payload) when Redis is unavailable
        self._local: dict[str, tuple[float, str]] = {}

    def _key(self, token: str) -> str:
        return f"{self.KEY_PREFIX}{token}"

    async def put(self, submission: PendingSubmission) -> str:
        """Store a submission and return its confirmation token.

        A Redis failure parks the entry in process memory instead.
        """
        token = secrets.token_urlsafe(24)
        payload = submission.model_dump_json()

        stored = False
        if self.redis is not None:
            try:
                await self.redis.set(self._key(token), payload, ex=self.ttl_seconds)
                stored = True
            except RedisError as e:
                logger.warning("pending_submission_redis_failed", operation="set", error=str(e))
        if not stored:
            self._purge_expired()
            self._local[token] = (time.monotonic() + self.ttl_seconds, payload)

        logger.info(
            "pending_submission_stored",
            kind=submission.kind.value,
            ttl_seconds=self.ttl_seconds,
            backend="redis" if stored else "memory",
        )
        return token

    async def get(self, token: str) -> PendingSubmission | None:
        """Read a submission without consuming it."""
        payload = await self._redis_payload("get", token)
        if payload is None:
            payload = self._local_payload(token, consume=False)
        return self._load(payload)

    async def take(self, token: str) -> PendingSubmission | None:
        """Consume a submission. Only one caller ever gets it back."""
        payload = await self._redis_payload("getdel", token)
        if payload is None:
            payload = self._local_payload(token, consume=True)
        return self._load(payload)

    async def _redis_payload(self, operation: str, token: str) -> str | None:
        # None on a miss or a failed call; callers then check memory
        if self.redis is None:
            return None
        try:
            return await getattr(self.redis, operation)(self._key(token))
        except RedisError as e:
            logger.warning("pending_submission_redis_failed", operation=operation, error=str(e))
            return None

    def _local_payload(self, token: str, consume: bool) -> str | None:
        self._purge_expired()
        entry = self._local.pop(token, None) if consume else self._local.get(token)
        return entry[1] if entry else None

    def _purge_expired(self) -> None:
        now = time.monotonic()
        expired = [token for token, (expires_at, _) in self._local.items() if expires_at <= now]
        for token in expired:
            del self._local[token]

    def _load(self, payload: str | bytes | None) -> PendingSubmission | None:
        if payload is None:
            return None
        return PendingSubmission.model_validate_json(payload)
