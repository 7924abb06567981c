"""Database models for the community forum.

Cassandra table definitions for:
- Posts: one feed partition ordered newest first, with an owner index
- Comments: one partition per post ordered oldest first (adjacency list,
  ``parent_comment_id`` is NULL for top-level comments)
- Lookup tables resolving a post or comment ID to its primary key

``posts.comment_count`` is a denormalized cache of the number of comment rows
of the post (replies included). It is recomputed from the comments partition
and overwritten after every comment insert or delete.
"""

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

from wellspace.moderation.models import ModerationAnalysis, load_analysis


COMMUNITY_FEED = "community"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Posts - single feed partition, newest first
POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts (
    feed TEXT,
    created_at TIMESTAMP,
    post_id UUID,
    user_id UUID,
    author_name TEXT,
    content TEXT,
    tags LIST<TEXT>,
    comment_count INT,
    ai_analysis TEXT,
    PRIMARY KEY ((feed), created_at, post_id)
) WITH CLUSTERING ORDER BY (created_at DESC, post_id ASC)
"""

# Index for the "your posts" filter
POST_USER_INDEX_CQL = """
CREATE INDEX IF NOT EXISTS posts_user_idx
ON {keyspace}.posts (user_id)
"""

# Post ID -> primary key of the posts row
POSTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_id (
    post_id UUID PRIMARY KEY,
    feed TEXT,
    created_at TIMESTAMP
)
"""

# Comments - partition per post, oldest first so threads build in one pass
COMMENT_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    parent_comment_id UUID,
    user_id UUID,
    author_name TEXT,
    content TEXT,
    ai_analysis TEXT,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

# Comment ID -> primary key of the comments row
COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    created_at TIMESTAMP
)
"""

COMMUNITY_TABLES_CQL = [
    POST_TABLE_CQL,
    POST_USER_INDEX_CQL,
    POSTS_BY_ID_TABLE_CQL,
    COMMENT_TABLE_CQL,
    COMMENTS_BY_ID_TABLE_CQL,
]


def utc_now() -> datetime:
    """Current UTC time truncated to Cassandra's millisecond precision."""
    now = datetime.now(UTC)
    return now.replace(microsecond=now.microsecond // 1000 * 1000)


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """Community post."""

    post_id: UUID
    created_at: datetime
    content: str
    author_name: str | None
    user_id: UUID | None
    tags: list[str] = field(default_factory=list)
    comment_count: int = 0
    ai_analysis: str | None = None
    feed: str = COMMUNITY_FEED

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            post_id=row.post_id,
            created_at=row.created_at,
            content=row.content,
            author_name=row.author_name,
            user_id=row.user_id,
            tags=list(row.tags or []),
            comment_count=row.comment_count or 0,
            ai_analysis=row.ai_analysis,
            feed=row.feed,
        )

    @property
    def analysis(self) -> ModerationAnalysis | None:
        """Moderation analysis captured when the post was created."""
        return load_analysis(self.ai_analysis)


@dataclass
class Comment:
    """Comment on a post; ``parent_comment_id`` is None for top-level comments."""

    comment_id: UUID
    post_id: UUID
    created_at: datetime
    content: str
    author_name: str | None
    user_id: UUID
    parent_comment_id: UUID | None = None
    ai_analysis: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from Cassandra row."""
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            created_at=row.created_at,
            content=row.content,
            author_name=row.author_name,
            user_id=row.user_id,
            parent_comment_id=row.parent_comment_id,
            ai_analysis=row.ai_analysis,
        )

    @property
    def analysis(self) -> ModerationAnalysis | None:
        """Moderation analysis captured when the comment was created."""
        return load_analysis(self.ai_analysis)


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_post(
    content: str,
    author_name: str | None,
    user_id: UUID | None,
    tags: list[str] | None = None,
    ai_analysis: str | None = None,
) -> Post:
    """Create a new post with a zero comment count."""
    return Post(
        post_id=uuid4(),
        created_at=utc_now(),
        content=content,
        author_name=author_name,
        user_id=user_id,
        tags=list(tags or []),
        comment_count=0,
        ai_analysis=ai_analysis,
    )


def create_comment(
    post_id: UUID,
    user_id: UUID,
    content: str,
    author_name: str | None = None,
    parent_comment_id: UUID | None = None,
    ai_analysis: str | None = None,
) -> Comment:
    """Create a new comment."""
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        created_at=utc_now(),
        content=content,
        author_name=author_name,
        user_id=user_id,
        parent_comment_id=parent_comment_id,
        ai_analysis=ai_analysis,
    )
