"""Cassandra access for posts and comments.

Each public method is one logical operation. Driver failures are re-raised
as ``StoreError`` so callers never depend on cassandra exception types.

The comment count update is conditional (``IF EXISTS``): a recount that
races a post delete must not recreate the deleted row.
"""

from typing import TYPE_CHECKING, Any
from uuid import UUID

import structlog

from wellspace.core.database.queries import (
    PAGE_SIZE,
    StoreError,
    execute,
    fetch_all,
    first_row,
)

from .models import COMMUNITY_FEED, Comment, Post


if TYPE_CHECKING:
    from cassandra.cluster import Session


logger = structlog.get_logger(__name__)


__all__ = ["CommunityRepository", "StoreError"]


class CommunityRepository:
    """Posts, comments and their ID lookups."""

    # Upper bound for one feed page
    FEED_LIMIT = 100

    def __init__(self, session: "Session", keyspace: str):
        """Initialize with Cassandra session."""
        self.session = session
        self.keyspace = keyspace
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        # Posts
        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts
            (feed, created_at, post_id, user_id, author_name, content, tags,
             comment_count, ai_analysis)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_post_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_id (post_id, feed, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_post_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_id WHERE post_id = ?
        """)

        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts
            WHERE feed = ? AND created_at = ? AND post_id = ?
        """)

        self._list_posts = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts
            WHERE feed = ?
            LIMIT ?
        """)

        self._list_posts_by_user = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts
            WHERE feed = ? AND user_id = ?
            LIMIT ?
        """)

        self._update_comment_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.posts
            SET comment_count = ?
            WHERE feed = ? AND created_at = ? AND post_id = ?
            IF EXISTS
        """)

        self._delete_post = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts
            WHERE feed = ? AND created_at = ? AND post_id = ?
        """)

        self._delete_post_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.posts_by_id WHERE post_id = ?
        """)

        # Comments
        self._insert_comment = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments
            (post_id, created_at, comment_id, parent_comment_id, user_id,
             author_name, content, ai_analysis)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_lookup = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id (comment_id, post_id, created_at)
            VALUES (?, ?, ?)
        """)

        self._get_comment_lookup = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id WHERE comment_id = ?
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._list_comments = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments
            WHERE post_id = ?
        """)
        self._list_comments.fetch_size = PAGE_SIZE

        self._delete_comment = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._delete_comment_lookup = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_id WHERE comment_id = ?
        """)

        self._delete_thread = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments WHERE post_id = ?
        """)

    async def _execute(self, operation: str, statement: Any, params: list[Any]) -> Any:
        return await execute(self.session, operation, statement, params)

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def insert_post(self, post: Post) -> None:
        """Write a post and its ID lookup row."""
        await self._execute(
            "insert_post",
            self._insert_post,
            [
                post.feed,
                post.created_at,
                post.post_id,
                post.user_id,
                post.author_name,
                post.content,
                post.tags,
                post.comment_count,
                post.ai_analysis,
            ],
        )
        await self._execute(
            "insert_post_lookup",
            self._insert_post_lookup,
            [post.post_id, post.feed, post.created_at],
        )

    async def get_post(self, post_id: UUID) -> Post | None:
        """Fetch a post by ID."""
        rows = await self._execute("get_post_lookup", self._get_post_lookup, [post_id])
        lookup = first_row(rows)
        if lookup is None:
            return None

        rows = await self._execute(
            "get_post", self._get_post, [lookup.feed, lookup.created_at, post_id]
        )
        row = first_row(rows)
        return Post.from_row(row) if row and row.content is not None else None

    async def list_posts(
        self, user_id: UUID | None = None, limit: int | None = None
    ) -> list[Post]:
        """Newest posts first, optionally only those of one user."""
        limit = limit or self.FEED_LIMIT
        if user_id is not None:
            rows = await self._execute(
                "list_posts_by_user",
                self._list_posts_by_user,
                [COMMUNITY_FEED, user_id, limit],
            )
        else:
            rows = await self._execute(
                "list_posts", self._list_posts, [COMMUNITY_FEED, limit]
            )
        # Rows without content are partial upserts, not posts
        return [Post.from_row(row) for row in rows if row.content is not None]

    async def update_comment_count(self, post: Post, count: int) -> bool:
        """Overwrite the cached comment count of a post.

        Returns False when the post no longer exists; nothing is written then.
        """
        result = await self._execute(
            "update_comment_count",
            self._update_comment_count,
            [count, post.feed, post.created_at, post.post_id],
        )
        if not result.was_applied:
            logger.info("comment_count_skipped_missing_post", post_id=str(post.post_id))
            return False
        return True

    async def delete_post(self, post: Post) -> None:
        """Delete a post together with its whole thread."""
        comments = await self.list_comments(post.post_id)
        for comment in comments:
            await self._execute(
                "delete_comment_lookup",
                self._delete_comment_lookup,
                [comment.comment_id],
            )
        await self._execute("delete_thread", self._delete_thread, [post.post_id])
        await self._execute(
            "delete_post",
            self._delete_post,
            [post.feed, post.created_at, post.post_id],
        )
        await self._execute(
            "delete_post_lookup", self._delete_post_lookup, [post.post_id]
        )

    # ==========================================================================
    # Comments
    # ==========================================================================

    async def insert_comment(self, comment: Comment) -> None:
        """Write a comment and its ID lookup row."""
        await self._execute(
            "insert_comment",
            self._insert_comment,
            [
                comment.post_id,
                comment.created_at,
                comment.comment_id,
                comment.parent_comment_id,
                comment.user_id,
                comment.author_name,
                comment.content,
                comment.ai_analysis,
            ],
        )
        await self._execute(
            "insert_comment_lookup",
            self._insert_comment_lookup,
            [comment.comment_id, comment.post_id, comment.created_at],
        )

    async def get_comment(self, comment_id: UUID) -> Comment | None:
        """Fetch a comment by ID."""
        rows = await self._execute(
            "get_comment_lookup", self._get_comment_lookup, [comment_id]
        )
        lookup = first_row(rows)
        if lookup is None:
            return None

        rows = await self._execute(
            "get_comment",
            self._get_comment,
            [lookup.post_id, lookup.created_at, comment_id],
        )
        row = first_row(rows)
        return Comment.from_row(row) if row else None

    async def list_comments(self, post_id: UUID) -> list[Comment]:
        """All comments of a post, oldest first."""
        rows = await fetch_all(self.session, "list_comments", self._list_comments, [post_id])
        return [Comment.from_row(row) for row in rows]

    async def delete_comments(self, comments: list[Comment]) -> None:
        """Delete comment rows and their lookups."""
        for comment in comments:
            await self._execute(
                "delete_comment",
                self._delete_comment,
                [comment.post_id, comment.created_at, comment.comment_id],
            )
            await self._execute(
                "delete_comment_lookup",
                self._delete_comment_lookup,
                [comment.comment_id],
            )
