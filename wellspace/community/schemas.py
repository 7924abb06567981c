"""Pydantic schemas for the community forum.

Request/Response models for:
- Post and comment submission
- Submission outcomes (blocked, rejected, needs confirmation, published)
- Threaded comment listings
"""

from datetime import datetime
from enum import Enum
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from wellspace.moderation.resources import CrisisResource

from .models import Comment, Post
from .threading import CommentNode, walk_with_depth


# ==============================================================================
# Constants
# ==============================================================================
MAX_CONTENT_LENGTH = 10000
MAX_TAGS = 10
MAX_TAG_LENGTH = 40


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    """Request to submit a new post.

    Blank content is accepted here and answered with an ``ignored`` outcome.
    """

    content: str = Field(..., max_length=MAX_CONTENT_LENGTH)
    author_name: str | None = Field(None, max_length=100)
    tags: list[str] = Field(default_factory=list)

    @field_validator("tags", mode="before")
    @classmethod
    def split_tags(cls, v: Any) -> Any:
        """Accept a comma-separated string as well as a list."""
        if isinstance(v, str):
            return v.split(",")
        return v

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        """Trim tags and drop empty ones and duplicates."""
        tags: list[str] = []
        for tag in v:
            tag = tag.strip()
            if tag and tag not in tags:
                tags.append(tag[:MAX_TAG_LENGTH])
        if len(tags) > MAX_TAGS:
            msg = f"At most {MAX_TAGS} tags are allowed"
            raise ValueError(msg)
        return tags

    @field_validator("author_name")
    @classmethod
    def clean_author_name(cls, v: str | None) -> str | None:
        if v is None:
            return None
        return v.strip() or None


class CreateCommentRequest(BaseModel):
    """Request to submit a comment or a reply."""

    content: str = Field(..., max_length=MAX_CONTENT_LENGTH)
    parent_comment_id: UUID | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    """Post as shown in the feed."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    content: str
    author_name: str
    user_id: UUID | None
    tags: list[str]
    comment_count: int

    @classmethod
    def from_post(cls, post: Post, anonymous_name: str = "Anonymous") -> "PostResponse":
        return cls(
            id=post.post_id,
            created_at=post.created_at,
            content=post.content,
            author_name=post.author_name or anonymous_name,
            user_id=post.user_id,
            tags=post.tags,
            comment_count=post.comment_count,
        )


class PostListResponse(BaseModel):
    """Feed page."""

    items: list[PostResponse]
    total: int


class CommentResponse(BaseModel):
    """Single comment without its replies."""

    id: UUID
    post_id: UUID
    parent_comment_id: UUID | None
    created_at: datetime
    content: str
    author_name: str
    user_id: UUID

    @classmethod
    def from_comment(
        cls, comment: Comment, anonymous_name: str = "Anonymous"
    ) -> "CommentResponse":
        return cls(
            id=comment.comment_id,
            post_id=comment.post_id,
            parent_comment_id=comment.parent_comment_id,
            created_at=comment.created_at,
            content=comment.content,
            author_name=comment.author_name or anonymous_name,
            user_id=comment.user_id,
        )


class ThreadItemResponse(CommentResponse):
    """One comment of a thread, listed in display order.

    Threads are returned flat rather than nested, so any reply depth
    serializes. ``depth`` is 0 for top-level comments; ``reply_count``
    counts direct replies only.
    """

    depth: int = 0
    reply_count: int = 0

    @classmethod
    def from_nodes(
        cls, nodes: list[CommentNode], anonymous_name: str = "Anonymous"
    ) -> list["ThreadItemResponse"]:
        """Flatten a comment forest in pre-order."""
        return [
            cls(
                id=node.comment.comment_id,
                post_id=node.comment.post_id,
                parent_comment_id=node.comment.parent_comment_id,
                created_at=node.comment.created_at,
                content=node.comment.content,
                author_name=node.comment.author_name or anonymous_name,
                user_id=node.comment.user_id,
                depth=depth,
                reply_count=len(node.replies),
            )
            for node, depth in walk_with_depth(nodes)
        ]


class ThreadResponse(BaseModel):
    """Full comment tree of a post."""

    post_id: UUID
    comment_count: int
    items: list[ThreadItemResponse]


class PostDetailResponse(BaseModel):
    """Post with its thread."""

    post: PostResponse
    thread: ThreadResponse


class SubmissionStatus(str, Enum):
    """Terminal outcome of one submission attempt."""

    IGNORED = "ignored"
    BLOCKED = "blocked"
    REJECTED = "rejected"
    NEEDS_CONFIRMATION = "needs_confirmation"
    PUBLISHED = "published"


class SubmissionResponse(BaseModel):
    """What the client should show after a submit, confirm or cancel.

    - ``blocked``: crisis resources, nothing saved
    - ``rejected``: short notice, nothing saved
    - ``needs_confirmation``: supportive message plus a token for "post anyway"
    - ``published``: the saved post or comment (and the refreshed thread)
    """

    status: SubmissionStatus
    message: str | None = None
    crisis_resources: list[CrisisResource] | None = None
    support_message: str | None = None
    confirmation_token: str | None = None
    expires_in: int | None = None
    post: PostResponse | None = None
    comment: CommentResponse | None = None
    # None when the count could not be refreshed after publishing
    comment_count: int | None = None
    thread: list[ThreadItemResponse] | None = None


class MessageResponse(BaseModel):
    """Simple message response."""

    message: str


class CommentDeletedResponse(BaseModel):
    """Result of deleting a comment subtree."""

    message: str
    removed: int
    comment_count: int | None = None
    thread: list[ThreadItemResponse] | None = None
