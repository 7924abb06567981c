"""Community forum service layer.

Business logic for:
- Submission orchestration: classify, then block, reject, warn or persist
- "Post anyway" confirmation of warned submissions
- Threaded comment reads and comment count upkeep
- Owner deletes of posts and comments

Per submission the states are::

    Idle -> Classifying -> Blocked | Rejected | Warned | Persisting -> Done

Classification always finishes before anything is written, and the comment
insert always finishes before the post's comment count is recomputed.

The count is recompute-and-overwrite: after each comment insert or delete the
whole thread is re-read, counted and written onto the post. Two concurrent
inserts can each write a count that misses the other's row; the next
recomputation on that post corrects it.
"""

from enum import Enum
from uuid import UUID

import structlog

from wellspace.auth.schemas import SessionUser
from wellspace.moderation.classifier import ModerationClassifier
from wellspace.moderation.models import ModerationCategory, ModerationVerdict
from wellspace.moderation.resources import CRISIS_MESSAGE, CRISIS_RESOURCES
from wellspace.moderation.support import SupportMessageGenerator

from .models import Post, create_comment, create_post
from .pending import PendingSubmission, PendingSubmissionStore, SubmissionKind
from .repository import CommunityRepository, StoreError
from .schemas import (
    CommentDeletedResponse,
    CommentResponse,
    CreateCommentRequest,
    CreatePostRequest,
    PostDetailResponse,
    PostListResponse,
    PostResponse,
    SubmissionResponse,
    SubmissionStatus,
    ThreadItemResponse,
    ThreadResponse,
)
from .threading import CommentNode, build_comment_tree, collect_descendant_ids, count_nodes


logger = structlog.get_logger(__name__)


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class CommunityError(Exception):
    """Base community error."""

    def __init__(self, message: str, code: str = "community_error"):
        self.message = message
        self.code = code
        super().__init__(message)


class PostNotFoundError(CommunityError):
    """Post not found."""

    def __init__(self, message: str = "Post not found"):
        super().__init__(message, "post_not_found")


class CommentNotFoundError(CommunityError):
    """Comment not found."""

    def __init__(self, message: str = "Comment not found"):
        super().__init__(message, "comment_not_found")


class InvalidParentCommentError(CommunityError):
    """Reply target is missing or belongs to another post."""

    def __init__(self, message: str = "The comment you are replying to does not exist"):
        super().__init__(message, "invalid_parent_comment")


class PermissionDeniedError(CommunityError):
    """Permission denied for operation."""

    def __init__(self, message: str = "You can only change your own posts and comments"):
        super().__init__(message, "permission_denied")


class SubmissionNotFoundError(CommunityError):
    """Confirmation token unknown, expired or already used."""

    def __init__(self, message: str = "This submission has expired. Please submit it again."):
        super().__init__(message, "submission_not_found")


class SubmissionPersistenceError(CommunityError):
    """The post or comment could not be saved."""

    def __init__(self, message: str = "Could not save your submission. Please try again."):
        super().__init__(message, "submission_failed")


class StoreUnavailableError(CommunityError):
    """Reads or deletes against the store failed."""

    def __init__(self, message: str = "The community is temporarily unavailable."):
        super().__init__(message, "store_unavailable")


# ==============================================================================
# Submission states
# ==============================================================================


class SubmissionState(str, Enum):
    """Orchestrator states, logged on every transition."""

    CLASSIFYING = "classifying"
    BLOCKED = "blocked"
    REJECTED = "rejected"
    WARNED = "warned"
    PERSISTING = "persisting"
    DONE = "done"


REJECTION_MESSAGE = (
    "Your message was not posted because it may encourage someone to hurt "
    "themselves. Please keep the community safe and supportive."
)
WARNED_MESSAGE = "You can still share this if you want to."
CANCELLED_MESSAGE = "Your submission was discarded."


def _transition(state: SubmissionState, submission: PendingSubmission, **fields) -> None:
    logger.info(
        "submission_state",
        state=state.value,
        kind=submission.kind.value,
        **fields,
    )


class CommunityService:
    """Service for the moderated community forum."""

    def __init__(
        self,
        repository: CommunityRepository,
        classifier: ModerationClassifier,
        support: SupportMessageGenerator,
        pending: PendingSubmissionStore,
        anonymous_name: str = "Anonymous",
    ):
        self.repository = repository
        self.classifier = classifier
        self.support = support
        self.pending = pending
        self.anonymous_name = anonymous_name

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def list_posts(
        self, user: SessionUser | None = None, mine: bool = False
    ) -> PostListResponse:
        """Newest posts first; ``mine`` restricts to the caller's posts."""
        if mine and user is None:
            raise PermissionDeniedError("Sign in to see your own posts")

        try:
            posts = await self.repository.list_posts(user.id if mine else None)
        except StoreError as e:
            raise StoreUnavailableError() from e

        items = [PostResponse.from_post(post, self.anonymous_name) for post in posts]
        return PostListResponse(items=items, total=len(items))

    async def get_post(self, post_id: UUID) -> Post:
        try:
            post = await self.repository.get_post(post_id)
        except StoreError as e:
            raise StoreUnavailableError() from e
        if post is None:
            raise PostNotFoundError()
        return post

    async def get_thread(self, post_id: UUID) -> ThreadResponse:
        """Full reply tree of a post; ``comment_count`` counts every node."""
        await self.get_post(post_id)
        try:
            tree = await self._load_tree(post_id)
        except StoreError as e:
            raise StoreUnavailableError() from e
        return self._thread_response(post_id, tree)

    async def get_post_detail(self, post_id: UUID) -> PostDetailResponse:
        """Post with its thread rebuilt from the store."""
        post = await self.get_post(post_id)
        try:
            tree = await self._load_tree(post_id)
        except StoreError as e:
            raise StoreUnavailableError() from e
        return PostDetailResponse(
            post=PostResponse.from_post(post, self.anonymous_name),
            thread=self._thread_response(post_id, tree),
        )

    async def _load_tree(self, post_id: UUID) -> list[CommentNode]:
        comments = await self.repository.list_comments(post_id)
        return build_comment_tree(comments)

    def _thread_response(self, post_id: UUID, tree: list[CommentNode]) -> ThreadResponse:
        return ThreadResponse(
            post_id=post_id,
            comment_count=count_nodes(tree),
            items=ThreadItemResponse.from_nodes(tree, self.anonymous_name),
        )

    # ==========================================================================
    # Submissions
    # ==========================================================================

    async def submit_post(
        self, data: CreatePostRequest, user: SessionUser | None = None
    ) -> SubmissionResponse:
        """Classify and, depending on the verdict, publish a new post."""
        content = data.content.strip()
        if not content:
            return SubmissionResponse(status=SubmissionStatus.IGNORED)

        author_name = data.author_name
        if author_name is None and user is not None:
            author_name = user.display_name

        submission_fields = {
            "kind": SubmissionKind.POST,
            "content": content,
            "author_id": user.id if user else None,
            "author_name": author_name,
            "tags": data.tags,
        }

        verdict = await self._classify(SubmissionKind.POST, content, context=None)
        submission = PendingSubmission(**submission_fields, verdict=verdict)
        return await self._dispatch(submission)

    async def submit_comment(
        self, post_id: UUID, data: CreateCommentRequest, user: SessionUser
    ) -> SubmissionResponse:
        """Classify a comment against its post and, if allowed, publish it."""
        content = data.content.strip()
        if not content:
            return SubmissionResponse(status=SubmissionStatus.IGNORED)

        post = await self.get_post(post_id)
        if data.parent_comment_id is not None:
            await self._validate_parent(post_id, data.parent_comment_id)

        submission_fields = {
            "kind": SubmissionKind.COMMENT,
            "content": content,
            "author_id": user.id,
            "author_name": user.display_name,
            "post_id": post_id,
            "parent_comment_id": data.parent_comment_id,
        }

        verdict = await self._classify(
            SubmissionKind.COMMENT, content, context=post.content
        )
        submission = PendingSubmission(**submission_fields, verdict=verdict)
        return await self._dispatch(submission, post=post)

    async def _validate_parent(self, post_id: UUID, parent_comment_id: UUID) -> None:
        try:
            parent = await self.repository.get_comment(parent_comment_id)
        except StoreError as e:
            raise StoreUnavailableError() from e
        if parent is None or parent.post_id != post_id:
            raise InvalidParentCommentError()

    async def _classify(
        self, kind: SubmissionKind, content: str, context: str | None
    ) -> ModerationVerdict:
        logger.info(
            "submission_state",
            state=SubmissionState.CLASSIFYING.value,
            kind=kind.value,
        )
        return await self.classifier.classify(content, context=context)

    async def _dispatch(
        self, submission: PendingSubmission, post: Post | None = None
    ) -> SubmissionResponse:
        category = submission.verdict.category

        if category is ModerationCategory.URGENT_RISK:
            _transition(SubmissionState.BLOCKED, submission)
            return SubmissionResponse(
                status=SubmissionStatus.BLOCKED,
                message=CRISIS_MESSAGE,
                crisis_resources=list(CRISIS_RESOURCES),
            )

        if category is ModerationCategory.HARMFUL_INSTRUCTION:
            _transition(SubmissionState.REJECTED, submission)
            return SubmissionResponse(
                status=SubmissionStatus.REJECTED,
                message=REJECTION_MESSAGE,
            )

        if category is ModerationCategory.SUPPORT_NEEDED:
            support_message = await self.support.generate(submission.content)
            token = await self.pending.put(submission)
            _transition(SubmissionState.WARNED, submission)
            return SubmissionResponse(
                status=SubmissionStatus.NEEDS_CONFIRMATION,
                message=WARNED_MESSAGE,
                support_message=support_message,
                confirmation_token=token,
                expires_in=self.pending.ttl_seconds,
            )

        return await self._persist(submission, post=post)

    async def confirm_submission(
        self, token: str, user: SessionUser | None = None
    ) -> SubmissionResponse:
        """Publish a warned submission with its stored verdict."""
        submission = await self._take_pending(token, user)
        logger.info("submission_confirmed", kind=submission.kind.value)
        return await self._persist(submission)

    async def cancel_submission(
        self, token: str, user: SessionUser | None = None
    ) -> SubmissionResponse:
        """Discard a warned submission."""
        submission = await self._take_pending(token, user)
        _transition(SubmissionState.DONE, submission, cancelled=True)
        return SubmissionResponse(status=SubmissionStatus.IGNORED, message=CANCELLED_MESSAGE)

    async def _take_pending(
        self, token: str, user: SessionUser | None
    ) -> PendingSubmission:
        submission = await self.pending.get(token)
        if submission is None:
            raise SubmissionNotFoundError()

        if submission.author_id != (user.id if user else None):
            logger.warning("submission_owner_mismatch", kind=submission.kind.value)
            raise PermissionDeniedError("This submission belongs to someone else")

        # A concurrent confirm/cancel may have consumed it in between
        submission = await self.pending.take(token)
        if submission is None:
            raise SubmissionNotFoundError()
        return submission

    async def _persist(
        self, submission: PendingSubmission, post: Post | None = None
    ) -> SubmissionResponse:
        _transition(SubmissionState.PERSISTING, submission)
        if submission.kind is SubmissionKind.POST:
            return await self._persist_post(submission)
        return await self._persist_comment(submission, post)

    async def _persist_post(self, submission: PendingSubmission) -> SubmissionResponse:
        post = create_post(
            content=submission.content,
            author_name=submission.author_name,
            user_id=submission.author_id,
            tags=submission.tags,
            ai_analysis=submission.verdict.analysis_json(),
        )
        try:
            await self.repository.insert_post(post)
        except StoreError as e:
            logger.error("submission_persist_failed", kind="post", error=str(e))
            raise SubmissionPersistenceError() from e

        _transition(SubmissionState.DONE, submission, post_id=str(post.post_id))
        return SubmissionResponse(
            status=SubmissionStatus.PUBLISHED,
            post=PostResponse.from_post(post, self.anonymous_name),
        )

    async def _persist_comment(
        self, submission: PendingSubmission, post: Post | None
    ) -> SubmissionResponse:
        if submission.post_id is None or submission.author_id is None:
            raise SubmissionPersistenceError()
        if post is None:
            post = await self.get_post(submission.post_id)
        # The parent may have been deleted since the submission was checked
        if submission.parent_comment_id is not None:
            await self._validate_parent(submission.post_id, submission.parent_comment_id)

        comment = create_comment(
            post_id=submission.post_id,
            user_id=submission.author_id,
            content=submission.content,
            author_name=submission.author_name,
            parent_comment_id=submission.parent_comment_id,
            ai_analysis=submission.verdict.analysis_json(),
        )
        try:
            await self.repository.insert_comment(comment)
        except StoreError as e:
            logger.error("submission_persist_failed", kind="comment", error=str(e))
            raise SubmissionPersistenceError() from e

        comment_count, thread = await self.refresh_comment_count(post)

        _transition(
            SubmissionState.DONE,
            submission,
            comment_id=str(comment.comment_id),
            comment_count=comment_count,
        )
        return SubmissionResponse(
            status=SubmissionStatus.PUBLISHED,
            comment=CommentResponse.from_comment(comment, self.anonymous_name),
            comment_count=comment_count,
            thread=thread,
        )

    async def refresh_comment_count(
        self, post: Post
    ) -> tuple[int | None, list[ThreadItemResponse] | None]:
        """Recount the post's thread and overwrite its cached count.

        Returns the new count and the rebuilt thread, or ``(None, None)`` when
        the read or the write failed (logged, not raised) or the post is gone.
        """
        try:
            tree = await self._load_tree(post.post_id)
            count = count_nodes(tree)
            applied = await self.repository.update_comment_count(post, count)
        except StoreError as e:
            logger.warning(
                "comment_count_refresh_failed",
                post_id=str(post.post_id),
                operation=e.operation,
                error=str(e.cause),
            )
            return None, None
        if not applied:
            return None, None

        logger.debug("comment_count_refreshed", post_id=str(post.post_id), count=count)
        return count, ThreadItemResponse.from_nodes(tree, self.anonymous_name)

    # ==========================================================================
    # Deletes
    # ==========================================================================

    async def delete_post(self, post_id: UUID, user: SessionUser) -> None:
        """Delete one of the caller's posts with its whole thread."""
        post = await self.get_post(post_id)
        if post.user_id is None or post.user_id != user.id:
            raise PermissionDeniedError()

        try:
            await self.repository.delete_post(post)
        except StoreError as e:
            raise StoreUnavailableError() from e

        logger.info("post_deleted", post_id=str(post_id))

    async def delete_comment(
        self, post_id: UUID, comment_id: UUID, user: SessionUser
    ) -> CommentDeletedResponse:
        """Delete one of the caller's comments and every reply beneath it."""
        post = await self.get_post(post_id)
        try:
            comment = await self.repository.get_comment(comment_id)
        except StoreError as e:
            raise StoreUnavailableError() from e

        if comment is None or comment.post_id != post_id:
            raise CommentNotFoundError()
        if comment.user_id != user.id:
            raise PermissionDeniedError()

        try:
            comments = await self.repository.list_comments(post_id)
            doomed = set(collect_descendant_ids(build_comment_tree(comments), comment_id))
            await self.repository.delete_comments(
                [c for c in comments if c.comment_id in doomed]
            )
        except StoreError as e:
            raise StoreUnavailableError() from e

        logger.info(
            "comment_deleted",
            post_id=str(post_id),
            comment_id=str(comment_id),
            removed=len(doomed),
        )

        comment_count, thread = await self.refresh_comment_count(post)
        return CommentDeletedResponse(
            message="Comment deleted",
            removed=len(doomed),
            comment_count=comment_count,
            thread=thread,
        )
