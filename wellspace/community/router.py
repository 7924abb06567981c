"""Community forum API endpoints.

Provides routes for:
- Feed and post detail with the threaded comment tree
- Moderated submission of posts and comments
- "Post anyway" confirmation of warned submissions
- Owner deletes
"""

from uuid import UUID

from fastapi import APIRouter, Query, Response, status

from wellspace.auth.dependencies import CurrentUser, OptionalUser
from wellspace.moderation.resources import CRISIS_RESOURCES, CrisisResource

from .dependencies import CommunityServiceDep, handle_community_error
from .schemas import (
    CommentDeletedResponse,
    CreateCommentRequest,
    CreatePostRequest,
    MessageResponse,
    PostDetailResponse,
    PostListResponse,
    SubmissionResponse,
    SubmissionStatus,
    ThreadResponse,
)
from .service import CommunityError


router = APIRouter(prefix="/v1/community", tags=["community"])


def _with_status(result: SubmissionResponse, response: Response) -> SubmissionResponse:
    if result.status is SubmissionStatus.PUBLISHED:
        response.status_code = status.HTTP_201_CREATED
    return result


# ==============================================================================
# Posts
# ==============================================================================


@router.get(
    "/posts",
    response_model=PostListResponse,
    summary="List posts",
)
async def list_posts(
    community_service: CommunityServiceDep,
    user: OptionalUser,
    mine: bool = Query(default=False, description="Only the caller's own posts"),
) -> PostListResponse:
    """Newest posts first."""
    try:
        return await community_service.list_posts(user=user, mine=mine)
    except CommunityError as e:
        raise handle_community_error(e) from e


@router.post(
    "/posts",
    response_model=SubmissionResponse,
    summary="Submit post",
)
async def submit_post(
    data: CreatePostRequest,
    response: Response,
    community_service: CommunityServiceDep,
    user: OptionalUser,
) -> SubmissionResponse:
    """Submit a post for moderation.

    Returns 201 when the post was published. Blocked, rejected and
    needs-confirmation outcomes return 200 with nothing saved.
    """
    try:
        result = await community_service.submit_post(data, user=user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return _with_status(result, response)


@router.get(
    "/posts/{post_id}",
    response_model=PostDetailResponse,
    summary="Get post with comments",
)
async def get_post(
    post_id: UUID,
    community_service: CommunityServiceDep,
) -> PostDetailResponse:
    try:
        return await community_service.get_post_detail(post_id)
    except CommunityError as e:
        raise handle_community_error(e) from e


@router.delete(
    "/posts/{post_id}",
    response_model=MessageResponse,
    summary="Delete post",
)
async def delete_post(
    post_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> MessageResponse:
    """Delete one of your posts together with all its comments."""
    try:
        await community_service.delete_post(post_id, user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return MessageResponse(message="Post deleted")


# ==============================================================================
# Comments
# ==============================================================================


@router.get(
    "/posts/{post_id}/comments",
    response_model=ThreadResponse,
    summary="Get comment thread",
)
async def get_thread(
    post_id: UUID,
    community_service: CommunityServiceDep,
) -> ThreadResponse:
    try:
        return await community_service.get_thread(post_id)
    except CommunityError as e:
        raise handle_community_error(e) from e


@router.post(
    "/posts/{post_id}/comments",
    response_model=SubmissionResponse,
    summary="Submit comment",
)
async def submit_comment(
    post_id: UUID,
    data: CreateCommentRequest,
    response: Response,
    community_service: CommunityServiceDep,
    user: CurrentUser,
) -> SubmissionResponse:
    """Submit a comment or reply for moderation.

    The post's content is given to the classifier as context. On publish
    the response carries the refreshed comment count and thread.
    """
    try:
        result = await community_service.submit_comment(post_id, data, user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return _with_status(result, response)


@router.delete(
    "/comments/{comment_id}",
    response_model=CommentDeletedResponse,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: UUID,
    community_service: CommunityServiceDep,
    user: CurrentUser,
    post_id: UUID = Query(..., description="Post the comment belongs to"),
) -> CommentDeletedResponse:
    """Delete one of your comments and all replies beneath it."""
    try:
        return await community_service.delete_comment(post_id, comment_id, user)
    except CommunityError as e:
        raise handle_community_error(e) from e


# ==============================================================================
# Pending submissions
# ==============================================================================


@router.post(
    "/submissions/{token}/confirm",
    response_model=SubmissionResponse,
    summary="Post anyway",
)
async def confirm_submission(
    token: str,
    response: Response,
    community_service: CommunityServiceDep,
    user: OptionalUser,
) -> SubmissionResponse:
    """Publish a submission that was held back with a support message."""
    try:
        result = await community_service.confirm_submission(token, user=user)
    except CommunityError as e:
        raise handle_community_error(e) from e
    return _with_status(result, response)


@router.post(
    "/submissions/{token}/cancel",
    response_model=SubmissionResponse,
    summary="Discard held submission",
)
async def cancel_submission(
    token: str,
    community_service: CommunityServiceDep,
    user: OptionalUser,
) -> SubmissionResponse:
    try:
        return await community_service.cancel_submission(token, user=user)
    except CommunityError as e:
        raise handle_community_error(e) from e


@router.get(
    "/crisis-resources",
    response_model=list[CrisisResource],
    summary="Crisis resources",
)
async def get_crisis_resources() -> list[CrisisResource]:
    return list(CRISIS_RESOURCES)
