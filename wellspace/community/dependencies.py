"""FastAPI dependencies for the community forum."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import CommunityError, CommunityService


async def get_community_service(request: Request) -> CommunityService:
    """Get community service from app state."""
    app_state = request.app.state
    if not getattr(app_state, "community_service", None):
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Community service not available",
        )
    return app_state.community_service


CommunityServiceDep = Annotated[CommunityService, Depends(get_community_service)]


def handle_community_error(error: CommunityError) -> HTTPException:
    """Convert community errors to HTTP exceptions."""
    status_map = {
        "post_not_found": status.HTTP_404_NOT_FOUND,
        "comment_not_found": status.HTTP_404_NOT_FOUND,
        "invalid_parent_comment": status.HTTP_400_BAD_REQUEST,
        "permission_denied": status.HTTP_403_FORBIDDEN,
        "submission_not_found": status.HTTP_410_GONE,
        "submission_failed": status.HTTP_503_SERVICE_UNAVAILABLE,
        "store_unavailable": status.HTTP_503_SERVICE_UNAVAILABLE,
    }

    status_code = status_map.get(error.code, status.HTTP_500_INTERNAL_SERVER_ERROR)

    return HTTPException(
        status_code=status_code,
        detail=error.message,
    )
