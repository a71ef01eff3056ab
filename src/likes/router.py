"""Like API endpoints.

Provides routes for:
- Toggling the caller's like on a post or comment
- Like status of one target
- Batch like status for a list page

Failures are returned as structured results (``success=False`` with an
``error`` kind) with the matching HTTP status.
"""

from fastapi import APIRouter, Response

from src.auth.dependencies import OptionalUser
from src.core.errors import http_status_for

from .dependencies import LikeServiceDep
from .models import LikeTargetKind
from .schemas import (
    BatchLikeStatusRequest,
    BatchLikeStatusResponse,
    LikeActionResponse,
    LikeStatusResponse,
)


router = APIRouter(prefix="/v1/likes", tags=["likes"])


# ==============================================================================
# Posts
# ==============================================================================


@router.post(
    "/posts/{post_id}/toggle",
    response_model=LikeActionResponse,
    summary="Toggle post like",
)
async def toggle_post_like(
    post_id: str,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> LikeActionResponse:
    """Like or unlike a published post."""
    result = await like_service.toggle_like(post_id, LikeTargetKind.POST, user)
    response.status_code = http_status_for(result.error)
    return result


@router.get(
    "/posts/{post_id}/status",
    response_model=LikeStatusResponse,
    summary="Post like status",
)
async def get_post_like_status(
    post_id: str,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> LikeStatusResponse:
    """Like count of a post and whether the caller likes it."""
    result = await like_service.get_like_status(post_id, LikeTargetKind.POST, user)
    response.status_code = http_status_for(result.error)
    return result


@router.post(
    "/posts/batch-status",
    response_model=BatchLikeStatusResponse,
    summary="Batch post like status",
)
async def get_posts_like_status(
    data: BatchLikeStatusRequest,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> BatchLikeStatusResponse:
    """Like state of every post on a list page in one request."""
    result = await like_service.get_batch_like_status(
        data.target_ids, LikeTargetKind.POST, user
    )
    response.status_code = http_status_for(result.error)
    return result


# ==============================================================================
# Comments
# ==============================================================================


@router.post(
    "/comments/{comment_id}/toggle",
    response_model=LikeActionResponse,
    summary="Toggle comment like",
)
async def toggle_comment_like(
    comment_id: str,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> LikeActionResponse:
    """Like or unlike an approved comment."""
    result = await like_service.toggle_like(comment_id, LikeTargetKind.COMMENT, user)
    response.status_code = http_status_for(result.error)
    return result


@router.get(
    "/comments/{comment_id}/status",
    response_model=LikeStatusResponse,
    summary="Comment like status",
)
async def get_comment_like_status(
    comment_id: str,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> LikeStatusResponse:
    result = await like_service.get_like_status(
        comment_id, LikeTargetKind.COMMENT, user
    )
    response.status_code = http_status_for(result.error)
    return result


@router.post(
    "/comments/batch-status",
    response_model=BatchLikeStatusResponse,
    summary="Batch comment like status",
)
async def get_comments_like_status(
    data: BatchLikeStatusRequest,
    response: Response,
    like_service: LikeServiceDep,
    user: OptionalUser,
) -> BatchLikeStatusResponse:
    """Like state of every comment in a thread in one request."""
    result = await like_service.get_batch_like_status(
        data.target_ids, LikeTargetKind.COMMENT, user
    )
    response.status_code = http_status_for(result.error)
    return result
