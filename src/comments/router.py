"""Comment system API endpoints.

Provides routes for:
- Comment submission and the public thread
- Moderation: admin list, approve, unapprove, delete

Failures are returned as structured results with the matching HTTP status.
"""

from fastapi import APIRouter, Query, Response, status

from src.auth.dependencies import AdminUser, OptionalUser
from src.core.errors import http_status_for

from .dependencies import CommentServiceDep, ModerationServiceDep
from .schemas import (
    AdminCommentListResponse,
    AdminStatusFilter,
    CommentTreeResponse,
    ModerationResult,
    SubmitCommentRequest,
    SubmitCommentResponse,
)


router = APIRouter(prefix="/v1/comments", tags=["comments"])
admin_router = APIRouter(prefix="/v1/admin/comments", tags=["comments-admin"])


# ==============================================================================
# Public
# ==============================================================================


@router.post(
    "",
    response_model=SubmitCommentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Submit comment",
)
async def submit_comment(
    data: SubmitCommentRequest,
    response: Response,
    comment_service: CommentServiceDep,
    user: OptionalUser,
) -> SubmitCommentResponse:
    """Submit a comment or reply. It is published once a moderator approves it."""
    result = await comment_service.submit_comment(
        data.post_id, data.content, data.parent_id, user
    )
    if not result.success:
        response.status_code = http_status_for(result.error)
    return result


@router.get(
    "/post/{post_id}",
    response_model=CommentTreeResponse,
    summary="Get comment thread",
)
async def get_comment_tree(
    post_id: str,
    response: Response,
    comment_service: CommentServiceDep,
) -> CommentTreeResponse:
    """Approved comments of a post as a thread with like counts."""
    result = await comment_service.get_comment_tree(post_id)
    response.status_code = http_status_for(result.error)
    return result


# ==============================================================================
# Moderation
# ==============================================================================


@admin_router.get(
    "",
    response_model=AdminCommentListResponse,
    summary="List comments for moderation",
)
async def list_comments(
    response: Response,
    moderation_service: ModerationServiceDep,
    _admin: AdminUser,
    status_filter: AdminStatusFilter = Query(AdminStatusFilter.ALL, alias="status"),
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    post_id: str | None = Query(None),
) -> AdminCommentListResponse:
    result = await moderation_service.list_for_admin(
        status=status_filter, page=page, limit=limit, post_id=post_id
    )
    response.status_code = http_status_for(result.error)
    return result


@admin_router.post(
    "/{comment_id}/approve",
    response_model=ModerationResult,
    summary="Approve comment",
)
async def approve_comment(
    comment_id: str,
    response: Response,
    moderation_service: ModerationServiceDep,
    admin: AdminUser,
) -> ModerationResult:
    result = await moderation_service.approve(comment_id, admin)
    response.status_code = http_status_for(result.error)
    return result


@admin_router.post(
    "/{comment_id}/unapprove",
    response_model=ModerationResult,
    summary="Unapprove comment",
)
async def unapprove_comment(
    comment_id: str,
    response: Response,
    moderation_service: ModerationServiceDep,
    admin: AdminUser,
) -> ModerationResult:
    """Send an approved comment back to the pending queue."""
    result = await moderation_service.unapprove(comment_id, admin)
    response.status_code = http_status_for(result.error)
    return result


@admin_router.delete(
    "/{comment_id}",
    response_model=ModerationResult,
    summary="Delete comment",
)
async def delete_comment(
    comment_id: str,
    response: Response,
    moderation_service: ModerationServiceDep,
    admin: AdminUser,
) -> ModerationResult:
    """Remove a comment and its likes. Replies stay in the thread."""
    result = await moderation_service.delete(comment_id, admin)
    response.status_code = http_status_for(result.error)
    return result
