"""Blog API endpoints.

Provides routes for:
- View counting called by the client-side view tracker
- Public post page
- Post creation and publishing (admin)
"""

from uuid import UUID

import structlog
from fastapi import APIRouter, HTTPException, Request, status
from fastapi.responses import ORJSONResponse
from pydantic import ValidationError

from src.auth.dependencies import AdminUser
from src.core.errors import EngagementError

from .dependencies import PostServiceDep, handle_post_error
from .schemas import (
    CreatePostRequest,
    IncrementViewRequest,
    IncrementViewResponse,
    PostResponse,
)
from .service import PostNotFoundError


logger = structlog.get_logger(__name__)


view_router = APIRouter(prefix="/api/blog", tags=["blog"])
router = APIRouter(prefix="/v1/blog", tags=["blog"])
admin_router = APIRouter(prefix="/v1/admin/blog", tags=["blog-admin"])


# ==============================================================================
# View counting
# ==============================================================================


def _error(status_code: int, message: str) -> ORJSONResponse:
    return ORJSONResponse(status_code=status_code, content={"error": message})


@view_router.post(
    "/increment-view",
    response_model=IncrementViewResponse,
    responses={400: {}, 404: {}, 500: {}},
    summary="Increment post view count",
)
async def increment_view(request: Request, post_service: PostServiceDep):
    """Count one view of a published post.

    Body: ``{postId, slug}``. Answers 400 when either is missing or the
    body is malformed, 404 when the post is missing or unpublished.
    """
    try:
        data = IncrementViewRequest.model_validate_json(await request.body())
    except ValidationError:
        return _error(status.HTTP_400_BAD_REQUEST, "postId e slug sao obrigatorios")

    if not data.post_id or not data.slug:
        return _error(status.HTTP_400_BAD_REQUEST, "postId e slug sao obrigatorios")

    try:
        post_id = UUID(data.post_id)
    except ValueError:
        return _error(status.HTTP_400_BAD_REQUEST, "postId invalido")

    try:
        view_count = await post_service.increment_view(
            post_id,
            user_agent=request.headers.get("user-agent"),
            referrer=request.headers.get("referer"),
        )
    except PostNotFoundError:
        return _error(status.HTTP_404_NOT_FOUND, "Post nao encontrado")
    except Exception as e:
        logger.exception(
            "view_increment_failed", post_id=str(post_id), error_type=type(e).__name__
        )
        return _error(
            status.HTTP_500_INTERNAL_SERVER_ERROR, "Falha ao incrementar visualizacao"
        )

    return IncrementViewResponse(view_count=view_count)


# ==============================================================================
# Public posts
# ==============================================================================


@router.get(
    "/posts/{slug}",
    response_model=PostResponse,
    summary="Get published post",
)
async def get_post(slug: str, post_service: PostServiceDep) -> PostResponse:
    """Public post page with like, view and comment counts."""
    post = await post_service.get_post_by_slug(slug)
    if post is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Post nao encontrado",
        )
    return post


# ==============================================================================
# Admin
# ==============================================================================


@admin_router.post(
    "/posts",
    response_model=PostResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create draft post",
)
async def create_post(
    data: CreatePostRequest,
    post_service: PostServiceDep,
    admin: AdminUser,
) -> PostResponse:
    try:
        post = await post_service.create_post(
            data, author_id=admin.id, author_name=admin.display_name
        )
    except EngagementError as e:
        raise handle_post_error(e) from e
    return PostResponse.model_validate(post)


@admin_router.post(
    "/posts/{post_id}/publish",
    response_model=PostResponse,
    summary="Publish post",
)
async def publish_post(
    post_id: UUID,
    post_service: PostServiceDep,
    _admin: AdminUser,
) -> PostResponse:
    """Publish a post and open it for likes."""
    try:
        post = await post_service.set_published(post_id, published=True)
    except EngagementError as e:
        raise handle_post_error(e) from e
    return PostResponse.model_validate(post)


@admin_router.post(
    "/posts/{post_id}/unpublish",
    response_model=PostResponse,
    summary="Unpublish post",
)
async def unpublish_post(
    post_id: UUID,
    post_service: PostServiceDep,
    _admin: AdminUser,
) -> PostResponse:
    """Hide a post. Existing likes are kept but no new likes are accepted."""
    try:
        post = await post_service.set_published(post_id, published=False)
    except EngagementError as e:
        raise handle_post_error(e) from e
    return PostResponse.model_validate(post)
