"""FastAPI dependencies for blog posts."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from src.core.errors import EngagementError, http_status_for

from .service import PostService


async def get_post_service(request: Request) -> PostService:
    """Get post service from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "post_service") or not app_state.post_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de blog nao disponivel",
        )
    return app_state.post_service


PostServiceDep = Annotated[PostService, Depends(get_post_service)]


def handle_post_error(error: EngagementError) -> HTTPException:
    """Convert post errors to HTTP exceptions."""
    return HTTPException(
        status_code=http_status_for(error.kind),
        detail=error.message,
    )
