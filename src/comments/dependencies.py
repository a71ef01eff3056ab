"""FastAPI dependencies for comment system.

Provides dependency injection for:
- Comment service
- Moderation service
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .moderation import ModerationService
from .service import CommentService


async def get_comment_service(request: Request) -> CommentService:
    """Get comment service from app state.

    Args:
        request: FastAPI request

    Returns:
        CommentService instance
    """
    app_state = request.app.state
    if not hasattr(app_state, "comment_service") or not app_state.comment_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de comentarios nao disponivel",
        )
    return app_state.comment_service


async def get_moderation_service(request: Request) -> ModerationService:
    """Get moderation service from app state."""
    app_state = request.app.state
    if not hasattr(app_state, "moderation_service") or not app_state.moderation_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de moderacao nao disponivel",
        )
    return app_state.moderation_service


# Type aliases for dependency injection
CommentServiceDep = Annotated[CommentService, Depends(get_comment_service)]
ModerationServiceDep = Annotated[ModerationService, Depends(get_moderation_service)]
