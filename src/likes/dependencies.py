"""FastAPI dependencies for the like system."""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status

from .service import LikeService


async def get_like_service(request: Request) -> LikeService:
    """Get like service from app state.

    Raises:
        HTTPException(503): When the counter store is not wired
    """
    app_state = request.app.state
    if not hasattr(app_state, "like_service") or not app_state.like_service:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Servico de curtidas nao disponivel",
        )
    return app_state.like_service


LikeServiceDep = Annotated[LikeService, Depends(get_like_service)]
