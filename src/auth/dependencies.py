"""FastAPI dependencies for authentication.

Provides dependency injection for:
- Current user extraction from the identity provider's JWT
- Optional identity for endpoints that degrade for anonymous callers
- Admin-only access for moderation and publishing
"""

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from jose import JWTError
from pydantic import ValidationError

from src.auth.permissions import UserRole, has_permission
from src.auth.schemas import UserResponse
from src.auth.security import decode_access_token
from src.core.context import set_user_id


def get_token_from_header(request: Request) -> str | None:
    """Extract Bearer token from Authorization header."""
    auth_header = request.headers.get("Authorization")
    if not auth_header:
        return None

    expected_parts = 2
    parts = auth_header.split()
    if len(parts) != expected_parts or parts[0].lower() != "bearer":
        return None

    return parts[1]


async def get_current_user_optional(
    token: Annotated[str | None, Depends(get_token_from_header)],
) -> UserResponse | None:
    """Get current user if authenticated, None otherwise.

    An invalid or expired token is treated as anonymous, so engagement
    endpoints can answer with a structured "sign in" result instead of a 401.
    """
    if not token:
        return None

    try:
        payload = decode_access_token(token)
    except JWTError:
        return None

    try:
        user = UserResponse.from_token_payload(payload)
    except ValidationError:
        return None

    set_user_id(user.id)
    return user


async def get_current_user(
    user: Annotated[UserResponse | None, Depends(get_current_user_optional)],
) -> UserResponse:
    """Get current authenticated user.

    Raises:
        HTTPException(401): If token is missing, invalid, or expired
    """
    if user is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token de acesso invalido ou nao fornecido",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return user


def require_permission(required_role: UserRole):
    """Create dependency requiring at least a permission level."""

    async def permission_checker(
        user: Annotated[UserResponse, Depends(get_current_user)],
    ) -> UserResponse:
        if not has_permission(user.role, required_role):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Permissao insuficiente",
            )
        return user

    return permission_checker


CurrentUser = Annotated[UserResponse, Depends(get_current_user)]
OptionalUser = Annotated[UserResponse | None, Depends(get_current_user_optional)]
AdminUser = Annotated[UserResponse, Depends(require_permission(UserRole.ADMIN))]
