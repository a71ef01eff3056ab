"""Caller identity consumed from the hosted identity provider."""

from .permissions import UserRole, has_permission, is_admin
from .schemas import UserResponse


__all__ = ["UserResponse", "UserRole", "has_permission", "is_admin"]
