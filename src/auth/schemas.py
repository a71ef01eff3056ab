"""Pydantic schemas for the caller identity."""

from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from src.auth.permissions import UserRole


class UserResponse(BaseModel):
    """Authenticated caller as described by the identity token."""

    model_config = ConfigDict(from_attributes=True)

    id: UUID
    email: str | None = None
    name: str | None = None
    role: UserRole = UserRole.USER

    @classmethod
    def from_token_payload(cls, payload: dict[str, Any]) -> "UserResponse":
        """Build the caller from decoded token claims.

        Unknown roles degrade to USER.
        """
        try:
            role = UserRole(payload.get("role", UserRole.USER.value))
        except ValueError:
            role = UserRole.USER

        return cls(
            id=payload["sub"],
            email=payload.get("email"),
            name=payload.get("name"),
            role=role,
        )

    @property
    def display_name(self) -> str:
        """Name shown next to comments."""
        if self.name:
            return self.name
        if self.email:
            return self.email.split("@")[0]
        return "Usuario"
