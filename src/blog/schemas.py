"""Pydantic schemas for blog posts and view counting."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator


SLUG_PATTERN = r"^[a-z0-9]+(?:-[a-z0-9]+)*$"


# ==============================================================================
# Request Schemas
# ==============================================================================


class CreatePostRequest(BaseModel):
    """Request to create a draft post."""

    slug: str = Field(..., min_length=1, max_length=200, pattern=SLUG_PATTERN)
    title: str = Field(..., min_length=1, max_length=300)
    content: str = Field(..., min_length=1)
    excerpt: str | None = Field(None, max_length=1000)

    @field_validator("title")
    @classmethod
    def validate_title(cls, v: str) -> str:
        """Strip whitespace and validate title."""
        v = v.strip()
        if not v:
            msg = "Title cannot be empty"
            raise ValueError(msg)
        return v


class IncrementViewRequest(BaseModel):
    """Body sent by the view tracker.

    Both fields are optional here so a missing one is answered with a 400
    carrying the endpoint's own error body.
    """

    model_config = ConfigDict(populate_by_name=True)

    post_id: str | None = Field(None, alias="postId")
    slug: str | None = None


# ==============================================================================
# Response Schemas
# ==============================================================================


class PostResponse(BaseModel):
    """Public post page data with engagement counts."""

    model_config = ConfigDict(from_attributes=True)

    post_id: UUID
    slug: str
    title: str
    excerpt: str | None = None
    content: str
    author_name: str | None = None
    is_published: bool
    published_at: datetime | None = None
    created_at: datetime
    like_count: int = Field(0, ge=0)
    view_count: int = Field(0, ge=0)
    comment_count: int = Field(0, ge=0)


class IncrementViewResponse(BaseModel):
    """Counter value after the increment."""

    success: bool = True
    view_count: int = Field(..., ge=0)
