"""Pydantic schemas for comment system.

Request/Response models for:
- Comment submission
- The public comment tree
- Moderation actions and the admin list
"""

from datetime import datetime
from enum import Enum
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from src.core.errors import ErrorKind

from .models import Comment, CommentStatus


# ==============================================================================
# Constants
# ==============================================================================
MAX_COMMENT_LENGTH = 5000
REMOVED_PLACEHOLDER = "[Comentario removido]"
UNAVAILABLE_PLACEHOLDER = "[Comentario indisponivel]"


class AdminStatusFilter(str, Enum):
    """Status filter of the moderation list."""

    PENDING = "pending"
    APPROVED = "approved"
    ALL = "all"


# ==============================================================================
# Request Schemas
# ==============================================================================


class SubmitCommentRequest(BaseModel):
    """Request to submit a comment or a reply."""

    post_id: str
    content: str = Field(..., max_length=MAX_COMMENT_LENGTH)
    parent_id: str | None = None

    @field_validator("parent_id")
    @classmethod
    def blank_parent_is_none(cls, v: str | None) -> str | None:
        return v or None


# ==============================================================================
# Response Schemas
# ==============================================================================


class CommentResponse(BaseModel):
    """Comment as seen by its author or a moderator."""

    comment_id: UUID
    post_id: UUID
    parent_id: UUID | None = None
    author_id: UUID
    author_name: str
    content: str
    status: CommentStatus
    is_approved: bool
    created_at: datetime
    post_title: str | None = None
    post_slug: str | None = None

    @classmethod
    def from_comment(
        cls,
        comment: Comment,
        post_title: str | None = None,
        post_slug: str | None = None,
    ) -> "CommentResponse":
        return cls(
            comment_id=comment.comment_id,
            post_id=comment.post_id,
            parent_id=comment.parent_id,
            author_id=comment.author_id,
            author_name=comment.author_name,
            content=comment.content,
            status=comment.status,
            is_approved=comment.is_approved,
            created_at=comment.created_at,
            post_title=post_title,
            post_slug=post_slug,
        )


class CommentNode(BaseModel):
    """One node of the public comment tree.

    A tombstone stands in for a parent that is not visible so its approved
    replies keep their place; its author and content are hidden.
    """

    comment_id: UUID
    parent_id: UUID | None = None
    author_id: UUID | None = None
    author_name: str | None = None
    content: str
    created_at: datetime
    like_count: int = Field(0, ge=0)
    is_tombstone: bool = False
    replies: list["CommentNode"] = Field(default_factory=list)


CommentNode.model_rebuild()


class CommentTreeResponse(BaseModel):
    """Approved comments of a post as a thread."""

    success: bool
    post_id: UUID | None = None
    items: list[CommentNode] = Field(default_factory=list)
    total: int = Field(0, ge=0, description="Approved comments in the tree")
    message: str | None = None
    error: ErrorKind | None = None


class SubmitCommentResponse(BaseModel):
    """Result of a comment submission."""

    success: bool
    comment_id: UUID | None = None
    message: str | None = None
    error: ErrorKind | None = None


class ModerationResult(BaseModel):
    """Result of approve, unapprove or delete."""

    success: bool
    message: str | None = None
    error: ErrorKind | None = None


class AdminCommentListResponse(BaseModel):
    """A page of the moderation list, newest first."""

    success: bool
    items: list[CommentResponse] = Field(default_factory=list)
    total_count: int = Field(0, ge=0)
    page: int = 1
    limit: int = 20
    message: str | None = None
    error: ErrorKind | None = None
