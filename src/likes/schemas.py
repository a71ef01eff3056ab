"""Pydantic schemas for like toggles and like status."""

from uuid import UUID

from pydantic import BaseModel, Field

from src.core.errors import ErrorKind


MAX_BATCH_SIZE = 100


class LikeActionResponse(BaseModel):
    """Result of a like toggle.

    ``like_count`` is the authoritative count after the mutation; the UI
    shows it verbatim.
    """

    success: bool
    liked: bool | None = None
    like_count: int | None = Field(None, ge=0)
    message: str | None = None
    error: ErrorKind | None = None


class LikeStatusResponse(BaseModel):
    """Like state of a single target for the caller."""

    success: bool
    is_liked: bool | None = None
    like_count: int | None = Field(None, ge=0)
    message: str | None = None
    error: ErrorKind | None = None


class BatchLikeStatusRequest(BaseModel):
    """Request for like state of many targets at once."""

    target_ids: list[str] = Field(default_factory=list, max_length=MAX_BATCH_SIZE)


class LikeStatusItem(BaseModel):
    """Like state of one target inside a batch."""

    target_id: UUID
    is_liked: bool
    like_count: int = Field(..., ge=0)


class BatchLikeStatusResponse(BaseModel):
    """Batch result. A failure means the state of every id is unknown."""

    success: bool
    items: list[LikeStatusItem] | None = None
    message: str | None = None
    error: ErrorKind | None = None
