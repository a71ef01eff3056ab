"""Like relation entities.

A like is the pair (user_id, target_id). Its existence *is* the liked state;
there is no status field. Rows and counters live in the atomic counter store
(see ``store.py``), never in Cassandra.
"""

from dataclasses import dataclass
from enum import Enum
from uuid import UUID


class LikeTargetKind(str, Enum):
    """Things a like relation can attach to."""

    POST = "post"
    COMMENT = "comment"


@dataclass(frozen=True)
class ToggleOutcome:
    """Post-mutation truth returned by the counter store."""

    liked: bool
    like_count: int


@dataclass(frozen=True)
class LikeState:
    """Like state of one target for one caller."""

    target_id: UUID
    is_liked: bool
    like_count: int
