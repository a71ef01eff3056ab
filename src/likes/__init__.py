"""Like toggles, like status and the atomic counter store."""

from .models import LikeState, LikeTargetKind, ToggleOutcome
from .service import LikeService
from .store import AtomicCounterStore, RedisCounterStore


__all__ = [
    "AtomicCounterStore",
    "LikeService",
    "LikeState",
    "LikeTargetKind",
    "RedisCounterStore",
    "ToggleOutcome",
]
