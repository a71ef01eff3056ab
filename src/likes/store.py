"""Atomic counter store for likes.

Redis layout per target kind (``post`` / ``comment``):

- ``{prefix}:{kind}:{target_id}`` hash with ``likeable`` ("1"/"0") and
  ``like_count``
- ``{prefix}:{kind}:{target_id}:members`` set of user ids (the like rows)
- ``{prefix}:{kind}:user:{user_id}`` set of target ids liked by the user

A toggle is one Lua script, so the existence check, the flip and the recount
run as a single unit inside Redis. ``like_count`` is always written from
``SCARD`` of the members set, never from client arithmetic.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Protocol
from uuid import UUID

import structlog
from redis.exceptions import AuthenticationError, NoPermissionError

from src.core.errors import PermissionDeniedError, TargetNotFoundError

from .models import LikeTargetKind, ToggleOutcome


if TYPE_CHECKING:
    from redis.asyncio import Redis


logger = structlog.get_logger(__name__)


# KEYS[1] target hash, KEYS[2] members set, KEYS[3] user index set
# ARGV[1] user id, ARGV[2] target id
# Returns {found, liked, like_count}
TOGGLE_LIKE_LUA = """
if redis.call('HGET', KEYS[1], 'likeable') ~= '1' then
  return {0, 0, 0}
end
local liked
if redis.call('SISMEMBER', KEYS[2], ARGV[1]) == 1 then
  redis.call('SREM', KEYS[2], ARGV[1])
  redis.call('SREM', KEYS[3], ARGV[2])
  liked = 0
else
  redis.call('SADD', KEYS[2], ARGV[1])
  redis.call('SADD', KEYS[3], ARGV[2])
  liked = 1
end
local count = redis.call('SCARD', KEYS[2])
redis.call('HSET', KEYS[1], 'like_count', count)
return {1, liked, count}
"""

# KEYS[1] target hash, KEYS[2] members set
# Returns the user ids whose likes were removed
PURGE_TARGET_LUA = """
local members = redis.call('SMEMBERS', KEYS[2])
redis.call('DEL', KEYS[1], KEYS[2])
return members
"""


class AtomicCounterStore(Protocol):
    """Owner of like rows and like counters."""

    async def toggle(
        self, kind: LikeTargetKind, target_id: UUID, user_id: UUID
    ) -> ToggleOutcome: ...

    async def get_counts(
        self, kind: LikeTargetKind, target_ids: Sequence[UUID]
    ) -> dict[UUID, int]: ...

    async def get_liked_ids(
        self, kind: LikeTargetKind, target_ids: Sequence[UUID], user_id: UUID
    ) -> set[UUID]: ...

    async def set_likeable(
        self, kind: LikeTargetKind, target_id: UUID, likeable: bool
    ) -> None: ...

    async def purge(self, kind: LikeTargetKind, target_id: UUID) -> int: ...


class RedisCounterStore:
    """Atomic counter store backed by Redis Lua scripts."""

    def __init__(self, redis: "Redis", prefix: str = "likes"):
        self.redis = redis
        self.prefix = prefix
        self._toggle_script = redis.register_script(TOGGLE_LIKE_LUA)
        self._purge_script = redis.register_script(PURGE_TARGET_LUA)

    # ==========================================================================
    # Keys
    # ==========================================================================

    def target_key(self, kind: LikeTargetKind, target_id: UUID) -> str:
        return f"{self.prefix}:{kind.value}:{target_id}"

    def members_key(self, kind: LikeTargetKind, target_id: UUID) -> str:
        return f"{self.target_key(kind, target_id)}:members"

    def user_key_prefix(self, kind: LikeTargetKind) -> str:
        return f"{self.prefix}:{kind.value}:user:"

    def user_key(self, kind: LikeTargetKind, user_id: UUID | str) -> str:
        return f"{self.user_key_prefix(kind)}{user_id}"

    # ==========================================================================
    # Mutations
    # ==========================================================================

    async def toggle(
        self, kind: LikeTargetKind, target_id: UUID, user_id: UUID
    ) -> ToggleOutcome:
        """Flip the caller's like and return the post-mutation truth.

        Raises:
            TargetNotFoundError: Target unknown or not currently likeable
            PermissionDeniedError: Redis ACL rejected the script
        """
        try:
            found, liked, count = await self._toggle_script(
                keys=[
                    self.target_key(kind, target_id),
                    self.members_key(kind, target_id),
                    self.user_key(kind, user_id),
                ],
                args=[str(user_id), str(target_id)],
            )
        except (NoPermissionError, AuthenticationError) as e:
            raise PermissionDeniedError from e

        if not int(found):
            raise TargetNotFoundError

        return ToggleOutcome(liked=bool(int(liked)), like_count=int(count))

    async def set_likeable(
        self, kind: LikeTargetKind, target_id: UUID, likeable: bool
    ) -> None:
        """Open or close a target for likes without touching its likes."""
        try:
            async with self.redis.pipeline(transaction=True) as pipe:
                key = self.target_key(kind, target_id)
                pipe.hset(key, "likeable", "1" if likeable else "0")
                pipe.hsetnx(key, "like_count", 0)
                await pipe.execute()
        except (NoPermissionError, AuthenticationError) as e:
            raise PermissionDeniedError from e

    async def purge(self, kind: LikeTargetKind, target_id: UUID) -> int:
        """Remove a target and every like attached to it.

        The target keys are dropped in one script, then user index entries
        are cleaned in a pipeline.
        """
        members = await self._purge_script(
            keys=[self.target_key(kind, target_id), self.members_key(kind, target_id)],
        )
        if members:
            async with self.redis.pipeline(transaction=False) as pipe:
                for user_id in members:
                    pipe.srem(self.user_key(kind, user_id), str(target_id))
                await pipe.execute()

        removed = len(members)
        logger.info(
            "like_target_purged",
            kind=kind.value,
            target_id=str(target_id),
            likes_removed=removed,
        )
        return removed

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def get_counts(
        self, kind: LikeTargetKind, target_ids: Sequence[UUID]
    ) -> dict[UUID, int]:
        """Counts of every likeable target among ``target_ids``.

        One round trip regardless of the number of ids. Unknown or closed
        targets are left out of the result.
        """
        if not target_ids:
            return {}

        async with self.redis.pipeline(transaction=False) as pipe:
            for target_id in target_ids:
                pipe.hmget(self.target_key(kind, target_id), "likeable", "like_count")
            rows = await pipe.execute()

        return {
            target_id: int(count or 0)
            for target_id, (likeable, count) in zip(target_ids, rows, strict=True)
            if likeable == "1"
        }

    async def get_liked_ids(
        self, kind: LikeTargetKind, target_ids: Sequence[UUID], user_id: UUID
    ) -> set[UUID]:
        """Subset of ``target_ids`` the user currently likes, in one query."""
        if not target_ids:
            return set()

        flags = await self.redis.smismember(
            self.user_key(kind, user_id), [str(t) for t in target_ids]
        )
        return {
            target_id
            for target_id, flag in zip(target_ids, flags, strict=True)
            if flag
        }
