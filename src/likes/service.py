"""Like toggle and like status services.

Business logic for:
- Toggling the caller's like on one post or comment
- Single-target and batch like status

Every public method returns a result value; errors are converted at this
boundary and never propagate to the caller.
"""

from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import (
    EngagementError,
    ErrorKind,
    InvalidIdentifierError,
    NotAuthenticatedError,
)

from .models import LikeState, LikeTargetKind
from .schemas import (
    BatchLikeStatusResponse,
    LikeActionResponse,
    LikeStatusItem,
    LikeStatusResponse,
)


if TYPE_CHECKING:
    from src.auth.schemas import UserResponse

    from .store import AtomicCounterStore


logger = structlog.get_logger(__name__)

PageInvalidator = Callable[[UUID], Awaitable[None]]


# ==============================================================================
# User-facing messages
# ==============================================================================

TOGGLE_MESSAGES: dict[LikeTargetKind, dict[ErrorKind, str]] = {
    LikeTargetKind.POST: {
        ErrorKind.VALIDATION: "ID do post invalido.",
        ErrorKind.UNAUTHENTICATED: (
            "Voce precisa estar logado para curtir um post. Faca login para continuar."
        ),
        ErrorKind.NOT_FOUND: "O post que voce tentou curtir nao foi encontrado.",
        ErrorKind.PERMISSION_DENIED: "Voce nao tem permissao para realizar esta acao.",
        ErrorKind.UNKNOWN: "Falha ao processar sua curtida. Tente novamente.",
    },
    LikeTargetKind.COMMENT: {
        ErrorKind.VALIDATION: "ID do comentario invalido.",
        ErrorKind.UNAUTHENTICATED: (
            "Voce precisa estar logado para curtir um comentario. "
            "Faca login para continuar."
        ),
        ErrorKind.NOT_FOUND: (
            "O comentario que voce tentou curtir nao foi encontrado "
            "ou nao esta aprovado."
        ),
        ErrorKind.PERMISSION_DENIED: (
            "Voce nao tem permissao para realizar esta acao no comentario."
        ),
        ErrorKind.UNKNOWN: (
            "Falha ao processar sua curtida no comentario. Tente novamente."
        ),
    },
}

LIKED_MESSAGES = {
    LikeTargetKind.POST: ("Post curtido!", "Like removido."),
    LikeTargetKind.COMMENT: ("Comentario curtido!", "Like do comentario removido."),
}

STATUS_NOT_FOUND = {
    LikeTargetKind.POST: "Falha ao buscar dados do post.",
    LikeTargetKind.COMMENT: "Falha ao buscar dados do comentario.",
}

BATCH_FAILED = "Falha ao verificar status de likes."


def parse_target_id(raw: str | UUID, kind: LikeTargetKind) -> UUID:
    """Parse a target identifier.

    Raises:
        InvalidIdentifierError: If ``raw`` is not a UUID
    """
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except (TypeError, ValueError) as e:
        raise InvalidIdentifierError(TOGGLE_MESSAGES[kind][ErrorKind.VALIDATION]) from e


class LikeService:
    """Service for like toggles and like status."""

    def __init__(
        self,
        store: "AtomicCounterStore",
        page_invalidator: PageInvalidator | None = None,
    ):
        """Initialize with the counter store and optional page invalidator.

        Args:
            store: Atomic counter store owning like rows and counts
            page_invalidator: Marks a post's public page stale after a like
        """
        self.store = store
        self.page_invalidator = page_invalidator

    # ==========================================================================
    # Toggle
    # ==========================================================================

    async def toggle_like(
        self,
        target_id: str | UUID,
        kind: LikeTargetKind,
        user: "UserResponse | None",
    ) -> LikeActionResponse:
        """Flip the caller's like on one target.

        The store is called exactly once and its returned count is passed
        through unchanged. No retry is attempted on failure.
        """
        messages = TOGGLE_MESSAGES[kind]
        try:
            target_uuid = parse_target_id(target_id, kind)
            if user is None:
                raise NotAuthenticatedError(messages[ErrorKind.UNAUTHENTICATED])

            outcome = await self.store.toggle(kind, target_uuid, user.id)
        except EngagementError as e:
            logger.warning(
                "like_toggle_rejected",
                kind=kind.value,
                target_id=str(target_id),
                error=e.kind.value,
            )
            return LikeActionResponse(
                success=False, message=messages[e.kind], error=e.kind
            )
        except Exception as e:
            logger.exception(
                "like_toggle_failed",
                kind=kind.value,
                target_id=str(target_id),
                error_type=type(e).__name__,
            )
            return LikeActionResponse(
                success=False,
                message=messages[ErrorKind.UNKNOWN],
                error=ErrorKind.UNKNOWN,
            )

        logger.info(
            f"{kind.value}_like_toggled",
            target_id=str(target_uuid),
            liked=outcome.liked,
            like_count=outcome.like_count,
        )

        if kind is LikeTargetKind.POST:
            await self._invalidate_post_page(target_uuid)

        liked_message, unliked_message = LIKED_MESSAGES[kind]
        return LikeActionResponse(
            success=True,
            liked=outcome.liked,
            like_count=outcome.like_count,
            message=liked_message if outcome.liked else unliked_message,
        )

    async def _invalidate_post_page(self, post_id: UUID) -> None:
        """Mark the post page stale; a failure here never fails the toggle."""
        if self.page_invalidator is None:
            return
        try:
            await self.page_invalidator(post_id)
        except Exception as e:
            logger.warning(
                "post_page_invalidation_failed",
                post_id=str(post_id),
                error=str(e),
            )

    # ==========================================================================
    # Status
    # ==========================================================================

    async def _load_states(
        self,
        kind: LikeTargetKind,
        target_ids: Sequence[UUID],
        user: "UserResponse | None",
    ) -> list[LikeState]:
        """Counts in one query, memberships in one query, joined by id."""
        counts = await self.store.get_counts(kind, target_ids)
        existing = [t for t in target_ids if t in counts]

        liked: set[UUID] = set()
        if user is not None and existing:
            liked = await self.store.get_liked_ids(kind, existing, user.id)

        return [
            LikeState(target_id=t, is_liked=t in liked, like_count=counts[t])
            for t in existing
        ]

    async def get_like_status(
        self,
        target_id: str | UUID,
        kind: LikeTargetKind,
        user: "UserResponse | None",
    ) -> LikeStatusResponse:
        """Like state of one target. Anonymous callers get ``is_liked=False``."""
        try:
            target_uuid = parse_target_id(target_id, kind)
            states = await self._load_states(kind, [target_uuid], user)
        except EngagementError as e:
            return LikeStatusResponse(
                success=False, message=TOGGLE_MESSAGES[kind][e.kind], error=e.kind
            )
        except Exception as e:
            logger.exception(
                "like_status_failed",
                kind=kind.value,
                target_id=str(target_id),
                error_type=type(e).__name__,
            )
            return LikeStatusResponse(
                success=False,
                message=TOGGLE_MESSAGES[kind][ErrorKind.UNKNOWN],
                error=ErrorKind.UNKNOWN,
            )

        if not states:
            return LikeStatusResponse(
                success=False,
                message=STATUS_NOT_FOUND[kind],
                error=ErrorKind.NOT_FOUND,
            )

        state = states[0]
        return LikeStatusResponse(
            success=True, is_liked=state.is_liked, like_count=state.like_count
        )

    async def get_batch_like_status(
        self,
        target_ids: Sequence[str | UUID],
        kind: LikeTargetKind,
        user: "UserResponse | None",
    ) -> BatchLikeStatusResponse:
        """Like state of many targets in two queries.

        Duplicates are dropped keeping first-seen order. Targets that do not
        exist are left out. Any failure fails the whole batch.
        """
        if not target_ids:
            return BatchLikeStatusResponse(success=True, items=[])

        try:
            normalized = list(
                dict.fromkeys(parse_target_id(raw, kind) for raw in target_ids)
            )
            states = await self._load_states(kind, normalized, user)
        except EngagementError as e:
            return BatchLikeStatusResponse(
                success=False, message=TOGGLE_MESSAGES[kind][e.kind], error=e.kind
            )
        except Exception as e:
            logger.exception(
                "batch_like_status_failed",
                kind=kind.value,
                requested=len(target_ids),
                error_type=type(e).__name__,
            )
            return BatchLikeStatusResponse(
                success=False, message=BATCH_FAILED, error=ErrorKind.UNKNOWN
            )

        return BatchLikeStatusResponse(
            success=True,
            items=[
                LikeStatusItem(
                    target_id=s.target_id, is_liked=s.is_liked, like_count=s.like_count
                )
                for s in states
            ],
        )
