"""Comment moderation service.

State machine::

    pending --approve--> approved --unapprove--> pending
    pending|approved --delete--> removed   (terminal)

Approving opens the comment for likes and unapproving closes it; neither
touches its likes or its like count. Deleting purges its likes. Replies of a
removed comment are kept. Approving an approved comment succeeds and
changes nothing but the likeable flag.
"""

import json
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import EngagementError, ErrorKind, TargetNotFoundError
from src.likes.models import LikeTargetKind

from .models import (
    Comment,
    CommentStatus,
    ModeratorAction,
    create_audit_log,
)
from .schemas import (
    AdminCommentListResponse,
    AdminStatusFilter,
    CommentResponse,
    ModerationResult,
)
from .service import parse_uuid


if TYPE_CHECKING:
    from src.auth.schemas import UserResponse
    from src.likes.service import PageInvalidator
    from src.likes.store import AtomicCounterStore

    from .service import CommentService


logger = structlog.get_logger(__name__)


# ==============================================================================
# Messages
# ==============================================================================

INVALID_COMMENT_ID = "ID do comentario invalido."
INVALID_POST_ID = "ID do post invalido."
COMMENT_NOT_FOUND = "Comentario nao encontrado."
POST_NOT_FOUND_TITLE = "Post nao encontrado"
LIST_FAILED = "Falha ao buscar comentarios."

ACTION_MESSAGES = {
    ModeratorAction.APPROVE_COMMENT: {
        "success": "Comentario aprovado!",
        "unchanged": "Este comentario ja esta aprovado.",
        "failed": "Falha ao aprovar comentario.",
    },
    ModeratorAction.UNAPPROVE_COMMENT: {
        "success": "Comentario desaprovado.",
        "wrong_state": "Este comentario nao esta aprovado.",
        "failed": "Falha ao desaprovar comentario.",
    },
    ModeratorAction.DELETE_COMMENT: {
        "success": "Comentario deletado.",
        "failed": "Falha ao deletar comentario.",
    },
}


class InvalidTransitionError(EngagementError):
    """The comment is not in a state the action applies to."""

    kind = ErrorKind.VALIDATION


class ModerationService:
    """Service for the comment moderation state machine."""

    def __init__(
        self,
        comments: "CommentService",
        store: "AtomicCounterStore | None" = None,
        page_invalidator: "PageInvalidator | None" = None,
        max_page_size: int = 100,
    ):
        """Initialize with the comment service and collaborators.

        Args:
            comments: Comment reads and the shared Cassandra session
            store: Counter store; approval state drives the likeable flag
            page_invalidator: Marks a post's public page stale
            max_page_size: Upper bound for ``list_for_admin`` limit
        """
        self.comments = comments
        self.session = comments.session
        self.keyspace = comments.keyspace
        self.store = store
        self.page_invalidator = page_invalidator
        self.max_page_size = max_page_size
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._update_status_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET status = ?, updated_at = ?
            WHERE comment_id = ?
        """)

        self._mark_removed_by_id = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_id
            SET status = ?, updated_at = ?, removed_at = ?, removed_by = ?
            WHERE comment_id = ?
        """)

        self._update_status_by_post = self.session.prepare(f"""
            UPDATE {self.keyspace}.comments_by_post
            SET status = ?
            WHERE post_id = ? AND created_at = ? AND comment_id = ?
        """)

        self._insert_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_status
            (status, created_at, comment_id, post_id, parent_id, author_id,
             author_name, content)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._delete_by_status = self.session.prepare(f"""
            DELETE FROM {self.keyspace}.comments_by_status
            WHERE status = ? AND created_at = ? AND comment_id = ?
        """)

        self._list_by_status = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_status
            WHERE status = ?
        """)

        self._insert_audit_log = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.moderator_audit_log
            (log_id, moderator_id, action, target_id, performed_at, details)
            VALUES (?, ?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Transitions
    # ==========================================================================

    async def approve(
        self, comment_id: str | UUID, moderator: "UserResponse"
    ) -> ModerationResult:
        """Move a pending comment to approved."""
        return await self._run(ModeratorAction.APPROVE_COMMENT, comment_id, moderator)

    async def unapprove(
        self, comment_id: str | UUID, moderator: "UserResponse"
    ) -> ModerationResult:
        """Move an approved comment back to pending."""
        return await self._run(
            ModeratorAction.UNAPPROVE_COMMENT, comment_id, moderator
        )

    async def delete(
        self, comment_id: str | UUID, moderator: "UserResponse"
    ) -> ModerationResult:
        """Remove a comment from any non-removed state."""
        return await self._run(ModeratorAction.DELETE_COMMENT, comment_id, moderator)

    async def _run(
        self,
        action: ModeratorAction,
        comment_id: str | UUID,
        moderator: "UserResponse",
    ) -> ModerationResult:
        messages = ACTION_MESSAGES[action]
        try:
            comment_uuid = parse_uuid(comment_id, INVALID_COMMENT_ID)
            comment = await self.comments.find_comment_by_id(comment_uuid)
            if comment is None or comment.status is CommentStatus.REMOVED:
                raise TargetNotFoundError(COMMENT_NOT_FOUND)

            previous = comment.status
            changed = True
            if action is ModeratorAction.APPROVE_COMMENT:
                changed = await self._approve(comment)
            elif action is ModeratorAction.UNAPPROVE_COMMENT:
                await self._unapprove(comment, messages["wrong_state"])
            else:
                await self._delete(comment, moderator.id)
        except EngagementError as e:
            logger.info(
                "comment_moderation_rejected",
                action=action.value,
                comment_id=str(comment_id),
                error=e.kind.value,
            )
            return ModerationResult(success=False, message=e.message, error=e.kind)
        except Exception as e:
            logger.exception(
                "comment_moderation_failed",
                action=action.value,
                comment_id=str(comment_id),
                error_type=type(e).__name__,
            )
            return ModerationResult(
                success=False, message=messages["failed"], error=ErrorKind.UNKNOWN
            )

        if not changed:
            logger.info(
                "comment_already_approved",
                comment_id=str(comment.comment_id),
                moderator_id=str(moderator.id),
            )
            return ModerationResult(success=True, message=messages["unchanged"])

        logger.info(
            {
                ModeratorAction.APPROVE_COMMENT: "comment_approved",
                ModeratorAction.UNAPPROVE_COMMENT: "comment_unapproved",
                ModeratorAction.DELETE_COMMENT: "comment_deleted",
            }[action],
            comment_id=str(comment.comment_id),
            post_id=str(comment.post_id),
            moderator_id=str(moderator.id),
        )

        await self._record_audit(action, comment, previous, moderator.id)
        await self._invalidate_post_page(comment.post_id)
        return ModerationResult(success=True, message=messages["success"])

    async def _approve(self, comment: Comment) -> bool:
        """Approve the comment; returns False when it already was approved.

        An approved comment is only reopened for likes, which repairs a flag
        left closed by an earlier partial failure.
        """
        changed = comment.status is not CommentStatus.APPROVED
        if changed:
            await self._move(comment, CommentStatus.APPROVED)
        if self.store is not None:
            await self.store.set_likeable(
                LikeTargetKind.COMMENT, comment.comment_id, True
            )
        return changed

    async def _unapprove(self, comment: Comment, wrong_state: str) -> None:
        if comment.status is not CommentStatus.APPROVED:
            raise InvalidTransitionError(wrong_state)

        # Close for likes before the comment leaves the public thread
        if self.store is not None:
            await self.store.set_likeable(
                LikeTargetKind.COMMENT, comment.comment_id, False
            )
        await self._move(comment, CommentStatus.PENDING)

    async def _delete(self, comment: Comment, moderator_id: UUID) -> None:
        if self.store is not None:
            await self.store.set_likeable(
                LikeTargetKind.COMMENT, comment.comment_id, False
            )
        await self._move(comment, CommentStatus.REMOVED, removed_by=moderator_id)
        if self.store is not None:
            await self.store.purge(LikeTargetKind.COMMENT, comment.comment_id)

    async def _move(
        self,
        comment: Comment,
        status: CommentStatus,
        removed_by: UUID | None = None,
    ) -> None:
        """Rewrite the status in every comment table."""
        now = datetime.now(UTC)
        if status is CommentStatus.REMOVED:
            await self.session.aexecute(
                self._mark_removed_by_id,
                [status.value, now, now, removed_by, comment.comment_id],
            )
        else:
            await self.session.aexecute(
                self._update_status_by_id, [status.value, now, comment.comment_id]
            )

        await self.session.aexecute(
            self._update_status_by_post,
            [status.value, comment.post_id, comment.created_at, comment.comment_id],
        )

        await self.session.aexecute(
            self._delete_by_status,
            [comment.status.value, comment.created_at, comment.comment_id],
        )
        if status is not CommentStatus.REMOVED:
            await self.session.aexecute(
                self._insert_by_status,
                [
                    status.value,
                    comment.created_at,
                    comment.comment_id,
                    comment.post_id,
                    comment.parent_id,
                    comment.author_id,
                    comment.author_name,
                    comment.content,
                ],
            )

    async def _record_audit(
        self,
        action: ModeratorAction,
        comment: Comment,
        previous: CommentStatus,
        moderator_id: UUID,
    ) -> None:
        audit_log = create_audit_log(
            moderator_id=moderator_id,
            action=action,
            target_id=comment.comment_id,
            details=json.dumps(
                {"post_id": str(comment.post_id), "previous_status": previous.value}
            ),
        )
        try:
            await self.session.aexecute(
                self._insert_audit_log,
                [
                    audit_log.log_id,
                    audit_log.moderator_id,
                    audit_log.action.value,
                    audit_log.target_id,
                    audit_log.performed_at,
                    audit_log.details,
                ],
            )
        except Exception as e:
            logger.warning(
                "moderator_audit_log_failed",
                action=action.value,
                comment_id=str(comment.comment_id),
                error=str(e),
            )

    async def _invalidate_post_page(self, post_id: UUID) -> None:
        if self.page_invalidator is None:
            return
        try:
            await self.page_invalidator(post_id)
        except Exception as e:
            logger.warning(
                "post_page_invalidation_failed", post_id=str(post_id), error=str(e)
            )

    # ==========================================================================
    # Admin list
    # ==========================================================================

    async def list_for_admin(
        self,
        status: AdminStatusFilter = AdminStatusFilter.ALL,
        page: int = 1,
        limit: int = 20,
        post_id: str | UUID | None = None,
    ) -> AdminCommentListResponse:
        """A page of pending and/or approved comments, newest first.

        Removed comments never appear. ``total_count`` counts every match,
        not just the page.
        """
        page = max(page, 1)
        limit = min(max(limit, 1), self.max_page_size)

        try:
            post_uuid = parse_uuid(post_id, INVALID_POST_ID) if post_id else None
            comments = await self._load_queue(status)
            if post_uuid is not None:
                comments = [c for c in comments if c.post_id == post_uuid]
            comments.sort(key=lambda c: c.created_at, reverse=True)

            offset = (page - 1) * limit
            page_items = comments[offset : offset + limit]
            items = await self._with_post_info(page_items)
        except EngagementError as e:
            return AdminCommentListResponse(
                success=False, page=page, limit=limit, message=e.message, error=e.kind
            )
        except Exception as e:
            logger.exception(
                "admin_comment_list_failed",
                status=status.value,
                error_type=type(e).__name__,
            )
            return AdminCommentListResponse(
                success=False,
                page=page,
                limit=limit,
                message=LIST_FAILED,
                error=ErrorKind.UNKNOWN,
            )

        return AdminCommentListResponse(
            success=True,
            items=items,
            total_count=len(comments),
            page=page,
            limit=limit,
        )

    async def _load_queue(self, status: AdminStatusFilter) -> list[Comment]:
        statuses = (
            [CommentStatus.PENDING, CommentStatus.APPROVED]
            if status is AdminStatusFilter.ALL
            else [CommentStatus(status.value)]
        )
        comments: list[Comment] = []
        for comment_status in statuses:
            rows = await self.session.aexecute(
                self._list_by_status, [comment_status.value]
            )
            comments.extend(Comment.from_row(row) for row in rows)
        return comments

    async def _with_post_info(self, comments: list[Comment]) -> list[CommentResponse]:
        """Attach post title and slug, one lookup per distinct post."""
        posts = {}
        for post_id in dict.fromkeys(c.post_id for c in comments):
            posts[post_id] = await self.comments.posts.get_post(post_id)

        items = []
        for comment in comments:
            post = posts.get(comment.post_id)
            items.append(
                CommentResponse.from_comment(
                    comment,
                    post_title=post.title if post else POST_NOT_FOUND_TITLE,
                    post_slug=post.slug if post else None,
                )
            )
        return items
