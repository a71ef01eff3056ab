"""Comment system service layer.

Business logic for:
- Comment submission (new comments start pending)
- The public comment tree with like counts
- Public comment counts

Every public method returns a result value; errors are converted at this
boundary and never propagate to the caller.
"""

import html
from collections.abc import Iterable
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import (
    EngagementError,
    ErrorKind,
    InvalidContentError,
    InvalidIdentifierError,
    NotAuthenticatedError,
    TargetNotFoundError,
)
from src.likes.models import LikeTargetKind

from .models import Comment, CommentStatus, create_comment
from .schemas import (
    MAX_COMMENT_LENGTH,
    REMOVED_PLACEHOLDER,
    UNAVAILABLE_PLACEHOLDER,
    CommentNode,
    CommentTreeResponse,
    SubmitCommentResponse,
)


if TYPE_CHECKING:
    from cassandra.cluster import Session

    from src.auth.schemas import UserResponse
    from src.blog.service import PostService
    from src.likes.store import AtomicCounterStore


logger = structlog.get_logger(__name__)


# ==============================================================================
# Messages
# ==============================================================================

SUBMIT_MESSAGES = {
    ErrorKind.UNAUTHENTICATED: "Voce precisa estar logado para comentar.",
    ErrorKind.NOT_FOUND: "O post que voce tentou comentar nao foi encontrado.",
    ErrorKind.PERMISSION_DENIED: "Voce nao tem permissao para comentar.",
    ErrorKind.UNKNOWN: "Falha ao salvar o comentario. Tente novamente.",
}
SUBMIT_SUCCESS = "Comentario enviado com sucesso! Aguardando aprovacao."
EMPTY_CONTENT = "O conteudo do comentario nao pode estar vazio."
CONTENT_TOO_LONG = "O comentario excede o tamanho maximo permitido."
INVALID_POST_ID = "ID do post invalido."
INVALID_PARENT_ID = "ID do comentario invalido."
PARENT_NOT_FOUND = "O comentario que voce tentou responder nao foi encontrado."
TREE_FAILED = "Falha ao carregar os comentarios."


def sanitize_content(content: str) -> str:
    """Trim and escape comment content; no markup is allowed."""
    return html.escape(content.strip())


def parse_uuid(raw: str | UUID, message: str) -> UUID:
    if isinstance(raw, UUID):
        return raw
    try:
        return UUID(str(raw))
    except (TypeError, ValueError) as e:
        raise InvalidIdentifierError(message) from e


# ==============================================================================
# Tree building
# ==============================================================================


def build_comment_tree(
    comments: Iterable[Comment], like_counts: dict[UUID, int]
) -> list[CommentNode]:
    """Arrange approved comments into a thread.

    Approved comments are visible. A non-approved ancestor of a visible
    comment becomes a tombstone so the reply keeps its place in the thread.
    A reply whose parent is unknown is shown at the root. Siblings are
    ordered oldest first.
    """
    by_id = {c.comment_id: c for c in comments}

    needed: set[UUID] = set()
    for comment in by_id.values():
        if not comment.is_approved:
            continue
        current: Comment | None = comment
        while current is not None and current.comment_id not in needed:
            needed.add(current.comment_id)
            current = by_id.get(current.parent_id) if current.parent_id else None

    nodes: dict[UUID, CommentNode] = {}
    for comment_id in needed:
        comment = by_id[comment_id]
        if comment.is_approved:
            nodes[comment_id] = CommentNode(
                comment_id=comment.comment_id,
                parent_id=comment.parent_id,
                author_id=comment.author_id,
                author_name=comment.author_name,
                content=comment.content,
                created_at=comment.created_at,
                like_count=like_counts.get(comment.comment_id, 0),
            )
        else:
            nodes[comment_id] = CommentNode(
                comment_id=comment.comment_id,
                parent_id=comment.parent_id,
                content=(
                    REMOVED_PLACEHOLDER
                    if comment.status is CommentStatus.REMOVED
                    else UNAVAILABLE_PLACEHOLDER
                ),
                created_at=comment.created_at,
                is_tombstone=True,
            )

    roots: list[CommentNode] = []
    for node in sorted(nodes.values(), key=lambda n: (n.created_at, str(n.comment_id))):
        parent = nodes.get(node.parent_id) if node.parent_id else None
        if parent is not None:
            parent.replies.append(node)
        else:
            roots.append(node)
    return roots


# ==============================================================================
# Comment Service
# ==============================================================================


class CommentService:
    """Service for comment submission and public reads."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        posts: "PostService",
        store: "AtomicCounterStore | None" = None,
    ):
        """Initialize with Cassandra session and collaborators.

        Args:
            session: Cassandra session with ``aexecute``
            keyspace: Keyspace holding the comment tables
            posts: Post lookup, a comment needs a published post
            store: Counter store that owns comment like counts
        """
        self.session = session
        self.keyspace = keyspace
        self.posts = posts
        self.store = store
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._insert_comment_by_id = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_id
            (comment_id, post_id, parent_id, author_id, author_name, content,
             status, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_post
            (post_id, created_at, comment_id, parent_id, author_id, author_name,
             content, status)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._insert_comment_by_status = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.comments_by_status
            (status, created_at, comment_id, post_id, parent_id, author_id,
             author_name, content)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_comment = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_id
            WHERE comment_id = ?
        """)

        self._get_comments_by_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.comments_by_post
            WHERE post_id = ?
        """)

        self._get_statuses_by_post = self.session.prepare(f"""
            SELECT status FROM {self.keyspace}.comments_by_post
            WHERE post_id = ?
        """)

    # ==========================================================================
    # Reads
    # ==========================================================================

    async def find_comment_by_id(self, comment_id: UUID) -> Comment | None:
        """Find a comment by ID, whatever its status."""
        result = await self.session.aexecute(self._get_comment, [comment_id])
        row = result[0] if result else None
        return Comment.from_row(row) if row else None

    async def get_post_comments(self, post_id: UUID) -> list[Comment]:
        """Every comment row of a post, oldest first."""
        rows = await self.session.aexecute(self._get_comments_by_post, [post_id])
        return [Comment.from_row(row) for row in rows]

    async def count_public_comments(self, post_id: UUID) -> int:
        """Number of approved comments on a post."""
        rows = await self.session.aexecute(self._get_statuses_by_post, [post_id])
        return sum(1 for row in rows if row.status == CommentStatus.APPROVED.value)

    async def get_comment_tree(self, post_id: str | UUID) -> CommentTreeResponse:
        """Approved comments of a post as a thread with like counts."""
        try:
            post_uuid = parse_uuid(post_id, INVALID_POST_ID)
            comments = await self.get_post_comments(post_uuid)
            approved = [c.comment_id for c in comments if c.is_approved]

            like_counts: dict[UUID, int] = {}
            if self.store is not None and approved:
                like_counts = await self.store.get_counts(
                    LikeTargetKind.COMMENT, approved
                )
        except EngagementError as e:
            return CommentTreeResponse(success=False, message=e.message, error=e.kind)
        except Exception as e:
            logger.exception(
                "comment_tree_failed",
                post_id=str(post_id),
                error_type=type(e).__name__,
            )
            return CommentTreeResponse(
                success=False, message=TREE_FAILED, error=ErrorKind.UNKNOWN
            )

        return CommentTreeResponse(
            success=True,
            post_id=post_uuid,
            items=build_comment_tree(comments, like_counts),
            total=len(approved),
        )

    # ==========================================================================
    # Submission
    # ==========================================================================

    async def submit_comment(
        self,
        post_id: str | UUID,
        content: str,
        parent_id: str | UUID | None,
        user: "UserResponse | None",
    ) -> SubmitCommentResponse:
        """Submit a comment or reply; it stays hidden until approved."""
        try:
            comment = await self._submit(post_id, content, parent_id, user)
        except EngagementError as e:
            logger.info("comment_submit_rejected", post_id=str(post_id), error=e.kind.value)
            return SubmitCommentResponse(success=False, message=e.message, error=e.kind)
        except Exception as e:
            logger.exception(
                "comment_submit_failed",
                post_id=str(post_id),
                error_type=type(e).__name__,
            )
            return SubmitCommentResponse(
                success=False,
                message=SUBMIT_MESSAGES[ErrorKind.UNKNOWN],
                error=ErrorKind.UNKNOWN,
            )

        logger.info(
            "comment_submitted",
            comment_id=str(comment.comment_id),
            post_id=str(comment.post_id),
            is_reply=comment.parent_id is not None,
        )
        return SubmitCommentResponse(
            success=True, comment_id=comment.comment_id, message=SUBMIT_SUCCESS
        )

    async def _submit(
        self,
        post_id: str | UUID,
        content: str,
        parent_id: str | UUID | None,
        user: "UserResponse | None",
    ) -> Comment:
        if user is None:
            raise NotAuthenticatedError(SUBMIT_MESSAGES[ErrorKind.UNAUTHENTICATED])

        post_uuid = parse_uuid(post_id, INVALID_POST_ID)
        parent_uuid = parse_uuid(parent_id, INVALID_PARENT_ID) if parent_id else None

        sanitized = sanitize_content(content)
        if not sanitized:
            raise InvalidContentError(EMPTY_CONTENT)
        if len(sanitized) > MAX_COMMENT_LENGTH:
            raise InvalidContentError(CONTENT_TOO_LONG)

        post = await self.posts.get_post(post_uuid)
        if post is None or not post.is_published:
            raise TargetNotFoundError(SUBMIT_MESSAGES[ErrorKind.NOT_FOUND])

        if parent_uuid is not None:
            parent = await self.find_comment_by_id(parent_uuid)
            if (
                parent is None
                or parent.post_id != post_uuid
                or parent.status is CommentStatus.REMOVED
            ):
                raise TargetNotFoundError(PARENT_NOT_FOUND)

        comment = create_comment(
            post_id=post_uuid,
            author_id=user.id,
            author_name=user.display_name,
            content=sanitized,
            parent_id=parent_uuid,
        )
        await self._write(comment)
        return comment

    async def _write(self, comment: Comment) -> None:
        await self.session.aexecute(
            self._insert_comment_by_id,
            [
                comment.comment_id,
                comment.post_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.content,
                comment.status.value,
                comment.created_at,
                comment.updated_at,
            ],
        )
        await self.session.aexecute(
            self._insert_comment_by_post,
            [
                comment.post_id,
                comment.created_at,
                comment.comment_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.content,
                comment.status.value,
            ],
        )
        await self.session.aexecute(
            self._insert_comment_by_status,
            [
                comment.status.value,
                comment.created_at,
                comment.comment_id,
                comment.post_id,
                comment.parent_id,
                comment.author_id,
                comment.author_name,
                comment.content,
            ],
        )
