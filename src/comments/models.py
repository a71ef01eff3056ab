"""Database models for blog comments and their moderation.

Cassandra table definitions for:
- Comments by ID: O(1) lookup, source of truth for status
- Comments by post: thread rendering
- Comments by status: moderation queue
- Moderator audit log

Architecture: Adjacency List pattern for threaded comments
- parent_id references the parent comment on the same post (NULL for roots)
- Status changes rewrite the denormalized rows; comments_by_status is keyed
  by status so a transition moves the row between partitions
- Like counts live in the atomic counter store, not here
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import UUID, uuid4


class CommentStatus(str, Enum):
    """Moderation state of a comment."""

    PENDING = "pending"
    APPROVED = "approved"
    REMOVED = "removed"


class ModeratorAction(str, Enum):
    """Types of moderator actions for audit logging."""

    APPROVE_COMMENT = "approve_comment"
    UNAPPROVE_COMMENT = "unapprove_comment"
    DELETE_COMMENT = "delete_comment"


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Comments by ID - O(1) lookup table
COMMENTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_id (
    comment_id UUID PRIMARY KEY,
    post_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    content TEXT,
    status TEXT,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    removed_at TIMESTAMP,
    removed_by UUID
)
"""

# Comments by post - partition per post, oldest first for thread rendering
COMMENTS_BY_POST_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_post (
    post_id UUID,
    created_at TIMESTAMP,
    comment_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    content TEXT,
    status TEXT,
    PRIMARY KEY ((post_id), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at ASC, comment_id ASC)
"""

# Comments by status - moderation queue, newest first
# Removed comments are deleted from this table
COMMENTS_BY_STATUS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.comments_by_status (
    status TEXT,
    created_at TIMESTAMP,
    comment_id UUID,
    post_id UUID,
    parent_id UUID,
    author_id UUID,
    author_name TEXT,
    content TEXT,
    PRIMARY KEY ((status), created_at, comment_id)
) WITH CLUSTERING ORDER BY (created_at DESC, comment_id ASC)
"""

# Moderator Action Audit Log - complete audit trail
MODERATOR_AUDIT_LOG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.moderator_audit_log (
    log_id UUID,
    moderator_id UUID,
    action TEXT,
    target_id UUID,
    performed_at TIMESTAMP,
    details TEXT,
    PRIMARY KEY ((moderator_id), performed_at, log_id)
) WITH CLUSTERING ORDER BY (performed_at DESC, log_id ASC)
  AND default_time_to_live = 31536000
  AND comment = 'Audit log for moderator actions (1 year TTL for compliance)'
"""

# All table definitions for initialization
COMMENTS_TABLES_CQL = [
    COMMENTS_BY_ID_TABLE_CQL,
    COMMENTS_BY_POST_TABLE_CQL,
    COMMENTS_BY_STATUS_TABLE_CQL,
    MODERATOR_AUDIT_LOG_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Comment:
    """Comment entity with full details."""

    comment_id: UUID
    post_id: UUID
    parent_id: UUID | None
    author_id: UUID
    author_name: str
    content: str
    status: CommentStatus
    created_at: datetime
    updated_at: datetime
    removed_at: datetime | None = None
    removed_by: UUID | None = None

    @property
    def is_approved(self) -> bool:
        return self.status is CommentStatus.APPROVED

    @classmethod
    def from_row(cls, row: Any) -> "Comment":
        """Create Comment from a Cassandra row of any comment table."""
        return cls(
            comment_id=row.comment_id,
            post_id=row.post_id,
            parent_id=row.parent_id,
            author_id=row.author_id,
            author_name=row.author_name or "Usuario",
            content=row.content,
            status=CommentStatus(getattr(row, "status", None) or "pending"),
            created_at=row.created_at,
            updated_at=getattr(row, "updated_at", None) or row.created_at,
            removed_at=getattr(row, "removed_at", None),
            removed_by=getattr(row, "removed_by", None),
        )


@dataclass
class ModeratorAuditLog:
    """Audit log entry for moderator actions."""

    log_id: UUID
    moderator_id: UUID
    action: ModeratorAction
    target_id: UUID | None
    performed_at: datetime
    details: str | None = None

    @classmethod
    def from_row(cls, row: Any) -> "ModeratorAuditLog":
        """Create entity from Cassandra row."""
        return cls(
            log_id=row.log_id,
            moderator_id=row.moderator_id,
            action=ModeratorAction(row.action),
            target_id=row.target_id,
            performed_at=row.performed_at,
            details=row.details,
        )


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_comment(
    post_id: UUID,
    author_id: UUID,
    author_name: str,
    content: str,
    parent_id: UUID | None = None,
) -> Comment:
    """Create a new comment awaiting moderation."""
    now = datetime.now(UTC)
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        parent_id=parent_id,
        author_id=author_id,
        author_name=author_name,
        content=content,
        status=CommentStatus.PENDING,
        created_at=now,
        updated_at=now,
    )


def create_audit_log(
    moderator_id: UUID,
    action: ModeratorAction,
    target_id: UUID | None = None,
    details: str | None = None,
) -> ModeratorAuditLog:
    """Create a moderator audit log entry.

    Args:
        moderator_id: ID of the moderator performing the action
        action: Type of moderator action
        target_id: ID of the moderated comment
        details: Additional details (JSON string or text)
    """
    return ModeratorAuditLog(
        log_id=uuid4(),
        moderator_id=moderator_id,
        action=action,
        target_id=target_id,
        performed_at=datetime.now(UTC),
        details=details,
    )
