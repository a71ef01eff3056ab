"""Comment system module.

Provides threaded blog comments with:
- Submission (comments start pending)
- Moderation state machine (pending, approved, removed)
- Public thread with tombstones for hidden parents

Note: Router is not exported here to avoid circular imports.
Import directly from src.comments.router when needed.
"""

from .models import COMMENTS_TABLES_CQL, Comment, CommentStatus
from .moderation import ModerationService
from .service import CommentService


__all__ = [
    "COMMENTS_TABLES_CQL",
    "Comment",
    "CommentService",
    "CommentStatus",
    "ModerationService",
]
