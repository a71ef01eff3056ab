"""Database models for blog posts and view tracking.

Cassandra table definitions for:
- Posts: lookup by id and by slug
- View counts: COUNTER table, incremented server-side
- Post views: best-effort analytics rows

Like counts are not stored here; they live in the atomic counter store.
"""

from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4


# ==============================================================================
# CQL Table Definitions
# ==============================================================================

# Posts by ID - primary lookup
POSTS_BY_ID_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_id (
    post_id UUID PRIMARY KEY,
    slug TEXT,
    title TEXT,
    excerpt TEXT,
    content TEXT,
    author_id UUID,
    author_name TEXT,
    is_published BOOLEAN,
    created_at TIMESTAMP,
    updated_at TIMESTAMP,
    published_at TIMESTAMP
)
"""

# Posts by slug - public page lookup, slug is URL-stable
POSTS_BY_SLUG_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.posts_by_slug (
    slug TEXT PRIMARY KEY,
    post_id UUID
)
"""

# View counts - counter columns cannot share a table with regular columns
POST_VIEW_COUNTS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_view_counts (
    post_id UUID PRIMARY KEY,
    view_count COUNTER
)
"""

# Post views - analytics, 90 day TTL
POST_VIEWS_TABLE_CQL = """
CREATE TABLE IF NOT EXISTS {keyspace}.post_views (
    post_id UUID,
    viewed_at TIMESTAMP,
    view_id UUID,
    user_agent TEXT,
    referrer TEXT,
    PRIMARY KEY ((post_id), viewed_at, view_id)
) WITH CLUSTERING ORDER BY (viewed_at DESC, view_id ASC)
  AND default_time_to_live = 7776000
"""

BLOG_TABLES_CQL = [
    POSTS_BY_ID_TABLE_CQL,
    POSTS_BY_SLUG_TABLE_CQL,
    POST_VIEW_COUNTS_TABLE_CQL,
    POST_VIEWS_TABLE_CQL,
]


# ==============================================================================
# Entity Classes
# ==============================================================================


@dataclass
class Post:
    """Blog post entity."""

    post_id: UUID
    slug: str
    title: str
    excerpt: str | None
    content: str
    author_id: UUID | None
    author_name: str | None
    is_published: bool
    created_at: datetime
    updated_at: datetime
    published_at: datetime | None = None

    @classmethod
    def from_row(cls, row: Any) -> "Post":
        """Create Post from Cassandra row."""
        return cls(
            post_id=row.post_id,
            slug=row.slug,
            title=row.title,
            excerpt=row.excerpt,
            content=row.content or "",
            author_id=row.author_id,
            author_name=row.author_name,
            is_published=row.is_published or False,
            created_at=row.created_at,
            updated_at=row.updated_at or row.created_at,
            published_at=row.published_at,
        )


@dataclass
class PostView:
    """One counted view, kept for analytics."""

    post_id: UUID
    viewed_at: datetime
    view_id: UUID
    user_agent: str | None = None
    referrer: str | None = None


# ==============================================================================
# Factory Functions
# ==============================================================================


def create_post(
    slug: str,
    title: str,
    content: str,
    excerpt: str | None = None,
    author_id: UUID | None = None,
    author_name: str | None = None,
) -> Post:
    """Create a new unpublished post."""
    now = datetime.now(UTC)
    return Post(
        post_id=uuid4(),
        slug=slug,
        title=title,
        excerpt=excerpt,
        content=content,
        author_id=author_id,
        author_name=author_name,
        is_published=False,
        created_at=now,
        updated_at=now,
    )


def create_post_view(
    post_id: UUID,
    user_agent: str | None = None,
    referrer: str | None = None,
) -> PostView:
    """Create an analytics row for a counted view."""
    return PostView(
        post_id=post_id,
        viewed_at=datetime.now(UTC),
        view_id=uuid4(),
        user_agent=user_agent,
        referrer=referrer,
    )
