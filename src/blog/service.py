"""Blog post service layer.

Business logic for:
- Creating, publishing and unpublishing posts
- The cached public post page with engagement counts
- Atomic view counting
"""

from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from typing import TYPE_CHECKING
from uuid import UUID

import structlog

from src.core.errors import EngagementError, ErrorKind, TargetNotFoundError
from src.core.redis import post_page_key
from src.likes.models import LikeTargetKind

from .models import Post, create_post, create_post_view
from .schemas import CreatePostRequest, PostResponse


if TYPE_CHECKING:
    from cassandra.cluster import Session
    from redis.asyncio import Redis

    from src.likes.store import AtomicCounterStore


logger = structlog.get_logger(__name__)

CommentCounter = Callable[[UUID], Awaitable[int]]


# ==============================================================================
# Custom Exceptions
# ==============================================================================


class PostNotFoundError(TargetNotFoundError):
    """Post missing, or not published where a public post is required."""

    default_message = "Post nao encontrado"


class SlugAlreadyExistsError(EngagementError):
    """Another post already owns the slug."""

    kind = ErrorKind.VALIDATION
    default_message = "Ja existe um post com este slug"


# ==============================================================================
# Post Service
# ==============================================================================


class PostService:
    """Service for blog posts and their view counter."""

    def __init__(
        self,
        session: "Session",
        keyspace: str,
        redis: "Redis | None" = None,
        store: "AtomicCounterStore | None" = None,
        page_cache_ttl: int = 600,
    ):
        """Initialize with Cassandra session and optional collaborators.

        Args:
            session: Cassandra session with ``aexecute``
            keyspace: Keyspace holding the blog tables
            redis: Page cache; caching is skipped without it
            store: Counter store that owns post like counts
            page_cache_ttl: Seconds a rendered post page stays cached
        """
        self.session = session
        self.keyspace = keyspace
        self.redis = redis
        self.store = store
        self.page_cache_ttl = page_cache_ttl
        self.comment_counter: CommentCounter | None = None
        self._prepare_statements()

    def _prepare_statements(self) -> None:
        """Prepare CQL statements for efficient queries."""
        self._claim_slug = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_slug (slug, post_id)
            VALUES (?, ?)
            IF NOT EXISTS
        """)

        self._insert_post = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.posts_by_id
            (post_id, slug, title, excerpt, content, author_id, author_name,
             is_published, created_at, updated_at, published_at)
            VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
        """)

        self._get_post = self.session.prepare(f"""
            SELECT * FROM {self.keyspace}.posts_by_id
            WHERE post_id = ?
        """)

        self._get_post_id_by_slug = self.session.prepare(f"""
            SELECT post_id FROM {self.keyspace}.posts_by_slug
            WHERE slug = ?
        """)

        self._set_published = self.session.prepare(f"""
            UPDATE {self.keyspace}.posts_by_id
            SET is_published = ?, published_at = ?, updated_at = ?
            WHERE post_id = ?
        """)

        self._increment_view_count = self.session.prepare(f"""
            UPDATE {self.keyspace}.post_view_counts
            SET view_count = view_count + 1
            WHERE post_id = ?
        """)

        self._get_view_count = self.session.prepare(f"""
            SELECT view_count FROM {self.keyspace}.post_view_counts
            WHERE post_id = ?
        """)

        self._insert_post_view = self.session.prepare(f"""
            INSERT INTO {self.keyspace}.post_views
            (post_id, viewed_at, view_id, user_agent, referrer)
            VALUES (?, ?, ?, ?, ?)
        """)

    # ==========================================================================
    # Posts
    # ==========================================================================

    async def create_post(
        self,
        data: CreatePostRequest,
        author_id: UUID | None = None,
        author_name: str | None = None,
    ) -> Post:
        """Create a draft post.

        Raises:
            SlugAlreadyExistsError: If the slug is taken
        """
        post = create_post(
            slug=data.slug,
            title=data.title,
            content=data.content,
            excerpt=data.excerpt,
            author_id=author_id,
            author_name=author_name,
        )

        result = await self.session.aexecute(self._claim_slug, [post.slug, post.post_id])
        row = result[0] if result else None
        if row is not None and not getattr(row, "applied", True):
            raise SlugAlreadyExistsError

        await self.session.aexecute(
            self._insert_post,
            [
                post.post_id,
                post.slug,
                post.title,
                post.excerpt,
                post.content,
                post.author_id,
                post.author_name,
                post.is_published,
                post.created_at,
                post.updated_at,
                post.published_at,
            ],
        )

        logger.info("post_created", post_id=str(post.post_id), slug=post.slug)
        return post

    async def get_post(self, post_id: UUID) -> Post | None:
        """Get a post by ID, published or not."""
        result = await self.session.aexecute(self._get_post, [post_id])
        row = result[0] if result else None
        return Post.from_row(row) if row else None

    async def get_published_post(self, post_id: UUID) -> Post:
        """Get a post that is visible to the public.

        Raises:
            PostNotFoundError: Missing or unpublished
        """
        post = await self.get_post(post_id)
        if post is None or not post.is_published:
            raise PostNotFoundError
        return post

    async def get_post_by_slug(self, slug: str) -> PostResponse | None:
        """Public post page with like, view and comment counts.

        Served from the page cache when present. Unpublished posts are
        never returned.
        """
        cached = await self._get_cached_page(slug)
        if cached is not None:
            return cached

        result = await self.session.aexecute(self._get_post_id_by_slug, [slug])
        row = result[0] if result else None
        if row is None:
            return None

        post = await self.get_post(row.post_id)
        if post is None or not post.is_published:
            return None

        page = PostResponse(
            post_id=post.post_id,
            slug=post.slug,
            title=post.title,
            excerpt=post.excerpt,
            content=post.content,
            author_name=post.author_name,
            is_published=post.is_published,
            published_at=post.published_at,
            created_at=post.created_at,
            like_count=await self._get_like_count(post.post_id),
            view_count=await self.get_view_count(post.post_id),
            comment_count=(
                await self.comment_counter(post.post_id) if self.comment_counter else 0
            ),
        )

        await self._cache_page(page)
        return page

    async def set_published(self, post_id: UUID, published: bool) -> Post:
        """Publish or unpublish a post.

        A published post is registered as a like target; unpublishing closes
        it for likes while keeping existing likes.

        Raises:
            PostNotFoundError: If the post does not exist
        """
        post = await self.get_post(post_id)
        if post is None:
            raise PostNotFoundError

        now = datetime.now(UTC)
        published_at = (post.published_at or now) if published else post.published_at
        await self.session.aexecute(
            self._set_published, [published, published_at, now, post_id]
        )

        if self.store is not None:
            await self.store.set_likeable(LikeTargetKind.POST, post_id, published)

        await self._delete_cached_page(post.slug)

        post.is_published = published
        post.published_at = published_at
        post.updated_at = now

        logger.info(
            "post_published" if published else "post_unpublished",
            post_id=str(post_id),
            slug=post.slug,
        )
        return post

    # ==========================================================================
    # Views
    # ==========================================================================

    async def increment_view(
        self,
        post_id: UUID,
        user_agent: str | None = None,
        referrer: str | None = None,
    ) -> int:
        """Add one view to a published post and return the new count.

        The counter column is incremented server-side. The analytics row is
        best effort and its failure does not fail the increment.

        Raises:
            PostNotFoundError: Missing or unpublished post
        """
        await self.get_published_post(post_id)

        await self.session.aexecute(self._increment_view_count, [post_id])
        view_count = await self.get_view_count(post_id)

        view = create_post_view(post_id, user_agent=user_agent, referrer=referrer)
        try:
            await self.session.aexecute(
                self._insert_post_view,
                [
                    view.post_id,
                    view.viewed_at,
                    view.view_id,
                    view.user_agent,
                    view.referrer,
                ],
            )
        except Exception as e:
            logger.warning(
                "post_view_analytics_failed", post_id=str(post_id), error=str(e)
            )

        logger.debug("post_view_counted", post_id=str(post_id), view_count=view_count)
        return view_count

    async def get_view_count(self, post_id: UUID) -> int:
        """Current view count; zero for a post never viewed."""
        result = await self.session.aexecute(self._get_view_count, [post_id])
        row = result[0] if result else None
        return row.view_count if row and row.view_count else 0

    async def _get_like_count(self, post_id: UUID) -> int:
        if self.store is None:
            return 0
        counts = await self.store.get_counts(LikeTargetKind.POST, [post_id])
        return counts.get(post_id, 0)

    # ==========================================================================
    # Page Cache
    # ==========================================================================

    async def invalidate_post_page(self, post_id: UUID) -> None:
        """Mark a post's public page stale."""
        if not self.redis:
            return

        post = await self.get_post(post_id)
        if post is None:
            return

        await self._delete_cached_page(post.slug)
        logger.debug("post_page_invalidated", post_id=str(post_id), slug=post.slug)

    async def _get_cached_page(self, slug: str) -> PostResponse | None:
        if not self.redis:
            return None

        cached = await self.redis.get(post_page_key(slug))
        if cached:
            return PostResponse.model_validate_json(cached)
        return None

    async def _cache_page(self, page: PostResponse) -> None:
        if not self.redis:
            return

        await self.redis.setex(
            post_page_key(page.slug),
            self.page_cache_ttl,
            page.model_dump_json(),
        )

    async def _delete_cached_page(self, slug: str) -> None:
        if self.redis:
            await self.redis.delete(post_page_key(slug))
