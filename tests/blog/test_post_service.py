"""Tests for blog posts, publishing and view counting."""

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from src.blog.schemas import CreatePostRequest, PostResponse
from src.blog.service import PostNotFoundError, PostService, SlugAlreadyExistsError
from src.core.redis import post_page_key
from src.likes.models import LikeTargetKind
from src.likes.store import AtomicCounterStore


CREATED = datetime(2026, 2, 10, 9, 30, tzinfo=UTC)


def post_row(
    post_id: UUID | None = None,
    slug: str = "limites-com-carinho",
    is_published: bool = True,
) -> SimpleNamespace:
    return SimpleNamespace(
        post_id=post_id or uuid4(),
        slug=slug,
        title="Limites com carinho",
        excerpt="Como dizer nao",
        content="Texto completo",
        author_id=uuid4(),
        author_name="Dra. Ana",
        is_published=is_published,
        created_at=CREATED,
        updated_at=None,
        published_at=CREATED if is_published else None,
    )


@pytest.fixture
def mock_store():
    store = AsyncMock(spec=AtomicCounterStore)
    store.get_counts.return_value = {}
    return store


@pytest.fixture
def post_service(mock_session, mock_store) -> PostService:
    return PostService(session=mock_session, keyspace="test_ks", store=mock_store)


def executed(mock_session) -> list[str]:
    return [c.args[0] for c in mock_session.aexecute.await_args_list]


class TestCreatePost:
    """Tests for create_post."""

    @pytest.mark.asyncio
    async def test_creates_draft(self, post_service: PostService, mock_session):
        data = CreatePostRequest(
            slug="primeiros-passos", title="  Primeiros passos ", content="..."
        )

        post = await post_service.create_post(data, author_name="Dra. Ana")

        assert post.is_published is False
        assert post.title == "Primeiros passos"
        statements = executed(mock_session)
        assert "IF NOT EXISTS" in statements[0]
        assert statements[1].startswith("INSERT INTO test_ks.posts_by_id")

    @pytest.mark.asyncio
    async def test_taken_slug(self, post_service: PostService, mock_session, route):
        mock_session.aexecute.side_effect = route(
            {"IF NOT EXISTS": [SimpleNamespace(applied=False)]}
        )
        data = CreatePostRequest(slug="repetido", title="Repetido", content="...")

        with pytest.raises(SlugAlreadyExistsError):
            await post_service.create_post(data)

        assert len(mock_session.aexecute.await_args_list) == 1


class TestSetPublished:
    """Tests for publishing."""

    @pytest.mark.asyncio
    async def test_publish_opens_for_likes(
        self, post_service: PostService, mock_session, mock_store, route
    ):
        row = post_row(is_published=False)
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.posts_by_id": [row]}
        )

        post = await post_service.set_published(row.post_id, published=True)

        assert post.is_published is True
        assert post.published_at is not None
        mock_store.set_likeable.assert_awaited_once_with(
            LikeTargetKind.POST, row.post_id, True
        )

    @pytest.mark.asyncio
    async def test_unpublish_closes_for_likes(
        self, post_service: PostService, mock_session, mock_store, route
    ):
        row = post_row()
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.posts_by_id": [row]}
        )

        post = await post_service.set_published(row.post_id, published=False)

        assert post.is_published is False
        assert post.published_at == CREATED
        mock_store.set_likeable.assert_awaited_once_with(
            LikeTargetKind.POST, row.post_id, False
        )
        mock_store.purge.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_missing_post(self, post_service: PostService, mock_store):
        with pytest.raises(PostNotFoundError):
            await post_service.set_published(uuid4(), published=True)

        mock_store.set_likeable.assert_not_awaited()


class TestIncrementView:
    """Tests for increment_view."""

    @pytest.mark.asyncio
    async def test_counter_update_and_read_back(
        self, post_service: PostService, mock_session, route
    ):
        row = post_row()
        mock_session.aexecute.side_effect = route(
            {
                "SELECT * FROM test_ks.posts_by_id": [row],
                "SELECT view_count": [SimpleNamespace(view_count=42)],
            }
        )

        view_count = await post_service.increment_view(
            row.post_id, user_agent="pytest", referrer="https://example.com"
        )

        assert view_count == 42
        statements = executed(mock_session)
        assert any("SET view_count = view_count + 1" in s for s in statements)
        assert statements[-1].startswith("INSERT INTO test_ks.post_views")

    @pytest.mark.asyncio
    @pytest.mark.parametrize("rows", [[], [post_row(is_published=False)]])
    async def test_missing_or_unpublished(
        self, post_service: PostService, mock_session, route, rows
    ):
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.posts_by_id": rows}
        )

        with pytest.raises(PostNotFoundError):
            await post_service.increment_view(uuid4())

        assert not any("view_count + 1" in s for s in executed(mock_session))

    @pytest.mark.asyncio
    async def test_analytics_failure_still_counts(
        self, post_service: PostService, mock_session, route
    ):
        row = post_row()

        def fail(params):
            raise RuntimeError("analytics table down")

        mock_session.aexecute.side_effect = route(
            {
                "SELECT * FROM test_ks.posts_by_id": [row],
                "SELECT view_count": [SimpleNamespace(view_count=7)],
                "INSERT INTO test_ks.post_views": fail,
            }
        )

        assert await post_service.increment_view(row.post_id) == 7

    @pytest.mark.asyncio
    async def test_never_viewed_reads_zero(self, post_service: PostService):
        assert await post_service.get_view_count(uuid4()) == 0


class TestPostPage:
    """Tests for the cached public post page."""

    @pytest.fixture
    def cached_service(self, mock_session, mock_store, redis) -> PostService:
        service = PostService(
            session=mock_session, keyspace="test_ks", redis=redis, store=mock_store
        )
        service.comment_counter = AsyncMock(return_value=3)
        return service

    @pytest.mark.asyncio
    async def test_page_carries_counts_and_is_cached(
        self, cached_service: PostService, mock_session, mock_store, route, redis
    ):
        row = post_row()
        mock_session.aexecute.side_effect = route(
            {
                "SELECT post_id FROM test_ks.posts_by_slug": [
                    SimpleNamespace(post_id=row.post_id)
                ],
                "SELECT * FROM test_ks.posts_by_id": [row],
                "SELECT view_count": [SimpleNamespace(view_count=10)],
            }
        )
        mock_store.get_counts.return_value = {row.post_id: 5}

        page = await cached_service.get_post_by_slug(row.slug)

        assert (page.like_count, page.view_count, page.comment_count) == (5, 10, 3)
        cached = await redis.get(post_page_key(row.slug))
        assert PostResponse.model_validate_json(cached) == page

        mock_session.aexecute.reset_mock()
        again = await cached_service.get_post_by_slug(row.slug)
        assert again == page
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_unpublished_page_hidden(
        self, cached_service: PostService, mock_session, route, redis
    ):
        row = post_row(is_published=False)
        mock_session.aexecute.side_effect = route(
            {
                "SELECT post_id FROM test_ks.posts_by_slug": [
                    SimpleNamespace(post_id=row.post_id)
                ],
                "SELECT * FROM test_ks.posts_by_id": [row],
            }
        )

        assert await cached_service.get_post_by_slug(row.slug) is None
        assert await redis.get(post_page_key(row.slug)) is None

    @pytest.mark.asyncio
    async def test_invalidate_drops_cached_page(
        self, cached_service: PostService, mock_session, route, redis
    ):
        row = post_row()
        await redis.set(post_page_key(row.slug), "{}")
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.posts_by_id": [row]}
        )

        await cached_service.invalidate_post_page(row.post_id)

        assert await redis.get(post_page_key(row.slug)) is None

    @pytest.mark.asyncio
    async def test_publish_drops_cached_page(
        self, cached_service: PostService, mock_session, route, redis
    ):
        row = post_row()
        await redis.set(post_page_key(row.slug), "{}")
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.posts_by_id": [row]}
        )

        await cached_service.set_published(row.post_id, published=False)

        assert await redis.get(post_page_key(row.slug)) is None
