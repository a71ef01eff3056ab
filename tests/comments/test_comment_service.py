"""Tests for comment submission and the public comment tree."""

from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock
from uuid import UUID, uuid4

import pytest

from src.blog.models import Post, create_post
from src.blog.service import PostService
from src.comments.models import Comment, CommentStatus
from src.comments.schemas import (
    REMOVED_PLACEHOLDER,
    UNAVAILABLE_PLACEHOLDER,
    SubmitCommentRequest,
)
from src.comments.service import CommentService, build_comment_tree, sanitize_content
from src.core.errors import ErrorKind
from src.likes.models import LikeTargetKind
from src.likes.store import AtomicCounterStore


BASE_TIME = datetime(2026, 3, 1, 12, 0, tzinfo=UTC)


def make_comment(
    post_id: UUID,
    status: CommentStatus = CommentStatus.APPROVED,
    parent_id: UUID | None = None,
    minutes: int = 0,
    content: str = "Muito bom o texto",
) -> Comment:
    created = BASE_TIME + timedelta(minutes=minutes)
    return Comment(
        comment_id=uuid4(),
        post_id=post_id,
        parent_id=parent_id,
        author_id=uuid4(),
        author_name="Leitora",
        content=content,
        status=status,
        created_at=created,
        updated_at=created,
    )


def as_row(comment: Comment) -> SimpleNamespace:
    return SimpleNamespace(
        comment_id=comment.comment_id,
        post_id=comment.post_id,
        parent_id=comment.parent_id,
        author_id=comment.author_id,
        author_name=comment.author_name,
        content=comment.content,
        status=comment.status.value,
        created_at=comment.created_at,
    )


def published_post() -> Post:
    post = create_post(slug="birra-aos-dois-anos", title="Birra", content="...")
    post.is_published = True
    return post


@pytest.fixture
def mock_posts():
    posts = AsyncMock(spec=PostService)
    posts.get_post.return_value = published_post()
    return posts


@pytest.fixture
def mock_store():
    store = AsyncMock(spec=AtomicCounterStore)
    store.get_counts.return_value = {}
    return store


@pytest.fixture
def comment_service(mock_session, mock_posts, mock_store) -> CommentService:
    return CommentService(
        session=mock_session, keyspace="test_ks", posts=mock_posts, store=mock_store
    )


def inserted_tables(mock_session) -> list[str]:
    return [
        call.args[0].split()[2]
        for call in mock_session.aexecute.await_args_list
        if call.args[0].startswith("INSERT INTO")
    ]


# ==============================================================================
# Content
# ==============================================================================


class TestSanitizeContent:
    """Tests for content sanitization."""

    def test_strips_and_escapes(self):
        assert sanitize_content("  <b>oi</b> ") == "&lt;b&gt;oi&lt;/b&gt;"

    def test_whitespace_only_is_empty(self):
        assert sanitize_content(" \n\t ") == ""


class TestSubmitCommentRequest:
    """Tests for the submission schema."""

    def test_blank_parent_becomes_none(self):
        data = SubmitCommentRequest(post_id=str(uuid4()), content="oi", parent_id="")

        assert data.parent_id is None

    def test_content_length_limit(self):
        with pytest.raises(ValueError):
            SubmitCommentRequest(post_id=str(uuid4()), content="a" * 5001)


# ==============================================================================
# Submission
# ==============================================================================


class TestSubmitComment:
    """Tests for submit_comment."""

    @pytest.mark.asyncio
    async def test_new_comment_is_pending_in_every_table(
        self, comment_service: CommentService, mock_session, mock_posts, user
    ):
        post = mock_posts.get_post.return_value

        result = await comment_service.submit_comment(
            str(post.post_id), "Adorei as dicas!", None, user
        )

        assert result.success is True
        assert result.comment_id is not None
        assert "Aguardando aprovacao" in result.message
        assert inserted_tables(mock_session) == [
            "test_ks.comments_by_id",
            "test_ks.comments_by_post",
            "test_ks.comments_by_status",
        ]
        by_id_params = mock_session.aexecute.await_args_list[0].args[1]
        assert by_id_params[5] == "Adorei as dicas!"
        assert by_id_params[6] == CommentStatus.PENDING.value
        assert by_id_params[4] == user.display_name

    @pytest.mark.asyncio
    async def test_content_is_escaped_before_storage(
        self, comment_service: CommentService, mock_session, mock_posts, user
    ):
        post = mock_posts.get_post.return_value

        await comment_service.submit_comment(
            post.post_id, "<script>x</script>", None, user
        )

        stored = mock_session.aexecute.await_args_list[0].args[1][5]
        assert "<script>" not in stored
        assert stored.startswith("&lt;script&gt;")

    @pytest.mark.asyncio
    async def test_anonymous_rejected(
        self, comment_service: CommentService, mock_session, mock_posts
    ):
        result = await comment_service.submit_comment(
            str(uuid4()), "oi", None, None
        )

        assert result.success is False
        assert result.error == ErrorKind.UNAUTHENTICATED
        mock_posts.get_post.assert_not_awaited()
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_malformed_post_id(self, comment_service: CommentService, user):
        result = await comment_service.submit_comment("abc", "oi", None, user)

        assert result.success is False
        assert result.error == ErrorKind.VALIDATION
        assert result.message == "ID do post invalido."

    @pytest.mark.asyncio
    async def test_empty_content_rejected(
        self, comment_service: CommentService, mock_session, user
    ):
        result = await comment_service.submit_comment(str(uuid4()), "   ", None, user)

        assert result.success is False
        assert result.error == ErrorKind.VALIDATION
        assert "vazio" in result.message
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_escaped_content_over_limit_rejected(
        self, comment_service: CommentService, user
    ):
        result = await comment_service.submit_comment(
            str(uuid4()), "<" * 2000, None, user
        )

        assert result.success is False
        assert result.error == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    @pytest.mark.parametrize("published", [False, None])
    async def test_unpublished_or_missing_post(
        self,
        comment_service: CommentService,
        mock_session,
        mock_posts,
        user,
        published,
    ):
        if published is None:
            mock_posts.get_post.return_value = None
        else:
            mock_posts.get_post.return_value.is_published = published

        result = await comment_service.submit_comment(str(uuid4()), "oi", None, user)

        assert result.success is False
        assert result.error == ErrorKind.NOT_FOUND
        mock_session.aexecute.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_reply_to_comment_on_same_post(
        self, comment_service: CommentService, mock_session, mock_posts, route, user
    ):
        post = mock_posts.get_post.return_value
        parent = make_comment(post.post_id)
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.comments_by_id": [as_row(parent)]}
        )

        result = await comment_service.submit_comment(
            str(post.post_id), "Tambem achei", str(parent.comment_id), user
        )

        assert result.success is True
        insert = next(
            call
            for call in mock_session.aexecute.await_args_list
            if call.args[0].startswith("INSERT INTO test_ks.comments_by_id")
        )
        assert insert.args[1][2] == parent.comment_id

    @pytest.mark.asyncio
    async def test_reply_to_other_post_rejected(
        self, comment_service: CommentService, mock_session, mock_posts, route, user
    ):
        post = mock_posts.get_post.return_value
        parent = make_comment(uuid4())
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.comments_by_id": [as_row(parent)]}
        )

        result = await comment_service.submit_comment(
            str(post.post_id), "oi", str(parent.comment_id), user
        )

        assert result.success is False
        assert result.error == ErrorKind.NOT_FOUND
        assert inserted_tables(mock_session) == []

    @pytest.mark.asyncio
    async def test_reply_to_removed_rejected(
        self, comment_service: CommentService, mock_session, mock_posts, route, user
    ):
        post = mock_posts.get_post.return_value
        parent = make_comment(post.post_id, status=CommentStatus.REMOVED)
        mock_session.aexecute.side_effect = route(
            {"SELECT * FROM test_ks.comments_by_id": [as_row(parent)]}
        )

        result = await comment_service.submit_comment(
            str(post.post_id), "oi", str(parent.comment_id), user
        )

        assert result.success is False
        assert result.error == ErrorKind.NOT_FOUND

    @pytest.mark.asyncio
    async def test_storage_failure_is_unknown(
        self, comment_service: CommentService, mock_session, mock_posts, user
    ):
        mock_session.aexecute.side_effect = RuntimeError("cassandra down")

        result = await comment_service.submit_comment(
            str(mock_posts.get_post.return_value.post_id), "oi", None, user
        )

        assert result.success is False
        assert result.error == ErrorKind.UNKNOWN


# ==============================================================================
# Tree
# ==============================================================================


class TestBuildCommentTree:
    """Tests for build_comment_tree."""

    def test_only_approved_visible(self):
        post_id = uuid4()
        approved = make_comment(post_id)
        pending = make_comment(post_id, status=CommentStatus.PENDING, minutes=1)
        removed = make_comment(post_id, status=CommentStatus.REMOVED, minutes=2)

        tree = build_comment_tree([approved, pending, removed], {})

        assert [n.comment_id for n in tree] == [approved.comment_id]

    def test_replies_nested_and_ordered(self):
        post_id = uuid4()
        root = make_comment(post_id)
        late = make_comment(post_id, parent_id=root.comment_id, minutes=5)
        early = make_comment(post_id, parent_id=root.comment_id, minutes=2)

        tree = build_comment_tree([late, root, early], {late.comment_id: 3})

        assert len(tree) == 1
        assert [r.comment_id for r in tree[0].replies] == [
            early.comment_id,
            late.comment_id,
        ]
        assert tree[0].replies[1].like_count == 3
        assert tree[0].replies[0].like_count == 0

    def test_removed_parent_becomes_tombstone(self):
        post_id = uuid4()
        parent = make_comment(
            post_id, status=CommentStatus.REMOVED, content="texto ofensivo"
        )
        reply = make_comment(post_id, parent_id=parent.comment_id, minutes=1)

        tree = build_comment_tree([parent, reply], {})

        assert len(tree) == 1
        tombstone = tree[0]
        assert tombstone.is_tombstone is True
        assert tombstone.content == REMOVED_PLACEHOLDER
        assert tombstone.author_id is None
        assert tombstone.author_name is None
        assert [r.comment_id for r in tombstone.replies] == [reply.comment_id]

    def test_pending_parent_becomes_unavailable_tombstone(self):
        post_id = uuid4()
        parent = make_comment(post_id, status=CommentStatus.PENDING)
        reply = make_comment(post_id, parent_id=parent.comment_id, minutes=1)

        tree = build_comment_tree([parent, reply], {})

        assert tree[0].content == UNAVAILABLE_PLACEHOLDER

    def test_hidden_leaf_without_visible_replies_is_dropped(self):
        post_id = uuid4()
        root = make_comment(post_id)
        hidden = make_comment(
            post_id,
            status=CommentStatus.REMOVED,
            parent_id=root.comment_id,
            minutes=1,
        )

        tree = build_comment_tree([root, hidden], {})

        assert tree[0].replies == []

    def test_orphan_reply_shown_at_root(self):
        post_id = uuid4()
        orphan = make_comment(post_id, parent_id=uuid4())

        tree = build_comment_tree([orphan], {})

        assert [n.comment_id for n in tree] == [orphan.comment_id]


class TestGetCommentTree:
    """Tests for get_comment_tree."""

    @pytest.mark.asyncio
    async def test_counts_fetched_for_approved_only(
        self, comment_service: CommentService, mock_session, mock_store, route
    ):
        post_id = uuid4()
        approved = make_comment(post_id)
        pending = make_comment(post_id, status=CommentStatus.PENDING, minutes=1)
        mock_session.aexecute.side_effect = route(
            {
                "SELECT * FROM test_ks.comments_by_post": [
                    as_row(approved),
                    as_row(pending),
                ]
            }
        )
        mock_store.get_counts.return_value = {approved.comment_id: 4}

        result = await comment_service.get_comment_tree(str(post_id))

        assert result.success is True
        assert result.total == 1
        assert result.items[0].like_count == 4
        mock_store.get_counts.assert_awaited_once_with(
            LikeTargetKind.COMMENT, [approved.comment_id]
        )

    @pytest.mark.asyncio
    async def test_no_approved_comments_skips_store(
        self, comment_service: CommentService, mock_store
    ):
        result = await comment_service.get_comment_tree(uuid4())

        assert result.success is True
        assert result.items == []
        mock_store.get_counts.assert_not_awaited()

    @pytest.mark.asyncio
    async def test_invalid_post_id(self, comment_service: CommentService):
        result = await comment_service.get_comment_tree("x")

        assert result.success is False
        assert result.error == ErrorKind.VALIDATION

    @pytest.mark.asyncio
    async def test_read_failure(self, comment_service: CommentService, mock_session):
        mock_session.aexecute.side_effect = RuntimeError("timeout")

        result = await comment_service.get_comment_tree(uuid4())

        assert result.success is False
        assert result.error == ErrorKind.UNKNOWN


class TestCountPublicComments:
    """Tests for count_public_comments."""

    @pytest.mark.asyncio
    async def test_counts_approved_rows(
        self, comment_service: CommentService, mock_session
    ):
        mock_session.aexecute.return_value = [
            SimpleNamespace(status="approved"),
            SimpleNamespace(status="pending"),
            SimpleNamespace(status="approved"),
            SimpleNamespace(status="removed"),
        ]

        assert await comment_service.count_public_comments(uuid4()) == 2
