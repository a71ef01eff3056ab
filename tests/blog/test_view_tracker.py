"""Tests for the client-side view tracker."""

import json
from datetime import timedelta
from uuid import uuid4

import httpx
import pytest

from src.blog.markers import JsonFileMarkerStore, MemoryMarkerStore, marker_key
from src.blog.view_tracker import INCREMENT_VIEW_PATH, ViewTracker


HOUR_MS = 60 * 60 * 1000


class FakeClock:
    def __init__(self, now: int = 1_700_000_000_000):
        self.now = now

    def __call__(self) -> int:
        return self.now

    def advance(self, ms: int) -> None:
        self.now += ms


@pytest.fixture
def requests_seen() -> list[httpx.Request]:
    return []


@pytest.fixture
def status_code() -> dict[str, int]:
    return {"value": 200}


@pytest.fixture
def http_client(requests_seen, status_code):
    def handler(request: httpx.Request) -> httpx.Response:
        requests_seen.append(request)
        return httpx.Response(status_code["value"], json={"success": True})

    return httpx.AsyncClient(
        base_url="http://blog.test", transport=httpx.MockTransport(handler)
    )


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def markers() -> MemoryMarkerStore:
    return MemoryMarkerStore()


@pytest.fixture
def tracker(http_client, markers, clock) -> ViewTracker:
    return ViewTracker(
        base_url="http://blog.test",
        markers=markers,
        window=timedelta(hours=8),
        client=http_client,
        clock=clock,
    )


class TestTrack:
    """Tests for track."""

    @pytest.mark.asyncio
    async def test_first_view_sends_request(self, tracker, requests_seen, markers, clock):
        post_id = uuid4()

        assert tracker.track(post_id, "sono-do-bebe") is True
        await tracker.drain()

        assert len(requests_seen) == 1
        request = requests_seen[0]
        assert request.method == "POST"
        assert request.url.path == INCREMENT_VIEW_PATH
        assert json.loads(request.content) == {
            "postId": str(post_id),
            "slug": "sono-do-bebe",
        }
        assert markers.get(marker_key("sono-do-bebe")) == clock.now

    @pytest.mark.asyncio
    async def test_second_view_inside_window_is_local(
        self, tracker, requests_seen, clock
    ):
        post_id = uuid4()
        tracker.track(post_id, "sono-do-bebe")
        clock.advance(7 * HOUR_MS)

        assert tracker.track(post_id, "sono-do-bebe") is False
        await tracker.drain()

        assert len(requests_seen) == 1

    @pytest.mark.asyncio
    async def test_view_after_window_counts_again(
        self, tracker, requests_seen, clock
    ):
        post_id = uuid4()
        tracker.track(post_id, "sono-do-bebe")
        clock.advance(8 * HOUR_MS + 1)

        assert tracker.track(post_id, "sono-do-bebe") is True
        await tracker.drain()

        assert len(requests_seen) == 2

    @pytest.mark.asyncio
    async def test_forced_expiry_counts_again(
        self, tracker, requests_seen, markers, clock
    ):
        post_id = uuid4()
        tracker.track(post_id, "sono-do-bebe")
        markers.set(marker_key("sono-do-bebe"), clock.now - 9 * HOUR_MS)

        assert tracker.track(post_id, "sono-do-bebe") is True
        await tracker.drain()

        assert len(requests_seen) == 2

    @pytest.mark.asyncio
    async def test_posts_tracked_independently(self, tracker, requests_seen):
        tracker.track(uuid4(), "um")
        tracker.track(uuid4(), "dois")
        await tracker.drain()

        assert len(requests_seen) == 2

    @pytest.mark.asyncio
    async def test_failed_request_keeps_marker(
        self, tracker, requests_seen, markers, status_code
    ):
        status_code["value"] = 500
        post_id = uuid4()

        tracker.track(post_id, "sono-do-bebe")
        await tracker.drain()

        assert markers.get(marker_key("sono-do-bebe")) is not None
        assert tracker.track(post_id, "sono-do-bebe") is False
        assert len(requests_seen) == 1

    @pytest.mark.asyncio
    async def test_network_error_is_swallowed(self, markers, clock):
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("offline", request=request)

        client = httpx.AsyncClient(
            base_url="http://blog.test", transport=httpx.MockTransport(handler)
        )
        async with ViewTracker(
            "http://blog.test", markers, client=client, clock=clock
        ) as tracker:
            assert tracker.track(uuid4(), "offline") is True

        assert markers.get(marker_key("offline")) == clock.now
        await client.aclose()

    @pytest.mark.asyncio
    async def test_unexpected_transport_error_is_swallowed(self, markers, clock):
        def handler(request: httpx.Request) -> httpx.Response:
            raise RuntimeError("boom")

        client = httpx.AsyncClient(
            base_url="http://blog.test", transport=httpx.MockTransport(handler)
        )
        tracker = ViewTracker("http://blog.test", markers, client=client, clock=clock)

        assert tracker.track(uuid4(), "quebrado") is True
        await tracker.drain()
        await tracker.close()

        assert markers.get(marker_key("quebrado")) == clock.now
        assert tracker.track(uuid4(), "quebrado") is False
        await client.aclose()


class TestPurgeExpired:
    """Tests for purge_expired."""

    @pytest.mark.asyncio
    async def test_drops_only_stale_view_markers(self, tracker, markers, clock):
        markers.set(marker_key("velho"), clock.now - 9 * HOUR_MS)
        markers.set(marker_key("recente"), clock.now - HOUR_MS)
        markers.set("outra-chave", 1)

        removed = tracker.purge_expired()

        assert removed == 1
        assert set(markers.keys()) == {marker_key("recente"), "outra-chave"}

    @pytest.mark.asyncio
    async def test_track_purges_other_posts(self, tracker, markers, clock):
        markers.set(marker_key("velho"), clock.now - 9 * HOUR_MS)

        tracker.track(uuid4(), "novo")
        await tracker.drain()

        assert marker_key("velho") not in markers.keys()
        assert marker_key("novo") in markers.keys()


class TestJsonFileMarkerStore:
    """Tests for the file-backed marker store."""

    def test_survives_reopen(self, tmp_path):
        path = tmp_path / "markers.json"
        JsonFileMarkerStore(path).set(marker_key("a"), 123)

        reopened = JsonFileMarkerStore(path)

        assert reopened.get(marker_key("a")) == 123
        assert reopened.keys() == [marker_key("a")]

    def test_remove(self, tmp_path):
        store = JsonFileMarkerStore(tmp_path / "markers.json")
        store.set(marker_key("a"), 1)

        store.remove(marker_key("a"))
        store.remove(marker_key("nunca"))

        assert store.get(marker_key("a")) is None

    def test_missing_file_is_empty(self, tmp_path):
        assert JsonFileMarkerStore(tmp_path / "nope.json").keys() == []

    def test_corrupt_file_is_empty(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text("{broken", encoding="utf-8")

        store = JsonFileMarkerStore(path)

        assert store.keys() == []
        store.set(marker_key("a"), 5)
        assert store.get(marker_key("a")) == 5

    def test_non_integer_value_reads_missing(self, tmp_path):
        path = tmp_path / "markers.json"
        path.write_text(json.dumps({marker_key("a"): "ontem"}), encoding="utf-8")

        assert JsonFileMarkerStore(path).get(marker_key("a")) is None
