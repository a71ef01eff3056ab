"""Client-side view tracker.

Counts a post view at most once per viewer per window (8 hours by default).
Deduplication lives in the viewer's marker store, so the count is
approximate: clearing the markers over-counts, a failed request
under-counts.

Usage:
    async with ViewTracker.from_settings(MemoryMarkerStore()) as tracker:
        tracker.track(post_id, slug)
"""

import asyncio
import time
from collections.abc import Callable
from datetime import timedelta
from uuid import UUID

import httpx
import structlog

from src.config import Settings, get_settings

from .markers import MARKER_PREFIX, MarkerStore, marker_key


logger = structlog.get_logger(__name__)

INCREMENT_VIEW_PATH = "/api/blog/increment-view"


def _now_ms() -> int:
    return int(time.time() * 1000)


class ViewTracker:
    """Fire-and-forget view counter with local deduplication."""

    def __init__(
        self,
        base_url: str,
        markers: MarkerStore,
        window: timedelta = timedelta(hours=8),
        timeout: float = 5.0,
        client: httpx.AsyncClient | None = None,
        clock: Callable[[], int] = _now_ms,
    ):
        self.markers = markers
        self.window_ms = int(window.total_seconds() * 1000)
        self.clock = clock
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self._pending: set[asyncio.Task] = set()

    @classmethod
    def from_settings(
        cls, markers: MarkerStore, settings: Settings | None = None
    ) -> "ViewTracker":
        settings = settings or get_settings()
        return cls(
            base_url=settings.view_tracker_base_url,
            markers=markers,
            window=timedelta(hours=settings.view_dedup_hours),
            timeout=settings.view_tracker_timeout_seconds,
        )

    async def __aenter__(self) -> "ViewTracker":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.close()

    def track(self, post_id: UUID | str, slug: str) -> bool:
        """Record that the post was displayed.

        Sends one increment request when there is no fresh marker for the
        slug. The marker is written before the request completes and is kept
        even if the request fails. Must be called from a running event loop.

        Returns:
            True when an increment request was sent
        """
        now = self.clock()
        key = marker_key(slug)
        last_viewed = self.markers.get(key)

        sent = False
        if last_viewed is None or last_viewed < now - self.window_ms:
            self.markers.set(key, now)
            task = asyncio.create_task(self._send(str(post_id), slug))
            self._pending.add(task)
            task.add_done_callback(self._pending.discard)
            sent = True

        self.purge_expired(now)
        return sent

    def purge_expired(self, now: int | None = None) -> int:
        """Drop markers older than the window; returns how many were dropped."""
        cutoff = (now if now is not None else self.clock()) - self.window_ms
        removed = 0
        for key in self.markers.keys():
            if not key.startswith(MARKER_PREFIX):
                continue
            timestamp = self.markers.get(key)
            if timestamp is None or timestamp < cutoff:
                self.markers.remove(key)
                removed += 1
        return removed

    async def _send(self, post_id: str, slug: str) -> None:
        try:
            response = await self._client.post(
                INCREMENT_VIEW_PATH, json={"postId": post_id, "slug": slug}
            )
        except httpx.HTTPError as e:
            logger.warning("view_increment_request_failed", slug=slug, error=str(e))
            return
        except Exception as e:
            logger.exception("view_increment_failed", slug=slug, error=str(e))
            return

        if not response.is_success:
            logger.warning(
                "view_increment_rejected",
                slug=slug,
                status_code=response.status_code,
                body=response.text,
            )

    async def drain(self) -> None:
        """Wait for every in-flight increment request."""
        if self._pending:
            await asyncio.gather(*self._pending)

    async def close(self) -> None:
        """Drain pending requests and close the HTTP client if owned."""
        await self.drain()
        if self._owns_client:
            await self._client.aclose()
