"""Blog posts, view counting and the client-side view tracker."""

from .markers import JsonFileMarkerStore, MarkerStore, MemoryMarkerStore
from .service import PostNotFoundError, PostService
from .view_tracker import ViewTracker


__all__ = [
    "JsonFileMarkerStore",
    "MarkerStore",
    "MemoryMarkerStore",
    "PostNotFoundError",
    "PostService",
    "ViewTracker",
]
