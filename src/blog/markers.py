"""Client-local view markers.

A marker maps ``post-view-{slug}`` to the epoch-millisecond time the post
was last counted for this viewer. Stores only need string keys and integer
values, like the browser's local storage.
"""

import json
from pathlib import Path
from typing import Protocol

import structlog


logger = structlog.get_logger(__name__)

MARKER_PREFIX = "post-view-"


def marker_key(slug: str) -> str:
    """Storage key of a post's view marker."""
    return f"{MARKER_PREFIX}{slug}"


class MarkerStore(Protocol):
    """Key/value storage for view markers."""

    def get(self, key: str) -> int | None: ...

    def set(self, key: str, value: int) -> None: ...

    def remove(self, key: str) -> None: ...

    def keys(self) -> list[str]: ...


class MemoryMarkerStore:
    """Markers held in process memory."""

    def __init__(self, initial: dict[str, int] | None = None):
        self._data: dict[str, int] = dict(initial or {})

    def get(self, key: str) -> int | None:
        return self._data.get(key)

    def set(self, key: str, value: int) -> None:
        self._data[key] = value

    def remove(self, key: str) -> None:
        self._data.pop(key, None)

    def keys(self) -> list[str]:
        return list(self._data)


class JsonFileMarkerStore:
    """Markers persisted to a JSON file, surviving restarts.

    Unreadable or corrupt files are treated as empty; a value that is not
    an integer reads as missing.
    """

    def __init__(self, path: str | Path):
        self.path = Path(path)

    def _load(self) -> dict[str, object]:
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return {}
        except (OSError, ValueError) as e:
            logger.warning("view_markers_unreadable", path=str(self.path), error=str(e))
            return {}
        return data if isinstance(data, dict) else {}

    def _save(self, data: dict[str, object]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(data), encoding="utf-8")

    def get(self, key: str) -> int | None:
        value = self._load().get(key)
        try:
            return int(value)  # type: ignore[arg-type]
        except (TypeError, ValueError):
            return None

    def set(self, key: str, value: int) -> None:
        data = self._load()
        data[key] = value
        self._save(data)

    def remove(self, key: str) -> None:
        data = self._load()
        if data.pop(key, None) is not None:
            self._save(data)

    def keys(self) -> list[str]:
        return list(self._load())
