"""
Recently Viewed Clients — bounded recency cache.

Maps client id -> epoch millis of the last time the client was opened,
keeping only the most recent entries (50 by default). Repeated opens of
the same client refresh its timestamp and do not use extra capacity.

Persisted as JSON `{"<clientId>": <epochMillis>, ...}`, newest first.
Reads fail soft: unreadable or malformed storage is an empty history.
Writers in other processes are last-write-wins; no merge is attempted.
"""

import json
import logging
import os
import threading
import time
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any, Protocol

from wealth_rm import config, paths

from .models import client_key

logger = logging.getLogger(__name__)


def now_millis() -> int:
    return int(time.time() * 1000)


class RecencyStorage(Protocol):
    """Where the serialized recency map lives."""

    def read(self) -> str | None: ...

    def write(self, payload: str) -> None: ...


class JsonFileStorage:
    """Single JSON file, replaced atomically on every write."""

    def __init__(self, path: Path):
        self.path = Path(path)

    def read(self) -> str | None:
        if not self.path.exists():
            return None
        return self.path.read_text(encoding="utf-8")

    def write(self, payload: str) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_name(f".{self.path.name}.{uuid.uuid4().hex[:8]}.tmp")
        try:
            tmp_path.write_text(payload, encoding="utf-8")
            os.replace(tmp_path, self.path)
        finally:
            tmp_path.unlink(missing_ok=True)


class MemoryStorage:
    """In-process storage, for tests and embedding."""

    def __init__(self, payload: str | None = None):
        self.payload = payload

    def read(self) -> str | None:
        return self.payload

    def write(self, payload: str) -> None:
        self.payload = payload


def decode_recency(payload: str | None) -> dict[str, int]:
    """
    Decode a stored recency map, preserving stored order.

    Anything but a JSON object is an empty map; entries whose timestamp is
    not a number are dropped.
    """
    if not payload:
        return {}
    try:
        data = json.loads(payload)
    except (TypeError, ValueError) as e:
        logger.warning("Recency store holds malformed JSON, ignoring it: %s", e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Recency store holds %s instead of an object, ignoring it", type(data).__name__)
        return {}

    entries: dict[str, int] = {}
    for key, value in data.items():
        if isinstance(value, bool) or not isinstance(value, int | float):
            continue
        entries[str(key)] = int(value)
    return entries


def prune(entries: dict[str, int], capacity: int) -> dict[str, int]:
    """
    Keep the `capacity` entries with the latest timestamps, newest first.

    Equal timestamps keep their incoming order, so callers list the most
    recent touch first.
    """
    ordered = sorted(entries.items(), key=lambda kv: -kv[1])
    return dict(ordered[: max(0, capacity)])


class RecencyStore:
    """Bounded, persisted "recently viewed" map."""

    def __init__(
        self,
        storage: RecencyStorage | None = None,
        capacity: int = config.RECENT_CAPACITY,
        clock: Callable[[], int] = now_millis,
    ) -> None:
        self.storage = storage if storage is not None else MemoryStorage()
        self.capacity = capacity
        self.clock = clock
        self._lock = threading.Lock()

    def snapshot(self) -> dict[str, int]:
        """Current id -> accessed-at map. Never raises."""
        try:
            payload = self.storage.read()
        except (OSError, UnicodeDecodeError) as e:
            logger.warning("Recency store unreadable, treating as empty: %s", e)
            return {}
        return decode_recency(payload)

    def touch(self, client_id: Any, now_ms: int | None = None) -> dict[str, int]:
        """
        Record `client_id` as opened now and evict beyond capacity.

        Returns the map as written. A failed write is logged and the
        in-memory result is still returned.
        """
        key = client_key(client_id)
        stamp = self.clock() if now_ms is None else int(now_ms)

        with self._lock:
            current = self.snapshot()
            updated = {key: stamp}
            updated.update((k, v) for k, v in current.items() if k != key)
            pruned = prune(updated, self.capacity)
            try:
                self.storage.write(json.dumps(pruned))
            except OSError as e:
                logger.warning("Could not persist recently viewed clients: %s", e)

        evicted = len(updated) - len(pruned)
        if evicted:
            logger.debug("Recency store evicted %d entries", evicted)
        return pruned

    def clear(self) -> None:
        with self._lock:
            try:
                self.storage.write(json.dumps({}))
            except OSError as e:
                logger.warning("Could not clear recently viewed clients: %s", e)

    def __len__(self) -> int:
        return len(self.snapshot())

    def __contains__(self, client_id: Any) -> bool:
        return client_key(client_id) in self.snapshot()


_default_store: RecencyStore | None = None


def get_default_store() -> RecencyStore:
    """Process-wide store backed by the JSON file under the app home."""
    global _default_store
    if _default_store is None:
        _default_store = RecencyStore(JsonFileStorage(paths.recency_path()))
    return _default_store


def reset_default_store() -> None:
    """Drop the cached default store (paths are re-resolved on next use)."""
    global _default_store
    _default_store = None


def touch_recent(client_id: Any) -> dict[str, int]:
    """Record that a client detail view was opened."""
    return get_default_store().touch(client_id)
