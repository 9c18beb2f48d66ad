from __future__ import annotations

import threading
import time
from collections.abc import Callable, Iterable
from typing import Any

from flask import Flask, current_app


class TaggedCache:
    """
    Small in-process TTL cache. Entries carry tags so a write path can drop
    every entry derived from a table with one ``invalidate_tag`` call.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._lock = threading.Lock()
        self._entries: dict[str, tuple[float, Any, frozenset[str]]] = {}

    def get(self, key: str) -> tuple[bool, Any]:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return False, None
            expires_at, value, _tags = entry
            if self._clock() >= expires_at:
                del self._entries[key]
                return False, None
            return True, value

    def set(self, key: str, value: Any, *, ttl: float, tags: Iterable[str] = ()) -> None:
        with self._lock:
            self._entries[key] = (self._clock() + ttl, value, frozenset(tags))

    def get_or_set(self, key: str, loader: Callable[[], Any], *, ttl: float, tags: Iterable[str] = ()) -> Any:
        hit, value = self.get(key)
        if hit:
            return value
        value = loader()
        if ttl > 0:
            self.set(key, value, ttl=ttl, tags=tags)
        return value

    def invalidate_tag(self, tag: str) -> int:
        with self._lock:
            stale = [k for k, (_exp, _val, tags) in self._entries.items() if tag in tags]
            for k in stale:
                del self._entries[k]
            return len(stale)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)


def init_cache(app: Flask) -> None:
    app.extensions["dashflow_cache"] = TaggedCache()


def get_cache(app: Flask | None = None) -> TaggedCache:
    return (app or current_app).extensions["dashflow_cache"]


def invalidate_tag(tag: str) -> None:
    dropped = get_cache().invalidate_tag(tag)
    if dropped:
        current_app.logger.debug("Cache tag %s invalidated (%d entries)", tag, dropped)
