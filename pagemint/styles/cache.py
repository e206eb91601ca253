"""Process-wide cache of compiled utility CSS keyed by class-set fingerprint.

Concurrent renders share one :class:`StyleCache`. Reads and writes are
guarded by a lock, but compilation runs outside it: two renders racing on the
same fingerprint may both compile, and the later write simply replaces an
identical entry. Entries are evicted least-recently-used once ``capacity`` is
reached.

Examples
--------
>>> cache = StyleCache(capacity=2)
>>> key = fingerprint({"p-4", "flex"})
>>> cache.get(key) is None
True
>>> cache.put(key, ".p-4{padding:1rem}")
>>> cache.get(key)
'.p-4{padding:1rem}'
>>> cache.stats()
CacheStats(hits=1, misses=1, size=1, capacity=2)
"""

from __future__ import annotations

import collections
import collections.abc as cabc
import dataclasses as dc
import hashlib
import threading

DEFAULT_CACHE_CAPACITY = 128


@dc.dataclass(frozen=True, slots=True)
class CacheStats:
    """Snapshot of cache counters."""

    hits: int
    misses: int
    size: int
    capacity: int


def fingerprint(classes: cabc.Iterable[str], theme_css: str | None = None) -> str:
    """Return a stable digest for a class set and optional theme text."""
    digest = hashlib.sha256()
    for name in sorted(set(classes)):
        digest.update(name.encode("utf-8"))
        digest.update(b"\0")
    digest.update(b"\x1etheme\x1e")
    digest.update((theme_css or "").encode("utf-8"))
    return digest.hexdigest()


class StyleCache:
    """Bounded LRU mapping of fingerprints to compiled CSS."""

    def __init__(self, capacity: int = DEFAULT_CACHE_CAPACITY) -> None:
        if capacity < 1:
            msg = "Style cache capacity must be at least 1."
            raise ValueError(msg)
        self.capacity = capacity
        self._entries: collections.OrderedDict[str, str] = collections.OrderedDict()
        self._lock = threading.Lock()
        self._hits = 0
        self._misses = 0

    def get(self, key: str) -> str | None:
        """Return the cached CSS for ``key`` and mark it recently used."""
        with self._lock:
            css = self._entries.get(key)
            if css is None:
                self._misses += 1
                return None
            self._entries.move_to_end(key)
            self._hits += 1
            return css

    def put(self, key: str, css: str) -> None:
        """Store ``css`` under ``key``, evicting the oldest entries if full."""
        with self._lock:
            self._entries[key] = css
            self._entries.move_to_end(key)
            while len(self._entries) > self.capacity:
                self._entries.popitem(last=False)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def clear(self) -> None:
        """Drop every entry and reset the counters."""
        with self._lock:
            self._entries.clear()
            self._hits = 0
            self._misses = 0

    def stats(self) -> CacheStats:
        with self._lock:
            return CacheStats(
                hits=self._hits,
                misses=self._misses,
                size=len(self._entries),
                capacity=self.capacity,
            )


_shared_cache: StyleCache | None = None
_shared_lock = threading.Lock()


def configure_style_cache(capacity: int = DEFAULT_CACHE_CAPACITY) -> StyleCache:
    """Initialise (or replace) the process-wide style cache."""
    global _shared_cache  # noqa: PLW0603
    with _shared_lock:
        _shared_cache = StyleCache(capacity)
        return _shared_cache


def get_style_cache() -> StyleCache:
    """Return the process-wide style cache, creating it on first use."""
    global _shared_cache  # noqa: PLW0603
    with _shared_lock:
        if _shared_cache is None:
            _shared_cache = StyleCache()
        return _shared_cache


__all__ = [
    "DEFAULT_CACHE_CAPACITY",
    "CacheStats",
    "StyleCache",
    "configure_style_cache",
    "fingerprint",
    "get_style_cache",
]
