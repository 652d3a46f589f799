"""Thread-safe TTL cache for provider responses and analysis results.

Three shared instances are used:
- article listings from the help center (1 hour)
- analysis results keyed by release notes + corpus identity (1 hour)
- embeddings keyed by input text (24 hours)

The shared instances read their TTL from settings on every lookup.
"""

import hashlib
import threading
from collections import OrderedDict
from collections.abc import Awaitable, Callable, Iterable
from time import monotonic
from typing import Any

from app.core.config import get_settings

_MISSING = object()


class TTLCache:
    """Dictionary cache whose entries expire after a number of seconds.

    ttl_seconds is either a number or a zero-argument callable returning one.
    Entries are kept in write order, so the first entry is always the oldest.
    """

    def __init__(self, ttl_seconds: float | Callable[[], float], max_entries: int = 1024):
        self._ttl = ttl_seconds
        self.max_entries = max_entries
        self._lock = threading.Lock()
        self._entries: OrderedDict[str, tuple[Any, float]] = OrderedDict()

    @property
    def ttl_seconds(self) -> float:
        return self._ttl() if callable(self._ttl) else self._ttl

    def get(self, key: str, default: Any = None) -> Any:
        ttl = self.ttl_seconds
        now = monotonic()
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return default
            value, ts = entry
            if now - ts >= ttl:
                del self._entries[key]
                return default
            return value

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            if key in self._entries:
                self._entries.move_to_end(key)
            elif len(self._entries) >= self.max_entries:
                self._entries.popitem(last=False)
            self._entries[key] = (value, monotonic())

    def get_or_compute(self, key: str, compute_fn: Callable[[], Any]) -> Any:
        """Get from cache or compute and cache the result."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        # Compute outside the lock to avoid blocking
        result = compute_fn()
        self.set(key, result)
        return result

    async def get_or_compute_async(
        self, key: str, compute_fn: Callable[[], Awaitable[Any]]
    ) -> Any:
        """Async variant of get_or_compute for coroutine producers."""
        value = self.get(key, _MISSING)
        if value is not _MISSING:
            return value

        result = await compute_fn()
        self.set(key, result)
        return result

    def invalidate(self, prefix: str = "") -> None:
        """Drop every entry whose key starts with prefix (all entries by default)."""
        with self._lock:
            for k in [k for k in self._entries if k.startswith(prefix)]:
                del self._entries[k]

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def make_cache_key(namespace: str, *parts: str | Iterable[str]) -> str:
    """Build a stable cache key from a namespace and hashed text parts."""
    digest = hashlib.sha256()
    for part in parts:
        if isinstance(part, str):
            digest.update(part.encode("utf-8"))
        else:
            for item in part:
                digest.update(item.encode("utf-8"))
                digest.update(b"\x1f")
        digest.update(b"\x1e")
    return f"{namespace}:{digest.hexdigest()}"


article_cache = TTLCache(lambda: get_settings().ARTICLE_CACHE_TTL_SECONDS, max_entries=64)
analysis_cache = TTLCache(lambda: get_settings().ANALYSIS_CACHE_TTL_SECONDS, max_entries=256)
embedding_cache = TTLCache(
    lambda: get_settings().EMBEDDING_CACHE_TTL_SECONDS, max_entries=20_000
)


def clear_all_caches() -> None:
    """Empty every shared cache."""
    for cache in (article_cache, analysis_cache, embedding_cache):
        cache.invalidate()
