"""Process-wide memoizing cache with expiry classes and invalidation tags."""

import threading
import time
from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from typing import Any, TypeVar

from loguru import logger

from storefront_catalog.config import CACHE_LIFE, DEFAULT_CACHE_LIFE

T = TypeVar("T")

# Fetches of keys hashing to the same stripe serialize; the lock count stays fixed.
FETCH_LOCK_STRIPES = 64

# Minimum seconds between sweeps of expired entries.
SWEEP_INTERVAL = 60.0


@dataclass
class _Entry:
    value: Any
    expires_at: float
    tags: set[str] = field(default_factory=set)


class TaggedCache:
    """Memoize fetches by key; evict entries by tag or on expiry.

    Keys must be derived only from what is being fetched (an id, a slug, a
    compiled search input), never from the request that asked for it, so
    concurrent callers for the same thing share one entry.
    """

    def __init__(self, *, clock: Callable[[], float] = time.monotonic) -> None:
        self._clock = clock
        self._entries: dict[str, _Entry] = {}
        self._keys_by_tag: dict[str, set[str]] = {}
        self._lock = threading.RLock()
        self._fetch_locks = tuple(threading.RLock() for _ in range(FETCH_LOCK_STRIPES))
        self._next_sweep = clock() + SWEEP_INTERVAL

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def get(self, key: str) -> Any | None:
        """Return the live value for ``key``, or None if missing or expired."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            if entry.expires_at <= self._clock():
                self._drop(key)
                return None
            return entry.value

    def set(
        self,
        key: str,
        value: Any,
        *,
        life: str = DEFAULT_CACHE_LIFE,
        tags: Iterable[str] = (),
    ) -> None:
        if life not in CACHE_LIFE:
            msg = f"Unknown cache life {life!r}, expected one of {sorted(CACHE_LIFE)!r}"
            raise ValueError(msg)
        with self._lock:
            self._sweep_expired()
            self._drop(key)
            self._entries[key] = _Entry(value=value, expires_at=self._clock() + CACHE_LIFE[life])
            self.add_tags(key, tags)

    def add_tags(self, key: str, tags: Iterable[str]) -> None:
        """Attach more invalidation tags to an existing entry."""
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return
            for tag in tags:
                entry.tags.add(tag)
                self._keys_by_tag.setdefault(tag, set()).add(key)

    def get_or_fetch(
        self,
        key: str,
        fetch: Callable[[], T],
        *,
        life: str = DEFAULT_CACHE_LIFE,
        tags: Iterable[str] = (),
        cache_none: bool = False,
    ) -> T:
        """Return the cached value for ``key``, calling ``fetch`` on a miss.

        Exceptions from ``fetch`` propagate and nothing is stored. A ``None``
        result is only stored when ``cache_none`` is set.
        """
        with self._key_lock(key):
            cached = self.get(key)
            if cached is not None:
                logger.debug("Cache hit: {}", key)
                return cached  # type: ignore[no-any-return]

            logger.debug("Cache miss: {}", key)
            value = fetch()
            if value is not None or cache_none:
                self.set(key, value, life=life, tags=tags)
            return value

    def _key_lock(self, key: str) -> threading.RLock:
        # Concurrent fetches of one key wait for the first. Unrelated keys
        # only contend when they share a stripe.
        return self._fetch_locks[hash(key) % FETCH_LOCK_STRIPES]

    def invalidate_tag(self, tag: str) -> int:
        """Evict every entry carrying ``tag``. Returns the number evicted."""
        with self._lock:
            keys = self._keys_by_tag.pop(tag, set())
            for key in keys:
                self._drop(key)
        if keys:
            logger.info("Invalidated {} cache entries for tag {!r}", len(keys), tag)
        return len(keys)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()
            self._keys_by_tag.clear()

    def _sweep_expired(self) -> None:
        now = self._clock()
        if now < self._next_sweep:
            return
        self._next_sweep = now + SWEEP_INTERVAL
        expired = [key for key, entry in self._entries.items() if entry.expires_at <= now]
        for key in expired:
            self._drop(key)
        if expired:
            logger.debug("Swept {} expired cache entries", len(expired))

    def _drop(self, key: str) -> None:
        entry = self._entries.pop(key, None)
        if entry is None:
            return
        for tag in entry.tags:
            keys = self._keys_by_tag.get(tag)
            if keys is not None:
                keys.discard(key)
                if not keys:
                    del self._keys_by_tag[tag]
