"""Time-boxed in-memory cache used by the aggregation layer and the remote client."""
import logging
import time
from collections.abc import Callable, Hashable
from dataclasses import dataclass
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

K = TypeVar("K", bound=Hashable)
V = TypeVar("V")


@dataclass
class CacheEntry(Generic[V]):
    """A cached payload and the clock reading at which it was stored."""

    value: V
    timestamp: float


class TTLCache(Generic[K, V]):
    """
    Process-local cache where an entry is valid only while ``now - timestamp < ttl``.

    Expired entries are kept until overwritten so callers can fall back to the last
    good value when a refresh fails (see ``get_stale``). ``clear`` drops everything and
    bumps ``generation``; a ``set`` carrying an older generation is ignored, which keeps
    a fetch that started before an invalidation from repopulating the cache with data
    read before the write.
    """

    def __init__(
        self,
        ttl_seconds: float,
        name: str = "cache",
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl_seconds = ttl_seconds
        self.name = name
        self._clock = clock
        self._entries: dict[K, CacheEntry[V]] = {}
        self.generation = 0

    def get(self, key: K) -> V | None:
        """Return the cached value if present and fresh, else None."""
        entry = self._entries.get(key)
        if entry is None:
            logger.debug("cache_miss cache=%s key=%s", self.name, key)
            return None
        if self._clock() - entry.timestamp >= self.ttl_seconds:
            logger.debug("cache_expired cache=%s key=%s", self.name, key)
            return None
        logger.debug("cache_hit cache=%s key=%s", self.name, key)
        return entry.value

    def get_stale(self, key: K) -> V | None:
        """Return the last stored value regardless of age."""
        entry = self._entries.get(key)
        return entry.value if entry is not None else None

    def set(self, key: K, value: V, generation: int | None = None) -> bool:
        """
        Store a value stamped with the current clock reading.

        Args:
            key: Cache key.
            value: Payload to store.
            generation: The ``generation`` observed when the value started being
                computed. If the cache was cleared since, the value is discarded.

        Returns:
            True if stored, False if discarded as stale.
        """
        if generation is not None and generation != self.generation:
            logger.debug("cache_set_discarded cache=%s key=%s", self.name, key)
            return False
        self._entries[key] = CacheEntry(value=value, timestamp=self._clock())
        return True

    def delete(self, key: K) -> None:
        """Remove a single key if present."""
        self._entries.pop(key, None)

    def purge_expired(self) -> list[K]:
        """Drop expired entries (giving up their stale values). Returns the removed keys."""
        now = self._clock()
        expired = [
            key
            for key, entry in self._entries.items()
            if now - entry.timestamp >= self.ttl_seconds
        ]
        for key in expired:
            del self._entries[key]
        if expired:
            logger.debug("cache_purged cache=%s removed=%s", self.name, len(expired))
        return expired

    def clear(self) -> None:
        """Drop every entry and invalidate in-flight fetches."""
        self._entries.clear()
        self.generation += 1

    def keys(self) -> list[K]:
        """Keys currently stored, fresh or not."""
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)
