"""Response cache for public read endpoints, revalidated by path or tag."""
import logging
from collections.abc import Callable
from typing import Any

from core.ttl_cache import TTLCache

logger = logging.getLogger(__name__)

# Tags attached to cached responses; revalidation can target any of them
TAG_POSTS = "blog-posts"
TAG_TAGS = "blog-tags"
TAG_CATEGORIES = "blog-categories"
ALL_TAGS = (TAG_POSTS, TAG_TAGS, TAG_CATEGORIES)

DEFAULT_MAX_ENTRIES = 1000


class PageCache:
    """
    Rendered JSON payloads keyed by request path (including query string).

    Each entry carries a set of tags. ``revalidate_path`` drops every entry whose
    path (ignoring the query string) matches, ``revalidate_tag`` drops every entry
    labelled with the tag.

    Every invalidation bumps ``generation``. Callers read it before building a
    payload and pass it back to ``set``, so a build that overlapped an invalidation
    is discarded instead of stored. Expired entries are purged on write and the
    number of entries is capped at ``max_entries`` (oldest evicted first).
    """

    def __init__(
        self,
        ttl_seconds: float,
        clock: Callable[[], float] | None = None,
        max_entries: int = DEFAULT_MAX_ENTRIES,
    ) -> None:
        kwargs = {"clock": clock} if clock is not None else {}
        self._cache: TTLCache[str, Any] = TTLCache(ttl_seconds, name="page", **kwargs)
        self._tags: dict[str, set[str]] = {}
        self.max_entries = max_entries
        self.generation = 0

    def get(self, key: str) -> Any | None:
        """Return a fresh cached payload for the request key."""
        return self._cache.get(key)

    def set(
        self,
        key: str,
        payload: Any,
        tags: tuple[str, ...] = (),
        generation: int | None = None,
    ) -> bool:
        """
        Store a payload under the request key with revalidation tags.

        Args:
            key: Request key (path plus the query parameters the route uses).
            payload: JSON-ready response body.
            tags: Revalidation tags for the entry.
            generation: ``generation`` read before the payload was built. If the
                cache has been invalidated since, the payload is discarded.

        Returns:
            True if stored, False if discarded as stale.
        """
        if generation is not None and generation != self.generation:
            logger.debug("page_cache_set_discarded key=%s", key)
            return False
        for expired in self._cache.purge_expired():
            self._tags.pop(expired, None)
        if key not in self._tags:
            while len(self._cache) >= self.max_entries:
                self._drop(self._cache.keys()[0])
        self._cache.set(key, payload)
        self._tags[key] = set(tags)
        return True

    def revalidate_path(self, path: str) -> int:
        """Drop entries for a path. Returns the number of entries removed."""
        self.generation += 1
        path = path.rstrip("/") or "/"
        removed = 0
        for key in self._cache.keys():
            if (key.split("?", 1)[0].rstrip("/") or "/") == path:
                self._drop(key)
                removed += 1
        logger.info("page_cache_revalidate path=%s removed=%s", path, removed)
        return removed

    def revalidate_tag(self, tag: str) -> int:
        """Drop entries labelled with a tag. Returns the number of entries removed."""
        self.generation += 1
        keys = [key for key, tags in self._tags.items() if tag in tags]
        for key in keys:
            self._drop(key)
        logger.info("page_cache_revalidate tag=%s removed=%s", tag, len(keys))
        return len(keys)

    def clear(self) -> None:
        """Drop every cached response."""
        self.generation += 1
        self._cache.clear()
        self._tags.clear()

    def _drop(self, key: str) -> None:
        self._cache.delete(key)
        self._tags.pop(key, None)

    def __len__(self) -> int:
        return len(self._cache)
