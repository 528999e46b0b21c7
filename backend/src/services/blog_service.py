"""
Unified read facade over local files and remote collections.

Holds three independent time-boxed caches (timeline, tags, categories). Any write
to remote articles and any authenticated revalidation request must call
``invalidate`` so the next read goes back to the sources.
"""
import logging
from collections.abc import Awaitable, Callable

from core.ttl_cache import TTLCache
from schemas.post import CategoryCount, Post, PostMeta, TagCount
from services import post_views
from services.local_content import LocalContentSource
from services.remote_store import RemoteArticleStore

logger = logging.getLogger(__name__)

# Single-entry caches use a fixed key
_ALL = "all"


class BlogService:
    """
    Merges local and remote posts into one newest-first timeline.

    Remote posts are included only when ``remote_enabled`` is true AND the remote
    store is configured. Remote failures are logged and degrade to local-only
    results; nothing from the remote side raises to callers.
    """

    def __init__(
        self,
        local: LocalContentSource,
        remote: RemoteArticleStore,
        remote_enabled: bool,
        cache_ttl_seconds: float = 60,
        clock: Callable[[], float] | None = None,
    ) -> None:
        self.local = local
        self.remote = remote
        self._remote_enabled = remote_enabled
        kwargs = {"clock": clock} if clock is not None else {}
        self._posts: TTLCache[str, list[PostMeta]] = TTLCache(
            cache_ttl_seconds, name="posts", **kwargs,
        )
        self._tags: TTLCache[str, list[TagCount]] = TTLCache(
            cache_ttl_seconds, name="tags", **kwargs,
        )
        self._categories: TTLCache[str, list[CategoryCount]] = TTLCache(
            cache_ttl_seconds, name="categories", **kwargs,
        )

    @property
    def remote_enabled(self) -> bool:
        """Feature flag and credentials both present."""
        return self._remote_enabled and self.remote.is_configured()

    def invalidate(self) -> None:
        """Clear all three caches."""
        self._posts.clear()
        self._tags.clear()
        self._categories.clear()
        logger.info("Unified blog cache invalidated")

    async def list_all(self) -> list[PostMeta]:
        """Every published post from both sources, newest first (cached)."""
        cached = self._posts.get(_ALL)
        if cached is not None:
            return cached
        generation = self._posts.generation
        local_posts = self.local.list_all()
        remote_posts: list[PostMeta] = []
        if self.remote_enabled:
            try:
                remote_posts = await self.remote.list_all_published_across_users()
            except Exception:
                logger.exception("Error fetching remote posts, using local only")
        posts = post_views.sort_newest_first([*local_posts, *remote_posts])
        self._posts.set(_ALL, posts, generation=generation)
        return posts

    async def page(self, offset: int, limit: int) -> tuple[list[PostMeta], int]:
        """A slice of the timeline and the total number of posts."""
        posts = await self.list_all()
        return posts[offset:offset + limit], len(posts)

    async def get_by_slug(self, slug: str) -> Post | None:
        """Local file first; remote only on a local miss. Remote errors read as not found."""
        post = self.local.get_by_slug(slug)
        if post is not None:
            return post
        if not self.remote_enabled:
            return None
        try:
            return await self.remote.get_by_slug(slug)
        except Exception:
            logger.exception("Error fetching remote post slug=%s", slug)
            return None

    async def _merge(
        self,
        local_posts: list[PostMeta],
        remote_call: Callable[[], Awaitable[list[PostMeta]]],
        label: str,
    ) -> list[PostMeta]:
        remote_posts: list[PostMeta] = []
        if self.remote_enabled:
            try:
                remote_posts = await remote_call()
            except Exception:
                logger.exception("Error fetching remote %s, using local only", label)
        return post_views.sort_newest_first([*local_posts, *remote_posts])

    async def featured(self) -> list[PostMeta]:
        """Featured posts from both sources, newest first."""
        return await self._merge(self.local.featured(), self.remote.featured, "featured posts")

    async def by_tag(self, tag: str) -> list[PostMeta]:
        """Posts with the tag from both sources, newest first."""
        return await self._merge(
            self.local.by_tag(tag), lambda: self.remote.by_tag(tag), "posts by tag",
        )

    async def by_category(self, category: str) -> list[PostMeta]:
        """Posts in the category from both sources, newest first."""
        return await self._merge(
            self.local.by_category(category),
            lambda: self.remote.by_category(category),
            "posts by category",
        )

    async def all_tags(self) -> list[TagCount]:
        """Tag counts summed across sources (cached)."""
        cached = self._tags.get(_ALL)
        if cached is not None:
            return cached
        generation = self._tags.generation
        remote_tags: list[TagCount] = []
        if self.remote_enabled:
            try:
                remote_tags = await self.remote.tags()
            except Exception:
                logger.exception("Error fetching remote tags, using local only")
        tags = post_views.merge_tag_counts(self.local.all_tags(), remote_tags)
        self._tags.set(_ALL, tags, generation=generation)
        return tags

    async def all_categories(self) -> list[CategoryCount]:
        """Category counts summed across sources (cached)."""
        cached = self._categories.get(_ALL)
        if cached is not None:
            return cached
        generation = self._categories.generation
        remote_categories: list[CategoryCount] = []
        if self.remote_enabled:
            try:
                remote_categories = await self.remote.categories()
            except Exception:
                logger.exception("Error fetching remote categories, using local only")
        categories = post_views.merge_category_counts(
            self.local.all_categories(), remote_categories,
        )
        self._categories.set(_ALL, categories, generation=generation)
        return categories

    async def related(self, slug: str, limit: int = 3) -> list[PostMeta]:
        """Related posts scored over the unified timeline."""
        posts = await self.list_all()
        current = next((post for post in posts if post.slug == slug), None)
        if current is None:
            return []
        return post_views.related_posts(current, posts, limit)
