"""Tests for the response cache and its revalidation."""
from core.page_cache import TAG_CATEGORIES, TAG_POSTS, TAG_TAGS, PageCache
from tests.conftest import FakeClock


def _cache() -> PageCache:
    cache = PageCache(60)
    cache.set("/api/posts?offset=0&limit=10", {"page": 1}, tags=(TAG_POSTS,))
    cache.set("/api/posts", {"page": 0}, tags=(TAG_POSTS,))
    cache.set("/api/posts/featured", {"featured": True}, tags=(TAG_POSTS,))
    cache.set("/api/tags", {"tags": []}, tags=(TAG_TAGS,))
    cache.set("/api/tags/python/posts", {"posts": []}, tags=(TAG_TAGS, TAG_POSTS))
    cache.set("/api/categories", {"categories": []}, tags=(TAG_CATEGORIES,))
    return cache


def test__revalidate_path__ignores_query_string() -> None:
    """Every cached variant of a path is dropped, whatever its query."""
    cache = _cache()

    removed = cache.revalidate_path("/api/posts")

    assert removed == 2
    assert cache.get("/api/posts") is None
    assert cache.get("/api/posts?offset=0&limit=10") is None
    assert cache.get("/api/posts/featured") == {"featured": True}


def test__revalidate_path__trailing_slash_is_equivalent() -> None:
    """A trailing slash on the revalidated path still matches."""
    cache = _cache()
    assert cache.revalidate_path("/api/tags/") == 1
    assert cache.get("/api/tags") is None


def test__revalidate_tag__drops_labelled_entries() -> None:
    """Entries carrying the tag are dropped, others are kept."""
    cache = _cache()

    removed = cache.revalidate_tag(TAG_TAGS)

    assert removed == 2
    assert cache.get("/api/tags") is None
    assert cache.get("/api/tags/python/posts") is None
    assert cache.get("/api/categories") == {"categories": []}


def test__revalidate_tag__unknown_tag_removes_nothing() -> None:
    """An unused tag is a no-op."""
    cache = _cache()
    assert cache.revalidate_tag("unknown") == 0
    assert len(cache) == 6


def test__clear__drops_everything() -> None:
    """Clearing empties the cache."""
    cache = _cache()
    cache.clear()
    assert len(cache) == 0
    assert cache.revalidate_tag(TAG_POSTS) == 0


def test__set__discards_payload_built_across_clear() -> None:
    """A payload whose build overlapped an invalidation is not stored."""
    cache = PageCache(60)
    generation = cache.generation
    cache.clear()  # an article write lands while the response is being built

    stored = cache.set("/api/posts", {"page": 0}, tags=(TAG_POSTS,), generation=generation)

    assert stored is False
    assert cache.get("/api/posts") is None
    assert len(cache) == 0


def test__set__discards_payload_built_across_revalidation() -> None:
    """Path and tag revalidation also invalidate in-flight builds."""
    cache = PageCache(60)
    before_path = cache.generation
    cache.revalidate_path("/api/tags")
    before_tag = cache.generation
    cache.revalidate_tag(TAG_TAGS)

    assert cache.set("/api/tags", {"tags": []}, generation=before_path) is False
    assert cache.set("/api/tags", {"tags": []}, generation=before_tag) is False
    assert cache.set("/api/tags", {"tags": []}, generation=cache.generation) is True
    assert cache.get("/api/tags") == {"tags": []}


def test__set__purges_expired_entries() -> None:
    """Entries past their TTL are dropped on the next write, tags included."""
    clock = FakeClock()
    cache = PageCache(60, clock=clock, max_entries=10_000)
    for n in range(5000):
        cache.set(f"/api/posts/slug-{n}", {"n": n}, tags=(TAG_POSTS,))
    clock.advance(61)

    cache.set("/api/tags", {"tags": []}, tags=(TAG_TAGS,))

    assert len(cache) == 1
    assert cache.revalidate_tag(TAG_POSTS) == 0


def test__set__evicts_oldest_when_full() -> None:
    """The entry count never exceeds ``max_entries``."""
    cache = PageCache(60, max_entries=3)
    for n in range(5):
        cache.set(f"/api/posts/slug-{n}", {"n": n}, tags=(TAG_POSTS,))

    assert len(cache) == 3
    assert cache.get("/api/posts/slug-0") is None
    assert cache.get("/api/posts/slug-1") is None
    assert cache.get("/api/posts/slug-4") == {"n": 4}
    assert cache.revalidate_tag(TAG_POSTS) == 3


def test__set__overwriting_full_cache_keeps_other_entries() -> None:
    """Rewriting an existing key does not evict anything."""
    cache = PageCache(60, max_entries=2)
    cache.set("/api/tags", {"tags": []})
    cache.set("/api/categories", {"categories": []})

    cache.set("/api/tags", {"tags": ["x"]})

    assert len(cache) == 2
    assert cache.get("/api/categories") == {"categories": []}
