"""
Pure list operations over posts, shared by the local source, remote store and
aggregation layer.

All sorts are stable: posts that compare equal keep their input order, so a merged
list of local-then-remote posts keeps local posts first on equal dates.
"""
from collections.abc import Iterable, Sequence
from typing import TypeVar

from schemas.post import CategoryCount, PostMeta, TagCount

P = TypeVar("P", bound=PostMeta)

# Related-post scoring weights
SHARED_TAG_SCORE = 2
SAME_CATEGORY_SCORE = 3


def sort_newest_first(posts: Iterable[P]) -> list[P]:
    """Sort descending by publish date (stable)."""
    return sorted(posts, key=lambda post: post.date, reverse=True)


def filter_by_tag(posts: Iterable[P], tag: str) -> list[P]:
    """Posts carrying ``tag`` (case-insensitive exact match)."""
    wanted = tag.lower()
    return [post for post in posts if any(t.lower() == wanted for t in post.tags)]


def filter_by_category(posts: Iterable[P], category: str) -> list[P]:
    """Posts in ``category`` (case-insensitive exact match)."""
    wanted = category.lower()
    return [post for post in posts if post.category and post.category.lower() == wanted]


def filter_featured(posts: Iterable[P]) -> list[P]:
    """Posts flagged as featured."""
    return [post for post in posts if post.featured]


def _sorted_counts(counts: dict[str, int]) -> list[tuple[str, int]]:
    # dicts keep insertion order, so ties stay in discovery order
    return sorted(counts.items(), key=lambda item: item[1], reverse=True)


def count_tags(posts: Iterable[PostMeta]) -> list[TagCount]:
    """Tag frequencies, most used first; ties keep discovery order."""
    counts: dict[str, int] = {}
    for post in posts:
        for tag in post.tags:
            counts[tag] = counts.get(tag, 0) + 1
    return [TagCount(tag=tag, count=count) for tag, count in _sorted_counts(counts)]


def count_categories(posts: Iterable[PostMeta]) -> list[CategoryCount]:
    """Category frequencies, most used first; ties keep discovery order."""
    counts: dict[str, int] = {}
    for post in posts:
        if post.category:
            counts[post.category] = counts.get(post.category, 0) + 1
    return [
        CategoryCount(category=category, count=count)
        for category, count in _sorted_counts(counts)
    ]


def merge_tag_counts(*sources: Sequence[TagCount]) -> list[TagCount]:
    """Sum tag counts from several sources under the same tag name."""
    counts: dict[str, int] = {}
    for source in sources:
        for item in source:
            counts[item.tag] = counts.get(item.tag, 0) + item.count
    return [TagCount(tag=tag, count=count) for tag, count in _sorted_counts(counts)]


def merge_category_counts(*sources: Sequence[CategoryCount]) -> list[CategoryCount]:
    """Sum category counts from several sources under the same category name."""
    counts: dict[str, int] = {}
    for source in sources:
        for item in source:
            counts[item.category] = counts.get(item.category, 0) + item.count
    return [
        CategoryCount(category=category, count=count)
        for category, count in _sorted_counts(counts)
    ]


def related_score(current: PostMeta, candidate: PostMeta) -> int:
    """2 points per shared tag plus 3 points for the same category."""
    score = SHARED_TAG_SCORE * sum(1 for tag in candidate.tags if tag in current.tags)
    if candidate.category and candidate.category == current.category:
        score += SAME_CATEGORY_SCORE
    return score


def related_posts(current: PostMeta, candidates: Iterable[P], limit: int) -> list[P]:
    """
    Rank candidates by ``related_score`` against ``current``.

    Every candidate with the current slug is excluded. The sort is stable, so equal
    scores keep candidate order (newest first when candidates come from a timeline).
    """
    if limit <= 0:
        return []
    others = [post for post in candidates if post.slug != current.slug]
    scored = sorted(
        others,
        key=lambda post: related_score(current, post),
        reverse=True,
    )
    return scored[:limit]
