"""Fuzzy search over local posts."""
from dataclasses import dataclass

from rapidfuzz import fuzz, utils

from schemas.post import PostMeta
from schemas.search import SearchResult

MIN_QUERY_LENGTH = 2
# Minimum partial-match similarity (0-100) for a field to count as a match
MATCH_THRESHOLD = 70.0


@dataclass(frozen=True)
class SearchKey:
    """A searchable field and its weight."""

    name: str
    weight: float


SEARCH_KEYS = (
    SearchKey("title", 3.0),
    SearchKey("description", 2.0),
    SearchKey("tags", 1.5),
    SearchKey("category", 1.0),
    SearchKey("author", 0.5),
)
_MAX_WEIGHT = max(key.weight for key in SEARCH_KEYS)


def _field_values(post: PostMeta, key: str) -> list[str]:
    if key == "tags":
        return post.tags
    if key == "author":
        return [post.author.name]
    value = getattr(post, key)
    return [value] if value else []


def score_post(post: PostMeta, query: str) -> tuple[float, list[str]]:
    """
    Weighted best-field similarity between a post and a query.

    Each field scores its best ``partial_ratio`` against the query; fields under the
    threshold are ignored. The post score is the highest weighted field score,
    normalized to [0, 1].
    """
    best = 0.0
    matches = []
    processed = utils.default_process(query)
    for key in SEARCH_KEYS:
        similarity = max(
            (
                fuzz.partial_ratio(processed, utils.default_process(value))
                for value in _field_values(post, key.name)
            ),
            default=0.0,
        )
        if similarity < MATCH_THRESHOLD:
            continue
        matches.append(key.name)
        best = max(best, similarity * key.weight)
    return best / (100.0 * _MAX_WEIGHT), matches


def search_posts(posts: list[PostMeta], query: str, limit: int = 10) -> list[SearchResult]:
    """Rank posts against the query; empty or too-short queries return nothing."""
    query = query.strip()
    if len(query) < MIN_QUERY_LENGTH or limit <= 0:
        return []
    results = []
    for post in posts:
        score, matches = score_post(post, query)
        if matches:
            results.append(
                SearchResult(
                    slug=post.slug,
                    title=post.title,
                    description=post.description,
                    tags=post.tags,
                    score=round(score, 4),
                    matches=matches,
                ),
            )
    results.sort(key=lambda result: result.score, reverse=True)
    return results[:limit]
