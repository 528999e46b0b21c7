"""Local content source: markdown/mdx files with YAML front-matter."""
import logging
import re
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import yaml

from schemas.post import Author, CategoryCount, Post, PostMeta, TagCount
from services import post_views
from services.utils import coerce_datetime, compute_reading_time

logger = logging.getLogger(__name__)

# Checked in order when resolving a slug to a file
POST_EXTENSIONS = (".mdx", ".md")

_FRONT_MATTER = re.compile(r"\A---[ \t]*\r?\n(.*?)\r?\n---[ \t]*(?:\r?\n|\Z)", re.DOTALL)
_EXTENSION_SUFFIX = re.compile(r"\.mdx?$")


class FrontMatterError(ValueError):
    """Raised when a post's front-matter block is not a YAML mapping."""


def parse_front_matter(text: str) -> tuple[dict[str, Any], str]:
    """
    Split a document into its front-matter mapping and body.

    Documents without a leading ``---`` block have empty metadata.

    Raises:
        FrontMatterError: If the block is not valid YAML or not a mapping.
    """
    match = _FRONT_MATTER.match(text)
    if not match:
        return {}, text
    try:
        data = yaml.safe_load(match.group(1)) or {}
    except yaml.YAMLError as e:
        raise FrontMatterError(f"Invalid front-matter: {e}") from e
    if not isinstance(data, dict):
        raise FrontMatterError("Front-matter must be a mapping")
    return data, text[match.end():]


def _parse_author(value: Any) -> Author:
    if isinstance(value, dict):
        return Author(
            name=str(value.get("name") or "Anonymous"),
            avatar=value.get("avatar"),
            bio=value.get("bio"),
        )
    if isinstance(value, str) and value.strip():
        return Author(name=value.strip())
    return Author()


def _parse_tags(value: Any) -> list[str]:
    if isinstance(value, str):
        return [tag.strip() for tag in value.split(",") if tag.strip()]
    if isinstance(value, list):
        return [str(tag) for tag in value if tag is not None and str(tag).strip()]
    return []


class LocalContentSource:
    """
    Reads posts from a directory of ``.mdx``/``.md`` files.

    Every call reads from disk; caching happens in the aggregation layer above.
    """

    def __init__(self, content_dir: Path | str) -> None:
        self.content_dir = Path(content_dir)

    def list_slugs(self) -> list[str]:
        """Slugs for every recognized file. Missing directory yields an empty list."""
        try:
            names = sorted(p.name for p in self.content_dir.iterdir() if p.is_file())
        except (FileNotFoundError, NotADirectoryError):
            logger.warning("Posts directory not found: %s", self.content_dir)
            return []
        slugs = []
        for name in names:
            if name.endswith(POST_EXTENSIONS):
                slug = _EXTENSION_SUFFIX.sub("", name)
                if slug not in slugs:
                    slugs.append(slug)
        return slugs

    def _resolve_path(self, slug: str) -> Path | None:
        if not slug or "/" in slug or "\\" in slug or slug.startswith("."):
            return None
        for extension in POST_EXTENSIONS:
            path = self.content_dir / f"{slug}{extension}"
            if path.is_file():
                return path
        return None

    def get_by_slug(self, slug: str) -> Post | None:
        """
        Load one post. Returns None (and logs the cause) if it can't be read or parsed.

        Defaults: title "Untitled", no tags, published unless ``published: false``,
        date = now when absent, author "Anonymous".
        """
        real_slug = _EXTENSION_SUFFIX.sub("", slug)
        path = self._resolve_path(real_slug)
        if path is None:
            logger.debug("local_post_not_found slug=%s", real_slug)
            return None
        try:
            data, body = parse_front_matter(path.read_text(encoding="utf-8"))
            return Post(
                slug=real_slug,
                title=str(data.get("title") or "Untitled"),
                description=str(data.get("description") or ""),
                content=body,
                date=coerce_datetime(data.get("date")) or datetime.now(UTC),
                updated=coerce_datetime(data.get("updated")),
                reading_time=compute_reading_time(body),
                tags=_parse_tags(data.get("tags")),
                category=str(data["category"]) if data.get("category") else None,
                author=_parse_author(data.get("author")),
                cover_image=data.get("coverImage") or data.get("cover_image"),
                featured=bool(data.get("featured", False)),
                published=data.get("published") is not False,
                source="local",
            )
        except Exception:
            logger.exception("Error reading post %s", slug)
            return None

    def list_all(self) -> list[PostMeta]:
        """Published, readable posts as metadata, newest first."""
        posts = []
        for slug in self.list_slugs():
            post = self.get_by_slug(slug)
            if post is not None and post.published:
                posts.append(post.to_meta())
        return post_views.sort_newest_first(posts)

    def featured(self) -> list[PostMeta]:
        """Featured posts, newest first."""
        return post_views.filter_featured(self.list_all())

    def by_tag(self, tag: str) -> list[PostMeta]:
        """Posts with the tag (case-insensitive), newest first."""
        return post_views.filter_by_tag(self.list_all(), tag)

    def by_category(self, category: str) -> list[PostMeta]:
        """Posts in the category (case-insensitive), newest first."""
        return post_views.filter_by_category(self.list_all(), category)

    def all_tags(self) -> list[TagCount]:
        """Tag frequencies, most used first."""
        return post_views.count_tags(self.list_all())

    def all_categories(self) -> list[CategoryCount]:
        """Category frequencies, most used first."""
        return post_views.count_categories(self.list_all())

    def related(self, slug: str, limit: int = 3) -> list[PostMeta]:
        """Posts sharing tags/category with ``slug``, best match first."""
        current = self.get_by_slug(slug)
        if current is None:
            return []
        return post_views.related_posts(current, self.list_all(), limit)
