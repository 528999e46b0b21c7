"""
Remote article store backed by per-user Notion databases.

Translates between the unified post shape and the workspace page/property/block
model. Each user's articles live in their own database ("collection"); the public
timeline aggregates the published pages of every known collection.

Record lifecycle is driven purely by properties: ``status``/``published`` move a
page between Draft and Published in either direction, and archiving is terminal
(the API offers no hard delete).
"""
import asyncio
import logging
import time
from datetime import UTC, datetime
from typing import Any, Protocol

import httpx

from core.ttl_cache import TTLCache
from schemas.article import ArticleCreate, ArticleUpdate
from schemas.post import Author, CategoryCount, Post, PostMeta, TagCount
from schemas.user import UserCollection
from services import post_views
from services.exceptions import NotConfiguredError, RemoteStoreError
from services.notion_client import NotionClient
from services.utils import (
    chunk_text,
    coerce_datetime,
    compute_reading_time,
    slugify,
    strip_markup,
)

logger = logging.getLogger(__name__)

# Rich text objects are capped at 2000 characters by the API
BLOCK_TEXT_LIMIT = 2000

STATUS_PUBLISHED = "Published"
STATUS_DRAFT = "Draft"

PUBLISHED_FILTER: dict[str, Any] = {
    "and": [
        {"property": "published", "checkbox": {"equals": True}},
        {"property": "status", "select": {"equals": STATUS_PUBLISHED}},
    ],
}
NEWEST_FIRST: list[dict[str, Any]] = [
    {"property": "publishDate", "direction": "descending"},
]

_BLOCK_PREFIXES = {
    "paragraph": "",
    "heading_1": "# ",
    "heading_2": "## ",
    "heading_3": "### ",
    "bulleted_list_item": "- ",
    "numbered_list_item": "1. ",
    "quote": "> ",
    "callout": "> ",
    "toggle": "",
}


class CollectionDirectory(Protocol):
    """Lookup of per-user collections (implemented by the provisioner)."""

    async def get_collection_id(self, email: str) -> str | None:
        """Collection id for a user, or None."""
        ...

    async def list_all_collections(self) -> list[UserCollection]:
        """Every user that owns a collection."""
        ...


def current_epoch_millis() -> int:
    """Milliseconds since the epoch, used to make generated slugs unique."""
    return int(time.time() * 1000)


def generate_slug(title: str) -> str:
    """``slugify(title)-<epoch millis>``; unique without a lookup."""
    return f"{slugify(title)}-{current_epoch_millis()}"


# =============================================================================
# Property and block translation
# =============================================================================


def _rich_text(content: str) -> list[dict[str, Any]]:
    return [{"type": "text", "text": {"content": content}}]


def _plain_text(items: list[dict[str, Any]] | None) -> str:
    if not items:
        return ""
    return "".join(
        item.get("plain_text") or item.get("text", {}).get("content", "")
        for item in items
    )


def _status_properties(status: str) -> dict[str, Any]:
    published = status == "published"
    return {
        "published": {"checkbox": published},
        "status": {"select": {"name": STATUS_PUBLISHED if published else STATUS_DRAFT}},
    }


def _external_cover(url: str) -> dict[str, Any]:
    return {"type": "external", "external": {"url": url}}


def build_create_properties(data: ArticleCreate, slug: str, author_name: str) -> dict[str, Any]:
    """Map a new article onto the collection's property schema."""
    properties: dict[str, Any] = {
        "title": {"title": _rich_text(data.title or "")},
        "description": {"rich_text": _rich_text(data.description or "")},
        "slug": {"rich_text": _rich_text(slug)},
        "author": {"rich_text": _rich_text(author_name)},
        "tags": {"multi_select": [{"name": tag} for tag in data.tags]},
        "featured": {"checkbox": data.featured},
        "publishDate": {"date": {"start": datetime.now(UTC).isoformat()}},
        **_status_properties(data.status),
    }
    if data.category:
        properties["category"] = {"select": {"name": data.category}}
    return properties


def build_update_properties(fields: dict[str, Any]) -> dict[str, Any]:
    """Translate only the supplied fields of a partial update."""
    properties: dict[str, Any] = {}
    if "title" in fields and fields["title"] is not None:
        properties["title"] = {"title": _rich_text(fields["title"])}
        properties["slug"] = {"rich_text": _rich_text(generate_slug(fields["title"]))}
    if "description" in fields:
        properties["description"] = {"rich_text": _rich_text(fields["description"] or "")}
    if "tags" in fields and fields["tags"] is not None:
        properties["tags"] = {"multi_select": [{"name": tag} for tag in fields["tags"]]}
    if "category" in fields:
        category = fields["category"]
        properties["category"] = {"select": {"name": category} if category else None}
    if "status" in fields and fields["status"] is not None:
        properties.update(_status_properties(fields["status"]))
    if "featured" in fields and fields["featured"] is not None:
        properties["featured"] = {"checkbox": fields["featured"]}
    return properties


def content_to_blocks(content: str) -> list[dict[str, Any]]:
    """
    Convert an article body to paragraph blocks.

    Markup is stripped (lossy). Each line becomes one paragraph; lines longer than
    the per-block text limit are split across consecutive paragraphs.
    """
    text = strip_markup(content)
    if not text.strip():
        return []
    blocks = []
    for line in text.split("\n"):
        pieces = chunk_text(line, BLOCK_TEXT_LIMIT) if line else [""]
        for piece in pieces:
            blocks.append({
                "object": "block",
                "type": "paragraph",
                "paragraph": {"rich_text": _rich_text(piece) if piece else []},
            })
    return blocks


def blocks_to_text(blocks: list[dict[str, Any]]) -> str:
    """Render blocks as markdown-flavoured text, one block per line."""
    lines = []
    for block in blocks:
        block_type = block.get("type", "")
        payload = block.get(block_type) or {}
        text = _plain_text(payload.get("rich_text"))
        if block_type in _BLOCK_PREFIXES:
            lines.append(f"{_BLOCK_PREFIXES[block_type]}{text}")
        elif block_type == "to_do":
            mark = "x" if payload.get("checked") else " "
            lines.append(f"- [{mark}] {text}")
        elif block_type == "code":
            language = payload.get("language") or ""
            lines.append(f"```{language}\n{text}\n```")
        elif block_type == "divider":
            lines.append("---")
        elif text:
            lines.append(text)
    return "\n".join(lines)


def page_to_post(page: dict[str, Any], content: str) -> Post:
    """Build a unified post from a page and its rendered body."""
    properties = page.get("properties") or {}

    def prop(name: str) -> dict[str, Any]:
        return properties.get(name) or {}

    title = _plain_text(prop("title").get("title")) or "Untitled"
    slug = _plain_text(prop("slug").get("rich_text")) or slugify(title)
    publish_date = (prop("publishDate").get("date") or {}).get("start")
    category = (prop("category").get("select") or {}).get("name")

    cover_image = None
    cover = page.get("cover") or {}
    if cover.get("type") == "external":
        cover_image = (cover.get("external") or {}).get("url")
    elif cover.get("type") == "file":
        cover_image = (cover.get("file") or {}).get("url")

    date = coerce_datetime(publish_date) or coerce_datetime(page.get("created_time"))
    return Post(
        slug=slug,
        title=title,
        description=_plain_text(prop("description").get("rich_text")),
        content=content,
        date=date or datetime.now(UTC),
        reading_time=compute_reading_time(content),
        tags=[tag["name"] for tag in prop("tags").get("multi_select") or [] if tag.get("name")],
        category=category,
        author=Author(name=_plain_text(prop("author").get("rich_text")) or "Anonymous"),
        cover_image=cover_image,
        featured=bool(prop("featured").get("checkbox")),
        published=bool(prop("published").get("checkbox")),
        source="remote",
        remote_id=page.get("id"),
        remote_url=page.get("url"),
        last_edited_time=coerce_datetime(page.get("last_edited_time")),
    )


# =============================================================================
# Store
# =============================================================================


class RemoteArticleStore:
    """
    Per-user article collections in the workspace API.

    When not configured (token or base collection id missing), reads return empty
    results and writes raise ``NotConfiguredError``. Reads never raise upstream
    errors: a failed query falls back to the last cached result for that collection,
    or empty. Writes wrap upstream errors in ``RemoteStoreError`` and invalidate the
    store's own cache on success.
    """

    def __init__(
        self,
        client: NotionClient,
        directory: CollectionDirectory,
        token: str,
        base_collection_id: str,
        cache_ttl_seconds: float = 3600,
    ) -> None:
        self._client = client
        self._directory = directory
        self._token = token
        self._base_collection_id = base_collection_id
        self._published: TTLCache[str, list[PostMeta]] = TTLCache(
            cache_ttl_seconds, name="remote_published",
        )

    def is_configured(self) -> bool:
        """True only if both the access token and base collection id are present."""
        return bool(self._token and self._base_collection_id)

    def invalidate(self) -> None:
        """Drop cached query results."""
        self._published.clear()
        logger.debug("remote_cache_invalidated")

    def _require_configured(self) -> None:
        if not self.is_configured():
            raise NotConfiguredError()

    async def _page_content(self, page_id: str) -> str:
        blocks = await self._client.list_block_children(page_id)
        return blocks_to_text(blocks)

    async def _convert(self, page: dict[str, Any]) -> Post | None:
        try:
            return page_to_post(page, await self._page_content(page["id"]))
        except Exception:
            logger.exception("Error converting page %s to post", page.get("id"))
            return None

    async def _convert_all(self, pages: list[dict[str, Any]]) -> list[PostMeta]:
        posts = await asyncio.gather(*(self._convert(page) for page in pages))
        return [post.to_meta() for post in posts if post is not None]

    # -------------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------------

    async def query_published(self, collection_id: str) -> list[PostMeta]:
        """
        Published pages (published=true AND status=Published) of one collection,
        newest first. Cached per collection.
        """
        if not self.is_configured():
            return []
        cached = self._published.get(collection_id)
        if cached is not None:
            return cached
        generation = self._published.generation
        try:
            pages = await self._client.query_database(
                collection_id, filter=PUBLISHED_FILTER, sorts=NEWEST_FIRST,
            )
            posts = post_views.sort_newest_first(await self._convert_all(pages))
        except Exception:
            logger.exception("Error querying published posts collection=%s", collection_id)
            return self._published.get_stale(collection_id) or []
        self._published.set(collection_id, posts, generation=generation)
        return posts

    async def _find_published_by_slug(self, slug: str, collection_id: str) -> Post | None:
        query = {
            "and": [
                *PUBLISHED_FILTER["and"],
                {"property": "slug", "rich_text": {"equals": slug}},
            ],
        }
        pages = await self._client.query_database(collection_id, filter=query)
        if not pages:
            return None
        return page_to_post(pages[0], await self._page_content(pages[0]["id"]))

    async def get_by_slug(self, slug: str, collection_id: str | None = None) -> Post | None:
        """
        Exact slug match among published pages.

        Searches ``collection_id`` if given, otherwise every known collection in
        order. Returns None when nothing matches; a failing collection is logged
        and skipped.
        """
        if not self.is_configured():
            return None
        if collection_id is not None:
            collection_ids = [collection_id]
        else:
            collection_ids = [c.collection_id for c in await self._list_collections()]
        for cid in collection_ids:
            try:
                post = await self._find_published_by_slug(slug, cid)
            except Exception:
                logger.exception("Error fetching post by slug=%s collection=%s", slug, cid)
                continue
            if post is not None:
                return post
        return None

    async def get_by_id(self, page_id: str) -> Post | None:
        """Any record by id, including drafts and archived pages."""
        if not self.is_configured():
            return None
        try:
            page = await self._client.retrieve_page(page_id)
            return page_to_post(page, await self._page_content(page_id))
        except httpx.HTTPStatusError as e:
            if e.response.status_code != 404:
                logger.exception("Error fetching page id=%s", page_id)
            return None
        except Exception:
            logger.exception("Error fetching page id=%s", page_id)
            return None

    async def _list_collections(self) -> list[UserCollection]:
        try:
            return await self._directory.list_all_collections()
        except Exception:
            logger.exception("Error listing user collections")
            return []

    async def _published_or_empty(self, collection: UserCollection) -> list[PostMeta]:
        try:
            return await self.query_published(collection.collection_id)
        except Exception:
            logger.exception(
                "Error fetching posts from collection %s for user %s",
                collection.collection_id,
                collection.email,
            )
            return []

    async def list_all_published_across_users(self) -> list[PostMeta]:
        """
        Published posts of every known collection, newest first.

        Collections are queried concurrently; a failing collection contributes
        nothing and does not affect the others.
        """
        if not self.is_configured():
            return []
        collections = await self._list_collections()
        if not collections:
            return []
        results = await asyncio.gather(
            *(self._published_or_empty(collection) for collection in collections),
        )
        merged = [post for posts in results for post in posts]
        return post_views.sort_newest_first(merged)

    async def list_for_user(self, email: str) -> list[PostMeta]:
        """Drafts and published posts in the user's collection; empty if none exists."""
        if not self.is_configured():
            return []
        collection_id = await self._directory.get_collection_id(email)
        if not collection_id:
            logger.info("No personal collection found for user %s", email)
            return []
        try:
            pages = await self._client.query_database(collection_id, sorts=NEWEST_FIRST)
            return await self._convert_all(pages)
        except Exception:
            logger.exception("Error fetching articles for user %s", email)
            return []

    async def featured(self) -> list[PostMeta]:
        """Featured published posts across users."""
        return post_views.filter_featured(await self.list_all_published_across_users())

    async def by_tag(self, tag: str) -> list[PostMeta]:
        """Published posts with the tag across users."""
        return post_views.filter_by_tag(await self.list_all_published_across_users(), tag)

    async def by_category(self, category: str) -> list[PostMeta]:
        """Published posts in the category across users."""
        return post_views.filter_by_category(
            await self.list_all_published_across_users(), category,
        )

    async def tags(self) -> list[TagCount]:
        """Tag frequencies of published posts across users."""
        return post_views.count_tags(await self.list_all_published_across_users())

    async def categories(self) -> list[CategoryCount]:
        """Category frequencies of published posts across users."""
        return post_views.count_categories(await self.list_all_published_across_users())

    # -------------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------------

    async def _replace_content(self, page_id: str, content: str) -> None:
        """
        Swap a page body: new blocks are appended before old ones are deleted.

        Not atomic. A failure after the append leaves old and new text side by
        side rather than an empty page.
        """
        old_blocks = await self._client.list_block_children(page_id)
        new_blocks = content_to_blocks(content)
        if new_blocks:
            await self._client.append_block_children(page_id, new_blocks)
        for block in old_blocks:
            try:
                await self._client.delete_block(block["id"])
            except httpx.HTTPError:
                logger.warning("Could not delete block %s on page %s", block["id"], page_id)

    async def create(
        self,
        data: ArticleCreate,
        collection_id: str,
        author_name: str,
    ) -> Post:
        """
        Create a page in ``collection_id`` with the body as paragraph blocks.

        Raises:
            NotConfiguredError: Remote integration not configured.
            RemoteStoreError: Any upstream failure.
        """
        self._require_configured()
        slug = generate_slug(data.title or "")
        properties = build_create_properties(data, slug, author_name)
        cover = _external_cover(data.cover_image) if data.cover_image else None
        try:
            page = await self._client.create_page(collection_id, properties, cover=cover)
            blocks = content_to_blocks(data.content or "")
            if blocks:
                await self._client.append_block_children(page["id"], blocks)
            post = page_to_post(page, await self._page_content(page["id"]))
        except httpx.HTTPError as e:
            logger.exception("Error creating article in collection %s", collection_id)
            raise RemoteStoreError("create", e) from e
        self.invalidate()
        logger.info("remote_article_created id=%s slug=%s", post.remote_id, post.slug)
        return post

    async def update(self, page_id: str, data: ArticleUpdate) -> Post:
        """
        Apply a partial update. Body replacement happens only if ``content`` is sent.

        Raises:
            NotConfiguredError: Remote integration not configured.
            RemoteStoreError: Any upstream failure.
        """
        self._require_configured()
        fields = data.model_dump(exclude_unset=True)
        properties = build_update_properties(fields)
        cover = _external_cover(fields["cover_image"]) if fields.get("cover_image") else None
        try:
            if properties or cover:
                await self._client.update_page(page_id, properties=properties, cover=cover)
            if fields.get("content") is not None:
                await self._replace_content(page_id, fields["content"])
            page = await self._client.retrieve_page(page_id)
            post = page_to_post(page, await self._page_content(page_id))
        except httpx.HTTPError as e:
            logger.exception("Error updating article %s", page_id)
            raise RemoteStoreError("update", e) from e
        self.invalidate()
        logger.info("remote_article_updated id=%s fields=%s", page_id, sorted(fields))
        return post

    async def archive(self, page_id: str) -> None:
        """
        Soft-delete a page by setting its archived flag.

        Raises:
            NotConfiguredError: Remote integration not configured.
            RemoteStoreError: Any upstream failure.
        """
        self._require_configured()
        try:
            await self._client.update_page(page_id, archived=True)
        except httpx.HTTPError as e:
            logger.exception("Error archiving article %s", page_id)
            raise RemoteStoreError("archive", e) from e
        self.invalidate()
        logger.info("remote_article_archived id=%s", page_id)
