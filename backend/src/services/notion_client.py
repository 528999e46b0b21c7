"""HTTP client for the Notion workspace API (databases, pages, blocks)."""
import logging
from typing import Any

import httpx

from core.config import Settings

logger = logging.getLogger(__name__)

# Maximum page size accepted by database queries and block listings
MAX_PAGE_SIZE = 100


def build_http_client(settings: Settings) -> httpx.AsyncClient:
    """
    Create the shared AsyncClient used for every workspace call.

    Base URL, auth and version headers are fixed here; the explicit timeout keeps a
    hung upstream from hanging the serving request.
    """
    return httpx.AsyncClient(
        base_url=settings.notion_api_url.rstrip("/") + "/",
        timeout=settings.notion_timeout,
        headers={
            "Authorization": f"Bearer {settings.notion_token}",
            "Notion-Version": settings.notion_version,
            "Content-Type": "application/json",
        },
    )


class NotionClient:
    """
    Thin async wrapper over the workspace REST endpoints.

    Every method raises ``httpx.HTTPError`` (``HTTPStatusError`` for non-2xx
    responses) and leaves degradation decisions to callers.
    """

    def __init__(self, http: httpx.AsyncClient) -> None:
        self._http = http

    async def _request(
        self,
        method: str,
        path: str,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        response = await self._http.request(method, path, json=json, params=params)
        if response.is_error:
            logger.warning(
                "notion_request_failed method=%s path=%s status=%s body=%s",
                method,
                path,
                response.status_code,
                response.text[:500],
            )
        response.raise_for_status()
        return response.json()

    async def query_database(
        self,
        database_id: str,
        filter: dict[str, Any] | None = None,  # noqa: A002
        sorts: list[dict[str, Any]] | None = None,
    ) -> list[dict[str, Any]]:
        """Query a database and return every page of results."""
        body: dict[str, Any] = {"page_size": MAX_PAGE_SIZE}
        if filter:
            body["filter"] = filter
        if sorts:
            body["sorts"] = sorts
        results: list[dict[str, Any]] = []
        while True:
            data = await self._request("POST", f"databases/{database_id}/query", json=body)
            results.extend(data.get("results", []))
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                return results
            body["start_cursor"] = cursor

    async def retrieve_database(self, database_id: str) -> dict[str, Any]:
        """Fetch a database, including its property schema."""
        return await self._request("GET", f"databases/{database_id}")

    async def create_database(
        self,
        parent_page_id: str,
        title: str,
        properties: dict[str, Any],
    ) -> dict[str, Any]:
        """Create a database under a parent page."""
        return await self._request(
            "POST",
            "databases",
            json={
                "parent": {"type": "page_id", "page_id": parent_page_id},
                "title": [{"type": "text", "text": {"content": title}}],
                "properties": properties,
            },
        )

    async def create_page(
        self,
        database_id: str,
        properties: dict[str, Any],
        cover: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Create a page (record) in a database."""
        body: dict[str, Any] = {
            "parent": {"database_id": database_id},
            "properties": properties,
        }
        if cover:
            body["cover"] = cover
        return await self._request("POST", "pages", json=body)

    async def retrieve_page(self, page_id: str) -> dict[str, Any]:
        """Fetch a page, archived or not."""
        return await self._request("GET", f"pages/{page_id}")

    async def update_page(
        self,
        page_id: str,
        properties: dict[str, Any] | None = None,
        cover: dict[str, Any] | None = None,
        archived: bool | None = None,
    ) -> dict[str, Any]:
        """Patch page properties, cover or archived flag."""
        body: dict[str, Any] = {}
        if properties:
            body["properties"] = properties
        if cover:
            body["cover"] = cover
        if archived is not None:
            body["archived"] = archived
        return await self._request("PATCH", f"pages/{page_id}", json=body)

    async def list_block_children(self, block_id: str) -> list[dict[str, Any]]:
        """Return every child block of a page or block."""
        params: dict[str, Any] = {"page_size": MAX_PAGE_SIZE}
        results: list[dict[str, Any]] = []
        while True:
            data = await self._request("GET", f"blocks/{block_id}/children", params=params)
            results.extend(data.get("results", []))
            cursor = data.get("next_cursor")
            if not data.get("has_more") or not cursor:
                return results
            params["start_cursor"] = cursor

    async def append_block_children(
        self,
        block_id: str,
        children: list[dict[str, Any]],
    ) -> list[dict[str, Any]]:
        """Append blocks, at most ``MAX_PAGE_SIZE`` per request."""
        appended: list[dict[str, Any]] = []
        for start in range(0, len(children), MAX_PAGE_SIZE):
            data = await self._request(
                "PATCH",
                f"blocks/{block_id}/children",
                json={"children": children[start:start + MAX_PAGE_SIZE]},
            )
            appended.extend(data.get("results", []))
        return appended

    async def delete_block(self, block_id: str) -> dict[str, Any]:
        """Delete (archive) a block."""
        return await self._request("DELETE", f"blocks/{block_id}")
