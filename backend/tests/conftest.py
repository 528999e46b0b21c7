"""Pytest fixtures for testing."""
import json
from collections.abc import AsyncGenerator, Callable, Generator
from datetime import UTC, datetime
from pathlib import Path
from typing import Any
from uuid import uuid4

import httpx
import pytest
import respx
import yaml
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from core.auth import create_session_token
from core.config import Settings
from models.base import Base
from services.container import Services, build_services
from services.notion_client import NotionClient, build_http_client
from services.user_repository import UserRepository

NOTION_HOST = "api.notion.com"
TEMPLATE_DATABASE_ID = "template-db"
PARENT_PAGE_ID = "parent-page"
SESSION_SECRET = "test-session-secret-that-is-long-enough"
REVALIDATION_SECRET = "test-revalidation-secret"

TEMPLATE_PROPERTIES: dict[str, Any] = {
    "title": {"id": "title", "name": "title", "type": "title", "title": {}},
    "description": {"id": "d1", "name": "description", "type": "rich_text", "rich_text": {}},
    "slug": {"id": "s1", "name": "slug", "type": "rich_text", "rich_text": {}},
    "author": {"id": "a1", "name": "author", "type": "rich_text", "rich_text": {}},
    "tags": {
        "id": "t1",
        "name": "tags",
        "type": "multi_select",
        "multi_select": {"options": [{"id": "opt1", "name": "python", "color": "blue"}]},
    },
    "category": {"id": "c1", "name": "category", "type": "select", "select": {"options": []}},
    "status": {
        "id": "st1",
        "name": "status",
        "type": "select",
        "select": {
            "options": [
                {"id": "o1", "name": "Draft", "color": "gray"},
                {"id": "o2", "name": "Published", "color": "green"},
            ],
        },
    },
    "published": {"id": "p1", "name": "published", "type": "checkbox", "checkbox": {}},
    "featured": {"id": "f1", "name": "featured", "type": "checkbox", "checkbox": {}},
    "publishDate": {"id": "pd1", "name": "publishDate", "type": "date", "date": {}},
}


def _now_iso() -> str:
    return datetime.now(UTC).isoformat()


def _plain(items: list[dict[str, Any]] | None) -> str:
    return "".join(item.get("text", {}).get("content", "") for item in items or [])


def _not_found(object_id: str) -> httpx.Response:
    return httpx.Response(
        404,
        json={"object": "error", "code": "object_not_found", "message": f"{object_id} not found"},
    )


class FakeNotion:
    """
    In-memory stand-in for the workspace API, served through respx.

    Pages store properties in the request shape, which the client's converters read
    as well as the retrieved shape.
    """

    def __init__(self, router: respx.MockRouter) -> None:
        self.databases: dict[str, dict[str, Any]] = {
            TEMPLATE_DATABASE_ID: {
                "object": "database",
                "id": TEMPLATE_DATABASE_ID,
                "properties": TEMPLATE_PROPERTIES,
            },
        }
        self.pages: dict[str, dict[str, Any]] = {}
        self.blocks: dict[str, list[dict[str, Any]]] = {}
        self.failing_databases: set[str] = set()
        self.query_count = 0

        def route(method: str, pattern: str, handler: Callable[..., httpx.Response]) -> None:
            router.route(method=method, host=NOTION_HOST, path__regex=pattern).mock(
                side_effect=handler,
            )

        route("POST", r"^/v1/databases/(?P<database_id>[^/]+)/query$", self._query)
        route("GET", r"^/v1/databases/(?P<database_id>[^/]+)$", self._retrieve_database)
        route("POST", r"^/v1/databases$", self._create_database)
        route("POST", r"^/v1/pages$", self._create_page)
        route("GET", r"^/v1/pages/(?P<page_id>[^/]+)$", self._retrieve_page)
        route("PATCH", r"^/v1/pages/(?P<page_id>[^/]+)$", self._update_page)
        route("GET", r"^/v1/blocks/(?P<block_id>[^/]+)/children$", self._list_children)
        route("PATCH", r"^/v1/blocks/(?P<block_id>[^/]+)/children$", self._append_children)
        route("DELETE", r"^/v1/blocks/(?P<block_id>[^/]+)$", self._delete_block)

    # -- seeding helpers --------------------------------------------------------

    def add_database(self, database_id: str) -> None:
        """Register an empty collection."""
        self.databases[database_id] = {
            "object": "database",
            "id": database_id,
            "properties": TEMPLATE_PROPERTIES,
        }

    def add_page(
        self,
        database_id: str,
        title: str,
        slug: str,
        publish_date: str,
        body: str = "Body text",
        tags: list[str] | None = None,
        category: str | None = None,
        status: str = "Published",
        featured: bool = False,
        author: str = "Remote Author",
    ) -> str:
        """Insert a page directly, bypassing the client. Returns the page id."""
        page_id = str(uuid4())
        properties: dict[str, Any] = {
            "title": {"title": [{"type": "text", "text": {"content": title}}]},
            "slug": {"rich_text": [{"type": "text", "text": {"content": slug}}]},
            "author": {"rich_text": [{"type": "text", "text": {"content": author}}]},
            "description": {"rich_text": []},
            "tags": {"multi_select": [{"name": tag} for tag in tags or []]},
            "status": {"select": {"name": status}},
            "published": {"checkbox": status == "Published"},
            "featured": {"checkbox": featured},
            "publishDate": {"date": {"start": publish_date}},
        }
        if category:
            properties["category"] = {"select": {"name": category}}
        self.pages[page_id] = self._page(page_id, database_id, properties, None)
        self.blocks[page_id] = [
            self._block({
                "type": "paragraph",
                "paragraph": {"rich_text": [{"type": "text", "text": {"content": line}}]},
            })
            for line in body.split("\n")
        ]
        return page_id

    def page_body(self, page_id: str) -> str:
        """Plain text of a page's paragraphs, one per line."""
        return "\n".join(
            _plain(block["paragraph"]["rich_text"]) for block in self.blocks.get(page_id, [])
        )

    # -- internals ---------------------------------------------------------------

    @staticmethod
    def _page(
        page_id: str,
        database_id: str,
        properties: dict[str, Any],
        cover: dict[str, Any] | None,
    ) -> dict[str, Any]:
        now = _now_iso()
        return {
            "object": "page",
            "id": page_id,
            "parent": {"type": "database_id", "database_id": database_id},
            "created_time": now,
            "last_edited_time": now,
            "url": f"https://www.notion.so/{page_id.replace('-', '')}",
            "archived": False,
            "cover": cover,
            "properties": properties,
        }

    @staticmethod
    def _block(block: dict[str, Any]) -> dict[str, Any]:
        return {"object": "block", "id": str(uuid4()), **block}

    def _matches(self, page: dict[str, Any], condition: dict[str, Any] | None) -> bool:
        if not condition:
            return True
        if "and" in condition:
            return all(self._matches(page, sub) for sub in condition["and"])
        prop = page["properties"].get(condition["property"]) or {}
        if "checkbox" in condition:
            return bool(prop.get("checkbox")) == condition["checkbox"]["equals"]
        if "select" in condition:
            return (prop.get("select") or {}).get("name") == condition["select"]["equals"]
        if "rich_text" in condition:
            return _plain(prop.get("rich_text")) == condition["rich_text"]["equals"]
        raise AssertionError(f"Unsupported filter: {condition}")

    def _query(self, request: httpx.Request, database_id: str) -> httpx.Response:
        self.query_count += 1
        if database_id in self.failing_databases:
            return httpx.Response(500, json={"object": "error", "message": "boom"})
        if database_id not in self.databases:
            return _not_found(database_id)
        body = json.loads(request.content or b"{}")
        results = [
            page
            for page in self.pages.values()
            if page["parent"]["database_id"] == database_id
            and not page["archived"]
            and self._matches(page, body.get("filter"))
        ]
        if body.get("sorts"):
            results.sort(
                key=lambda page: (
                    (page["properties"].get("publishDate") or {}).get("date") or {}
                ).get("start") or "",
                reverse=True,
            )
        return httpx.Response(200, json={"results": results, "has_more": False, "next_cursor": None})

    def _retrieve_database(self, request: httpx.Request, database_id: str) -> httpx.Response:
        if database_id not in self.databases:
            return _not_found(database_id)
        return httpx.Response(200, json=self.databases[database_id])

    def _create_database(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        database_id = str(uuid4())
        self.databases[database_id] = {
            "object": "database",
            "id": database_id,
            "parent": body["parent"],
            "title": body["title"],
            "properties": body["properties"],
        }
        return httpx.Response(200, json=self.databases[database_id])

    def _create_page(self, request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        database_id = body["parent"]["database_id"]
        if database_id not in self.databases:
            return _not_found(database_id)
        page_id = str(uuid4())
        self.pages[page_id] = self._page(
            page_id, database_id, body["properties"], body.get("cover"),
        )
        self.blocks[page_id] = []
        return httpx.Response(200, json=self.pages[page_id])

    def _retrieve_page(self, request: httpx.Request, page_id: str) -> httpx.Response:
        if page_id not in self.pages:
            return _not_found(page_id)
        return httpx.Response(200, json=self.pages[page_id])

    def _update_page(self, request: httpx.Request, page_id: str) -> httpx.Response:
        if page_id not in self.pages:
            return _not_found(page_id)
        body = json.loads(request.content)
        page = self.pages[page_id]
        page["properties"].update(body.get("properties") or {})
        if body.get("cover"):
            page["cover"] = body["cover"]
        if "archived" in body:
            page["archived"] = body["archived"]
        page["last_edited_time"] = _now_iso()
        return httpx.Response(200, json=page)

    def _list_children(self, request: httpx.Request, block_id: str) -> httpx.Response:
        if block_id not in self.blocks:
            return _not_found(block_id)
        return httpx.Response(
            200,
            json={"results": self.blocks[block_id], "has_more": False, "next_cursor": None},
        )

    def _append_children(self, request: httpx.Request, block_id: str) -> httpx.Response:
        if block_id not in self.blocks:
            return _not_found(block_id)
        body = json.loads(request.content)
        appended = [self._block(child) for child in body["children"]]
        self.blocks[block_id].extend(appended)
        return httpx.Response(200, json={"results": appended})

    def _delete_block(self, request: httpx.Request, block_id: str) -> httpx.Response:
        for children in self.blocks.values():
            for block in children:
                if block["id"] == block_id:
                    children.remove(block)
                    return httpx.Response(200, json={**block, "archived": True})
        return _not_found(block_id)


class FakeClock:
    """Manually advanced clock for TTL tests."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        """Move the clock forward."""
        self.now += seconds


# =============================================================================
# Database
# =============================================================================


@pytest.fixture
async def async_engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine]:
    """
    SQLite engine on a per-test database file; each session gets its own connection.
    """
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the test engine."""
    return async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)


@pytest.fixture
async def db_session(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncGenerator[AsyncSession]:
    """A session on the test engine."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def user_repository(session_factory: async_sessionmaker[AsyncSession]) -> UserRepository:
    """Repository over the test database."""
    return UserRepository(session_factory)


# =============================================================================
# Content and settings
# =============================================================================


@pytest.fixture
def content_dir(tmp_path: Path) -> Path:
    """Empty local posts directory."""
    directory = tmp_path / "posts"
    directory.mkdir()
    return directory


@pytest.fixture
def write_post(content_dir: Path) -> Callable[..., Path]:
    """Factory that writes a local post with YAML front-matter."""
    def _write(
        slug: str,
        body: str = "Some body text.",
        extension: str = ".mdx",
        **front_matter: Any,
    ) -> Path:
        path = content_dir / f"{slug}{extension}"
        header = yaml.safe_dump(front_matter, sort_keys=False) if front_matter else ""
        path.write_text(f"---\n{header}---\n{body}\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def settings(content_dir: Path) -> Settings:
    """Settings with the remote integration configured and enabled."""
    return Settings(
        _env_file=None,
        database_url="sqlite+aiosqlite://",
        NOTION_TOKEN="secret-token",
        NOTION_DATABASE_ID=TEMPLATE_DATABASE_ID,
        NOTION_PARENT_PAGE_ID=PARENT_PAGE_ID,
        ENABLE_NOTION_CMS=True,
        CONTENT_DIR=str(content_dir),
        NEXTAUTH_SECRET=SESSION_SECRET,
        REVALIDATION_SECRET=REVALIDATION_SECRET,
        ADMIN_EMAILS="admin@example.com",
    )


@pytest.fixture
def unconfigured_settings(settings: Settings) -> Settings:
    """Settings without workspace credentials."""
    return settings.model_copy(update={"notion_token": "", "notion_database_id": ""})


# =============================================================================
# Remote API
# =============================================================================


@pytest.fixture
def notion_router() -> Generator[respx.MockRouter]:
    """respx router intercepting outbound HTTP calls."""
    with respx.mock(assert_all_called=False) as router:
        yield router


@pytest.fixture
def fake_notion(notion_router: respx.MockRouter) -> FakeNotion:
    """Stateful workspace API fake."""
    return FakeNotion(notion_router)


@pytest.fixture
async def http_client(settings: Settings) -> AsyncGenerator[httpx.AsyncClient]:
    """Outbound client configured like production."""
    async with build_http_client(settings) as client:
        yield client


@pytest.fixture
def notion_client(http_client: httpx.AsyncClient) -> NotionClient:
    """Workspace client over the test HTTP client."""
    return NotionClient(http_client)


@pytest.fixture
def services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
    fake_notion: FakeNotion,
) -> Services:
    """Fully wired services against the fake workspace API."""
    return build_services(settings, session_factory, http_client)


# =============================================================================
# API client
# =============================================================================


@pytest.fixture
async def client(
    services: Services,
    db_session: AsyncSession,
) -> AsyncGenerator[AsyncClient]:
    """Create a test client with services, settings and database overrides."""
    from api.main import app
    from core.config import get_settings
    from db.session import get_async_session
    from services.container import get_services

    async def override_get_async_session() -> AsyncGenerator[AsyncSession]:
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session
    app.dependency_overrides[get_settings] = lambda: services.settings
    app.dependency_overrides[get_services] = lambda: services

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as test_client:
        yield test_client

    app.dependency_overrides.clear()


@pytest.fixture
def auth_headers(services: Services) -> Callable[..., dict[str, str]]:
    """Factory for Authorization headers carrying a session for any identity."""
    def _headers(
        email: str = "author@example.com",
        name: str = "Author",
        user_id: str = "user-1",
    ) -> dict[str, str]:
        token = create_session_token(user_id, email, name, services.settings)
        return {"Authorization": f"Bearer {token}"}

    return _headers


async def seed_author(
    services: Services,
    fake_notion: FakeNotion,
    email: str = "author@example.com",
    name: str = "Author",
) -> tuple[str, str]:
    """
    Create a user that owns a collection in the fake workspace.

    Returns:
        Tuple of (user id, collection id).
    """
    user = await services.users.create(email, name)
    collection_id = f"collection-{user.id[:8]}"
    fake_notion.add_database(collection_id)
    await services.users.set_collection_id(email, collection_id)
    return user.id, collection_id


@pytest.fixture
def unconfigured_services(
    unconfigured_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
) -> Services:
    """Services without workspace credentials."""
    return build_services(unconfigured_settings, session_factory, http_client)


@pytest.fixture
def use_services(client: AsyncClient) -> Callable[[Services], None]:
    """Swap the service graph served to ``client`` for the rest of the test."""
    from api.main import app
    from core.config import get_settings
    from services.container import get_services

    def _use(replacement: Services) -> None:
        app.dependency_overrides[get_services] = lambda: replacement
        app.dependency_overrides[get_settings] = lambda: replacement.settings

    return _use
