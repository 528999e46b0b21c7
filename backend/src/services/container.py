"""
Application service graph.

Every long-lived collaborator is constructed once at startup and passed by
reference to its consumers. Routers reach it through the ``get_services``
dependency, which tests override.
"""
from dataclasses import dataclass

import httpx
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.config import Settings
from core.page_cache import PageCache
from services.blog_service import BlogService
from services.local_content import LocalContentSource
from services.notion_client import NotionClient
from services.provisioner import CollectionProvisioner
from services.remote_store import RemoteArticleStore
from services.user_repository import UserRepository


@dataclass
class Services:
    """Long-lived services shared by all requests."""

    settings: Settings
    users: UserRepository
    provisioner: CollectionProvisioner
    remote: RemoteArticleStore
    local: LocalContentSource
    blog: BlogService
    page_cache: PageCache
    http_client: httpx.AsyncClient

    def invalidate_caches(self) -> None:
        """Clear the aggregation caches and every cached response."""
        self.blog.invalidate()
        self.page_cache.clear()


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    http_client: httpx.AsyncClient,
) -> Services:
    """Wire the service graph from settings, a session factory and an HTTP client."""
    users = UserRepository(session_factory)
    notion = NotionClient(http_client)
    provisioner = CollectionProvisioner(
        notion,
        users,
        template_collection_id=settings.notion_database_id,
        parent_page_id=settings.notion_parent_page_id,
        token=settings.notion_token,
    )
    remote = RemoteArticleStore(
        notion,
        provisioner,
        token=settings.notion_token,
        base_collection_id=settings.notion_database_id,
        cache_ttl_seconds=settings.notion_cache_revalidate,
    )
    local = LocalContentSource(settings.content_dir)
    blog = BlogService(
        local,
        remote,
        remote_enabled=settings.enable_notion_cms,
        cache_ttl_seconds=settings.blog_cache_ttl,
    )
    return Services(
        settings=settings,
        users=users,
        provisioner=provisioner,
        remote=remote,
        local=local,
        blog=blog,
        page_cache=PageCache(settings.page_cache_ttl),
        http_client=http_client,
    )


# Global service state using a container to avoid global statement
class _ServicesState:
    """Container for the global service graph."""

    services: Services | None = None


_state = _ServicesState()


def get_services() -> Services:
    """
    Get the global service graph.

    Raises:
        RuntimeError: If called before application startup.
    """
    if _state.services is None:
        raise RuntimeError("Services are not initialized")
    return _state.services


def set_services(services: Services | None) -> None:
    """Set the global service graph."""
    _state.services = services
