"""
Public read endpoints over the unified post feed.

Responses are stored in the page cache under the request path and the query
parameters the route reads, tagged so that ``/api/revalidate`` and article writes
can drop them.
"""
from collections.abc import Awaitable, Callable
from typing import Any
from urllib.parse import urlencode

from fastapi import APIRouter, Depends, HTTPException, Query, Request
from pydantic import BaseModel

from api.dependencies import get_services
from core.page_cache import TAG_CATEGORIES, TAG_POSTS, TAG_TAGS
from schemas.post import (
    CategoryListResponse,
    Post,
    PostListResponse,
    PostsResponse,
    TagListResponse,
)
from services.container import Services

router = APIRouter(prefix="/api", tags=["posts"])


def _cache_key(request: Request, **params: Any) -> str:
    """Request path plus the query parameters the route reads, in a fixed order."""
    if not params:
        return request.url.path
    return f"{request.url.path}?{urlencode(sorted(params.items()))}"


async def _cached(
    key: str,
    services: Services,
    tags: tuple[str, ...],
    build: Callable[[], Awaitable[BaseModel]],
) -> dict[str, Any]:
    payload = services.page_cache.get(key)
    if payload is None:
        generation = services.page_cache.generation
        payload = (await build()).model_dump(mode="json")
        services.page_cache.set(key, payload, tags=tags, generation=generation)
    return payload


@router.get("/posts", response_model=PostListResponse)
async def list_posts(
    request: Request,
    offset: int = Query(default=0, ge=0, description="Pagination offset"),
    limit: int = Query(default=10, ge=1, le=100, description="Pagination limit"),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Newest-first timeline of local and remote posts."""
    async def build() -> PostListResponse:
        items, total = await services.blog.page(offset, limit)
        return PostListResponse(
            items=items,
            total=total,
            offset=offset,
            limit=limit,
            has_more=offset + len(items) < total,
        )

    return await _cached(
        _cache_key(request, offset=offset, limit=limit), services, (TAG_POSTS,), build
    )


@router.get("/posts/featured", response_model=PostsResponse)
async def list_featured(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Featured posts from both sources."""
    async def build() -> PostsResponse:
        return PostsResponse(posts=await services.blog.featured())

    return await _cached(_cache_key(request), services, (TAG_POSTS,), build)


@router.get("/posts/{slug}", response_model=Post)
async def get_post(
    slug: str,
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Full post by slug; local files win over remote articles."""
    key = _cache_key(request)
    payload = services.page_cache.get(key)
    if payload is None:
        generation = services.page_cache.generation
        post = await services.blog.get_by_slug(slug)
        if post is None:
            raise HTTPException(status_code=404, detail="Post not found")
        payload = post.model_dump(mode="json")
        services.page_cache.set(key, payload, tags=(TAG_POSTS,), generation=generation)
    return payload


@router.get("/posts/{slug}/related", response_model=PostsResponse)
async def list_related(
    slug: str,
    request: Request,
    limit: int = Query(default=3, ge=1, le=20),
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Posts sharing tags or category with the given post."""
    async def build() -> PostsResponse:
        return PostsResponse(posts=await services.blog.related(slug, limit))

    return await _cached(_cache_key(request, limit=limit), services, (TAG_POSTS,), build)


@router.get("/tags", response_model=TagListResponse)
async def list_tags(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Tag counts summed across sources, most used first."""
    async def build() -> TagListResponse:
        return TagListResponse(tags=await services.blog.all_tags())

    return await _cached(_cache_key(request), services, (TAG_TAGS,), build)


@router.get("/tags/{tag}/posts", response_model=PostsResponse)
async def list_posts_by_tag(
    tag: str,
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Posts with the tag (case-insensitive)."""
    async def build() -> PostsResponse:
        return PostsResponse(posts=await services.blog.by_tag(tag))

    return await _cached(_cache_key(request), services, (TAG_TAGS, TAG_POSTS), build)


@router.get("/categories", response_model=CategoryListResponse)
async def list_categories(
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Category counts summed across sources, largest first."""
    async def build() -> CategoryListResponse:
        return CategoryListResponse(categories=await services.blog.all_categories())

    return await _cached(_cache_key(request), services, (TAG_CATEGORIES,), build)


@router.get("/categories/{category}/posts", response_model=PostsResponse)
async def list_posts_by_category(
    category: str,
    request: Request,
    services: Services = Depends(get_services),
) -> dict[str, Any]:
    """Posts in the category (case-insensitive)."""
    async def build() -> PostsResponse:
        return PostsResponse(posts=await services.blog.by_category(category))

    return await _cached(_cache_key(request), services, (TAG_CATEGORIES, TAG_POSTS), build)
