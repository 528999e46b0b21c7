"""Fuzzy search over local posts."""
from fastapi import APIRouter, Depends, Query

from api.dependencies import get_services
from schemas.search import SearchResponse
from services.container import Services
from services.search_service import search_posts

router = APIRouter(prefix="/api/search", tags=["search"])


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(default="", description="Search query"),
    limit: int = Query(default=10, ge=1, le=50, description="Maximum number of results"),
    services: Services = Depends(get_services),
) -> SearchResponse:
    """
    Search local posts by title, description, tags, category and author.

    Remote articles are not searched. An empty or one-character query returns no
    results.
    """
    if not q.strip():
        return SearchResponse(results=[])
    return SearchResponse(results=search_posts(services.local.list_all(), q, limit))
