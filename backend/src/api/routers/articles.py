"""Authoring endpoints for remote articles."""
from fastapi import APIRouter, Depends, HTTPException, Query

from api.dependencies import get_current_user, get_optional_user, get_services
from core.auth import SessionUser
from schemas.article import (
    ArticleCreate,
    ArticleListResponse,
    ArticleResponse,
    ArticleUpdate,
    MessageResponse,
)
from services import article_service
from services.container import Services
from services.exceptions import ArticleNotFoundError, NotConfiguredError, RemoteStoreError

router = APIRouter(prefix="/api/articles", tags=["articles"])


def _require_remote(services: Services) -> None:
    if not services.remote.is_configured():
        raise HTTPException(status_code=503, detail="Notion is not configured")


@router.get("", response_model=ArticleListResponse)
async def list_articles(
    author: str | None = Query(default=None, description="Author email; must match the session"),  # noqa: E501
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> ArticleListResponse:
    """List the caller's drafts and published articles."""
    _require_remote(services)
    if author is None:
        return ArticleListResponse(articles=[], message="No author specified")
    if author.strip().lower() != current_user.email.lower():
        raise HTTPException(status_code=401, detail="Unauthorized")
    articles = await article_service.list_user_articles(services, current_user.email)
    return ArticleListResponse(articles=articles)


@router.post("", response_model=ArticleResponse, status_code=201)
async def create_article(
    data: ArticleCreate,
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> ArticleResponse:
    """
    Create an article in the caller's collection.

    The collection is provisioned on first use. The body is stored as plain-text
    paragraphs; markup is stripped.
    """
    _require_remote(services)
    if not (data.title or "").strip() or not (data.content or "").strip():
        raise HTTPException(status_code=400, detail="Title and content are required")
    try:
        article = await article_service.create_article(
            services, current_user.email, current_user.name, data,
        )
    except NotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except RemoteStoreError as e:
        raise HTTPException(status_code=500, detail="Failed to create article") from e
    return ArticleResponse(article=article, message="Article created successfully")


@router.get("/{article_id}", response_model=ArticleResponse)
async def get_article(
    article_id: str,
    current_user: SessionUser | None = Depends(get_optional_user),
    services: Services = Depends(get_services),
) -> ArticleResponse:
    """
    Get an article by remote id (caller's own, drafts included) or by slug
    (published only).
    """
    email = current_user.email if current_user else None
    try:
        article = await article_service.get_article(services, article_id, email)
    except ArticleNotFoundError as e:
        raise HTTPException(status_code=404, detail="Article not found") from e
    return ArticleResponse(article=article)


@router.put("/{article_id}", response_model=ArticleResponse)
async def update_article(
    article_id: str,
    data: ArticleUpdate,
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> ArticleResponse:
    """Partially update one of the caller's articles."""
    _require_remote(services)
    try:
        article = await article_service.update_article(
            services, current_user.email, article_id, data,
        )
    except ArticleNotFoundError as e:
        raise HTTPException(status_code=404, detail="Article not found") from e
    except NotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except RemoteStoreError as e:
        raise HTTPException(status_code=500, detail="Failed to update article") from e
    return ArticleResponse(article=article, message="Article updated successfully")


@router.delete("/{article_id}", response_model=MessageResponse)
async def delete_article(
    article_id: str,
    current_user: SessionUser = Depends(get_current_user),
    services: Services = Depends(get_services),
) -> MessageResponse:
    """Archive one of the caller's articles. Archived articles cannot be restored here."""
    _require_remote(services)
    try:
        await article_service.delete_article(services, current_user.email, article_id)
    except ArticleNotFoundError as e:
        raise HTTPException(status_code=404, detail="Article not found") from e
    except NotConfiguredError as e:
        raise HTTPException(status_code=503, detail=str(e)) from e
    except RemoteStoreError as e:
        raise HTTPException(status_code=500, detail="Failed to delete article") from e
    return MessageResponse(message="Article deleted successfully")
