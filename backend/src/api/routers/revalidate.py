"""Webhook for external cache revalidation."""
import hmac
import logging
from datetime import UTC, datetime

from fastapi import APIRouter, Depends, HTTPException

from api.dependencies import get_services
from core.page_cache import ALL_TAGS
from schemas.search import RevalidateRequest, RevalidateResponse
from services.container import Services

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/revalidate", tags=["revalidate"])

# Revalidated when the request names neither a path nor a tag
DEFAULT_PATHS = ("/api/posts", "/api/tags", "/api/categories")


def _secret_matches(supplied: str | None, expected: str) -> bool:
    if not expected or not supplied:
        return False
    return hmac.compare_digest(supplied.encode(), expected.encode())


@router.post("", response_model=RevalidateResponse)
async def revalidate(
    data: RevalidateRequest,
    services: Services = Depends(get_services),
) -> RevalidateResponse:
    """
    Drop cached content after an external edit.

    Always clears the aggregation and remote caches. Cached responses are dropped
    for the supplied path and/or tag, or for the default paths and every tag when
    neither is given. Refused when no revalidation secret is configured.
    """
    if not _secret_matches(data.secret, services.settings.revalidation_secret):
        logger.warning("revalidate_rejected reason=invalid_secret")
        raise HTTPException(status_code=401, detail="Invalid secret")

    services.blog.invalidate()
    services.remote.invalidate()

    if data.path or data.tag:
        paths = [data.path] if data.path else []
        tags = [data.tag] if data.tag else []
    else:
        paths = list(DEFAULT_PATHS)
        tags = list(ALL_TAGS)
    for path in paths:
        services.page_cache.revalidate_path(path)
    for tag in tags:
        services.page_cache.revalidate_tag(tag)

    logger.info("revalidated paths=%s tags=%s", paths, tags)
    return RevalidateResponse(
        message="Revalidated",
        paths=paths,
        tags=tags,
        timestamp=datetime.now(UTC),
    )


@router.get("", response_model=RevalidateResponse)
async def revalidate_status() -> RevalidateResponse:
    """Liveness check for webhook configuration."""
    return RevalidateResponse(
        message="Revalidation endpoint is active",
        timestamp=datetime.now(UTC),
    )
