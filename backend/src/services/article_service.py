"""
Service layer for authoring remote articles.

Ownership is decided by membership in the caller's own collection: an article id
that is not among the caller's records is reported as not found.
"""
import logging

from schemas.article import ArticleCreate, ArticleUpdate
from schemas.post import Post, PostMeta
from services.container import Services
from services.exceptions import ArticleNotFoundError, RemoteStoreError

logger = logging.getLogger(__name__)


async def list_user_articles(services: Services, email: str) -> list[PostMeta]:
    """Drafts and published articles in the user's collection."""
    return await services.remote.list_for_user(email)


async def get_owned_article(services: Services, email: str, article_id: str) -> PostMeta:
    """
    Find an article by remote id among the user's own articles.

    Raises:
        ArticleNotFoundError: If the id is not in the user's collection.
    """
    for article in await services.remote.list_for_user(email):
        if article.remote_id == article_id:
            return article
    raise ArticleNotFoundError(article_id)


async def get_article(services: Services, article_id: str, email: str | None) -> Post:
    """
    Resolve an article for display.

    An authenticated caller's own articles (drafts included) are matched by id
    first; everyone else only sees published articles, matched by slug.

    Raises:
        ArticleNotFoundError: If neither lookup finds the article.
    """
    if email is not None:
        try:
            await get_owned_article(services, email, article_id)
        except ArticleNotFoundError:
            pass
        else:
            article = await services.remote.get_by_id(article_id)
            if article is not None:
                return article
    article = await services.remote.get_by_slug(article_id)
    if article is None:
        raise ArticleNotFoundError(article_id)
    return article


async def create_article(
    services: Services,
    email: str,
    author_name: str,
    data: ArticleCreate,
) -> Post:
    """
    Create an article in the author's collection, provisioning it on first use.

    Raises:
        NotConfiguredError: Remote integration not configured.
        RemoteStoreError: Provisioning or the upstream write failed.
    """
    collection_id = await services.provisioner.ensure_collection(email, author_name)
    if not collection_id:
        raise RemoteStoreError("provision")
    article = await services.remote.create(data, collection_id, author_name)
    services.invalidate_caches()
    return article


async def update_article(
    services: Services,
    email: str,
    article_id: str,
    data: ArticleUpdate,
) -> Post:
    """
    Apply a partial update to one of the user's articles.

    Raises:
        ArticleNotFoundError: If the user does not own the article.
        NotConfiguredError: Remote integration not configured.
        RemoteStoreError: The upstream write failed.
    """
    await get_owned_article(services, email, article_id)
    article = await services.remote.update(article_id, data)
    services.invalidate_caches()
    return article


async def delete_article(services: Services, email: str, article_id: str) -> None:
    """
    Archive one of the user's articles.

    Raises:
        ArticleNotFoundError: If the user does not own the article.
        NotConfiguredError: Remote integration not configured.
        RemoteStoreError: The upstream write failed.
    """
    await get_owned_article(services, email, article_id)
    await services.remote.archive(article_id)
    services.invalidate_caches()
    logger.info("article_deleted id=%s owner=%s", article_id, email)
