"""Aggregates for the admin dashboard."""
import asyncio
import logging
from datetime import UTC, datetime, timedelta

from models.user import User
from schemas.admin import AdminStats, AdminUser
from services.container import Services

logger = logging.getLogger(__name__)

RECENT_LOGIN_WINDOW = timedelta(days=7)


async def _articles_count(services: Services, user: User) -> int:
    if not user.collection_id:
        return 0
    return len(await services.remote.list_for_user(user.email))


async def list_users(services: Services) -> list[AdminUser]:
    """Every user with the number of articles in their collection."""
    users = await services.users.list_all()
    counts = await asyncio.gather(*(_articles_count(services, user) for user in users))
    return [
        AdminUser(
            id=user.id,
            email=user.email,
            name=user.name,
            provider=user.provider,
            avatar=user.avatar,
            collection_id=user.collection_id,
            created_at=user.created_at,
            last_login_at=user.last_login_at,
            login_count=user.login_count,
            articles_count=count,
        )
        for user, count in zip(users, counts, strict=True)
    ]


async def get_stats(services: Services, now: datetime | None = None) -> AdminStats:
    """User, collection and article totals plus logins in the last week."""
    now = now or datetime.now(UTC)
    total_users = await services.users.count()
    collections = await services.users.list_with_collections()
    recent_logins = await services.users.count_logins_since(now - RECENT_LOGIN_WINDOW)
    articles = await services.blog.list_all()
    return AdminStats(
        total_users=total_users,
        total_collections=len(collections),
        total_articles=len(articles),
        recent_logins=recent_logins,
    )
