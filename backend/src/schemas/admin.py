"""Pydantic schemas for admin endpoints."""
from datetime import datetime

from pydantic import BaseModel


class AdminUser(BaseModel):
    """User row on the admin dashboard."""

    id: str
    email: str
    name: str
    provider: str | None
    avatar: str | None
    collection_id: str | None
    created_at: datetime
    last_login_at: datetime | None
    login_count: int
    articles_count: int


class AdminUserListResponse(BaseModel):
    """All users with article counts."""

    users: list[AdminUser]


class AdminStats(BaseModel):
    """Aggregated counts for the admin dashboard."""

    total_users: int
    total_collections: int
    total_articles: int
    recent_logins: int


class SendEmailRequest(BaseModel):
    """Notification email request; fields are checked by the endpoint."""

    to: str | None = None
    subject: str | None = None
    message: str | None = None


class SendEmailResponse(BaseModel):
    """Result of a simulated send."""

    success: bool
    message_id: str
    message: str
