"""Pydantic schemas for user and session endpoints."""
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class RegisterRequest(BaseModel):
    """Credential registration."""

    email: str = Field(..., min_length=3, max_length=255)
    password: str = Field(..., min_length=6, max_length=256)
    name: str = Field(..., min_length=1, max_length=255)


class LoginRequest(BaseModel):
    """Credential login."""

    email: str
    password: str


class UserResponse(BaseModel):
    """Response model for user info."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    provider: str | None = None
    avatar: str | None = None
    collection_id: str | None = None
    created_at: datetime
    last_login_at: datetime | None = None
    login_count: int = 0


class SessionResponse(BaseModel):
    """Issued session token and the user it belongs to."""

    token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class CollectionResponse(BaseModel):
    """The caller's personal remote collection id (null if not provisioned)."""

    collection_id: str | None


class EnsureCollectionRequest(BaseModel):
    """Request to provision the caller's collection."""

    email: str | None = None
    name: str | None = None


class UserCollection(BaseModel):
    """A user that owns a remote collection."""

    email: str
    collection_id: str
    display_name: str
