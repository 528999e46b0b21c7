"""Pydantic schemas for authoring endpoints (remote articles)."""
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from schemas.post import Post, PostMeta

ArticleStatus = Literal["draft", "published"]


def _normalize_tags(v: list[str] | None) -> list[str] | None:
    if v is None:
        return None
    tags = []
    for tag in v:
        tag = str(tag).strip()
        if tag and tag not in tags:
            tags.append(tag)
    return tags


class ArticleCreate(BaseModel):
    """
    Schema for creating an article.

    ``title`` and ``content`` are optional at the schema level so the endpoint can
    answer a missing value with 400 rather than a schema validation error.
    """

    title: str | None = None
    description: str = ""
    content: str | None = None  # HTML or markdown; stored as plain text paragraphs
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    cover_image: str | None = None
    status: ArticleStatus = "draft"
    featured: bool = False

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str]:
        """Strip whitespace and drop empty or duplicate tags."""
        return _normalize_tags(v) or []


class ArticleUpdate(BaseModel):
    """Schema for a partial article update. Only fields that are sent are applied."""

    title: str | None = None
    description: str | None = None
    content: str | None = None
    tags: list[str] | None = None
    category: str | None = None  # empty string clears the category
    cover_image: str | None = None
    status: ArticleStatus | None = None
    featured: bool | None = None

    @field_validator("tags", mode="before")
    @classmethod
    def normalize_tags(cls, v: list[str] | None) -> list[str] | None:
        """Strip whitespace and drop empty or duplicate tags."""
        return _normalize_tags(v)

    @field_validator("title")
    @classmethod
    def check_title_not_empty(cls, v: str | None) -> str | None:
        """Validate title is not empty (if provided)."""
        if v is not None and not v.strip():
            raise ValueError("Title cannot be empty")
        return v


class ArticleListResponse(BaseModel):
    """A user's articles (drafts and published)."""

    articles: list[PostMeta]
    message: str | None = None


class ArticleResponse(BaseModel):
    """Single article with an optional status message."""

    article: Post
    message: str | None = None


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str
