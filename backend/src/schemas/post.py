"""Pydantic schemas for the unified post shape shared by local and remote sources."""
from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field

PostSource = Literal["local", "remote"]


class Author(BaseModel):
    """Post author as shown on the site."""

    name: str = "Anonymous"
    avatar: str | None = None
    bio: str | None = None


class ReadingTime(BaseModel):
    """Reading-time summary computed from the post body."""

    text: str
    minutes: float
    time: int  # milliseconds
    words: int


class PostMeta(BaseModel):
    """
    Post metadata without the body.

    ``remote_id``, ``remote_url`` and ``last_edited_time`` are only set for posts that
    come from a user's remote collection.
    """

    slug: str
    title: str
    description: str = ""
    date: datetime
    updated: datetime | None = None
    reading_time: ReadingTime
    tags: list[str] = Field(default_factory=list)
    category: str | None = None
    author: Author = Field(default_factory=Author)
    cover_image: str | None = None
    featured: bool = False
    published: bool = True
    source: PostSource = "local"
    remote_id: str | None = None
    remote_url: str | None = None
    last_edited_time: datetime | None = None

    def to_meta(self) -> "PostMeta":
        """Project to metadata only (drops the body on full posts)."""
        return PostMeta.model_validate(self.model_dump(include=set(PostMeta.model_fields)))


class Post(PostMeta):
    """Full post including the body text."""

    content: str = ""


class TagCount(BaseModel):
    """Tag with the number of posts using it."""

    tag: str
    count: int


class CategoryCount(BaseModel):
    """Category with the number of posts in it."""

    category: str
    count: int


class PostListResponse(BaseModel):
    """Paginated slice of the unified timeline."""

    items: list[PostMeta]
    total: int
    offset: int
    limit: int
    has_more: bool


class TagListResponse(BaseModel):
    """Tag counts across all sources."""

    tags: list[TagCount]


class CategoryListResponse(BaseModel):
    """Category counts across all sources."""

    categories: list[CategoryCount]


class PostsResponse(BaseModel):
    """Unpaginated list of posts (featured, filtered or related)."""

    posts: list[PostMeta]
