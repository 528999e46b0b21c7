"""Pydantic schemas for search and revalidation endpoints."""
from datetime import datetime

from pydantic import BaseModel, Field


class SearchResult(BaseModel):
    """A post matched by the fuzzy search. ``score`` is in [0, 1], higher is better."""

    slug: str
    title: str
    description: str
    tags: list[str]
    score: float
    matches: list[str] = Field(default_factory=list)  # fields that matched


class SearchResponse(BaseModel):
    """Search results ordered by score."""

    results: list[SearchResult]


class RevalidateRequest(BaseModel):
    """External revalidation webhook body."""

    secret: str | None = None
    path: str | None = None
    tag: str | None = None


class RevalidateResponse(BaseModel):
    """What was revalidated and when."""

    message: str
    paths: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)
    timestamp: datetime
