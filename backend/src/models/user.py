"""User model for registered authors."""
from datetime import datetime
from uuid import uuid4

from sqlalchemy import DateTime, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from models.base import Base, TimestampMixin


class User(Base, TimestampMixin):
    """
    Registered user. Created on first credential registration or first SSO sign-in.

    ``collection_id`` maps the user to their personal remote collection (the
    workspace database holding their articles). Users are never hard-deleted.
    """

    __tablename__ = "users"

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=lambda: str(uuid4()),
    )
    email: Mapped[str] = mapped_column(String(255), unique=True, index=True)
    name: Mapped[str] = mapped_column(String(255))
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    provider: Mapped[str | None] = mapped_column(
        String(50),
        nullable=True,
        comment="SSO provider name (google, github); null for credential users",
    )
    avatar: Mapped[str | None] = mapped_column(String(1024), nullable=True)
    bio: Mapped[str | None] = mapped_column(String(2000), nullable=True)
    collection_id: Mapped[str | None] = mapped_column(
        String(64),
        nullable=True,
        comment="Id of the user's personal remote collection",
    )
    last_login_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True,
    )
    login_count: Mapped[int] = mapped_column(Integer, default=0)
