"""Persistence for user records and their collection mapping."""
import logging
from datetime import UTC, datetime

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from models.user import User
from schemas.user import UserCollection
from services.exceptions import UserAlreadyExistsError

logger = logging.getLogger(__name__)


def normalize_email(email: str) -> str:
    """Emails are the login key; compare them trimmed and lowercased."""
    return email.strip().lower()


class UserRepository:
    """
    User table access with one short-lived session per operation.

    Takes a session factory rather than a request session so long-lived services
    (the provisioner, background tasks) can use it outside a request.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def get_by_email(self, email: str) -> User | None:
        """User by email, or None."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.email == normalize_email(email)),
            )
            return result.scalar_one_or_none()

    async def get_by_id(self, user_id: str) -> User | None:
        """User by id, or None."""
        async with self._session_factory() as session:
            return await session.get(User, user_id)

    async def create(
        self,
        email: str,
        name: str,
        password_hash: str | None = None,
        provider: str | None = None,
        avatar: str | None = None,
    ) -> User:
        """
        Insert a new user, counting the creation as the first login.

        Raises:
            UserAlreadyExistsError: If the email is taken.
        """
        now = datetime.now(UTC)
        user = User(
            email=normalize_email(email),
            name=name,
            password_hash=password_hash,
            provider=provider,
            avatar=avatar,
            last_login_at=now,
            login_count=1,
        )
        async with self._session_factory() as session:
            session.add(user)
            try:
                await session.commit()
            except IntegrityError as e:
                await session.rollback()
                raise UserAlreadyExistsError(email) from e
        logger.info("user_created email=%s provider=%s", user.email, provider)
        return user

    async def record_login(self, user_id: str) -> User | None:
        """Stamp last login and bump the login counter."""
        async with self._session_factory() as session:
            user = await session.get(User, user_id)
            if user is None:
                return None
            user.last_login_at = datetime.now(UTC)
            user.login_count = (user.login_count or 0) + 1
            await session.commit()
            return user

    async def get_collection_id(self, email: str) -> str | None:
        """The user's collection id, or None if the user or mapping is absent."""
        user = await self.get_by_email(email)
        return user.collection_id if user else None

    async def set_collection_id(self, email: str, collection_id: str) -> bool:
        """Persist the collection mapping. Returns False if the user doesn't exist."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(User).where(User.email == normalize_email(email)),
            )
            user = result.scalar_one_or_none()
            if user is None:
                return False
            user.collection_id = collection_id
            await session.commit()
            return True

    async def list_all(self) -> list[User]:
        """Every user, oldest first."""
        async with self._session_factory() as session:
            result = await session.execute(select(User).order_by(User.created_at))
            return list(result.scalars().all())

    async def list_with_collections(self) -> list[UserCollection]:
        """Users that own a collection, projected to email/id/display name."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(User)
                .where(User.collection_id.is_not(None))
                .order_by(User.created_at),
            )
            return [
                UserCollection(
                    email=user.email,
                    collection_id=user.collection_id,
                    display_name=user.name,
                )
                for user in result.scalars().all()
            ]

    async def count(self) -> int:
        """Number of users."""
        async with self._session_factory() as session:
            result = await session.execute(select(func.count()).select_from(User))
            return result.scalar_one()

    async def count_logins_since(self, since: datetime) -> int:
        """Number of users whose last login is at or after ``since``."""
        async with self._session_factory() as session:
            result = await session.execute(
                select(func.count()).select_from(User).where(User.last_login_at >= since),
            )
            return result.scalar_one()
