"""Per-user collection provisioning by cloning the template collection's schema."""
import asyncio
import logging
from typing import Any, Protocol

from schemas.user import UserCollection
from services.notion_client import NotionClient

logger = logging.getLogger(__name__)


class CollectionRepository(Protocol):
    """The slice of the user repository the provisioner depends on."""

    async def get_collection_id(self, email: str) -> str | None:
        """Collection id for a user, or None."""
        ...

    async def set_collection_id(self, email: str, collection_id: str) -> bool:
        """Persist the mapping; False if the user doesn't exist."""
        ...

    async def list_with_collections(self) -> list[UserCollection]:
        """Every user that owns a collection."""
        ...


def schema_for_create(properties: dict[str, Any]) -> dict[str, Any]:
    """
    Convert a retrieved property schema into the shape accepted on create.

    Retrieved properties carry ids and names alongside their type configuration;
    create expects ``{name: {type: config}}``. Option ids are dropped so options are
    recreated by name and colour.
    """
    schema: dict[str, Any] = {}
    for name, prop in properties.items():
        prop_type = prop.get("type")
        if not prop_type:
            continue
        config = dict(prop.get(prop_type) or {})
        if prop_type in ("select", "multi_select") and "options" in config:
            config["options"] = [
                {key: value for key, value in option.items() if key != "id"}
                for option in config["options"]
            ]
        schema[name] = {prop_type: config}
    return schema


class CollectionProvisioner:
    """
    Ensures each user has a personal remote collection.

    ``ensure_collection`` holds a per-email lock and re-reads the mapping inside it,
    so concurrent first-time calls in this process create one collection. The lock
    is process-local: two processes can still race and leave an orphaned duplicate.
    """

    def __init__(
        self,
        client: NotionClient,
        repository: CollectionRepository,
        template_collection_id: str,
        parent_page_id: str,
        token: str,
    ) -> None:
        self._client = client
        self._repository = repository
        self._template_collection_id = template_collection_id
        self._parent_page_id = parent_page_id
        self._token = token
        self._locks: dict[str, asyncio.Lock] = {}
        self._lock_users: dict[str, int] = {}

    async def get_collection_id(self, email: str) -> str | None:
        """Lookup only; never creates."""
        return await self._repository.get_collection_id(email)

    async def create_collection(self, email: str, display_name: str) -> str | None:
        """
        Create a collection with the template's property schema.

        Returns the new id, or None on any failure (logged, not raised).
        """
        if not self._token or not self._template_collection_id:
            logger.error("Cannot create collection for %s: Notion is not configured", email)
            return None
        if not self._parent_page_id:
            logger.error("Cannot create collection for %s: NOTION_PARENT_PAGE_ID is not set", email)
            return None
        try:
            template = await self._client.retrieve_database(self._template_collection_id)
            created = await self._client.create_database(
                self._parent_page_id,
                title=f"{display_name}'s Blog Database",
                properties=schema_for_create(template.get("properties") or {}),
            )
        except Exception:
            logger.exception("Error creating collection for %s", email)
            return None
        logger.info("Created personal collection for %s: %s", email, created["id"])
        return created["id"]

    async def ensure_collection(self, email: str, display_name: str) -> str | None:
        """Return the user's collection id, creating and persisting one if needed."""
        collection_id = await self.get_collection_id(email)
        if collection_id:
            return collection_id

        key = email.strip().lower()
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._lock_users[key] = self._lock_users.get(key, 0) + 1
        try:
            async with lock:
                return await self._create_if_missing(email, display_name)
        finally:
            # The last caller waiting on this email removes its lock
            self._lock_users[key] -= 1
            if not self._lock_users[key]:
                del self._lock_users[key]
                del self._locks[key]

    async def _create_if_missing(self, email: str, display_name: str) -> str | None:
        collection_id = await self.get_collection_id(email)
        if collection_id:
            return collection_id
        collection_id = await self.create_collection(email, display_name)
        if collection_id and not await self._repository.set_collection_id(
            email, collection_id,
        ):
            logger.warning(
                "Collection %s created for unknown user %s; mapping not saved",
                collection_id,
                email,
            )
        return collection_id

    async def list_all_collections(self) -> list[UserCollection]:
        """Every user that owns a collection."""
        return await self._repository.list_with_collections()
