"""
Collection backfill task.

Ensures every registered user owns a remote collection. Useful after enabling the
remote integration on an instance that already has users, or after background
provisioning failed at registration time.

Usage:
    python -m tasks.provision_collections

A failure for one user is logged and counted; it never aborts the run.
"""
import asyncio
import logging
from dataclasses import dataclass, field

from core.config import Settings, get_settings
from db.session import async_session_factory, create_tables, engine
from services.container import Services, build_services
from services.notion_client import build_http_client

logger = logging.getLogger(__name__)


@dataclass
class ProvisionStats:
    """Statistics from a backfill run."""

    already_provisioned: int = 0
    created: int = 0
    failed: int = 0
    failed_emails: list[str] = field(default_factory=list)

    def to_dict(self) -> dict[str, int]:
        """Convert to simple dict for logging/return."""
        return {
            "already_provisioned": self.already_provisioned,
            "created": self.created,
            "failed": self.failed,
        }


async def provision_missing_collections(services: Services) -> ProvisionStats:
    """Create a collection for every user that lacks one."""
    stats = ProvisionStats()
    if not services.remote.is_configured():
        logger.warning("Notion is not configured; nothing to provision")
        return stats

    for user in await services.users.list_all():
        if user.collection_id:
            stats.already_provisioned += 1
            continue
        try:
            collection_id = await services.provisioner.ensure_collection(user.email, user.name)
        except Exception:
            logger.exception("Error provisioning collection for %s", user.email)
            collection_id = None
        if collection_id:
            stats.created += 1
        else:
            stats.failed += 1
            stats.failed_emails.append(user.email)

    if stats.created:
        services.invalidate_caches()
    return stats


async def run_provisioning(settings: Settings | None = None) -> ProvisionStats:
    """Wire services from settings and run the backfill."""
    settings = settings or get_settings()
    logger.info("Starting collection backfill")
    await create_tables(engine)
    async with build_http_client(settings) as http_client:
        services = build_services(settings, async_session_factory, http_client)
        stats = await provision_missing_collections(services)
    await engine.dispose()
    logger.info("Collection backfill complete: %s", stats.to_dict())
    if stats.failed_emails:
        logger.warning("Collection backfill failed for: %s", ", ".join(stats.failed_emails))
    return stats


def main() -> None:
    """Entry point for running the backfill as a script."""
    logging.basicConfig(
        level=logging.INFO,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )
    asyncio.run(run_provisioning())


if __name__ == "__main__":
    main()
