# apps/achievements/management/commands/sync_catalogs.py
# ================================================================================
import asyncio

import structlog
from django.core.management.base import BaseCommand, CommandError

from apps.achievements.conf import BADGE_CATALOG
from apps.achievements.services.catalog import BadgeCatalog, MilestoneCatalog
from apps.core.services.narrative import NarrativeGenerator
from common.messaging.types import CatalogSyncPayload

log = structlog.get_logger(__name__).bind(command="sync_catalogs")


class Command(BaseCommand):
    """Materialises missing catalog badges and releases the next milestone."""

    help = "Top up the badge and milestone catalogs."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--all",
            action="store_true",
            help="Create every missing badge now instead of one batch.",
        )
        parser.add_argument(
            "--force",
            action="store_true",
            help="Release the next milestone even if the last one is recent.",
        )
        parser.add_argument(
            "--via-broker",
            action="store_true",
            help="Ask the workers to do it instead of running in this process.",
        )

    def handle(self, *args, **options):
        try:
            if options["via_broker"]:
                asyncio.run(self.publish(force=options["force"]))
            else:
                asyncio.run(self.sync(everything=options["all"], force=options["force"]))
        except Exception as e:
            msg = f"Catalog sync failed: {e}"
            raise CommandError(msg) from e

    async def publish(self, *, force: bool) -> None:
        from infrastructure.broker import broker_context, get_publisher
        from infrastructure.queues import QUEUES

        async with broker_context():
            await get_publisher().publish(CatalogSyncPayload(force=force), queue=QUEUES.SYNC_CATALOGS)
        self.stdout.write(self.style.SUCCESS("✓ Catalog sync requested."))

    async def sync(self, *, everything: bool, force: bool) -> None:
        narrator = NarrativeGenerator()
        try:
            badges = BadgeCatalog(narrator)
            created = []
            # each batch is bounded, so the catalog size bounds the loop
            for _ in range(len(BADGE_CATALOG)):
                batch = await badges.ensure()
                created.extend(batch)
                if not batch or not everything:
                    break
            filled = await badges.backfill_descriptions()
            milestone = await MilestoneCatalog().release_next(force=force)
        finally:
            await narrator.close()

        log.info("Catalogs synced", badges=len(created), descriptions=filled, milestone=milestone and milestone.slug)
        self.stdout.write(f"Badges created: {', '.join(b.slug for b in created) or 'none'}")
        self.stdout.write(f"Descriptions filled: {filled}")
        self.stdout.write(f"Milestone released: {milestone.slug if milestone else 'none'}")
        self.stdout.write(self.style.SUCCESS("✓ Catalogs are up to date."))
