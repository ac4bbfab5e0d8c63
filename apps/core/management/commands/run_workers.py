"""
Run the derived-effects workers inside Django's process setup:

    python manage.py run_workers --log-level DEBUG
"""

import asyncio
import logging

import structlog
from django.core.management.base import BaseCommand

log = structlog.get_logger(__name__)


class Command(BaseCommand):
    help = "Consume committed-match events and apply badges, hall entries, roasts and catalog upkeep."

    def add_arguments(self, parser) -> None:
        parser.add_argument(
            "--log-level",
            default="INFO",
            choices=["DEBUG", "INFO", "WARNING", "ERROR"],
            type=str.upper,
            help="Level for the apps and infrastructure loggers.",
        )

    def handle(self, *args, **options) -> None:
        # imported here: the module subscribes to the broker at import time
        from infrastructure.worker import main

        for name in ("apps", "infrastructure"):
            logging.getLogger(name).setLevel(options["log_level"])

        try:
            asyncio.run(main())
        except KeyboardInterrupt:
            log.warning("Interrupted, workers stopped")
