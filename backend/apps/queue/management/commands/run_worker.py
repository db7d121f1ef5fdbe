# apps/queue/management/commands/run_worker.py

import asyncio
import logging

from django.conf import settings
from django.core.management.base import BaseCommand

from apps.queue.coordinator import WorkCoordinator

logger = logging.getLogger(__name__)


class Command(BaseCommand):
    help = "Claim PENDING domains and run them through the crawl and submission pipeline."

    def add_arguments(self, parser):
        parser.add_argument(
            "--batch-size",
            type=int,
            default=getattr(settings, "WORKER_BATCH_SIZE", 4),
            help="Domains processed concurrently per cycle",
        )
        parser.add_argument(
            "--poll-interval",
            type=float,
            default=getattr(settings, "WORKER_POLL_INTERVAL", 3),
            help="Seconds to sleep when no domain is pending",
        )
        parser.add_argument(
            "--once",
            action="store_true",
            help="Run a single cycle and exit",
        )

    def handle(self, *args, **options):
        counters = asyncio.run(
            self._run(options["batch_size"], options["poll_interval"], options["once"])
        )
        self.stdout.write(self.style.SUCCESS(
            f"Worker stopped: processed={counters['processed']}, "
            f"idle_cycles={counters['idle_cycles']}, reset={counters['reset']}"
        ))

    async def _run(self, batch_size: int, poll_interval: float, once: bool) -> dict:
        stop_event = asyncio.Event()
        coordinator = WorkCoordinator()

        # First signal stops after the current cycle, a second one closes the browsers
        coordinator.pool.install_signal_handlers(asyncio.get_running_loop(), stop_event)

        return await coordinator.run(
            batch_size=batch_size,
            poll_interval=poll_interval,
            stop_event=stop_event,
            once=once,
        )
