# apps/queue/tasks.py

import asyncio
import logging

from celery import shared_task
from django.conf import settings

from apps.campaigns.services import reset_stuck_domains

logger = logging.getLogger(__name__)


@shared_task
def reset_stuck_domains_task(threshold_minutes: int | None = None) -> dict:
    """
    Return domains stuck in PROCESSING to PENDING.

    Runs periodically via Celery Beat so abandoned claims are recovered
    even when no run_worker process is sweeping.
    """
    threshold = threshold_minutes or getattr(settings, "STUCK_DOMAIN_THRESHOLD_MINUTES", 15)
    reset = reset_stuck_domains(threshold)

    if reset:
        logger.warning(f"Watchdog reset {reset} stuck domain(s)")
    return {"reset": reset, "threshold_minutes": threshold}


@shared_task
def process_domains_batch(batch_size: int | None = None) -> dict:
    """
    Run a single worker cycle: claim and process up to batch_size domains.

    For deployments that drive the pipeline from Celery instead of a
    long-running run_worker process.
    """
    from .coordinator import WorkCoordinator

    coordinator = WorkCoordinator()
    counters = asyncio.run(coordinator.run(batch_size=batch_size, once=True))

    logger.info(f"Batch complete: {counters}")
    return counters
