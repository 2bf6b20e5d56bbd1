"""Abandoned cart reminder tasks."""

import asyncio

import structlog
from celery import shared_task

from cart_recovery.config import get_settings
from cart_recovery.dependencies import build_container

logger = structlog.get_logger()


async def run_scan() -> dict:
    """Build the services, run one scan tick and release connections."""
    container = await build_container(get_settings())
    try:
        summary = await container.scanner.run_tick()
    finally:
        await container.aclose()
    return summary.to_dict()


@shared_task(bind=True, ignore_result=False)
def check_abandoned_carts(self) -> dict:
    """
    Check for abandoned carts and send SMS reminders.

    This task runs on the beat interval and once at worker start to:
    1. Find users with product views inside the detection window
    2. Skip users reminded within the cooldown window
    3. Generate, send (unless dry-run) and log a personalized reminder

    Failed ticks are not retried; the next scheduled tick re-scans.

    Returns:
        dict: Tick summary
    """
    logger.info("Starting abandoned cart check", task_id=self.request.id)
    summary = asyncio.run(run_scan())
    logger.info(
        "Finished abandoned cart check",
        task_id=self.request.id,
        users_processed=summary["users_processed"],
        messages_recorded=summary["messages_recorded"],
        aborted=summary["aborted"],
    )
    return summary
