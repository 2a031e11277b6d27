"""Cart abandonment email tasks."""

import asyncio

import structlog
from celery import shared_task

from checkout_service.config import Settings, get_settings
from checkout_service.infrastructure.database.connection import worker_session
from checkout_service.infrastructure.database.repository import CheckoutRepository
from checkout_service.services.abandoned_cart import AbandonedCartScheduler
from checkout_service.services.email_sender import get_email_sender

logger = structlog.get_logger()


async def run_dispatch(settings: Settings, limit: int | None = None) -> dict:
    """One dispatch pass on a fresh engine; also used by scripts/dispatch_reminders.py."""
    async with worker_session(settings) as session:
        scheduler = AbandonedCartScheduler(
            CheckoutRepository(session),
            settings,
            email_sender=get_email_sender(settings),
        )
        return await scheduler.dispatch_due_reminders(limit=limit)


@shared_task(bind=True, max_retries=0, ignore_result=True)
def dispatch_due_reminders(self, limit: int | None = None) -> dict:
    """
    Send abandoned cart reminders whose due time has passed.

    Runs on the beat schedule. Each due reminder is claimed, re-checked
    against recent orders and shopper activity, and either sent or skipped.
    Failed sends are recorded on the reminder and not retried.

    Returns:
        dict: Summary of processed reminders
    """
    logger.info("Checking for due abandoned cart reminders")
    summary = asyncio.run(run_dispatch(get_settings(), limit=limit))
    logger.info("Abandoned cart reminder check finished", **summary)
    return summary
