"""FastAPI dependencies wiring repositories and services per request."""

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from checkout_service.config import Settings, get_settings
from checkout_service.infrastructure.database.connection import get_session
from checkout_service.infrastructure.database.repository import CheckoutRepository
from checkout_service.services.abandoned_cart import AbandonedCartScheduler
from checkout_service.services.checkout_attempts import CheckoutAttemptService


def get_checkout_repository(
    session: AsyncSession = Depends(get_session),
) -> CheckoutRepository:
    return CheckoutRepository(session)


def get_abandoned_cart_scheduler(
    repository: CheckoutRepository = Depends(get_checkout_repository),
    settings: Settings = Depends(get_settings),
) -> AbandonedCartScheduler:
    # Scheduling only; the email worker owns delivery
    return AbandonedCartScheduler(repository, settings)


def get_checkout_attempt_service(
    repository: CheckoutRepository = Depends(get_checkout_repository),
    scheduler: AbandonedCartScheduler = Depends(get_abandoned_cart_scheduler),
) -> CheckoutAttemptService:
    return CheckoutAttemptService(repository, scheduler)
