"""Checkout attempt recording."""

from datetime import datetime
from typing import Any, Callable

import structlog

from checkout_service.services.abandoned_cart import AbandonedCartScheduler, utcnow
from checkout_service.services.validation import completed_fields, is_capturable_email
from shared.constants import (
    METADATA_CART_ITEMS,
    METADATA_EMAIL_CAPTURED_AT,
    METADATA_EMAIL_VALID,
    METADATA_FIELDS_COMPLETED,
)

logger = structlog.get_logger()


def qualifies_for_reminder(attempt: dict[str, Any]) -> bool:
    """A capturable email and at least one cart line make an attempt remindable."""
    cart = attempt.get("cart")
    return is_capturable_email(attempt.get("email")) and isinstance(cart, list) and len(cart) > 0


class CheckoutAttemptService:
    """Persists checkout snapshots and hands qualifying ones to the scheduler."""

    def __init__(
        self,
        repository: Any,
        scheduler: AbandonedCartScheduler,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.scheduler = scheduler
        self.clock = clock

    @staticmethod
    def prepare(payload: dict[str, Any]) -> dict[str, Any]:
        """Fill in the metadata a client may omit from its snapshot."""
        attempt = dict(payload)
        metadata = dict(attempt.get("metadata") or {})
        if METADATA_FIELDS_COMPLETED not in metadata:
            metadata[METADATA_FIELDS_COMPLETED] = completed_fields(
                attempt.get("contact") or {}, attempt.get("address") or {}
            )
        metadata.setdefault(METADATA_CART_ITEMS, len(attempt.get("cart") or []))
        attempt["metadata"] = metadata
        return attempt

    async def record_attempt(self, payload: dict[str, Any]) -> dict[str, Any]:
        """
        Upsert the attempt keyed by guest session id.

        Storage errors on the upsert propagate to the caller. Email capture
        and reminder scheduling are best-effort: once the attempt is stored
        their failures are only logged.
        """
        now = self.clock()
        record = await self.repository.upsert_attempt(self.prepare(payload), now)
        guest_session_id = record["guest_session_id"]

        if not qualifies_for_reminder(record):
            return record

        updates = {METADATA_EMAIL_VALID: True, METADATA_EMAIL_CAPTURED_AT: now.isoformat()}
        try:
            await self.repository.update_attempt_metadata(guest_session_id, updates)
            record["metadata"] = {**(record.get("metadata") or {}), **updates}
        except Exception as e:
            logger.error(
                "Failed to record email capture",
                guest_session_id=guest_session_id,
                error=str(e),
            )

        logger.info(
            "Email captured, eligible for abandoned cart reminder",
            guest_session_id=guest_session_id,
        )
        try:
            await self.scheduler.schedule(record, now)
        except Exception as e:
            logger.error(
                "Failed to schedule abandoned cart reminder",
                guest_session_id=guest_session_id,
                error=str(e),
            )

        return record
