"""Abandoned cart reminder scheduling and dispatch.

A qualifying checkout attempt (capturable email, non-empty cart) arms one
reminder per guest session, due a fixed delay after the email was
captured. The email worker claims due reminders and runs two guards before
sending:

1. an order for the email placed after capture means the shopper converted;
2. an attempt update later than the activity grace window means the
   shopper is still filling in the form.

Reminders are best-effort marketing nudges: every failure before the email
is accepted is logged and the reminder is marked failed, never retried.
A reminder left claimed by a dispatch pass that died is claimed again once
its lease expires.
"""

from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import structlog

from checkout_service.config import Settings
from checkout_service.infrastructure.database.models import ReminderStatus
from checkout_service.services.email_sender import EmailSender
from checkout_service.services.email_template import AbandonedCartEmailRenderer
from shared.constants import (
    ABANDONED_CART_SUBJECT,
    METADATA_EMAIL_SENT,
    METADATA_EMAIL_SENT_AT,
    SKIP_ALREADY_SENT,
    SKIP_ORDER_COMPLETED,
    SKIP_SESSION_ACTIVE,
)

logger = structlog.get_logger()


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AbandonedCartScheduler:
    """Arms reminders for qualifying attempts and dispatches the due ones."""

    def __init__(
        self,
        repository: Any,
        settings: Settings,
        email_sender: EmailSender | None = None,
        renderer: AbandonedCartEmailRenderer | None = None,
        clock: Callable[[], datetime] = utcnow,
    ):
        self.repository = repository
        self.settings = settings
        self.email_sender = email_sender
        self.renderer = renderer or AbandonedCartEmailRenderer(settings)
        self.clock = clock

    @property
    def delay(self) -> timedelta:
        return timedelta(seconds=self.settings.abandoned_cart_delay_seconds)

    @property
    def activity_grace(self) -> timedelta:
        return timedelta(seconds=self.settings.abandoned_cart_activity_grace_seconds)

    @property
    def claim_lease(self) -> timedelta:
        return timedelta(seconds=self.settings.abandoned_cart_claim_lease_seconds)

    # -------------------------------------------------------------------------
    # Scheduling
    # -------------------------------------------------------------------------

    async def schedule(
        self, attempt: dict[str, Any], email_captured_at: datetime
    ) -> dict[str, Any] | None:
        """
        Arm the reminder for a qualifying attempt.

        Returns the pending reminder, or None when the shopper already has a
        completed order or the session's reminder was already sent.
        """
        email = attempt["email"]
        guest_session_id = attempt["guest_session_id"]

        if (attempt.get("metadata") or {}).get(METADATA_EMAIL_SENT):
            logger.info(
                "Abandoned cart reminder already sent for session",
                guest_session_id=guest_session_id,
            )
            return None

        if await self.repository.has_completed_order(email):
            logger.info(
                "Returning customer, abandoned cart reminder not scheduled",
                guest_session_id=guest_session_id,
            )
            return None

        reminder = await self.repository.schedule_reminder(
            guest_session_id=guest_session_id,
            email=email,
            cart=attempt.get("cart") or [],
            email_captured_at=email_captured_at,
            send_after=email_captured_at + self.delay,
        )
        if reminder is None:
            logger.info(
                "Abandoned cart reminder already sent for session",
                guest_session_id=guest_session_id,
            )
            return None

        logger.info(
            "Abandoned cart reminder scheduled",
            guest_session_id=guest_session_id,
            send_after=reminder["send_after"].isoformat(),
        )
        return reminder

    # -------------------------------------------------------------------------
    # Email content
    # -------------------------------------------------------------------------

    async def build_email(self, cart: list[dict[str, Any]], guest_session_id: str) -> str:
        """Render the reminder with product details fetched fresh from storage."""
        cart_ids: list[str] = []
        for item in cart:
            product_id = str(item.get("id"))
            if item.get("id") is not None and product_id not in cart_ids:
                cart_ids.append(product_id)

        rows = await self.repository.get_products(cart_ids)
        by_id = {str(row["id"]): row for row in rows}
        cart_products = [by_id[pid] for pid in cart_ids if pid in by_id]

        try:
            related = await self.repository.get_related_products(
                cart_ids, self.settings.abandoned_cart_related_products
            )
        except Exception as e:
            logger.warning(
                "Related products unavailable for reminder",
                guest_session_id=guest_session_id,
                error=str(e),
            )
            related = []

        return self.renderer.render(cart_products, related, guest_session_id)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def _skip(self, reminder: dict[str, Any], reason: str) -> str:
        logger.info(
            "Abandoned cart reminder skipped",
            guest_session_id=reminder["guest_session_id"],
            reason=reason,
        )
        await self.repository.complete_reminder(
            reminder["id"], ReminderStatus.SKIPPED, skip_reason=reason
        )
        return ReminderStatus.SKIPPED.value

    async def _deliver(self, reminder: dict[str, Any]) -> str:
        guest_session_id = reminder["guest_session_id"]
        captured_at = reminder["email_captured_at"]

        if await self.repository.has_order_since(reminder["email"], captured_at):
            return await self._skip(reminder, SKIP_ORDER_COMPLETED)

        attempt = await self.repository.get_attempt(guest_session_id)
        if attempt is not None:
            if attempt["updated_at"] > captured_at + self.activity_grace:
                return await self._skip(reminder, SKIP_SESSION_ACTIVE)
            if (attempt.get("metadata") or {}).get(METADATA_EMAIL_SENT):
                return await self._skip(reminder, SKIP_ALREADY_SENT)

        html = await self.build_email(reminder.get("cart_snapshot") or [], guest_session_id)
        cc = [self.settings.email_cc_address] if self.settings.email_cc_address else []
        result = await self.email_sender.send_email(
            to_email=reminder["email"],
            subject=ABANDONED_CART_SUBJECT,
            html_content=html,
            cc_emails=cc,
            metadata={"guest_session_id": guest_session_id, "email_type": "abandoned_cart"},
        )

        # Delivered: from here on the reminder must never be reported failed.
        # The attempt flag goes first so a later attempt cannot re-arm it.
        sent_at = self.clock()
        try:
            await self.repository.update_attempt_metadata(
                guest_session_id,
                {METADATA_EMAIL_SENT: True, METADATA_EMAIL_SENT_AT: sent_at.isoformat()},
            )
            await self.repository.complete_reminder(
                reminder["id"],
                ReminderStatus.SENT,
                sent_at=sent_at,
                message_id=result.get("message_id"),
            )
        except Exception as e:
            logger.error(
                "Abandoned cart email sent but not recorded",
                guest_session_id=guest_session_id,
                message_id=result.get("message_id"),
                error=str(e),
            )
        logger.info("Abandoned cart email sent", guest_session_id=guest_session_id)
        return ReminderStatus.SENT.value

    async def check_and_send(self, reminder: dict[str, Any]) -> str:
        """
        Run the fire-time guards for one claimed reminder and send if they pass.

        Returns the outcome: "sent", "skipped" or "failed".
        """
        if self.email_sender is None:
            raise RuntimeError("An email sender is required to dispatch reminders")

        try:
            return await self._deliver(reminder)
        except Exception as e:
            logger.error(
                "Abandoned cart reminder failed",
                guest_session_id=reminder.get("guest_session_id"),
                error=str(e),
                exc_info=True,
            )
            try:
                await self.repository.complete_reminder(
                    reminder["id"], ReminderStatus.FAILED, error=str(e)[:2000]
                )
            except Exception as mark_error:
                logger.error(
                    "Could not record failed reminder",
                    guest_session_id=reminder.get("guest_session_id"),
                    error=str(mark_error),
                )
            return ReminderStatus.FAILED.value

    async def dispatch_due_reminders(
        self, now: datetime | None = None, limit: int | None = None
    ) -> dict[str, int]:
        """Claim and process every reminder due at ``now``."""
        now = now or self.clock()
        limit = limit or self.settings.abandoned_cart_batch_size

        reminders = await self.repository.claim_due_reminders(now, limit, self.claim_lease)
        summary = {"processed": 0, "sent": 0, "skipped": 0, "failed": 0}
        for reminder in reminders:
            outcome = await self.check_and_send(reminder)
            summary["processed"] += 1
            summary[outcome] += 1

        if reminders:
            logger.info("Abandoned cart reminders dispatched", **summary)
        return summary
