"""Storage access for checkout attempts, reminders, orders and products.

Checkout tables are written through SQLAlchemy Core statements on the
mapped tables. Orders and products belong to the storefront's public
schema and are read with raw SQL.
"""

from datetime import datetime, timedelta
from typing import Any

import structlog
from sqlalchemy import and_, bindparam, func, or_, select, text, update
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from checkout_service.infrastructure.database.models import (
    AbandonedCartReminder,
    CheckoutAttempt,
    CheckoutStatus,
    ReminderStatus,
)
from shared.constants import ORDER_STATUS_COMPLETED

logger = structlog.get_logger()

attempts = CheckoutAttempt.__table__
reminders = AbandonedCartReminder.__table__


class StorageError(Exception):
    """A database operation failed; carries the driver's message."""


class CheckoutRepository:
    """Repository used by the API and the email worker.

    Every write commits immediately so a failing secondary step cannot roll
    back a checkout attempt that has already been acknowledged.
    """

    def __init__(self, session: AsyncSession):
        self.session = session

    async def _execute(self, statement: Any, params: dict[str, Any] | None = None) -> Any:
        try:
            return await self.session.execute(statement, params or {})
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(str(e)) from e

    async def _commit(self) -> None:
        try:
            await self.session.commit()
        except SQLAlchemyError as e:
            await self.session.rollback()
            raise StorageError(str(e)) from e

    async def ping(self) -> bool:
        result = await self._execute(text("SELECT 1"))
        return result.scalar() == 1

    # -------------------------------------------------------------------------
    # Checkout attempts
    # -------------------------------------------------------------------------

    async def upsert_attempt(self, attempt: dict[str, Any], now: datetime) -> dict[str, Any]:
        """Insert or update the attempt for ``attempt["guest_session_id"]``.

        Incoming metadata is merged over the stored metadata so keys written
        by the service (email capture, reminder flags) survive client
        snapshots.
        """
        stmt = pg_insert(attempts).values(
            {
                "guest_session_id": attempt["guest_session_id"],
                "email": attempt.get("email"),
                "contact": attempt.get("contact") or {},
                "address": attempt.get("address") or {},
                "cart": attempt.get("cart") or [],
                "status": attempt.get("status") or CheckoutStatus.IN_PROGRESS,
                "metadata": attempt.get("metadata") or {},
                "extra_data": attempt.get("extra_data") or {},
                "created_at": now,
                "updated_at": now,
            }
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[attempts.c.guest_session_id],
            set_={
                "email": stmt.excluded.email,
                "contact": stmt.excluded.contact,
                "address": stmt.excluded.address,
                "cart": stmt.excluded.cart,
                "status": stmt.excluded.status,
                "metadata": attempts.c["metadata"].op("||", return_type=JSONB)(stmt.excluded["metadata"]),
                "extra_data": attempts.c.extra_data.op("||", return_type=JSONB)(stmt.excluded.extra_data),
                "updated_at": stmt.excluded.updated_at,
            },
        ).returning(*attempts.c)

        result = await self._execute(stmt)
        row = result.one()
        await self._commit()
        return dict(row._mapping)

    async def get_attempt(self, guest_session_id: str) -> dict[str, Any] | None:
        result = await self._execute(
            select(attempts).where(attempts.c.guest_session_id == guest_session_id)
        )
        row = result.first()
        return dict(row._mapping) if row else None

    async def update_attempt_metadata(
        self, guest_session_id: str, updates: dict[str, Any]
    ) -> None:
        """Merge ``updates`` into the attempt metadata.

        ``updated_at`` is left alone: it tracks shopper activity, which the
        abandoned cart check relies on.
        """
        stmt = (
            update(attempts)
            .where(attempts.c.guest_session_id == guest_session_id)
            .values(
                {
                    "metadata": attempts.c["metadata"].op("||", return_type=JSONB)(
                        bindparam("updates", value=updates, type_=JSONB)
                    )
                }
            )
        )
        await self._execute(stmt)
        await self._commit()

    # -------------------------------------------------------------------------
    # Orders (public schema, read-only)
    # -------------------------------------------------------------------------

    async def has_completed_order(self, email: str) -> bool:
        query = text("""
            SELECT 1 FROM public.orders
            WHERE email = :email AND status = :status
            LIMIT 1
        """)
        result = await self._execute(query, {"email": email, "status": ORDER_STATUS_COMPLETED})
        return result.first() is not None

    async def has_order_since(self, email: str, since: datetime) -> bool:
        query = text("""
            SELECT 1 FROM public.orders
            WHERE email = :email AND created_at > :since
            LIMIT 1
        """)
        result = await self._execute(query, {"email": email, "since": since})
        return result.first() is not None

    # -------------------------------------------------------------------------
    # Products (public schema, read-only)
    # -------------------------------------------------------------------------

    async def get_products(self, product_ids: list[str]) -> list[dict[str, Any]]:
        """Fetch products by id; ids are compared as text."""
        if not product_ids:
            return []
        query = text("""
            SELECT p.id, p.name, p.image_url, p.price
            FROM public.products p
            WHERE CAST(p.id AS TEXT) = ANY(:ids)
        """)
        result = await self._execute(query, {"ids": [str(pid) for pid in product_ids]})
        return [dict(row._mapping) for row in result.fetchall()]

    async def get_related_products(
        self, exclude_ids: list[str], limit: int
    ) -> list[dict[str, Any]]:
        """Random products with an image, excluding ``exclude_ids``."""
        query = text("""
            SELECT p.id, p.name, p.image_url, p.price
            FROM public.products p
            WHERE p.image_url IS NOT NULL
              AND NOT (CAST(p.id AS TEXT) = ANY(:exclude_ids))
            ORDER BY random()
            LIMIT :limit
        """)
        result = await self._execute(
            query,
            {"exclude_ids": [str(pid) for pid in exclude_ids], "limit": limit},
        )
        return [dict(row._mapping) for row in result.fetchall()]

    # -------------------------------------------------------------------------
    # Abandoned cart reminders
    # -------------------------------------------------------------------------

    async def schedule_reminder(
        self,
        guest_session_id: str,
        email: str,
        cart: list[dict[str, Any]],
        email_captured_at: datetime,
        send_after: datetime,
    ) -> dict[str, Any] | None:
        """Create or re-arm the session's reminder.

        Returns None when the session's reminder was already sent.
        """
        stmt = pg_insert(reminders).values(
            {
                "guest_session_id": guest_session_id,
                "email": email,
                "cart_snapshot": cart,
                "email_captured_at": email_captured_at,
                "send_after": send_after,
                "status": ReminderStatus.PENDING,
            }
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[reminders.c.guest_session_id],
            set_={
                "email": stmt.excluded.email,
                "cart_snapshot": stmt.excluded.cart_snapshot,
                "email_captured_at": stmt.excluded.email_captured_at,
                "send_after": stmt.excluded.send_after,
                "status": ReminderStatus.PENDING,
                "skip_reason": None,
                "error": None,
                "updated_at": func.now(),
            },
            where=reminders.c.status != ReminderStatus.SENT,
        ).returning(*reminders.c)

        result = await self._execute(stmt)
        row = result.first()
        await self._commit()
        return dict(row._mapping) if row else None

    async def claim_due_reminders(
        self, now: datetime, limit: int, lease: timedelta
    ) -> list[dict[str, Any]]:
        """Move up to ``limit`` due reminders to PROCESSING and return them.

        PROCESSING rows claimed more than ``lease`` ago belong to a dispatch
        pass that died before completing them and are claimed again. Rows
        locked by another worker are skipped.
        """
        due = (
            select(reminders.c.id)
            .where(
                reminders.c.send_after <= now,
                or_(
                    reminders.c.status == ReminderStatus.PENDING,
                    and_(
                        reminders.c.status == ReminderStatus.PROCESSING,
                        reminders.c.updated_at < now - lease,
                    ),
                ),
            )
            .order_by(reminders.c.send_after)
            .limit(limit)
            .with_for_update(skip_locked=True)
        )
        stmt = (
            update(reminders)
            .where(reminders.c.id.in_(due.scalar_subquery()))
            .values(status=ReminderStatus.PROCESSING, updated_at=now)
            .returning(*reminders.c)
        )
        result = await self._execute(stmt)
        rows = [dict(row._mapping) for row in result.fetchall()]
        await self._commit()
        logger.debug("Claimed due reminders", count=len(rows))
        return sorted(rows, key=lambda r: r["send_after"])

    async def complete_reminder(
        self,
        reminder_id: int,
        status: ReminderStatus,
        *,
        skip_reason: str | None = None,
        error: str | None = None,
        sent_at: datetime | None = None,
        message_id: str | None = None,
    ) -> None:
        """Record the outcome of a processed reminder.

        SKIPPED and FAILED only apply while the row is still PROCESSING, so a
        reminder re-armed by newer shopper activity stays pending.
        """
        stmt = (
            update(reminders)
            .where(reminders.c.id == reminder_id)
            .values(
                status=status,
                skip_reason=skip_reason,
                error=error,
                sent_at=sent_at,
                message_id=message_id,
                updated_at=func.now(),
            )
        )
        if status != ReminderStatus.SENT:
            stmt = stmt.where(reminders.c.status == ReminderStatus.PROCESSING)
        await self._execute(stmt)
        await self._commit()
