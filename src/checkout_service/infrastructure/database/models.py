"""SQLAlchemy models for the checkout service.

These models are stored in the 'checkout' schema. Orders and products live
in the storefront's public schema and are only read, via raw SQL in the
repository.
"""

from datetime import datetime
from enum import Enum as PyEnum
from typing import Optional

from sqlalchemy import (
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    Text,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

# Schema for all checkout tables
SCHEMA = "checkout"


class Base(DeclarativeBase):
    """Base class for all models."""

    __table_args__ = {"schema": SCHEMA}


# =============================================================================
# Enums
# =============================================================================


class CheckoutStatus(str, PyEnum):
    """Checkout attempt status."""

    IN_PROGRESS = "in_progress"


class ReminderStatus(str, PyEnum):
    """Abandoned cart reminder lifecycle."""

    PENDING = "pending"
    PROCESSING = "processing"
    SENT = "sent"
    SKIPPED = "skipped"
    FAILED = "failed"


# =============================================================================
# Checkout Attempts
# =============================================================================


class CheckoutAttempt(Base):
    """Snapshot of an in-progress checkout, one row per guest session."""

    __tablename__ = "checkout_attempts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guest_session_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False, index=True
    )
    email: Mapped[Optional[str]] = mapped_column(String(320), index=True)

    # Partial form state, written as the shopper types
    contact: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    address: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)
    cart: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    status: Mapped[CheckoutStatus] = mapped_column(
        Enum(CheckoutStatus, schema=SCHEMA, values_callable=lambda e: [m.value for m in e]),
        default=CheckoutStatus.IN_PROGRESS,
        nullable=False,
    )

    # "metadata" is reserved on declarative classes
    attempt_metadata: Mapped[dict] = mapped_column(
        "metadata", JSONB, default=dict, nullable=False
    )
    extra_data: Mapped[dict] = mapped_column(JSONB, default=dict, nullable=False)

    # Timestamps
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )

    __table_args__ = ({"schema": SCHEMA},)


# =============================================================================
# Abandoned Cart Reminders
# =============================================================================


class AbandonedCartReminder(Base):
    """Persisted due-time record for one session's abandoned cart email.

    Polled by the email worker; replaces an in-memory timer so a pending
    reminder survives process restarts.
    """

    __tablename__ = "abandoned_cart_reminders"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    guest_session_id: Mapped[str] = mapped_column(
        String(255), unique=True, nullable=False
    )
    email: Mapped[str] = mapped_column(String(320), nullable=False, index=True)
    cart_snapshot: Mapped[list] = mapped_column(JSONB, default=list, nullable=False)

    email_captured_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    send_after: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    status: Mapped[ReminderStatus] = mapped_column(
        Enum(ReminderStatus, schema=SCHEMA, values_callable=lambda e: [m.value for m in e]),
        default=ReminderStatus.PENDING,
        nullable=False,
    )
    skip_reason: Mapped[Optional[str]] = mapped_column(String(50))
    error: Mapped[Optional[str]] = mapped_column(Text)

    sent_at: Mapped[Optional[datetime]] = mapped_column(DateTime(timezone=True))
    message_id: Mapped[Optional[str]] = mapped_column(String(255))

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False
    )

    __table_args__ = (
        Index("ix_abandoned_cart_reminders_due", "status", "send_after"),
        {"schema": SCHEMA},
    )
