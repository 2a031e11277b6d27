"""Pytest configuration and fixtures."""

import copy
import random
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import pytest
from fastapi.testclient import TestClient

from checkout_service.api.v1.dependencies import get_checkout_repository
from checkout_service.config import Settings, get_settings
from checkout_service.infrastructure.database.models import ReminderStatus
from checkout_service.infrastructure.database.repository import StorageError
from checkout_service.infrastructure.redis import get_redis_client
from checkout_service.main import create_app
from checkout_service.services.abandoned_cart import AbandonedCartScheduler
from checkout_service.services.checkout_attempts import CheckoutAttemptService
from checkout_service.services.email_sender import MockEmailSender


# =============================================================================
# Fakes
# =============================================================================


class FakeClock:
    """Controllable replacement for ``utcnow``."""

    def __init__(self, now: datetime):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> datetime:
        self.now = self.now + timedelta(seconds=seconds)
        return self.now


class InMemoryCheckoutRepository:
    """In-memory stand-in for ``CheckoutRepository`` with the same contract."""

    def __init__(self) -> None:
        self.attempts: dict[str, dict[str, Any]] = {}
        self.reminders: dict[str, dict[str, Any]] = {}
        self.orders: list[dict[str, Any]] = []
        self.products: list[dict[str, Any]] = []
        self.failing: set[str] = set()
        self.failing_once: set[str] = set()
        self.calls: list[str] = []
        self._ids = {"attempt": 0, "reminder": 0}

    def _enter(self, method: str) -> None:
        self.calls.append(method)
        if method in self.failing:
            raise StorageError(f"simulated failure in {method}")
        if method in self.failing_once:
            self.failing_once.discard(method)
            raise StorageError(f"simulated failure in {method}")

    def _next_id(self, kind: str) -> int:
        self._ids[kind] += 1
        return self._ids[kind]

    # Test helpers ------------------------------------------------------------

    def add_order(self, email: str, created_at: datetime, status: str = "completed") -> None:
        self.orders.append({"email": email, "status": status, "created_at": created_at})

    def touch_attempt(self, guest_session_id: str, updated_at: datetime) -> None:
        self.attempts[guest_session_id]["updated_at"] = updated_at

    # Contract ----------------------------------------------------------------

    async def ping(self) -> bool:
        self._enter("ping")
        return True

    async def upsert_attempt(self, attempt: dict[str, Any], now: datetime) -> dict[str, Any]:
        self._enter("upsert_attempt")
        guest_session_id = attempt["guest_session_id"]
        existing = self.attempts.get(guest_session_id)
        if existing is None:
            existing = {
                "id": self._next_id("attempt"),
                "guest_session_id": guest_session_id,
                "metadata": {},
                "extra_data": {},
                "created_at": now,
            }
            self.attempts[guest_session_id] = existing

        existing.update(
            {
                "email": attempt.get("email"),
                "contact": copy.deepcopy(attempt.get("contact") or {}),
                "address": copy.deepcopy(attempt.get("address") or {}),
                "cart": copy.deepcopy(attempt.get("cart") or []),
                "status": attempt.get("status") or "in_progress",
                "updated_at": now,
            }
        )
        existing["metadata"] = {**existing["metadata"], **(attempt.get("metadata") or {})}
        existing["extra_data"] = {**existing["extra_data"], **(attempt.get("extra_data") or {})}
        return copy.deepcopy(existing)

    async def get_attempt(self, guest_session_id: str) -> dict[str, Any] | None:
        self._enter("get_attempt")
        attempt = self.attempts.get(guest_session_id)
        return copy.deepcopy(attempt) if attempt else None

    async def update_attempt_metadata(self, guest_session_id: str, updates: dict[str, Any]) -> None:
        self._enter("update_attempt_metadata")
        if guest_session_id in self.attempts:
            self.attempts[guest_session_id]["metadata"].update(copy.deepcopy(updates))

    async def has_completed_order(self, email: str) -> bool:
        self._enter("has_completed_order")
        return any(o["email"] == email and o["status"] == "completed" for o in self.orders)

    async def has_order_since(self, email: str, since: datetime) -> bool:
        self._enter("has_order_since")
        return any(o["email"] == email and o["created_at"] > since for o in self.orders)

    async def get_products(self, product_ids: list[str]) -> list[dict[str, Any]]:
        self._enter("get_products")
        wanted = {str(pid) for pid in product_ids}
        return [dict(p) for p in self.products if str(p["id"]) in wanted]

    async def get_related_products(self, exclude_ids: list[str], limit: int) -> list[dict[str, Any]]:
        self._enter("get_related_products")
        excluded = {str(pid) for pid in exclude_ids}
        candidates = [
            dict(p)
            for p in self.products
            if p.get("image_url") is not None and str(p["id"]) not in excluded
        ]
        return random.sample(candidates, min(limit, len(candidates)))

    async def schedule_reminder(
        self,
        guest_session_id: str,
        email: str,
        cart: list[dict[str, Any]],
        email_captured_at: datetime,
        send_after: datetime,
    ) -> dict[str, Any] | None:
        self._enter("schedule_reminder")
        reminder = self.reminders.get(guest_session_id)
        if reminder is not None and reminder["status"] == ReminderStatus.SENT:
            return None
        if reminder is None:
            reminder = {
                "id": self._next_id("reminder"),
                "guest_session_id": guest_session_id,
                "sent_at": None,
                "message_id": None,
            }
            self.reminders[guest_session_id] = reminder
        reminder.update(
            {
                "email": email,
                "cart_snapshot": copy.deepcopy(cart),
                "email_captured_at": email_captured_at,
                "send_after": send_after,
                "updated_at": email_captured_at,
                "status": ReminderStatus.PENDING,
                "skip_reason": None,
                "error": None,
            }
        )
        return copy.deepcopy(reminder)

    async def claim_due_reminders(
        self, now: datetime, limit: int, lease: timedelta
    ) -> list[dict[str, Any]]:
        self._enter("claim_due_reminders")
        due = sorted(
            (
                r
                for r in self.reminders.values()
                if r["send_after"] <= now
                and (
                    r["status"] == ReminderStatus.PENDING
                    or (r["status"] == ReminderStatus.PROCESSING and r["updated_at"] < now - lease)
                )
            ),
            key=lambda r: r["send_after"],
        )[:limit]
        for reminder in due:
            reminder["status"] = ReminderStatus.PROCESSING
            reminder["updated_at"] = now
        return [copy.deepcopy(r) for r in due]

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
        self._enter("complete_reminder")
        for reminder in self.reminders.values():
            if reminder["id"] != reminder_id:
                continue
            if status != ReminderStatus.SENT and reminder["status"] != ReminderStatus.PROCESSING:
                return
            reminder.update(
                {
                    "status": status,
                    "skip_reason": skip_reason,
                    "error": error,
                    "sent_at": sent_at,
                    "message_id": message_id,
                }
            )


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def test_settings(tmp_path: Path) -> Settings:
    """Get test settings with overrides."""
    return Settings(
        app_env="test",
        debug=True,
        postgres_host="localhost",
        postgres_user="test",
        postgres_password="test",
        postgres_db="test_db",
        email_service="mock",
        mock_email_storage_path=str(tmp_path / "emails"),
        storefront_base_url="https://shop.test",
        placeholder_image_url="https://cdn.shop.test/no-image.png",
        email_cc_address="sales@shop.test",
    )


@pytest.fixture
def repository() -> InMemoryCheckoutRepository:
    return InMemoryCheckoutRepository()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def email_sender(test_settings: Settings) -> MockEmailSender:
    return MockEmailSender(storage_path=test_settings.mock_email_storage_path)


@pytest.fixture
def scheduler(
    repository: InMemoryCheckoutRepository,
    test_settings: Settings,
    email_sender: MockEmailSender,
    clock: FakeClock,
) -> AbandonedCartScheduler:
    return AbandonedCartScheduler(repository, test_settings, email_sender=email_sender, clock=clock)


@pytest.fixture
def attempt_service(
    repository: InMemoryCheckoutRepository,
    scheduler: AbandonedCartScheduler,
    clock: FakeClock,
) -> CheckoutAttemptService:
    return CheckoutAttemptService(repository, scheduler, clock=clock)


@pytest.fixture
def app(test_settings: Settings, repository: InMemoryCheckoutRepository) -> Any:
    """Create test application."""
    app = create_app()
    app.dependency_overrides[get_settings] = lambda: test_settings
    app.dependency_overrides[get_checkout_repository] = lambda: repository
    app.dependency_overrides[get_redis_client] = lambda: None
    return app


@pytest.fixture
def client(app: Any) -> TestClient:
    """Create synchronous test client."""
    return TestClient(app)


@pytest.fixture
def sample_cart() -> list[dict]:
    return [
        {"id": "101", "quantity": 1, "price": 45.0},
        {"id": "102", "quantity": 2, "price": 12.5},
    ]


@pytest.fixture
def sample_products() -> list[dict]:
    return [
        {"id": "101", "name": "Victorian Pocket Watch", "image_url": "https://cdn.shop.test/101.png", "price": 45.0},
        {"id": "102", "name": "Silver Thimble", "image_url": None, "price": "£12.50"},
        {"id": "201", "name": "Brass Compass", "image_url": "https://cdn.shop.test/201.png", "price": 30},
        {"id": "202", "name": "Cameo Brooch", "image_url": "https://cdn.shop.test/202.png", "price": 55},
        {"id": "203", "name": "Enamel Pin", "image_url": "https://cdn.shop.test/203.png", "price": 8},
        {"id": "204", "name": "Postcard Set", "image_url": None, "price": 4},
    ]


@pytest.fixture
def sample_attempt_payload(sample_cart: list[dict]) -> dict:
    """Sample checkout attempt request body."""
    return {
        "guest_session_id": "guest-session-abc",
        "email": "user@example.com",
        "contact": {"name": "Ada Lovelace", "email": "user@example.com"},
        "address": {"line1": "12 Analytical Row", "city": "London", "postcode": ""},
        "cart": sample_cart,
        "status": "in_progress",
        "metadata": {},
    }
