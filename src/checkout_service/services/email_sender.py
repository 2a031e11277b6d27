"""Email delivery clients.

``MockEmailSender`` writes messages to disk for development and tests;
``SendGridEmailSender`` talks to the SendGrid v3 API. Both expose the same
async ``send_email`` coroutine.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Protocol
from uuid import uuid4

import httpx
import structlog

from checkout_service.config import Settings

logger = structlog.get_logger()


class EmailDeliveryError(Exception):
    """The email provider rejected or failed to accept a message."""


class EmailSender(Protocol):
    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        cc_emails: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]: ...


class MockEmailSender:
    """
    Mock email service for testing and development.

    Stores sent emails to the filesystem (and in memory) instead of
    delivering them.
    """

    def __init__(
        self,
        storage_path: str | None = None,
        from_email: str = "carecentre@rarecollectables.co.uk",
        from_name: str = "Rare Collectables",
    ):
        """
        Initialize the mock email sender.

        Args:
            storage_path: Directory to store mock emails.
                         Defaults to /tmp/storefront_mock_emails
            from_email: Sender address recorded on every message
            from_name: Sender display name
        """
        self.storage_path = Path(storage_path or "/tmp/storefront_mock_emails")
        self.storage_path.mkdir(parents=True, exist_ok=True)
        self.from_email = from_email
        self.from_name = from_name
        self.sent_emails: list[dict[str, Any]] = []

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        cc_emails: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        """
        Simulate sending an email.

        Args:
            to_email: Recipient email address
            subject: Email subject line
            html_content: HTML content of the email
            cc_emails: Optional carbon-copy recipients
            metadata: Optional metadata to store with the email

        Returns:
            dict: Simulated send result with message_id and status
        """
        message_id = str(uuid4())
        timestamp = datetime.now(timezone.utc)

        email_record = {
            "message_id": message_id,
            "to_email": to_email,
            "cc_emails": cc_emails or [],
            "from_email": self.from_email,
            "from_name": self.from_name,
            "subject": subject,
            "html_content": html_content,
            "metadata": metadata or {},
            "sent_at": timestamp.isoformat(),
            "status": "sent",
        }
        self.sent_emails.append(email_record)

        filepath = self.storage_path / f"{timestamp.strftime('%Y%m%d_%H%M%S')}_{message_id}.json"
        with open(filepath, "w") as f:
            json.dump(email_record, f, indent=2, ensure_ascii=False)

        logger.info(
            "Mock email sent",
            message_id=message_id,
            to_email=to_email,
            subject=subject,
            stored_at=str(filepath),
        )

        return {
            "success": True,
            "message_id": message_id,
            "status": "sent",
        }

    def get_sent_emails(self, to_email: str | None = None) -> list[dict[str, Any]]:
        if to_email:
            return [e for e in self.sent_emails if e["to_email"] == to_email]
        return list(self.sent_emails)


class SendGridEmailSender:
    """Delivers email through the SendGrid v3 ``mail/send`` endpoint."""

    def __init__(
        self,
        api_key: str,
        from_email: str,
        from_name: str,
        api_url: str = "https://api.sendgrid.com/v3/mail/send",
        timeout: float = 10.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        if not api_key:
            raise ValueError("SendGrid API key is not configured")
        self.api_key = api_key
        self.from_email = from_email
        self.from_name = from_name
        self.api_url = api_url
        self.timeout = timeout
        self.transport = transport

    def build_payload(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        cc_emails: list[str] | None = None,
    ) -> dict[str, Any]:
        personalization: dict[str, Any] = {"to": [{"email": to_email}]}
        # SendGrid rejects a cc that repeats the recipient
        cc = [addr for addr in cc_emails or [] if addr.lower() != to_email.lower()]
        if cc:
            personalization["cc"] = [{"email": addr} for addr in cc]
        return {
            "personalizations": [personalization],
            "from": {"email": self.from_email, "name": self.from_name},
            "subject": subject,
            "content": [{"type": "text/html", "value": html_content}],
        }

    async def send_email(
        self,
        to_email: str,
        subject: str,
        html_content: str,
        cc_emails: list[str] | None = None,
        metadata: dict[str, Any] | None = None,
    ) -> dict[str, Any]:
        payload = self.build_payload(to_email, subject, html_content, cc_emails)
        headers = {"Authorization": f"Bearer {self.api_key}"}

        try:
            async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
                response = await client.post(self.api_url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise EmailDeliveryError(f"SendGrid request failed: {e}") from e

        if response.status_code >= 300:
            raise EmailDeliveryError(
                f"SendGrid returned {response.status_code}: {response.text[:500]}"
            )

        message_id = response.headers.get("X-Message-Id", "")
        logger.info(
            "Email sent via SendGrid",
            message_id=message_id,
            to_email=to_email,
            subject=subject,
            metadata=metadata or {},
        )
        return {"success": True, "message_id": message_id, "status": "accepted"}


def get_email_sender(settings: Settings) -> EmailSender:
    """Build the email client selected by ``settings.email_service``."""
    if settings.email_service == "sendgrid":
        return SendGridEmailSender(
            api_key=settings.sendgrid_api_key,
            from_email=settings.email_from_address,
            from_name=settings.email_from_name,
            api_url=settings.sendgrid_api_url,
            timeout=settings.email_timeout_seconds,
        )
    return MockEmailSender(
        storage_path=settings.mock_email_storage_path,
        from_email=settings.email_from_address,
        from_name=settings.email_from_name,
    )
