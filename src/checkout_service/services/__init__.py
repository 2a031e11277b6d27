"""Business logic services."""

from checkout_service.services.abandoned_cart import AbandonedCartScheduler
from checkout_service.services.checkout_attempts import CheckoutAttemptService
from checkout_service.services.email_sender import (
    MockEmailSender,
    SendGridEmailSender,
    get_email_sender,
)
from checkout_service.services.email_template import AbandonedCartEmailRenderer

__all__ = [
    "AbandonedCartEmailRenderer",
    "AbandonedCartScheduler",
    "CheckoutAttemptService",
    "MockEmailSender",
    "SendGridEmailSender",
    "get_email_sender",
]
