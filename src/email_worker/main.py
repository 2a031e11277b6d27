"""Celery application for the abandoned cart email worker.

Run the worker and the beat scheduler side by side:

    celery -A email_worker.main worker -Q email
    celery -A email_worker.main beat
"""

from celery import Celery
from celery.schedules import schedule

from checkout_service.config import get_settings
from checkout_service.logging_config import configure_logging

settings = get_settings()
configure_logging(settings)

DISPATCH_TASK = "email_worker.tasks.cart_abandonment.dispatch_due_reminders"

app = Celery(
    "email_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=["email_worker.tasks.cart_abandonment"],
)

poll_interval = settings.abandoned_cart_poll_interval_seconds
claim_lease = settings.abandoned_cart_claim_lease_seconds

app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_ignore_result=True,
    # A pass is killed before its claims expire, so no reminder is held by
    # two passes at once
    task_soft_time_limit=max(claim_lease - 60, 30),
    task_time_limit=max(claim_lease - 30, 45),
    worker_prefetch_multiplier=1,
    task_default_queue="email",
    task_routes={"email_worker.tasks.*": {"queue": "email"}},
    broker_connection_retry_on_startup=True,
)

app.conf.beat_schedule = {
    "dispatch-abandoned-cart-reminders": {
        "task": DISPATCH_TASK,
        "schedule": schedule(run_every=poll_interval),
        # Drop passes that queued up while no worker was running
        "options": {"expires": poll_interval},
    },
}


def run() -> None:
    """Run the Celery worker with an embedded beat scheduler."""
    app.worker_main(["worker", "--beat", "--loglevel=info", "-Q", "email"])


if __name__ == "__main__":
    run()
