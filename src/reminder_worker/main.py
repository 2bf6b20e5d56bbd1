"""Celery application for the reminder worker."""

from datetime import timedelta

from celery import Celery
from celery.signals import worker_ready

from cart_recovery.config import get_settings
from cart_recovery.logging_config import configure_logging

settings = get_settings()
configure_logging(settings)

# Create Celery app
app = Celery(
    "reminder_worker",
    broker=settings.celery_broker,
    backend=settings.celery_backend,
    include=[
        "reminder_worker.tasks.abandoned_carts",
    ],
)

# Celery configuration
app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=600,  # 10 minutes
    task_soft_time_limit=540,  # 9 minutes
    worker_prefetch_multiplier=1,
    worker_concurrency=1,  # one scan at a time
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    task_default_queue="reminders",
    task_routes={
        "reminder_worker.tasks.*": {"queue": "reminders"},
    },
)

# Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "check-abandoned-carts": {
        "task": "reminder_worker.tasks.abandoned_carts.check_abandoned_carts",
        "schedule": timedelta(minutes=settings.scan_interval_minutes),
    },
}


@worker_ready.connect
def run_initial_scan(sender=None, **kwargs) -> None:
    """Scan once as soon as the worker is up, without waiting for beat."""
    from reminder_worker.tasks.abandoned_carts import check_abandoned_carts

    check_abandoned_carts.delay()


def run() -> None:
    """Run the Celery worker with an embedded beat scheduler."""
    app.worker_main(["worker", "--beat", "--loglevel=info", "-Q", "reminders"])


if __name__ == "__main__":
    run()
