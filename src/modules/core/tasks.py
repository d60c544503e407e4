"""Asynchronous tasks for the core module."""

import structlog
from celery import shared_task
from django.conf import settings

from modules.core.outbox import outbox_relay

logger = structlog.get_logger(__name__)


@shared_task(name="core.debug_task")
def debug_task():
    """Diagnostic task used to check that Celery is operational."""
    logger.info("debug_task.executed", status="ok")
    return {"status": "ok", "message": "Celery is working"}


@shared_task(name="core.deliver_outbox_event", ignore_result=True)
def deliver_outbox_event(event_id: str):
    """Deliver one committed outbox event; failures are left to the relay."""
    return outbox_relay.deliver(event_id)


@shared_task(name="core.relay_outbox_events")
def relay_outbox_events(batch_size: int = 100):
    """Retry outbox events whose side effect has not been delivered yet."""
    return outbox_relay.relay_pending(
        max_retries=settings.MARKETPLACE_OUTBOX_MAX_RETRIES,
        batch_size=batch_size,
    )
