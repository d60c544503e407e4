"""Outbox relay: delivers committed side effects to their handlers.

Handlers are plain callables registered per ``event_type`` (the orders
app registers its refund, capture and notification handlers on startup).
Delivery never happens in the request: ``enqueue`` hands the event id to
the ``core.deliver_outbox_event`` Celery task once the transaction has
committed.  A worker must claim the row before running its handler, so
the task and the beat relay never deliver the same event concurrently.

A handler failure is never propagated: the state change it describes has
already committed.  The failure is logged, the event is marked ``FAILED``
and the beat task retries it.
"""

from __future__ import annotations

from datetime import timedelta
from typing import Any, Callable, Dict

import structlog
from django.conf import settings
from django.db import transaction
from django.utils import timezone

from modules.core.models import OutboxEvent

logger = structlog.get_logger(__name__)

OutboxHandler = Callable[[Dict[str, Any]], None]


def _stale_claims_before():
    return timezone.now() - timedelta(seconds=settings.MARKETPLACE_OUTBOX_CLAIM_TIMEOUT)


def _dispatch(event_id: str) -> None:
    from modules.core.tasks import deliver_outbox_event

    try:
        deliver_outbox_event.delay(event_id)
    except Exception as exc:  # noqa: BLE001 - the row stays pending for the relay
        logger.error("outbox.dispatch_failed", event_id=event_id, error=str(exc))


class OutboxRelay:
    """Registry of side-effect handlers plus delivery bookkeeping."""

    def __init__(self) -> None:
        self._handlers: Dict[str, OutboxHandler] = {}

    def register(self, event_type: str, handler: OutboxHandler) -> None:
        self._handlers[event_type] = handler

    # ------------------------------------------------------------------
    # Enqueue (inside the business transaction)
    # ------------------------------------------------------------------

    def enqueue(
        self,
        event_type: str,
        aggregate_id: str,
        payload: Dict[str, Any],
        topic: str,
    ) -> OutboxEvent:
        """Persist an event and dispatch its delivery task after commit."""
        event = OutboxEvent.objects.create(
            event_type=event_type,
            aggregate_id=aggregate_id,
            payload=payload,
            topic=topic,
        )
        event_id = str(event.id)
        transaction.on_commit(lambda: _dispatch(event_id))
        return event

    # ------------------------------------------------------------------
    # Delivery (Celery workers)
    # ------------------------------------------------------------------

    def deliver(self, event_id: Any) -> bool:
        """Claim one event and run its handler. Returns ``True`` when published.

        ``False`` when the handler failed, or when the event is already
        published, unknown, or claimed by another worker.
        """
        if not OutboxEvent.objects.claim(event_id, stale_before=_stale_claims_before()):
            logger.debug("outbox.not_claimed", event_id=str(event_id))
            return False

        event = OutboxEvent.objects.get(id=event_id)
        log = logger.bind(
            event_id=str(event.id),
            event_type=event.event_type,
            aggregate_id=event.aggregate_id,
            attempt=event.retry_count + 1,
        )

        handler = self._handlers.get(event.event_type)
        if handler is None:
            log.warning("outbox.no_handler")
            event.mark_as_failed(f"No handler registered for {event.event_type}.")
            return False

        try:
            handler(event.payload)
        except Exception as exc:  # noqa: BLE001 - committed state must not roll back
            log.error(
                "outbox.side_effect_failed",
                error=str(exc),
                error_type=type(exc).__name__,
            )
            event.mark_as_failed(str(exc))
            return False

        event.mark_as_published()
        log.info("outbox.side_effect_delivered")
        return True

    def relay_pending(self, max_retries: int, batch_size: int = 100) -> Dict[str, int]:
        """Retry every undelivered event that still has attempts left."""
        candidates = OutboxEvent.objects.relayable(
            max_retries, stale_before=_stale_claims_before()
        ).values_list("id", flat=True)[:batch_size]
        delivered = failed = 0
        for event_id in list(candidates):
            if self.deliver(event_id):
                delivered += 1
            else:
                failed += 1

        logger.info("outbox.relay_completed", delivered=delivered, failed=failed)
        return {"delivered": delivered, "failed": failed}


# Global relay instance (singleton)

outbox_relay = OutboxRelay()
