"""Shared persistence primitives for the marketplace apps.

``BaseModel`` gives every table a time-ordered UUIDv7 key and timestamps.
``OutboxEvent`` stores side effects (refunds, payment captures, party
notifications) next to the order mutation that produced them; they are
delivered only once that transaction has committed.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Dict, Optional

import uuid6
from django.db import models
from django.db.models import Count, Q
from django.utils import timezone


class BaseModel(models.Model):
    """UUIDv7 primary key plus ``created_at`` / ``updated_at``."""

    id = models.UUIDField(primary_key=True, default=uuid6.uuid7, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        abstract = True

    def save(self, *args, **kwargs) -> None:
        # auto_now fields are skipped by partial saves unless listed
        update_fields = kwargs.get("update_fields")
        if update_fields is not None and "updated_at" not in update_fields:
            kwargs["update_fields"] = [*update_fields, "updated_at"]
        super().save(*args, **kwargs)


class EventStatus(models.TextChoices):
    PENDING = "pending", "Pending"
    PROCESSING = "processing", "Processing"
    PUBLISHED = "published", "Published"
    FAILED = "failed", "Failed"


def _claimable(stale_before: Optional[datetime] = None) -> Q:
    """Rows a worker may take: undelivered, or claimed by a worker that died."""
    condition = Q(status__in=[EventStatus.PENDING, EventStatus.FAILED])
    if stale_before is not None:
        condition |= Q(status=EventStatus.PROCESSING, last_attempt_at__lt=stale_before)
    return condition


class OutboxEventQuerySet(models.QuerySet):
    def relayable(
        self, max_retries: int, stale_before: Optional[datetime] = None
    ) -> OutboxEventQuerySet:
        """Claimable events with attempts left, oldest first."""
        return (
            self.filter(_claimable(stale_before), retry_count__lt=max_retries)
            .order_by("created_at")
        )

    def claim(self, event_id: Any, stale_before: Optional[datetime] = None) -> bool:
        """Move one event to ``processing``; ``False`` if another worker has it.

        A single conditional UPDATE, so at most one caller wins per attempt.
        """
        claimed = self.filter(_claimable(stale_before), id=event_id).update(
            status=EventStatus.PROCESSING,
            last_attempt_at=timezone.now(),
        )
        return claimed == 1

    def backlog(self) -> Dict[str, int]:
        counts = self.aggregate(
            pending=Count("id", filter=Q(status=EventStatus.PENDING)),
            processing=Count("id", filter=Q(status=EventStatus.PROCESSING)),
            failed=Count("id", filter=Q(status=EventStatus.FAILED)),
        )
        return {
            "pending": counts["pending"],
            "processing": counts["processing"],
            "failed": counts["failed"],
        }


class OutboxEvent(BaseModel):
    """A side effect waiting to run after its order transaction commits.

    The row is written by the orders repository inside the business
    transaction.  After commit a ``core.deliver_outbox_event`` task claims
    it (``processing``) and runs its handler.  A failed delivery stays
    ``failed`` with its ``retry_count`` bumped until the
    ``core.relay_outbox_events`` beat task succeeds or retries run out.
    """

    event_type = models.CharField(max_length=100)
    payload = models.JSONField()
    aggregate_id = models.CharField(max_length=255)
    topic = models.CharField(max_length=100)
    status = models.CharField(
        max_length=20,
        choices=EventStatus.choices,
        default=EventStatus.PENDING,
    )
    processed_at = models.DateTimeField(null=True, blank=True, default=None)
    last_attempt_at = models.DateTimeField(null=True, blank=True, default=None)
    error_message = models.TextField(null=True, blank=True, default=None)  # noqa: DJ01
    retry_count = models.PositiveIntegerField(default=0)

    objects = OutboxEventQuerySet.as_manager()

    class Meta:
        db_table = "outbox_events"
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["aggregate_id"], name="outbox_aggregate_idx"),
            models.Index(fields=["status", "created_at"], name="outbox_relay_idx"),
        ]

    def mark_as_published(self) -> None:
        now = timezone.now()
        self.status = EventStatus.PUBLISHED
        self.processed_at = now
        self.last_attempt_at = now
        self.error_message = None
        self.save(
            update_fields=["status", "processed_at", "last_attempt_at", "error_message"]
        )

    def mark_as_failed(self, error: str) -> None:
        """Record a failed attempt; the relay retries while attempts remain."""
        self.status = EventStatus.FAILED
        self.last_attempt_at = timezone.now()
        self.error_message = error
        self.retry_count += 1
        self.save(
            update_fields=["status", "last_attempt_at", "error_message", "retry_count"]
        )

    def __str__(self) -> str:
        return f"{self.event_type} [{self.status}] ({self.aggregate_id})"
