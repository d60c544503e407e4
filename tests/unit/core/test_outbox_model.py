"""Unit tests for the OutboxEvent model.

Covers:
- Defaults of a freshly enqueued row.
- Payloads written by the orders repository survive a round trip.
- Delivery bookkeeping: ``mark_as_published`` / ``mark_as_failed``.
- Claiming a row for delivery, ``__str__`` and the relay queries.
"""

from __future__ import annotations

import uuid
from datetime import timedelta

import pytest
from django.utils import timezone

from modules.core.models import EventStatus, OutboxEvent
from modules.orders.events import RefundRequested

pytestmark = pytest.mark.unit


def _make_event(**overrides) -> OutboxEvent:
    payload = RefundRequested(
        aggregate_id="0190a1b2-0000-7000-8000-000000000001",
        order_code="ORD-20260101-ABC123",
        refund_code="RFD-20260101-DEF456",
        amount="212.00",
    ).to_payload()
    defaults = {
        "event_type": "RefundRequested",
        "payload": payload,
        "aggregate_id": payload["aggregate_id"],
        "topic": "orders",
    }
    defaults.update(overrides)
    return OutboxEvent.objects.create(**defaults)


class TestOutboxEventCreation:
    def test_defaults(self):
        event = _make_event()
        event.refresh_from_db()

        assert event.status == EventStatus.PENDING
        assert event.processed_at is None
        assert event.error_message is None
        assert event.retry_count == 0

    def test_id_is_uuid7(self):
        event = _make_event()
        assert isinstance(event.id, uuid.UUID)
        assert event.id.version == 7

    def test_payload_round_trip(self):
        event = _make_event()
        event.refresh_from_db()

        assert event.payload["event_name"] == "RefundRequested"
        assert event.payload["amount"] == "212.00"
        assert RefundRequested.from_payload(event.payload).refund_code == "RFD-20260101-DEF456"


class TestOutboxEventTransitions:
    def test_mark_as_published(self):
        event = _make_event()
        event.mark_as_failed("gateway down")

        event.mark_as_published()
        event.refresh_from_db()

        assert event.status == EventStatus.PUBLISHED
        assert event.processed_at is not None
        assert event.error_message is None

    def test_mark_as_failed_counts_attempts(self):
        event = _make_event()

        event.mark_as_failed("timeout")
        event.mark_as_failed("refused")
        event.refresh_from_db()

        assert event.status == EventStatus.FAILED
        assert event.error_message == "refused"
        assert event.retry_count == 2

    def test_str(self):
        event = _make_event()
        assert str(event) == (
            "RefundRequested [pending] (0190a1b2-0000-7000-8000-000000000001)"
        )


class TestOutboxEventQuerySet:
    def test_relayable_skips_published_and_exhausted(self):
        pending = _make_event()
        retrying = _make_event()
        retrying.mark_as_failed("timeout")
        exhausted = _make_event(status=EventStatus.FAILED, retry_count=3)
        _make_event().mark_as_published()

        relayable = list(OutboxEvent.objects.relayable(max_retries=3))

        assert relayable == [pending, retrying]
        assert exhausted not in relayable

    def test_backlog_counts(self):
        _make_event()
        _make_event().mark_as_failed("refused")
        _make_event().mark_as_published()

        assert OutboxEvent.objects.backlog() == {"pending": 1, "processing": 0, "failed": 1}

    def test_attempts_are_timestamped(self):
        event = _make_event()
        assert event.last_attempt_at is None

        event.mark_as_failed("timeout")
        event.refresh_from_db()

        assert event.last_attempt_at is not None

    def test_claim_is_won_once(self):
        event = _make_event()

        assert OutboxEvent.objects.claim(event.id) is True
        assert OutboxEvent.objects.claim(event.id) is False

        event.refresh_from_db()
        assert event.status == EventStatus.PROCESSING
        assert event.last_attempt_at is not None

    def test_published_events_cannot_be_claimed(self):
        event = _make_event()
        event.mark_as_published()

        assert OutboxEvent.objects.claim(event.id) is False

    def test_in_flight_events_are_not_relayable_until_stale(self):
        event = _make_event()
        OutboxEvent.objects.claim(event.id)

        assert list(OutboxEvent.objects.relayable(max_retries=3)) == []
        stale_before = timezone.now() + timedelta(seconds=1)
        assert list(OutboxEvent.objects.relayable(3, stale_before=stale_before)) == [event]
