"""Unit tests for the post-commit side-effect handlers."""

from __future__ import annotations

from decimal import Decimal
from unittest.mock import Mock, call, patch

import pytest

from modules.orders.collaborators import GatewayOutcome
from modules.orders.events import OrderStatusChanged, PaymentCaptureRequested, RefundRequested
from modules.orders.exceptions import ExternalSideEffectFailed
from modules.orders.handlers import (
    CapturePaymentHandler,
    InitiateRefundHandler,
    NotifyPartiesHandler,
    publish_outbox_payload,
)
from modules.orders.models import PartyNotification, RefundTransaction

pytestmark = pytest.mark.unit


class TestNotifyParties:
    def test_customer_and_each_vendor_notified(self):
        notifier = Mock()
        event = OrderStatusChanged(
            aggregate_id="order-1",
            order_code="ORD-20260101-000001",
            customer_id="cust-1",
            vendor_ids=["v-1", "v-2"],
            status="processing",
        )

        with patch("modules.orders.handlers.get_notifier", return_value=notifier):
            NotifyPartiesHandler().handle(event)

        payload = event.to_payload()
        assert notifier.notify.call_args_list == [
            call("cust-1", "customer", "OrderStatusChanged", payload),
            call("v-1", "vendor", "OrderStatusChanged", payload),
            call("v-2", "vendor", "OrderStatusChanged", payload),
        ]

    def test_retry_only_reaches_missed_recipients(self):
        event = OrderStatusChanged(
            aggregate_id="order-1",
            order_code="ORD-20260101-000001",
            customer_id="cust-1",
            vendor_ids=["v-1", "v-2"],
            status="shipped_seller",
        )
        flaky = Mock()
        flaky.notify.side_effect = [None, None, ConnectionError("smtp down")]

        with patch("modules.orders.handlers.get_notifier", return_value=flaky):
            with pytest.raises(ConnectionError):
                NotifyPartiesHandler().handle(event)

        healthy = Mock()
        with patch("modules.orders.handlers.get_notifier", return_value=healthy):
            NotifyPartiesHandler().handle(event)

        assert [c.args[0] for c in healthy.notify.call_args_list] == ["v-2"]
        assert PartyNotification.objects.filter(event_id=event.event_id).count() == 3

    def test_redelivered_event_notifies_nobody_twice(self):
        event = OrderStatusChanged(
            aggregate_id="order-1",
            customer_id="cust-1",
            vendor_ids=["v-1"],
            status="processing",
        )
        notifier = Mock()

        with patch("modules.orders.handlers.get_notifier", return_value=notifier):
            NotifyPartiesHandler().handle(event)
            NotifyPartiesHandler().handle(event)

        assert notifier.notify.call_count == 2


class TestCapturePayment:
    def test_refused_capture_raises(self):
        gateway = Mock()
        gateway.capture_payment.return_value = GatewayOutcome(accepted=False, message="limit")
        event = PaymentCaptureRequested(aggregate_id="order-1", amount="265.00")

        with patch("modules.orders.handlers.get_payment_gateway", return_value=gateway):
            with pytest.raises(ExternalSideEffectFailed, match="limit"):
                CapturePaymentHandler().handle(event)

        gateway.capture_payment.assert_called_once_with("order-1", Decimal("265.00"))


class TestInitiateRefund:
    def test_gateway_reference_is_stored(self, place_order, product_a):
        order = place_order([(product_a, 1)])
        refund = RefundTransaction(order=order, amount=Decimal("100.00"))
        refund.save()
        gateway = Mock()
        gateway.initiate_refund.return_value = GatewayOutcome(accepted=True, reference="rfnd_1")
        event = RefundRequested(
            aggregate_id=str(order.id), refund_code=refund.refund_code, amount="100.00"
        )

        with patch("modules.orders.handlers.get_payment_gateway", return_value=gateway):
            InitiateRefundHandler().handle(event)

        gateway.initiate_refund.assert_called_once_with(refund.refund_code, Decimal("100.00"))
        refund.refresh_from_db()
        assert refund.external_transaction_id == "rfnd_1"

    def test_refused_refund_raises(self):
        gateway = Mock()
        gateway.initiate_refund.return_value = GatewayOutcome(accepted=False, message="closed")

        with patch("modules.orders.handlers.get_payment_gateway", return_value=gateway):
            with pytest.raises(ExternalSideEffectFailed):
                InitiateRefundHandler().handle(
                    RefundRequested(aggregate_id="order-1", refund_code="RFD-1", amount="1.00")
                )


def test_outbox_payload_is_republished_on_the_bus():
    event = RefundRequested(aggregate_id="order-1", refund_code="RFD-1", amount="1.00")

    with patch("modules.orders.handlers.event_bus") as bus:
        publish_outbox_payload(event.to_payload())

    (published,), _ = bus.publish.call_args
    assert published == event
