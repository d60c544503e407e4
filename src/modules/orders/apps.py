from django.apps import AppConfig


class OrdersConfig(AppConfig):
    default_auto_field = "django.db.models.BigAutoField"
    name = "modules.orders"
    label = "orders"

    def ready(self) -> None:
        from modules.core.outbox import outbox_relay
        from modules.orders.events import (
            ORDER_EVENTS,
            OrderEvent,
            PaymentCaptureRequested,
            RefundRequested,
        )
        from modules.orders.handlers import (
            capture_payment_handler,
            initiate_refund_handler,
            notify_parties_handler,
            publish_outbox_payload,
        )
        from shared.infrastructure.bus import event_bus

        event_bus.subscribe(OrderEvent, notify_parties_handler)
        event_bus.subscribe(PaymentCaptureRequested, capture_payment_handler)
        event_bus.subscribe(RefundRequested, initiate_refund_handler)

        for event_type in ORDER_EVENTS:
            outbox_relay.register(event_type, publish_outbox_payload)
