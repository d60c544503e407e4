import logging

import pytest


def _messages(caplog):
    return [record.getMessage() for record in caplog.records]


@pytest.fixture()
def checkout_payload(product_a):
    return {
        "items": [{"product_id": str(product_a.id), "quantity": 1}],
        "shipping_address": {
            "full_name": "Asha Rao",
            "line1": "12 MG Road",
            "city": "Bengaluru",
            "postal_code": "560001",
        },
        "payment_method": "card",
    }


class TestOrderLifecycleLogs:
    def test_order_events_carry_correlation_id(
        self, api_client_with_correlation, customer_user, checkout_payload, caplog
    ):
        client, cid = api_client_with_correlation
        client.force_authenticate(user=customer_user)

        with caplog.at_level(logging.INFO):
            response = client.post("/api/v1/orders/", checkout_payload, format="json")

        assert response.status_code == 201
        created = [m for m in _messages(caplog) if "order.created" in m]
        assert created
        assert all(cid in message for message in created)

    def test_domain_errors_are_logged(self, client_for, customer_user, caplog):
        with caplog.at_level(logging.INFO):
            response = client_for(customer_user).get(
                "/api/v1/orders/0190a1b2-0000-7000-8000-000000000000/"
            )

        assert response.status_code == 404
        assert any("api.domain_error" in m and "not_found" in m for m in _messages(caplog))

