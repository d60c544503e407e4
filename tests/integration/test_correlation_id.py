import logging
import uuid

import pytest

pytestmark = pytest.mark.integration


def _messages(caplog):
    return [record.getMessage() for record in caplog.records]


class TestCorrelationIdMiddleware:
    def test_echoes_request_id(self, client):
        response = client.get("/health", HTTP_X_REQUEST_ID="checkout-7f3a")
        assert response["X-Request-ID"] == "checkout-7f3a"

    def test_accepts_correlation_id_header(self, client):
        response = client.get("/health", HTTP_X_CORRELATION_ID="gw-trace-42")
        assert response["X-Request-ID"] == "gw-trace-42"

    def test_generates_uuid4_when_missing(self, client):
        request_id = client.get("/health")["X-Request-ID"]
        assert str(uuid.UUID(request_id, version=4)) == request_id

    def test_request_logs_carry_the_id(self, client, caplog):
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID="log-test-correlation-456")

        finished = [m for m in _messages(caplog) if "request.finished" in m]
        assert finished
        assert "log-test-correlation-456" in finished[-1]
        assert "duration_ms" in finished[-1]

    def test_id_does_not_leak_into_the_next_request(self, client, caplog):
        client.get("/health", HTTP_X_REQUEST_ID="first-request")
        caplog.clear()
        with caplog.at_level(logging.INFO):
            client.get("/health", HTTP_X_REQUEST_ID="second-request")

        assert not any("first-request" in m for m in _messages(caplog))
