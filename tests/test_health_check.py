from unittest.mock import patch

from modules.core.models import EventStatus, OutboxEvent


class TestHealthCheck:
    def test_health_check_returns_200(self, client):
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert "timestamp" in data
        assert "services" in data

    def test_health_check_reports_database_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["database"]["status"] == "up"
        assert "response_time_ms" in data["services"]["database"]

    def test_health_check_reports_cache_status(self, client):
        response = client.get("/health")
        data = response.json()
        assert data["services"]["cache"]["status"] == "up"
        assert "response_time_ms" in data["services"]["cache"]

    def test_health_check_reports_outbox_backlog(self, client):
        for status in (EventStatus.PENDING, EventStatus.PENDING, EventStatus.FAILED):
            OutboxEvent.objects.create(
                event_type="OrderCreated",
                aggregate_id="order-1",
                payload={},
                topic="orders",
                status=status,
            )

        data = client.get("/health").json()

        assert data["services"]["outbox"] == {
            "status": "up",
            "pending": 2,
            "processing": 0,
            "failed": 1,
        }

    def test_cache_failure_returns_503(self, client):
        with patch("modules.core.views.cache") as cache:
            cache.get.return_value = None
            response = client.get("/health")
        assert response.status_code == 503
        assert response.json()["services"]["cache"]["status"] == "down"
