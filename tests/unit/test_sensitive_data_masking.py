import pytest

from config.settings import mask_sensitive_data

pytestmark = pytest.mark.unit


class TestSensitiveDataMasking:
    def test_card_number_masked(self):
        event_dict = {"event": "test", "card": "4111 1111 1111 1111"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "4111" not in result["card"]
        assert "***MASKED***" in result["card"]

    def test_card_number_inside_text_masked(self):
        event_dict = {"event": "test", "error": "declined card 5500005555555559 by issuer"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "5500005555555559" not in result["error"]
        assert result["error"].startswith("declined card ***MASKED***")

    def test_email_masked(self):
        event_dict = {"event": "test", "customer": "asha.rao@example.in"}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["customer"] == "***MASKED***"

    def test_password_masked(self):
        event_dict = {"event": "test", "data": "password='s3cret123'"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "s3cret123" not in result["data"]
        assert "***MASKED***" in result["data"]

    def test_token_masked(self):
        event_dict = {"event": "test", "header": "token=abc123xyz"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "abc123xyz" not in result["header"]
        assert "***MASKED***" in result["header"]

    def test_webhook_signature_masked(self):
        event_dict = {"event": "test", "header": "signature=deadbeef"}
        result = mask_sensitive_data(None, None, event_dict)
        assert "deadbeef" not in result["header"]

    def test_order_identifiers_unchanged(self):
        event_dict = {
            "event": "order.created",
            "order_code": "ORD-20260101-A1B2C3",
            "total": "265.00",
            "phone": "9000000000",
        }
        result = mask_sensitive_data(None, None, event_dict)
        assert result == {
            "event": "order.created",
            "order_code": "ORD-20260101-A1B2C3",
            "total": "265.00",
            "phone": "9000000000",
        }

    def test_non_string_values_untouched(self):
        event_dict = {"event": "test", "attempt": 4111111111111111}
        result = mask_sensitive_data(None, None, event_dict)
        assert result["attempt"] == 4111111111111111
