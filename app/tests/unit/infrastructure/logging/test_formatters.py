"""Unit tests for infrastructure.logging.formatters module.

Tests cover:
- add_app_info processor
- mask_sensitive_data processor
- truncate_large_values processor
- contact address masking helpers
"""

import pytest
from infrastructure.logging.formatters import (
    add_app_info,
    mask_address,
    mask_email,
    mask_phone,
    mask_sensitive_data,
    truncate_large_values,
    SENSITIVE_PATTERNS,
)


@pytest.mark.unit
class TestAddAppInfo:
    def test_add_app_info_adds_name_and_version(self):
        processor = add_app_info("escalation-engine", "1.2.3")
        event_dict = {"event": "test_event", "key": "value"}

        result = processor(None, "info", event_dict)

        assert result["app_name"] == "escalation-engine"
        assert result["app_version"] == "1.2.3"
        assert result["key"] == "value"

    def test_add_app_info_with_unknown_version(self):
        processor = add_app_info("test-app")

        result = processor(None, "info", {"event": "test"})

        assert result["app_version"] == "unknown"


@pytest.mark.unit
class TestMaskSensitiveData:
    def test_masks_provider_credentials(self):
        processor = mask_sensitive_data()
        event_dict = {
            "event": "sender_configured",
            "sendgrid_api_key": "SG.abc",
            "TWILIO_AUTH_TOKEN": "tok",
            "vapid_private_key": "pem",
            "channel": "sms",
        }

        result = processor(None, "info", event_dict)

        assert result["sendgrid_api_key"] == "***REDACTED***"
        assert result["TWILIO_AUTH_TOKEN"] == "***REDACTED***"
        assert result["vapid_private_key"] == "***REDACTED***"
        assert result["channel"] == "sms"

    def test_none_values_are_not_masked(self):
        processor = mask_sensitive_data()

        result = processor(None, "info", {"password": None})

        assert result["password"] is None

    def test_additional_patterns(self):
        processor = mask_sensitive_data(additional_patterns=frozenset({"ssn"}))

        result = processor(None, "info", {"user_ssn": "123"})

        assert result["user_ssn"] == "***REDACTED***"

    def test_sensitive_patterns_include_tokens(self):
        assert "token" in SENSITIVE_PATTERNS
        assert "api_key" in SENSITIVE_PATTERNS


@pytest.mark.unit
class TestTruncateLargeValues:
    def test_truncates_long_strings(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "info", {"body": "x" * 25})

        assert result["body"].startswith("x" * 10)
        assert "25 chars total" in result["body"]

    def test_short_strings_untouched(self):
        processor = truncate_large_values(max_length=10)

        result = processor(None, "info", {"body": "short"})

        assert result["body"] == "short"


@pytest.mark.unit
class TestContactMasking:
    def test_mask_email(self):
        assert mask_email("jane.doe@example.com") == "j***@example.com"

    def test_mask_email_without_at(self):
        assert mask_email("not-an-email") == "***"

    def test_mask_phone_keeps_last_four_digits(self):
        assert mask_phone("+1 (555) 010-1234") == "***1234"

    def test_mask_short_phone(self):
        assert mask_phone("123") == "***"

    def test_mask_address_push_endpoint_keeps_host_only(self):
        masked = mask_address("https://fcm.googleapis.com/fcm/send/abc123")

        assert masked == "push:fcm.googleapis.com"

    def test_mask_address_dispatches_by_shape(self):
        assert mask_address("ops@example.com") == "o***@example.com"
        assert mask_address("+15550101234") == "***1234"
        assert mask_address("") == ""
