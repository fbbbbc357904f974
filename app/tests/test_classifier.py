"""
Tests for the error classifier.

Covers the status -> kind table, kind-specific payloads, and the 503 split
between planned maintenance and short payment-settlement delays.
"""
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime

import httpx
import pytest

from clabcraw.domain.transport.classifier import (
    classify,
    classify_connection_error,
    decode_body,
    parse_retry_after,
)
from clabcraw.exceptions import (
    ClabcrawError,
    ErrorKind,
    InvalidOperationError,
    ResourceDisabledError,
    ResourceNotFoundError,
    ServicePausedError,
)

# (status, body, expected kind, expected retriable)
STATUS_TABLE = [
    (400, {"error": "Game disabled", "available_games": ["poker"]}, ErrorKind.RESOURCE_DISABLED, False),
    (400, {"error": "Bad request"}, ErrorKind.BAD_REQUEST, False),
    (401, {"error": "Unauthorized"}, ErrorKind.AUTH_FAILURE, False),
    (402, {"error": "Payment required"}, ErrorKind.PAYMENT_REQUIRED, False),
    (404, {}, ErrorKind.RESOURCE_NOT_FOUND, False),
    (422, {"error": "Invalid action"}, ErrorKind.INVALID_OPERATION, False),
    (503, {"retryable": True, "error": "Payment settlement pending"}, ErrorKind.SERVICE_PAUSED, True),
    (503, {"error": "Platform is paused for maintenance"}, ErrorKind.SERVICE_PAUSED, False),
    (500, {"error": "Internal error"}, ErrorKind.TRANSPORT_FAULT, True),
    (502, {}, ErrorKind.TRANSPORT_FAULT, True),
    (504, {}, ErrorKind.TRANSPORT_FAULT, True),
    (409, {"error": "Conflict"}, ErrorKind.TRANSPORT_FAULT, False),
    (418, {}, ErrorKind.TRANSPORT_FAULT, False),
]


class TestStatusTable:
    """Every status in the table maps to its documented kind and retriable flag."""

    @pytest.mark.parametrize("status,body,kind,retriable", STATUS_TABLE)
    def test_mapping(self, status, body, kind, retriable):
        error = classify(status, body, {})
        assert isinstance(error, ClabcrawError)
        assert error.kind is kind
        assert error.retriable is retriable
        assert error.cause == body

    @pytest.mark.parametrize("status", list(range(500, 600)))
    def test_every_5xx_except_503_is_retriable_transport_fault(self, status):
        if status == 503:
            return
        error = classify(status, {}, {})
        assert error.kind is ErrorKind.TRANSPORT_FAULT
        assert error.retriable is True

    @pytest.mark.parametrize("status", [s for s in range(400, 500) if s not in (400, 401, 402, 404, 422)])
    def test_unlisted_4xx_is_fatal_transport_fault(self, status):
        error = classify(status, {}, {})
        assert error.kind is ErrorKind.TRANSPORT_FAULT
        assert error.retriable is False

    def test_connection_failure(self):
        error = classify_connection_error(httpx.ConnectError("refused"))
        assert error.kind is ErrorKind.CONNECTION_FAULT
        assert error.retriable is True
        assert error.retry_after == 0.5
        assert classify_connection_error(httpx.ConnectError("refused"), retry_after=2.0).retry_after == 2.0


class TestKindPayloads:
    """Kind-specific context carried on the error."""

    def test_disabled_resource_lists_alternatives(self):
        error = classify(400, {"error": "disabled", "available_games": ["poker", "poker-pro"]}, {})
        assert isinstance(error, ResourceDisabledError)
        assert error.alternatives == ["poker", "poker-pro"]

    def test_not_found_carries_requested_id(self):
        error = classify(404, {}, {}, {"resource_id": "game-xyz"})
        assert isinstance(error, ResourceNotFoundError)
        assert error.resource_id == "game-xyz"
        assert "game-xyz" in error.message

    def test_not_found_without_context(self):
        error = classify(404, {}, {})
        assert error.resource_id == "unknown"

    def test_invalid_operation_lists_valid_set(self):
        body = {"error": "Invalid action", "valid_actions": {"fold": {}, "call": {"amount": 100}}}
        error = classify(422, body, {})
        assert isinstance(error, InvalidOperationError)
        assert error.valid_operations == ["fold", "call"]

    def test_message_taken_from_body(self):
        assert classify(401, {"error": "stale timestamp"}, {}).message == "stale timestamp"
        assert classify(503, {"message": "deploying"}, {}).message == "deploying"

    def test_classification_fields_are_read_only(self):
        error = classify(503, {"retryable": True}, {})
        with pytest.raises(AttributeError):
            error.retriable = False
        with pytest.raises(AttributeError):
            error.retry_after = 0


class TestServicePaused:
    """503 split: settlement delay vs. planned maintenance."""

    def test_flagged_503_uses_short_default(self):
        error = classify(503, {"retryable": True}, {})
        assert isinstance(error, ServicePausedError)
        assert error.retriable is True
        assert error.retry_after == 5.0

    def test_unflagged_503_defaults_to_30s(self):
        error = classify(503, {"error": "Paused"}, {})
        assert error.retriable is False
        assert error.retry_after == 30.0

    def test_unflagged_503_honours_header(self):
        error = classify(503, {"error": "Paused"}, {"Retry-After": "120"})
        assert error.retry_after == 120.0

    def test_flagged_503_honours_header(self):
        error = classify(503, {"retryable": True}, {"retry-after": "5"})
        assert error.retry_after == 5.0
        assert error.retriable is True

    def test_truthy_but_not_true_flag_is_maintenance(self):
        assert classify(503, {"retryable": "yes"}, {}).retriable is False


class TestRetryAfter:
    """Retry-After header parsing."""

    def test_integer_seconds(self):
        assert parse_retry_after("30") == 30.0

    def test_http_date(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now + timedelta(seconds=90), usegmt=True)
        assert parse_retry_after(header, now=now) == pytest.approx(90.0)

    def test_http_date_in_past_is_zero(self):
        now = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
        header = format_datetime(now - timedelta(seconds=90), usegmt=True)
        assert parse_retry_after(header, now=now) == 0.0

    @pytest.mark.parametrize("value", [None, "", "soon", "1.5.3"])
    def test_missing_or_malformed_uses_default(self, value):
        assert parse_retry_after(value) == 5.0

    def test_custom_default(self):
        assert parse_retry_after(None, default=30.0) == 30.0

    def test_header_applies_to_transport_faults(self):
        assert classify(500, {}, {"retry-after": "7"}).retry_after == 7.0


class TestDecodeBody:
    def test_json(self):
        assert decode_body(b'{"error": "x"}') == {"error": "x"}

    def test_non_json_falls_back_to_reason(self):
        assert decode_body(b"<html>oops</html>", "Bad Gateway") == {"error": "Bad Gateway"}

    def test_empty(self):
        assert decode_body(b"") == {}
