# tests/models/test_error_context.py

import pytest

from livespec.models.error_context import ErrorContext, ErrorType, classify_error, is_recoverable_error


@pytest.mark.parametrize(
    "status_code, message, expected",
    [
        (404, "HTTP 404: Not Found", ErrorType.SPEC_NOT_FOUND),
        (401, "HTTP 401", ErrorType.AUTHENTICATION_FAILED),
        (403, "HTTP 403", ErrorType.AUTHENTICATION_FAILED),
        (None, "Blocked by CORS policy", ErrorType.CORS_ERROR),
        (None, "Request timed out", ErrorType.TIMEOUT),
        (None, "connect ECONNREFUSED 127.0.0.1:8000", ErrorType.CONNECTION_FAILED),
        (None, "Could not parse document", ErrorType.MALFORMED_SPEC),
        (502, "HTTP 502: Bad Gateway", ErrorType.NETWORK_ERROR),
        (None, "TypeError: fetch failed", ErrorType.NETWORK_ERROR),
        (None, "something odd", ErrorType.UNKNOWN),
    ],
)
def test_classify_error(status_code, message, expected):
    assert classify_error(status_code, message) is expected


def test_recoverable_types():
    assert is_recoverable_error("connection_failed", "Connection refused")
    assert is_recoverable_error("cors_error", "CORS")
    assert not is_recoverable_error("authentication_failed", "HTTP 401")
    assert not is_recoverable_error("unknown", "boom")


def test_unrecoverable_pattern_wins_over_type():
    assert not is_recoverable_error("timeout", "Invalid credentials supplied")


def test_error_context_to_dict():
    context = ErrorContext(
        source_id="live-spec-test",
        error_type="timeout",
        error_message="Request timeout after 10000ms",
        retry_count=1,
        is_recoverable=True,
        suggested_actions=("Check server performance",),
    )

    data = context.to_dict()

    assert data["retry_count"] == 1
    assert data["suggested_actions"] == ["Check server performance"]
    assert data["timestamp"].endswith("+00:00")
