"""Tests for structured errors."""

from slack_bridge.errors import (
    BridgeError,
    ErrorCodes,
    InvalidPortError,
    RateLimitedError,
    SecurityRejection,
    SlackTransportError,
    SuspiciousDomainError,
    missing_arguments,
    unknown_tool,
)


def test_to_text_with_suggestion():
    error = BridgeError(code="X", message="Broken", suggestion="Fix it")
    assert error.to_text() == "Broken Fix it"


def test_to_text_without_suggestion():
    error = BridgeError(code="X", message="Broken")
    assert error.to_text() == "Broken"


def test_missing_arguments_wording():
    assert missing_arguments(["text"]).message == "Missing required argument: text"
    assert missing_arguments(["a", "b"]).message == "Missing required arguments: a, b"
    assert missing_arguments(["a"]).code == ErrorCodes.MISSING_ARGUMENTS


def test_unknown_tool_lists_available():
    error = unknown_tool("nope", ["a", "b"])
    assert error.message == "Unknown tool: nope"
    assert error.suggestion == "Available tools: a, b"


def test_rate_limited_exception():
    exc = RateLimitedError("post_message", 60, 60)
    assert exc.endpoint == "post_message"
    assert exc.error.code == ErrorCodes.RATE_LIMITED
    assert str(exc) == "Rate limit exceeded for post_message."
    assert "60 requests per 60 seconds" in exc.error.suggestion


def test_security_rejections():
    domain = SuspiciousDomainError("bit.ly")
    port = InvalidPortError(9999)
    assert isinstance(domain, SecurityRejection)
    assert isinstance(port, SecurityRejection)
    assert domain.error.code == ErrorCodes.SUSPICIOUS_DOMAIN
    assert port.error.message == "Non-standard port detected: 9999"


def test_transport_error_keeps_cause():
    cause = OSError("connection reset")
    exc = SlackTransportError("chat.postMessage", cause)
    assert exc.original_error is cause
    assert exc.error.message == "Slack API call chat.postMessage failed. Error: connection reset"
