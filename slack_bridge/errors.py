"""Structured error codes and responses for the Slack bridge."""

from dataclasses import dataclass
from typing import Optional


@dataclass
class BridgeError:
    """Structured error response."""
    code: str
    message: str
    suggestion: Optional[str] = None

    def to_text(self) -> str:
        """Render as a single line for a text content block."""
        if self.suggestion:
            return f"{self.message} {self.suggestion}"
        return self.message


# Error codes
class ErrorCodes:
    """Slack bridge error codes."""
    MISSING_ARGUMENTS = "MISSING_ARGUMENTS"
    UNKNOWN_TOOL = "UNKNOWN_TOOL"
    INVALID_ARGUMENT = "INVALID_ARGUMENT"
    RATE_LIMITED = "RATE_LIMITED"
    SUSPICIOUS_DOMAIN = "SUSPICIOUS_DOMAIN"
    INVALID_PORT = "INVALID_PORT"
    INVALID_URL = "INVALID_URL"
    TRANSPORT_FAILURE = "TRANSPORT_FAILURE"
    CONFIGURATION_ERROR = "CONFIGURATION_ERROR"


def missing_arguments(fields: list[str]) -> BridgeError:
    """Create error for required arguments that are absent or empty."""
    noun = "argument" if len(fields) == 1 else "arguments"
    return BridgeError(
        code=ErrorCodes.MISSING_ARGUMENTS,
        message=f"Missing required {noun}: {', '.join(fields)}",
        suggestion="Check the tool documentation for required parameters.",
    )


def no_arguments() -> BridgeError:
    """Create error for a tool call without any argument map."""
    return BridgeError(
        code=ErrorCodes.MISSING_ARGUMENTS,
        message="No arguments provided",
    )


def unknown_tool(name: str, available: list[str]) -> BridgeError:
    """Create error for a tool name with no registered handler."""
    return BridgeError(
        code=ErrorCodes.UNKNOWN_TOOL,
        message=f"Unknown tool: {name}",
        suggestion=f"Available tools: {', '.join(available)}" if available else None,
    )


def invalid_argument(field: str, reason: str) -> BridgeError:
    """Create error for an argument with an unusable value."""
    return BridgeError(
        code=ErrorCodes.INVALID_ARGUMENT,
        message=f"Invalid argument: {field} - {reason}",
        suggestion="Check the tool documentation for argument types.",
    )


def rate_limited(endpoint: str, limit: int, window_seconds: int) -> BridgeError:
    """Create error for rate limit exceeded."""
    return BridgeError(
        code=ErrorCodes.RATE_LIMITED,
        message=f"Rate limit exceeded for {endpoint}.",
        suggestion=f"Maximum {limit} requests per {window_seconds} seconds. Wait before sending more requests.",
    )


def suspicious_domain(domain: str) -> BridgeError:
    """Create error for a URL pointing at a blocked domain."""
    return BridgeError(
        code=ErrorCodes.SUSPICIOUS_DOMAIN,
        message=f"Suspicious domain detected: {domain}",
        suggestion="Link shorteners and tunnelling domains are blocked. Use the full destination URL.",
    )


def invalid_port(port: int) -> BridgeError:
    """Create error for a URL with a non-standard explicit port."""
    return BridgeError(
        code=ErrorCodes.INVALID_PORT,
        message=f"Non-standard port detected: {port}",
        suggestion="Only ports 80, 443, 8080 and 8443 are allowed in links.",
    )


def invalid_url(url: str) -> BridgeError:
    """Create error for a URL that does not parse."""
    return BridgeError(
        code=ErrorCodes.INVALID_URL,
        message=f"Invalid URL detected: {url}",
    )


def transport_failure(method: str, original_error: str = "") -> BridgeError:
    """Create error for a failed call to the Slack API."""
    message = f"Slack API call {method} failed."
    if original_error:
        message = f"{message} Error: {original_error}"
    return BridgeError(
        code=ErrorCodes.TRANSPORT_FAILURE,
        message=message,
        suggestion="Check network connectivity and SLACK_API_URL.",
    )


class BridgeException(Exception):
    """Base for failures that are reported to the caller as error results."""

    def __init__(self, error: BridgeError):
        self.error = error
        super().__init__(error.message)


class ArgumentError(BridgeException):
    """A tool argument is missing or unusable."""


class RateLimitedError(BridgeException):
    """Raised when an endpoint has used up its window."""

    def __init__(self, endpoint: str, limit: int, window_seconds: int):
        self.endpoint = endpoint
        super().__init__(rate_limited(endpoint, limit, window_seconds))


class SecurityRejection(BridgeException):
    """Outbound text failed URL screening; nothing was sent."""


class SuspiciousDomainError(SecurityRejection):
    def __init__(self, domain: str):
        self.domain = domain
        super().__init__(suspicious_domain(domain))


class InvalidPortError(SecurityRejection):
    def __init__(self, port: int):
        self.port = port
        super().__init__(invalid_port(port))


class InvalidURLError(SecurityRejection):
    def __init__(self, url: str):
        self.url = url
        super().__init__(invalid_url(url))


class SlackTransportError(BridgeException):
    """Raised when the Slack API cannot be reached or returns garbage."""

    def __init__(self, method: str, original_error: Exception):
        self.method = method
        self.original_error = original_error
        super().__init__(transport_failure(method, str(original_error)))


class ConfigurationError(Exception):
    """Raised when required startup settings are missing or invalid."""
