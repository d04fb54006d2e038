"""Custom exception hierarchy for Guardian Intel MCP.

Every exception carries an ``ErrorKind`` so callers can branch on the
category without parsing text. The message text itself is still part of the
external contract: MCP clients match on substrings such as
"Invalid IP address format" or "(404)", so messages are built here and
nowhere else.
"""

from __future__ import annotations

from enum import Enum

API_NAME = "Guardian Intel API"


class ErrorKind(Enum):
    """Stable error categories surfaced by the client and dispatcher."""

    INVALID_INPUT = "invalid_input"
    INVALID_RESPONSE = "invalid_response"
    UPSTREAM = "upstream_error"
    TIMEOUT = "timeout"
    CONNECTION = "connection_failure"
    UNKNOWN_OPERATION = "unknown_operation"
    TOOL_EXECUTION = "tool_execution_failure"
    CONFIGURATION = "configuration_error"
    UNEXPECTED = "unexpected_error"


class GuardianIntelMCPError(Exception):
    """Base exception for Guardian Intel MCP.

    All custom exceptions inherit from this class, allowing callers to
    catch all package errors with a single except clause.
    """

    kind: ErrorKind = ErrorKind.UNEXPECTED

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ConfigurationError(GuardianIntelMCPError):
    """Configuration or credential error.

    Raised when:
    - API key is missing, empty or whitespace-only
    - Credential file has insecure permissions
    - Base URL is invalid
    """

    kind = ErrorKind.CONFIGURATION


class ValidationError(GuardianIntelMCPError):
    """Input validation failure, always raised before any network call."""

    kind = ErrorKind.INVALID_INPUT


class InvalidResponseError(GuardianIntelMCPError):
    """Upstream answered 2xx but the payload lacks the ``result`` wrapper."""

    kind = ErrorKind.INVALID_RESPONSE

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or f"Invalid response format from {API_NAME}")


class UpstreamError(GuardianIntelMCPError):
    """Upstream returned a non-2xx status.

    Attributes:
        code: Status code reported by the body or the HTTP layer
        detail: Human-readable reason
    """

    kind = ErrorKind.UPSTREAM

    def __init__(self, code: int | str, detail: str) -> None:
        super().__init__(f"{API_NAME} Error ({code}): {detail}")
        self.code = code
        self.detail = detail

    @property
    def status_code(self) -> int | None:
        """Numeric form of ``code`` when it has one."""
        try:
            return int(self.code)
        except (TypeError, ValueError):
            return None


class RequestTimeoutError(GuardianIntelMCPError):
    """The request exceeded the configured timeout."""

    kind = ErrorKind.TIMEOUT

    def __init__(self) -> None:
        super().__init__(f"{API_NAME} request timeout")


class ConnectionError(GuardianIntelMCPError):
    """DNS failure or connection refused; no response was received."""

    kind = ErrorKind.CONNECTION

    def __init__(self) -> None:
        super().__init__(f"Unable to connect to {API_NAME}")


class TransportError(GuardianIntelMCPError):
    """Any other failure before a response arrived."""

    kind = ErrorKind.UNEXPECTED

    def __init__(self, raw_message: str) -> None:
        super().__init__(f"{API_NAME} Error: {raw_message}")
        self.raw_message = raw_message


class UnknownToolError(GuardianIntelMCPError):
    """Dispatch received a tool name outside the catalog."""

    kind = ErrorKind.UNKNOWN_OPERATION

    def __init__(self, name: str) -> None:
        super().__init__(f"Unknown tool: {name}")
        self.name = name


class ToolExecutionError(GuardianIntelMCPError):
    """Uniform wrapper for every failure surfaced through the dispatcher.

    ``kind`` is ``TOOL_EXECUTION``; ``inner_kind`` keeps the category of the
    wrapped error so the transport can pick an error code without matching
    on text.
    """

    kind = ErrorKind.TOOL_EXECUTION

    def __init__(self, inner: BaseException) -> None:
        inner_message = str(inner) or type(inner).__name__
        super().__init__(f"Tool execution failed: {inner_message}")
        self.inner = inner
        self.inner_message = inner_message
        self.inner_kind = (
            inner.kind
            if isinstance(inner, GuardianIntelMCPError)
            else ErrorKind.UNEXPECTED
        )
