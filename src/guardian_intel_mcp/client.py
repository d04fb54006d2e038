"""Guardian Intel API client for threat intelligence queries.

This module provides a high-level async interface to the Abusix Guardian
Intel REST API, hiding HTTP details behind four query methods.

Security:
- Inputs are validated before any request is built
- User input in URL paths is percent-encoded
- Connection timeouts prevent hanging
- The API key never appears in logs or error messages
"""

from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

import httpx

from . import __version__
from .config import Config
from .errors import (
    ConnectionError,
    GuardianIntelMCPError,
    InvalidResponseError,
    RequestTimeoutError,
    TransportError,
    UpstreamError,
)
from .models import LookupResult, TagDetails, TagIpsPage, TagSummary
from .validation import validate_ip, validate_pagination, validate_tag_name

logger = logging.getLogger(__name__)

# =============================================================================
# Constants
# =============================================================================

USER_AGENT = f"guardian-intel-mcp/{__version__}"
API_KEY_HEADER = "x-api-key"

# Messages for error responses that carry no structured body
STATUS_MESSAGES = {
    401: "Invalid or missing API key",
    403: "Access forbidden - check API key permissions",
    404: "Resource not found",
    429: "Rate limit exceeded",
    500: "Internal server error",
    503: "Service temporarily unavailable",
}

# Body fields searched, in order, for an upstream error message and code
_MESSAGE_FIELDS = ("message", "error", "detail", "description")
_CODE_FIELDS = ("statusCode", "code")


# =============================================================================
# Error Normalization
# =============================================================================


def _error_body(response: httpx.Response) -> dict[str, Any] | None:
    """Return the decoded body when it is a non-empty JSON object."""
    try:
        body = response.json()
    except ValueError:
        return None
    if isinstance(body, dict) and body:
        return body
    return None


def normalize_http_error(error: Exception) -> GuardianIntelMCPError:
    """Translate a failed HTTP attempt into the package error taxonomy.

    A structured body wins over the generic status mapping; network
    conditions are only considered when no response arrived at all.
    """
    response = error.response if isinstance(error, httpx.HTTPStatusError) else None

    if response is not None:
        status = response.status_code
        reason = response.reason_phrase
        body = _error_body(response)

        if body is not None:
            message = next(
                (body[f] for f in _MESSAGE_FIELDS if body.get(f)), None
            ) or reason or "Unknown API error"
            code = next(
                (body[f] for f in _CODE_FIELDS if body.get(f)), None
            ) or status or "Unknown"
            return UpstreamError(code, str(message))

        detail = STATUS_MESSAGES.get(status) or reason or "HTTP error"
        return UpstreamError(status, detail)

    if isinstance(error, httpx.TimeoutException):
        return RequestTimeoutError()

    if isinstance(error, httpx.ConnectError):
        return ConnectionError()

    return TransportError(str(error) or type(error).__name__)


# =============================================================================
# Client
# =============================================================================


class GuardianIntelClient:
    """Async client for the Guardian Intel API.

    One instance owns one pooled ``httpx.AsyncClient`` and is safe to share
    between concurrent tasks: nothing mutable is kept between calls.

    Usage:
        async with GuardianIntelClient(config) as client:
            result = await client.lookup_ip("1.2.3.4")
    """

    def __init__(
        self,
        config: Config,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config
        self._http = httpx.AsyncClient(
            base_url=config.base_url,
            headers={
                API_KEY_HEADER: config.api_key.get_secret_value(),
                "Content-Type": "application/json",
                "User-Agent": USER_AGENT,
            },
            timeout=config.timeout_seconds,
            transport=transport,
        )

    @property
    def base_url(self) -> str:
        return self.config.base_url

    async def __aenter__(self) -> GuardianIntelClient:
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        """Close pooled connections."""
        await self._http.aclose()

    @property
    def is_closed(self) -> bool:
        return self._http.is_closed

    async def _get(
        self,
        path: str,
        params: dict[str, str] | None = None,
    ) -> Any:
        """Issue a GET and return the ``result`` field of the response wrapper.

        Raises:
            UpstreamError, RequestTimeoutError, ConnectionError,
            TransportError: normalized HTTP failures
            InvalidResponseError: 2xx without a usable ``result``
        """
        try:
            response = await self._http.get(path, params=params)
            response.raise_for_status()
        except httpx.HTTPError as e:
            error = normalize_http_error(e)
            logger.warning(
                "Guardian Intel request failed",
                extra={
                    "path": path,
                    "error_kind": error.kind.value,
                    "error": str(error),
                },
            )
            raise error from e

        try:
            body = response.json()
        except ValueError as e:
            logger.warning("Guardian Intel returned a non-JSON body", extra={"path": path})
            raise InvalidResponseError() from e

        result = body.get("result") if isinstance(body, dict) else None
        if result is None:
            logger.warning("Guardian Intel response missing result", extra={"path": path})
            raise InvalidResponseError()
        return result

    async def lookup_ip(self, ip: str) -> LookupResult:
        """Look up threat intelligence for a single IP address."""
        validate_ip(ip)

        result = await self._get(f"/query/{quote(ip, safe='')}")
        if not isinstance(result, dict):
            raise InvalidResponseError()
        return LookupResult.from_api(result, ip)

    async def get_tags(self, include_descriptions: bool = False) -> list[TagSummary]:
        """List every tag known to Guardian Intel."""
        params = {"includeDescriptions": "true"} if include_descriptions else None

        result = await self._get("/tags", params=params)
        if not isinstance(result, list):
            raise InvalidResponseError()
        return [TagSummary.from_api(t) for t in result if isinstance(t, dict)]

    async def get_tag_details(self, tag_name: str) -> TagDetails:
        """Get the description, references and timeline of a tag."""
        validate_tag_name(tag_name)

        result = await self._get(f"/tags/{quote(tag_name, safe='')}")
        if not isinstance(result, dict):
            raise InvalidResponseError()
        return TagDetails.from_api(result, tag_name)

    async def get_tag_ips(
        self,
        tag_name: str,
        offset: int | float | None = None,
        limit: int | float | None = None,
        snapshot: str | None = None,
    ) -> TagIpsPage:
        """Get one page of IP addresses associated with a tag.

        Args:
            tag_name: Tag to list
            offset: Start position (default 0); fractions are truncated
            limit: Page size, 1 to 10,000 (default 1000); fractions are truncated
            snapshot: Opaque token from a previous page, passed through as-is
        """
        validate_tag_name(tag_name)
        offset, limit = validate_pagination(offset, limit)

        params = {"offset": str(offset), "limit": str(limit)}
        if snapshot:
            params["snapshot"] = snapshot

        result = await self._get(f"/tags/{quote(tag_name, safe='')}/ips", params=params)
        if not isinstance(result, dict):
            raise InvalidResponseError()
        return TagIpsPage.from_api(result, tag_name, offset, limit)

    async def health_check(self) -> bool:
        """Check reachability with a cheap request. Never raises."""
        try:
            response = await self._http.get(
                "/tags",
                params={"limit": "1"},
                timeout=self.config.health_timeout_seconds,
            )
            response.raise_for_status()
            return True
        except Exception as e:
            logger.debug(f"Health check failed: {type(e).__name__}")
            return False
