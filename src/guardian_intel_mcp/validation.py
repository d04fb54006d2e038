"""Input validation utilities.

Security design:
1. Simple parsing instead of regex where possible
2. Every check runs before any network call
3. Messages are exact: MCP clients match on them
"""

from __future__ import annotations

import math
from typing import Any

from .errors import ValidationError

# =============================================================================
# Constants
# =============================================================================

DEFAULT_TAG_IPS_OFFSET = 0
DEFAULT_TAG_IPS_LIMIT = 1000
MAX_TAG_IPS_LIMIT = 10_000
MAX_IPV6_LENGTH = 39          # Eight full groups plus seven colons

_HEX_CHARS = frozenset("0123456789abcdefABCDEF")

INVALID_IP_MESSAGE = "Invalid IP address format"
TAG_NAME_REQUIRED_MESSAGE = "Tag name is required"
LIMIT_TOO_LARGE_MESSAGE = "Limit cannot exceed 10,000"
INVALID_PAGINATION_MESSAGE = "Offset must be non-negative and limit must be positive"

# Advertised in the tool schema. Equivalent to is_valid_ip() under JSON Schema
# (ECMA-262) semantics, where $ does not match before a trailing newline;
# with Python re, compare using re.fullmatch
_OCTET_PATTERN = r"(?:25[0-5]|2[0-4][0-9]|1[0-9]{2}|[1-9]?[0-9])"
IP_ADDRESS_PATTERN = (
    rf"^(?:{_OCTET_PATTERN}\.){{3}}{_OCTET_PATTERN}$"
    r"|^(?:[0-9a-fA-F]{1,4}:){7}[0-9a-fA-F]{1,4}$"
    r"|^::1$|^::$"
)


# =============================================================================
# IP Address Validation
# =============================================================================


def _is_ipv4(value: str) -> bool:
    """Check if value is a dotted-quad IPv4 address.

    Octets must be 0-255 and may not carry leading zeros.
    """
    parts = value.split(".")
    if len(parts) != 4:
        return False

    for part in parts:
        if not part or not part.isascii() or not part.isdigit():
            return False
        if len(part) > 1 and part[0] == "0":
            return False
        if int(part) > 255:
            return False

    return True


def _is_ipv6(value: str) -> bool:
    """Check if value is a full eight-group IPv6 address.

    Compressed forms are rejected, except the literals "::" and "::1".
    """
    if value in ("::", "::1"):
        return True

    if len(value) > MAX_IPV6_LENGTH:
        return False

    groups = value.split(":")
    if len(groups) != 8:
        return False

    for group in groups:
        if not 1 <= len(group) <= 4:
            return False
        if not all(c in _HEX_CHARS for c in group):
            return False

    return True


def is_valid_ip(value: Any) -> bool:
    """Return True for a strict IPv4 address or a full-form IPv6 address."""
    if not isinstance(value, str):
        return False
    return _is_ipv4(value) or _is_ipv6(value)


def validate_ip(value: Any) -> str:
    """Return ``value`` unchanged or raise ValidationError."""
    if not is_valid_ip(value):
        raise ValidationError(INVALID_IP_MESSAGE)
    return value


# =============================================================================
# Tag Validation
# =============================================================================


def validate_tag_name(value: Any) -> str:
    """Reject missing, empty and whitespace-only tag names.

    The name is returned as given; it is percent-encoded later, not stripped.
    """
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(TAG_NAME_REQUIRED_MESSAGE)
    return value


# =============================================================================
# Pagination Validation
# =============================================================================


def _to_int(value: Any, default: int, field: str) -> int:
    """Coerce a loosely typed number to int, truncating toward zero."""
    if value is None:
        return default
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be a number")
    if isinstance(value, int):
        return value
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ValidationError(f"{field} must be a number") from None
    if not math.isfinite(number):
        raise ValidationError(f"{field} must be a finite number")
    return math.trunc(number)


def validate_pagination(offset: Any = None, limit: Any = None) -> tuple[int, int]:
    """Validate and normalize tag-IP pagination parameters.

    Fractional values are truncated toward zero, then checked: the upper
    limit bound first, then the lower bounds of both values.

    Returns:
        Tuple of (offset, limit)

    Raises:
        ValidationError: If the values are out of range or not numbers
    """
    offset = _to_int(offset, DEFAULT_TAG_IPS_OFFSET, "offset")
    limit = _to_int(limit, DEFAULT_TAG_IPS_LIMIT, "limit")

    if limit > MAX_TAG_IPS_LIMIT:
        raise ValidationError(LIMIT_TOO_LARGE_MESSAGE)

    if offset < 0 or limit < 1:
        raise ValidationError(INVALID_PAGINATION_MESSAGE)

    return offset, limit


# =============================================================================
# Log Sanitization
# =============================================================================

SENSITIVE_FIELDS = {'token', 'password', 'secret', 'key', 'auth', 'credential'}


def sanitize_for_log(value: Any) -> Any:
    """Sanitize value for safe logging.

    Security: Prevents log injection and sensitive data exposure.
    """
    if isinstance(value, str):
        sanitized = value.encode('unicode_escape').decode('ascii')
        if len(sanitized) > 500:
            sanitized = sanitized[:500] + "...[truncated]"
        return sanitized
    elif isinstance(value, dict):
        return _filter_sensitive(value)
    elif isinstance(value, list):
        return [sanitize_for_log(v) for v in value[:10]]
    else:
        return value


def _filter_sensitive(data: dict[str, Any]) -> dict[str, Any]:
    """Filter sensitive fields from data before logging."""
    result = {}
    for key, value in data.items():
        key_lower = str(key).lower()
        if any(s in key_lower for s in SENSITIVE_FIELDS):
            result[key] = "***REDACTED***"
        else:
            result[key] = sanitize_for_log(value)
    return result
