"""Tool catalog and dispatcher for Guardian Intel.

The MCP layer hands over a tool name and a loosely typed argument mapping.
``GuardianIntelTools.dispatch`` turns the mapping into a typed request for
the named tool, runs the handler against the client, and reshapes the
result into the fixed output dict for that tool.

Every failure leaves ``dispatch`` as a ``ToolExecutionError`` whose message
is ``"Tool execution failed: <original message>"``.
"""

from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from .client import GuardianIntelClient
from .errors import ToolExecutionError, UnknownToolError
from .models import LookupResult, TagDetails, TagIpsPage, TagSummary
from .validation import (
    DEFAULT_TAG_IPS_LIMIT,
    DEFAULT_TAG_IPS_OFFSET,
    IP_ADDRESS_PATTERN,
    MAX_TAG_IPS_LIMIT,
    sanitize_for_log,
)

logger = logging.getLogger(__name__)

LOOKUP = "lookup"
TAGS_LIST = "tags_list"
TAG_DETAILS = "tag_details"
TAG_IPS = "tag_ips"

# Names published by earlier releases of the server
LEGACY_TOOL_PREFIX = "guardian_intel_"

SUMMARY_TAG_PREVIEW = 3
UNSPECIFIED = "unknown"


# =============================================================================
# Tool Catalog
# =============================================================================


@dataclass(frozen=True)
class ToolDefinition:
    """Name, description and JSON schema of one tool."""

    name: str
    description: str
    input_schema: dict[str, Any] = field(default_factory=dict)


TOOL_DEFINITIONS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=LOOKUP,
        description=(
            "Look up threat intelligence for an IP address using Abusix Guardian "
            "Intel. Returns threat level, confidence, associated tags, abuse "
            "contact, ASN information and observed malicious activity."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "ip": {
                    "type": "string",
                    "description": (
                        "The IP address to look up (IPv4 dotted quad or "
                        "full eight-group IPv6)"
                    ),
                    "pattern": IP_ADDRESS_PATTERN,
                },
            },
            "required": ["ip"],
        },
    ),
    ToolDefinition(
        name=TAGS_LIST,
        description=(
            "Retrieve all available threat intelligence tags from Guardian Intel. "
            "Tags categorize different types of threats, tools, activities and actors."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "includeDescriptions": {
                    "type": "boolean",
                    "description": "Whether to include detailed descriptions for each tag",
                    "default": False,
                },
            },
        },
    ),
    ToolDefinition(
        name=TAG_DETAILS,
        description=(
            "Get detailed information about a specific threat intelligence tag, "
            "including its intent, category and description."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "tagName": {
                    "type": "string",
                    "description": 'The name of the tag to look up (e.g., "credentials:brute-force")',
                    "minLength": 1,
                },
            },
            "required": ["tagName"],
        },
    ),
    ToolDefinition(
        name=TAG_IPS,
        description=(
            "Retrieve IP addresses associated with a specific threat intelligence "
            "tag. Supports pagination for large datasets."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "tagName": {
                    "type": "string",
                    "description": 'The name of the tag to get IPs for (e.g., "credentials:brute-force")',
                    "minLength": 1,
                },
                "offset": {
                    "type": "number",
                    "description": "Starting offset for pagination",
                    "default": DEFAULT_TAG_IPS_OFFSET,
                    "minimum": 0,
                },
                "limit": {
                    "type": "number",
                    "description": "Maximum number of IPs to return (max 10,000)",
                    "default": DEFAULT_TAG_IPS_LIMIT,
                    "minimum": 1,
                    "maximum": MAX_TAG_IPS_LIMIT,
                },
                "snapshot": {
                    "type": "string",
                    "description": "Snapshot identifier for consistent pagination across requests",
                },
            },
            "required": ["tagName"],
        },
    ),
)


# =============================================================================
# Typed Requests
# =============================================================================


@dataclass(frozen=True)
class LookupRequest:
    ip: Any

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> LookupRequest:
        return cls(ip=args.get("ip"))


@dataclass(frozen=True)
class TagsListRequest:
    include_descriptions: bool = False

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> TagsListRequest:
        return cls(include_descriptions=args.get("includeDescriptions") is True)


@dataclass(frozen=True)
class TagDetailsRequest:
    tag_name: Any

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> TagDetailsRequest:
        return cls(tag_name=args.get("tagName"))


@dataclass(frozen=True)
class TagIpsRequest:
    tag_name: Any
    offset: Any = None
    limit: Any = None
    snapshot: str | None = None

    @classmethod
    def from_arguments(cls, args: Mapping[str, Any]) -> TagIpsRequest:
        snapshot = args.get("snapshot")
        return cls(
            tag_name=args.get("tagName"),
            offset=args.get("offset"),
            limit=args.get("limit"),
            snapshot=snapshot if isinstance(snapshot, str) else None,
        )


# =============================================================================
# Result Shaping
# =============================================================================


def build_threat_summary(threat_level: str, tags: list[str], first_seen: str | None) -> str:
    """Build the one-line human summary of a lookup."""
    summary = f"IP threat level: {threat_level.upper()}"

    if tags:
        preview = ", ".join(tags[:SUMMARY_TAG_PREVIEW])
        summary += f" with {len(tags)} associated tag(s): {preview}"
        if len(tags) > SUMMARY_TAG_PREVIEW:
            summary += f" and {len(tags) - SUMMARY_TAG_PREVIEW} more"

    if first_seen:
        summary += f". First seen: {first_seen}"

    return summary


def build_tag_context(intent: str | None, category: str | None, description: str | None) -> str:
    context = f"This tag represents {intent} activity in the {category} category"
    if description:
        context += f". {description}"
    return context


def format_lookup(result: LookupResult) -> dict[str, Any]:
    threat_level = result.threat_level or UNSPECIFIED
    asn = result.asn
    return {
        "ip": result.ip,
        "tags": list(result.tags),
        "threat_level": threat_level,
        "confidence": result.confidence or "low",
        "first_seen": result.first_seen,
        "last_seen": result.last_seen,
        "abuse_contact": result.abuse_contact.email if result.abuse_contact else None,
        "asn": {
            "number": asn.asn,
            "name": asn.name,
            "country": asn.country_code,
        } if asn else None,
        "blocklists": list(result.blocklists),
        "observed_activity": result.observed_activity,
        "malicious_activities": [
            {
                "type": a.type,
                "description": a.description,
                "timestamp": a.timestamp,
                "severity": a.severity,
            }
            for a in result.activities
        ],
        "summary": build_threat_summary(threat_level, result.tags, result.first_seen),
    }


def format_tags_list(tags: list[TagSummary]) -> dict[str, Any]:
    categories = Counter(t.category or UNSPECIFIED for t in tags)
    intents = Counter(t.intent or UNSPECIFIED for t in tags)
    return {
        "total_tags": len(tags),
        "tags": [t.name for t in tags],
        "tag_details": [
            {
                "name": t.name,
                "intent": t.intent,
                "category": t.category,
                "description": t.description or None,
            }
            for t in tags
        ],
        "categories": dict(categories),
        "intents": dict(intents),
    }


def format_tag_details(details: TagDetails) -> dict[str, Any]:
    return {
        "tag": {
            "name": details.name,
            "intent": details.intent,
            "category": details.category,
            "description": details.description,
        },
        "confidence": details.confidence,
        "references": list(details.references),
        "timeline": [
            {
                "action": entry.action,
                "timestamp": entry.timestamp,
                "description": entry.description,
            }
            for entry in details.timeline
        ],
        "threat_context": build_tag_context(
            details.intent, details.category, details.description
        ),
    }


def format_tag_ips(page: TagIpsPage) -> dict[str, Any]:
    return {
        "tag": page.tag,
        "ip_addresses": list(page.entries),
        "pagination": {
            "total": page.total,
            "returned": page.returned,
            "offset": page.offset,
            "limit": page.limit,
            "has_more": page.has_more,
        },
        "last_update": page.last_update,
        "snapshot": page.snapshot,
        "summary": (
            f"Found {page.returned} IP addresses associated with tag '{page.tag}'"
        ),
    }


# =============================================================================
# Dispatcher
# =============================================================================


class GuardianIntelTools:
    """Routes tool invocations to the Guardian Intel client."""

    def __init__(self, client: GuardianIntelClient) -> None:
        self.client = client
        self._handlers: dict[str, Callable[[Mapping[str, Any]], Awaitable[dict[str, Any]]]] = {
            LOOKUP: self._lookup,
            TAGS_LIST: self._tags_list,
            TAG_DETAILS: self._tag_details,
            TAG_IPS: self._tag_ips,
        }

    @staticmethod
    def list_operations() -> list[ToolDefinition]:
        """Return the tool catalog in stable order."""
        return list(TOOL_DEFINITIONS)

    def _resolve(self, name: str) -> Callable[[Mapping[str, Any]], Awaitable[dict[str, Any]]]:
        handler = self._handlers.get(name)
        if handler is None and isinstance(name, str) and name.startswith(LEGACY_TOOL_PREFIX):
            handler = self._handlers.get(name[len(LEGACY_TOOL_PREFIX):])
            if handler is not None:
                logger.warning(
                    "Deprecated tool name used",
                    extra={"tool": name, "replacement": name[len(LEGACY_TOOL_PREFIX):]},
                )
        if handler is None:
            raise UnknownToolError(name)
        return handler

    async def dispatch(self, name: str, args: Mapping[str, Any] | None = None) -> dict[str, Any]:
        """Run tool ``name`` with ``args`` and return its output dict.

        Raises:
            ToolExecutionError: for every failure, wrapping the original
        """
        try:
            handler = self._resolve(name)
            logger.debug(
                "Dispatching tool",
                extra={"tool": name, "arguments": sanitize_for_log(dict(args or {}))},
            )
            return await handler(args or {})
        except Exception as e:
            logger.warning(
                "Tool execution failed",
                extra={"tool": name, "error_type": type(e).__name__, "error": str(e)},
            )
            raise ToolExecutionError(e) from e

    async def _lookup(self, args: Mapping[str, Any]) -> dict[str, Any]:
        request = LookupRequest.from_arguments(args)
        result = await self.client.lookup_ip(request.ip)
        return format_lookup(result)

    async def _tags_list(self, args: Mapping[str, Any]) -> dict[str, Any]:
        request = TagsListRequest.from_arguments(args)
        tags = await self.client.get_tags(request.include_descriptions)
        return format_tags_list(tags)

    async def _tag_details(self, args: Mapping[str, Any]) -> dict[str, Any]:
        request = TagDetailsRequest.from_arguments(args)
        details = await self.client.get_tag_details(request.tag_name)
        return format_tag_details(details)

    async def _tag_ips(self, args: Mapping[str, Any]) -> dict[str, Any]:
        request = TagIpsRequest.from_arguments(args)
        page = await self.client.get_tag_ips(
            request.tag_name,
            offset=request.offset,
            limit=request.limit,
            snapshot=request.snapshot,
        )
        return format_tag_ips(page)
