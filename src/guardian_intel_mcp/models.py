"""Typed payloads parsed from Guardian Intel API responses.

All models target the ``item``/``intent`` response shape: every body is
wrapped as ``{"status", "statusCode", "result"}`` and the client hands
``result`` to the ``from_api`` constructors below.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any


def confidence_for_intent(intent: str | None) -> str:
    """Map an upstream intent to a coarse confidence label."""
    if intent == "malicious":
        return "high"
    if intent == "suspicious":
        return "medium"
    return "low"


def _str_list(value: Any) -> list[str]:
    if not isinstance(value, list):
        return []
    return [str(v) for v in value]


@dataclass(frozen=True)
class AsnInfo:
    """Autonomous system that announces an address."""

    asn: Any
    name: str | None = None
    country_code: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> AsnInfo | None:
        if not isinstance(data, dict):
            return None
        return cls(
            asn=data.get("asn"),
            name=data.get("name"),
            country_code=data.get("countryCode"),
        )


@dataclass(frozen=True)
class AbuseContact:
    """Registered abuse mailbox for an address."""

    email: str | None = None
    status: str | None = None
    last_verification: str | None = None

    @classmethod
    def from_api(cls, data: Any) -> AbuseContact | None:
        if isinstance(data, str):
            return cls(email=data)
        if not isinstance(data, dict):
            return None
        return cls(
            email=data.get("email"),
            status=data.get("status"),
            last_verification=data.get("lastVerification"),
        )


@dataclass(frozen=True)
class Activity:
    """A single observed malicious activity."""

    type: str
    description: str = ""
    timestamp: str | None = None
    severity: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any], default_type: str = "") -> Activity:
        return cls(
            type=data.get("type") or default_type,
            description=data.get("description") or "",
            timestamp=data.get("timestamp"),
            severity=data.get("severity"),
        )


def parse_activities(observed: Any) -> list[Activity]:
    """Parse ``observedActivity``, which arrives as a list or a keyed mapping."""
    if isinstance(observed, list):
        return [Activity.from_api(a) for a in observed if isinstance(a, dict)]
    if isinstance(observed, dict):
        return [
            Activity.from_api(a, default_type=str(key))
            for key, a in observed.items()
            if isinstance(a, dict)
        ]
    return []


@dataclass(frozen=True)
class LookupResult:
    """Threat intelligence for one IP address."""

    ip: str
    classification: str | None = None
    confidence: str = "low"
    tags: list[str] = field(default_factory=list)
    first_seen: str | None = None
    last_seen: str | None = None
    abuse_contact: AbuseContact | None = None
    asn: AsnInfo | None = None
    blocklists: list[str] = field(default_factory=list)
    observed_activity: Any = None

    @property
    def threat_level(self) -> str | None:
        """Upstream intent, reported to callers as the threat level."""
        return self.classification

    @property
    def activities(self) -> list[Activity]:
        return parse_activities(self.observed_activity)

    @classmethod
    def from_api(cls, result: dict[str, Any], requested_ip: str) -> LookupResult:
        intent = result.get("intent")
        return cls(
            ip=result.get("item") or requested_ip,
            classification=intent,
            confidence=confidence_for_intent(intent),
            tags=_str_list(result.get("tags")),
            first_seen=result.get("firstSeen"),
            last_seen=result.get("lastSeen"),
            abuse_contact=AbuseContact.from_api(result.get("abuseContact")),
            asn=AsnInfo.from_api(result.get("asn")),
            blocklists=_str_list(result.get("blocklists")),
            observed_activity=result.get("observedActivity"),
        )


@dataclass(frozen=True)
class TagSummary:
    """One entry of the tag catalog."""

    name: str
    intent: str | None = None
    category: str | None = None
    description: str | None = None

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TagSummary:
        return cls(
            name=str(data.get("name", "")),
            intent=data.get("intent"),
            category=data.get("category"),
            description=data.get("description"),
        )


@dataclass(frozen=True)
class TimelineEntry:
    action: str
    timestamp: str | None = None
    description: str = ""

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> TimelineEntry:
        return cls(
            action=data.get("action", ""),
            timestamp=data.get("timestamp"),
            description=data.get("description") or "",
        )


@dataclass(frozen=True)
class TagDetails:
    """Full description of one tag."""

    name: str
    intent: str | None = None
    category: str | None = None
    description: str | None = None
    confidence: str = "low"
    references: list[str] = field(default_factory=list)
    timeline: list[TimelineEntry] = field(default_factory=list)

    @classmethod
    def from_api(cls, result: dict[str, Any], requested_name: str) -> TagDetails:
        intent = result.get("intent")
        timeline = result.get("timeline")
        return cls(
            name=result.get("name") or requested_name,
            intent=intent,
            category=result.get("category"),
            description=result.get("description"),
            confidence=confidence_for_intent(intent),
            references=_str_list(result.get("references")),
            timeline=[
                TimelineEntry.from_api(t)
                for t in (timeline if isinstance(timeline, list) else [])
                if isinstance(t, dict)
            ],
        )


@dataclass(frozen=True)
class TagIpsPage:
    """One page of addresses carrying a tag.

    ``entries`` keeps upstream order. ``snapshot`` is an opaque token the
    caller passes back to page through a consistent view.
    """

    tag: str
    entries: list[str]
    total: int
    offset: int
    limit: int
    last_update: str | None = None
    snapshot: str | None = None

    @property
    def returned(self) -> int:
        return len(self.entries)

    @property
    def has_more(self) -> bool:
        return self.offset + self.returned < self.total

    @classmethod
    def from_api(
        cls, result: dict[str, Any], tag_name: str, offset: int, limit: int
    ) -> TagIpsPage:
        entries = _str_list(result.get("entries"))
        # A zero or missing offset/limit in the body means "as requested"
        page_offset = _non_negative_int(result.get("offset") or None, offset)
        page_limit = _non_negative_int(result.get("limit") or None, limit)
        total = _non_negative_int(result.get("total"), page_offset + len(entries))
        return cls(
            tag=result.get("tag") or tag_name,
            entries=entries,
            total=total,
            offset=page_offset,
            limit=page_limit,
            last_update=result.get("lastUpdate"),
            snapshot=result.get("snapshot"),
        )


def _non_negative_int(value: Any, default: int) -> int:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return default
    return max(0, int(value))
