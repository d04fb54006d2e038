"""Tests for response models."""

from __future__ import annotations

import pytest

from guardian_intel_mcp.models import (
    AbuseContact,
    LookupResult,
    TagDetails,
    TagIpsPage,
    confidence_for_intent,
    parse_activities,
)


class TestConfidence:

    @pytest.mark.parametrize(
        "intent,expected",
        [("malicious", "high"), ("suspicious", "medium"), ("benign", "low"), (None, "low")],
    )
    def test_mapping(self, intent, expected):
        assert confidence_for_intent(intent) == expected


class TestLookupResult:
    """LookupResult.from_api tolerates sparse and odd payloads."""

    def test_abuse_contact_as_string(self):
        result = LookupResult.from_api({"abuseContact": "abuse@example.net"}, "1.2.3.4")
        assert result.abuse_contact == AbuseContact(email="abuse@example.net")

    def test_non_list_tags_ignored(self):
        result = LookupResult.from_api({"tags": "malware"}, "1.2.3.4")
        assert result.tags == []

    def test_blocklists(self):
        result = LookupResult.from_api({"blocklists": ["xbl", "sbl"]}, "1.2.3.4")
        assert result.blocklists == ["xbl", "sbl"]

    def test_activities_from_list(self):
        activities = parse_activities(
            [{"type": "scan", "description": "Port scan"}, "junk"]
        )
        assert [(a.type, a.description) for a in activities] == [("scan", "Port scan")]

    def test_activities_from_mapping_use_key_as_type(self):
        activities = parse_activities({"spam": {"description": "Spam source"}})
        assert activities[0].type == "spam"

    def test_activities_missing(self):
        assert parse_activities(None) == []


class TestTagDetails:

    def test_requested_name_fallback(self):
        details = TagDetails.from_api({"intent": "suspicious"}, "tool:scanner")
        assert details.name == "tool:scanner"
        assert details.confidence == "medium"
        assert details.timeline == []


class TestTagIpsPage:
    """Pagination arithmetic."""

    def test_body_values_win(self):
        page = TagIpsPage.from_api(
            {"entries": ["1.2.3.4"], "total": 50, "offset": 20, "limit": 10}, "t", 0, 1000
        )
        assert (page.offset, page.limit, page.total) == (20, 10, 50)

    def test_zero_body_values_fall_back(self):
        page = TagIpsPage.from_api({"entries": [], "offset": 0, "limit": 0}, "t", 30, 5)
        assert (page.offset, page.limit) == (30, 5)

    @pytest.mark.parametrize(
        "offset,returned,total,has_more",
        [(0, 2, 1000, True), (0, 2, 2, False), (998, 2, 1000, False), (990, 5, 1000, True)],
    )
    def test_has_more(self, offset, returned, total, has_more):
        entries = [f"10.0.0.{n}" for n in range(returned)]
        page = TagIpsPage.from_api({"entries": entries, "total": total}, "t", offset, 1000)
        assert page.returned == returned
        assert page.has_more is has_more

    def test_negative_total_clamped(self):
        page = TagIpsPage.from_api({"entries": [], "total": -5}, "t", 0, 10)
        assert page.total == 0
        assert page.has_more is False
