"""Pytest fixtures for Guardian Intel MCP tests."""

from __future__ import annotations

import copy
from typing import Any, Callable
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from guardian_intel_mcp.client import GuardianIntelClient
from guardian_intel_mcp.config import Config, SecretStr
from guardian_intel_mcp.models import LookupResult, TagDetails, TagIpsPage, TagSummary
from guardian_intel_mcp.tools import GuardianIntelTools

TEST_BASE_URL = "https://guardian.test/beta"
TEST_API_KEY = "test-api-key-12345"


@pytest.fixture
def mock_config() -> Config:
    """Create a test configuration."""
    return Config(
        api_key=SecretStr(TEST_API_KEY),
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def make_client(mock_config: Config) -> Callable[..., GuardianIntelClient]:
    """Build a client whose HTTP layer is an httpx.MockTransport.

    The handler receives each httpx.Request and returns an httpx.Response
    (or raises an httpx exception to simulate network failures).
    """

    def _make(handler: Callable[[httpx.Request], Any]) -> GuardianIntelClient:
        return GuardianIntelClient(mock_config, transport=httpx.MockTransport(handler))

    return _make


# =============================================================================
# Sample upstream payloads
# =============================================================================

LOOKUP_PAYLOAD = {
    "item": "1.2.3.4",
    "intent": "malicious",
    "tags": ["malware", "botnet"],
    "firstSeen": "2023-01-01T00:00:00Z",
    "lastSeen": "2023-12-31T23:59:59Z",
    "asn": {"asn": "12345", "name": "Test ASN", "countryCode": "US"},
    "abuseContact": {
        "email": "abuse@example.com",
        "status": "verified",
        "lastVerification": "2023-12-01T00:00:00Z",
    },
    "observedActivity": {
        "malware": {
            "type": "malware",
            "description": "Malware distribution",
            "timestamp": "2023-06-15T12:00:00Z",
            "severity": "high",
        }
    },
}

TAGS_PAYLOAD = [
    {
        "name": "credentials:brute-force",
        "intent": "malicious",
        "category": "activity",
        "description": "Brute force attacks",
    },
    {"name": "tool:scanner", "intent": "suspicious", "category": "tool"},
    {"name": "actor:apt29", "intent": "malicious", "category": "actor"},
]

TAG_DETAILS_PAYLOAD = {
    "name": "credentials:brute-force",
    "intent": "malicious",
    "category": "activity",
    "description": "Brute force credential attacks",
    "references": ["https://example.com/ref"],
    "timeline": [
        {
            "action": "created",
            "timestamp": "2023-01-01T00:00:00Z",
            "description": "Tag created",
        }
    ],
}

TAG_IPS_PAYLOAD = {
    "tag": "credentials:brute-force",
    "entries": ["1.2.3.4", "5.6.7.8"],
    "total": 1000,
    "lastUpdate": "2024-01-01T00:00:00Z",
    "snapshot": "snap-abc",
}


@pytest.fixture
def lookup_result() -> LookupResult:
    return LookupResult.from_api(LOOKUP_PAYLOAD, "1.2.3.4")


@pytest.fixture
def mock_client(lookup_result: LookupResult) -> MagicMock:
    """Client double with AsyncMock query methods."""
    client = MagicMock(spec=GuardianIntelClient)
    client.lookup_ip = AsyncMock(return_value=lookup_result)
    client.get_tags = AsyncMock(
        return_value=[TagSummary.from_api(t) for t in TAGS_PAYLOAD]
    )
    client.get_tag_details = AsyncMock(
        return_value=TagDetails.from_api(TAG_DETAILS_PAYLOAD, "credentials:brute-force")
    )
    client.get_tag_ips = AsyncMock(
        return_value=TagIpsPage.from_api(
            TAG_IPS_PAYLOAD, "credentials:brute-force", offset=0, limit=1000
        )
    )
    return client


@pytest.fixture
def tools(mock_client: MagicMock) -> GuardianIntelTools:
    return GuardianIntelTools(mock_client)


@pytest.fixture
def lookup_payload() -> dict[str, Any]:
    return copy.deepcopy(LOOKUP_PAYLOAD)


@pytest.fixture
def tags_payload() -> list[dict[str, Any]]:
    return copy.deepcopy(TAGS_PAYLOAD)


@pytest.fixture
def tag_details_payload() -> dict[str, Any]:
    return copy.deepcopy(TAG_DETAILS_PAYLOAD)


@pytest.fixture
def tag_ips_payload() -> dict[str, Any]:
    return copy.deepcopy(TAG_IPS_PAYLOAD)
