"""Tests for the MCP server layer."""

from __future__ import annotations

import json
from unittest.mock import AsyncMock

import pytest
from mcp.types import (
    INTERNAL_ERROR,
    INVALID_PARAMS,
    CallToolRequest,
    CallToolRequestParams,
)

from guardian_intel_mcp.errors import (
    ConnectionError,
    InvalidResponseError,
    RequestTimeoutError,
    ToolExecutionError,
    UpstreamError,
    ValidationError,
)
from guardian_intel_mcp.logging import _request_id
from guardian_intel_mcp.server import GuardianIntelMCPServer, error_payload


@pytest.fixture
def server(mock_config, mock_client):
    return GuardianIntelMCPServer(mock_config, client=mock_client)


def _request(name, arguments=None):
    return CallToolRequest(
        method="tools/call",
        params=CallToolRequestParams(name=name, arguments=arguments),
    )


# =============================================================================
# Error Payloads
# =============================================================================

class TestErrorPayload:
    """Failure categories map onto JSON-RPC error codes."""

    def test_invalid_input(self):
        payload = error_payload(ToolExecutionError(ValidationError("Invalid IP address format")))
        assert payload == {
            "error": "invalid_input",
            "code": INVALID_PARAMS,
            "message": "Invalid IP address format",
        }

    def test_not_found(self):
        payload = error_payload(ToolExecutionError(UpstreamError(404, "Tag not found")))
        assert payload == {
            "error": "upstream_error",
            "code": INVALID_PARAMS,
            "message": "Tag not found",
        }

    def test_service_unavailable(self):
        payload = error_payload(
            ToolExecutionError(UpstreamError(503, "Service temporarily unavailable"))
        )
        assert payload["code"] == INTERNAL_ERROR
        assert payload["message"] == "Guardian Intel service temporarily unavailable"

    def test_timeout(self):
        payload = error_payload(ToolExecutionError(RequestTimeoutError()))
        assert payload["error"] == "timeout"
        assert payload["code"] == INTERNAL_ERROR
        assert payload["message"] == "Request timeout - Guardian Intel API is not responding"

    def test_connection(self):
        payload = error_payload(ToolExecutionError(ConnectionError()))
        assert payload["error"] == "connection_failure"
        assert payload["code"] == INTERNAL_ERROR
        assert payload["message"] == "Unable to connect to Guardian Intel API"

    def test_other_upstream_status(self):
        payload = error_payload(ToolExecutionError(UpstreamError(401, "Invalid or missing API key")))
        assert payload["code"] == INTERNAL_ERROR
        assert payload["message"] == (
            "Tool execution failed: Guardian Intel API Error (401): Invalid or missing API key"
        )

    def test_invalid_response(self):
        payload = error_payload(ToolExecutionError(InvalidResponseError()))
        assert payload["error"] == "invalid_response"
        assert payload["code"] == INTERNAL_ERROR
        assert "Invalid response format" in payload["message"]

    def test_unexpected(self):
        payload = error_payload(ToolExecutionError(RuntimeError("boom")))
        assert payload == {
            "error": "unexpected_error",
            "code": INTERNAL_ERROR,
            "message": "Tool execution failed: boom",
        }


# =============================================================================
# Tool Listing and Calls
# =============================================================================

class TestServerTools:
    """list_tools and call_tool."""

    def test_list_tools(self, server):
        tools = server.list_tools()
        assert [t.name for t in tools] == ["lookup", "tags_list", "tag_details", "tag_ips"]
        assert tools[0].inputSchema["required"] == ["ip"]

    @pytest.mark.asyncio
    async def test_call_tool_returns_json_text(self, server, mock_client):
        result = await server.call_tool("lookup", {"ip": "1.2.3.4"})

        assert result.isError is False
        assert len(result.content) == 1
        assert result.content[0].type == "text"
        payload = json.loads(result.content[0].text)
        assert payload["ip"] == "1.2.3.4"
        assert payload["threat_level"] == "malicious"
        mock_client.lookup_ip.assert_awaited_once_with("1.2.3.4")

    @pytest.mark.asyncio
    async def test_call_tool_unknown(self, server):
        result = await server.call_tool("unknown_tool", {})

        assert result.isError is True
        assert json.loads(result.content[0].text) == {
            "error": "unknown_operation",
            "code": INTERNAL_ERROR,
            "message": "Tool execution failed: Unknown tool: unknown_tool",
        }

    @pytest.mark.asyncio
    async def test_call_tool_not_found(self, server, mock_client):
        mock_client.get_tag_details.side_effect = UpstreamError(404, "Tag not found")

        result = await server.call_tool("tag_details", {"tagName": "nope"})

        assert result.isError is True
        payload = json.loads(result.content[0].text)
        assert payload["code"] == INVALID_PARAMS
        assert payload["message"] == "Tag not found"

    @pytest.mark.asyncio
    async def test_request_id_cleared(self, server, mock_client):
        await server.call_tool("tags_list", {})
        assert _request_id.get() is None

        mock_client.get_tags.side_effect = RuntimeError("boom")
        result = await server.call_tool("tags_list", {})
        assert result.isError is True
        assert _request_id.get() is None


# =============================================================================
# Registered MCP Handlers
# =============================================================================

class TestRequestHandlers:
    """Calls routed through the SDK's registered CallToolRequest handler."""

    @pytest.mark.asyncio
    async def test_success(self, server):
        handler = server.server.request_handlers[CallToolRequest]

        result = await handler(_request("lookup", {"ip": "1.2.3.4"}))

        assert result.root.isError is False
        assert json.loads(result.root.content[0].text)["ip"] == "1.2.3.4"

    @pytest.mark.asyncio
    async def test_error_code_reaches_client(self, server, mock_client):
        mock_client.get_tag_details.side_effect = UpstreamError(404, "Tag not found")
        handler = server.server.request_handlers[CallToolRequest]

        result = await handler(_request("tag_details", {"tagName": "nope"}))

        assert result.root.isError is True
        assert json.loads(result.root.content[0].text) == {
            "error": "upstream_error",
            "code": INVALID_PARAMS,
            "message": "Tag not found",
        }

    @pytest.mark.asyncio
    async def test_invalid_ip_uses_validator_message(self, server, mock_client):
        """Schema validation is off, so bad input gets the package's own message."""
        mock_client.lookup_ip.side_effect = ValidationError("Invalid IP address format")
        handler = server.server.request_handlers[CallToolRequest]

        result = await handler(_request("lookup", {"ip": "not-an-ip"}))

        assert result.root.isError is True
        assert json.loads(result.root.content[0].text) == {
            "error": "invalid_input",
            "code": INVALID_PARAMS,
            "message": "Invalid IP address format",
        }

    @pytest.mark.asyncio
    async def test_missing_arguments(self, server, mock_client):
        handler = server.server.request_handlers[CallToolRequest]

        result = await handler(_request("tags_list"))

        assert result.root.isError is False
        mock_client.get_tags.assert_awaited_once_with(False)


# =============================================================================
# Lifecycle
# =============================================================================

class TestLifecycle:
    """Startup health check and shutdown."""

    @pytest.mark.asyncio
    async def test_startup_check_reports_only(self, server, mock_client):
        mock_client.health_check = AsyncMock(return_value=False)
        assert await server.startup_check() is False

        mock_client.health_check = AsyncMock(return_value=True)
        assert await server.startup_check() is True

    @pytest.mark.asyncio
    async def test_aclose(self, server, mock_client):
        mock_client.aclose = AsyncMock()
        await server.aclose()
        mock_client.aclose.assert_awaited_once()
