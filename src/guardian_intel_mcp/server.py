"""MCP Server for Guardian Intel threat intelligence.

This module implements the Model Context Protocol server that exposes
Guardian Intel queries as MCP tools for AI assistants.

Security:
- All inputs validated before any upstream request
- Failures are returned as JSON error payloads; tracebacks are only logged
"""

from __future__ import annotations

import json
import logging
import time
from typing import Any

from mcp.server import Server
from mcp.types import INTERNAL_ERROR, INVALID_PARAMS, CallToolResult, TextContent, Tool

from . import __version__
from .client import GuardianIntelClient
from .config import Config
from .errors import ErrorKind, ToolExecutionError, UpstreamError
from .logging import clear_request_id, set_request_id
from .tools import GuardianIntelTools
from .validation import sanitize_for_log

logger = logging.getLogger(__name__)

SERVER_NAME = "guardian-intel-mcp"

INSTRUCTIONS = (
    "Threat intelligence lookups via Abusix Guardian Intel. Returns IP "
    "reputation, threat tags and the addresses associated with a tag. "
    "Intelligence is point-in-time context, not proof of compromise."
)


def error_payload(error: ToolExecutionError) -> dict[str, Any]:
    """Build the JSON error body for a failed tool call.

    ``code`` is the JSON-RPC error code the failure maps to: INVALID_PARAMS
    for bad input and unknown tags, INTERNAL_ERROR for everything else.
    """
    inner = error.inner
    kind = error.inner_kind
    code = INTERNAL_ERROR
    message = str(error)

    if kind is ErrorKind.INVALID_INPUT:
        code = INVALID_PARAMS
        message = error.inner_message
    elif isinstance(inner, UpstreamError) and inner.status_code == 404:
        code = INVALID_PARAMS
        message = "Tag not found"
    elif isinstance(inner, UpstreamError) and inner.status_code == 503:
        message = "Guardian Intel service temporarily unavailable"
    elif kind is ErrorKind.TIMEOUT:
        message = "Request timeout - Guardian Intel API is not responding"
    elif kind is ErrorKind.CONNECTION:
        message = error.inner_message

    return {"error": kind.value, "code": code, "message": message}


class GuardianIntelMCPServer:
    """MCP server for Guardian Intel threat intelligence (read-only)."""

    def __init__(self, config: Config, client: GuardianIntelClient | None = None) -> None:
        self.config = config
        self.client = client or GuardianIntelClient(config)
        self.tools = GuardianIntelTools(self.client)
        self.server = Server(SERVER_NAME, version=__version__, instructions=INSTRUCTIONS)
        self._register_tools()

    def _register_tools(self) -> None:
        """Register MCP tools."""

        @self.server.list_tools()
        async def list_tools() -> list[Tool]:
            return self.list_tools()

        # Input is validated by the dispatcher, not against the JSON schema
        @self.server.call_tool(validate_input=False)
        async def call_tool(name: str, arguments: dict | None) -> CallToolResult:
            return await self.call_tool(name, arguments or {})

    def list_tools(self) -> list[Tool]:
        return [
            Tool(
                name=definition.name,
                description=definition.description,
                inputSchema=definition.input_schema,
            )
            for definition in self.tools.list_operations()
        ]

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> CallToolResult:
        """Dispatch one tool call and serialize the outcome as JSON text.

        Failures come back with ``isError`` set and an
        ``{"error", "code", "message"}`` body.
        """
        request_id = set_request_id()
        start = time.monotonic()
        try:
            result = await self.tools.dispatch(name, arguments)
        except ToolExecutionError as e:
            elapsed_ms = (time.monotonic() - start) * 1000
            if e.inner_kind is ErrorKind.UNEXPECTED:
                logger.error(
                    "Tool call failed unexpectedly",
                    exc_info=e.inner,
                    extra={"tool": name, "elapsed_ms": elapsed_ms},
                )
            else:
                logger.warning(
                    "Tool call failed",
                    extra={
                        "tool": name,
                        "error_kind": e.inner_kind.value,
                        "arguments": sanitize_for_log(arguments),
                        "elapsed_ms": elapsed_ms,
                    },
                )
            return CallToolResult(
                content=[TextContent(type="text", text=json.dumps(error_payload(e)))],
                isError=True,
            )
        finally:
            clear_request_id()

        elapsed_ms = (time.monotonic() - start) * 1000
        logger.info(
            "Tool call completed",
            extra={"tool": name, "request_id": request_id, "elapsed_ms": elapsed_ms},
        )
        return CallToolResult(
            content=[TextContent(type="text", text=json.dumps(result, indent=2, default=str))],
        )

    async def startup_check(self) -> bool:
        """Check the API once; the result is only reported, never enforced."""
        healthy = await self.client.health_check()
        if healthy:
            logger.info("Connected to Guardian Intel API")
        else:
            logger.warning(
                "Unable to reach Guardian Intel API. Check the API key and network connection."
            )
        return healthy

    async def aclose(self) -> None:
        await self.client.aclose()

    async def run(self) -> None:
        """Run the MCP server over stdio until the stream closes."""
        from mcp.server.stdio import stdio_server

        await self.startup_check()
        try:
            async with stdio_server() as (read_stream, write_stream):
                logger.info("Guardian Intel MCP server running on stdio")
                await self.server.run(
                    read_stream, write_stream, self.server.create_initialization_options()
                )
        finally:
            await self.aclose()
