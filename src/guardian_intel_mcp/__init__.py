"""Guardian Intel MCP Server - Threat Intelligence for AI assistants.

This package provides an MCP (Model Context Protocol) server that exposes
the Abusix Guardian Intel threat intelligence API to MCP clients.

Features:
    - IP address reputation lookup
    - Threat tag catalog and tag details
    - Paginated listing of the IP addresses carrying a tag

Usage:
    python -m guardian_intel_mcp
"""

__version__ = "1.0.0"

from .errors import (
    ConfigurationError,
    ConnectionError,
    ErrorKind,
    GuardianIntelMCPError,
    InvalidResponseError,
    RequestTimeoutError,
    ToolExecutionError,
    TransportError,
    UnknownToolError,
    UpstreamError,
    ValidationError,
)
from .config import Config, SecretStr
from .client import GuardianIntelClient
from .tools import GuardianIntelTools, ToolDefinition
from .logging import setup_logging, get_logger

__all__ = [
    "__version__",
    "ConfigurationError",
    "ConnectionError",
    "ErrorKind",
    "GuardianIntelMCPError",
    "InvalidResponseError",
    "RequestTimeoutError",
    "ToolExecutionError",
    "TransportError",
    "UnknownToolError",
    "UpstreamError",
    "ValidationError",
    "Config",
    "SecretStr",
    "GuardianIntelClient",
    "GuardianIntelTools",
    "ToolDefinition",
    "setup_logging",
    "get_logger",
]
