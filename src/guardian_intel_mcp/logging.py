"""Structured logging configuration for Guardian Intel MCP.

Provides JSON-formatted logging on stderr; stdout carries the MCP
protocol stream and must stay clean.
"""

from __future__ import annotations

import contextvars
import json
import logging
import os
import sys
import uuid
from datetime import datetime, timezone
from typing import Any

PACKAGE_LOGGER = "guardian_intel_mcp"
LOG_FORMAT_ENV = "GUARDIAN_INTEL_LOG_FORMAT"

# Standard LogRecord attributes, excluded from the "extra" fields
_STANDARD_ATTRS = frozenset(
    {
        "name",
        "msg",
        "args",
        "created",
        "filename",
        "funcName",
        "levelname",
        "levelno",
        "lineno",
        "module",
        "msecs",
        "pathname",
        "process",
        "processName",
        "relativeCreated",
        "stack_info",
        "exc_info",
        "exc_text",
        "thread",
        "threadName",
        "taskName",
        "message",
    }
)


class StructuredFormatter(logging.Formatter):
    """JSON log formatter for structured logging.

    Outputs logs in JSON format with consistent fields for
    easy parsing by log aggregation systems.
    """

    def __init__(self, service_name: str = "guardian-intel-mcp") -> None:
        super().__init__()
        self.service_name = service_name

    def format(self, record: logging.LogRecord) -> str:
        """Format log record as JSON."""
        log_data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname,
            "logger": record.name,
            "message": record.getMessage(),
            "service": self.service_name,
        }

        if record.levelno >= logging.WARNING:
            log_data["location"] = {
                "file": record.pathname,
                "line": record.lineno,
                "function": record.funcName,
            }

        if record.exc_info and record.exc_info[0]:
            log_data["exception"] = {
                "type": record.exc_info[0].__name__,
                "message": str(record.exc_info[1]) if record.exc_info[1] else None,
            }

        for key, value in record.__dict__.items():
            if key not in _STANDARD_ATTRS and not key.startswith("_"):
                try:
                    json.dumps(value)
                    log_data[key] = value
                except (TypeError, ValueError):
                    log_data[key] = str(value)

        return json.dumps(log_data, default=str)


# Per-task request id; each asyncio task sees its own value
_request_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "guardian_intel_request_id", default=None
)


class RequestContextFilter(logging.Filter):
    """Filter that adds the current request id to log records.

    Backed by a ContextVar so concurrent tool calls on one event loop
    keep separate correlation ids.
    """

    def filter(self, record: logging.LogRecord) -> bool:
        request_id = _request_id.get()
        if request_id is not None:
            record.request_id = request_id
        return True


_context_filter = RequestContextFilter()


def setup_logging(
    service_name: str = "guardian-intel-mcp",
    *,
    level: int = logging.INFO,
    json_format: bool | None = None,
) -> None:
    """Configure logging for the MCP server.

    Args:
        service_name: Service name for log entries
        level: Logging level (default: INFO)
        json_format: Use JSON formatting. If None, checks the
            GUARDIAN_INTEL_LOG_FORMAT env var (default: "json").
    """
    if json_format is None:
        json_format = os.environ.get(LOG_FORMAT_ENV, "json").lower() != "text"

    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level)
    logger.handlers.clear()

    handler = logging.StreamHandler(sys.stderr)
    handler.setLevel(level)

    formatter: logging.Formatter
    if json_format:
        formatter = StructuredFormatter(service_name)
    else:
        formatter = logging.Formatter(
            "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
        )

    handler.setFormatter(formatter)
    handler.addFilter(_context_filter)
    logger.addHandler(handler)

    logger.propagate = False


def get_logger(name: str) -> logging.Logger:
    """Get a logger with the guardian_intel_mcp prefix."""
    return logging.getLogger(f"{PACKAGE_LOGGER}.{name}")


def set_request_id(request_id: str | None = None) -> str:
    """Set request ID for correlation in the current task."""
    if request_id is None:
        request_id = str(uuid.uuid4())[:8]
    _request_id.set(request_id)
    return request_id


def clear_request_id() -> None:
    """Clear request ID after request completes."""
    _request_id.set(None)
