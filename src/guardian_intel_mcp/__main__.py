"""Entry point for running the Guardian Intel MCP server.

Usage:
    python -m guardian_intel_mcp [--api-key KEY] [--base-url URL] [--debug]

Environment Variables:
    ABUSIX_API_KEY: Guardian Intel API key (required unless --api-key is given)
    ABUSIX_BASE_URL: API base URL (default: https://threat-intel-api.abusix.com/beta)
    GUARDIAN_INTEL_TIMEOUT: Request timeout in seconds (default: 30)
    GUARDIAN_INTEL_LOG_FORMAT: Log format - "json" (default) or "text"

The API key can also be provided via:
    ~/.config/guardian-intel-mcp/api_key (with 600 permissions)
    .env file (ABUSIX_API_KEY=...)
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys

from .config import DEFAULT_BASE_URL, Config
from .errors import ConfigurationError
from .logging import setup_logging
from .server import GuardianIntelMCPServer

logger = logging.getLogger("guardian_intel_mcp")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="guardian-intel-mcp",
        description="Abusix Guardian Intel MCP Server - threat intelligence for AI assistants",
    )
    parser.add_argument(
        "--api-key",
        default=None,
        help="Guardian Intel API key (can also use ABUSIX_API_KEY env var)",
    )
    parser.add_argument(
        "--base-url",
        default=None,
        help=f"Base URL for the Guardian Intel API (default: {DEFAULT_BASE_URL})",
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging",
    )
    parser.add_argument(
        "--log-format",
        choices=("json", "text"),
        default=None,
        help="Log format on stderr (default: json, or GUARDIAN_INTEL_LOG_FORMAT)",
    )
    return parser


def main(argv: list[str] | None = None) -> None:
    """Main entry point."""
    args = build_parser().parse_args(argv)

    json_format = None if args.log_format is None else args.log_format == "json"
    setup_logging(
        "guardian-intel-mcp",
        level=logging.DEBUG if args.debug else logging.INFO,
        json_format=json_format,
    )

    try:
        config = Config.load(api_key=args.api_key, base_url=args.base_url)
        logger.info(f"Starting Guardian Intel MCP server: {config}")

        server = GuardianIntelMCPServer(config)
        asyncio.run(server.run())

    except ConfigurationError as e:
        logger.error(f"Configuration error: {e}")
        print(f"Error: {e}", file=sys.stderr)
        print("\nSet it using one of these methods:", file=sys.stderr)
        print('  1. Environment variable: export ABUSIX_API_KEY="your-api-key"', file=sys.stderr)
        print('  2. Command line option: --api-key "your-api-key"', file=sys.stderr)
        print("\nGet your API key from: https://portal.abusix.com/", file=sys.stderr)
        sys.exit(1)

    except KeyboardInterrupt:
        logger.info("Shutting down")

    except Exception:
        logger.exception("Fatal error")
        sys.exit(1)


if __name__ == "__main__":
    main()
