#!/usr/bin/env python3
"""
OSM MCP Server - Entry Point

Loads .env, checks the Overpass configuration, and runs the MCP server over
stdio (Claude Desktop) or HTTP.
"""

import argparse
import logging
import math
import os
import sys
from pathlib import Path

from dotenv import load_dotenv

from .constants import EnvVar, ServerConfig

# Load environment variables from .env file
env_path = Path(__file__).parent.parent.parent / ".env"
if env_path.exists():
    load_dotenv(env_path)

logger = logging.getLogger(__name__)

_NUMERIC_SETTINGS = (
    EnvVar.OVERPASS_TIMEOUT_MS,
    EnvVar.OVERPASS_MAX_RETRIES,
    EnvVar.OVERPASS_RETRY_BASE_MS,
    EnvVar.OVERPASS_MAX_AREA_KM2,
    EnvVar.OVERPASS_TILE_DEG,
    EnvVar.OVERPASS_CONCURRENCY,
)


def _check_upstream_config() -> list[str]:
    """
    Warn about Overpass settings that will fall back to their defaults.

    Returns:
        Names of the environment variables that were ignored
    """
    ignored = []
    for name in _NUMERIC_SETTINGS:
        raw = os.environ.get(name)
        if raw is None:
            continue
        try:
            usable = math.isfinite(float(raw))
        except ValueError:
            usable = False
        if not usable:
            logger.warning(f"{name}={raw!r} is not a number; using the default")
            ignored.append(name)

    for name in (EnvVar.TILE_CACHE_FILE, EnvVar.REQUEST_CACHE_FILE):
        if os.environ.get(name):
            logger.info(f"{name}: persisting to {os.environ[name]}")
    return ignored


# Import mcp instance and all registered tools from async server
from .async_server import mcp  # noqa: F401, E402


def _use_stdio(mode: str | None) -> bool:
    if mode is not None:
        return mode == "stdio"
    return bool(os.environ.get(EnvVar.MCP_STDIO)) or not sys.stdin.isatty()


def main() -> None:
    """Main entry point for the MCP server."""
    _check_upstream_config()

    parser = argparse.ArgumentParser(description=ServerConfig.DESCRIPTION)
    parser.add_argument(
        "mode",
        nargs="?",
        choices=["stdio", "http"],
        default=None,
        help="Transport mode (stdio for Claude Desktop, http for API); auto-detected when omitted",
    )
    parser.add_argument(
        "--host",
        default=ServerConfig.HTTP_HOST,
        help=f"Host for HTTP mode (default: {ServerConfig.HTTP_HOST})",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=ServerConfig.HTTP_PORT,
        help=f"Port for HTTP mode (default: {ServerConfig.HTTP_PORT})",
    )
    args = parser.parse_args()

    detected = " (auto-detected)" if args.mode is None else ""
    if _use_stdio(args.mode):
        print(f"OSM MCP Server starting in STDIO mode{detected}", file=sys.stderr)
        mcp.run(stdio=True)
    else:
        print(
            f"OSM MCP Server starting in HTTP mode on {args.host}:{args.port}{detected}",
            file=sys.stderr,
        )
        mcp.run(host=args.host, port=args.port, stdio=False)


if __name__ == "__main__":
    main()
