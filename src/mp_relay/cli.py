"""CLI entry point for the MCP server.

Provides a command-line interface to run the Mixpanel relay server
with configurable transport, bind address, timeouts and log level.

Example:
    Run with default settings (stdio transport, credentials from MP_*
    environment variables):

    ```bash
    mp_relay
    ```

    Run as a multi-tenant HTTP service:

    ```bash
    mp_relay --transport http --host 0.0.0.0 --port 8000
    ```
"""

import argparse
import logging
import sys
from collections.abc import Sequence

from mp_relay.context import (
    DEFAULT_EXPORT_TIMEOUT,
    DEFAULT_TIMEOUT,
    set_client_options,
    set_env_fallback,
)
from mp_relay.server import mcp

LOG_LEVELS = ["DEBUG", "INFO", "WARNING", "ERROR"]


def parse_args(args: Sequence[str] | None = None) -> argparse.Namespace:
    """Parse command-line arguments.

    Args:
        args: Command-line arguments to parse. Uses sys.argv if None.

    Returns:
        Parsed arguments namespace.
    """
    parser = argparse.ArgumentParser(
        prog="mp_relay",
        description="Multi-tenant MCP server for the Mixpanel REST APIs",
    )

    parser.add_argument(
        "--transport",
        type=str,
        default="stdio",
        choices=["stdio", "sse", "http"],
        help=(
            "Transport type (default: stdio). 'http' serves streamable HTTP, "
            "'sse' uses HTTP Server-Sent Events."
        ),
    )

    parser.add_argument(
        "--host",
        type=str,
        default="127.0.0.1",
        help="Bind address (only used with --transport sse/http)",
    )

    parser.add_argument(
        "--port",
        type=int,
        default=8000,
        help="HTTP port (only used with --transport sse/http)",
    )

    parser.add_argument(
        "--timeout",
        type=float,
        default=DEFAULT_TIMEOUT,
        help=f"Mixpanel request timeout in seconds (default: {DEFAULT_TIMEOUT:g})",
    )

    parser.add_argument(
        "--export-timeout",
        type=float,
        default=DEFAULT_EXPORT_TIMEOUT,
        help=(
            "Raw event export timeout in seconds "
            f"(default: {DEFAULT_EXPORT_TIMEOUT:g})"
        ),
    )

    parser.add_argument(
        "--log-level",
        type=str.upper,
        default="INFO",
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )

    return parser.parse_args(args)


def configure_logging(level: str) -> None:
    """Send log records to stderr; stdout carries the stdio protocol."""
    logging.basicConfig(
        level=getattr(logging, level),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        stream=sys.stderr,
    )


def main(args: Sequence[str] | None = None) -> None:
    """Run the MCP server with configured options.

    Entry point for the `mp_relay` command.

    The stdio transport carries no request headers, so it reads tenant
    credentials from MP_* environment variables instead.
    """
    options = parse_args(args)
    configure_logging(options.log_level)
    set_client_options(timeout=options.timeout, export_timeout=options.export_timeout)
    set_env_fallback(options.transport == "stdio")

    if options.transport == "stdio":
        mcp.run(transport="stdio")
    else:
        mcp.run(transport=options.transport, host=options.host, port=options.port)


if __name__ == "__main__":
    main()
