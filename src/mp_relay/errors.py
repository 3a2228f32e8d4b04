"""Error handling for MCP tools.

This module provides a decorator for converting mixpanel_relay exceptions
to FastMCP ToolError with appropriate messages and actionable guidance.
A ToolError reaches the MCP client as a result with isError set and the
formatted text as its content.

Example:
    ```python
    @mcp.tool
    @handle_errors
    def mixpanel_list_funnels(ctx: Context) -> list[dict[str, Any]]:
        with tenant_client(ctx) as client:
            return client.list_funnels()
    ```
"""

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from functools import wraps
from typing import Any, ParamSpec, TypeVar, cast

from fastmcp.exceptions import ToolError

from mixpanel_relay.exceptions import (
    AuthenticationError,
    InvalidParameterError,
    MissingCredentialsError,
    MixpanelRelayError,
    ProjectTokenRequiredError,
    QueryError,
    RateLimitError,
    ServerError,
)

logger = logging.getLogger(__name__)

P = ParamSpec("P")
R = TypeVar("R")


def format_rich_error(
    summary: str,
    error: MixpanelRelayError,
    suggestions: list[str] | None = None,
) -> str:
    """Format error with structured details for agent parsing.

    Creates an error message with three parts:
    1. Human-readable summary line
    2. JSON block with full error details (parseable by agents)
    3. Actionable suggestions

    Args:
        summary: Human-readable summary line.
        error: The exception with to_dict() method.
        suggestions: Optional list of actionable suggestions.

    Returns:
        Formatted error message with embedded JSON.

    Example:
        ```python
        msg = format_rich_error(
            "Rate limited by Mixpanel API.",
            error,
            ["Retry after 60 seconds."]
        )
        ```
    """
    lines = [summary, ""]

    lines.append("Error Details:")
    lines.append(json.dumps(error.to_dict(), indent=2, default=str))

    if suggestions:
        lines.append("")
        lines.append("Suggestions:")
        for suggestion in suggestions:
            lines.append(f"- {suggestion}")

    return "\n".join(lines)


def _handle_exception(e: Exception) -> None:
    """Handle an exception and convert it to ToolError.

    Args:
        e: The exception to handle.

    Raises:
        ToolError: Always raises with appropriate formatting.
    """
    if isinstance(e, ToolError):
        raise e

    # Credential errors: nothing was sent to Mixpanel
    if isinstance(e, MissingCredentialsError):
        logger.info("Missing credentials: %s", ", ".join(e.missing_fields))
        suggestions = [f"Send the {header} header" for header in e.missing_headers]
        suggestions.append(
            "Credentials are read from request headers on every call"
        )
        raise ToolError(format_rich_error(str(e), e, suggestions)) from e

    if isinstance(e, ProjectTokenRequiredError):
        logger.info("Project token required for %s", e.operation)
        suggestions = [
            f"Send the {e.header} header with the project token",
            "The token is listed under Project Settings in Mixpanel",
        ]
        raise ToolError(format_rich_error(str(e), e, suggestions)) from e

    if isinstance(e, InvalidParameterError):
        logger.info("Invalid parameter %s: %s", e.param, e)
        suggestions = ["Dates use the YYYY-MM-DD format"]
        raise ToolError(
            format_rich_error(f"Invalid parameter '{e.param}': {e}", e, suggestions)
        ) from e

    # API errors - specific types first
    if isinstance(e, RateLimitError):
        logger.warning("Rate limited: retry_after=%s", e.retry_after)
        suggestions = [
            f"Retry after {e.retry_after} seconds.",
            "Query API limits are per project; spread heavy queries over time",
        ]
        raise ToolError(
            format_rich_error("Rate limited by Mixpanel API.", e, suggestions)
        ) from e

    if isinstance(e, AuthenticationError):
        logger.warning("Authentication failed: status_code=%s", e.status_code)
        suggestions = [
            "Check the service account username and secret headers",
            "Verify the project id belongs to the service account",
            "Set X-Mixpanel-EU-Resident: true for EU-resident projects",
        ]
        raise ToolError(
            format_rich_error("Authentication failed.", e, suggestions)
        ) from e

    if isinstance(e, ServerError):
        logger.warning("Server error: status_code=%s", e.status_code)
        suggestions = [
            "This may be a transient issue - try again in a few moments",
            "Check Mixpanel status page if errors persist",
        ]
        raise ToolError(
            format_rich_error(
                f"Mixpanel server error (HTTP {e.status_code}).", e, suggestions
            )
        ) from e

    if isinstance(e, QueryError):
        logger.warning("Query error: %s", e)
        suggestions = [
            "Check query parameters for typos or invalid values",
            "Verify event/property names with mixpanel_get_event_names",
        ]
        raise ToolError(
            format_rich_error(f"API error (HTTP {e.status_code}).", e, suggestions)
        ) from e

    # Catch-all for any other MixpanelRelayError (network failures included)
    if isinstance(e, MixpanelRelayError):
        logger.warning("Unhandled MixpanelRelayError: %s", e)
        raise ToolError(format_rich_error(f"Mixpanel error: {e}", e)) from e

    # Catch unexpected exceptions to prevent unhandled crashes
    logger.exception("Unexpected error in tool")
    error_details = {
        "code": "UNEXPECTED_ERROR",
        "type": type(e).__name__,
        "message": str(e),
    }
    raise ToolError(
        f"Unexpected error: {type(e).__name__}: {e}\n\n"
        "Error Details:\n"
        f"{json.dumps(error_details, indent=2)}\n\n"
        "This may be a bug in the MCP server. Please report this issue."
    ) from e


def handle_errors(func: Callable[P, R]) -> Callable[P, R]:
    """Decorator to convert mixpanel_relay exceptions to FastMCP ToolError.

    Supports both synchronous and asynchronous functions.

    Args:
        func: The tool function to wrap.

    Returns:
        The wrapped function that converts exceptions.
    """
    if asyncio.iscoroutinefunction(func):

        @wraps(func)
        async def async_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
            try:
                return await cast(Coroutine[Any, Any, R], func(*args, **kwargs))
            except Exception as e:
                _handle_exception(e)
                raise  # Should not reach here, but satisfies type checker

        return cast(Callable[P, R], async_wrapper)

    @wraps(func)
    def sync_wrapper(*args: P.args, **kwargs: P.kwargs) -> R:
        try:
            return func(*args, **kwargs)
        except Exception as e:
            _handle_exception(e)
            raise  # Should not reach here, but satisfies type checker

    return cast(Callable[P, R], sync_wrapper)
