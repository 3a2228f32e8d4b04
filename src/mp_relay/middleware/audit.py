"""Audit logging middleware for the relay server.

Records every tool invocation with the calling tenant's project id, timing
and outcome. Payload-like parameters (event properties, lookup-table rows,
JQL scripts, schema bodies) are summarized by shape rather than logged.
Credential headers are never logged.

Example:
    ```python
    from mp_relay.middleware.audit import create_audit_middleware

    mcp.add_middleware(create_audit_middleware())
    ```
"""

import logging
import time
from dataclasses import dataclass, field
from typing import Any

import mcp.types as mt
from fastmcp.server.dependencies import get_http_headers
from fastmcp.server.middleware import CallNext, Middleware, MiddlewareContext
from fastmcp.tools.tool import ToolResult

from mixpanel_relay._internal.config import PROJECT_ID_HEADER

logger = logging.getLogger("mp_relay.audit")

DEFAULT_SUMMARIZED_PARAMS = frozenset(
    {
        "events",
        "increments",
        "properties",
        "property_names",
        "rows",
        "schema_json",
        "script",
        "values",
    }
)


@dataclass
class AuditConfig:
    """Configuration for audit logging.

    Example:
        ```python
        config = AuditConfig(
            log_level=logging.INFO,
            include_params=True,
            max_param_length=100,
        )
        ```
    """

    log_level: int = logging.INFO
    """Logging level for audit entries."""

    include_params: bool = True
    """Whether to include tool parameters in logs."""

    include_results: bool = False
    """Whether to include result summaries in logs."""

    max_param_length: int = 200
    """Maximum length of parameter values to log."""

    max_result_length: int = 500
    """Maximum length of result summaries to log."""

    summarized_params: frozenset[str] = field(
        default_factory=lambda: DEFAULT_SUMMARIZED_PARAMS
    )
    """Parameters logged by shape only (e.g. "<dict: 3 keys>")."""


def _shape(value: Any) -> str:
    """Describe a value by type and size without its contents."""
    if isinstance(value, dict):
        return f"<dict: {len(value)} keys>"
    if isinstance(value, list | tuple):
        return f"<list: {len(value)} items>"
    if isinstance(value, str):
        return f"<str: {len(value)} chars>"
    return f"<{type(value).__name__}>"


class AuditMiddleware(Middleware):
    """Audit logging middleware for MCP tool invocations.

    Example:
        ```python
        middleware = AuditMiddleware()
        mcp.add_middleware(middleware)
        ```
    """

    def __init__(self, config: AuditConfig | None = None) -> None:
        """Initialize the audit middleware.

        Args:
            config: Audit logging configuration. Uses defaults if not provided.
        """
        self.config = config or AuditConfig()

    def _truncate(self, value: str, max_length: int) -> str:
        """Truncate a string to maximum length, ending with an ellipsis."""
        if len(value) <= max_length:
            return value
        return value[: max_length - 3] + "..."

    def _format_params(self, params: dict[str, Any]) -> str:
        """Format parameters for logging.

        Args:
            params: Tool parameters dictionary.

        Returns:
            Formatted string representation of parameters.
        """
        if not params:
            return "{}"

        formatted_parts: list[str] = []
        for key, value in params.items():
            if key in self.config.summarized_params:
                str_value = _shape(value)
            else:
                str_value = self._truncate(str(value), self.config.max_param_length)
            formatted_parts.append(f"{key}={str_value}")

        return "{" + ", ".join(formatted_parts) + "}"

    def _format_result(self, result: object) -> str:
        """Format result for logging."""
        return self._truncate(str(result), self.config.max_result_length)

    @staticmethod
    def _tenant_label() -> str:
        """Project id of the calling tenant, or '-' when unknown."""
        headers = get_http_headers()
        target = PROJECT_ID_HEADER.lower()
        for key, value in headers.items():
            if key.lower() == target and value:
                return value
        return "-"

    async def on_call_tool(
        self,
        context: MiddlewareContext[mt.CallToolRequestParams],
        call_next: CallNext[mt.CallToolRequestParams, ToolResult],
    ) -> ToolResult:
        """Log tool invocations with timing and outcomes.

        Args:
            context: The middleware context with request information.
            call_next: Function to call the next middleware or tool.

        Returns:
            The result from the tool execution.
        """
        tool_name = context.message.name
        tool_args = context.message.arguments or {}
        project = self._tenant_label()

        param_str = (
            self._format_params(tool_args)
            if self.config.include_params
            else "(params hidden)"
        )
        logger.log(
            self.config.log_level,
            "Tool invoked: %s project=%s %s",
            tool_name,
            project,
            param_str,
        )

        start_time = time.perf_counter()
        try:
            result = await call_next(context)
        except Exception as e:
            elapsed_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                "Tool failed: %s project=%s (%0.1fms) - %s",
                tool_name,
                project,
                elapsed_ms,
                type(e).__name__,
            )
            raise

        elapsed_ms = (time.perf_counter() - start_time) * 1000
        log_msg = f"Tool completed: {tool_name} project={project} ({elapsed_ms:.1f}ms)"
        if self.config.include_results:
            log_msg += f" -> {self._format_result(result)}"
        logger.log(self.config.log_level, log_msg)
        return result


def create_audit_middleware(
    log_level: int = logging.INFO,
    include_params: bool = True,
    include_results: bool = False,
) -> AuditMiddleware:
    """Create a configured audit logging middleware.

    Args:
        log_level: Logging level for audit entries. Default INFO.
        include_params: Whether to include tool parameters. Default True.
        include_results: Whether to include result summaries. Default False.

    Returns:
        A configured AuditMiddleware instance.
    """
    return AuditMiddleware(
        config=AuditConfig(
            log_level=log_level,
            include_params=include_params,
            include_results=include_results,
        )
    )
