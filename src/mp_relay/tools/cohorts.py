"""Cohort tools."""

from typing import Any

from fastmcp import Context

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp


@mcp.tool
@handle_errors
def mixpanel_list_cohorts(ctx: Context) -> list[dict[str, Any]]:
    """List saved cohorts with their ids, names and sizes.

    Args:
        ctx: FastMCP context.

    Returns:
        List of cohort dictionaries.
    """
    with tenant_client(ctx) as client:
        return client.list_cohorts()
