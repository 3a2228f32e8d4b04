"""Connection check tool."""

from typing import Any

from fastmcp import Context

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp


@mcp.tool
@handle_errors
def mixpanel_test_connection(ctx: Context) -> dict[str, Any]:
    """Verify the supplied Mixpanel credentials with a minimal query.

    A rejected credential is reported as connected=false rather than
    raised, so callers can inspect the message.

    Args:
        ctx: FastMCP context.

    Returns:
        Dictionary with connected and message.
    """
    with tenant_client(ctx) as client:
        return client.test_connection().to_dict()
