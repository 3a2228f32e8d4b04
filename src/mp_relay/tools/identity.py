"""Identity management tools: identify, alias and merge.

Each tool sends one special event to the ingestion track endpoint and
requires the X-Mixpanel-Project-Token header.
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import DistinctId


@mcp.tool
@handle_errors
def mixpanel_create_identity(
    ctx: Context,
    distinct_id: DistinctId,
    anon_id: Annotated[str, Field(min_length=1, description="Anonymous ID")],
) -> dict[str, Any]:
    """Link an anonymous ID to an identified user.

    Args:
        ctx: FastMCP context.
        distinct_id: Identified user ID.
        anon_id: Anonymous (pre-login) ID.

    Returns:
        Ingestion result with success and status.

    Example:
        Ask: "Link device abc123 to user u1"
        Uses: mixpanel_create_identity(distinct_id="u1", anon_id="abc123")
    """
    with tenant_client(ctx) as client:
        return client.create_identity(distinct_id, anon_id).to_dict()


@mcp.tool
@handle_errors
def mixpanel_create_alias(
    ctx: Context,
    distinct_id: DistinctId,
    alias: Annotated[str, Field(min_length=1, description="Alias to register")],
) -> dict[str, Any]:
    """Register an alias for a distinct ID."""
    with tenant_client(ctx) as client:
        return client.create_alias(distinct_id, alias).to_dict()


@mcp.tool
@handle_errors
def mixpanel_merge_identities(
    ctx: Context,
    distinct_id_1: DistinctId,
    distinct_id_2: DistinctId,
) -> dict[str, Any]:
    """Merge two distinct IDs into one identity cluster."""
    with tenant_client(ctx) as client:
        return client.merge_identities(distinct_id_1, distinct_id_2).to_dict()
