"""Group profile update tools (Ingestion API).

All tools require the X-Mixpanel-Project-Token header.
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import GroupId, GroupKey

Properties = Annotated[
    dict[str, Any], Field(min_length=1, description="Property values by name")
]


@mcp.tool
@handle_errors
def mixpanel_set_group_properties(
    ctx: Context,
    group_key: GroupKey,
    group_id: GroupId,
    properties: Properties,
) -> dict[str, Any]:
    """Set properties on a group profile, overwriting existing values.

    Args:
        ctx: FastMCP context.
        group_key: Group key (e.g., "company").
        group_id: Group identifier (e.g., "acme").
        properties: Property values to set.

    Returns:
        Ingestion result with success and status.
    """
    with tenant_client(ctx) as client:
        result = client.set_group_properties(group_key, group_id, properties)
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_set_group_properties_once(
    ctx: Context,
    group_key: GroupKey,
    group_id: GroupId,
    properties: Properties,
) -> dict[str, Any]:
    """Set group properties only where they are not already set."""
    with tenant_client(ctx) as client:
        result = client.set_group_properties_once(group_key, group_id, properties)
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_unset_group_properties(
    ctx: Context,
    group_key: GroupKey,
    group_id: GroupId,
    property_names: Annotated[
        list[str], Field(min_length=1, description="Property names to remove")
    ],
) -> dict[str, Any]:
    """Remove properties from a group profile."""
    with tenant_client(ctx) as client:
        result = client.unset_group_properties(group_key, group_id, property_names)
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_delete_group(
    ctx: Context, group_key: GroupKey, group_id: GroupId
) -> dict[str, Any]:
    """Permanently delete a group profile."""
    with tenant_client(ctx) as client:
        return client.delete_group(group_key, group_id).to_dict()
