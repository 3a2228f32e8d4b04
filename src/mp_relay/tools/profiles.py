"""User profile tools: queries on the Query API, updates on the Ingestion API.

Update tools need the X-Mixpanel-Project-Token header; each sends one
profile update envelope.

Example:
    Ask Claude: "Mark user u1 as being on the pro plan"
    Claude uses: mixpanel_set_profile_properties(distinct_id="u1",
                 properties={"plan": "pro"})
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import DistinctId, Limit, PropertyName, Where

Properties = Annotated[
    dict[str, Any], Field(min_length=1, description="Property values by name")
]
PropertyNames = Annotated[
    list[str], Field(min_length=1, description="Property names to remove")
]
ListValues = Annotated[list[Any], Field(min_length=1, description="List values")]


# =============================================================================
# Queries
# =============================================================================


@mcp.tool
@handle_errors
def mixpanel_query_profiles(
    ctx: Context,
    where: Where = None,
    session_id: str | None = None,
    page: Annotated[int, Field(ge=0)] = 0,
    output_properties: list[str] | None = None,
) -> dict[str, Any]:
    """Query user profiles, one page at a time.

    Args:
        ctx: FastMCP context.
        where: Filter expression (e.g., 'properties["plan"] == "pro"').
        session_id: Session id returned by the previous page.
        page: Zero-based page number.
        output_properties: Property names to include.

    Returns:
        Dictionary with results, page, session_id and total.

    Example:
        Ask: "Which users are on the pro plan?"
        Uses: mixpanel_query_profiles(where='properties["plan"] == "pro"')
    """
    with tenant_client(ctx) as client:
        result = client.query_profiles(
            where=where,
            session_id=session_id,
            page=page,
            output_properties=output_properties,
        )
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_get_profile(ctx: Context, distinct_id: DistinctId) -> dict[str, Any]:
    """Get one user's profile; properties are empty when no profile exists."""
    with tenant_client(ctx) as client:
        return client.get_profile(distinct_id).to_dict()


@mcp.tool
@handle_errors
def mixpanel_get_profile_activity(
    ctx: Context,
    distinct_id: DistinctId,
    limit: Limit = None,
    from_time: Annotated[int | None, Field(description="Start (Unix seconds)")] = None,
    to_time: Annotated[int | None, Field(description="End (Unix seconds)")] = None,
) -> Any:
    """Get a user's recent event stream.

    Args:
        ctx: FastMCP context.
        distinct_id: User distinct ID.
        limit: Maximum number of events.
        from_time: Start timestamp (Unix seconds).
        to_time: End timestamp (Unix seconds).

    Returns:
        Activity feed data.
    """
    with tenant_client(ctx) as client:
        return client.get_profile_activity(
            distinct_id, limit=limit, from_time=from_time, to_time=to_time
        )


# =============================================================================
# Updates
# =============================================================================


@mcp.tool
@handle_errors
def mixpanel_set_profile_properties(
    ctx: Context,
    distinct_id: DistinctId,
    properties: Properties,
) -> dict[str, Any]:
    """Set properties on a user profile, overwriting existing values.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.set_profile_properties(distinct_id, properties).to_dict()


@mcp.tool
@handle_errors
def mixpanel_set_profile_properties_once(
    ctx: Context,
    distinct_id: DistinctId,
    properties: Properties,
) -> dict[str, Any]:
    """Set properties on a user profile only where they are not already set.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.set_profile_properties_once(distinct_id, properties).to_dict()


@mcp.tool
@handle_errors
def mixpanel_increment_profile_properties(
    ctx: Context,
    distinct_id: DistinctId,
    increments: Annotated[
        dict[str, float],
        Field(min_length=1, description="Amount to add per property (negative subtracts)"),
    ],
) -> dict[str, Any]:
    """Increment numeric properties on a user profile.

    Requires X-Mixpanel-Project-Token header.

    Example:
        Ask: "Add 3 logins to user u1"
        Uses: mixpanel_increment_profile_properties(distinct_id="u1",
              increments={"login_count": 3})
    """
    with tenant_client(ctx) as client:
        return client.increment_profile_properties(distinct_id, increments).to_dict()


@mcp.tool
@handle_errors
def mixpanel_append_to_profile_list(
    ctx: Context,
    distinct_id: DistinctId,
    property_name: PropertyName,
    values: ListValues,
) -> dict[str, Any]:
    """Append values to a list property on a user profile.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        result = client.append_to_profile_list(distinct_id, property_name, values)
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_remove_from_profile_list(
    ctx: Context,
    distinct_id: DistinctId,
    property_name: PropertyName,
    values: ListValues,
) -> dict[str, Any]:
    """Remove values from a list property on a user profile.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        result = client.remove_from_profile_list(distinct_id, property_name, values)
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_union_to_profile_list(
    ctx: Context,
    distinct_id: DistinctId,
    properties: Annotated[
        dict[str, list[Any]],
        Field(min_length=1, description="Values to merge into each list property"),
    ],
) -> dict[str, Any]:
    """Merge values into list properties without creating duplicates.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.union_to_profile_list(distinct_id, properties).to_dict()


@mcp.tool
@handle_errors
def mixpanel_unset_profile_properties(
    ctx: Context,
    distinct_id: DistinctId,
    property_names: PropertyNames,
) -> dict[str, Any]:
    """Remove properties from a user profile.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.unset_profile_properties(distinct_id, property_names).to_dict()


@mcp.tool
@handle_errors
def mixpanel_delete_profile(ctx: Context, distinct_id: DistinctId) -> dict[str, Any]:
    """Permanently delete a user profile.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.delete_profile(distinct_id).to_dict()
