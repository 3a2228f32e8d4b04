"""GDPR data retrieval and deletion tools.

All tools require the X-Mixpanel-Project-Token header; the token is sent as
a query parameter alongside the service account credentials.
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mixpanel_relay import GDPRDataType
from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp

DistinctIds = Annotated[
    list[str], Field(min_length=1, description="Distinct IDs of the data subjects")
]
RequestId = Annotated[str, Field(min_length=1, description="GDPR request ID")]


@mcp.tool
@handle_errors
def mixpanel_create_data_retrieval(
    ctx: Context,
    distinct_ids: DistinctIds,
    data_type: GDPRDataType | None = None,
    completion_email: str | None = None,
) -> Any:
    """Start a GDPR data retrieval for one or more users.

    Args:
        ctx: FastMCP context.
        distinct_ids: Users whose data to retrieve.
        data_type: Restrict to "events" or "people".
        completion_email: Address notified when the export is ready.

    Returns:
        Response containing the retrieval request ID.
    """
    with tenant_client(ctx) as client:
        return client.create_data_retrieval(
            distinct_ids, data_type=data_type, completion_email=completion_email
        )


@mcp.tool
@handle_errors
def mixpanel_get_data_retrieval_status(ctx: Context, request_id: RequestId) -> Any:
    """Check the status of a GDPR data retrieval."""
    with tenant_client(ctx) as client:
        return client.get_data_retrieval_status(request_id)


@mcp.tool
@handle_errors
def mixpanel_create_data_deletion(ctx: Context, distinct_ids: DistinctIds) -> Any:
    """Start a GDPR data deletion for one or more users.

    Deletion is irreversible once Mixpanel processes the request.
    """
    with tenant_client(ctx) as client:
        return client.create_data_deletion(distinct_ids)


@mcp.tool
@handle_errors
def mixpanel_get_data_deletion_status(ctx: Context, request_id: RequestId) -> Any:
    """Check the status of a GDPR data deletion."""
    with tenant_client(ctx) as client:
        return client.get_data_deletion_status(request_id)


@mcp.tool
@handle_errors
def mixpanel_cancel_data_deletion(
    ctx: Context, request_id: RequestId
) -> dict[str, Any]:
    """Cancel a GDPR data deletion that has not started processing."""
    with tenant_client(ctx) as client:
        return client.cancel_data_deletion(request_id)
