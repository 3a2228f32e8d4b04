"""Raw event tools: export from the Export API, track and import via ingestion.

Tracking and importing need the X-Mixpanel-Project-Token header.

Example:
    Ask Claude: "Record a Signup event for user u1"
    Claude uses: mixpanel_track_event(event="Signup", distinct_id="u1")
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import DistinctId, EventName, FromDate, Limit, ToDate, Where

EventBatch = Annotated[
    list[dict[str, Any]],
    Field(
        min_length=1,
        description=(
            'Events shaped {"event": name, "properties": {"distinct_id": ..., '
            '"time": unix_seconds, ...}}'
        ),
    ),
]


@mcp.tool
@handle_errors
def mixpanel_export_events(
    ctx: Context,
    from_date: FromDate,
    to_date: ToDate,
    events: list[str] | None = None,
    where: Where = None,
    limit: Limit = None,
) -> dict[str, Any]:
    """Export raw events for a date range.

    Args:
        ctx: FastMCP context.
        from_date: Start date (YYYY-MM-DD format, inclusive).
        to_date: End date (YYYY-MM-DD format, inclusive).
        events: Optional event names to include.
        where: Optional filter expression.
        limit: Maximum number of events.

    Returns:
        Dictionary with events, count and skipped_lines.

    Example:
        Ask: "Show me the Purchase events from yesterday"
        Uses: mixpanel_export_events(from_date="2024-01-14",
              to_date="2024-01-14", events=["Purchase"], limit=100)
    """
    with tenant_client(ctx) as client:
        result = client.export_events(
            from_date, to_date, events=events, where=where, limit=limit
        )
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_track_event(
    ctx: Context,
    event: EventName,
    distinct_id: DistinctId,
    properties: dict[str, Any] | None = None,
    time: Annotated[int | None, Field(description="Unix seconds; now if omitted")] = None,
) -> dict[str, Any]:
    """Track a single event.

    Requires X-Mixpanel-Project-Token header.

    Args:
        ctx: FastMCP context.
        event: Event name.
        distinct_id: User the event belongs to.
        properties: Extra event properties.
        time: Event time in Unix seconds; defaults to now.

    Returns:
        Ingestion result with success and status.
    """
    with tenant_client(ctx) as client:
        result = client.track_event(
            event, distinct_id, properties=properties, time=time
        )
        return result.to_dict()


@mcp.tool
@handle_errors
def mixpanel_track_events(ctx: Context, events: EventBatch) -> dict[str, Any]:
    """Track several events in one request; time defaults to now.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.track_events(events).to_dict()


@mcp.tool
@handle_errors
def mixpanel_import_events(ctx: Context, events: EventBatch) -> dict[str, Any]:
    """Import historical events; every event needs properties.time.

    Requires X-Mixpanel-Project-Token header.
    """
    with tenant_client(ctx) as client:
        return client.import_events(events).to_dict()
