"""Analytics query tools: insights, segmentation, events, properties, JQL.

Every tool here reads from the Query API with the caller's service account.

Example:
    Ask Claude: "How many signups per day last week?"
    Claude uses: mixpanel_query_segmentation(event="Signup",
                 from_date="2024-01-01", to_date="2024-01-07", unit="day")
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mixpanel_relay import CountType, NameCountType, TimeUnit
from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import (
    EventName,
    FromDate,
    Limit,
    PropertyName,
    ToDate,
    Where,
)

SegmentOn = Annotated[
    str, Field(min_length=1, description='Numeric property (e.g., properties["price"])')
]


@mcp.tool
@handle_errors
def mixpanel_query_insights(
    ctx: Context,
    from_date: FromDate,
    to_date: ToDate,
    event: EventName | None = None,
    group_by: list[str] | None = None,
    where: Where = None,
    interval: TimeUnit | None = None,
) -> Any:
    """Query event analytics from Mixpanel (counts, trends, breakdowns).

    Args:
        ctx: FastMCP context.
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        event: Event name to query; all events if omitted.
        group_by: Property expressions to group by.
        where: Optional filter expression.
        interval: Time interval (minute, hour, day, week, month).

    Returns:
        Time series data with event counts grouped by the given dimensions.
    """
    with tenant_client(ctx) as client:
        return client.query_insights(
            from_date,
            to_date,
            event=event,
            group_by=group_by,
            where=where,
            interval=interval,
        )


@mcp.tool
@handle_errors
def mixpanel_query_segmentation(
    ctx: Context,
    event: EventName,
    from_date: FromDate,
    to_date: ToDate,
    type: CountType | None = None,
    unit: TimeUnit | None = None,
    where: Where = None,
    on: str | None = None,
) -> Any:
    """Query segmentation data for an event, optionally broken down by a property.

    Args:
        ctx: FastMCP context.
        event: Event name to segment.
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        type: Query type (general, unique, average).
        unit: Time unit (minute, hour, day, week, month).
        where: Optional filter expression.
        on: Property to segment by (e.g., 'properties["browser"]').

    Returns:
        Segmented event data over time.
    """
    with tenant_client(ctx) as client:
        return client.query_segmentation(
            event, from_date, to_date, type=type, unit=unit, where=where, on=on
        )


@mcp.tool
@handle_errors
def mixpanel_query_segmentation_numeric(
    ctx: Context,
    event: EventName,
    from_date: FromDate,
    to_date: ToDate,
    on: SegmentOn,
    buckets: Annotated[int | None, Field(ge=1)] = None,
    type: CountType | None = None,
    unit: TimeUnit | None = None,
    where: Where = None,
) -> Any:
    """Query segmentation data with numeric bucketing for a property.

    Args:
        ctx: FastMCP context.
        event: Event name.
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        on: Numeric property to bucket.
        buckets: Number of buckets.
        type: Query type (general, unique, average).
        unit: Time unit.
        where: Optional filter expression.

    Returns:
        Segmented data with numeric buckets.
    """
    with tenant_client(ctx) as client:
        return client.query_segmentation_numeric(
            event,
            from_date,
            to_date,
            on,
            type=type,
            unit=unit,
            where=where,
            buckets=buckets,
        )


@mcp.tool
@handle_errors
def mixpanel_query_segmentation_sum(
    ctx: Context,
    event: EventName,
    from_date: FromDate,
    to_date: ToDate,
    on: SegmentOn,
    unit: TimeUnit | None = None,
    where: Where = None,
) -> Any:
    """Sum a numeric property of an event per time bucket.

    Example:
        Ask: "Total revenue per day from Purchase events in January?"
        Uses: mixpanel_query_segmentation_sum(event="Purchase",
              from_date="2024-01-01", to_date="2024-01-31",
              on='properties["amount"]')
    """
    with tenant_client(ctx) as client:
        return client.query_segmentation_sum(
            event, from_date, to_date, on, unit=unit, where=where
        )


@mcp.tool
@handle_errors
def mixpanel_query_segmentation_average(
    ctx: Context,
    event: EventName,
    from_date: FromDate,
    to_date: ToDate,
    on: SegmentOn,
    unit: TimeUnit | None = None,
    where: Where = None,
) -> Any:
    """Average a numeric property of an event per time bucket."""
    with tenant_client(ctx) as client:
        return client.query_segmentation_average(
            event, from_date, to_date, on, unit=unit, where=where
        )


@mcp.tool
@handle_errors
def mixpanel_get_top_events(
    ctx: Context,
    type: CountType,
    limit: Limit = None,
) -> list[dict[str, Any]]:
    """Get today's top events with counts and change vs yesterday.

    Args:
        ctx: FastMCP context.
        type: Counting method (general, unique, average).
        limit: Maximum number of events to return (default: 10).

    Returns:
        List of {event, amount, percent_change}.
    """
    with tenant_client(ctx) as client:
        return [e.to_dict() for e in client.get_top_events(type, limit=limit)]


@mcp.tool
@handle_errors
def mixpanel_get_event_names(
    ctx: Context,
    type: NameCountType,
    limit: Limit = None,
) -> list[str]:
    """List event names in the project.

    Args:
        ctx: FastMCP context.
        type: Counting method (general, unique).
        limit: Maximum number of events (default: 255).

    Returns:
        Event names.
    """
    with tenant_client(ctx) as client:
        return client.get_event_names(type, limit=limit)


@mcp.tool
@handle_errors
def mixpanel_query_events(
    ctx: Context,
    events: Annotated[list[str], Field(min_length=1, description="Event names")],
    from_date: FromDate,
    to_date: ToDate,
    type: CountType,
    unit: TimeUnit | None = None,
    interval: Annotated[int | None, Field(ge=1)] = None,
    where: Where = None,
) -> Any:
    """Get aggregate counts for several events over time.

    Args:
        ctx: FastMCP context.
        events: Event names to query.
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        type: Counting method (general, unique, average).
        unit: Time unit.
        interval: Number of units.
        where: Optional filter expression.

    Returns:
        Mapping of event name to {date: count}.
    """
    with tenant_client(ctx) as client:
        return client.query_events(
            events,
            from_date,
            to_date,
            type,
            unit=unit,
            interval=interval,
            where=where,
        )


@mcp.tool
@handle_errors
def mixpanel_get_event_properties(ctx: Context, event: EventName) -> list[str]:
    """List the top property names recorded for an event."""
    with tenant_client(ctx) as client:
        return client.get_event_properties(event)


@mcp.tool
@handle_errors
def mixpanel_get_property_values(
    ctx: Context,
    event: EventName,
    property_name: PropertyName,
    limit: Limit = None,
) -> list[str]:
    """List sample values of an event property.

    Args:
        ctx: FastMCP context.
        event: Event name.
        property_name: Property name.
        limit: Maximum number of values (default: 100).

    Returns:
        Property values as strings.
    """
    with tenant_client(ctx) as client:
        return client.get_property_values(event, property_name, limit=limit)


@mcp.tool
@handle_errors
def mixpanel_get_top_property_values(
    ctx: Context,
    event: EventName,
    property_name: PropertyName,
    limit: Limit = None,
) -> list[dict[str, Any]]:
    """Get the most common values of an event property with their counts.

    Args:
        ctx: FastMCP context.
        event: Event name.
        property_name: Property name.
        limit: Maximum number of values (default: 100).

    Returns:
        List of {value, count}.
    """
    with tenant_client(ctx) as client:
        values = client.get_top_property_values(event, property_name, limit=limit)
        return [v.to_dict() for v in values]


@mcp.tool
@handle_errors
def mixpanel_execute_jql(
    ctx: Context,
    script: Annotated[str, Field(min_length=1, description="JQL script")],
    params: dict[str, Any] | None = None,
) -> Any:
    """Execute a JQL (JavaScript Query Language) script.

    Args:
        ctx: FastMCP context.
        script: JQL script code.
        params: Optional values exposed to the script as `params`.

    Returns:
        Script results.

    Example:
        Ask: "Count events by name for January"
        Uses: mixpanel_execute_jql(script='''
            function main() {
              return Events({from_date: "2024-01-01", to_date: "2024-01-31"})
                .groupBy(["name"], mixpanel.reducer.count());
            }''')
    """
    with tenant_client(ctx) as client:
        return client.execute_jql(script, params=params)
