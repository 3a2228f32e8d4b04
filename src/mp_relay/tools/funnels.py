"""Funnel, retention and frequency tools.

Example:
    Ask Claude: "What's the conversion of funnel 7 this month?"
    Claude uses: mixpanel_get_funnel(funnel_id=7, from_date="2024-01-01",
                 to_date="2024-01-31")
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mixpanel_relay import LengthUnit, PeriodUnit, RetentionType
from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import EventName, FromDate, ToDate, Where


@mcp.tool
@handle_errors
def mixpanel_list_funnels(ctx: Context) -> list[dict[str, Any]]:
    """List saved funnels with their ids and names."""
    with tenant_client(ctx) as client:
        return client.list_funnels()


@mcp.tool
@handle_errors
def mixpanel_get_funnel(
    ctx: Context,
    funnel_id: int,
    from_date: FromDate,
    to_date: ToDate,
    interval: PeriodUnit | None = None,
    length: Annotated[int | None, Field(ge=1)] = None,
    length_unit: LengthUnit | None = None,
) -> Any:
    """Get step-by-step conversion data for a saved funnel.

    Args:
        ctx: FastMCP context.
        funnel_id: ID of the saved funnel (see mixpanel_list_funnels).
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        interval: Bucketing unit (day, week, month).
        length: Conversion window length.
        length_unit: Unit of the conversion window (day, hour, minute, week).

    Returns:
        Funnel conversion data.
    """
    with tenant_client(ctx) as client:
        return client.get_funnel(
            funnel_id,
            from_date,
            to_date,
            interval=interval,
            length=length,
            length_unit=length_unit,
        )


@mcp.tool
@handle_errors
def mixpanel_get_retention(
    ctx: Context,
    from_date: FromDate,
    to_date: ToDate,
    born_event: EventName | None = None,
    event: EventName | None = None,
    retention_type: RetentionType | None = None,
    interval: Annotated[int | None, Field(ge=1)] = None,
    interval_count: Annotated[int | None, Field(ge=1)] = None,
    unit: PeriodUnit | None = None,
) -> Any:
    """Analyze how users return after a first action.

    Args:
        ctx: FastMCP context.
        from_date: Start date (YYYY-MM-DD format).
        to_date: End date (YYYY-MM-DD format).
        born_event: Event that places a user in a cohort.
        event: Event that counts as a return.
        retention_type: birth (first time) or compounding (recurring).
        interval: Days between retention periods.
        interval_count: Number of retention periods.
        unit: Bucketing unit (day, week, month).

    Returns:
        Cohort retention data.
    """
    with tenant_client(ctx) as client:
        return client.get_retention(
            from_date,
            to_date,
            born_event=born_event,
            event=event,
            retention_type=retention_type,
            interval=interval,
            interval_count=interval_count,
            unit=unit,
        )


@mcp.tool
@handle_errors
def mixpanel_get_frequency(
    ctx: Context,
    from_date: FromDate,
    to_date: ToDate,
    event: EventName,
    where: Where = None,
    on: str | None = None,
) -> Any:
    """Get how many times users performed an event per period."""
    with tenant_client(ctx) as client:
        return client.get_frequency(from_date, to_date, event, where=where, on=on)
