"""Annotated parameter types shared by the tool modules.

FastMCP turns the pydantic Field constraints into the tool input schema, so
malformed dates and empty names are rejected before a tool body runs.
"""

from typing import Annotated

from pydantic import Field

DATE_PATTERN = r"^\d{4}-\d{2}-\d{2}$"

FromDate = Annotated[
    str, Field(pattern=DATE_PATTERN, description="Start date (YYYY-MM-DD)")
]
ToDate = Annotated[str, Field(pattern=DATE_PATTERN, description="End date (YYYY-MM-DD)")]
DateStr = Annotated[str, Field(pattern=DATE_PATTERN, description="Date (YYYY-MM-DD)")]
EventName = Annotated[str, Field(min_length=1, description="Event name")]
PropertyName = Annotated[str, Field(min_length=1, description="Property name")]
DistinctId = Annotated[str, Field(min_length=1, description="User distinct ID")]
GroupKey = Annotated[
    str, Field(min_length=1, description="Group key (e.g., 'company')")
]
GroupId = Annotated[str, Field(min_length=1, description="Group identifier")]
Where = Annotated[
    str | None,
    Field(description='Filter expression (e.g., properties["country"] == "US")'),
]
Limit = Annotated[int | None, Field(ge=1, description="Maximum items to return")]
