"""Shared Literal type aliases for parameter validation.

These types are exported from the public API and double as tool input
schemas: FastMCP renders each Literal as a JSON Schema enum.

Example:
    from mixpanel_relay import CountType, TimeUnit

    def my_query(client: MixpanelAPIClient, unit: TimeUnit) -> None:
        client.query_segmentation(
            "signup", "2024-01-01", "2024-01-31", unit=unit
        )
"""

from __future__ import annotations

from typing import Literal

# Time units for insights, segmentation and event queries
TimeUnit = Literal["minute", "hour", "day", "week", "month"]

# Funnel and retention bucketing units
PeriodUnit = Literal["day", "week", "month"]

# Funnel conversion window units
LengthUnit = Literal["day", "hour", "minute", "week"]

# Count/aggregation methods
CountType = Literal["general", "unique", "average"]

# Event name listing only supports general and unique counts
NameCountType = Literal["general", "unique"]

# Retention calculation modes
RetentionType = Literal["birth", "compounding"]

# Lexicon schema entity types
SchemaEntityType = Literal["event", "profile", "group", "lookup_table"]

# GDPR retrieval data types
GDPRDataType = Literal["events", "people"]

__all__ = [
    "CountType",
    "GDPRDataType",
    "LengthUnit",
    "NameCountType",
    "PeriodUnit",
    "RetentionType",
    "SchemaEntityType",
    "TimeUnit",
]
