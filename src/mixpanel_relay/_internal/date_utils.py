"""Parameter checks applied before a request is built.

Mixpanel rejects malformed dates with an opaque 400; checking them locally
gives the caller a precise error and avoids a wasted API call.
"""

from __future__ import annotations

import re
from datetime import date

from mixpanel_relay.exceptions import InvalidParameterError

_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def validate_date(value: str, param: str) -> str:
    """Validate a YYYY-MM-DD date string.

    Args:
        value: Date string to check.
        param: Parameter name for the error message.

    Returns:
        The unchanged date string.

    Raises:
        InvalidParameterError: If the value is not a real calendar date in
            YYYY-MM-DD format.

    Example:
        ```python
        validate_date("2024-01-31", "to_date")  # '2024-01-31'
        validate_date("2024-02-30", "to_date")  # raises
        ```
    """
    if not isinstance(value, str) or not _DATE_PATTERN.match(value):
        raise InvalidParameterError(
            param, f"{param} must be a date in YYYY-MM-DD format, got {value!r}", value
        )
    try:
        date.fromisoformat(value)
    except ValueError as e:
        raise InvalidParameterError(
            param, f"{param} is not a valid calendar date: {value!r}", value
        ) from e
    return value


def validate_date_range(from_date: str, to_date: str) -> None:
    """Validate both ends of a date range and their order.

    Args:
        from_date: Start date (YYYY-MM-DD, inclusive).
        to_date: End date (YYYY-MM-DD, inclusive).

    Raises:
        InvalidParameterError: If either date is malformed or from_date is
            after to_date.
    """
    validate_date(from_date, "from_date")
    validate_date(to_date, "to_date")
    if date.fromisoformat(from_date) > date.fromisoformat(to_date):
        raise InvalidParameterError(
            "from_date",
            f"from_date ({from_date}) must be on or before to_date ({to_date})",
            from_date,
        )


def require_name(value: str, param: str) -> str:
    """Validate that a name-like parameter is a non-empty string.

    Args:
        value: Event name, property name, distinct id, etc.
        param: Parameter name for the error message.

    Returns:
        The unchanged value.

    Raises:
        InvalidParameterError: If the value is not a string or is blank.
    """
    if not isinstance(value, str) or not value.strip():
        raise InvalidParameterError(param, f"{param} must be a non-empty string", value)
    return value
