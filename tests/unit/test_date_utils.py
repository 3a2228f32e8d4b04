"""Unit tests for local parameter validation."""

from __future__ import annotations

from datetime import date, timedelta

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mixpanel_relay._internal.date_utils import (
    require_name,
    validate_date,
    validate_date_range,
)
from mixpanel_relay.exceptions import InvalidParameterError


class TestValidateDate:
    """Tests for validate_date()."""

    def test_valid_date_is_returned(self) -> None:
        """A well-formed calendar date is returned unchanged."""
        assert validate_date("2024-02-29", "from_date") == "2024-02-29"

    @pytest.mark.parametrize(
        "value", ["2024-1-01", "01/02/2024", "2024-01-01T00:00:00", "", "yesterday"]
    )
    def test_rejects_wrong_format(self, value: str) -> None:
        """Anything other than YYYY-MM-DD is rejected."""
        with pytest.raises(InvalidParameterError) as exc_info:
            validate_date(value, "from_date")
        assert exc_info.value.param == "from_date"
        assert "YYYY-MM-DD" in str(exc_info.value)

    @pytest.mark.parametrize("value", ["2024-02-30", "2023-02-29", "2024-13-01"])
    def test_rejects_impossible_dates(self, value: str) -> None:
        """Correctly shaped but impossible dates are rejected."""
        with pytest.raises(InvalidParameterError):
            validate_date(value, "to_date")

    @given(st.dates(min_value=date(1000, 1, 1), max_value=date(9999, 12, 31)))
    def test_accepts_every_real_date(self, value: date) -> None:
        """Every ISO-formatted calendar date passes."""
        text = value.isoformat()
        assert validate_date(text, "d") == text


class TestValidateDateRange:
    """Tests for validate_date_range()."""

    def test_same_day_is_valid(self) -> None:
        """A single-day range is allowed."""
        validate_date_range("2024-01-01", "2024-01-01")

    def test_reversed_range_is_rejected(self) -> None:
        """from_date after to_date is an error naming from_date."""
        with pytest.raises(InvalidParameterError) as exc_info:
            validate_date_range("2024-02-01", "2024-01-01")
        assert exc_info.value.param == "from_date"

    def test_malformed_end_is_reported(self) -> None:
        """A malformed to_date is reported against to_date."""
        with pytest.raises(InvalidParameterError) as exc_info:
            validate_date_range("2024-01-01", "2024/01/31")
        assert exc_info.value.param == "to_date"

    @given(
        st.dates(min_value=date(2000, 1, 1), max_value=date(2100, 1, 1)),
        st.integers(min_value=0, max_value=3650),
    )
    def test_ordered_ranges_pass(self, start: date, days: int) -> None:
        """Any start with a non-negative span passes."""
        end = start + timedelta(days=days)
        validate_date_range(start.isoformat(), end.isoformat())


class TestRequireName:
    """Tests for require_name()."""

    def test_returns_value(self) -> None:
        """Non-blank names are returned unchanged."""
        assert require_name("Signup", "event") == "Signup"

    @pytest.mark.parametrize("value", ["", "   ", None, 42])
    def test_rejects_blank_or_non_string(self, value: object) -> None:
        """Blank strings and non-strings are rejected."""
        with pytest.raises(InvalidParameterError) as exc_info:
            require_name(value, "event")  # type: ignore[arg-type]
        assert exc_info.value.param == "event"
