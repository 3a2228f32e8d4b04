"""Tests for the read-only query tools.

Covers analytics, funnels, cohorts and the connection check. Each tool is
called directly with a mock context whose lifespan state routes HTTP
through a recording MockTransport.
"""

import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
from fastmcp.exceptions import ToolError

from mp_relay import context
from mp_relay.tools.analytics import (
    mixpanel_execute_jql,
    mixpanel_get_event_names,
    mixpanel_get_top_events,
    mixpanel_query_events,
    mixpanel_query_insights,
    mixpanel_query_segmentation,
    mixpanel_query_segmentation_numeric,
    mixpanel_query_segmentation_sum,
)
from mp_relay.tools.cohorts import mixpanel_list_cohorts
from mp_relay.tools.connection import mixpanel_test_connection
from mp_relay.tools.funnels import (
    mixpanel_get_frequency,
    mixpanel_get_funnel,
    mixpanel_get_retention,
    mixpanel_list_funnels,
)


@pytest.fixture(autouse=True)
def tenant(with_tenant_headers: dict[str, str]) -> dict[str, str]:
    """Every test runs as the default tenant unless it overrides headers."""
    return with_tenant_headers


class TestSegmentationTools:
    """Tests for segmentation and insights tools."""

    def test_query_segmentation(self, mock_context: MagicMock, recorder: Any) -> None:
        """Segmentation hits /segmentation with the tenant's project."""
        recorder.response = httpx.Response(200, json={"data": {"values": {}}})

        result = mixpanel_query_segmentation(  # type: ignore[operator]
            mock_context,
            event="Signup",
            from_date="2024-01-01",
            to_date="2024-01-07",
            unit="day",
        )

        request = recorder.last
        assert result == {"data": {"values": {}}}
        assert request.url.path == "/api/2.0/segmentation"
        assert request.url.params["event"] == "Signup"
        assert request.url.params["unit"] == "day"
        assert request.url.params["project_id"] == "123"
        assert request.headers["Authorization"].startswith("Basic ")

    def test_query_segmentation_numeric(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Numeric bucketing passes on and buckets."""
        mixpanel_query_segmentation_numeric(  # type: ignore[operator]
            mock_context,
            event="Purchase",
            from_date="2024-01-01",
            to_date="2024-01-31",
            on='properties["amount"]',
            buckets=5,
        )

        assert recorder.last.url.path == "/api/2.0/segmentation/numeric"
        assert recorder.last.url.params["buckets"] == "5"

    def test_query_segmentation_sum(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Sum queries use /segmentation/sum."""
        mixpanel_query_segmentation_sum(  # type: ignore[operator]
            mock_context,
            event="Purchase",
            from_date="2024-01-01",
            to_date="2024-01-31",
            on='properties["amount"]',
        )

        assert recorder.last.url.path == "/api/2.0/segmentation/sum"
        assert recorder.last.url.params["on"] == 'properties["amount"]'

    def test_query_insights_encodes_group_by(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Event and group_by are sent as JSON arrays."""
        mixpanel_query_insights(  # type: ignore[operator]
            mock_context,
            from_date="2024-01-01",
            to_date="2024-01-07",
            event="Signup",
            group_by=['properties["country"]'],
        )

        params = recorder.last.url.params
        assert json.loads(params["event"]) == ["Signup"]
        assert json.loads(params["on"]) == ['properties["country"]']

    def test_invalid_date_is_tool_error(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Bad dates fail before any request is made."""
        with pytest.raises(ToolError, match="from_date"):
            mixpanel_query_segmentation(  # type: ignore[operator]
                mock_context,
                event="Signup",
                from_date="2024-02-30",
                to_date="2024-03-01",
            )

        assert recorder.requests == []


class TestEventTools:
    """Tests for event discovery tools."""

    def test_get_top_events(self, mock_context: MagicMock, recorder: Any) -> None:
        """Top events are returned as plain dictionaries."""
        recorder.response = httpx.Response(
            200,
            json={"events": [{"event": "Login", "amount": 5, "percent_change": 0.5}]},
        )

        result = mixpanel_get_top_events(mock_context, type="general")  # type: ignore[operator]

        assert result == [{"event": "Login", "amount": 5, "percent_change": 0.5}]
        assert recorder.last.url.params["limit"] == "10"

    def test_get_event_names(self, mock_context: MagicMock, recorder: Any) -> None:
        """Event names pass through with the default limit."""
        recorder.response = httpx.Response(200, json=["Login", "Signup"])

        result = mixpanel_get_event_names(mock_context, type="unique")  # type: ignore[operator]

        assert result == ["Login", "Signup"]
        assert recorder.last.url.params["limit"] == "255"

    def test_query_events(self, mock_context: MagicMock, recorder: Any) -> None:
        """Multiple events are JSON-encoded."""
        mixpanel_query_events(  # type: ignore[operator]
            mock_context,
            events=["Login", "Signup"],
            from_date="2024-01-01",
            to_date="2024-01-07",
            type="general",
            unit="day",
        )

        assert recorder.last.url.path == "/api/2.0/events"
        assert json.loads(recorder.last.url.params["event"]) == ["Login", "Signup"]

    def test_execute_jql(self, mock_context: MagicMock, recorder: Any) -> None:
        """JQL is POSTed as a form with JSON params."""
        recorder.response = httpx.Response(200, json=[{"key": ["Login"], "value": 3}])

        result = mixpanel_execute_jql(  # type: ignore[operator]
            mock_context,
            script="function main() { return 1; }",
            params={"limit": 5},
        )

        request = recorder.last
        assert result == [{"key": ["Login"], "value": 3}]
        assert request.method == "POST"
        assert request.headers["Content-Type"].startswith(
            "application/x-www-form-urlencoded"
        )
        assert b"script=" in request.content


class TestFunnelTools:
    """Tests for funnel, retention and frequency tools."""

    def test_list_funnels(self, mock_context: MagicMock, recorder: Any) -> None:
        """Saved funnels are returned as listed."""
        recorder.response = httpx.Response(
            200, json=[{"funnel_id": 7, "name": "Checkout"}]
        )

        result = mixpanel_list_funnels(mock_context)  # type: ignore[operator]

        assert result == [{"funnel_id": 7, "name": "Checkout"}]
        assert recorder.last.url.path == "/api/2.0/funnels/list"

    def test_get_funnel(self, mock_context: MagicMock, recorder: Any) -> None:
        """Funnel id and window options become query params."""
        mixpanel_get_funnel(  # type: ignore[operator]
            mock_context,
            funnel_id=7,
            from_date="2024-01-01",
            to_date="2024-01-31",
            length=14,
            length_unit="day",
        )

        params = recorder.last.url.params
        assert params["funnel_id"] == "7"
        assert params["length"] == "14"
        assert params["length_unit"] == "day"

    def test_get_retention(self, mock_context: MagicMock, recorder: Any) -> None:
        """Retention options are forwarded."""
        mixpanel_get_retention(  # type: ignore[operator]
            mock_context,
            from_date="2024-01-01",
            to_date="2024-01-31",
            born_event="Signup",
            retention_type="birth",
            unit="week",
        )

        params = recorder.last.url.params
        assert recorder.last.url.path == "/api/2.0/retention"
        assert params["born_event"] == "Signup"
        assert params["unit"] == "week"

    def test_get_frequency(self, mock_context: MagicMock, recorder: Any) -> None:
        """Frequency uses the retention/frequency endpoint."""
        mixpanel_get_frequency(  # type: ignore[operator]
            mock_context, from_date="2024-01-01", to_date="2024-01-31", event="Login"
        )

        assert recorder.last.url.path == "/api/2.0/retention/frequency"


class TestCohortAndConnectionTools:
    """Tests for cohorts and the connection check."""

    def test_list_cohorts(self, mock_context: MagicMock, recorder: Any) -> None:
        """Cohorts are listed with a POST."""
        recorder.response = httpx.Response(200, json=[{"id": 1, "name": "Power"}])

        result = mixpanel_list_cohorts(mock_context)  # type: ignore[operator]

        assert result == [{"id": 1, "name": "Power"}]
        assert recorder.last.method == "POST"
        assert recorder.last.url.path == "/api/2.0/cohorts/list"

    def test_connection_ok(self, mock_context: MagicMock, recorder: Any) -> None:
        """A successful connection check reports connected."""
        result = mixpanel_test_connection(mock_context)  # type: ignore[operator]
        assert result["connected"] is True

    def test_connection_failure_is_reported(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Bad credentials are reported, not raised."""
        recorder.response = httpx.Response(401, json={"error": "bad creds"})

        result = mixpanel_test_connection(mock_context)  # type: ignore[operator]

        assert result["connected"] is False


class TestTenantIsolation:
    """Tests for per-call credential handling."""

    def test_missing_headers_raise_tool_error(
        self,
        monkeypatch: pytest.MonkeyPatch,
        mock_context: MagicMock,
        recorder: Any,
    ) -> None:
        """Without headers the call fails and nothing is sent."""
        monkeypatch.setattr(context, "get_http_headers", lambda *a, **kw: {})
        monkeypatch.setattr(context, "_env_fallback", False)

        with pytest.raises(ToolError, match="Missing credentials"):
            mixpanel_list_funnels(mock_context)  # type: ignore[operator]

        assert recorder.requests == []

    def test_eu_tenant_uses_eu_host(
        self,
        monkeypatch: pytest.MonkeyPatch,
        tenant_headers: dict[str, str],
        mock_context: MagicMock,
        recorder: Any,
    ) -> None:
        """EU residency routes to the EU query host."""
        eu_headers = {**tenant_headers, "x-mixpanel-eu-resident": "TRUE"}
        monkeypatch.setattr(context, "get_http_headers", lambda *a, **kw: eu_headers)

        mixpanel_list_funnels(mock_context)  # type: ignore[operator]

        assert recorder.last.url.host == "eu.mixpanel.com"

    def test_upstream_rate_limit(self, mock_context: MagicMock, recorder: Any) -> None:
        """A 429 becomes a ToolError naming the retry delay."""
        recorder.response = httpx.Response(
            429, headers={"Retry-After": "12"}, json={"error": "slow down"}
        )

        with pytest.raises(ToolError, match="Retry after 12 seconds"):
            mixpanel_list_funnels(mock_context)  # type: ignore[operator]
