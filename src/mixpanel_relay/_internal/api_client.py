"""Mixpanel API Client.

Low-level HTTP client for the Mixpanel REST surfaces used by the relay.
Handles:
- Service account authentication via HTTP Basic auth
- Token-in-payload authentication for the ingestion API
- Regional endpoint routing (US, EU)
- Response classification into the library exception hierarchy
- Newline-delimited JSON parsing for raw event exports

One client serves exactly one tenant. Every public method issues exactly one
HTTP request; nothing is retried or cached.
"""

from __future__ import annotations

import base64
import json
import logging
from collections.abc import Mapping, Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any
from urllib.parse import quote

import httpx

from mixpanel_relay._internal.config import (
    PROJECT_TOKEN_HEADER,
    TenantCredentials,
)
from mixpanel_relay._internal.date_utils import (
    require_name,
    validate_date,
    validate_date_range,
)
from mixpanel_relay._internal.transforms import (
    parse_export_lines,
    parse_ingestion_status,
    rows_to_csv,
)
from mixpanel_relay.exceptions import (
    DEFAULT_RETRY_AFTER,
    AuthenticationError,
    InvalidParameterError,
    MixpanelRelayError,
    ProjectTokenRequiredError,
    QueryError,
    RateLimitError,
    ServerError,
)
from mixpanel_relay.types import (
    ConnectionStatus,
    EventExportResult,
    GroupUpdate,
    IdentityEvent,
    IngestionResult,
    ProfileQueryResult,
    ProfileUpdate,
    PropertyValueCount,
    SchemaEntity,
    TopEvent,
    UserProfile,
)

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

# Regional endpoint configuration
# Each region has separate base URLs for the query, export, ingestion and app APIs
ENDPOINTS: dict[str, dict[str, str]] = {
    "us": {
        "query": "https://mixpanel.com/api/2.0",
        "export": "https://data.mixpanel.com/api/2.0",
        "ingestion": "https://api.mixpanel.com",
        "app": "https://mixpanel.com/api/app",
    },
    "eu": {
        "query": "https://eu.mixpanel.com/api/2.0",
        "export": "https://data-eu.mixpanel.com/api/2.0",
        "ingestion": "https://api-eu.mixpanel.com",
        "app": "https://eu.mixpanel.com/api/app",
    },
}

DEFAULT_TOP_EVENTS_LIMIT = 10
DEFAULT_EVENT_NAMES_LIMIT = 255
DEFAULT_PROPERTY_VALUES_LIMIT = 100


def _now() -> int:
    """Current time in Unix seconds."""
    return int(datetime.now(timezone.utc).timestamp())


class MixpanelAPIClient:
    """Low-level HTTP client for Mixpanel APIs.

    Handles authentication, endpoint routing, and response parsing for a
    single tenant. Use as a context manager so the underlying connection
    pool is released.

    Example:
        ```python
        from mixpanel_relay import MixpanelAPIClient, resolve_credentials

        credentials = resolve_credentials(request_headers)

        with MixpanelAPIClient(credentials) as client:
            names = client.get_event_names("general")
            print(names)
        ```
    """

    def __init__(
        self,
        credentials: TenantCredentials,
        *,
        timeout: float = 120.0,
        export_timeout: float = 600.0,
        _transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the API client.

        Args:
            credentials: Immutable tenant credentials for this request.
            timeout: Request timeout in seconds for regular requests.
            export_timeout: Request timeout for export operations.
            _transport: Internal parameter for testing with MockTransport.
        """
        self._credentials = credentials
        self._timeout = timeout
        self._export_timeout = export_timeout
        self._client: httpx.Client | None = None
        self._transport = _transport

    def _get_auth_header(self) -> str:
        """Generate HTTP Basic auth header value.

        Returns:
            Base64-encoded "username:secret" prefixed with "Basic ".
        """
        secret = self._credentials.secret.get_secret_value()
        auth_string = f"{self._credentials.username}:{secret}"
        encoded = base64.b64encode(auth_string.encode()).decode()
        return f"Basic {encoded}"

    def _build_url(self, api_type: str, path: str) -> str:
        """Build full URL for the given API type and path.

        Args:
            api_type: One of "query", "export", "ingestion", or "app".
            path: API endpoint path (e.g., "/segmentation").

        Returns:
            Full URL for the endpoint.
        """
        base = ENDPOINTS[self._credentials.region][api_type]
        if not path.startswith("/"):
            path = f"/{path}"
        return f"{base}{path}"

    def _ensure_client(self) -> httpx.Client:
        """Ensure HTTP client is initialized.

        Returns:
            The httpx.Client instance.
        """
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout,
                transport=self._transport,
            )
        return self._client

    def close(self) -> None:
        """Close the HTTP client and release resources."""
        if self._client is not None:
            self._client.close()
            self._client = None

    def __enter__(self) -> MixpanelAPIClient:
        """Enter context manager."""
        self._ensure_client()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit context manager, closing client."""
        self.close()

    @property
    def project_id(self) -> str:
        """The Mixpanel project ID from credentials."""
        return self._credentials.project_id

    @property
    def region(self) -> str:
        """The endpoint region ('us' or 'eu')."""
        return self._credentials.region

    # =========================================================================
    # Request plumbing
    # =========================================================================

    @staticmethod
    def _parse_retry_after(response: httpx.Response) -> int:
        """Parse the Retry-After header.

        Args:
            response: HTTP response.

        Returns:
            Seconds to wait; DEFAULT_RETRY_AFTER when the header is absent
            or not an integer.
        """
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return int(retry_after.strip())
            except ValueError:
                pass
        return DEFAULT_RETRY_AFTER

    @staticmethod
    def _parse_body(response: httpx.Response) -> Any:
        """Parse a response body: JSON when declared as such, else text."""
        content_type = response.headers.get("content-type", "")
        if "application/json" in content_type:
            try:
                return response.json()
            except ValueError:
                return response.text
        return response.text

    def _handle_response(
        self,
        response: httpx.Response,
        *,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> Any:
        """Classify a response, raising the matching exception on failure.

        Status code handling:
            - 200-299: parsed JSON (JSON content type) or raw text
            - 429: RateLimitError with retry_after
            - 401, 403: AuthenticationError
            - other 4xx: QueryError
            - 5xx: ServerError

        Args:
            response: The HTTP response to handle.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.

        Returns:
            Parsed body for successful requests.

        Raises:
            RateLimitError: On 429 response.
            AuthenticationError: On 401/403 response.
            QueryError: On other non-success responses below 500.
            ServerError: On 5xx response.
        """
        if response.is_success:
            return self._parse_body(response)

        status = response.status_code
        response_body: str | dict[str, Any] | list[Any] | None
        try:
            response_body = response.json()
        except ValueError:
            response_body = response.text[:500] if response.text else None

        detail = ""
        if isinstance(response_body, dict) and "error" in response_body:
            detail = str(response_body["error"])
        elif isinstance(response_body, str):
            detail = response_body[:200]
        context: dict[str, Any] = {
            "status_code": status,
            "response_body": response_body,
            "request_method": request_method,
            "request_url": request_url,
            "request_params": request_params,
        }

        if status == 429:
            raise RateLimitError(retry_after=self._parse_retry_after(response), **context)
        if status in (401, 403):
            raise AuthenticationError(
                "Invalid credentials. Check username, secret, and project_id.",
                **context,
            )
        if status >= 500:
            message = f"Server error: {status}"
            if detail:
                message = f"{message} - {detail}"
            raise ServerError(message, **context)
        message = f"API error: {status}"
        if detail:
            message = f"{message} - {detail}"
        raise QueryError(message, **context)

    def _execute(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
        form_data: dict[str, Any] | None = None,
        content: str | None = None,
        headers: dict[str, str] | None = None,
        timeout: float | None = None,
    ) -> Any:
        """Execute a single HTTP request and classify the response.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Optional query parameters.
            json_data: Optional JSON request body.
            form_data: Optional form-encoded request body.
            content: Optional raw text body.
            headers: Request headers.
            timeout: Optional request timeout in seconds.

        Returns:
            Parsed response body.

        Raises:
            AuthenticationError: Invalid credentials (401/403).
            RateLimitError: Rate limit exceeded (429).
            QueryError: Rejected request (other 4xx).
            ServerError: Server-side errors (5xx).
            MixpanelRelayError: Network/connection errors.
        """
        client = self._ensure_client()
        logger.debug("%s %s params=%s", method, url, params)
        try:
            response = client.request(
                method,
                url,
                params=params,
                json=json_data,
                data=form_data,
                content=content,
                headers=headers,
                timeout=timeout or self._timeout,
            )
        except httpx.HTTPError as e:
            raise MixpanelRelayError(
                f"HTTP error: {e}",
                code="HTTP_ERROR",
                details={
                    "error": str(e),
                    "request_method": method,
                    "request_url": url,
                    "request_params": params,
                },
            ) from e
        return self._handle_response(
            response,
            request_method=method,
            request_url=url,
            request_params=params,
        )

    def _request(
        self,
        method: str,
        url: str,
        *,
        params: dict[str, Any] | None = None,
        data: Any = None,
        form_data: dict[str, Any] | None = None,
        content: str | None = None,
        content_type: str | None = None,
        inject_project_id: bool = True,
    ) -> Any:
        """Make a Basic-authenticated request with optional project_id injection.

        Args:
            method: HTTP method (GET, POST, etc.).
            url: Full URL to request.
            params: Query parameters.
            data: Request body as JSON.
            form_data: Request body as form-encoded.
            content: Raw text request body.
            content_type: Content-Type for a raw text body.
            inject_project_id: If True (default), adds project_id to the query
                params. Set to False where the project is already in the URL
                path (app API) or not accepted (GDPR API).

        Returns:
            Parsed response body.
        """
        if params is None:
            params = {}
        if inject_project_id:
            params["project_id"] = self._credentials.project_id

        headers = {"Authorization": self._get_auth_header()}
        if content_type is not None:
            headers["Content-Type"] = content_type

        return self._execute(
            method,
            url,
            params=params,
            json_data=data,
            form_data=form_data,
            content=content,
            headers=headers,
        )

    def _require_token(self, operation: str) -> str:
        """Return the project token or fail before any network activity.

        Raises:
            ProjectTokenRequiredError: If the tenant supplied no token.
        """
        token = self._credentials.project_token
        if token is None or not token.get_secret_value():
            raise ProjectTokenRequiredError(operation, PROJECT_TOKEN_HEADER)
        return token.get_secret_value()

    def _ingest(self, path: str, payload: list[dict[str, Any]]) -> IngestionResult:
        """POST a JSON batch to the ingestion API (token-in-payload auth).

        Args:
            path: Ingestion endpoint path.
            payload: Records, each already carrying the project token.

        Returns:
            IngestionResult derived from the response body.
        """
        url = self._build_url("ingestion", path)
        body = self._execute(
            "POST",
            url,
            json_data=payload,
            headers={"Accept": "application/json"},
        )
        result = parse_ingestion_status(body)
        if result.status != 1:
            logger.info("Ingestion to %s rejected: %s", path, result.error)
        return result

    # =========================================================================
    # Connection
    # =========================================================================

    def test_connection(self) -> ConnectionStatus:
        """Check the credentials with a minimal profile query.

        Failures are reported in the result rather than raised.

        Returns:
            ConnectionStatus with connected flag and message.
        """
        url = self._build_url("query", "/engage")
        try:
            self._request("POST", url, data={"page": 0, "limit": 1})
        except MixpanelRelayError as e:
            return ConnectionStatus(connected=False, message=str(e))
        return ConnectionStatus(connected=True, message="Connected to Mixpanel")

    # =========================================================================
    # Query API - Insights & Segmentation
    # =========================================================================

    def query_insights(
        self,
        from_date: str,
        to_date: str,
        *,
        event: str | None = None,
        group_by: list[str] | None = None,
        where: str | None = None,
        interval: str | None = None,
    ) -> Any:
        """Query event counts, trends and breakdowns.

        Args:
            from_date: Start date (YYYY-MM-DD, inclusive).
            to_date: End date (YYYY-MM-DD, inclusive).
            event: Optional single event name; sent as a one-element JSON array.
            group_by: Optional property expressions to break down by.
            where: Optional filter expression.
            interval: Optional time unit (minute, hour, day, week, month).

        Returns:
            Raw insights response.
        """
        validate_date_range(from_date, to_date)
        params: dict[str, Any] = {"from_date": from_date, "to_date": to_date}
        if event:
            params["event"] = json.dumps([event])
        if interval:
            params["interval"] = interval
        if where:
            params["where"] = where
        if group_by:
            params["on"] = json.dumps(group_by)
        return self._request("GET", self._build_url("query", "/insights"), params=params)

    def _segmentation_params(
        self,
        event: str,
        from_date: str,
        to_date: str,
        *,
        on: str | None = None,
        type: str | None = None,
        unit: str | None = None,
        where: str | None = None,
    ) -> dict[str, Any]:
        """Validate and assemble the common segmentation parameters."""
        require_name(event, "event")
        validate_date_range(from_date, to_date)
        params: dict[str, Any] = {
            "event": event,
            "from_date": from_date,
            "to_date": to_date,
        }
        if on:
            params["on"] = on
        if type:
            params["type"] = type
        if unit:
            params["unit"] = unit
        if where:
            params["where"] = where
        return params

    def query_segmentation(
        self,
        event: str,
        from_date: str,
        to_date: str,
        *,
        type: str | None = None,
        unit: str | None = None,
        where: str | None = None,
        on: str | None = None,
    ) -> Any:
        """Query event counts over time, optionally segmented by a property.

        Args:
            event: Event name to segment.
            from_date: Start date (YYYY-MM-DD).
            to_date: End date (YYYY-MM-DD).
            type: Counting method (general, unique, average).
            unit: Time unit (minute, hour, day, week, month).
            where: Optional filter expression.
            on: Optional property expression to segment by.

        Returns:
            Raw segmentation response.
        """
        params = self._segmentation_params(
            event, from_date, to_date, on=on, type=type, unit=unit, where=where
        )
        return self._request(
            "GET", self._build_url("query", "/segmentation"), params=params
        )

    def query_segmentation_numeric(
        self,
        event: str,
        from_date: str,
        to_date: str,
        on: str,
        *,
        type: str | None = None,
        unit: str | None = None,
        where: str | None = None,
        buckets: int | None = None,
    ) -> Any:
        """Segment an event into numeric ranges of a property.

        Args:
            event: Event name.
            from_date: Start date (YYYY-MM-DD).
            to_date: End date (YYYY-MM-DD).
            on: Numeric property expression to bucket.
            type: Counting method.
            unit: Time unit.
            where: Optional filter expression.
            buckets: Optional bucket count.

        Returns:
            Raw segmentation response with range buckets.
        """
        require_name(on, "on")
        params = self._segmentation_params(
            event, from_date, to_date, on=on, type=type, unit=unit, where=where
        )
        if buckets:
            params["buckets"] = buckets
        return self._request(
            "GET", self._build_url("query", "/segmentation/numeric"), params=params
        )

    def query_segmentation_sum(
        self,
        event: str,
        from_date: str,
        to_date: str,
        on: str,
        *,
        unit: str | None = None,
        where: str | None = None,
    ) -> Any:
        """Sum a numeric expression per time bucket."""
        require_name(on, "on")
        params = self._segmentation_params(
            event, from_date, to_date, on=on, unit=unit, where=where
        )
        return self._request(
            "GET", self._build_url("query", "/segmentation/sum"), params=params
        )

    def query_segmentation_average(
        self,
        event: str,
        from_date: str,
        to_date: str,
        on: str,
        *,
        unit: str | None = None,
        where: str | None = None,
    ) -> Any:
        """Average a numeric expression per time bucket."""
        require_name(on, "on")
        params = self._segmentation_params(
            event, from_date, to_date, on=on, unit=unit, where=where
        )
        return self._request(
            "GET", self._build_url("query", "/segmentation/average"), params=params
        )

    # =========================================================================
    # Query API - Events
    # =========================================================================

    def get_top_events(
        self,
        type: str,
        *,
        limit: int | None = None,
    ) -> list[TopEvent]:
        """Get today's top events with counts and trends.

        Args:
            type: Counting method - "general", "unique", or "average".
            limit: Maximum events to return (default: 10).

        Returns:
            List of TopEvent in response order.
        """
        params: dict[str, Any] = {
            "type": type,
            "limit": limit or DEFAULT_TOP_EVENTS_LIMIT,
        }
        response = self._request(
            "GET", self._build_url("query", "/events/top"), params=params
        )
        events: Any = response.get("events", {}) if isinstance(response, dict) else {}
        if isinstance(events, dict):
            items = [{"event": name, **stats} for name, stats in events.items()]
        elif isinstance(events, list):
            items = [e for e in events if isinstance(e, dict)]
        else:
            items = []
        return [
            TopEvent(
                event=str(item.get("event", "")),
                amount=int(item.get("amount") or 0),
                percent_change=float(item.get("percent_change") or 0.0),
            )
            for item in items
        ]

    def get_event_names(
        self,
        type: str,
        *,
        limit: int | None = None,
    ) -> list[str]:
        """List event names in the project.

        Args:
            type: Counting method - "general" or "unique".
            limit: Maximum names to return (default: 255).

        Returns:
            List of event name strings.
        """
        params: dict[str, Any] = {
            "type": type,
            "limit": limit or DEFAULT_EVENT_NAMES_LIMIT,
        }
        response = self._request(
            "GET", self._build_url("query", "/events/names"), params=params
        )
        if isinstance(response, list):
            return [str(e) for e in response]
        return []

    def query_events(
        self,
        events: list[str],
        from_date: str,
        to_date: str,
        type: str,
        *,
        unit: str | None = None,
        interval: int | None = None,
        where: str | None = None,
    ) -> Any:
        """Get aggregate counts for several events over time.

        Args:
            events: Event names to query.
            from_date: Start date (YYYY-MM-DD).
            to_date: End date (YYYY-MM-DD).
            type: Counting method - "general", "unique", or "average".
            unit: Optional time unit.
            interval: Optional number of units to return.
            where: Optional filter expression.

        Returns:
            The data.values mapping {event: {date: count}} when present,
            otherwise the raw response.
        """
        if not events:
            raise InvalidParameterError("events", "At least one event is required")
        for name in events:
            require_name(name, "events")
        validate_date_range(from_date, to_date)
        params: dict[str, Any] = {
            "event": json.dumps(events),
            "from_date": from_date,
            "to_date": to_date,
            "type": type,
        }
        if unit:
            params["unit"] = unit
        if interval:
            params["interval"] = interval
        if where:
            params["where"] = where
        response = self._request("GET", self._build_url("query", "/events"), params=params)
        if isinstance(response, dict):
            data = response.get("data")
            if isinstance(data, dict) and "values" in data:
                return data["values"]
        return response

    def get_event_properties(self, event: str) -> list[str]:
        """List top property names for an event.

        Args:
            event: Event name.

        Returns:
            List of property name strings.
        """
        require_name(event, "event")
        response = self._request(
            "GET",
            self._build_url("query", "/events/properties/top"),
            params={"event": event},
        )
        # Response is a dict with property names as keys and counts as values
        if isinstance(response, dict):
            return list(response.keys())
        if isinstance(response, list):
            return [str(p) for p in response]
        return []

    def get_property_values(
        self,
        event: str,
        property_name: str,
        *,
        limit: int | None = None,
    ) -> list[str]:
        """List sample values of an event property.

        Args:
            event: Event name.
            property_name: Property name.
            limit: Maximum number of values (default: 100).

        Returns:
            List of property value strings.
        """
        require_name(event, "event")
        require_name(property_name, "property_name")
        params: dict[str, Any] = {
            "event": event,
            "name": property_name,
            "limit": limit or DEFAULT_PROPERTY_VALUES_LIMIT,
        }
        response = self._request(
            "GET", self._build_url("query", "/events/properties/values"), params=params
        )
        if isinstance(response, list):
            return [str(v) for v in response]
        return []

    def get_top_property_values(
        self,
        event: str,
        property_name: str,
        *,
        limit: int | None = None,
    ) -> list[PropertyValueCount]:
        """Get the most frequent values of an event property with counts.

        Args:
            event: Event name.
            property_name: Property name.
            limit: Maximum number of values (default: 100).

        Returns:
            List of PropertyValueCount in response order.
        """
        require_name(event, "event")
        require_name(property_name, "property_name")
        params: dict[str, Any] = {
            "event": event,
            "name": property_name,
            "limit": limit or DEFAULT_PROPERTY_VALUES_LIMIT,
        }
        response = self._request(
            "GET", self._build_url("query", "/events/properties/top"), params=params
        )
        if not isinstance(response, dict):
            return []
        counts: list[PropertyValueCount] = []
        for value, stats in response.items():
            count = stats.get("count", 0) if isinstance(stats, dict) else stats
            counts.append(PropertyValueCount(value=str(value), count=int(count or 0)))
        return counts

    def execute_jql(
        self,
        script: str,
        *,
        params: dict[str, Any] | None = None,
    ) -> Any:
        """Execute a JQL (JavaScript Query Language) script.

        Args:
            script: JQL script code.
            params: Optional parameters made available to the script.

        Returns:
            Script results.
        """
        require_name(script, "script")
        # JQL API expects form-encoded data with params as JSON string
        form: dict[str, Any] = {"script": script}
        if params:
            form["params"] = json.dumps(params)
        return self._request("POST", self._build_url("query", "/jql"), form_data=form)

    # =========================================================================
    # Query API - Funnels & Retention
    # =========================================================================

    def list_funnels(self) -> list[dict[str, Any]]:
        """List all saved funnels in the project.

        Returns:
            List of funnel dictionaries with keys: funnel_id (int), name (str).
        """
        response = self._request("GET", self._build_url("query", "/funnels/list"))
        if isinstance(response, list):
            return response
        return []

    def get_funnel(
        self,
        funnel_id: int,
        from_date: str,
        to_date: str,
        *,
        interval: str | None = None,
        length: int | None = None,
        length_unit: str | None = None,
    ) -> Any:
        """Get conversion data for a saved funnel.

        Args:
            funnel_id: Saved funnel identifier.
            from_date: Start date (YYYY-MM-DD).
            to_date: End date (YYYY-MM-DD).
            interval: Optional bucketing unit (day, week, month).
            length: Optional conversion window length.
            length_unit: Optional unit for length (day, hour, minute, week).

        Returns:
            Raw funnel response.
        """
        validate_date_range(from_date, to_date)
        params: dict[str, Any] = {
            "funnel_id": funnel_id,
            "from_date": from_date,
            "to_date": to_date,
        }
        if interval:
            params["interval"] = interval
        if length:
            params["length"] = length
        if length_unit:
            params["length_unit"] = length_unit
        return self._request("GET", self._build_url("query", "/funnels"), params=params)

    def get_retention(
        self,
        from_date: str,
        to_date: str,
        *,
        born_event: str | None = None,
        event: str | None = None,
        retention_type: str | None = None,
        interval: int | None = None,
        interval_count: int | None = None,
        unit: str | None = None,
    ) -> Any:
        """Get cohort retention data.

        Args:
            from_date: Start date (YYYY-MM-DD).
            to_date: End date (YYYY-MM-DD).
            born_event: Optional event that places a user in a cohort.
            event: Optional event counted as a return.
            retention_type: Optional mode (birth, compounding).
            interval: Optional days per retention period.
            interval_count: Optional number of periods.
            unit: Optional bucketing unit (day, week, month).

        Returns:
            Raw retention response.
        """
        validate_date_range(from_date, to_date)
        params: dict[str, Any] = {"from_date": from_date, "to_date": to_date}
        if born_event:
            params["born_event"] = born_event
        if event:
            params["event"] = event
        if retention_type:
            params["retention_type"] = retention_type
        if interval:
            params["interval"] = interval
        if interval_count:
            params["interval_count"] = interval_count
        if unit:
            params["unit"] = unit
        return self._request("GET", self._build_url("query", "/retention"), params=params)

    def get_frequency(
        self,
        from_date: str,
        to_date: str,
        event: str,
        *,
        where: str | None = None,
        on: str | None = None,
    ) -> Any:
        """Get how often users perform an event per period."""
        validate_date_range(from_date, to_date)
        require_name(event, "event")
        params: dict[str, Any] = {
            "from_date": from_date,
            "to_date": to_date,
            "event": event,
        }
        if where:
            params["where"] = where
        if on:
            params["on"] = on
        return self._request(
            "GET", self._build_url("query", "/retention/frequency"), params=params
        )

    # =========================================================================
    # Query API - Profiles
    # =========================================================================

    @staticmethod
    def _to_profile(raw: Mapping[str, Any], fallback_id: str = "") -> UserProfile:
        """Convert an Engage result entry into a UserProfile."""
        properties = raw.get("$properties")
        return UserProfile(
            distinct_id=str(raw.get("$distinct_id") or fallback_id),
            properties=dict(properties) if isinstance(properties, dict) else {},
        )

    def query_profiles(
        self,
        *,
        where: str | None = None,
        session_id: str | None = None,
        page: int = 0,
        output_properties: list[str] | None = None,
    ) -> ProfileQueryResult:
        """Query one page of user profiles.

        Args:
            where: Optional filter expression.
            session_id: Session id from a previous page.
            page: Zero-based page number.
            output_properties: Optional property names to include.

        Returns:
            ProfileQueryResult for the requested page.
        """
        body: dict[str, Any] = {
            "project_id": self._credentials.project_id,
            "page": page,
        }
        if where:
            body["where"] = where
        if session_id:
            body["session_id"] = session_id
        if output_properties:
            body["output_properties"] = output_properties
        response = self._request("POST", self._build_url("query", "/engage"), data=body)
        if not isinstance(response, dict):
            response = {}
        results = response.get("results") or []
        return ProfileQueryResult(
            results=[self._to_profile(r) for r in results if isinstance(r, dict)],
            page=int(response.get("page", page) or 0),
            session_id=response.get("session_id"),
            total=int(response.get("total", len(results)) or 0),
        )

    def get_profile(self, distinct_id: str) -> UserProfile:
        """Fetch a single user profile.

        Args:
            distinct_id: Profile identifier.

        Returns:
            UserProfile; properties are empty when no profile matched.
        """
        require_name(distinct_id, "distinct_id")
        body = {
            "project_id": self._credentials.project_id,
            "distinct_id": distinct_id,
        }
        response = self._request("POST", self._build_url("query", "/engage"), data=body)
        results = response.get("results") if isinstance(response, dict) else None
        if results and isinstance(results[0], dict):
            return self._to_profile(results[0], distinct_id)
        return UserProfile(distinct_id=distinct_id)

    def get_profile_activity(
        self,
        distinct_id: str,
        *,
        limit: int | None = None,
        from_time: int | None = None,
        to_time: int | None = None,
    ) -> Any:
        """Get the recent event stream of one user.

        Args:
            distinct_id: Profile identifier.
            limit: Optional maximum events.
            from_time: Optional start (Unix seconds).
            to_time: Optional end (Unix seconds).

        Returns:
            Raw activity response.
        """
        require_name(distinct_id, "distinct_id")
        params: dict[str, Any] = {"distinct_id": distinct_id}
        if limit:
            params["limit"] = limit
        if from_time:
            params["from"] = from_time
        if to_time:
            params["to"] = to_time
        return self._request(
            "GET", self._build_url("query", "/engage/activity"), params=params
        )

    # =========================================================================
    # Export API
    # =========================================================================

    def export_events(
        self,
        from_date: str,
        to_date: str,
        *,
        events: list[str] | None = None,
        where: str | None = None,
        limit: int | None = None,
    ) -> EventExportResult:
        """Export raw events from the Data Export API.

        The response body is newline-delimited JSON; each line is one event.

        Args:
            from_date: Start date (YYYY-MM-DD, inclusive).
            to_date: End date (YYYY-MM-DD, inclusive).
            events: Optional list of event names to filter.
            where: Optional filter expression.
            limit: Optional maximum number of events.

        Returns:
            EventExportResult. Malformed lines are logged and skipped.

        Raises:
            AuthenticationError: Invalid credentials.
            RateLimitError: Rate limit exceeded.
            QueryError: Invalid parameters.
            ServerError: Server-side errors (5xx).
        """
        validate_date_range(from_date, to_date)
        url = self._build_url("export", "/export")
        params: dict[str, Any] = {
            "project_id": self._credentials.project_id,
            "from_date": from_date,
            "to_date": to_date,
        }
        if events:
            params["event"] = json.dumps(events)
        if where:
            params["where"] = where
        if limit is not None:
            params["limit"] = limit

        client = self._ensure_client()
        headers = {
            "Authorization": self._get_auth_header(),
            "Accept-Encoding": "gzip",
        }
        logger.debug("GET %s params=%s", url, params)
        try:
            with client.stream(
                "GET",
                url,
                params=params,
                headers=headers,
                timeout=self._export_timeout,
            ) as response:
                if not response.is_success:
                    response.read()
                    self._handle_response(
                        response,
                        request_method="GET",
                        request_url=url,
                        request_params=params,
                    )
                return parse_export_lines(response.iter_lines())
        except httpx.HTTPError as e:
            raise MixpanelRelayError(
                f"HTTP error during export: {e}",
                code="HTTP_ERROR",
                details={"error": str(e), "request_url": url},
            ) from e

    # =========================================================================
    # Ingestion API - Events
    # =========================================================================

    def track_event(
        self,
        event: str,
        distinct_id: str,
        *,
        properties: Mapping[str, Any] | None = None,
        time: int | None = None,
    ) -> IngestionResult:
        """Track a single event.

        Args:
            event: Event name.
            distinct_id: User identifier.
            properties: Optional extra event properties.
            time: Optional Unix timestamp; defaults to now.

        Returns:
            IngestionResult.

        Raises:
            ProjectTokenRequiredError: If no project token was supplied.
        """
        token = self._require_token("tracking events")
        require_name(event, "event")
        require_name(distinct_id, "distinct_id")
        record = {
            "event": event,
            "properties": {
                "distinct_id": distinct_id,
                "time": time if time is not None else _now(),
                **dict(properties or {}),
                "token": token,
            },
        }
        return self._ingest("/track", [record])

    @staticmethod
    def _event_records(
        events: Sequence[Mapping[str, Any]],
        token: str,
        *,
        require_time: bool,
    ) -> list[dict[str, Any]]:
        """Validate a batch of events and stamp each with the token."""
        if not events:
            raise InvalidParameterError("events", "At least one event is required")
        records: list[dict[str, Any]] = []
        for index, item in enumerate(events):
            name = item.get("event")
            if not isinstance(name, str) or not name.strip():
                raise InvalidParameterError(
                    "events", f"events[{index}] needs a non-empty event name"
                )
            raw_properties = item.get("properties") or {}
            if not isinstance(raw_properties, Mapping):
                raise InvalidParameterError(
                    "events", f"events[{index}].properties must be an object"
                )
            properties = dict(raw_properties)
            if not properties.get("distinct_id"):
                raise InvalidParameterError(
                    "events", f"events[{index}] needs properties.distinct_id"
                )
            if properties.get("time") is None:
                if require_time:
                    raise InvalidParameterError(
                        "events", f"events[{index}] needs properties.time for import"
                    )
                properties["time"] = _now()
            properties["token"] = token
            records.append({"event": name, "properties": properties})
        return records

    def track_events(self, events: Sequence[Mapping[str, Any]]) -> IngestionResult:
        """Track a batch of events in one request.

        Args:
            events: Records shaped {"event": name, "properties": {...}}; each
                properties mapping needs distinct_id, time defaults to now.

        Returns:
            IngestionResult.
        """
        token = self._require_token("tracking events")
        return self._ingest(
            "/track", self._event_records(events, token, require_time=False)
        )

    def import_events(self, events: Sequence[Mapping[str, Any]]) -> IngestionResult:
        """Import a batch of historical events in one request.

        Args:
            events: Records shaped {"event": name, "properties": {...}}; each
                properties mapping needs distinct_id and time.

        Returns:
            IngestionResult including num_records_imported when reported.
        """
        token = self._require_token("importing events")
        return self._ingest(
            "/import", self._event_records(events, token, require_time=True)
        )

    # =========================================================================
    # Ingestion API - Profiles & Groups
    # =========================================================================

    def update_profile(self, update: ProfileUpdate) -> IngestionResult:
        """Apply one profile mutation.

        Args:
            update: The mutation to send.

        Returns:
            IngestionResult.
        """
        token = self._require_token("profile operations")
        return self._ingest("/engage", [update.to_payload(token)])

    def set_profile_properties(
        self, distinct_id: str, properties: Mapping[str, Any]
    ) -> IngestionResult:
        """Overwrite profile properties ($set)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.set(distinct_id, properties))

    def set_profile_properties_once(
        self, distinct_id: str, properties: Mapping[str, Any]
    ) -> IngestionResult:
        """Set profile properties that are not yet set ($set_once)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.set_once(distinct_id, properties))

    def increment_profile_properties(
        self, distinct_id: str, increments: Mapping[str, int | float]
    ) -> IngestionResult:
        """Increment numeric profile properties ($add)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.add(distinct_id, increments))

    def append_to_profile_list(
        self, distinct_id: str, property_name: str, values: Sequence[Any]
    ) -> IngestionResult:
        """Append values to a list property ($append)."""
        self._require_token("profile operations")
        return self.update_profile(
            ProfileUpdate.append(distinct_id, property_name, values)
        )

    def remove_from_profile_list(
        self, distinct_id: str, property_name: str, values: Sequence[Any]
    ) -> IngestionResult:
        """Remove values from a list property ($remove)."""
        self._require_token("profile operations")
        return self.update_profile(
            ProfileUpdate.remove(distinct_id, property_name, values)
        )

    def union_to_profile_list(
        self, distinct_id: str, properties: Mapping[str, Sequence[Any]]
    ) -> IngestionResult:
        """Merge values into list properties without duplicates ($union)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.union(distinct_id, properties))

    def unset_profile_properties(
        self, distinct_id: str, property_names: Sequence[str]
    ) -> IngestionResult:
        """Remove properties from a profile ($unset)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.unset(distinct_id, property_names))

    def delete_profile(self, distinct_id: str) -> IngestionResult:
        """Delete a profile ($delete)."""
        self._require_token("profile operations")
        return self.update_profile(ProfileUpdate.delete(distinct_id))

    def update_group(self, update: GroupUpdate) -> IngestionResult:
        """Apply one group profile mutation.

        Args:
            update: The mutation to send.

        Returns:
            IngestionResult.
        """
        token = self._require_token("group operations")
        return self._ingest("/groups", [update.to_payload(token)])

    def set_group_properties(
        self, group_key: str, group_id: str, properties: Mapping[str, Any]
    ) -> IngestionResult:
        """Overwrite group properties ($set)."""
        self._require_token("group operations")
        return self.update_group(GroupUpdate.set(group_key, group_id, properties))

    def set_group_properties_once(
        self, group_key: str, group_id: str, properties: Mapping[str, Any]
    ) -> IngestionResult:
        """Set group properties that are not yet set ($set_once)."""
        self._require_token("group operations")
        return self.update_group(GroupUpdate.set_once(group_key, group_id, properties))

    def unset_group_properties(
        self, group_key: str, group_id: str, property_names: Sequence[str]
    ) -> IngestionResult:
        """Remove properties from a group profile ($unset)."""
        self._require_token("group operations")
        return self.update_group(GroupUpdate.unset(group_key, group_id, property_names))

    def delete_group(self, group_key: str, group_id: str) -> IngestionResult:
        """Delete a group profile ($delete)."""
        self._require_token("group operations")
        return self.update_group(GroupUpdate.delete(group_key, group_id))

    # =========================================================================
    # Ingestion API - Identity
    # =========================================================================

    def _send_identity(self, identity: IdentityEvent) -> IngestionResult:
        token = self._require_token("identity operations")
        return self._ingest("/track", [identity.to_payload(token)])

    def create_identity(self, distinct_id: str, anon_id: str) -> IngestionResult:
        """Link an anonymous id to an identified user ($identify)."""
        self._require_token("identity operations")
        require_name(distinct_id, "distinct_id")
        require_name(anon_id, "anon_id")
        return self._send_identity(IdentityEvent.identify(distinct_id, anon_id))

    def create_alias(self, distinct_id: str, alias: str) -> IngestionResult:
        """Register an alias for a distinct id ($create_alias)."""
        self._require_token("identity operations")
        require_name(distinct_id, "distinct_id")
        require_name(alias, "alias")
        return self._send_identity(IdentityEvent.create_alias(distinct_id, alias))

    def merge_identities(
        self, distinct_id_1: str, distinct_id_2: str
    ) -> IngestionResult:
        """Merge two identity clusters ($merge)."""
        self._require_token("identity operations")
        require_name(distinct_id_1, "distinct_id_1")
        require_name(distinct_id_2, "distinct_id_2")
        return self._send_identity(
            IdentityEvent.merge(distinct_id_1, distinct_id_2)
        )

    # =========================================================================
    # Query API - Cohorts
    # =========================================================================

    def list_cohorts(self) -> list[dict[str, Any]]:
        """List all saved cohorts in the project.

        Returns:
            List of cohort dictionaries with keys:
            id (int), name (str), count (int), description (str),
            created (str), is_visible (int), project_id (int).
        """
        # The cohorts endpoint only accepts POST
        response = self._request(
            "POST",
            self._build_url("query", "/cohorts/list"),
            data={"project_id": self._credentials.project_id},
        )
        if isinstance(response, list):
            return response
        return []

    # =========================================================================
    # App API - Annotations
    # =========================================================================

    def _annotations_path(self, annotation_id: int | None = None) -> str:
        path = f"/projects/{self._credentials.project_id}/annotations"
        if annotation_id is not None:
            path = f"{path}/{annotation_id}"
        return path

    def list_annotations(
        self,
        *,
        from_date: str | None = None,
        to_date: str | None = None,
    ) -> list[dict[str, Any]]:
        """List timeline annotations, optionally within a date range.

        Returns:
            List of annotation dictionaries.
        """
        params: dict[str, Any] = {}
        if from_date:
            params["from_date"] = validate_date(from_date, "from_date")
        if to_date:
            params["to_date"] = validate_date(to_date, "to_date")
        if from_date and to_date:
            validate_date_range(from_date, to_date)
        response = self._request(
            "GET", self._build_url("app", self._annotations_path()), params=params
        )
        if isinstance(response, list):
            return response
        if isinstance(response, dict):
            annotations = response.get("annotations", response.get("results"))
            if isinstance(annotations, list):
                return annotations
        return []

    def create_annotation(self, date: str, description: str) -> Any:
        """Create a timeline annotation.

        Args:
            date: Annotation date (YYYY-MM-DD).
            description: Annotation text.

        Returns:
            The created annotation as returned by the API.
        """
        validate_date(date, "date")
        require_name(description, "description")
        return self._request(
            "POST",
            self._build_url("app", self._annotations_path()),
            data={"date": date, "description": description},
            inject_project_id=False,
        )

    def get_annotation(self, annotation_id: int) -> Any:
        """Fetch one annotation by id."""
        return self._request(
            "GET",
            self._build_url("app", self._annotations_path(annotation_id)),
            inject_project_id=False,
        )

    def update_annotation(
        self,
        annotation_id: int,
        *,
        date: str | None = None,
        description: str | None = None,
    ) -> Any:
        """Change the date and/or description of an annotation.

        Raises:
            InvalidParameterError: If neither field is given.
        """
        body: dict[str, Any] = {}
        if date is not None:
            body["date"] = validate_date(date, "date")
        if description is not None:
            body["description"] = description
        if not body:
            raise InvalidParameterError(
                "annotation", "Provide date and/or description to update"
            )
        return self._request(
            "PATCH",
            self._build_url("app", self._annotations_path(annotation_id)),
            data=body,
            inject_project_id=False,
        )

    def delete_annotation(self, annotation_id: int) -> dict[str, Any]:
        """Delete an annotation."""
        self._request(
            "DELETE",
            self._build_url("app", self._annotations_path(annotation_id)),
            inject_project_id=False,
        )
        return {"success": True, "annotation_id": annotation_id}

    # =========================================================================
    # Lookup Tables (ingestion host, Basic auth)
    # =========================================================================

    def list_lookup_tables(self) -> list[dict[str, Any]]:
        """List lookup tables in the project.

        Returns:
            List of lookup table dictionaries.
        """
        response = self._request("GET", self._build_url("ingestion", "/lookup_tables"))
        if isinstance(response, list):
            return response
        if isinstance(response, dict):
            tables = response.get("results", response.get("lookup_tables"))
            if isinstance(tables, list):
                return tables
        return []

    def create_lookup_table(
        self, table_name: str, rows: Sequence[Mapping[str, Any]]
    ) -> dict[str, Any]:
        """Create or replace a lookup table from row objects.

        Args:
            table_name: Lookup table name.
            rows: Non-empty list of rows; the first row's keys are the columns.

        Returns:
            Status dictionary.

        Raises:
            InvalidParameterError: If rows is empty.
        """
        require_name(table_name, "table_name")
        csv_content = rows_to_csv(rows)
        self._request(
            "PUT",
            self._build_url("ingestion", f"/lookup_tables/{quote(table_name, safe='')}"),
            content=csv_content,
            content_type="text/csv",
        )
        return {"status": "ok", "table_name": table_name, "rows": len(rows)}

    # =========================================================================
    # App API - Lexicon Schemas
    # =========================================================================

    def _schemas_path(
        self, entity_type: str | None = None, name: str | None = None
    ) -> str:
        # entity_type and name are path segments, name URL-encoded
        path = f"/projects/{self._credentials.project_id}/schemas"
        if entity_type is not None:
            path = f"{path}/{entity_type}"
            if name is not None:
                path = f"{path}/{quote(name, safe='')}"
        return path

    @staticmethod
    def _to_schema(raw: Mapping[str, Any], entity_type: str, name: str = "") -> SchemaEntity:
        schema_json = raw.get("schema_json", raw.get("schemaJson"))
        return SchemaEntity(
            entity_type=str(raw.get("entityType", raw.get("entity_type", entity_type))),
            name=str(raw.get("name", name)),
            schema_json=dict(schema_json) if isinstance(schema_json, dict) else {},
        )

    def list_schemas(self, entity_type: str | None = None) -> list[SchemaEntity]:
        """List Lexicon schemas, optionally of one entity type.

        Args:
            entity_type: Optional filter (event, profile, group, lookup_table).

        Returns:
            List of SchemaEntity.
        """
        url = self._build_url("app", self._schemas_path(entity_type))
        logger.debug("list_schemas request - URL: %s", url)
        response = self._request("GET", url, inject_project_id=False)
        if isinstance(response, dict):
            response = response.get("results", [])
        if not isinstance(response, list):
            return []
        return [
            self._to_schema(item, entity_type or "event")
            for item in response
            if isinstance(item, dict)
        ]

    def get_schema(self, entity_type: str, name: str) -> SchemaEntity:
        """Get a single Lexicon schema by entity type and name."""
        require_name(name, "name")
        response = self._request(
            "GET",
            self._build_url("app", self._schemas_path(entity_type, name)),
            inject_project_id=False,
        )
        if isinstance(response, dict) and isinstance(response.get("results"), dict):
            response = response["results"]
        if not isinstance(response, dict):
            return SchemaEntity(entity_type=entity_type, name=name)
        if "schema_json" not in response and "schemaJson" not in response:
            return SchemaEntity(entity_type=entity_type, name=name, schema_json=response)
        return self._to_schema(response, entity_type, name)

    def create_or_update_schema(
        self, entity_type: str, name: str, schema_json: Mapping[str, Any]
    ) -> dict[str, Any]:
        """Create or replace the Lexicon schema of an entity."""
        require_name(name, "name")
        self._request(
            "POST",
            self._build_url("app", self._schemas_path(entity_type, name)),
            data={"schema_json": dict(schema_json)},
            inject_project_id=False,
        )
        return {"success": True, "entity_type": entity_type, "name": name}

    def delete_schema(self, entity_type: str, name: str) -> dict[str, Any]:
        """Delete the Lexicon schema of an entity."""
        require_name(name, "name")
        self._request(
            "DELETE",
            self._build_url("app", self._schemas_path(entity_type, name)),
            inject_project_id=False,
        )
        return {"success": True, "entity_type": entity_type, "name": name}

    # =========================================================================
    # GDPR API (app host, Basic auth + token query param)
    # =========================================================================

    def _gdpr(
        self,
        method: str,
        kind: str,
        request_id: str | None = None,
        *,
        body: dict[str, Any] | None = None,
    ) -> Any:
        token = self._require_token("GDPR requests")
        path = f"/{kind}/v3.0"
        if request_id is not None:
            require_name(request_id, "request_id")
            path = f"{path}/{quote(request_id, safe='')}"
        return self._request(
            method,
            self._build_url("app", path),
            params={"token": token},
            data=body,
            inject_project_id=False,
        )

    @staticmethod
    def _require_ids(distinct_ids: Sequence[str]) -> list[str]:
        if not distinct_ids:
            raise InvalidParameterError(
                "distinct_ids", "At least one distinct id is required"
            )
        for value in distinct_ids:
            require_name(value, "distinct_ids")
        return list(distinct_ids)

    def create_data_retrieval(
        self,
        distinct_ids: Sequence[str],
        *,
        data_type: str | None = None,
        completion_email: str | None = None,
    ) -> Any:
        """Start a GDPR data retrieval for the given users.

        Args:
            distinct_ids: Users whose data to retrieve.
            data_type: Optional "events" or "people".
            completion_email: Optional address notified when the export is ready.

        Returns:
            Response with the retrieval request id.
        """
        self._require_token("GDPR requests")
        body: dict[str, Any] = {"distinct_ids": self._require_ids(distinct_ids)}
        if data_type:
            body["data_type"] = data_type
        if completion_email:
            body["completion_email"] = completion_email
        return self._gdpr("POST", "data-retrievals", body=body)

    def get_data_retrieval_status(self, request_id: str) -> Any:
        """Check the status of a GDPR data retrieval."""
        return self._gdpr("GET", "data-retrievals", request_id)

    def create_data_deletion(self, distinct_ids: Sequence[str]) -> Any:
        """Start a GDPR data deletion for the given users."""
        self._require_token("GDPR requests")
        body = {"distinct_ids": self._require_ids(distinct_ids)}
        return self._gdpr("POST", "data-deletions", body=body)

    def get_data_deletion_status(self, request_id: str) -> Any:
        """Check the status of a GDPR data deletion."""
        return self._gdpr("GET", "data-deletions", request_id)

    def cancel_data_deletion(self, request_id: str) -> dict[str, Any]:
        """Cancel a pending GDPR data deletion."""
        self._gdpr("DELETE", "data-deletions", request_id)
        return {"success": True, "request_id": request_id}
