"""Exception hierarchy for mixpanel_relay.

All library exceptions inherit from MixpanelRelayError, enabling callers to
catch all library errors with a single except clause while still allowing
fine-grained exception handling when needed.

The hierarchy mirrors how a tool call can fail:
- Before any network activity: missing credentials, missing project token,
  malformed parameters.
- After the request: authentication failure, rate limiting, and any other
  non-success HTTP status (with the status code and response body attached).
"""

from __future__ import annotations

from typing import Any


class MixpanelRelayError(Exception):
    """Base exception for all mixpanel_relay errors.

    All library exceptions inherit from this class, allowing callers to:
    - Catch all library errors: except MixpanelRelayError
    - Handle specific errors: except RateLimitError
    - Serialize errors: error.to_dict()
    """

    def __init__(
        self,
        message: str,
        code: str = "UNKNOWN_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize exception.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code for programmatic handling.
            details: Additional structured data about the error.
        """
        super().__init__(message)
        self._message = message
        self._code = code
        self._details = details or {}

    @property
    def code(self) -> str:
        """Machine-readable error code."""
        return self._code

    @property
    def message(self) -> str:
        """Human-readable error message."""
        return self._message

    @property
    def details(self) -> dict[str, Any]:
        """Additional structured error data."""
        return self._details

    def to_dict(self) -> dict[str, Any]:
        """Serialize exception for logging/JSON output.

        Returns:
            Dictionary with keys: code, message, details.
            All values are JSON-serializable.
        """
        return {
            "code": self._code,
            "message": self._message,
            "details": self._details,
        }

    def __str__(self) -> str:
        """Return human-readable error message."""
        return self._message

    def __repr__(self) -> str:
        """Return detailed string representation."""
        return (
            f"{self.__class__.__name__}(message={self._message!r}, code={self._code!r})"
        )


# Credential Exceptions


class CredentialsError(MixpanelRelayError):
    """Base for tenant credential problems detected before any request."""

    def __init__(
        self,
        message: str,
        code: str = "CREDENTIALS_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize CredentialsError.

        Args:
            message: Human-readable error message.
            code: Machine-readable error code.
            details: Additional structured data.
        """
        super().__init__(message, code=code, details=details)


class MissingCredentialsError(CredentialsError):
    """Mandatory tenant credentials were not supplied with the request.

    Raised by credential resolution when the service account username,
    secret, or project id is absent. Nothing has been sent to Mixpanel.

    Example:
        ```python
        try:
            creds = resolve_credentials(headers)
        except MissingCredentialsError as e:
            print(e.missing_headers)
            # ['X-Mixpanel-Project-Id']
        ```
    """

    def __init__(
        self,
        missing_fields: list[str],
        missing_headers: list[str] | None = None,
    ) -> None:
        """Initialize MissingCredentialsError.

        Args:
            missing_fields: Credential field names that were absent.
            missing_headers: Request header names that carry those fields.
        """
        headers = missing_headers or []
        fields_str = ", ".join(missing_fields)
        message = f"Missing credentials: {fields_str}."
        if headers:
            message += f" Provide {', '.join(headers)} header(s)."
        super().__init__(
            message,
            code="MISSING_CREDENTIALS",
            details={
                "missing_fields": list(missing_fields),
                "missing_headers": headers,
            },
        )

    @property
    def missing_fields(self) -> list[str]:
        """Credential field names that were absent."""
        fields = self._details.get("missing_fields")
        return fields if isinstance(fields, list) else []

    @property
    def missing_headers(self) -> list[str]:
        """Header names the caller should supply."""
        headers = self._details.get("missing_headers")
        return headers if isinstance(headers, list) else []


class ProjectTokenRequiredError(CredentialsError):
    """An ingestion or GDPR operation was called without a project token.

    The project token is optional at resolution time, but tracking,
    profile/group mutation, identity linking and GDPR requests cannot be
    issued without it. Raised before any HTTP call is made.
    """

    def __init__(self, operation: str, header: str = "X-Mixpanel-Project-Token") -> None:
        """Initialize ProjectTokenRequiredError.

        Args:
            operation: Short description of the operation that needs the token.
            header: Header name that supplies the token.
        """
        message = f"Project token required for {operation}. Set {header} header."
        super().__init__(
            message,
            code="PROJECT_TOKEN_REQUIRED",
            details={"operation": operation, "header": header},
        )

    @property
    def operation(self) -> str:
        """The operation that required a token."""
        return str(self._details.get("operation", ""))

    @property
    def header(self) -> str:
        """Header name that supplies the token."""
        return str(self._details.get("header", ""))


# Parameter Exceptions


class InvalidParameterError(MixpanelRelayError):
    """A parameter failed validation before the request was built.

    Raised for malformed dates, empty names, or empty lookup-table data.
    """

    def __init__(self, param: str, message: str, value: Any = None) -> None:
        """Initialize InvalidParameterError.

        Args:
            param: Name of the offending parameter.
            message: Human-readable description of the problem.
            value: The rejected value, if useful for the caller.
        """
        details: dict[str, Any] = {"param": param}
        if value is not None:
            details["value"] = value
        super().__init__(message, code="INVALID_PARAMETER", details=details)

    @property
    def param(self) -> str:
        """Name of the offending parameter."""
        return str(self._details.get("param", ""))


# API Exceptions - Base class for HTTP errors


class APIError(MixpanelRelayError):
    """Base class for Mixpanel API HTTP errors.

    Provides structured access to HTTP request/response context. All
    HTTP-status exceptions inherit from this class, so a caller can:

    - Understand what went wrong (status code, error message)
    - See what was sent (request method, URL, params)
    - See what came back (response body)

    Example:
        ```python
        try:
            client.query_segmentation("signup", "2024-01-01", "2024-01-31")
        except APIError as e:
            print(f"Status: {e.status_code}")
            print(f"Response: {e.response_body}")
        ```
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int,
        response_body: str | dict[str, Any] | list[Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
        code: str = "API_ERROR",
    ) -> None:
        """Initialize APIError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code from response.
            response_body: Raw response body (string or parsed JSON).
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
            code: Machine-readable error code.
        """
        self._status_code = status_code
        self._response_body = response_body
        self._request_method = request_method
        self._request_url = request_url
        self._request_params = request_params

        details: dict[str, Any] = {
            "status_code": status_code,
        }
        if response_body is not None:
            details["response_body"] = response_body
        if request_method is not None:
            details["request_method"] = request_method
        if request_url is not None:
            details["request_url"] = request_url
        if request_params is not None:
            details["request_params"] = request_params

        super().__init__(message, code=code, details=details)

    @property
    def status_code(self) -> int:
        """HTTP status code from response."""
        return self._status_code

    @property
    def response_body(self) -> str | dict[str, Any] | list[Any] | None:
        """Raw response body (string or parsed JSON)."""
        return self._response_body

    @property
    def request_method(self) -> str | None:
        """HTTP method used."""
        return self._request_method

    @property
    def request_url(self) -> str | None:
        """Full request URL."""
        return self._request_url

    @property
    def request_params(self) -> dict[str, Any] | None:
        """Query parameters sent."""
        return self._request_params


class AuthenticationError(APIError):
    """Authentication with Mixpanel API failed (HTTP 401 or 403).

    Raised when the service account credentials are invalid or lack access
    to the project. Never retried.
    """

    def __init__(
        self,
        message: str = "Invalid credentials",
        *,
        status_code: int = 401,
        response_body: str | dict[str, Any] | list[Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        """Initialize AuthenticationError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (401 or 403).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="AUTH_FAILED",
        )


DEFAULT_RETRY_AFTER = 60
"""Seconds reported when a 429 response has no usable Retry-After header."""


class RateLimitError(APIError):
    """Mixpanel API rate limit exceeded (HTTP 429).

    The request is not retried. The retry_after property tells the caller
    how long to wait before trying again.

    Example:
        ```python
        try:
            client.query_insights("2024-01-01", "2024-01-31")
        except RateLimitError as e:
            time.sleep(e.retry_after)
        ```
    """

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        *,
        retry_after: int = DEFAULT_RETRY_AFTER,
        status_code: int = 429,
        response_body: str | dict[str, Any] | list[Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        """Initialize RateLimitError.

        Args:
            message: Human-readable error message.
            retry_after: Seconds until retry is allowed.
            status_code: HTTP status code (default 429).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
        """
        self._retry_after = retry_after
        message = f"{message}. Retry after {retry_after} seconds."

        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="RATE_LIMITED",
        )
        self._details["retry_after"] = retry_after

    @property
    def retry_after(self) -> int:
        """Seconds until retry is allowed."""
        return self._retry_after


class QueryError(APIError):
    """Request rejected by Mixpanel (non-auth 4xx status).

    Raised for invalid parameters, unknown resources, and other client-side
    errors reported by the API.
    """

    def __init__(
        self,
        message: str = "Request failed",
        *,
        status_code: int = 400,
        response_body: str | dict[str, Any] | list[Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        """Initialize QueryError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code.
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="QUERY_FAILED",
        )


class ServerError(APIError):
    """Mixpanel server-side failure (HTTP 5xx)."""

    def __init__(
        self,
        message: str = "Server error",
        *,
        status_code: int = 500,
        response_body: str | dict[str, Any] | list[Any] | None = None,
        request_method: str | None = None,
        request_url: str | None = None,
        request_params: dict[str, Any] | None = None,
    ) -> None:
        """Initialize ServerError.

        Args:
            message: Human-readable error message.
            status_code: HTTP status code (5xx).
            response_body: Raw response body.
            request_method: HTTP method used.
            request_url: Full request URL.
            request_params: Query parameters sent.
        """
        super().__init__(
            message,
            status_code=status_code,
            response_body=response_body,
            request_method=request_method,
            request_url=request_url,
            request_params=request_params,
            code="SERVER_ERROR",
        )
