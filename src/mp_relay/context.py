"""Context helpers for per-request tenant access.

Every tool call resolves its own tenant credentials from the inbound HTTP
headers and gets a fresh MixpanelAPIClient that is closed when the call
ends. Nothing about a tenant outlives the call.

For the stdio transport, which carries no headers, the CLI enables an
environment fallback: credentials come from MP_* variables when the
request has none of the credential headers.

Example:
    ```python
    @mcp.tool
    @handle_errors
    def mixpanel_list_funnels(ctx: Context) -> list[dict[str, Any]]:
        with tenant_client(ctx) as client:
            return client.list_funnels()
    ```
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from fastmcp.server.dependencies import get_http_headers

from mixpanel_relay import MixpanelAPIClient
from mixpanel_relay.auth import (
    TenantCredentials,
    has_credential_headers,
    headers_from_env,
    resolve_credentials,
)

if TYPE_CHECKING:
    from fastmcp import Context

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 120.0
DEFAULT_EXPORT_TIMEOUT = 600.0

# Module-level server settings (set by CLI before server starts)
_env_fallback: bool = False
_client_options: dict[str, float] = {
    "timeout": DEFAULT_TIMEOUT,
    "export_timeout": DEFAULT_EXPORT_TIMEOUT,
}


def set_env_fallback(enabled: bool) -> None:
    """Enable or disable reading credentials from MP_* environment variables.

    Args:
        enabled: True to fall back to the environment when a request carries
            no credential headers.
    """
    global _env_fallback
    _env_fallback = enabled


def get_env_fallback() -> bool:
    """Whether the environment credential fallback is enabled."""
    return _env_fallback


def set_client_options(
    *,
    timeout: float | None = None,
    export_timeout: float | None = None,
) -> None:
    """Set HTTP timeouts used for every tenant client.

    Args:
        timeout: Request timeout in seconds for regular requests.
        export_timeout: Request timeout in seconds for raw exports.
    """
    if timeout is not None:
        _client_options["timeout"] = timeout
    if export_timeout is not None:
        _client_options["export_timeout"] = export_timeout


def get_client_options() -> dict[str, float]:
    """Return a copy of the current client options."""
    return dict(_client_options)


def request_headers() -> dict[str, str]:
    """Return the credential source for the current request.

    Returns:
        The inbound HTTP headers, or the MP_* environment mapped to header
        names when the fallback is enabled and no credential header is
        present.
    """
    headers = get_http_headers()
    if _env_fallback and not has_credential_headers(headers):
        logger.debug("No credential headers on request; using environment")
        return headers_from_env()
    return headers


def get_credentials() -> TenantCredentials:
    """Resolve tenant credentials for the current request.

    Raises:
        MissingCredentialsError: If mandatory credentials are absent.
    """
    return resolve_credentials(request_headers())


@contextmanager
def tenant_client(ctx: "Context") -> Iterator[MixpanelAPIClient]:
    """Open a MixpanelAPIClient for the calling tenant.

    Client options come from the server lifespan state when present,
    otherwise from the module settings. A "transport" entry in the
    lifespan state replaces the network transport.

    Args:
        ctx: The FastMCP Context injected into tool functions.

    Yields:
        A client bound to this request's credentials; closed on exit.

    Raises:
        MissingCredentialsError: If mandatory credentials are absent.
    """
    credentials = get_credentials()
    state: dict[str, Any] = getattr(ctx, "lifespan_context", None) or {}
    options = get_client_options()
    with MixpanelAPIClient(
        credentials,
        timeout=state.get("timeout", options["timeout"]),
        export_timeout=state.get("export_timeout", options["export_timeout"]),
        _transport=state.get("transport"),
    ) as client:
        yield client
