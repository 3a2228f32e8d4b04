"""Shared fixtures for mixpanel_relay and mp_relay tests."""

from __future__ import annotations

import asyncio
import os
from collections.abc import Awaitable, Callable, Sequence
from typing import TYPE_CHECKING, Any, TypeVar
from unittest.mock import AsyncMock, MagicMock

import httpx
import pytest
from hypothesis import Phase, Verbosity, settings
from pydantic import SecretStr

# =============================================================================
# Hypothesis Configuration
# =============================================================================

# Register Hypothesis profiles for different environments
settings.register_profile(
    "default",
    max_examples=100,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

settings.register_profile(
    "ci",
    max_examples=200,
    verbosity=Verbosity.normal,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
    derandomize=True,  # Reproducible in CI
)

settings.register_profile(
    "dev",
    max_examples=10,
    verbosity=Verbosity.verbose,
    phases=[Phase.explicit, Phase.reuse, Phase.generate, Phase.target, Phase.shrink],
)

# Load profile from HYPOTHESIS_PROFILE env var, default to "default"
settings.load_profile(os.getenv("HYPOTHESIS_PROFILE", "default"))

if TYPE_CHECKING:
    from mixpanel_relay._internal.api_client import MixpanelAPIClient
    from mixpanel_relay._internal.config import TenantCredentials

Handler = Callable[[httpx.Request], httpx.Response]


# =============================================================================
# Credential Fixtures
# =============================================================================


@pytest.fixture
def mock_credentials() -> TenantCredentials:
    """US tenant credentials without a project token."""
    from mixpanel_relay._internal.config import TenantCredentials

    return TenantCredentials(
        username="svc",
        secret=SecretStr("shh"),
        project_id="123",
    )


@pytest.fixture
def token_credentials() -> TenantCredentials:
    """US tenant credentials with a project token."""
    from mixpanel_relay._internal.config import TenantCredentials

    return TenantCredentials(
        username="svc",
        secret=SecretStr("shh"),
        project_id="123",
        project_token=SecretStr("tok"),
    )


@pytest.fixture
def eu_credentials() -> TenantCredentials:
    """EU-resident tenant credentials with a project token."""
    from mixpanel_relay._internal.config import TenantCredentials

    return TenantCredentials(
        username="svc",
        secret=SecretStr("shh"),
        project_id="123",
        project_token=SecretStr("tok"),
        eu_resident=True,
    )


@pytest.fixture
def tenant_headers() -> dict[str, str]:
    """Inbound headers as FastMCP reports them (lowercase keys)."""
    return {
        "x-mixpanel-service-account-username": "svc",
        "x-mixpanel-service-account-secret": "shh",
        "x-mixpanel-project-id": "123",
        "x-mixpanel-project-token": "tok",
    }


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def mock_client_factory() -> Callable[[TenantCredentials, Handler], MixpanelAPIClient]:
    """Factory for clients backed by httpx.MockTransport.

    Returns:
        Callable taking credentials and a request handler.
    """
    from mixpanel_relay._internal.api_client import MixpanelAPIClient

    def factory(credentials: TenantCredentials, handler: Handler) -> MixpanelAPIClient:
        return MixpanelAPIClient(credentials, _transport=httpx.MockTransport(handler))

    return factory


class RecordingHandler:
    """MockTransport handler that records requests and replays a response."""

    def __init__(self, response: httpx.Response | None = None) -> None:
        self.requests: list[httpx.Request] = []
        self.response = response or httpx.Response(200, json={})

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.response

    @property
    def last(self) -> httpx.Request:
        return self.requests[-1]


@pytest.fixture
def recorder() -> RecordingHandler:
    """A RecordingHandler answering 200 with an empty JSON object."""
    return RecordingHandler()


# =============================================================================
# MCP Fixtures
# =============================================================================


@pytest.fixture
def mock_lifespan_state(recorder: RecordingHandler) -> dict[str, Any]:
    """Lifespan state routing every tenant client through the recorder."""
    return {
        "timeout": 120.0,
        "export_timeout": 600.0,
        "transport": httpx.MockTransport(recorder),
    }


@pytest.fixture
def mock_context(mock_lifespan_state: dict[str, Any]) -> MagicMock:
    """Create a mock FastMCP Context.

    Returns:
        MagicMock configured as a FastMCP Context.
    """
    ctx = MagicMock()
    # FastMCP 3.0 uses public lifespan_context property
    ctx.lifespan_context = mock_lifespan_state
    ctx.report_progress = AsyncMock(return_value=None)
    return ctx


@pytest.fixture
def with_tenant_headers(
    monkeypatch: pytest.MonkeyPatch, tenant_headers: dict[str, str]
) -> dict[str, str]:
    """Make the current request appear to carry tenant credential headers."""
    monkeypatch.setattr(
        "mp_relay.context.get_http_headers", lambda *args, **kwargs: tenant_headers
    )
    return tenant_headers


# ============================================================================
# FastMCP v3 Registration Check Helpers
# ============================================================================

T = TypeVar("T")


def _get_mcp_items(
    list_func: Callable[[], Awaitable[Sequence[T]]], extractor: Callable[[T], str]
) -> list[str]:
    """Run an async MCP list function and extract item properties."""

    async def get_items() -> list[str]:
        items = await list_func()
        return [extractor(item) for item in items]

    return asyncio.run(get_items())


@pytest.fixture
def registered_tool_names() -> list[str]:
    """Get list of registered tool names using FastMCP v3 API.

    Returns:
        List of tool names registered with the MCP server.
    """
    from mp_relay.server import mcp

    return _get_mcp_items(mcp.list_tools, lambda t: t.name)
