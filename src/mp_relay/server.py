"""FastMCP server exposing the Mixpanel REST APIs to AI assistants.

The server is stateless and multi-tenant: every tool call carries its own
Mixpanel credentials in request headers, and a fresh client is opened and
closed for that call. The lifespan only publishes client options.

Includes middleware for:
- Audit logging (tenant, timing and outcomes)

Also serves two plain HTTP routes on the HTTP transports:
- GET /health for load balancers
- GET / describing the credential headers and tool groups

Example:
    ```python
    from mp_relay.server import mcp
    mcp.run(transport="http", port=8000)
    ```
"""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from typing import Any

from fastmcp import FastMCP
from starlette.requests import Request
from starlette.responses import JSONResponse

from mixpanel_relay import __version__
from mixpanel_relay._internal.config import (
    EU_RESIDENT_HEADER,
    PROJECT_ID_HEADER,
    PROJECT_TOKEN_HEADER,
    SECRET_HEADER,
    USERNAME_HEADER,
)
from mp_relay.context import get_client_options

logger = logging.getLogger(__name__)

SERVER_NAME = "mixpanel-relay"

TOOL_GROUPS: dict[str, list[str]] = {
    "analytics": [
        "mixpanel_query_insights",
        "mixpanel_query_segmentation",
        "mixpanel_query_segmentation_numeric",
        "mixpanel_query_segmentation_sum",
        "mixpanel_query_segmentation_average",
        "mixpanel_get_top_events",
        "mixpanel_get_event_names",
        "mixpanel_query_events",
        "mixpanel_get_event_properties",
        "mixpanel_get_property_values",
        "mixpanel_get_top_property_values",
        "mixpanel_execute_jql",
    ],
    "funnels": [
        "mixpanel_list_funnels",
        "mixpanel_get_funnel",
        "mixpanel_get_retention",
        "mixpanel_get_frequency",
    ],
    "profiles": [
        "mixpanel_query_profiles",
        "mixpanel_get_profile",
        "mixpanel_get_profile_activity",
        "mixpanel_set_profile_properties",
        "mixpanel_set_profile_properties_once",
        "mixpanel_increment_profile_properties",
        "mixpanel_append_to_profile_list",
        "mixpanel_remove_from_profile_list",
        "mixpanel_union_to_profile_list",
        "mixpanel_unset_profile_properties",
        "mixpanel_delete_profile",
    ],
    "events": [
        "mixpanel_export_events",
        "mixpanel_track_event",
        "mixpanel_track_events",
        "mixpanel_import_events",
    ],
    "groups": [
        "mixpanel_set_group_properties",
        "mixpanel_set_group_properties_once",
        "mixpanel_unset_group_properties",
        "mixpanel_delete_group",
    ],
    "identity": [
        "mixpanel_create_identity",
        "mixpanel_create_alias",
        "mixpanel_merge_identities",
    ],
    "cohorts": ["mixpanel_list_cohorts"],
    "management": [
        "mixpanel_list_annotations",
        "mixpanel_create_annotation",
        "mixpanel_get_annotation",
        "mixpanel_update_annotation",
        "mixpanel_delete_annotation",
        "mixpanel_list_lookup_tables",
        "mixpanel_create_lookup_table",
        "mixpanel_list_schemas",
        "mixpanel_get_schema",
        "mixpanel_create_schema",
        "mixpanel_delete_schema",
    ],
    "gdpr": [
        "mixpanel_create_data_retrieval",
        "mixpanel_get_data_retrieval_status",
        "mixpanel_create_data_deletion",
        "mixpanel_get_data_deletion_status",
        "mixpanel_cancel_data_deletion",
    ],
    "connection": ["mixpanel_test_connection"],
}


@asynccontextmanager
async def lifespan(_server: FastMCP) -> AsyncIterator[dict[str, Any]]:
    """Publish client options for the server session.

    No tenant state is created here; credentials arrive with each call.

    Args:
        _server: The FastMCP server instance (unused, required by signature).

    Yields:
        Dict with the HTTP timeouts used by every tenant client.
    """
    options = get_client_options()
    logger.info(
        "Starting %s %s (timeout=%ss, export_timeout=%ss)",
        SERVER_NAME,
        __version__,
        options["timeout"],
        options["export_timeout"],
    )
    yield dict(options)


mcp = FastMCP(
    name=SERVER_NAME,
    instructions=f"""Mixpanel Relay MCP Server

Stateless, multi-tenant access to the Mixpanel REST APIs. Each call is
authenticated with the caller's own credentials, sent as request headers:

- {USERNAME_HEADER} (required)
- {SECRET_HEADER} (required)
- {PROJECT_ID_HEADER} (required)
- {PROJECT_TOKEN_HEADER} (tracking, profile/group updates, identity, GDPR)
- {EU_RESIDENT_HEADER}: "true" for EU data residency

Capabilities:
- Analytics: insights, segmentation, event counts, property values, JQL
- Funnels & retention: saved funnels, retention curves, frequency
- Profiles: query, inspect and update user profiles
- Events: export raw events, track and import events
- Groups & identity: group profile updates, identify, alias and merge
- Management: annotations, lookup tables, Lexicon schemas
- GDPR: data retrieval and deletion requests

Dates use the YYYY-MM-DD format.
""",
    lifespan=lifespan,
)


@mcp.custom_route("/health", methods=["GET"])
async def health(_request: Request) -> JSONResponse:
    """Liveness check for load balancers and container health checks."""
    return JSONResponse({"status": "ok", "server": SERVER_NAME})


@mcp.custom_route("/", methods=["GET"])
async def server_info(_request: Request) -> JSONResponse:
    """Describe the server, its credential headers and tool groups."""
    return JSONResponse(
        {
            "name": SERVER_NAME,
            "version": __version__,
            "description": "Mixpanel MCP Server - Multi-tenant analytics API",
            "authentication": {
                "required_headers": [USERNAME_HEADER, SECRET_HEADER, PROJECT_ID_HEADER],
                "optional_headers": [PROJECT_TOKEN_HEADER, EU_RESIDENT_HEADER],
            },
            "tools": TOOL_GROUPS,
        }
    )


# Imports happen here to avoid circular imports
from mp_relay.middleware import create_audit_middleware  # noqa: E402

mcp.add_middleware(create_audit_middleware())

# Import tool modules to register them with the server
# These imports must happen after mcp is defined
from mp_relay.tools import (  # noqa: E402, F401
    analytics,
    cohorts,
    connection,
    events,
    funnels,
    gdpr,
    groups,
    identity,
    management,
    profiles,
)
