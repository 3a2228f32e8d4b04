"""MCP server relaying AI-assistant tool calls to the Mixpanel REST APIs.

This package wraps the mixpanel_relay library in a FastMCP server. It keeps
no tenant state: credentials arrive as request headers with every call.

Example:
    Serve many tenants over streamable HTTP:

    ```bash
    mp_relay --transport http --port 8000
    ```

    Serve one local tenant over stdio, with credentials from MP_* variables:

    ```bash
    MP_USERNAME=svc MP_SECRET=... MP_PROJECT_ID=123 mp_relay
    ```
"""

from mp_relay.server import mcp

__all__ = ["mcp"]
__version__ = "0.1.0"
