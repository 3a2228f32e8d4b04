"""Middleware components for the relay server.

- audit: Audit logging with tenant, timing and outcomes

Example:
    ```python
    from mp_relay.middleware import create_audit_middleware

    mcp.add_middleware(create_audit_middleware())
    ```
"""

from mp_relay.middleware.audit import (
    AuditConfig,
    AuditMiddleware,
    create_audit_middleware,
)

__all__ = [
    "AuditConfig",
    "AuditMiddleware",
    "create_audit_middleware",
]
