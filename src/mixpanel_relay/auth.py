"""Public credential resolution module.

Re-exports the per-request credential helpers for public use.

Re-exported names:
    TenantCredentials: Immutable credential container with SecretStr secrets.
    resolve_credentials: Build TenantCredentials from request headers.
    headers_from_env: Build credential headers from MP_* environment variables.
    has_credential_headers: Whether a header mapping carries any credential.
    parse_eu_resident: Interpret the EU residency header value.

For full documentation, see:
    mixpanel_relay._internal.config

Example usage:
    from mixpanel_relay.auth import resolve_credentials

    creds = resolve_credentials(request.headers)
"""

from mixpanel_relay._internal.config import (
    CREDENTIAL_HEADERS,
    EU_RESIDENT_HEADER,
    PROJECT_ID_HEADER,
    PROJECT_TOKEN_HEADER,
    SECRET_HEADER,
    USERNAME_HEADER,
    TenantCredentials,
    has_credential_headers,
    headers_from_env,
    parse_eu_resident,
    resolve_credentials,
)

__all__ = [
    "CREDENTIAL_HEADERS",
    "EU_RESIDENT_HEADER",
    "PROJECT_ID_HEADER",
    "PROJECT_TOKEN_HEADER",
    "SECRET_HEADER",
    "USERNAME_HEADER",
    "TenantCredentials",
    "has_credential_headers",
    "headers_from_env",
    "parse_eu_resident",
    "resolve_credentials",
]
