"""Tenant credential resolution for mixpanel_relay.

Credentials are never stored. Each inbound request carries its own tenant
credentials as header-like key/value pairs; resolve_credentials() turns
them into an immutable TenantCredentials value that is threaded into a
single MixpanelAPIClient and discarded when the request ends.
"""

from __future__ import annotations

import os
from collections.abc import Mapping
from typing import Literal

from pydantic import BaseModel, ConfigDict, SecretStr, field_validator

from mixpanel_relay.exceptions import MissingCredentialsError

RegionType = Literal["us", "eu"]

USERNAME_HEADER = "X-Mixpanel-Service-Account-Username"
SECRET_HEADER = "X-Mixpanel-Service-Account-Secret"
PROJECT_ID_HEADER = "X-Mixpanel-Project-Id"
PROJECT_TOKEN_HEADER = "X-Mixpanel-Project-Token"
EU_RESIDENT_HEADER = "X-Mixpanel-EU-Resident"

CREDENTIAL_HEADERS = (
    USERNAME_HEADER,
    SECRET_HEADER,
    PROJECT_ID_HEADER,
    PROJECT_TOKEN_HEADER,
    EU_RESIDENT_HEADER,
)

# Environment variable -> header, for transports that carry no headers (stdio)
ENV_HEADER_MAP: dict[str, str] = {
    "MP_USERNAME": USERNAME_HEADER,
    "MP_SECRET": SECRET_HEADER,
    "MP_PROJECT_ID": PROJECT_ID_HEADER,
    "MP_PROJECT_TOKEN": PROJECT_TOKEN_HEADER,
    "MP_EU_RESIDENT": EU_RESIDENT_HEADER,
}


class TenantCredentials(BaseModel):
    """Immutable credentials for one tenant's Mixpanel API calls.

    This is a frozen Pydantic model that ensures:
    - All fields are validated on construction
    - Secrets are never exposed in repr/str output
    - The object cannot be modified after creation
    """

    model_config = ConfigDict(frozen=True)

    username: str
    """Service account username."""

    secret: SecretStr
    """Service account secret (redacted in output)."""

    project_id: str
    """Mixpanel project identifier."""

    project_token: SecretStr | None = None
    """Project token for ingestion and GDPR calls (redacted in output)."""

    eu_resident: bool = False
    """Whether the project uses EU data residency."""

    @field_validator("username", "project_id")
    @classmethod
    def validate_non_empty(cls, v: str) -> str:
        """Validate string fields are non-empty."""
        if not v or not v.strip():
            raise ValueError("Field cannot be empty")
        return v

    @property
    def region(self) -> RegionType:
        """Endpoint region selected by the residency flag."""
        return "eu" if self.eu_resident else "us"

    @property
    def has_project_token(self) -> bool:
        """Whether a non-empty project token was supplied."""
        return self.project_token is not None and bool(
            self.project_token.get_secret_value()
        )

    def __repr__(self) -> str:
        """Return string representation with redacted secrets."""
        token = "***" if self.has_project_token else None
        return (
            f"TenantCredentials(username={self.username!r}, secret=***, "
            f"project_id={self.project_id!r}, project_token={token}, "
            f"eu_resident={self.eu_resident!r})"
        )

    def __str__(self) -> str:
        """Return string representation with redacted secrets."""
        return self.__repr__()


def parse_eu_resident(value: str | None) -> bool:
    """Parse the EU residency flag.

    Args:
        value: Raw header value, or None when the header is absent.

    Returns:
        True only when the value is the string "true" in any case; False
        otherwise, including padded values such as " true ".
    """
    if value is None:
        return False
    return value.lower() == "true"


def _lookup(
    headers: Mapping[str, str], name: str, *, strip: bool = True
) -> str | None:
    """Find a header value case-insensitively, treating blanks as absent."""
    target = name.lower()
    for key, value in headers.items():
        if key.lower() == target:
            if value is None or not str(value).strip():
                return None
            return str(value).strip() if strip else str(value)
    return None


def has_credential_headers(headers: Mapping[str, str]) -> bool:
    """Return True if any credential header is present in the mapping."""
    lowered = {key.lower() for key in headers}
    return any(name.lower() in lowered for name in CREDENTIAL_HEADERS)


def resolve_credentials(headers: Mapping[str, str]) -> TenantCredentials:
    """Resolve tenant credentials from inbound request headers.

    Header names are matched case-insensitively. Username, secret and
    project id are mandatory; the project token and EU residency flag are
    optional.

    Args:
        headers: Header-like key/value pairs from the inbound request.

    Returns:
        Immutable TenantCredentials for this request.

    Raises:
        MissingCredentialsError: If any mandatory field is absent or blank.
            The error lists every missing field and its header.

    Example:
        ```python
        creds = resolve_credentials({
            "X-Mixpanel-Service-Account-Username": "svc",
            "X-Mixpanel-Service-Account-Secret": "shh",
            "X-Mixpanel-Project-Id": "123",
        })
        creds.region  # 'us'
        ```
    """
    username = _lookup(headers, USERNAME_HEADER)
    secret = _lookup(headers, SECRET_HEADER)
    project_id = _lookup(headers, PROJECT_ID_HEADER)

    missing: list[tuple[str, str]] = []
    if username is None:
        missing.append(("username", USERNAME_HEADER))
    if secret is None:
        missing.append(("secret", SECRET_HEADER))
    if project_id is None:
        missing.append(("project_id", PROJECT_ID_HEADER))
    if missing:
        raise MissingCredentialsError(
            [field for field, _ in missing],
            [header for _, header in missing],
        )

    token = _lookup(headers, PROJECT_TOKEN_HEADER)
    return TenantCredentials(
        username=username or "",
        secret=SecretStr(secret or ""),
        project_id=project_id or "",
        project_token=SecretStr(token) if token is not None else None,
        eu_resident=parse_eu_resident(
            _lookup(headers, EU_RESIDENT_HEADER, strip=False)
        ),
    )


def headers_from_env(environ: Mapping[str, str] | None = None) -> dict[str, str]:
    """Build a credential header mapping from MP_* environment variables.

    Used by the stdio transport, which has no request headers. Only
    variables that are set appear in the result.

    Args:
        environ: Environment mapping. Defaults to os.environ.

    Returns:
        Dict of credential header name to value.
    """
    env = os.environ if environ is None else environ
    return {
        header: env[var]
        for var, header in ENV_HEADER_MAP.items()
        if env.get(var)
    }
