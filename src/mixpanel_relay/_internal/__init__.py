"""Internal implementation modules. Not part of the public API."""

from mixpanel_relay._internal.api_client import MixpanelAPIClient
from mixpanel_relay._internal.config import TenantCredentials, resolve_credentials

__all__ = ["MixpanelAPIClient", "TenantCredentials", "resolve_credentials"]
