"""
mixpanel_relay - Stateless, multi-tenant adapter for the Mixpanel REST APIs.

Each call carries its own tenant credentials; the client turns it into one
authenticated HTTP request and returns the reshaped response.
"""

from mixpanel_relay._internal.api_client import ENDPOINTS, MixpanelAPIClient
from mixpanel_relay._internal.config import TenantCredentials, resolve_credentials
from mixpanel_relay._literal_types import (
    CountType,
    GDPRDataType,
    LengthUnit,
    NameCountType,
    PeriodUnit,
    RetentionType,
    SchemaEntityType,
    TimeUnit,
)
from mixpanel_relay.exceptions import (
    APIError,
    AuthenticationError,
    CredentialsError,
    InvalidParameterError,
    MissingCredentialsError,
    MixpanelRelayError,
    ProjectTokenRequiredError,
    QueryError,
    RateLimitError,
    ServerError,
)
from mixpanel_relay.types import (
    ConnectionStatus,
    EventExportResult,
    ExportedEvent,
    GroupUpdate,
    IdentityEvent,
    IngestionResult,
    ProfileOperation,
    ProfileQueryResult,
    ProfileUpdate,
    PropertyValueCount,
    SchemaEntity,
    TopEvent,
    UserProfile,
)

__version__ = "0.1.0"

__all__ = [
    # Core
    "ENDPOINTS",
    "MixpanelAPIClient",
    "TenantCredentials",
    "resolve_credentials",
    # Type aliases
    "CountType",
    "GDPRDataType",
    "LengthUnit",
    "NameCountType",
    "PeriodUnit",
    "RetentionType",
    "SchemaEntityType",
    "TimeUnit",
    # Exceptions
    "MixpanelRelayError",
    "CredentialsError",
    "MissingCredentialsError",
    "ProjectTokenRequiredError",
    "InvalidParameterError",
    "APIError",
    "AuthenticationError",
    "RateLimitError",
    "QueryError",
    "ServerError",
    # Mutation payloads
    "ProfileOperation",
    "ProfileUpdate",
    "GroupUpdate",
    "IdentityEvent",
    # Result types
    "ConnectionStatus",
    "EventExportResult",
    "ExportedEvent",
    "IngestionResult",
    "ProfileQueryResult",
    "PropertyValueCount",
    "SchemaEntity",
    "TopEvent",
    "UserProfile",
]
