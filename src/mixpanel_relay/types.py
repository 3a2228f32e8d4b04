"""Payload and result types for mixpanel_relay operations.

Two families live here:

- Ingestion payloads. Profile and group mutations share one envelope whose
  operation key ($set, $add, $unset, ...) is modelled as a ProfileOperation
  enum member carried by a ProfileUpdate or GroupUpdate value. Each value
  checks that its payload matches its operation and renders its own wire
  envelope. Identity links are IdentityEvent values.
- Results. Immutable frozen dataclasses with a `to_dict()` method whose
  output is JSON-serializable. Tabular results also expose a lazily
  computed, cached pandas DataFrame via `df`.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

import pandas as pd

from mixpanel_relay.exceptions import InvalidParameterError

# =============================================================================
# Ingestion payloads
# =============================================================================


class ProfileOperation(str, Enum):
    """Operation key of a profile or group update envelope."""

    SET = "$set"
    SET_ONCE = "$set_once"
    ADD = "$add"
    APPEND = "$append"
    REMOVE = "$remove"
    UNION = "$union"
    UNSET = "$unset"
    DELETE = "$delete"


GROUP_OPERATIONS = frozenset(
    {
        ProfileOperation.SET,
        ProfileOperation.SET_ONCE,
        ProfileOperation.REMOVE,
        ProfileOperation.UNION,
        ProfileOperation.UNSET,
        ProfileOperation.DELETE,
    }
)
"""Operations accepted by the groups endpoint ($add and $append are profile-only)."""


def _check_payload(operation: ProfileOperation, payload: Any) -> Any:
    """Validate and normalize a payload for its operation.

    Returns:
        The payload in wire form (dicts and lists copied).

    Raises:
        InvalidParameterError: If the payload shape does not fit the operation.
    """
    op = operation.value
    if operation is ProfileOperation.DELETE:
        return ""
    if operation is ProfileOperation.UNSET:
        if isinstance(payload, str) or not isinstance(payload, Sequence):
            raise InvalidParameterError(
                "properties", f"{op} expects a list of property names"
            )
        names = [str(name) for name in payload]
        if not names:
            raise InvalidParameterError("properties", f"{op} needs at least one name")
        return names
    if not isinstance(payload, Mapping) or not payload:
        raise InvalidParameterError(
            "properties", f"{op} expects a non-empty mapping of property values"
        )
    if operation is ProfileOperation.ADD:
        for key, value in payload.items():
            if isinstance(value, bool) or not isinstance(value, int | float):
                raise InvalidParameterError(
                    "properties", f"{op} value for {key!r} must be a number", value
                )
    if operation is ProfileOperation.UNION:
        for key, value in payload.items():
            if isinstance(value, str) or not isinstance(value, Sequence):
                raise InvalidParameterError(
                    "properties", f"{op} value for {key!r} must be a list", value
                )
        return {key: list(value) for key, value in payload.items()}
    return dict(payload)


@dataclass(frozen=True)
class ProfileUpdate:
    """One user profile mutation.

    Build instances through the per-operation constructors so the payload
    type always matches the operation.

    Example:
        ```python
        update = ProfileUpdate.set("u1", {"plan": "pro"})
        update.to_payload("tok")
        # {"$token": "tok", "$distinct_id": "u1", "$set": {"plan": "pro"}}
        ```
    """

    distinct_id: str
    """Profile identifier."""

    operation: ProfileOperation
    """Which envelope key carries the payload."""

    payload: Any = None
    """Operation-specific payload (mapping, list of names, or '' for delete)."""

    def __post_init__(self) -> None:
        """Validate the distinct id and normalize the payload."""
        if not isinstance(self.distinct_id, str) or not self.distinct_id.strip():
            raise InvalidParameterError(
                "distinct_id", "distinct_id must be a non-empty string"
            )
        object.__setattr__(
            self, "payload", _check_payload(self.operation, self.payload)
        )

    @classmethod
    def set(cls, distinct_id: str, properties: Mapping[str, Any]) -> ProfileUpdate:
        """Overwrite profile properties."""
        return cls(distinct_id, ProfileOperation.SET, properties)

    @classmethod
    def set_once(
        cls, distinct_id: str, properties: Mapping[str, Any]
    ) -> ProfileUpdate:
        """Set properties only where they are not already present."""
        return cls(distinct_id, ProfileOperation.SET_ONCE, properties)

    @classmethod
    def add(
        cls, distinct_id: str, increments: Mapping[str, int | float]
    ) -> ProfileUpdate:
        """Increment numeric properties (negative values decrement)."""
        return cls(distinct_id, ProfileOperation.ADD, increments)

    @classmethod
    def append(
        cls, distinct_id: str, property_name: str, values: Sequence[Any]
    ) -> ProfileUpdate:
        """Append values to a list property."""
        return cls(distinct_id, ProfileOperation.APPEND, {property_name: list(values)})

    @classmethod
    def remove(
        cls, distinct_id: str, property_name: str, values: Sequence[Any]
    ) -> ProfileUpdate:
        """Remove values from a list property."""
        return cls(distinct_id, ProfileOperation.REMOVE, {property_name: list(values)})

    @classmethod
    def union(
        cls, distinct_id: str, properties: Mapping[str, Sequence[Any]]
    ) -> ProfileUpdate:
        """Merge values into list properties without duplicates."""
        return cls(distinct_id, ProfileOperation.UNION, properties)

    @classmethod
    def unset(cls, distinct_id: str, property_names: Sequence[str]) -> ProfileUpdate:
        """Remove properties from the profile."""
        return cls(distinct_id, ProfileOperation.UNSET, property_names)

    @classmethod
    def delete(cls, distinct_id: str) -> ProfileUpdate:
        """Delete the whole profile."""
        return cls(distinct_id, ProfileOperation.DELETE)

    def to_payload(self, token: str) -> dict[str, Any]:
        """Render the /engage envelope for this update.

        Args:
            token: Project token embedded in the envelope.

        Returns:
            Envelope dict with $token, $distinct_id and the operation key.
        """
        return {
            "$token": token,
            "$distinct_id": self.distinct_id,
            self.operation.value: self.payload,
        }


@dataclass(frozen=True)
class GroupUpdate:
    """One group profile mutation.

    Example:
        ```python
        update = GroupUpdate.unset("company", "acme", ["legacy_plan"])
        update.to_payload("tok")
        # {"$token": "tok", "$group_key": "company", "$group_id": "acme",
        #  "$unset": ["legacy_plan"]}
        ```
    """

    group_key: str
    """Group type key (e.g. "company")."""

    group_id: str
    """Group identifier within the key."""

    operation: ProfileOperation
    """Which envelope key carries the payload."""

    payload: Any = None
    """Operation-specific payload."""

    def __post_init__(self) -> None:
        """Validate identifiers and operation, normalize the payload."""
        for name in ("group_key", "group_id"):
            value = getattr(self, name)
            if not isinstance(value, str) or not value.strip():
                raise InvalidParameterError(name, f"{name} must be a non-empty string")
        if self.operation not in GROUP_OPERATIONS:
            raise InvalidParameterError(
                "operation",
                f"{self.operation.value} is not supported for group profiles",
                self.operation.value,
            )
        object.__setattr__(
            self, "payload", _check_payload(self.operation, self.payload)
        )

    @classmethod
    def set(
        cls, group_key: str, group_id: str, properties: Mapping[str, Any]
    ) -> GroupUpdate:
        """Overwrite group properties."""
        return cls(group_key, group_id, ProfileOperation.SET, properties)

    @classmethod
    def set_once(
        cls, group_key: str, group_id: str, properties: Mapping[str, Any]
    ) -> GroupUpdate:
        """Set group properties only where they are not already present."""
        return cls(group_key, group_id, ProfileOperation.SET_ONCE, properties)

    @classmethod
    def unset(
        cls, group_key: str, group_id: str, property_names: Sequence[str]
    ) -> GroupUpdate:
        """Remove properties from the group profile."""
        return cls(group_key, group_id, ProfileOperation.UNSET, property_names)

    @classmethod
    def delete(cls, group_key: str, group_id: str) -> GroupUpdate:
        """Delete the whole group profile."""
        return cls(group_key, group_id, ProfileOperation.DELETE)

    def to_payload(self, token: str) -> dict[str, Any]:
        """Render the /groups envelope for this update."""
        return {
            "$token": token,
            "$group_key": self.group_key,
            "$group_id": self.group_id,
            self.operation.value: self.payload,
        }


@dataclass(frozen=True)
class IdentityEvent:
    """A tracked pseudo-event that links user identities."""

    event: str
    """One of $identify, $create_alias, $merge."""

    properties: dict[str, Any]
    """Linked ids; the token is added at render time."""

    @classmethod
    def identify(cls, distinct_id: str, anon_id: str) -> IdentityEvent:
        """Link an anonymous id to an identified user."""
        return cls("$identify", {"$identified_id": distinct_id, "$anon_id": anon_id})

    @classmethod
    def create_alias(cls, distinct_id: str, alias: str) -> IdentityEvent:
        """Register an alias for a distinct id."""
        return cls("$create_alias", {"distinct_id": distinct_id, "alias": alias})

    @classmethod
    def merge(cls, distinct_id_1: str, distinct_id_2: str) -> IdentityEvent:
        """Merge two identity clusters."""
        return cls("$merge", {"$distinct_ids": [distinct_id_1, distinct_id_2]})

    def to_payload(self, token: str) -> dict[str, Any]:
        """Render the /track event for this identity link."""
        return {"event": self.event, "properties": {**self.properties, "token": token}}


# =============================================================================
# Results
# =============================================================================


@dataclass(frozen=True)
class IngestionResult:
    """Outcome of an ingestion call (/track, /engage, /groups).

    status is 1 for accepted and 0 for rejected. When the response body
    carries its own status it takes precedence over the HTTP success.
    """

    status: int
    """1 if Mixpanel accepted the payload, 0 otherwise."""

    error: str | None = None
    """Body-level error message, when Mixpanel reported one."""

    num_records_imported: int | None = None
    """Accepted record count, reported by /import only."""

    @property
    def success(self) -> bool:
        """Whether the payload was accepted."""
        return self.status == 1

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        result: dict[str, Any] = {"success": self.success, "status": self.status}
        if self.error is not None:
            result["error"] = self.error
        if self.num_records_imported is not None:
            result["num_records_imported"] = self.num_records_imported
        return result


@dataclass(frozen=True)
class ExportedEvent:
    """Single raw event from the Data Export API."""

    event: str
    """Event name."""

    properties: dict[str, Any]
    """All event properties as exported."""

    time: int | None
    """Event time (Unix seconds), lifted from properties."""

    distinct_id: str | None
    """User identifier, lifted from properties."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "event": self.event,
            "properties": self.properties,
            "time": self.time,
            "distinct_id": self.distinct_id,
        }


@dataclass(frozen=True)
class EventExportResult:
    """Events parsed from a newline-delimited export response."""

    events: list[ExportedEvent] = field(default_factory=list)
    """Parsed events in response order."""

    skipped_lines: int = 0
    """Number of malformed lines that were dropped."""

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """Convert to DataFrame with columns: event, time, distinct_id, properties."""
        if self._df_cache is not None:
            return self._df_cache

        rows = [
            {
                "event": e.event,
                "time": e.time,
                "distinct_id": e.distinct_id,
                "properties": e.properties,
            }
            for e in self.events
        ]
        result_df = (
            pd.DataFrame(rows)
            if rows
            else pd.DataFrame(columns=["event", "time", "distinct_id", "properties"])
        )
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def __len__(self) -> int:
        """Return number of events."""
        return len(self.events)

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "events": [e.to_dict() for e in self.events],
            "count": len(self.events),
            "skipped_lines": self.skipped_lines,
        }


@dataclass(frozen=True)
class UserProfile:
    """A user profile from the Engage API."""

    distinct_id: str
    """Profile identifier."""

    properties: dict[str, Any] = field(default_factory=dict)
    """Profile properties (empty when the profile does not exist)."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"distinct_id": self.distinct_id, "properties": self.properties}


@dataclass(frozen=True)
class ProfileQueryResult:
    """One page of an Engage profile query."""

    results: list[UserProfile]
    """Profiles on this page."""

    page: int
    """Zero-based page number."""

    session_id: str | None
    """Session id to pass back for the next page."""

    total: int
    """Total matching profiles."""

    _df_cache: pd.DataFrame | None = field(default=None, repr=False)

    @property
    def df(self) -> pd.DataFrame:
        """Convert to DataFrame with a distinct_id column plus one per property."""
        if self._df_cache is not None:
            return self._df_cache

        rows = [{"distinct_id": p.distinct_id, **p.properties} for p in self.results]
        result_df = pd.DataFrame(rows) if rows else pd.DataFrame(columns=["distinct_id"])
        object.__setattr__(self, "_df_cache", result_df)
        return result_df

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "results": [p.to_dict() for p in self.results],
            "page": self.page,
            "session_id": self.session_id,
            "total": self.total,
        }


@dataclass(frozen=True)
class TopEvent:
    """Today's event activity data."""

    event: str
    """Event name."""

    amount: int
    """Today's event count."""

    percent_change: float
    """Change vs yesterday."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "event": self.event,
            "amount": self.amount,
            "percent_change": self.percent_change,
        }


@dataclass(frozen=True)
class PropertyValueCount:
    """A property value and how often it occurs."""

    value: str
    count: int

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"value": self.value, "count": self.count}


@dataclass(frozen=True)
class SchemaEntity:
    """A Lexicon schema entry."""

    entity_type: str
    """One of event, profile, group, lookup_table."""

    name: str
    """Entity name."""

    schema_json: dict[str, Any] = field(default_factory=dict)
    """Full schema definition."""

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {
            "entity_type": self.entity_type,
            "name": self.name,
            "schema_json": self.schema_json,
        }


@dataclass(frozen=True)
class ConnectionStatus:
    """Result of a credential check against the API."""

    connected: bool
    message: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize for JSON output."""
        return {"connected": self.connected, "message": self.message}
