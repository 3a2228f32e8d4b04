"""Unit tests for ingestion payloads and result types."""

from __future__ import annotations

import json
from dataclasses import FrozenInstanceError
from typing import Any

import pytest
from hypothesis import given
from hypothesis import strategies as st

from mixpanel_relay.exceptions import InvalidParameterError
from mixpanel_relay.types import (
    GROUP_OPERATIONS,
    ConnectionStatus,
    GroupUpdate,
    IdentityEvent,
    IngestionResult,
    ProfileOperation,
    ProfileQueryResult,
    ProfileUpdate,
    SchemaEntity,
    TopEvent,
    UserProfile,
)


class TestProfileUpdate:
    """Tests for ProfileUpdate envelopes."""

    def test_set_envelope(self) -> None:
        """$set renders the documented /engage envelope."""
        update = ProfileUpdate.set("u1", {"plan": "pro"})
        assert update.to_payload("tok") == {
            "$token": "tok",
            "$distinct_id": "u1",
            "$set": {"plan": "pro"},
        }

    @pytest.mark.parametrize(
        ("update", "key", "payload"),
        [
            (ProfileUpdate.set_once("u1", {"a": 1}), "$set_once", {"a": 1}),
            (ProfileUpdate.add("u1", {"n": -2.5}), "$add", {"n": -2.5}),
            (ProfileUpdate.append("u1", "tags", ("x",)), "$append", {"tags": ["x"]}),
            (ProfileUpdate.remove("u1", "tags", ["x"]), "$remove", {"tags": ["x"]}),
            (ProfileUpdate.union("u1", {"tags": ("x", "y")}), "$union", {"tags": ["x", "y"]}),
            (ProfileUpdate.unset("u1", ("a", "b")), "$unset", ["a", "b"]),
            (ProfileUpdate.delete("u1"), "$delete", ""),
        ],
    )
    def test_operation_envelopes(
        self, update: ProfileUpdate, key: str, payload: Any
    ) -> None:
        """Each operation carries its payload under its own key."""
        rendered = update.to_payload("tok")
        assert rendered[key] == payload
        assert set(rendered) == {"$token", "$distinct_id", key}

    def test_add_rejects_non_numbers(self) -> None:
        """$add values must be numbers, and booleans do not count."""
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.add("u1", {"n": "3"})  # type: ignore[dict-item]
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.add("u1", {"n": True})

    def test_union_rejects_strings(self) -> None:
        """$union values must be lists, not strings."""
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.union("u1", {"tags": "x"})

    def test_unset_rejects_string_and_empty(self) -> None:
        """$unset needs a non-empty list of names."""
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.unset("u1", "plan")
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.unset("u1", [])

    def test_set_rejects_empty_mapping(self) -> None:
        """Mapping operations need at least one property."""
        with pytest.raises(InvalidParameterError):
            ProfileUpdate.set("u1", {})

    def test_blank_distinct_id(self) -> None:
        """The distinct id must not be blank."""
        with pytest.raises(InvalidParameterError) as exc_info:
            ProfileUpdate.set(" ", {"a": 1})
        assert exc_info.value.param == "distinct_id"

    def test_payload_is_copied(self) -> None:
        """Mutating the source mapping does not change the update."""
        source = {"plan": "pro"}
        update = ProfileUpdate.set("u1", source)
        source["plan"] = "free"
        assert update.payload == {"plan": "pro"}

    def test_is_frozen(self) -> None:
        """Updates are immutable."""
        update = ProfileUpdate.delete("u1")
        with pytest.raises(FrozenInstanceError):
            update.distinct_id = "u2"  # type: ignore[misc]

    @given(
        st.dictionaries(
            st.text(min_size=1),
            st.one_of(st.integers(), st.text(), st.booleans(), st.none()),
            min_size=1,
        )
    )
    def test_set_envelope_is_json(self, properties: dict[str, Any]) -> None:
        """Rendered envelopes are JSON-serializable and keep every property."""
        rendered = ProfileUpdate.set("u1", properties).to_payload("tok")
        assert json.loads(json.dumps(rendered))["$set"] == properties


class TestGroupUpdate:
    """Tests for GroupUpdate envelopes."""

    def test_set_envelope(self) -> None:
        """$set renders the /groups envelope."""
        update = GroupUpdate.set("company", "acme", {"tier": "gold"})
        assert update.to_payload("tok") == {
            "$token": "tok",
            "$group_key": "company",
            "$group_id": "acme",
            "$set": {"tier": "gold"},
        }

    def test_unset_and_delete(self) -> None:
        """$unset carries names; $delete carries an empty string."""
        assert GroupUpdate.unset("company", "acme", ["x"]).payload == ["x"]
        assert GroupUpdate.delete("company", "acme").to_payload("tok")["$delete"] == ""

    @pytest.mark.parametrize("operation", [ProfileOperation.ADD, ProfileOperation.APPEND])
    def test_profile_only_operations_rejected(self, operation: ProfileOperation) -> None:
        """$add and $append are not group operations."""
        assert operation not in GROUP_OPERATIONS
        with pytest.raises(InvalidParameterError) as exc_info:
            GroupUpdate("company", "acme", operation, {"n": 1})
        assert exc_info.value.param == "operation"

    def test_blank_group_id(self) -> None:
        """Group identifiers must not be blank."""
        with pytest.raises(InvalidParameterError) as exc_info:
            GroupUpdate.set("company", "", {"a": 1})
        assert exc_info.value.param == "group_id"


class TestIdentityEvent:
    """Tests for identity pseudo-events."""

    def test_identify(self) -> None:
        """$identify links the anonymous id to the identified id."""
        payload = IdentityEvent.identify("u1", "anon-9").to_payload("tok")
        assert payload == {
            "event": "$identify",
            "properties": {
                "$identified_id": "u1",
                "$anon_id": "anon-9",
                "token": "tok",
            },
        }

    def test_create_alias(self) -> None:
        """$create_alias carries distinct_id and alias."""
        payload = IdentityEvent.create_alias("u1", "alias-1").to_payload("tok")
        assert payload["event"] == "$create_alias"
        assert payload["properties"] == {
            "distinct_id": "u1",
            "alias": "alias-1",
            "token": "tok",
        }

    def test_merge(self) -> None:
        """$merge carries both ids in order."""
        payload = IdentityEvent.merge("a", "b").to_payload("tok")
        assert payload["event"] == "$merge"
        assert payload["properties"]["$distinct_ids"] == ["a", "b"]


class TestResults:
    """Tests for result serialization."""

    def test_ingestion_result(self) -> None:
        """success mirrors status 1."""
        assert IngestionResult(status=1).to_dict() == {"success": True, "status": 1}
        assert not IngestionResult(status=0, error="bad").success

    def test_profile_query_result(self) -> None:
        """A profile page serializes and builds a DataFrame."""
        result = ProfileQueryResult(
            results=[
                UserProfile("u1", {"plan": "pro"}),
                UserProfile("u2", {"plan": "free", "age": 30}),
            ],
            page=0,
            session_id="s-1",
            total=2,
        )

        assert result.to_dict()["results"][0] == {
            "distinct_id": "u1",
            "properties": {"plan": "pro"},
        }
        df = result.df
        assert list(df["distinct_id"]) == ["u1", "u2"]
        assert "age" in df.columns
        assert result.df is df

    def test_empty_profile_query_dataframe(self) -> None:
        """An empty page still has a distinct_id column."""
        result = ProfileQueryResult(results=[], page=0, session_id=None, total=0)
        assert list(result.df.columns) == ["distinct_id"]

    def test_small_results(self) -> None:
        """Simple results serialize field by field."""
        assert TopEvent("A", 5, 0.5).to_dict() == {
            "event": "A",
            "amount": 5,
            "percent_change": 0.5,
        }
        assert SchemaEntity("event", "A").to_dict() == {
            "entity_type": "event",
            "name": "A",
            "schema_json": {},
        }
        assert ConnectionStatus(True, "ok").to_dict() == {
            "connected": True,
            "message": "ok",
        }
