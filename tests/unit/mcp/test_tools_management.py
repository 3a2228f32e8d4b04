"""Tests for management tools (annotations, lookup tables, schemas) and GDPR."""

import json
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest
from fastmcp.exceptions import ToolError

from mp_relay.tools.gdpr import (
    mixpanel_cancel_data_deletion,
    mixpanel_create_data_deletion,
    mixpanel_create_data_retrieval,
    mixpanel_get_data_retrieval_status,
)
from mp_relay.tools.management import (
    mixpanel_create_annotation,
    mixpanel_create_lookup_table,
    mixpanel_create_schema,
    mixpanel_delete_annotation,
    mixpanel_delete_schema,
    mixpanel_get_schema,
    mixpanel_list_annotations,
    mixpanel_list_lookup_tables,
    mixpanel_list_schemas,
    mixpanel_update_annotation,
)


@pytest.fixture(autouse=True)
def tenant(with_tenant_headers: dict[str, str]) -> dict[str, str]:
    """Every test runs as the default tenant."""
    return with_tenant_headers


class TestAnnotationTools:
    """Tests for annotation tools."""

    def test_list_annotations(self, mock_context: MagicMock, recorder: Any) -> None:
        """Annotations are unwrapped from the results envelope."""
        recorder.response = httpx.Response(
            200, json={"results": [{"id": 1, "description": "Launch"}]}
        )

        result = mixpanel_list_annotations(  # type: ignore[operator]
            mock_context, from_date="2024-01-01", to_date="2024-01-31"
        )

        assert result == [{"id": 1, "description": "Launch"}]
        assert recorder.last.url.host == "mixpanel.com"
        assert recorder.last.url.path == "/api/app/projects/123/annotations"
        assert recorder.last.url.params["from_date"] == "2024-01-01"

    def test_create_annotation(self, mock_context: MagicMock, recorder: Any) -> None:
        """Create POSTs a JSON body."""
        mixpanel_create_annotation(  # type: ignore[operator]
            mock_context, date="2024-01-15", description="Launch"
        )

        assert recorder.last.method == "POST"
        assert json.loads(recorder.last.content) == {
            "date": "2024-01-15",
            "description": "Launch",
        }

    def test_update_requires_a_field(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """An update with nothing to change is rejected locally."""
        with pytest.raises(ToolError, match="INVALID_PARAMETER"):
            mixpanel_update_annotation(mock_context, annotation_id=5)  # type: ignore[operator]

        assert recorder.requests == []

    def test_update_annotation(self, mock_context: MagicMock, recorder: Any) -> None:
        """Update PATCHes only the given fields."""
        mixpanel_update_annotation(  # type: ignore[operator]
            mock_context, annotation_id=5, description="Renamed"
        )

        assert recorder.last.method == "PATCH"
        assert recorder.last.url.path == "/api/app/projects/123/annotations/5"
        assert json.loads(recorder.last.content) == {"description": "Renamed"}

    def test_delete_annotation(self, mock_context: MagicMock, recorder: Any) -> None:
        """Delete reports the id it removed."""
        result = mixpanel_delete_annotation(mock_context, annotation_id=5)  # type: ignore[operator]

        assert recorder.last.method == "DELETE"
        assert result == {"success": True, "annotation_id": 5}


class TestLookupTableTools:
    """Tests for lookup table tools."""

    def test_list_lookup_tables(self, mock_context: MagicMock, recorder: Any) -> None:
        """Tables are listed from the ingestion host."""
        recorder.response = httpx.Response(200, json={"results": [{"name": "skus"}]})

        result = mixpanel_list_lookup_tables(mock_context)  # type: ignore[operator]

        assert result == [{"name": "skus"}]
        assert recorder.last.url.host == "api.mixpanel.com"

    def test_create_lookup_table_uploads_csv(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Rows are PUT as CSV with the first row's keys as header."""
        result = mixpanel_create_lookup_table(  # type: ignore[operator]
            mock_context,
            table_name="skus",
            rows=[{"sku": "A1", "name": "Widget, large"}, {"sku": "B2"}],
        )

        request = recorder.last
        assert request.method == "PUT"
        assert request.url.path == "/lookup_tables/skus"
        assert request.headers["Content-Type"] == "text/csv"
        assert request.content.decode() == 'sku,name\nA1,"Widget, large"\nB2,'
        assert result == {"status": "ok", "table_name": "skus", "rows": 2}

    def test_empty_rows_rejected(self, mock_context: MagicMock, recorder: Any) -> None:
        """No rows means no upload."""
        with pytest.raises(ToolError, match="cannot be empty"):
            mixpanel_create_lookup_table(  # type: ignore[operator]
                mock_context, table_name="skus", rows=[]
            )

        assert recorder.requests == []


class TestSchemaTools:
    """Tests for Lexicon schema tools."""

    def test_list_schemas(self, mock_context: MagicMock, recorder: Any) -> None:
        """Schemas are returned as dictionaries."""
        recorder.response = httpx.Response(
            200,
            json={
                "results": [
                    {
                        "entityType": "event",
                        "name": "Signup",
                        "schemaJson": {"description": "New user"},
                    }
                ]
            },
        )

        result = mixpanel_list_schemas(mock_context, entity_type="event")  # type: ignore[operator]

        assert result == [
            {
                "entity_type": "event",
                "name": "Signup",
                "schema_json": {"description": "New user"},
            }
        ]
        assert recorder.last.url.path == "/api/app/projects/123/schemas/event"
        assert "project_id" not in recorder.last.url.params

    def test_get_schema_encodes_name(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Entity names are URL-encoded as one path segment."""
        mixpanel_get_schema(  # type: ignore[operator]
            mock_context, entity_type="event", name="Sign Up/Web"
        )

        assert recorder.last.url.raw_path.decode().endswith(
            "/schemas/event/Sign%20Up%2FWeb"
        )

    def test_create_and_delete_schema(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Create POSTs the schema; delete reports success."""
        created = mixpanel_create_schema(  # type: ignore[operator]
            mock_context,
            entity_type="event",
            name="Signup",
            schema_json={"description": "New user"},
        )
        assert json.loads(recorder.last.content) == {
            "schema_json": {"description": "New user"}
        }
        assert created["success"] is True

        deleted = mixpanel_delete_schema(  # type: ignore[operator]
            mock_context, entity_type="event", name="Signup"
        )
        assert recorder.last.method == "DELETE"
        assert deleted == {"success": True, "entity_type": "event", "name": "Signup"}


class TestGdprTools:
    """Tests for GDPR tools."""

    def test_create_data_retrieval(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """The token is a query param; project_id is not sent."""
        recorder.response = httpx.Response(200, json={"results": {"task_id": "r1"}})

        result = mixpanel_create_data_retrieval(  # type: ignore[operator]
            mock_context, distinct_ids=["u1"], data_type="events"
        )

        request = recorder.last
        assert result == {"results": {"task_id": "r1"}}
        assert request.url.path == "/api/app/data-retrievals/v3.0"
        assert dict(request.url.params) == {"token": "tok"}
        assert json.loads(request.content) == {
            "distinct_ids": ["u1"],
            "data_type": "events",
        }

    def test_retrieval_status(self, mock_context: MagicMock, recorder: Any) -> None:
        """Status checks address the request id."""
        mixpanel_get_data_retrieval_status(mock_context, request_id="r1")  # type: ignore[operator]

        assert recorder.last.url.path == "/api/app/data-retrievals/v3.0/r1"

    def test_create_and_cancel_deletion(
        self, mock_context: MagicMock, recorder: Any
    ) -> None:
        """Deletions are created and cancelled on the deletions endpoint."""
        mixpanel_create_data_deletion(mock_context, distinct_ids=["u1", "u2"])  # type: ignore[operator]
        assert json.loads(recorder.last.content) == {"distinct_ids": ["u1", "u2"]}

        result = mixpanel_cancel_data_deletion(mock_context, request_id="d1")  # type: ignore[operator]
        assert recorder.last.method == "DELETE"
        assert result == {"success": True, "request_id": "d1"}

    def test_empty_ids_rejected(self, mock_context: MagicMock, recorder: Any) -> None:
        """At least one distinct id is required."""
        with pytest.raises(ToolError):
            mixpanel_create_data_deletion(mock_context, distinct_ids=[])  # type: ignore[operator]

        assert recorder.requests == []
