"""Project management tools: annotations, lookup tables and Lexicon schemas.

Example:
    Ask Claude: "Add an annotation for the pricing change on March 1st"
    Claude uses: mixpanel_create_annotation(date="2024-03-01",
                 description="Pricing change")
"""

from typing import Annotated, Any

from fastmcp import Context
from pydantic import Field

from mixpanel_relay import SchemaEntityType
from mp_relay.context import tenant_client
from mp_relay.errors import handle_errors
from mp_relay.server import mcp
from mp_relay.tools.params import DATE_PATTERN, DateStr

AnnotationId = Annotated[int, Field(ge=1, description="Annotation ID")]
EntityName = Annotated[
    str, Field(min_length=1, description="Event, property or table name")
]
OptionalDate = Annotated[str | None, Field(pattern=DATE_PATTERN)]


# =============================================================================
# Annotations
# =============================================================================


@mcp.tool
@handle_errors
def mixpanel_list_annotations(
    ctx: Context,
    from_date: OptionalDate = None,
    to_date: OptionalDate = None,
) -> list[dict[str, Any]]:
    """List timeline annotations, optionally within a date range.

    Args:
        ctx: FastMCP context.
        from_date: Optional start date (YYYY-MM-DD format).
        to_date: Optional end date (YYYY-MM-DD format).

    Returns:
        List of annotation dictionaries.
    """
    with tenant_client(ctx) as client:
        return client.list_annotations(from_date=from_date, to_date=to_date)


@mcp.tool
@handle_errors
def mixpanel_create_annotation(
    ctx: Context,
    date: DateStr,
    description: Annotated[str, Field(min_length=1)],
) -> Any:
    """Create a timeline annotation on a date."""
    with tenant_client(ctx) as client:
        return client.create_annotation(date, description)


@mcp.tool
@handle_errors
def mixpanel_get_annotation(ctx: Context, annotation_id: AnnotationId) -> Any:
    """Get one annotation by ID."""
    with tenant_client(ctx) as client:
        return client.get_annotation(annotation_id)


@mcp.tool
@handle_errors
def mixpanel_update_annotation(
    ctx: Context,
    annotation_id: AnnotationId,
    date: OptionalDate = None,
    description: str | None = None,
) -> Any:
    """Change the date and/or description of an annotation.

    Args:
        ctx: FastMCP context.
        annotation_id: Annotation ID.
        date: New date (YYYY-MM-DD format).
        description: New description.

    Returns:
        The updated annotation.
    """
    with tenant_client(ctx) as client:
        return client.update_annotation(
            annotation_id, date=date, description=description
        )


@mcp.tool
@handle_errors
def mixpanel_delete_annotation(
    ctx: Context, annotation_id: AnnotationId
) -> dict[str, Any]:
    """Delete an annotation."""
    with tenant_client(ctx) as client:
        return client.delete_annotation(annotation_id)


# =============================================================================
# Lookup tables
# =============================================================================


@mcp.tool
@handle_errors
def mixpanel_list_lookup_tables(ctx: Context) -> list[dict[str, Any]]:
    """List the project's lookup tables."""
    with tenant_client(ctx) as client:
        return client.list_lookup_tables()


@mcp.tool
@handle_errors
def mixpanel_create_lookup_table(
    ctx: Context,
    table_name: Annotated[str, Field(min_length=1, description="Lookup table name")],
    rows: Annotated[
        list[dict[str, Any]],
        Field(description="Rows; the first row's keys become the CSV columns"),
    ],
) -> dict[str, Any]:
    """Create or replace a lookup table from a list of rows.

    Args:
        ctx: FastMCP context.
        table_name: Lookup table name.
        rows: Row objects; must not be empty.

    Returns:
        Dictionary with status, table_name and rows.

    Example:
        Ask: "Upload SKU names as a lookup table"
        Uses: mixpanel_create_lookup_table(table_name="skus",
              rows=[{"sku": "A1", "name": "Widget"}])
    """
    with tenant_client(ctx) as client:
        return client.create_lookup_table(table_name, rows)


# =============================================================================
# Lexicon schemas
# =============================================================================


@mcp.tool
@handle_errors
def mixpanel_list_schemas(
    ctx: Context, entity_type: SchemaEntityType | None = None
) -> list[dict[str, Any]]:
    """List Lexicon schemas, optionally of a single entity type."""
    with tenant_client(ctx) as client:
        return [s.to_dict() for s in client.list_schemas(entity_type)]


@mcp.tool
@handle_errors
def mixpanel_get_schema(
    ctx: Context, entity_type: SchemaEntityType, name: EntityName
) -> dict[str, Any]:
    """Get the Lexicon schema of one event, profile, group or lookup table."""
    with tenant_client(ctx) as client:
        return client.get_schema(entity_type, name).to_dict()


@mcp.tool
@handle_errors
def mixpanel_create_schema(
    ctx: Context,
    entity_type: SchemaEntityType,
    name: EntityName,
    schema_json: Annotated[
        dict[str, Any], Field(description="JSON Schema describing the entity")
    ],
) -> dict[str, Any]:
    """Create or replace the Lexicon schema of an entity.

    Args:
        ctx: FastMCP context.
        entity_type: event, profile, group or lookup_table.
        name: Entity name.
        schema_json: JSON Schema document (description, properties, ...).

    Returns:
        Dictionary with success, entity_type and name.
    """
    with tenant_client(ctx) as client:
        return client.create_or_update_schema(entity_type, name, schema_json)


@mcp.tool
@handle_errors
def mixpanel_delete_schema(
    ctx: Context, entity_type: SchemaEntityType, name: EntityName
) -> dict[str, Any]:
    """Delete the Lexicon schema of an entity."""
    with tenant_client(ctx) as client:
        return client.delete_schema(entity_type, name)
