"""Transform functions for Mixpanel request and response bodies.

Shared conversions between Python values and the wire formats that are not
plain JSON: CSV for lookup-table uploads, newline-delimited JSON for raw
event exports, and the loosely typed status bodies of the ingestion API.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from mixpanel_relay.exceptions import InvalidParameterError
from mixpanel_relay.types import EventExportResult, ExportedEvent, IngestionResult

_logger = logging.getLogger(__name__)

# Characters that force a CSV cell to be quoted
_CSV_SPECIAL = (",", '"', "\r", "\n")


def _csv_cell(value: Any) -> str:
    """Render one CSV cell, quoting when needed."""
    if value is None:
        return ""
    if isinstance(value, bool):
        text = "true" if value else "false"
    else:
        text = str(value)
    if any(ch in text for ch in _CSV_SPECIAL):
        return '"' + text.replace('"', '""') + '"'
    return text


def rows_to_csv(rows: Sequence[Mapping[str, Any]]) -> str:
    """Serialize row objects to CSV text for a lookup-table upload.

    The header is the key order of the first row; later rows contribute
    values for those columns only (missing keys become empty cells). Cells
    containing a comma, double quote, CR or LF are wrapped in double quotes
    with inner quotes doubled. Lines are joined with a bare newline.

    Args:
        rows: Non-empty sequence of row mappings.

    Returns:
        CSV text without a trailing newline.

    Raises:
        InvalidParameterError: If rows is empty or the first row has no keys.

    Example:
        ```python
        rows_to_csv([{"id": 1, "name": "Acme, Inc."}, {"id": 2, "name": None}])
        # 'id,name\\n1,"Acme, Inc."\\n2,'
        ```
    """
    if not rows:
        raise InvalidParameterError("rows", "Lookup table data cannot be empty")
    header = [str(key) for key in rows[0]]
    if not header:
        raise InvalidParameterError("rows", "Lookup table rows must have columns")

    lines = [",".join(_csv_cell(name) for name in header)]
    for row in rows:
        lines.append(",".join(_csv_cell(row.get(name)) for name in header))
    return "\n".join(lines)


def to_exported_event(raw: Mapping[str, Any]) -> ExportedEvent:
    """Convert one raw export record into an ExportedEvent.

    time and distinct_id are lifted from the properties; the properties
    themselves are kept whole.
    """
    properties = raw.get("properties")
    if not isinstance(properties, dict):
        properties = {}
    time = properties.get("time")
    distinct_id = properties.get("distinct_id")
    return ExportedEvent(
        event=str(raw.get("event", "")),
        properties=properties,
        time=int(time) if isinstance(time, int | float) else None,
        distinct_id=str(distinct_id) if distinct_id is not None else None,
    )


def parse_export_lines(lines: Iterable[str]) -> EventExportResult:
    """Parse newline-delimited JSON export output.

    Blank lines are ignored. Lines that are not valid JSON objects are
    logged at WARNING and skipped; the count is reported on the result.

    Args:
        lines: Response lines, in order.

    Returns:
        EventExportResult with events in input order.
    """
    events: list[ExportedEvent] = []
    skipped = 0
    for line in lines:
        if not line.strip():
            continue
        try:
            raw = json.loads(line)
        except json.JSONDecodeError:
            _logger.warning("Skipping malformed line: %s", line[:100])
            skipped += 1
            continue
        if not isinstance(raw, dict):
            _logger.warning("Skipping non-object line: %s", line[:100])
            skipped += 1
            continue
        events.append(to_exported_event(raw))
    return EventExportResult(events=events, skipped_lines=skipped)


def _status_value(value: Any) -> int | None:
    """Map a body-level status field to 1/0, or None if unrecognized."""
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return 1 if value == 1 else 0
    if isinstance(value, str):
        text = value.strip().lower()
        if text in ("1", "ok"):
            return 1
        if text in ("0", "error", "fail", "failed"):
            return 0
    return None


def parse_ingestion_status(body: Any) -> IngestionResult:
    """Derive an IngestionResult from a 2xx ingestion response body.

    The ingestion API answers with a bare "1"/"0", a JSON number, or an
    object such as {"status": 1, "error": null} or, for /import,
    {"code": 200, "status": "OK", "num_records_imported": 3}. A body that
    carries no recognizable status counts as accepted.

    Args:
        body: Parsed JSON or raw text from a successful response.

    Returns:
        IngestionResult with status 1 or 0.
    """
    if isinstance(body, Mapping):
        status = _status_value(body.get("status"))
        error = body.get("error")
        imported = body.get("num_records_imported")
        return IngestionResult(
            status=1 if status is None else status,
            error=str(error) if error else None,
            num_records_imported=imported if isinstance(imported, int) else None,
        )
    status = _status_value(body)
    if status is None:
        return IngestionResult(status=1)
    return IngestionResult(status=status)
