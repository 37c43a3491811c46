"""Rendering of command results as JSON or CSV."""

import csv
import io
import json
import logging
import os
from datetime import datetime
from typing import Any, Dict, List, Optional

from .constants import FIELD_WHITELIST
from .errors import StorageError

FORMATS = ('json', 'csv')


def normalize_format(value: Optional[str]) -> str:
    """Return 'csv' for any casing of csv, otherwise 'json'."""
    return 'csv' if value and value.lower() == 'csv' else 'json'


def to_plain(payload: Any) -> Any:
    """Convert result objects (anything with `to_dict`) into plain JSON data."""
    if hasattr(payload, 'to_dict'):
        return payload.to_dict()
    if isinstance(payload, list):
        return [to_plain(item) for item in payload]
    return payload


def _project_record(record: Any, fields: tuple) -> Any:
    if not isinstance(record, dict):
        return record
    return {field: record[field] for field in fields if field in record}


def filter_fields(value: Any, collection_key: str) -> Any:
    """Keep only whitelisted fields of a record or list of records.

    Fields missing from a record are not added. Unknown collections are
    returned unchanged.
    """
    fields = FIELD_WHITELIST.get(collection_key)
    if fields is None:
        return value
    if isinstance(value, list):
        return [_project_record(record, fields) for record in value]
    return _project_record(value, fields)


def apply_analytics_filter(payload: Any, collection_key: Optional[str]) -> Any:
    """Replace the collection sub-tree of a payload with its projection."""
    if not collection_key or collection_key not in FIELD_WHITELIST:
        return payload

    if isinstance(payload, dict) and collection_key in payload:
        filtered = dict(payload)
        filtered[collection_key] = filter_fields(payload[collection_key], collection_key)
        return filtered

    if isinstance(payload, (list, dict)):
        return filter_fields(payload, collection_key)

    return payload


def extract_records(payload: Any, collection_key: Optional[str] = None) -> List[Dict[str, Any]]:
    """Pick the rows to tabulate from a payload."""
    value = payload
    if collection_key:
        if not isinstance(payload, dict):
            return []
        value = payload.get(collection_key)

    if isinstance(value, list):
        return [row for row in value if isinstance(row, dict)]
    if isinstance(value, dict):
        return [value]
    return []


def _csv_cell(value: Any) -> str:
    if value is None:
        return ''
    if isinstance(value, bool):
        return 'true' if value else 'false'
    if isinstance(value, (dict, list)):
        return json.dumps(value, ensure_ascii=False, separators=(',', ':'))
    return str(value)


def _csv_line(cells: List[str]) -> str:
    # A lone empty cell is an empty line, not a quoted ""
    if cells == ['']:
        return ''
    buffer = io.StringIO()
    csv.writer(buffer, lineterminator='\n', quoting=csv.QUOTE_MINIMAL).writerow(cells)
    return buffer.getvalue()[:-1]


def array_to_csv(rows: List[Dict[str, Any]]) -> str:
    """Serialize rows to CSV.

    The header is the union of all row keys in first-seen order. Nested
    values are JSON-encoded and cells containing a comma, quote or newline
    are quoted. No rows gives an empty string.
    """
    if not rows:
        return ''

    headers = []
    seen = set()
    for row in rows:
        for key in row:
            if key not in seen:
                seen.add(key)
                headers.append(key)

    lines = [_csv_line(headers)]
    for row in rows:
        lines.append(_csv_line([_csv_cell(row.get(header)) for header in headers]))

    return '\n'.join(lines)


def render_payload(payload: Any, fmt: str, collection_key: str = None,
                   skip_analytics_filter: bool = False) -> str:
    """Render a payload as JSON or CSV text.

    Args:
        payload: Result object, dict or list
        fmt: 'json' or 'csv'
        collection_key: Key of the record collection inside the payload;
            also selects the field whitelist
        skip_analytics_filter: Keep every field instead of the whitelist

    Returns:
        Rendered text
    """
    data = to_plain(payload)
    if not skip_analytics_filter:
        data = apply_analytics_filter(data, collection_key)

    if normalize_format(fmt) == 'csv':
        return array_to_csv(extract_records(data, collection_key))

    return json.dumps(data, indent=2, ensure_ascii=False)


def print_payload(payload: Any, fmt: str, collection_key: str = None, skip_analytics_filter: bool = False):
    print(render_payload(payload, fmt, collection_key, skip_analytics_filter))


def write_payload(payload: Any, fmt: str, target_path: str, collection_key: str = None,
                  skip_analytics_filter: bool = False) -> str:
    """Write the rendered payload to a file, creating parent directories.

    Returns:
        Absolute path of the written file

    Raises:
        StorageError: If the directory or file cannot be written
    """
    target_path = os.path.abspath(target_path)
    rendered = render_payload(payload, fmt, collection_key, skip_analytics_filter)

    try:
        parent = os.path.dirname(target_path)
        if parent:
            os.makedirs(parent, exist_ok=True)
        with open(target_path, 'w', encoding='utf-8') as f:
            f.write(rendered)
    except OSError as e:
        raise StorageError(target_path, f"Could not write output to {target_path}: {e}") from e

    logging.info(f"Saved output to {target_path}")
    return target_path


def build_default_output_path(command_key: str, fmt: str, base_dir: str = None,
                              now: datetime = None) -> str:
    """Default export path: `<base>/storage/exports/<command>-<timestamp>.<ext>`."""
    timestamp = (now or datetime.now()).strftime('%Y-%m-%dT%H-%M-%S-%f')
    ext = 'csv' if normalize_format(fmt) == 'csv' else 'json'
    export_dir = os.path.join(base_dir or os.getcwd(), 'storage', 'exports')
    return os.path.join(export_dir, f"{command_key}-{timestamp}.{ext}")
