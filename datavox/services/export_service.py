"""
Export Service.

Serialises a process's structured data for download as JSON or CSV.
"""

from __future__ import annotations

import json
import re
from typing import Any, Mapping

_NEEDS_QUOTING = re.compile(r'[",\n\r]')


def to_json(data: Mapping[str, Any]) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False, default=str)


def _format_csv_value(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, str):
        escaped = value.replace('"', '""')
        return f'"{escaped}"' if _NEEDS_QUOTING.search(value) else escaped
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (list, tuple)):
        return _format_csv_value("; ".join("" if v is None else str(v) for v in value))
    if isinstance(value, dict):
        return _format_csv_value(json.dumps(value, ensure_ascii=False, default=str))
    return str(value)


def to_csv(data: Mapping[str, Any]) -> str:
    """
    Header row of field names followed by the values.

    If the first column holds a list, one row is written per element and
    the other columns are indexed alongside it (list columns) or written
    on the first row only (scalar columns). Otherwise a single row is
    written and list values are joined with "; ".
    """
    headers = list(data.keys())
    if not headers:
        return ""

    rows = [",".join(_format_csv_value(h) for h in headers)]

    first = data[headers[0]]
    if isinstance(first, (list, tuple)):
        for i in range(len(first)):
            row = []
            for header in headers:
                value = data[header]
                if isinstance(value, (list, tuple)):
                    row.append(_format_csv_value(value[i] if i < len(value) else None))
                else:
                    row.append(_format_csv_value(value if i == 0 else None))
            rows.append(",".join(row))
    else:
        rows.append(",".join(_format_csv_value(data[h]) for h in headers))

    return "\n".join(rows)
