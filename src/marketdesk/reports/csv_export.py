"""Outbound CSV for report rows."""

from __future__ import annotations

from collections.abc import Mapping, Sequence
import csv
import dataclasses
import io
from typing import Any


def _as_mapping(row: Mapping[str, Any] | Any) -> Mapping[str, Any]:
    if isinstance(row, Mapping):
        return row
    if dataclasses.is_dataclass(row) and not isinstance(row, type):
        return {f.name: getattr(row, f.name) for f in dataclasses.fields(row)}
    raise TypeError(f"Cannot export {type(row).__name__} rows to CSV")


def to_csv(rows: Sequence[Mapping[str, Any] | Any]) -> str:
    """Render rows as CSV with a header taken from the first row.

    Fields containing a comma, quote or newline are quoted with inner quotes
    doubled; ``None`` is written as an empty field.
    """
    if not rows:
        return ""
    records = [_as_mapping(row) for row in rows]
    headers = list(records[0].keys())

    buffer = io.StringIO()
    writer = csv.writer(buffer, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
    writer.writerow(headers)
    for record in records:
        writer.writerow(
            "" if record.get(h) is None else record.get(h) for h in headers
        )
    return buffer.getvalue().rstrip("\n")
