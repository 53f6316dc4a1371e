"""Plain-text rendering of ResultSets for the demo flow.

Truncation to "first N" happens only here; the core always returns every
record.
"""

from __future__ import annotations

from typing import List

from webextract.core.models import Record, ResultSet


def _format_record(position: int, record: Record, field_names: List[str]) -> str:
    present = [f for f in field_names if f in record]
    if not present:
        return f"{position}. (no values)"
    head, rest = present[0], present[1:]
    lines = [f"{position}. {record[head]}"]
    for name in rest:
        lines.append(f"   {name}: {record[name]}")
    return "\n".join(lines)


def format_result(result: ResultSet, limit: int = 5) -> str:
    if not result.ok:
        err = result.job_error
        return f"Error scraping {result.job}: {err.message}"

    shown = result.head(limit)
    lines = [f"{result.job}: found {len(result.records)} records"]
    if len(shown) < len(result.records):
        lines[0] += f" (showing first {len(shown)})"
    for i, record in enumerate(shown, start=1):
        lines.append(_format_record(i, record, result.field_names))
    if result.warnings:
        lines.append(f"   ({len(result.warnings)} field warnings)")
    return "\n".join(lines)
