from __future__ import annotations

from typing import Sequence

from .models import CanonicalRecord, ColumnSpec

PLACEHOLDER = "N/A"
SEPARATOR = "\n\n" + "=" * 40 + "\n\n"


def _record_block(record: CanonicalRecord, columns: Sequence[ColumnSpec]) -> str:
    return "\n".join(f"{column.label}: {record.get(column.id) or PLACEHOLDER}" for column in columns)


def generate_report(records: Sequence[CanonicalRecord], columns: Sequence[ColumnSpec]) -> str:
    visible = [column for column in columns if column.visible]
    return SEPARATOR.join(_record_block(record, visible) for record in records)
