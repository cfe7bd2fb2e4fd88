from __future__ import annotations

import csv
import logging
import re
from typing import Dict, List, Optional, Sequence

import pandas as pd

from .models import DEFAULT_LABELS, CanonicalRecord, ColumnSpec, canonical_field

logger = logging.getLogger(__name__)

# a comma splits only when an even number of quotes follows it on the line
FIELD_SPLIT_RE = re.compile(r',(?=(?:[^"]*"[^"]*")*[^"]*$)')
BOM = "\ufeff"

_LABEL_TO_FIELD: Dict[str, str] = {label.lower(): field_id for field_id, label in DEFAULT_LABELS.items()}


def split_row(line: str) -> List[str]:
    return [_clean_field(value) for value in FIELD_SPLIT_RE.split(line)]


def _clean_field(value: str) -> str:
    value = value.strip()
    quoted = len(value) >= 2 and value.startswith('"') and value.endswith('"')
    if value.startswith('"'):
        value = value[1:]
    if value.endswith('"'):
        value = value[:-1]
    if quoted:
        value = value.replace('""', '"')
    return value


def resolve_header(cell: str) -> Optional[str]:
    """Return the canonical field for a header cell, or ``None`` if it has none."""
    field_id = canonical_field(cell)
    if field_id:
        return field_id
    return _LABEL_TO_FIELD.get(cell.strip().lower())


def parse_tabular(text: str) -> List[CanonicalRecord]:
    lines = [line.rstrip("\r") for line in (text or "").lstrip(BOM).split("\n")]
    lines = [line for line in lines if line.strip()]
    if not lines:
        return []
    header = split_row(lines[0])
    header_fields = [resolve_header(cell) for cell in header]
    unknown = [cell for cell, field_id in zip(header, header_fields) if cell and not field_id]
    if unknown:
        logger.debug("Tabular header columns without a canonical field: %s", ", ".join(unknown))

    records: List[CanonicalRecord] = []
    skipped = 0
    for line in lines[1:]:
        values = split_row(line)
        if len(values) != len(header):
            skipped += 1
            continue
        payload: Dict[str, str] = {}
        extra: Dict[str, str] = {}
        for cell, field_id, value in zip(header, header_fields, values):
            if field_id:
                payload[field_id] = value
            elif cell:
                extra[cell] = value
        record = CanonicalRecord.from_mapping(payload)
        record.extra = extra
        records.append(record)
    if skipped:
        logger.debug("Skipped %d tabular row(s) with a mismatched field count", skipped)
    return records


def records_to_frame(
    records: Sequence[CanonicalRecord], columns: Sequence[ColumnSpec]
) -> pd.DataFrame:
    ids = [column.id for column in columns]
    rows = [[record.get(field_id) for field_id in ids] for record in records]
    frame = pd.DataFrame(rows, columns=ids, dtype=object)
    frame.columns = [column.label for column in columns]
    return frame


def generate_tabular(records: Sequence[CanonicalRecord], columns: Sequence[ColumnSpec]) -> str:
    visible = [column for column in columns if column.visible]
    frame = records_to_frame(records, visible)
    content = frame.to_csv(index=False, quoting=csv.QUOTE_ALL, lineterminator="\n")
    # drop the terminator pandas writes after the last line
    return content[:-1] if content.endswith("\n") else content
