from __future__ import annotations

import logging
from typing import Any, Dict, Iterator, List, Optional, Sequence

from .exceptions import UnknownColumnError, ValidationError
from .models import DEFAULT_COLUMNS, CanonicalRecord, ColumnSpec

logger = logging.getLogger(__name__)


class ColumnSchema:
    """Ordered, operator-editable projection of the canonical fields.

    The order is the export order for the tabular and report formats. Hidden
    columns keep their position so they reappear where they were left.
    """

    def __init__(self, columns: Optional[Sequence[ColumnSpec]] = None):
        self._columns: List[ColumnSpec] = []
        if columns:
            ids = [column.id for column in columns]
            duplicates = sorted({column_id for column_id in ids if ids.count(column_id) > 1})
            if duplicates:
                raise ValidationError(f"Duplicate column ids: {', '.join(duplicates)}")
            self._columns = [
                ColumnSpec(id=column.id, label=column.label, visible=column.visible)
                for column in columns
            ]

    @classmethod
    def derive_initial(cls, records: Sequence[CanonicalRecord]) -> "ColumnSchema":
        if not records:
            return cls()
        present = set(records[0].present_fields)
        columns = [
            ColumnSpec(id=field_id, label=label, visible=True)
            for field_id, label in DEFAULT_COLUMNS
            if field_id in present
        ]
        logger.debug("Derived %d column(s) from the first record", len(columns))
        return cls(columns)

    @classmethod
    def from_list(cls, payload: Sequence[Dict[str, Any]]) -> "ColumnSchema":
        return cls([ColumnSpec.from_mapping(entry) for entry in payload])

    def to_list(self) -> List[Dict[str, Any]]:
        return [column.to_dict() for column in self._columns]

    def __iter__(self) -> Iterator[ColumnSpec]:
        return iter(self._columns)

    def __len__(self) -> int:
        return len(self._columns)

    def ids(self) -> List[str]:
        return [column.id for column in self._columns]

    def visible(self) -> List[ColumnSpec]:
        return [column for column in self._columns if column.visible]

    def copy(self) -> "ColumnSchema":
        return ColumnSchema(self._columns)

    def _index_of(self, column_id: str) -> int:
        for index, column in enumerate(self._columns):
            if column.id == column_id:
                return index
        raise UnknownColumnError(column_id)

    def get(self, column_id: str) -> ColumnSpec:
        return self._columns[self._index_of(column_id)]

    def set_visible(self, column_id: str, visible: bool) -> None:
        self.get(column_id).visible = bool(visible)

    def set_label(self, column_id: str, label: str) -> None:
        self.get(column_id).label = str(label)

    def move(self, column_id: str, new_index: int) -> None:
        old_index = self._index_of(column_id)
        column = self._columns.pop(old_index)
        target = max(0, min(int(new_index), len(self._columns)))
        self._columns.insert(target, column)
