from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable, Dict, Iterable, List, Sequence, Union

from .exceptions import EmptyExportSelectionError, UnknownExportFormatError
from .models import CanonicalRecord, ColumnSpec, ExportFormat, ensure_record
from .normalization import decorate_records
from .report import generate_report
from .tabular import generate_tabular
from .vcard import generate_cards

logger = logging.getLogger(__name__)

ENCODING = "utf-8"

Generator = Callable[[Sequence[CanonicalRecord], Sequence[ColumnSpec]], str]


@dataclass(frozen=True)
class Codec:
    format: ExportFormat
    generate: Generator


def _generate_cards(records: Sequence[CanonicalRecord], columns: Sequence[ColumnSpec]) -> str:
    # card output has a fixed field set; column order and visibility do not apply
    return generate_cards(records)


CODECS: Dict[ExportFormat, Codec] = {
    ExportFormat.TABULAR: Codec(ExportFormat.TABULAR, generate_tabular),
    ExportFormat.CARD: Codec(ExportFormat.CARD, _generate_cards),
    ExportFormat.REPORT: Codec(ExportFormat.REPORT, generate_report),
}


@dataclass(frozen=True)
class ExportFile:
    format: ExportFormat
    filename: str
    mime_type: str
    content: bytes

    @property
    def text(self) -> str:
        return self.content.decode(ENCODING)


@dataclass
class ExportResult:
    files: Dict[ExportFormat, ExportFile] = field(default_factory=dict)
    errors: List[str] = field(default_factory=list)

    @property
    def ok(self) -> bool:
        return bool(self.files) and not self.errors


def render_format(
    records: Sequence[CanonicalRecord],
    columns: Sequence[ColumnSpec],
    export_format: ExportFormat,
) -> ExportFile:
    codec = CODECS[export_format]
    visible = [column for column in columns if column.visible]
    content = codec.generate(records, visible).encode(ENCODING)
    return ExportFile(
        format=export_format,
        filename=export_format.filename,
        mime_type=export_format.mime_type,
        content=content,
    )


def build_export(
    records: Sequence[CanonicalRecord],
    columns: Sequence[ColumnSpec],
    formats: Iterable[Union[str, ExportFormat]],
    name_prefix: str = "",
    name_suffix: str = "",
) -> ExportResult:
    """
    Produce the requested export files from the current records and columns.

    Names are decorated on copies of the records. An empty format list or a
    schema with no visible column raises ``EmptyExportSelectionError`` before
    anything is generated. Unknown format names are reported in
    ``ExportResult.errors`` while the remaining formats are still produced.
    """
    requested: List[Any] = list(formats or [])
    if not requested:
        raise EmptyExportSelectionError("Please select at least one download format.")
    if not any(column.visible for column in columns):
        raise EmptyExportSelectionError("Please select at least one field to export.")

    decorated = decorate_records(
        [ensure_record(record) for record in records], name_prefix or "", name_suffix or ""
    )
    result = ExportResult()
    for name in requested:
        try:
            export_format = ExportFormat.parse(name)
        except UnknownExportFormatError as exc:
            logger.warning("%s", exc)
            result.errors.append(str(exc))
            continue
        if export_format in result.files:
            continue
        result.files[export_format] = render_format(decorated, columns, export_format)
        logger.debug(
            "Generated %s (%d bytes)",
            export_format.filename,
            len(result.files[export_format].content),
        )
    return result


def write_export(result: ExportResult, out_dir: Union[str, Path]) -> List[Path]:
    target = Path(out_dir)
    target.mkdir(parents=True, exist_ok=True)
    written: List[Path] = []
    for export_file in result.files.values():
        path = target / export_file.filename
        path.write_bytes(export_file.content)
        logger.info("Saved: %s", path)
        written.append(path)
    return written
