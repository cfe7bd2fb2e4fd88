from __future__ import annotations

from .columns import ColumnSchema
from .config_loader import PipelineConfig, load_pipeline_config
from .exceptions import (
    ContactsFormatterError,
    EmptyExportSelectionError,
    UnknownColumnError,
    UnknownExportFormatError,
    ValidationError,
)
from .export import CODECS, ExportFile, ExportResult, build_export, render_format, write_export
from .extraction import ExtractionClient, ExtractionFailure, ExtractionSuccess
from .ingest import SourceKind, detect_source_kind
from .models import (
    DEFAULT_COLUMNS,
    FIELD_IDS,
    CanonicalRecord,
    ColumnSpec,
    ExportFormat,
    ensure_record,
)
from .normalization import decorate_name, normalize_phone, normalize_record_phones
from .report import generate_report
from .session import ContactSession
from .tabular import generate_tabular, parse_tabular
from .vcard import generate_cards, parse_cards

__all__ = [
    "CODECS",
    "CanonicalRecord",
    "ColumnSchema",
    "ColumnSpec",
    "ContactSession",
    "ContactsFormatterError",
    "DEFAULT_COLUMNS",
    "EmptyExportSelectionError",
    "ExportFile",
    "ExportFormat",
    "ExportResult",
    "ExtractionClient",
    "ExtractionFailure",
    "ExtractionSuccess",
    "FIELD_IDS",
    "PipelineConfig",
    "SourceKind",
    "UnknownColumnError",
    "UnknownExportFormatError",
    "ValidationError",
    "build_export",
    "decorate_name",
    "detect_source_kind",
    "ensure_record",
    "generate_cards",
    "generate_report",
    "generate_tabular",
    "load_pipeline_config",
    "normalize_phone",
    "normalize_record_phones",
    "parse_cards",
    "parse_tabular",
    "render_format",
    "write_export",
]
