from __future__ import annotations

import asyncio
import logging
import mimetypes
from dataclasses import dataclass, field
from pathlib import Path
from typing import Iterable, List, Optional, Union

from .columns import ColumnSchema
from .config_loader import PipelineConfig, default_config
from .exceptions import EmptyExportSelectionError, SessionBusyError
from .export import ExportResult, build_export
from .extraction import ExtractionClient, ExtractionResult
from .ingest import SourceKind, detect_source_kind, parse_structured
from .models import CanonicalRecord, ExportFormat
from .normalization import normalize_records, quality_warnings

logger = logging.getLogger(__name__)

EXTRACTION_FAILED_MESSAGE = "Failed to process text with AI after multiple attempts. Please try again."


def resolve_preset(value: str, presets: Iterable[str]) -> str:
    cleaned = value.strip()
    for preset in presets:
        if preset.lower() == cleaned.lower():
            return preset
    return cleaned


@dataclass
class Decoration:
    prefix: str = ""
    suffix: str = ""


@dataclass
class IngestionResult:
    kind: SourceKind
    records: List[CanonicalRecord] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    error: str = ""

    @property
    def ok(self) -> bool:
        return not self.error


class ContactSession:
    """Owns one operator's records, column schema, decoration and formats.

    Ingestion replaces the records and re-derives the columns in one step;
    column edits and decoration only affect exports. Nothing here is shared
    between sessions.
    """

    def __init__(
        self,
        config: Optional[PipelineConfig] = None,
        extraction_client: Optional[ExtractionClient] = None,
    ):
        self.config = config or default_config()
        self.records: List[CanonicalRecord] = []
        self.columns = ColumnSchema()
        self.decoration = Decoration()
        self.set_decoration(self.config.decoration.prefix, self.config.decoration.suffix)
        self.formats: List[str] = list(self.config.export.formats)
        self.messages: List[str] = []
        self._client = extraction_client
        self._extracting = False

    @property
    def extraction_client(self) -> ExtractionClient:
        if self._client is None:
            self._client = ExtractionClient(self.config.extraction)
        return self._client

    @property
    def extracting(self) -> bool:
        return self._extracting

    # ingestion

    def _replace_records(
        self, kind: SourceKind, records: List[CanonicalRecord], error: str = ""
    ) -> IngestionResult:
        normalized = normalize_records(records)
        warnings = quality_warnings(normalized)
        columns = ColumnSchema.derive_initial(normalized)
        self.records = normalized
        self.columns = columns
        logger.info("Session now holds %d record(s), %d column(s)", len(normalized), len(columns))
        return IngestionResult(kind=kind, records=normalized, warnings=warnings, error=error)

    async def _extract(
        self, text: str = "", image: Optional[Union[bytes, str]] = None, mime_type: str = "image/png"
    ) -> ExtractionResult:
        if self._extracting:
            raise SessionBusyError("An extraction is already running for this session.")
        self._extracting = True
        try:
            return await self.extraction_client.extract(text=text, image=image, mime_type=mime_type)
        finally:
            self._extracting = False

    async def aingest(
        self,
        content: Union[str, bytes],
        filename: Optional[str] = None,
        content_type: Optional[str] = None,
    ) -> IngestionResult:
        kind = detect_source_kind(filename, content_type)
        if kind is SourceKind.IMAGE:
            # str image content is already base64
            mime_type = content_type or mimetypes.guess_type(filename or "")[0] or "image/png"
            outcome = await self._extract(image=content, mime_type=mime_type)
        else:
            text = content
            if isinstance(text, bytes):
                text = text.decode("utf-8-sig", errors="ignore")
            if kind.structured:
                return self._replace_records(kind, parse_structured(kind, text))
            outcome = await self._extract(text=text)

        if not outcome.ok:
            self.messages.append(EXTRACTION_FAILED_MESSAGE)
            return self._replace_records(kind, [], error=getattr(outcome, "reason", ""))
        return self._replace_records(kind, outcome.records)

    def ingest_text(self, content: str, filename: Optional[str] = None) -> IngestionResult:
        kind = detect_source_kind(filename)
        if kind.structured:
            return self._replace_records(kind, parse_structured(kind, content))
        return asyncio.run(self.aingest(content, filename=filename))

    def ingest_image(self, data: bytes, content_type: str = "image/png") -> IngestionResult:
        return asyncio.run(self.aingest(data, content_type=content_type))

    def ingest_file(self, path: Union[str, Path]) -> IngestionResult:
        file_path = Path(path)
        kind = detect_source_kind(file_path.name)
        if kind is SourceKind.IMAGE:
            content_type = mimetypes.guess_type(file_path.name)[0] or "image/png"
            return self.ingest_image(file_path.read_bytes(), content_type=content_type)
        with open(file_path, "r", encoding="utf-8-sig", errors="ignore") as handle:
            return self.ingest_text(handle.read(), filename=file_path.name)

    # presentation edits

    def set_visible(self, column_id: str, visible: bool) -> None:
        self.columns.set_visible(column_id, visible)

    def set_label(self, column_id: str, label: str) -> None:
        self.columns.set_label(column_id, label)

    def move_column(self, column_id: str, new_index: int) -> None:
        self.columns.move(column_id, new_index)

    def set_decoration(self, prefix: Optional[str] = None, suffix: Optional[str] = None) -> None:
        """Set the export name prefix and/or suffix.

        A value matching a configured preset in any case takes the preset's
        spelling; any other text is used as given, trimmed.
        """
        presets = self.config.decoration
        if prefix is not None:
            self.decoration.prefix = resolve_preset(prefix, presets.prefix_presets)
        if suffix is not None:
            self.decoration.suffix = resolve_preset(suffix, presets.suffix_presets)

    def set_formats(self, formats: Iterable[str]) -> None:
        self.formats = list(formats)

    def toggle_format(self, name: str) -> None:
        if name in self.formats:
            self.formats = [existing for existing in self.formats if existing != name]
        else:
            self.formats = [*self.formats, name]

    # output

    def _build(self, formats: Iterable[Union[str, ExportFormat]]) -> ExportResult:
        return build_export(
            self.records,
            list(self.columns),
            formats,
            name_prefix=self.decoration.prefix,
            name_suffix=self.decoration.suffix,
        )

    def preview(self, export_format: Union[str, ExportFormat]) -> str:
        resolved = ExportFormat.parse(export_format)
        return self._build([resolved]).files[resolved].text

    def export(self, formats: Optional[Iterable[Union[str, ExportFormat]]] = None) -> ExportResult:
        requested = list(self.formats if formats is None else formats)
        try:
            result = self._build(requested)
        except EmptyExportSelectionError as exc:
            self.messages.append(str(exc))
            raise
        self.messages.extend(result.errors)
        if result.files:
            names = ", ".join(export_format.value for export_format in result.files).upper()
            self.messages.append(f"Successfully exported as {names} files!")
        return result
