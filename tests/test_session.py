import asyncio
from argparse import Namespace

import pytest

from contacts_formatter.config_loader import load_pipeline_config
from contacts_formatter.exceptions import EmptyExportSelectionError, SessionBusyError
from contacts_formatter.extraction import ExtractionFailure, ExtractionSuccess
from contacts_formatter.ingest import SourceKind, detect_source_kind
from contacts_formatter.models import CanonicalRecord, ExportFormat
from contacts_formatter.session import EXTRACTION_FAILED_MESSAGE, ContactSession

CSV_TEXT = (
    "name,mobilePhone1,email\n"
    "Ali,0300-1234567,ali@example.com\n"
    "Bilal,1,not-an-email\n"
)


class StubExtractor:
    def __init__(self, outcome):
        self.outcome = outcome
        self.calls = []

    async def extract(self, text="", image=None, mime_type="image/png"):
        self.calls.append({"text": text, "image": image, "mime_type": mime_type})
        return self.outcome


def _session_with_csv():
    session = ContactSession()
    session.ingest_text(CSV_TEXT, filename="people.csv")
    return session


def test_csv_ingestion_normalizes_and_derives_columns():
    session = ContactSession()
    result = session.ingest_text(CSV_TEXT, filename="people.csv")
    assert result.ok
    assert result.kind is SourceKind.TABULAR
    assert [record.mobile_phone_1 for record in session.records] == ["+923001234567", "1"]
    assert session.columns.ids() == ["name", "mobile_phone_1", "email"]
    assert len(result.warnings) == 2
    assert all(warning.startswith("Bilal:") for warning in result.warnings)


def test_preview_matches_export_bytes():
    session = _session_with_csv()
    session.set_decoration(prefix=" MNA ", suffix="Sindh")
    for fmt in ExportFormat:
        preview = session.preview(fmt.value)
        exported = session.export([fmt]).files[fmt]
        assert preview.encode("utf-8") == exported.content
    assert session.records[0].name == "Ali"
    assert "MNA Ali Sindh" in session.preview("txt")


def test_column_edits_survive_preview_and_reingest_resets_them():
    session = _session_with_csv()
    session.set_visible("email", False)
    session.set_label("name", "Full Name")
    session.move_column("mobile_phone_1", 0)
    assert session.preview("csv").splitlines()[0] == '"Mobile 1","Full Name"'
    assert session.columns.ids() == ["mobile_phone_1", "name", "email"]

    session.ingest_text("BEGIN:VCARD\nFN:Sara\nORG:PPP\nEND:VCARD\n", filename="sara.vcf")
    assert session.columns.ids() == ["name", "party"]
    assert all(column.visible for column in session.columns)


def test_empty_format_selection_adds_message():
    session = _session_with_csv()
    session.set_formats([])
    with pytest.raises(EmptyExportSelectionError):
        session.export()
    assert session.messages[-1] == "Please select at least one download format."


def test_export_reports_success_and_unknown_formats():
    session = _session_with_csv()
    session.set_formats(["csv"])
    session.toggle_format("txt")
    session.toggle_format("pdf")
    result = session.export()
    assert set(result.files) == {ExportFormat.TABULAR, ExportFormat.REPORT}
    assert session.messages == ["Invalid download format: pdf", "Successfully exported as CSV, TXT files!"]
    session.toggle_format("pdf")
    assert session.formats == ["csv", "txt"]


def test_free_text_goes_through_extraction():
    stub = StubExtractor(
        ExtractionSuccess(records=[CanonicalRecord.from_mapping({"name": "Ali", "mobilePhone1": "3001234567"})])
    )
    session = ContactSession(extraction_client=stub)
    result = session.ingest_text("Ali, mobile 3001234567")
    assert result.ok
    assert result.kind is SourceKind.TEXT
    assert stub.calls[0]["text"] == "Ali, mobile 3001234567"
    assert session.records[0].mobile_phone_1 == "+923001234567"
    assert session.columns.ids() == ["name", "mobile_phone_1"]


def test_extraction_failure_clears_records():
    session = _session_with_csv()
    session._client = StubExtractor(ExtractionFailure(reason="service down", attempts=5))
    result = session.ingest_text("whatever")
    assert not result.ok
    assert result.error == "service down"
    assert session.records == []
    assert len(session.columns) == 0
    assert session.messages == [EXTRACTION_FAILED_MESSAGE]


def test_image_file_is_sent_as_bytes(tmp_path):
    image = tmp_path / "card.jpg"
    image.write_bytes(b"\xff\xd8\xff")
    stub = StubExtractor(ExtractionSuccess(records=[CanonicalRecord.from_mapping({"name": "Sara"})]))
    session = ContactSession(extraction_client=stub)
    result = session.ingest_file(image)
    assert result.kind is SourceKind.IMAGE
    assert stub.calls[0]["image"] == b"\xff\xd8\xff"
    assert stub.calls[0]["mime_type"] == "image/jpeg"
    assert [record.name for record in session.records] == ["Sara"]


def test_structured_file_is_parsed_locally(tmp_path):
    path = tmp_path / "people.csv"
    path.write_text(CSV_TEXT, encoding="utf-8")
    stub = StubExtractor(ExtractionFailure(reason="unused"))
    session = ContactSession(extraction_client=stub)
    session.ingest_file(path)
    assert stub.calls == []
    assert len(session.records) == 2


def test_second_extraction_while_busy_is_rejected():
    class BlockingExtractor:
        def __init__(self):
            self.release = None

        async def extract(self, text="", image=None, mime_type="image/png"):
            await self.release.wait()
            return ExtractionSuccess(records=[CanonicalRecord.from_mapping({"name": "Ali"})])

    async def run():
        extractor = BlockingExtractor()
        extractor.release = asyncio.Event()
        session = ContactSession(extraction_client=extractor)
        first = asyncio.ensure_future(session.aingest("Ali"))
        while not session.extracting:
            await asyncio.sleep(0)
        with pytest.raises(SessionBusyError):
            await session.aingest("Sara")
        extractor.release.set()
        result = await first
        assert not session.extracting
        return result

    result = asyncio.run(run())
    assert [record.name for record in result.records] == ["Ali"]


def test_detect_source_kind():
    assert detect_source_kind("a.CSV") is SourceKind.TABULAR
    assert detect_source_kind("a.vcf") is SourceKind.CARD
    assert detect_source_kind("scan.png") is SourceKind.IMAGE
    assert detect_source_kind(None, "image/webp") is SourceKind.IMAGE
    assert detect_source_kind("upload", "text/csv; charset=utf-8") is SourceKind.TABULAR
    assert detect_source_kind("notes.txt") is SourceKind.TEXT
    assert detect_source_kind() is SourceKind.TEXT


@pytest.mark.parametrize(
    "filename, content, expected_ids",
    [
        ("people.csv", "name,email\nAli,ali@example.com\n", ["name", "email"]),
        ("people.vcf", "BEGIN:VCARD\nVERSION:3.0\nFN:Ali\nEND:VCARD\n", ["name"]),
    ],
)
def test_files_saved_with_byte_order_mark(tmp_path, filename, content, expected_ids):
    path = tmp_path / filename
    path.write_text(content, encoding="utf-8-sig")
    session = ContactSession()
    session.ingest_file(path)
    assert [record.name for record in session.records] == ["Ali"]
    assert session.columns.ids() == expected_ids


def test_uploaded_bytes_with_byte_order_mark():
    session = ContactSession()
    data = "name,email\nAli,ali@example.com\n".encode("utf-8-sig")
    asyncio.run(session.aingest(data, filename="people.csv"))
    assert session.columns.ids() == ["name", "email"]


def test_decoration_presets_resolve_case_insensitively():
    session = ContactSession()
    session.set_decoration(prefix=" mna ", suffix="PUNJAB")
    assert (session.decoration.prefix, session.decoration.suffix) == ("MNA", "Punjab")
    session.set_decoration(prefix="Dr.")
    assert session.decoration.prefix == "Dr."
    assert session.decoration.suffix == "Punjab"


def test_configured_decoration_resolves_presets(tmp_path):
    config = tmp_path / "config.yaml"
    config.write_text(
        "decoration:\n  prefix: adv\n  prefix_presets: [Adv, Hon.]\n", encoding="utf-8"
    )
    session = ContactSession(load_pipeline_config(Namespace(config=str(config))))
    assert session.decoration.prefix == "Adv"
    session.set_decoration(prefix="hon.")
    assert session.decoration.prefix == "Hon."
    session.set_decoration(prefix="mna")
    assert session.decoration.prefix == "mna"


def test_base64_image_text_is_passed_through():
    stub = StubExtractor(ExtractionSuccess(records=[]))
    session = ContactSession(extraction_client=stub)
    asyncio.run(session.aingest("iVBORw0KGgo=", content_type="image/png"))
    assert stub.calls[0]["image"] == "iVBORw0KGgo="
    assert stub.calls[0]["mime_type"] == "image/png"


def test_filename_suffix_wins_over_image_content_type():
    stub = StubExtractor(ExtractionFailure(reason="unused"))
    session = ContactSession(extraction_client=stub)
    result = asyncio.run(session.aingest(CSV_TEXT, filename="a.csv", content_type="image/png"))
    assert result.kind is SourceKind.TABULAR
    assert stub.calls == []
    assert detect_source_kind("a.csv", "image/png") is SourceKind.TABULAR
