from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from .exceptions import UnknownExportFormatError

FIELD_IDS: Tuple[str, ...] = (
    "name",
    "constituency",
    "party",
    "father_husband_name",
    "email",
    "mobile_phone_1",
    "mobile_phone_2",
    "mobile_phone_3",
    "address",
    "place_of_birth",
    "marital_status",
    "religion",
    "assembly_tenure",
    "notes",
    "academic_qualifications",
    "schooling",
    "party_affiliation",
)

PHONE_FIELDS: Tuple[str, ...] = ("mobile_phone_1", "mobile_phone_2", "mobile_phone_3")

# keys used by the extraction service and by legacy CSV exports
WIRE_KEYS: Dict[str, str] = {
    "name": "name",
    "constituency": "constituency",
    "party": "party",
    "father_husband_name": "fatherHusbandName",
    "email": "email",
    "mobile_phone_1": "mobilePhone1",
    "mobile_phone_2": "mobilePhone2",
    "mobile_phone_3": "mobilePhone3",
    "address": "address",
    "place_of_birth": "placeOfBirth",
    "marital_status": "maritalStatus",
    "religion": "religion",
    "assembly_tenure": "assemblyTenure",
    "notes": "notes",
    "academic_qualifications": "academicQualifications",
    "schooling": "schooling",
    "party_affiliation": "partyAffiliation",
}

FIELD_ALIASES: Dict[str, str] = {}
for _field_id, _wire_key in WIRE_KEYS.items():
    FIELD_ALIASES[_field_id] = _field_id
    FIELD_ALIASES[_wire_key] = _field_id


def canonical_field(key: str) -> Optional[str]:
    """Map a canonical id or wire alias to the canonical id, else ``None``."""
    return FIELD_ALIASES.get((key or "").strip())


@dataclass
class CanonicalRecord:
    name: str = ""
    constituency: str = ""
    party: str = ""
    father_husband_name: str = ""
    email: str = ""
    mobile_phone_1: str = ""
    mobile_phone_2: str = ""
    mobile_phone_3: str = ""
    address: str = ""
    place_of_birth: str = ""
    marital_status: str = ""
    religion: str = ""
    assembly_tenure: str = ""
    notes: str = ""
    academic_qualifications: str = ""
    schooling: str = ""
    party_affiliation: str = ""
    present_fields: Tuple[str, ...] = ()
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_mapping(cls, payload: Dict[str, Any]) -> "CanonicalRecord":
        """Build a record from canonical ids or wire keys.

        Every recognised key counts as present, even when its value is empty.
        Unrecognised keys are kept under ``extra``.
        """
        values: Dict[str, str] = {}
        present = []
        extra: Dict[str, str] = {}
        for key, raw in payload.items():
            value = "" if raw is None else str(raw).strip()
            field_id = canonical_field(str(key))
            if field_id is None:
                extra[str(key)] = value
                continue
            values[field_id] = value
            if field_id not in present:
                present.append(field_id)
        return cls(present_fields=tuple(present), extra=extra, **values)

    def get(self, field_id: str) -> str:
        if field_id in FIELD_ALIASES:
            return getattr(self, FIELD_ALIASES[field_id]) or ""
        return self.extra.get(field_id, "")

    def phones(self) -> Tuple[str, ...]:
        return tuple(getattr(self, phone_field) for phone_field in PHONE_FIELDS)

    def to_dict(self) -> Dict[str, str]:
        return {field_id: getattr(self, field_id) for field_id in FIELD_IDS}

    def replace(self, **changes: Any) -> "CanonicalRecord":
        return replace(self, **changes)


@dataclass
class ColumnSpec:
    id: str
    label: str
    visible: bool = True

    @staticmethod
    def from_mapping(payload: Dict[str, Any]) -> "ColumnSpec":
        return ColumnSpec(
            id=str(payload.get("id", "") or "").strip(),
            label=str(payload.get("label", "") or ""),
            visible=bool(payload.get("visible", True)),
        )

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "label": self.label, "visible": self.visible}


# preferred display order and default labels
DEFAULT_COLUMNS: Tuple[Tuple[str, str], ...] = (
    ("name", "Name"),
    ("assembly_tenure", "Tenure"),
    ("constituency", "Constituency"),
    ("father_husband_name", "Father /Husband Name"),
    ("party", "Party"),
    ("place_of_birth", "Place of Birth"),
    ("address", "Permanent Address"),
    ("mobile_phone_1", "Mobile 1"),
    ("mobile_phone_2", "Mobile 2"),
    ("mobile_phone_3", "Mobile 3"),
    ("email", "Email"),
    ("academic_qualifications", "Academic Qualifications"),
    ("schooling", "Schooling"),
    ("party_affiliation", "Party Affiliation"),
    ("notes", "Notes"),
)

DEFAULT_LABELS: Dict[str, str] = dict(DEFAULT_COLUMNS)


class ExportFormat(Enum):
    TABULAR = "csv"
    CARD = "vcf"
    REPORT = "txt"

    @property
    def filename(self) -> str:
        return f"formatted_contacts.{self.value}"

    @property
    def mime_type(self) -> str:
        return _MIME_TYPES[self]

    @classmethod
    def parse(cls, name: Any) -> "ExportFormat":
        if isinstance(name, ExportFormat):
            return name
        key = str(name or "").strip().lower()
        resolved = _FORMAT_ALIASES.get(key)
        if resolved is None:
            raise UnknownExportFormatError(str(name))
        return resolved


_MIME_TYPES = {
    ExportFormat.TABULAR: "text/csv",
    ExportFormat.CARD: "text/vcard",
    ExportFormat.REPORT: "text/plain",
}

_FORMAT_ALIASES: Dict[str, ExportFormat] = {
    "csv": ExportFormat.TABULAR,
    "tabular": ExportFormat.TABULAR,
    "vcf": ExportFormat.CARD,
    "card": ExportFormat.CARD,
    "vcard": ExportFormat.CARD,
    "txt": ExportFormat.REPORT,
    "report": ExportFormat.REPORT,
    "text": ExportFormat.REPORT,
}


def ensure_record(obj: Any) -> CanonicalRecord:
    if isinstance(obj, CanonicalRecord):
        return obj
    if isinstance(obj, dict):
        return CanonicalRecord.from_mapping(obj)
    raise TypeError(f"Unsupported contact payload type: {type(obj)!r}")
