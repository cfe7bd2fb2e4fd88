from __future__ import annotations

import logging
import re
from typing import Dict, List, Sequence, Tuple

from .models import FIELD_IDS, PHONE_FIELDS, CanonicalRecord

logger = logging.getLogger(__name__)

BEGIN_MARKER = "BEGIN:VCARD"
VERSION_MARKER = "VERSION:3.0"
END_MARKER = "END:VCARD"
BOM = "\ufeff"

# canonical fields written as X- vendor properties, in emission order
VENDOR_FIELDS: Tuple[str, ...] = (
    "assembly_tenure",
    "father_husband_name",
    "constituency",
    "place_of_birth",
    "marital_status",
    "religion",
    "notes",
    "academic_qualifications",
    "schooling",
    "party_affiliation",
)


def vendor_tag(field_id: str) -> str:
    return "X-" + field_id.upper().replace("_", "-")


_VENDOR_TAG_TO_FIELD: Dict[str, str] = {vendor_tag(field_id): field_id for field_id in FIELD_IDS}
_ESCAPED_RE = re.compile(r"\\(.)", re.DOTALL)


def escape_value(value: str) -> str:
    value = value.replace("\r\n", "\n").replace("\r", "\n")
    return (
        value.replace("\\", "\\\\")
        .replace("\n", "\\n")
        .replace(",", "\\,")
        .replace(";", "\\;")
    )


def unescape_value(value: str) -> str:
    if not value:
        return ""
    return _ESCAPED_RE.sub(lambda match: "\n" if match.group(1) in "nN" else match.group(1), value)


def split_structured(value: str) -> List[str]:
    """Split a structured value (``N``, ``ADR``) on unescaped semicolons."""
    parts: List[str] = []
    current: List[str] = []
    escaped = False
    for ch in value:
        if escaped:
            current.append("\\" + ch)
            escaped = False
        elif ch == "\\":
            escaped = True
        elif ch == ";":
            parts.append("".join(current))
            current = []
        else:
            current.append(ch)
    if escaped:
        current.append("\\")
    parts.append("".join(current))
    return [unescape_value(part) for part in parts]


def _property_name(key: str) -> str:
    name = key.split(";", 1)[0].strip().upper()
    if "." in name:
        # Apple exports group related lines as item1.TEL, item1.X-ABLabel
        name = name.rsplit(".", 1)[1]
    return name


def _parse_card(block: str) -> CanonicalRecord:
    values: Dict[str, str] = {}
    phones: List[str] = []
    for raw_line in block.splitlines():
        line = raw_line.strip()
        if not line:
            continue
        key, _, value = line.partition(":")
        value = value.strip()
        if not key.strip() or not value:
            continue
        prop = _property_name(key)
        if prop == "FN":
            values["name"] = unescape_value(value)
        elif prop == "N":
            values["name"] = split_structured(value)[0]
        elif prop == "TEL":
            phones.append(unescape_value(value))
        elif prop == "EMAIL":
            values["email"] = unescape_value(value)
        elif prop == "ADR":
            values["address"] = split_structured(value)[-1].strip()
        elif prop == "ORG":
            values["party"] = unescape_value(value)
        elif prop in _VENDOR_TAG_TO_FIELD:
            values[_VENDOR_TAG_TO_FIELD[prop]] = unescape_value(value)

    if len(phones) > len(PHONE_FIELDS):
        logger.debug(
            "Dropping %d telephone line(s) beyond %d slots",
            len(phones) - len(PHONE_FIELDS),
            len(PHONE_FIELDS),
        )
    for phone_field, phone in zip(PHONE_FIELDS, phones):
        values[phone_field] = phone

    ordered = {field_id: values[field_id] for field_id in FIELD_IDS if field_id in values}
    return CanonicalRecord.from_mapping(ordered)


def parse_cards(text: str) -> List[CanonicalRecord]:
    fragments = (text or "").lstrip(BOM).split(BEGIN_MARKER)
    return [_parse_card(fragment) for fragment in fragments if fragment.strip()]


def _card_lines(record: CanonicalRecord) -> List[str]:
    lines = [BEGIN_MARKER, VERSION_MARKER]
    if record.name:
        name = escape_value(record.name)
        lines.append(f"FN:{name}")
        lines.append(f"N:{name};;;;")
    if record.email:
        lines.append(f"EMAIL;TYPE=INTERNET:{escape_value(record.email)}")
    for phone in record.phones():
        if phone and phone.strip():
            lines.append(f"TEL;TYPE=CELL:{escape_value(phone.strip())}")
    if record.address:
        lines.append(f"ADR;TYPE=WORK:;;{escape_value(record.address)}")
    if record.party:
        lines.append(f"ORG:{escape_value(record.party)}")
    for field_id in VENDOR_FIELDS:
        value = getattr(record, field_id)
        if value:
            lines.append(f"{vendor_tag(field_id)}:{escape_value(value)}")
    lines.append(END_MARKER)
    return lines


def generate_cards(records: Sequence[CanonicalRecord]) -> str:
    return "".join(f"{line}\n" for record in records for line in _card_lines(record))
