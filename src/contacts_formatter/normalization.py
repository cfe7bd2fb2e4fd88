from __future__ import annotations

import logging
import re
from typing import List, Optional

import phonenumbers
from email_validator import EmailNotValidError, validate_email

from .models import PHONE_FIELDS, CanonicalRecord

logger = logging.getLogger(__name__)

COUNTRY_CODE = "92"
TRUNK_PREFIX = "0"
MOBILE_PREFIX = "3"
DEFAULT_PHONE_REGION = "PK"

_NON_DIGIT_RE = re.compile(r"\D")


def normalize_phone(raw: Optional[str]) -> str:
    """
    Canonicalize a phone number to its ``+92`` dialing form when recognisable.

    Every non-digit is stripped first. Numbers already carrying the country
    code, trunk-prefixed national numbers and bare mobile numbers gain the
    ``+92`` prefix; anything else is returned as the bare digit string.
    """
    digits = _NON_DIGIT_RE.sub("", raw or "")
    if digits.startswith(COUNTRY_CODE) and len(digits) >= 11:
        return f"+{digits}"
    if digits.startswith(TRUNK_PREFIX) and len(digits) == 11:
        return f"+{COUNTRY_CODE}{digits[1:]}"
    if digits.startswith(MOBILE_PREFIX) and len(digits) == 10:
        return f"+{COUNTRY_CODE}{digits}"
    return digits


def normalize_record_phones(record: CanonicalRecord) -> CanonicalRecord:
    changes = {
        phone_field: normalize_phone(getattr(record, phone_field))
        for phone_field in PHONE_FIELDS
        if getattr(record, phone_field)
    }
    if not changes:
        return record.replace()
    return record.replace(**changes)


def normalize_records(records: List[CanonicalRecord]) -> List[CanonicalRecord]:
    return [normalize_record_phones(record) for record in records]


def is_possible_phone(value: str, default_region: str = DEFAULT_PHONE_REGION) -> bool:
    s = (value or "").strip()
    if not s:
        return False
    try:
        region = None if s.startswith("+") else default_region
        parsed = phonenumbers.parse(s, region)
    except phonenumbers.NumberParseException:
        return False
    return phonenumbers.is_possible_number(parsed)


def is_valid_email(value: str) -> bool:
    candidate = (value or "").strip()
    if not candidate:
        return False
    try:
        validate_email(candidate, check_deliverability=False)
    except EmailNotValidError:
        return False
    return True


def phone_quality_issues(
    record: CanonicalRecord, default_region: str = DEFAULT_PHONE_REGION
) -> List[str]:
    return [
        phone
        for phone in record.phones()
        if phone and not is_possible_phone(phone, default_region=default_region)
    ]


def email_quality_issues(record: CanonicalRecord) -> List[str]:
    if record.email and not is_valid_email(record.email):
        return [record.email]
    return []


def quality_warnings(
    records: List[CanonicalRecord], default_region: str = DEFAULT_PHONE_REGION
) -> List[str]:
    """Describe suspicious phones and emails; records are left untouched."""
    warnings: List[str] = []
    for index, record in enumerate(records):
        label = record.name or f"record {index + 1}"
        phones = phone_quality_issues(record, default_region=default_region)
        if phones:
            logger.info(
                "Flagged %d non-standard phone(s) for %s -> %s",
                len(phones),
                label,
                ", ".join(phones),
            )
            warnings.append(f"{label}: non-standard phone(s) {', '.join(phones)}")
        emails = email_quality_issues(record)
        if emails:
            logger.info("Flagged invalid email for %s -> %s", label, emails[0])
            warnings.append(f"{label}: invalid email {emails[0]}")
    return warnings


def decorate_name(name: str, prefix: str = "", suffix: str = "") -> str:
    if not name:
        return name
    decorated = name
    if prefix:
        decorated = f"{prefix} {decorated}"
    if suffix:
        decorated = f"{decorated} {suffix}"
    return decorated


def decorate_records(
    records: List[CanonicalRecord], prefix: str = "", suffix: str = ""
) -> List[CanonicalRecord]:
    return [
        record.replace(name=decorate_name(record.name, prefix, suffix), extra=dict(record.extra))
        for record in records
    ]
