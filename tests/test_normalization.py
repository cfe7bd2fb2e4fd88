import pytest

from contacts_formatter.models import CanonicalRecord
from contacts_formatter.normalization import (
    decorate_name,
    decorate_records,
    is_valid_email,
    normalize_phone,
    normalize_record_phones,
    quality_warnings,
)


def test_normalize_phone_examples():
    assert normalize_phone("0300-1234567") == "+923001234567"
    assert normalize_phone("3001234567") == "+923001234567"
    assert normalize_phone("12345") == "12345"


def test_normalize_phone_country_code_forms():
    assert normalize_phone("+92 300 1234567") == "+923001234567"
    assert normalize_phone("0092-300-1234567") == "00923001234567"
    assert normalize_phone("92123") == "92123"


def test_normalize_phone_is_total():
    assert normalize_phone(None) == ""
    assert normalize_phone("") == ""
    assert normalize_phone("call me maybe") == ""
    assert normalize_phone("(021) 111-222-333") == "021111222333"


@pytest.mark.parametrize(
    "raw",
    [
        "0300-1234567",
        "3001234567",
        "+923001234567",
        "923001234567",
        "12345",
        "0092-300-1234567",
        "  ",
        "03-00",
        "+1 (415) 555-2671",
    ],
)
def test_normalize_phone_is_idempotent(raw):
    once = normalize_phone(raw)
    assert normalize_phone(once) == once


def test_normalize_record_phones_only_touches_phone_fields():
    record = CanonicalRecord.from_mapping(
        {"name": "Ali 0300", "mobilePhone1": "0300-1234567", "mobilePhone2": "", "notes": "0300"}
    )
    normalized = normalize_record_phones(record)
    assert normalized.mobile_phone_1 == "+923001234567"
    assert normalized.mobile_phone_2 == ""
    assert normalized.name == "Ali 0300"
    assert normalized.notes == "0300"
    assert record.mobile_phone_1 == "0300-1234567"
    assert normalized.present_fields == record.present_fields


def test_decorate_name():
    assert decorate_name("Ali", "MNA", "Sindh") == "MNA Ali Sindh"
    assert decorate_name("Ali", "MNA", "") == "MNA Ali"
    assert decorate_name("Ali", "", "Punjab") == "Ali Punjab"
    assert decorate_name("", "MNA", "Sindh") == ""


def test_decorate_records_copies():
    record = CanonicalRecord(name="Ali", extra={"Ward": "7"})
    decorated = decorate_records([record], "Adv", "")
    assert decorated[0].name == "Adv Ali"
    assert record.name == "Ali"
    decorated[0].extra["Ward"] = "8"
    assert record.extra["Ward"] == "7"


def test_quality_warnings_flag_without_mutating():
    good = CanonicalRecord(name="Ali", email="ali@example.com", mobile_phone_1="+923001234567")
    bad = CanonicalRecord(name="Bilal", email="not-an-email", mobile_phone_1="1")
    warnings = quality_warnings([good, bad])
    assert len(warnings) == 2
    assert all(warning.startswith("Bilal:") for warning in warnings)
    assert bad.email == "not-an-email"
    assert bad.mobile_phone_1 == "1"


def test_is_valid_email():
    assert is_valid_email("ali@example.com") is True
    assert is_valid_email("ali@") is False
    assert is_valid_email("") is False
