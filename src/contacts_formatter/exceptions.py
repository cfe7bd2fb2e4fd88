"""Exception hierarchy for contacts-formatter."""

from __future__ import annotations


class ContactsFormatterError(Exception):
    """Base exception for all contacts-formatter errors."""


class ConfigError(ContactsFormatterError):
    """Invalid or unreadable configuration."""


# Validation
class ValidationError(ContactsFormatterError):
    """A request was rejected before any state changed."""


class EmptyExportSelectionError(ValidationError):
    """No export format requested, or no visible column to export."""


class UnknownExportFormatError(ValidationError):
    """A requested export format is not one of csv, vcf or txt."""

    def __init__(self, name: str):
        super().__init__(f"Invalid download format: {name}")
        self.name = name


class UnknownColumnError(ValidationError):
    """A column edit referenced an id that is not in the schema."""

    def __init__(self, column_id: str):
        super().__init__(f"Unknown column: {column_id}")
        self.column_id = column_id


# Extraction
class ExtractionError(ContactsFormatterError):
    """A single extraction attempt failed."""


class SessionBusyError(ContactsFormatterError):
    """An extraction is already in flight for this session."""
