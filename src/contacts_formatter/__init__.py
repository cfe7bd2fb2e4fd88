"""Normalize contact records and export them as CSV, vCard and text reports."""

__version__ = "0.1.0"
