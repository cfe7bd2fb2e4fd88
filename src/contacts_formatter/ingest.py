from __future__ import annotations

import logging
from enum import Enum
from pathlib import PurePath
from typing import Callable, Dict, List, Optional

from .models import CanonicalRecord
from .tabular import parse_tabular
from .vcard import parse_cards

logger = logging.getLogger(__name__)

IMAGE_SUFFIXES = {".png", ".jpg", ".jpeg", ".gif", ".webp", ".bmp"}
TABULAR_SUFFIXES = {".csv"}
CARD_SUFFIXES = {".vcf", ".vcard"}


class SourceKind(Enum):
    TABULAR = "tabular"
    CARD = "card"
    TEXT = "text"
    IMAGE = "image"

    @property
    def structured(self) -> bool:
        return self in PARSERS


def detect_source_kind(
    filename: Optional[str] = None, content_type: Optional[str] = None
) -> SourceKind:
    """Pick the ingestion route from the filename suffix, else the content type."""
    suffix = PurePath(filename).suffix.lower() if filename else ""
    if suffix in IMAGE_SUFFIXES:
        return SourceKind.IMAGE
    if suffix in TABULAR_SUFFIXES:
        return SourceKind.TABULAR
    if suffix in CARD_SUFFIXES:
        return SourceKind.CARD
    if content_type:
        lowered = content_type.lower()
        if lowered.startswith("image/"):
            return SourceKind.IMAGE
        if lowered.startswith("text/csv"):
            return SourceKind.TABULAR
        if lowered.startswith(("text/vcard", "text/x-vcard")):
            return SourceKind.CARD
    return SourceKind.TEXT


PARSERS: Dict[SourceKind, Callable[[str], List[CanonicalRecord]]] = {
    SourceKind.TABULAR: parse_tabular,
    SourceKind.CARD: parse_cards,
}


def parse_structured(kind: SourceKind, text: str) -> List[CanonicalRecord]:
    try:
        parser = PARSERS[kind]
    except KeyError:
        raise ValueError(f"{kind.value} input is not parsed locally") from None
    records = parser(text)
    logger.info("Parsed %d record(s) from %s input", len(records), kind.value)
    return records
