from __future__ import annotations

import logging
import os
from typing import Optional

from .config_loader import PipelineConfig

LOG_LEVEL_ENV = "CONTACTS_FORMATTER_LOG_LEVEL"
DEFAULT_LEVEL = "WARNING"


def _resolve_level(level_name: str) -> int:
    """Numeric level for a name such as ``debug`` or ``15``; unknown names give INFO."""
    name = (level_name or "").strip().upper()
    if name.isdigit():
        return int(name)
    level = logging.getLevelName(name)
    return level if isinstance(level, int) else logging.INFO


def configure_logging(config: PipelineConfig, level_override: Optional[str] = None) -> None:
    """Set the root level for a formatter run.

    ``CONTACTS_FORMATTER_LOG_LEVEL`` beats ``--log-level``, which beats the
    ``logging.level`` config key. Handlers already installed (pytest, an
    embedding app) are kept and only the level changes.
    """
    level_name = os.getenv(LOG_LEVEL_ENV) or level_override or config.logging.level or DEFAULT_LEVEL
    level = _resolve_level(level_name)

    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level)
        return
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s")
