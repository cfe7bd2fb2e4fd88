from __future__ import annotations

import argparse
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml  # type: ignore[import-untyped]

from .exceptions import ConfigError

DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
DEFAULT_MODEL = "gemini-2.5-flash-preview-05-20"


@dataclass
class OutputsConfig:
    dir: Path


@dataclass
class ExportConfig:
    formats: List[str] = field(default_factory=lambda: ["csv"])


@dataclass
class DecorationConfig:
    prefix: str = ""
    suffix: str = ""
    prefix_presets: List[str] = field(default_factory=lambda: ["MNA", "MPA", "Adv"])
    suffix_presets: List[str] = field(default_factory=lambda: ["Sindh", "Punjab"])


@dataclass
class ExtractionConfig:
    endpoint: str = DEFAULT_ENDPOINT
    model: str = DEFAULT_MODEL
    api_key_env: str = "GEMINI_API_KEY"
    max_attempts: int = 5
    base_delay: float = 1.0
    timeout: float = 60.0

    @property
    def api_key(self) -> str:
        return os.getenv(self.api_key_env, "")


@dataclass
class LoggingConfig:
    level: str = "WARNING"


@dataclass
class PipelineConfig:
    outputs: OutputsConfig
    export: ExportConfig
    decoration: DecorationConfig
    extraction: ExtractionConfig
    logging: LoggingConfig


def _load_yaml(path: Optional[str]) -> Dict[str, Any]:
    if not path:
        return {}
    try:
        with open(path, "r", encoding="utf-8") as handle:
            data = yaml.safe_load(handle) or {}
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigError(f"Unable to read config {path}: {exc}") from exc
    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping, got {type(data).__name__}")
    return data


def default_config() -> PipelineConfig:
    return load_pipeline_config(argparse.Namespace())


def load_pipeline_config(args: argparse.Namespace) -> PipelineConfig:
    config_data = _load_yaml(getattr(args, "config", None))
    outputs_cfg = config_data.get("outputs", {}) or {}
    export_cfg = config_data.get("export", {}) or {}
    decoration_cfg = config_data.get("decoration", {}) or {}
    extraction_cfg = config_data.get("extraction", {}) or {}
    logging_cfg = config_data.get("logging", {}) or {}

    outputs_dir = Path(getattr(args, "out_dir", None) or outputs_cfg.get("dir") or os.getcwd())
    outputs = OutputsConfig(dir=outputs_dir)

    export = ExportConfig(
        formats=list(getattr(args, "formats", None) or export_cfg.get("formats") or ["csv"]),
    )

    defaults = DecorationConfig()
    decoration = DecorationConfig(
        prefix=getattr(args, "prefix", None) or decoration_cfg.get("prefix") or "",
        suffix=getattr(args, "suffix", None) or decoration_cfg.get("suffix") or "",
        prefix_presets=list(decoration_cfg.get("prefix_presets") or defaults.prefix_presets),
        suffix_presets=list(decoration_cfg.get("suffix_presets") or defaults.suffix_presets),
    )

    try:
        extraction = ExtractionConfig(
            endpoint=str(extraction_cfg.get("endpoint", DEFAULT_ENDPOINT)).rstrip("/"),
            model=str(extraction_cfg.get("model", DEFAULT_MODEL)),
            api_key_env=str(extraction_cfg.get("api_key_env", "GEMINI_API_KEY")),
            max_attempts=int(extraction_cfg.get("max_attempts", 5)),
            base_delay=float(extraction_cfg.get("base_delay", 1.0)),
            timeout=float(extraction_cfg.get("timeout", 60.0)),
        )
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid extraction settings: {exc}") from exc
    if extraction.max_attempts < 1:
        raise ConfigError("extraction.max_attempts must be at least 1")

    arg_level = getattr(args, "log_level", None)
    effective_level = (arg_level or logging_cfg.get("level") or "WARNING").upper()
    logging_config = LoggingConfig(level=effective_level)

    return PipelineConfig(
        outputs=outputs,
        export=export,
        decoration=decoration,
        extraction=extraction,
        logging=logging_config,
    )
