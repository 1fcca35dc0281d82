"""Settings for Questionnaire Studio.

Rules:
- Base: built-in defaults.
- File: an optional YAML mapping, ``qstudio.yaml`` in the working
  directory or the path given to ``load_settings``.
- Overrides: ``QSTUDIO_*`` environment variables (highest precedence).
- Validation: a Pydantic model enforces value constraints.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator

DEFAULT_SETTINGS_FILE = Path("qstudio.yaml")
ENV_PREFIX = "QSTUDIO_"
logger = logging.getLogger(__name__)

_LOG_LEVELS = {"CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"}


class StudioSettings(BaseModel):
    schema_version: str = Field(default="1.0")
    default_record_version: str = Field(default="1.0.0")
    storage_dir: str = Field(default=".qstudio")
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="%(asctime)s %(levelname)-7s %(name)s: %(message)s")
    log_date_format: str = Field(default="%Y-%m-%d %H:%M:%S")
    pretty_indent: int = Field(default=2, ge=0)

    @field_validator("log_level")
    @classmethod
    def log_level_must_be_known(cls, v: str) -> str:
        level = str(v).strip().upper()
        if level not in _LOG_LEVELS:
            raise ValueError(f"log_level must be one of {sorted(_LOG_LEVELS)}")
        return level

    @field_validator("schema_version", "default_record_version", "storage_dir", "log_format")
    @classmethod
    def must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("must be a non-empty string")
        return v


def _read_yaml_file(path: Path) -> Dict[str, Any]:
    try:
        if path.exists():
            data = yaml.safe_load(path.read_text(encoding="utf-8"))
            if isinstance(data, dict):
                return data
            if data is not None:
                logger.warning("Ignoring settings file %s: top level is not a mapping", path)
    except (OSError, UnicodeDecodeError, yaml.YAMLError) as e:
        logger.warning("Failed to read settings file %s: %s", path, e)
    return {}


def _env_overrides() -> Dict[str, str]:
    overrides = {}
    for name in StudioSettings.model_fields:
        value = os.environ.get(ENV_PREFIX + name.upper())
        if value is not None:
            overrides[name] = value
    return overrides


def load_settings(path: Optional[str | Path] = None) -> StudioSettings:
    """Load settings with validation.

    Precedence (highest first):
    1) ``QSTUDIO_*`` environment variables
    2) The YAML settings file
    3) Defaults
    """
    file_values = _read_yaml_file(Path(path) if path is not None else DEFAULT_SETTINGS_FILE)
    known = {k: v for k, v in file_values.items() if k in StudioSettings.model_fields}
    unknown = sorted(set(file_values) - set(known))
    if unknown:
        logger.warning("Ignoring unknown settings: %s", ", ".join(unknown))

    try:
        return StudioSettings(**{**known, **_env_overrides()})
    except PydanticValidationError as e:
        logger.error("Invalid studio settings: %s", e)
        raise


__all__ = [
    "StudioSettings",
    "load_settings",
]
