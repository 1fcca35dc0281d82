"""Logging for the qstudio command line.

Modules log through ``logging.getLogger(__name__)`` and never configure
handlers themselves. ``configure_logging`` routes those records to
stderr, formatted by ``StudioSettings.log_format``, so they stay out of
the JSON and YAML the commands print on stdout.
"""
from __future__ import annotations

import logging
from logging.config import dictConfig
from typing import Any, Dict, Optional

from .config import StudioSettings


def logging_config(settings: StudioSettings) -> Dict[str, Any]:
    """The dictConfig schema for ``settings``."""
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {
            "studio": {"format": settings.log_format, "datefmt": settings.log_date_format},
        },
        "handlers": {
            "stderr": {
                "class": "logging.StreamHandler",
                "formatter": "studio",
                "stream": "ext://sys.stderr",
            }
        },
        "root": {"level": settings.log_level, "handlers": ["stderr"]},
    }


def configure_logging(settings: Optional[StudioSettings] = None) -> bool:
    """Install the stderr handler unless the root logger already has one.

    Returns True when logging was configured by this call.
    """
    if logging.getLogger().handlers:
        return False
    dictConfig(logging_config(settings or StudioSettings()))
    return True
