"""Stdout logging for the assessment service.

One console handler on the root logger carries every ``assessment.*`` module
logger. ``LOG_LEVEL`` picks the level for the service loggers and
``SQL_LOG=1`` lets SQLAlchemy's statement log through; it stays at WARNING
otherwise.
"""
from __future__ import annotations

import logging
import os
from logging.config import dictConfig
from typing import Any, Dict, Optional

LOG_FORMAT = "%(asctime)s %(levelname)s:%(name)s:%(message)s"
_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def _resolve_level(level: Optional[str]) -> str:
    name = (level or os.environ.get("LOG_LEVEL") or "INFO").strip().upper()
    return name if name in _LEVELS else "INFO"


def build_logging_config(level: str = "INFO", *, sql_echo: bool = False) -> Dict[str, Any]:
    uvicorn = {"level": level, "handlers": ["console"], "propagate": False}
    return {
        "version": 1,
        "disable_existing_loggers": False,
        "formatters": {"default": {"format": LOG_FORMAT}},
        "handlers": {
            "console": {
                "class": "logging.StreamHandler",
                "level": "DEBUG",
                "formatter": "default",
                "stream": "ext://sys.stdout",
            }
        },
        "root": {"level": "WARNING", "handlers": ["console"]},
        "loggers": {
            "assessment": {"level": level},
            "uvicorn": uvicorn,
            "uvicorn.access": dict(uvicorn),
            "sqlalchemy.engine": {"level": "INFO" if sql_echo else "WARNING"},
        },
    }


def configure_logging(level: Optional[str] = None) -> str:
    """Install the console handler once and return the effective level.

    A root logger that already has handlers (reloaders, pytest's capture)
    is left alone.
    """
    resolved = _resolve_level(level)
    if logging.getLogger().handlers:
        return resolved
    sql_echo = os.environ.get("SQL_LOG", "").strip().lower() in {"1", "true", "yes", "on"}
    dictConfig(build_logging_config(resolved, sql_echo=sql_echo))
    return resolved
