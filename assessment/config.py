"""Configuration loading for the assessment core.

Rules:
- Primary source: ``assessment_config.json`` at the project root.
- Overrides: text files under ``config/``, then environment variables.
- Validation: Pydantic models enforce required fields and allowed values.
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Optional

from pydantic import BaseModel, Field, ValidationError as PydanticValidationError, field_validator


CONFIG_DIR = Path("config")
ROOT_CONFIG = Path("assessment_config.json")
logger = logging.getLogger(__name__)

REORDER_STAGED = "staged"
REORDER_SEQUENTIAL = "sequential"


def _read_config_file(rel_path: str) -> Optional[str]:
    path = CONFIG_DIR / rel_path
    try:
        if path.exists():
            return path.read_text(encoding="utf-8").strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.warning("Failed to read override %s: %s", path, e)
        return None
    return None


def _env(key: str, default: Optional[str] = None) -> Optional[str]:
    return os.environ.get(key, default)


def _truthy(text: Optional[str]) -> bool:
    return str(text or "").strip().lower() in {"1", "true", "yes", "on"}


class DatabaseConfig(BaseModel):
    dsn: str

    @field_validator("dsn")
    @classmethod
    def dsn_must_be_non_empty(cls, v: str) -> str:
        if not isinstance(v, str) or not v.strip():
            raise ValueError("database.dsn must be a non-empty string")
        return v


class ReorderConfig(BaseModel):
    # staged: temporary out-of-range pass so pure swaps succeed
    # sequential: one write per item; a pure swap reports DuplicateOrder
    strategy: str = Field(default=REORDER_STAGED)

    @field_validator("strategy")
    @classmethod
    def strategy_must_be_allowed(cls, v: str) -> str:
        allowed = {REORDER_STAGED, REORDER_SEQUENTIAL}
        if v not in allowed:
            raise ValueError(f"reorder.strategy must be one of {sorted(allowed)}")
        return v


class MigrationsConfig(BaseModel):
    auto_apply: bool = Field(default=True)
    directory: str = Field(default="migrations")


class AppConfig(BaseModel):
    database: DatabaseConfig
    reorder: ReorderConfig
    migrations: MigrationsConfig


def _read_json_file(path: Path) -> dict:
    try:
        if path.exists():
            return json.loads(path.read_text(encoding="utf-8"))
    except (OSError, UnicodeDecodeError, json.JSONDecodeError) as e:
        logger.error("Failed to read JSON config %s: %s", path, e)
    return {}


def load_config() -> AppConfig:
    """Load configuration with validation.

    Precedence (highest first):
    1) Environment variables
    2) Text files in ``config/``
    3) ``assessment_config.json`` at the project root
    4) Defaults for development
    """

    base = _read_json_file(ROOT_CONFIG)

    def _base(path: str, default: Optional[str] = None) -> Optional[str]:
        cur: object = base
        for key in path.split("."):
            if not isinstance(cur, dict) or key not in cur:
                return default
            cur = cur[key]
        return str(cur) if cur is not None else default

    dsn = (
        _env("DATABASE_URL")
        or _read_config_file("database.url")
        or _base("database.dsn")
        or "sqlite+pysqlite:///:memory:"
    )
    strategy = (
        _env("REORDER_STRATEGY")
        or _read_config_file("reorder.strategy")
        or _base("reorder.strategy", REORDER_STAGED)
    ).strip().lower()
    auto_apply_text = (
        _env("AUTO_APPLY_MIGRATIONS")
        or _read_config_file("migrations.auto_apply")
        or _base("migrations.auto_apply", "true")
    )
    migrations_dir = (
        _env("MIGRATIONS_DIR")
        or _read_config_file("migrations.directory")
        or _base("migrations.directory", "migrations")
    )

    try:
        return AppConfig(
            database=DatabaseConfig(dsn=dsn),
            reorder=ReorderConfig(strategy=strategy),
            migrations=MigrationsConfig(auto_apply=_truthy(auto_apply_text), directory=migrations_dir),
        )
    except PydanticValidationError as e:
        logger.error("Invalid application configuration: %s", e)
        raise


__all__ = [
    "AppConfig",
    "DatabaseConfig",
    "ReorderConfig",
    "MigrationsConfig",
    "REORDER_STAGED",
    "REORDER_SEQUENTIAL",
    "load_config",
]
