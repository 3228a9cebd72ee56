"""SQLAlchemy engine helpers.

The core targets PostgreSQL in production and SQLite for local development
and CI. No declarative models are defined here; repositories issue explicit
SQL through ``sqlalchemy.text`` and each write runs in its own short
transaction, so the only atomicity relied upon is per-record.
"""

from __future__ import annotations

import logging
import os
from datetime import datetime, timezone

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.pool import StaticPool

from assessment.config import load_config

logger = logging.getLogger(__name__)


def _db_url() -> str:
    # TEST_DATABASE_URL overrides the configured DSN
    return os.getenv("TEST_DATABASE_URL") or load_config().database.dsn


# Connection pool only; no domain state is kept at module level
_ENGINE: Engine | None = None
_ENGINE_URL: str | None = None


def get_engine(url: str | None = None) -> Engine:
    """Return the shared SQLAlchemy Engine for the given URL.

    The Engine is rebuilt whenever the resolved URL changes. For SQLite
    in-memory URLs a StaticPool keeps one connection alive so every
    repository sees the same database.
    """
    global _ENGINE, _ENGINE_URL
    resolved_url = url or _db_url()

    if _ENGINE is None or _ENGINE_URL != resolved_url:
        kwargs: dict = {"future": True, "pool_pre_ping": True}
        if resolved_url.startswith("sqlite") and ":memory:" in resolved_url:
            kwargs.update({
                "poolclass": StaticPool,
                "connect_args": {"check_same_thread": False},
            })
        _ENGINE = create_engine(resolved_url, **kwargs)
        _ENGINE_URL = resolved_url
        logger.info("db_engine_created dialect=%s", _ENGINE.dialect.name)

    return _ENGINE


def dispose_engine() -> None:
    """Dispose the cached Engine (tests switch databases between sessions)."""
    global _ENGINE, _ENGINE_URL
    if _ENGINE is not None:
        _ENGINE.dispose()
    _ENGINE = None
    _ENGINE_URL = None


def utc_now_iso() -> str:
    """ISO-8601 UTC timestamp without fractional seconds (e.g. 2024-01-01T00:00:00Z)."""
    return datetime.now(timezone.utc).replace(microsecond=0).isoformat().replace("+00:00", "Z")

