"""Database bootstrap utilities for the assessment core.

Convenience imports for engine construction and the migrations runner that
applies SQL files from the local ``migrations/`` directory. No ORM models
are defined; repositories issue explicit SQL.
"""

from assessment.db.base import dispose_engine, get_engine, utc_now_iso
from assessment.db.migrations_runner import apply_migrations

__all__ = [
    "get_engine",
    "dispose_engine",
    "utc_now_iso",
    "apply_migrations",
]
