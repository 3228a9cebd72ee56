"""Functional test bootstrap for the assessment core.

Points the engine at a file-backed SQLite database before any module under
``assessment`` builds it, applies the SQL migrations once per session and
empties every table before each test. Startup auto-migrations are disabled
so ``create_app()`` under TestClient does not touch the schema.

This file is scoped under tests/functional/ so Behave (integration) and the
architectural checks are unaffected.
"""

from __future__ import annotations

import os
import pathlib

import pytest

_ROOT = pathlib.Path(__file__).resolve().parents[2]
_DB_FILE = _ROOT / "tmp" / "functional_tests.db"
_DB_FILE.parent.mkdir(parents=True, exist_ok=True)
if _DB_FILE.exists():
    _DB_FILE.unlink()

# Use a file-backed SQLite DB to ensure persistence across connections
os.environ["TEST_DATABASE_URL"] = f"sqlite:///{_DB_FILE}"
os.environ["DATABASE_URL"] = os.environ["TEST_DATABASE_URL"]
# Migrations are applied explicitly below
os.environ["AUTO_APPLY_MIGRATIONS"] = "0"
os.environ.pop("REORDER_STRATEGY", None)

_TABLES = ("question", "question_order_mark", "scoring_band", "questionnaire")


@pytest.fixture(scope="session", autouse=True)
def functional_sqlite_bootstrap():
    """Session-level bootstrap: apply migrations once for the shared DB."""
    from assessment.db.base import dispose_engine, get_engine
    from assessment.db.migrations_runner import apply_migrations

    dispose_engine()
    engine = get_engine(os.environ["TEST_DATABASE_URL"])
    apply_migrations(engine, migrations_dir=str(_ROOT / "migrations"))
    yield engine
    dispose_engine()


@pytest.fixture(autouse=True)
def clean_tables(functional_sqlite_bootstrap):
    from sqlalchemy import text as sql_text

    with functional_sqlite_bootstrap.begin() as conn:
        for table in _TABLES:
            conn.execute(sql_text(f"DELETE FROM {table}"))
    yield


@pytest.fixture
def client():
    from fastapi.testclient import TestClient

    from assessment.main import create_app

    with TestClient(create_app()) as c:
        yield c


@pytest.fixture
def make_questionnaire():
    from assessment.logic.activation import create_questionnaire

    def _make(title: str = "Wellbeing check", **extra):
        return create_questionnaire({"title": title, **extra})

    return _make
