"""Pytest configuration for test isolation.

Every test gets its own file-backed SQLite database under ``tmp_path``. The
shared engine in ``db.client`` and the package log handler are process-wide,
so both are reset around each test.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import reset_engine

from budget_engine.logging_setup import reset_logging
from budget_engine.store import SqlBudgetStore
from tests.helpers.db import bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_engine(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    monkeypatch.delenv("DATABASE_URL", raising=False)
    monkeypatch.delenv("BUDGET_ENGINE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("BUDGET_ENGINE_DEBUG", raising=False)
    reset_engine()
    yield
    reset_engine()
    reset_logging()


@pytest.fixture
def db_url(tmp_path: Path) -> str:
    return bootstrap_sqlite_db(tmp_path / "budgets.db")


@pytest.fixture
def store(db_url: str) -> SqlBudgetStore:
    return SqlBudgetStore(database_url=db_url)
