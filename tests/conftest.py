"""Pytest configuration and fixtures.

The SIT fixtures run against a throwaway SQLite database seeded with the
global categories, so each test starts from a clean gateway.
"""
from __future__ import annotations

import datetime as dt
from pathlib import Path
import sys

import pytest

ROOT_DIR = Path(__file__).resolve().parents[1]
SRC_DIR = ROOT_DIR / "src" / "python"

for _path in (SRC_DIR, ROOT_DIR):
    if str(_path) not in sys.path:
        sys.path.insert(0, str(_path))

from fintrack.repository import Repository  # noqa: E402
from fintrack.synchronizer import FinanceSynchronizer  # noqa: E402
from tests.utils.database import insert_user  # noqa: E402

TODAY = dt.date(2026, 2, 16)


@pytest.fixture()
def today() -> dt.date:
    return TODAY


@pytest.fixture()
def db_path(tmp_path: Path) -> Path:
    return tmp_path / "fintrack.db"


@pytest.fixture()
def repository(db_path: Path) -> Repository:
    """Connected SQLite gateway with the global categories seeded."""
    repo = Repository(db_path, seed_defaults=True)
    repo.connect()
    yield repo
    repo.close()


@pytest.fixture()
def user_id(repository: Repository, db_path: Path) -> int:
    return insert_user(db_path, name="Ana", email="ana@example.com")


@pytest.fixture()
def synchronizer(repository: Repository, today: dt.date) -> FinanceSynchronizer:
    return FinanceSynchronizer(repository, today=lambda: today)


@pytest.fixture()
def session_path(tmp_path: Path) -> Path:
    return tmp_path / "session.json"


@pytest.fixture()
def sample_expense_payload() -> dict:
    return {
        "occurred_on": "2026-02-16",
        "amount": "25.50",
        "category_id": 1,
        "description": "Fixture expense",
    }
