"""Pytest configuration and shared fixtures.

Every test gets its own file-backed SQLite ledger under ``tmp_path`` and an
environment scrubbed of the variables the engine reads, so a developer's
``DATABASE_URL`` or worker settings never leak into a run.
"""

from __future__ import annotations

import uuid
from collections.abc import Iterator
from pathlib import Path

import pytest
from db.client import Database

from envelope_ledger.scheduler import SummaryScheduler
from tests.helpers.db import LedgerSeed, bootstrap_sqlite_db


@pytest.fixture(autouse=True)
def _isolate_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("DATABASE_URL", "ENVELOPE_LEDGER_MAX_WORKERS", "ENVELOPE_LEDGER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def db_file(tmp_path: Path) -> Path:
    return tmp_path / "ledger.db"


@pytest.fixture
def database(db_file: Path) -> Iterator[Database]:
    database = bootstrap_sqlite_db(db_file)
    yield database
    database.dispose()


@pytest.fixture
def seed(database: Database) -> LedgerSeed:
    return LedgerSeed(database)


@pytest.fixture
def scheduler(database: Database) -> SummaryScheduler:
    return SummaryScheduler(database, max_workers=4)


@pytest.fixture
def document_id(seed: LedgerSeed) -> uuid.UUID:
    return seed.document()


@pytest.fixture
def account_id(seed: LedgerSeed, document_id: uuid.UUID) -> uuid.UUID:
    return seed.account(document_id)
