"""SQLAlchemy engine/session helpers for the ledger database.

Usage
-----
from db.client import Database

database = Database()  # reads DATABASE_URL
with database.session_scope() as s:
    s.execute(...)

Each ``Database`` owns its engine and session factory; there is no
process-wide engine. Sessions are not shared between threads, so workers open
their own via :meth:`Database.session_scope`.
"""

from __future__ import annotations

import os
from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker


def database_url(override: str | None = None) -> str:
    url = override or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError("DATABASE_URL is not set; cannot initialize database client")
    return url


class Database:
    """An engine plus a session factory bound to it."""

    def __init__(
        self,
        url: str | None = None,
        *,
        engine: Engine | None = None,
        **engine_kwargs: Any,
    ) -> None:
        if engine is None:
            engine = create_engine(database_url(url), pool_pre_ping=True, **engine_kwargs)
        self.engine = engine
        self._session_maker: sessionmaker[Session] = sessionmaker(
            bind=engine, expire_on_commit=False, class_=Session
        )

    @property
    def url(self) -> str:
        return self.engine.url.render_as_string(hide_password=True)

    def session(self) -> Session:
        """Return a new session; the caller owns commit/close."""

        return self._session_maker()

    @contextmanager
    def session_scope(self) -> Iterator[Session]:
        """Provide a transactional scope around a series of operations."""

        session = self.session()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def dispose(self) -> None:
        self.engine.dispose()

    def __repr__(self) -> str:
        return f"Database({self.url!r})"


__all__ = [
    "Database",
    "database_url",
]
