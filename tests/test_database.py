from __future__ import annotations

from sqlalchemy import text

from moneyflow.core.database import make_session_factory


def test_sqlite_connections_enforce_foreign_keys(engine):
    with engine.connect() as conn:
        assert conn.execute(text("PRAGMA foreign_keys")).scalar() == 1
        assert conn.execute(text("PRAGMA journal_mode")).scalar() == "wal"


def test_session_factory_does_not_autoflush(engine):
    session = make_session_factory(engine)()
    try:
        assert session.autoflush is False
    finally:
        session.close()
