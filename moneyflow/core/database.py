"""Engine and session wiring.

The API and the materializer job open sessions from the same factory;
``create_db_engine`` is shared with the test suite so both run with the
same SQLite settings.
"""

from __future__ import annotations

from sqlalchemy import create_engine, event
from sqlalchemy.engine import Engine
from sqlalchemy.orm import DeclarativeBase, declared_attr, sessionmaker

from .config import settings


class Base(DeclarativeBase):
    """Declarative base; table name is the lowercased class name (``recurringtransaction``)."""

    @declared_attr.directive
    def __tablename__(cls) -> str:  # type: ignore[override]
        return cls.__name__.lower()


def _apply_sqlite_pragmas(dbapi_connection, connection_record) -> None:
    cursor = dbapi_connection.cursor()
    # SET NULL on transaction.recurring_transaction_id relies on FK enforcement
    cursor.execute("PRAGMA foreign_keys=ON")
    # readers (API) and the daily job writer share one file
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.close()


def create_db_engine(url: str) -> Engine:
    if not url.startswith("sqlite"):
        return create_engine(url, pool_pre_ping=True)
    eng = create_engine(url, connect_args={"check_same_thread": False})
    event.listen(eng, "connect", _apply_sqlite_pragmas)
    return eng


def make_session_factory(bind: Engine) -> sessionmaker:
    return sessionmaker(bind=bind, autocommit=False, autoflush=False)


engine = create_db_engine(settings.DATABASE_URL)
SessionLocal = make_session_factory(engine)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
