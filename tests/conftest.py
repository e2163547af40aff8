from __future__ import annotations

import os
import tempfile
from typing import Generator, Any

import pytest

from moneyflow.core.database import Base, create_db_engine, get_db, make_session_factory
from moneyflow.main import app
from moneyflow import models


@pytest.fixture(scope="session")
def test_db_url() -> Generator[str, Any, Any]:
    # temp SQLite file so the developer database is never touched
    fd, path = tempfile.mkstemp(prefix="moneyflow_test_", suffix=".sqlite3")
    os.close(fd)
    url = f"sqlite:///{path}"
    yield url
    for suffix in ("", "-wal", "-shm"):
        try:
            os.remove(path + suffix)
        except OSError:
            pass


@pytest.fixture(scope="session")
def engine(test_db_url: str):
    eng = create_db_engine(test_db_url)
    Base.metadata.create_all(eng)
    yield eng
    eng.dispose()


@pytest.fixture(scope="session")
def session_factory(engine):
    return make_session_factory(engine)


@pytest.fixture(scope="function")
def db_session(engine, session_factory) -> Generator[Any, Any, Any]:
    session = session_factory()
    # seed: demo user(1) with one INCOME and one EXPENSE category
    user = models.User(email="demo@example.com", name="Demo", is_active=True)
    session.add(user)
    session.flush()
    session.add(models.Category(user_id=user.id, name="Salary", type=models.TxnType.INCOME))
    session.add(models.Category(user_id=user.id, name="Food", type=models.TxnType.EXPENSE))
    session.commit()

    try:
        yield session
    finally:
        session.close()
        # children first, so foreign keys stay satisfied
        with engine.begin() as conn:
            for tbl in reversed(Base.metadata.sorted_tables):
                conn.execute(tbl.delete())


@pytest.fixture()
def demo_user(db_session) -> models.User:
    return db_session.query(models.User).filter(models.User.email == "demo@example.com").one()


@pytest.fixture()
def income_category(db_session, demo_user) -> models.Category:
    return (
        db_session.query(models.Category)
        .filter(models.Category.user_id == demo_user.id, models.Category.type == models.TxnType.INCOME)
        .one()
    )


@pytest.fixture()
def expense_category(db_session, demo_user) -> models.Category:
    return (
        db_session.query(models.Category)
        .filter(models.Category.user_id == demo_user.id, models.Category.type == models.TxnType.EXPENSE)
        .one()
    )


@pytest.fixture(autouse=True)
def override_dependency(db_session):
    # FastAPI DI override
    def _get_db_override():
        try:
            yield db_session
        finally:
            pass

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()


@pytest.fixture()
def client(db_session):
    from fastapi.testclient import TestClient
    with TestClient(app) as c:
        yield c
