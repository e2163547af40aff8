from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

import pytest
from sqlalchemy.exc import OperationalError

from moneyflow import models
from moneyflow.services.materializer import (
    MaterializationResult,
    SqlAlchemyRecurringStore,
    materialize_due,
    run_materialization_pass,
)


def _entity(id: int, next_occurrence: date, **overrides):
    data = dict(
        id=id,
        frequency="MONTHLY",
        start_date=date(2024, 1, 31),
        next_occurrence=next_occurrence,
        end_date=None,
        is_active=True,
    )
    data.update(overrides)
    return SimpleNamespace(**data)


class FakeStore:
    def __init__(self, fail_ids: set[int] | None = None) -> None:
        self.fail_ids = fail_ids or set()
        self.created: list[tuple[int, date]] = []
        self.advanced: dict[int, date] = {}

    def create_transaction(self, entity, occurrence):
        self.created.append((entity.id, occurrence))

    def update_next_occurrence(self, entity, next_occurrence):
        self.advanced[entity.id] = next_occurrence

    def materialize(self, entity, next_occurrence):
        if entity.id in self.fail_ids:
            raise OperationalError("INSERT", {}, Exception("database is locked"))
        self.create_transaction(entity, entity.next_occurrence)
        self.update_next_occurrence(entity, next_occurrence)


class TestRunMaterializationPass:
    def test_advances_each_due_entity_exactly_one_step(self):
        store = FakeStore()
        entities = [_entity(1, date(2024, 1, 31)), _entity(2, date(2024, 2, 29))]

        result = run_materialization_pass(entities, store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=2, skipped=0)
        assert store.created == [(1, date(2024, 1, 31)), (2, date(2024, 2, 29))]
        assert store.advanced == {1: date(2024, 2, 29), 2: date(2024, 3, 31)}

    def test_ignores_inactive_future_and_ended(self):
        store = FakeStore()
        entities = [
            _entity(1, date(2024, 3, 1), is_active=False),
            _entity(2, date(2024, 3, 11)),
            _entity(3, date(2024, 3, 1), end_date=date(2024, 3, 9)),
            _entity(4, date(2024, 3, 1), end_date=date(2024, 3, 10)),
        ]

        result = run_materialization_pass(entities, store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=1, skipped=0)
        assert [eid for eid, _ in store.created] == [4]

    def test_invalid_frequency_is_skipped_without_mutation(self, caplog):
        store = FakeStore()
        entities = [_entity(1, date(2024, 3, 1), frequency="FORTNIGHTLY"), _entity(2, date(2024, 3, 1))]

        with caplog.at_level(logging.WARNING, logger="moneyflow"):
            result = run_materialization_pass(entities, store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=1, skipped=1)
        assert 1 not in store.advanced
        assert entities[0].next_occurrence == date(2024, 3, 1)
        assert "recurring transaction 1" in caplog.text

    def test_persistence_failure_does_not_abort_the_pass(self, caplog):
        store = FakeStore(fail_ids={2})
        entities = [_entity(1, date(2024, 3, 1)), _entity(2, date(2024, 3, 1)), _entity(3, date(2024, 3, 1))]

        with caplog.at_level(logging.ERROR, logger="moneyflow"):
            result = run_materialization_pass(entities, store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=2, skipped=1)
        assert sorted(store.advanced) == [1, 3]
        assert "Failed to materialize recurring transaction 2" in caplog.text

    def test_stale_series_moves_one_step_per_pass(self):
        store = FakeStore()
        entity = _entity(1, date(2024, 1, 31))

        for _ in range(3):
            run_materialization_pass([entity], store, now=date(2024, 6, 1))
            entity.next_occurrence = store.advanced[1]

        assert [occ for _, occ in store.created] == [date(2024, 1, 31), date(2024, 2, 29), date(2024, 3, 31)]
        assert entity.next_occurrence == date(2024, 4, 30)


def _recurring(db_session, user, category, **overrides) -> models.RecurringTransaction:
    data = dict(
        user_id=user.id,
        category_id=category.id,
        title="Rent",
        amount=Decimal("950.00"),
        type=category.type,
        frequency="MONTHLY",
        start_date=date(2024, 1, 31),
        next_occurrence=date(2024, 2, 29),
        is_active=True,
    )
    data.update(overrides)
    row = models.RecurringTransaction(**data)
    db_session.add(row)
    db_session.commit()
    return row


class TestSqlAlchemyStore:
    def test_fetch_due_filters_like_the_pass(self, db_session, demo_user, expense_category):
        due = _recurring(db_session, demo_user, expense_category, title="due")
        _recurring(db_session, demo_user, expense_category, title="future", next_occurrence=date(2024, 4, 30))
        _recurring(db_session, demo_user, expense_category, title="paused", is_active=False)
        _recurring(db_session, demo_user, expense_category, title="ended", end_date=date(2024, 3, 1))

        store = SqlAlchemyRecurringStore(db_session)
        assert [r.id for r in store.fetch_due(date(2024, 3, 10))] == [due.id]

    def test_materialize_creates_transaction_and_advances(self, db_session, demo_user, expense_category):
        row = _recurring(db_session, demo_user, expense_category, description="monthly rent")
        store = SqlAlchemyRecurringStore(db_session)

        result = run_materialization_pass(store.fetch_due(date(2024, 3, 10)), store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=1, skipped=0)
        db_session.refresh(row)
        assert row.next_occurrence == date(2024, 3, 31)
        txns = db_session.query(models.Transaction).all()
        assert len(txns) == 1
        txn = txns[0]
        assert txn.date == date(2024, 2, 29)
        assert txn.title == "Rent"
        assert txn.amount == Decimal("950.00")
        assert txn.type == models.TxnType.EXPENSE
        assert txn.category_id == expense_category.id
        assert txn.description == "monthly rent"
        assert txn.recurring_transaction_id == row.id

    def test_failed_commit_rolls_back_both_sides(self, db_session, demo_user, expense_category, monkeypatch):
        row = _recurring(db_session, demo_user, expense_category)
        store = SqlAlchemyRecurringStore(db_session)

        def _boom():
            raise OperationalError("COMMIT", {}, Exception("disk I/O error"))

        monkeypatch.setattr(db_session, "commit", _boom)
        result = run_materialization_pass(store.fetch_due(date(2024, 3, 10)), store, now=date(2024, 3, 10))
        monkeypatch.undo()

        assert result == MaterializationResult(processed=0, skipped=1)
        db_session.expire_all()
        assert db_session.get(models.RecurringTransaction, row.id).next_occurrence == date(2024, 2, 29)
        assert db_session.query(models.Transaction).count() == 0

    def test_materialize_due_uses_a_fresh_session(self, db_session, session_factory, demo_user, income_category):
        row = _recurring(
            db_session,
            demo_user,
            income_category,
            title="Salary",
            frequency="WEEKLY",
            start_date=date(2024, 3, 1),
            next_occurrence=date(2024, 3, 8),
        )

        first = materialize_due(session_factory, now=date(2024, 3, 20))
        second = materialize_due(session_factory, now=date(2024, 3, 20))

        assert first == MaterializationResult(processed=1, skipped=0)
        assert second == MaterializationResult(processed=1, skipped=0)
        db_session.expire_all()
        assert db_session.get(models.RecurringTransaction, row.id).next_occurrence == date(2024, 3, 22)
        dates = sorted(t.date for t in db_session.query(models.Transaction).all())
        assert dates == [date(2024, 3, 8), date(2024, 3, 15)]

    @pytest.mark.parametrize("stored", ["FORTNIGHTLY", "monthly"])
    def test_stale_frequency_value_is_skipped(self, db_session, session_factory, demo_user, expense_category, stored):
        row = _recurring(db_session, demo_user, expense_category, frequency=stored)

        result = materialize_due(session_factory, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=0, skipped=1)
        db_session.expire_all()
        assert db_session.get(models.RecurringTransaction, row.id).next_occurrence == date(2024, 2, 29)

    def test_non_database_error_does_not_leak_into_next_commit(self, db_session, demo_user, expense_category):
        first = _recurring(db_session, demo_user, expense_category, title="first")
        second = _recurring(db_session, demo_user, expense_category, title="second")

        class FlakyStore(SqlAlchemyRecurringStore):
            def update_next_occurrence(self, entity, next_occurrence):
                if entity.id == first.id:
                    raise ValueError("cannot advance")
                super().update_next_occurrence(entity, next_occurrence)

        store = FlakyStore(db_session)
        result = run_materialization_pass(store.fetch_due(date(2024, 3, 10)), store, now=date(2024, 3, 10))

        assert result == MaterializationResult(processed=1, skipped=1)
        db_session.expire_all()
        assert db_session.get(models.RecurringTransaction, first.id).next_occurrence == date(2024, 2, 29)
        assert db_session.get(models.RecurringTransaction, second.id).next_occurrence == date(2024, 3, 31)
        txns = db_session.query(models.Transaction).all()
        assert [t.recurring_transaction_id for t in txns] == [second.id]
