from __future__ import annotations

import logging
from datetime import date
from itertools import islice
from typing import Optional

from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import InvalidFrequencyError, NotFoundError
from .category_service import CategoryService
from .recurrence import advance_to_present, coerce_frequency, iter_occurrences, next_occurrence

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = ("title", "amount", "description", "end_date", "category_id", "type")


class RecurringTransactionService:
    """Lifecycle of recurring transactions: CRUD plus activate/deactivate.

    ``start_date`` and ``frequency`` are fixed once a series exists; only the
    materializer and reactivation move ``next_occurrence``.
    """

    def __init__(self, db: Session) -> None:
        self.db = db
        self.categories = CategoryService(db)

    def get_all(self, *, user_id: int) -> list[models.RecurringTransaction]:
        return (
            self.db.query(models.RecurringTransaction)
            .filter(models.RecurringTransaction.user_id == user_id)
            .order_by(models.RecurringTransaction.id.desc())
            .all()
        )

    def get_by_id(self, user_id: int, recurring_id: int) -> models.RecurringTransaction:
        row = (
            self.db.query(models.RecurringTransaction)
            .filter(
                models.RecurringTransaction.id == recurring_id,
                models.RecurringTransaction.user_id == user_id,
            )
            .first()
        )
        if row is None:
            logger.info("User %s requested missing recurring transaction %s", user_id, recurring_id)
            raise NotFoundError("Recurring transaction not found")
        return row

    def create(self, payload: schemas.RecurringTransactionCreate, *, user_id: int) -> models.RecurringTransaction:
        self.categories.require_matching_type(user_id, payload.category_id, payload.type)
        first = next_occurrence(payload.frequency, payload.start_date, payload.start_date)
        if first is None:
            raise InvalidFrequencyError(f"Unsupported recurrence frequency: {payload.frequency}")

        data = payload.model_dump()
        data["frequency"] = payload.frequency.value
        row = models.RecurringTransaction(
            user_id=user_id,
            next_occurrence=first,
            is_active=True,
            **data,
        )
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def update(self, row: models.RecurringTransaction, changes: dict) -> models.RecurringTransaction:
        changes = {k: v for k, v in changes.items() if k in EDITABLE_FIELDS}
        if not changes:
            return row
        if "category_id" in changes or "type" in changes:
            effective_category = changes.get("category_id") or row.category_id
            effective_type = changes.get("type") or row.type
            self.categories.require_matching_type(row.user_id, effective_category, effective_type)
        for key, value in changes.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def deactivate(self, row: models.RecurringTransaction) -> models.RecurringTransaction:
        # next_occurrence stays frozen until reactivation recomputes it
        row.is_active = False
        self.db.commit()
        self.db.refresh(row)
        return row

    def activate(self, row: models.RecurringTransaction, today: Optional[date] = None) -> models.RecurringTransaction:
        """Reactivate a series, jumping ``next_occurrence`` to the first non-past date.

        Periods missed while inactive are forfeited: no transactions are
        created for them. An already active series is returned as is; its
        backlog belongs to the materializer.
        """
        if row.is_active:
            return row
        caught_up = advance_to_present(row.frequency, row.start_date, row.next_occurrence, today=today)
        if caught_up is None:
            logger.warning("Cannot activate recurring transaction %s: invalid frequency %r", row.id, row.frequency)
            raise InvalidFrequencyError(f"Unsupported recurrence frequency: {row.frequency}")
        row.next_occurrence = caught_up
        row.is_active = True
        self.db.commit()
        self.db.refresh(row)
        return row

    def set_active(
        self, row: models.RecurringTransaction, active: bool, today: Optional[date] = None
    ) -> models.RecurringTransaction:
        if active:
            return self.activate(row, today=today)
        return self.deactivate(row)

    def upcoming(self, row: models.RecurringTransaction, count: int) -> list[date]:
        """Preview ``count`` occurrences starting with the stored one, honouring ``end_date``."""
        if coerce_frequency(row.frequency) is None:
            raise InvalidFrequencyError(f"Unsupported recurrence frequency: {row.frequency}")
        series = [row.next_occurrence]
        series.extend(islice(iter_occurrences(row.frequency, row.start_date, row.next_occurrence), max(count - 1, 0)))
        if row.end_date is not None:
            series = [d for d in series if d <= row.end_date]
        return series[:count]

    def delete(self, row: models.RecurringTransaction) -> None:
        # materialized transactions are kept, only their link to the series is cleared
        self.db.query(models.Transaction).filter(
            models.Transaction.recurring_transaction_id == row.id
        ).update({models.Transaction.recurring_transaction_id: None}, synchronize_session=False)
        self.db.delete(row)
        self.db.commit()
