from __future__ import annotations

from typing import Optional

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models, schemas
from ..errors import InvalidFrequencyError, NotFoundError
from ..utils.dates import normalize_date, utc_today
from .category_service import CategoryService
from .recurrence import next_occurrence


class TransactionService:
    """Concrete (non-recurring) transactions owned by a user."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.categories = CategoryService(db)

    def list(self, user_id: int, filters: schemas.TransactionFilters) -> tuple[list[models.Transaction], int]:
        q = self.db.query(models.Transaction).filter(models.Transaction.user_id == user_id)
        if filters.type is not None:
            q = q.filter(models.Transaction.type == filters.type)
        if filters.from_date is not None:
            q = q.filter(models.Transaction.date >= filters.from_date)
        if filters.to_date is not None:
            q = q.filter(models.Transaction.date <= filters.to_date)
        if filters.category_id is not None:
            q = q.filter(models.Transaction.category_id == filters.category_id)
        if filters.query:
            pattern = f"%{filters.query.strip()}%"
            q = q.filter(
                or_(
                    models.Transaction.title.ilike(pattern),
                    models.Transaction.description.ilike(pattern),
                )
            )

        total = q.count()
        column = models.Transaction.amount if filters.sort == "amount" else models.Transaction.date
        ordering = column.asc() if filters.order == "asc" else column.desc()
        items = (
            q.order_by(ordering, models.Transaction.id.desc())
            .offset(filters.offset)
            .limit(filters.limit)
            .all()
        )
        return items, total

    def get_by_id(self, user_id: int, txn_id: int) -> models.Transaction:
        row = (
            self.db.query(models.Transaction)
            .filter(models.Transaction.user_id == user_id, models.Transaction.id == txn_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Transaction not found")
        return row

    def create(
        self, payload: schemas.TransactionCreate, *, user_id: int
    ) -> tuple[models.Transaction, Optional[models.RecurringTransaction]]:
        """Create a transaction; with ``is_recurring`` also start a series anchored at its date.

        Both rows are committed together. The anchor date itself is recorded by
        the concrete transaction, so the series starts at the following occurrence.
        """
        self.categories.require_matching_type(user_id, payload.category_id, payload.type)
        occurred = normalize_date(payload.date) if payload.date else utc_today()

        recurring: Optional[models.RecurringTransaction] = None
        if payload.is_recurring:
            if payload.frequency is None:
                raise InvalidFrequencyError("frequency is required for recurring transactions")
            following = next_occurrence(payload.frequency, occurred, occurred)
            if following is None:
                raise InvalidFrequencyError(f"Unsupported recurrence frequency: {payload.frequency}")
            recurring = models.RecurringTransaction(
                user_id=user_id,
                category_id=payload.category_id,
                title=payload.title,
                amount=payload.amount,
                type=payload.type,
                description=payload.description,
                frequency=payload.frequency.value,
                start_date=occurred,
                next_occurrence=following,
                is_active=True,
            )
            self.db.add(recurring)
            self.db.flush()

        row = models.Transaction(
            user_id=user_id,
            category_id=payload.category_id,
            title=payload.title,
            amount=payload.amount,
            type=payload.type,
            date=occurred,
            description=payload.description,
            recurring_transaction_id=recurring.id if recurring is not None else None,
        )
        self.db.add(row)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(row)
        return row, recurring

    def update(self, row: models.Transaction, patch: dict) -> models.Transaction:
        """Edit a transaction. Recurrence settings cannot be changed from here."""
        if not patch:
            return row
        if "category_id" in patch or "type" in patch:
            self.categories.require_matching_type(
                row.user_id,
                patch.get("category_id") or row.category_id,
                patch.get("type") or row.type,
            )
        for key, value in patch.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, row: models.Transaction) -> None:
        self.db.delete(row)
        self.db.commit()
