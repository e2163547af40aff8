"""Materialization of due recurring transactions.

One pass turns every due recurring transaction into exactly one concrete
transaction and advances its ``next_occurrence`` by a single period. A series
that fell several periods behind catches up one step per pass; the bulk
catch-up path (``advance_to_present``) is reserved for reactivation.

The create + advance pair for an entity is committed atomically, and a failure
on one entity never aborts the rest of the pass.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import date, datetime
from typing import Callable, Iterable, Protocol

from sqlalchemy import or_
from sqlalchemy.orm import Session

from .. import models
from ..utils.dates import normalize_date, utc_today
from .recurrence import next_occurrence

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MaterializationResult:
    processed: int = 0
    skipped: int = 0


class RecurringTransactionStore(Protocol):
    """Persistence capabilities the materializer needs from its collaborator."""

    def create_transaction(self, entity: models.RecurringTransaction, occurrence: date) -> models.Transaction: ...

    def update_next_occurrence(self, entity: models.RecurringTransaction, next_occurrence: date) -> None: ...

    def materialize(self, entity: models.RecurringTransaction, next_occurrence: date) -> models.Transaction:
        """Create the transaction and advance the occurrence in one unit of work."""
        ...


def is_due(entity: models.RecurringTransaction, today: date) -> bool:
    if not entity.is_active:
        return False
    if normalize_date(entity.next_occurrence) > today:
        return False
    return entity.end_date is None or normalize_date(entity.end_date) >= today


def run_materialization_pass(
    entities: Iterable[models.RecurringTransaction],
    store: RecurringTransactionStore,
    now: date | datetime | None = None,
) -> MaterializationResult:
    today = normalize_date(now) if now is not None else utc_today()
    processed = 0
    skipped = 0

    for entity in entities:
        if not is_due(entity, today):
            continue
        entity_id = entity.id

        following = next_occurrence(entity.frequency, entity.start_date, entity.next_occurrence)
        if following is None:
            logger.warning(
                "Skipping recurring transaction %s: invalid frequency %r",
                entity_id,
                entity.frequency,
            )
            skipped += 1
            continue

        try:
            store.materialize(entity, following)
        except Exception:
            logger.exception("Failed to materialize recurring transaction %s", entity_id)
            skipped += 1
            continue
        processed += 1

    logger.info("Materialization pass for %s: processed=%s skipped=%s", today, processed, skipped)
    return MaterializationResult(processed=processed, skipped=skipped)


class SqlAlchemyRecurringStore:
    """``RecurringTransactionStore`` backed by an ORM session.

    Each ``materialize`` call commits on its own so an interrupted pass keeps
    what it already finished and leaves the rest for the next run.
    """

    def __init__(self, db: Session) -> None:
        self.db = db

    def fetch_due(self, today: date) -> list[models.RecurringTransaction]:
        return (
            self.db.query(models.RecurringTransaction)
            .filter(
                models.RecurringTransaction.is_active.is_(True),
                models.RecurringTransaction.next_occurrence <= today,
                or_(
                    models.RecurringTransaction.end_date.is_(None),
                    models.RecurringTransaction.end_date >= today,
                ),
            )
            .order_by(models.RecurringTransaction.id)
            .all()
        )

    def create_transaction(self, entity: models.RecurringTransaction, occurrence: date) -> models.Transaction:
        txn = models.Transaction(
            user_id=entity.user_id,
            category_id=entity.category_id,
            title=entity.title,
            amount=entity.amount,
            type=entity.type,
            date=occurrence,
            description=entity.description,
            recurring_transaction_id=entity.id,
        )
        self.db.add(txn)
        return txn

    def update_next_occurrence(self, entity: models.RecurringTransaction, next_occurrence: date) -> None:
        entity.next_occurrence = next_occurrence

    def materialize(self, entity: models.RecurringTransaction, next_occurrence: date) -> models.Transaction:
        entity_id = entity.id
        try:
            txn = self.create_transaction(entity, normalize_date(entity.next_occurrence))
            self.update_next_occurrence(entity, next_occurrence)
            self.db.commit()
        except Exception:
            # the pending transaction must not ride along with the next entity's commit
            self.db.rollback()
            logger.error("Rolled back materialization of recurring transaction %s", entity_id)
            raise
        return txn


def materialize_due(
    session_factory: Callable[[], Session],
    now: date | datetime | None = None,
) -> MaterializationResult:
    """Job entry point: load the due set and run one pass in a fresh session."""
    today = normalize_date(now) if now is not None else utc_today()
    db = session_factory()
    try:
        store = SqlAlchemyRecurringStore(db)
        return run_materialization_pass(store.fetch_due(today), store, now=today)
    finally:
        db.close()
