"""
Services package

Business logic for categories, transactions and the recurring transaction
engine.
"""

from .category_service import CategoryService
from .transaction_service import TransactionService
from .recurring_transaction_service import RecurringTransactionService
from .materializer import MaterializationResult, SqlAlchemyRecurringStore, materialize_due, run_materialization_pass
from .recurrence import advance_to_present, next_occurrence

__all__ = [
    "CategoryService",
    "TransactionService",
    "RecurringTransactionService",
    "MaterializationResult",
    "SqlAlchemyRecurringStore",
    "materialize_due",
    "run_materialization_pass",
    "advance_to_present",
    "next_occurrence",
]
