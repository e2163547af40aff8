from __future__ import annotations

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.deps import get_current_user
from ..schemas import (
    RecurringTransactionCreate,
    RecurringTransactionOut,
    RecurringTransactionToggle,
    RecurringTransactionUpdate,
    RecurringUpcomingOut,
)
from ..services.recurring_transaction_service import RecurringTransactionService


router = APIRouter(prefix="/recurring-transactions", tags=["recurring-transactions"])


@router.get("", response_model=list[RecurringTransactionOut])
def list_recurring_transactions(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return RecurringTransactionService(db).get_all(user_id=current_user.id)


@router.post("", response_model=RecurringTransactionOut, status_code=201)
def create_recurring_transaction(
    payload: RecurringTransactionCreate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    return RecurringTransactionService(db).create(payload, user_id=current_user.id)


@router.get("/{recurring_id}", response_model=RecurringTransactionOut)
def get_recurring_transaction(recurring_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return RecurringTransactionService(db).get_by_id(current_user.id, recurring_id)


@router.get("/{recurring_id}/upcoming", response_model=RecurringUpcomingOut)
def list_upcoming_occurrences(
    recurring_id: int,
    count: int = Query(5, ge=1, le=100),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = RecurringTransactionService(db)
    row = svc.get_by_id(current_user.id, recurring_id)
    return RecurringUpcomingOut(recurring_transaction_id=row.id, occurrences=svc.upcoming(row, count))


@router.patch("/{recurring_id}", response_model=RecurringTransactionOut)
def update_recurring_transaction(
    recurring_id: int,
    payload: RecurringTransactionUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = RecurringTransactionService(db)
    row = svc.get_by_id(current_user.id, recurring_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.put("/{recurring_id}/active", response_model=RecurringTransactionOut)
def toggle_recurring_transaction(
    recurring_id: int,
    payload: RecurringTransactionToggle,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = RecurringTransactionService(db)
    row = svc.get_by_id(current_user.id, recurring_id)
    return svc.set_active(row, payload.active)


@router.delete("/{recurring_id}", status_code=204)
def delete_recurring_transaction(recurring_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = RecurringTransactionService(db)
    svc.delete(svc.get_by_id(current_user.id, recurring_id))
    return None
