from __future__ import annotations

from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from .. import models
from ..core.database import get_db
from ..core.deps import get_current_user
from ..schemas import TransactionCreate, TransactionFilters, TransactionOut, TransactionUpdate
from ..services.transaction_service import TransactionService


router = APIRouter(prefix="/transactions", tags=["transactions"])


@router.get("", response_model=list[TransactionOut])
def list_transactions(
    response: Response,
    type: Optional[models.TxnType] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    category_id: Optional[int] = Query(None),
    query: Optional[str] = Query(None, max_length=200),
    sort: Literal["date", "amount"] = Query("date"),
    order: Literal["asc", "desc"] = Query("desc"),
    limit: int = Query(50, ge=1, le=500),
    offset: int = Query(0, ge=0),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    filters = TransactionFilters(
        type=type,
        from_date=from_date,
        to_date=to_date,
        category_id=category_id,
        query=query,
        sort=sort,
        order=order,
        limit=limit,
        offset=offset,
    )
    items, total = TransactionService(db).list(current_user.id, filters)
    response.headers["X-Total-Count"] = str(total)
    return items


@router.post("", response_model=TransactionOut, status_code=201)
def create_transaction(payload: TransactionCreate, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    row, _ = TransactionService(db).create(payload, user_id=current_user.id)
    return row


@router.get("/{txn_id}", response_model=TransactionOut)
def get_transaction(txn_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    return TransactionService(db).get_by_id(current_user.id, txn_id)


@router.patch("/{txn_id}", response_model=TransactionOut)
def update_transaction(
    txn_id: int,
    payload: TransactionUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = TransactionService(db)
    row = svc.get_by_id(current_user.id, txn_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.delete("/{txn_id}", status_code=204)
def delete_transaction(txn_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = TransactionService(db)
    svc.delete(svc.get_by_id(current_user.id, txn_id))
    return None
