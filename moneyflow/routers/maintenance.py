from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..schemas import MaterializationOut
from ..services.materializer import SqlAlchemyRecurringStore, run_materialization_pass
from ..utils.dates import utc_today


router = APIRouter(prefix="/maintenance", tags=["maintenance"])


@router.post("/materialize", response_model=MaterializationOut)
def materialize_recurring(
    as_of: Optional[date] = Query(None, description="Run the pass as if today were this date"),
    db: Session = Depends(get_db),
):
    """Run one materialization pass now (the same pass the daily job runs)."""
    today = as_of or utc_today()
    store = SqlAlchemyRecurringStore(db)
    result = run_materialization_pass(store.fetch_due(today), store, now=today)
    return MaterializationOut(processed=result.processed, skipped=result.skipped)
