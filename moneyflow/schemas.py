from __future__ import annotations

import math
from datetime import date, datetime
import datetime as dt
from typing import Optional, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .models import RecurrenceFrequency, TxnType


def _check_amount(v: float | None) -> float | None:
    if v is None:
        return v
    if not math.isfinite(v):
        raise ValueError("amount must be finite")
    if v < 0:
        raise ValueError("amount must not be negative")
    return round(v, 2)


def _reject_null(v):
    # PATCH may omit a field, but null would clear a NOT NULL column
    if v is None:
        raise ValueError("may not be null")
    return v


# --- Categories -------------------------------------------------------------


class CategoryCreate(BaseModel):
    name: str = Field(min_length=1, max_length=100)
    type: TxnType
    color: Optional[str] = Field(default=None, max_length=9)
    parent_id: Optional[int] = None


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1, max_length=100)
    color: Optional[str] = Field(default=None, max_length=9)
    parent_id: Optional[int] = None


class CategoryOut(BaseModel):
    id: int
    user_id: int
    name: str
    type: TxnType
    color: Optional[str]
    parent_id: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class CategoryTreeNode(CategoryOut):
    depth: int = 0
    path: list[str] = Field(default_factory=list)
    children: list["CategoryTreeNode"] = Field(default_factory=list)


# --- Transactions -----------------------------------------------------------


class TransactionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    amount: float
    type: TxnType
    category_id: int
    date: Optional[dt.date] = None
    description: Optional[str] = None
    is_recurring: bool = False
    frequency: Optional[RecurrenceFrequency] = None

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)


class TransactionUpdate(BaseModel):
    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    type: Optional[TxnType] = None
    category_id: Optional[int] = None
    date: Optional[dt.date] = None
    description: Optional[str] = None

    reject_null = field_validator("title", "amount", "type", "category_id", "date")(_reject_null)

    @field_validator("amount")
    def amount_valid(cls, v: float | None):
        return _check_amount(v)


class TransactionOut(BaseModel):
    id: int
    user_id: int
    category_id: int
    title: str
    amount: float
    type: TxnType
    date: dt.date
    description: Optional[str]
    recurring_transaction_id: Optional[int]
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class TransactionFilters(BaseModel):
    type: Optional[TxnType] = None
    from_date: Optional[date] = None
    to_date: Optional[date] = None
    category_id: Optional[int] = None
    query: Optional[str] = None
    sort: Literal["date", "amount"] = "date"
    order: Literal["asc", "desc"] = "desc"
    limit: int = Field(default=50, ge=1, le=500)
    offset: int = Field(default=0, ge=0)


# --- Recurring transactions -------------------------------------------------


class RecurringTransactionCreate(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    amount: float
    type: TxnType
    category_id: int
    frequency: RecurrenceFrequency
    start_date: date
    end_date: Optional[date] = None
    description: Optional[str] = None

    @field_validator("amount")
    def amount_valid(cls, v: float):
        return _check_amount(v)


class RecurringTransactionUpdate(BaseModel):
    """Editable fields only; frequency and start_date are fixed at creation."""

    title: Optional[str] = Field(default=None, min_length=1, max_length=200)
    amount: Optional[float] = None
    type: Optional[TxnType] = None
    category_id: Optional[int] = None
    description: Optional[str] = None
    end_date: Optional[date] = None

    model_config = ConfigDict(extra="forbid")

    reject_null = field_validator("title", "amount", "type", "category_id")(_reject_null)

    @field_validator("amount")
    def amount_valid(cls, v: float | None):
        return _check_amount(v)


class RecurringTransactionToggle(BaseModel):
    active: bool


class RecurringTransactionOut(BaseModel):
    id: int
    user_id: int
    category_id: int
    title: str
    amount: float
    type: TxnType
    description: Optional[str]
    frequency: str
    start_date: date
    next_occurrence: date
    end_date: Optional[date]
    is_active: bool
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class RecurringUpcomingOut(BaseModel):
    recurring_transaction_id: int
    occurrences: list[date]


class MaterializationOut(BaseModel):
    processed: int
    skipped: int
