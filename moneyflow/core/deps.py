from __future__ import annotations

from fastapi import Depends
from sqlalchemy.orm import Session

from .database import get_db
from .. import models

DEMO_USER_EMAIL = "demo@example.com"


def _ensure_demo_user(db: Session) -> models.User:
    user = models.User(email=DEMO_USER_EMAIL, name="Demo", is_active=True)
    db.add(user)
    db.commit()
    db.refresh(user)
    return user


def get_current_user(db: Session = Depends(get_db)) -> models.User:
    """Owner of every category, transaction and recurring series in a request.

    There is no login: the lowest-id user is the current one and a demo user
    is created on first use. Tests add more users to check ownership scoping.
    """
    user = db.query(models.User).order_by(models.User.id).first()
    return user if user is not None else _ensure_demo_user(db)
