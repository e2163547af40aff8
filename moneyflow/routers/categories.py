from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from ..core.database import get_db
from ..core.deps import get_current_user
from ..schemas import CategoryCreate, CategoryOut, CategoryTreeNode, CategoryUpdate
from ..services.category_service import MAX_CATEGORY_DEPTH, CategoryService


router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("", response_model=list[CategoryTreeNode])
def list_categories(
    depth: Optional[int] = Query(None, ge=0, description=f"Nesting depth to include (max {MAX_CATEGORY_DEPTH})"),
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = CategoryService(db)
    return svc.build_tree(svc.get_all(user_id=current_user.id), max_depth=depth)


@router.post("", response_model=CategoryOut, status_code=201)
def create_category(payload: CategoryCreate, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = CategoryService(db)
    return svc.create(payload.model_dump(), user_id=current_user.id)


@router.post("/defaults", response_model=list[CategoryOut], status_code=201)
def create_default_categories(db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = CategoryService(db)
    return svc.create_default_categories(user_id=current_user.id)


@router.get("/{category_id}", response_model=CategoryTreeNode)
def get_category(category_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = CategoryService(db)
    row = svc.get_by_id(current_user.id, category_id)
    node = CategoryOut.model_validate(row, from_attributes=True).model_dump()
    node["path"] = svc.category_path(row)
    node["depth"] = len(node["path"]) - 1
    return node


@router.patch("/{category_id}", response_model=CategoryOut)
def update_category(
    category_id: int,
    payload: CategoryUpdate,
    db: Session = Depends(get_db),
    current_user=Depends(get_current_user),
):
    svc = CategoryService(db)
    row = svc.get_by_id(current_user.id, category_id)
    return svc.update(row, payload.model_dump(exclude_unset=True))


@router.delete("/{category_id}", status_code=204)
def delete_category(category_id: int, db: Session = Depends(get_db), current_user=Depends(get_current_user)):
    svc = CategoryService(db)
    svc.delete(svc.get_by_id(current_user.id, category_id))
    return None
