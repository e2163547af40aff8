from __future__ import annotations

from typing import Iterable, Optional

from sqlalchemy.orm import Session

from .. import models
from ..errors import CategoryCycleError, CategoryInUseError, CategoryTypeMismatch, NotFoundError

MAX_CATEGORY_DEPTH = 5

DEFAULT_CATEGORIES: list[tuple[str, models.TxnType, str]] = [
    ("Food", models.TxnType.EXPENSE, "#FF6347"),
    ("Transportation", models.TxnType.EXPENSE, "#4682B4"),
    ("Utilities", models.TxnType.EXPENSE, "#32CD32"),
    ("Entertainment", models.TxnType.EXPENSE, "#FFD700"),
    ("Health", models.TxnType.EXPENSE, "#FF4500"),
    ("Household", models.TxnType.EXPENSE, "#8B4513"),
    ("Other Expenses", models.TxnType.EXPENSE, "#A9A9A9"),
    ("Salary", models.TxnType.INCOME, "#8A2BE2"),
    ("Bonus", models.TxnType.INCOME, "#00CED1"),
    ("Refund", models.TxnType.INCOME, "#FF69B4"),
    ("Other Income", models.TxnType.INCOME, "#20B2AA"),
]


class CategoryService:
    """Hierarchical, per-user categories."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def get_all(self, *, user_id: int) -> list[models.Category]:
        return (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id)
            .order_by(models.Category.id)
            .all()
        )

    def get_by_id(self, user_id: int, category_id: int) -> models.Category:
        row = (
            self.db.query(models.Category)
            .filter(models.Category.user_id == user_id, models.Category.id == category_id)
            .first()
        )
        if row is None:
            raise NotFoundError("Category not found")
        return row

    def require_matching_type(self, user_id: int, category_id: int, txn_type: models.TxnType) -> models.Category:
        """Return the user's category, or raise if it is missing or of another type."""
        category = self.get_by_id(user_id, category_id)
        if category.type != txn_type:
            raise CategoryTypeMismatch(f"Transaction type must match category type ({category.type.value})")
        return category

    def create(self, payload: dict, *, user_id: int) -> models.Category:
        parent_id = payload.get("parent_id")
        if parent_id is not None:
            parent = self._get_parent(user_id, parent_id)
            if parent.type != payload["type"]:
                raise CategoryTypeMismatch("Category type must match parent category type")
            if self.depth_of(parent) + 1 >= MAX_CATEGORY_DEPTH:
                raise CategoryCycleError(f"Categories cannot be nested deeper than {MAX_CATEGORY_DEPTH} levels")
        row = models.Category(user_id=user_id, **payload)
        self.db.add(row)
        self.db.commit()
        self.db.refresh(row)
        return row

    def update(self, row: models.Category, patch: dict) -> models.Category:
        if not patch:
            return row
        if "parent_id" in patch and patch["parent_id"] is not None:
            parent = self._get_parent(row.user_id, patch["parent_id"])
            if parent.type != row.type:
                raise CategoryTypeMismatch("Category type must match parent category type")
            self._ensure_not_ancestor(row, parent)
        for key, value in patch.items():
            setattr(row, key, value)
        self.db.commit()
        self.db.refresh(row)
        return row

    def delete(self, row: models.Category) -> None:
        in_use = (
            self.db.query(models.Transaction.id)
            .filter(models.Transaction.category_id == row.id)
            .first()
            or self.db.query(models.RecurringTransaction.id)
            .filter(models.RecurringTransaction.category_id == row.id)
            .first()
        )
        if in_use:
            raise CategoryInUseError("Category is referenced by transactions")
        has_children = self.db.query(models.Category.id).filter(models.Category.parent_id == row.id).first()
        if has_children:
            raise CategoryInUseError("Category has child categories")
        self.db.delete(row)
        self.db.commit()

    def create_default_categories(self, *, user_id: int) -> list[models.Category]:
        """Seed the default INCOME/EXPENSE set. Idempotent by name."""
        existing = {
            name
            for (name,) in self.db.query(models.Category.name)
            .filter(models.Category.user_id == user_id, models.Category.parent_id.is_(None))
            .all()
        }
        for name, txn_type, color in DEFAULT_CATEGORIES:
            if name in existing:
                continue
            self.db.add(models.Category(user_id=user_id, name=name, type=txn_type, color=color))
        self.db.commit()
        return self.get_all(user_id=user_id)

    # ---- Tree helpers ----------------------------------------------------
    def depth_of(self, row: models.Category) -> int:
        depth = 0
        for _ in self._iter_ancestors(row):
            depth += 1
        return depth

    def build_tree(self, rows: Iterable[models.Category], max_depth: Optional[int] = None) -> list[dict]:
        """Return a forest of plain dicts, children truncated below ``max_depth``."""
        limit = MAX_CATEGORY_DEPTH if max_depth is None else min(max_depth, MAX_CATEGORY_DEPTH)
        by_id = {r.id: r for r in rows}
        children: dict[int | None, list[models.Category]] = {}
        for r in by_id.values():
            parent_key = r.parent_id if r.parent_id in by_id else None
            children.setdefault(parent_key, []).append(r)

        def _node(r: models.Category, depth: int, path: list[str]) -> dict:
            node_path = path + [r.name]
            kids = children.get(r.id, []) if depth < limit else []
            return {
                "id": r.id,
                "user_id": r.user_id,
                "name": r.name,
                "type": r.type,
                "color": r.color,
                "parent_id": r.parent_id,
                "created_at": r.created_at,
                "depth": depth,
                "path": node_path,
                "children": [_node(k, depth + 1, node_path) for k in sorted(kids, key=lambda x: x.id)],
            }

        roots = sorted(children.get(None, []), key=lambda x: x.id)
        return [_node(r, 0, []) for r in roots]

    def category_path(self, row: models.Category) -> list[str]:
        names = [row.name]
        for ancestor in self._iter_ancestors(row):
            names.append(ancestor.name)
        return list(reversed(names))

    def _iter_ancestors(self, row: models.Category):
        visited = {row.id}
        current = row
        while current.parent_id is not None:
            if current.parent_id in visited or len(visited) > MAX_CATEGORY_DEPTH:
                raise CategoryCycleError("Category hierarchy contains a cycle")
            parent = self.db.get(models.Category, current.parent_id)
            if parent is None:
                return
            visited.add(parent.id)
            yield parent
            current = parent

    def _ensure_not_ancestor(self, row: models.Category, new_parent: models.Category) -> None:
        if new_parent.id == row.id:
            raise CategoryCycleError("Category cannot be its own parent")
        depth = 1
        for ancestor in self._iter_ancestors(new_parent):
            if ancestor.id == row.id:
                raise CategoryCycleError("Category cannot be moved under its own descendant")
            depth += 1
        if depth >= MAX_CATEGORY_DEPTH:
            raise CategoryCycleError(f"Categories cannot be nested deeper than {MAX_CATEGORY_DEPTH} levels")

    def _get_parent(self, user_id: int, parent_id: int) -> models.Category:
        try:
            return self.get_by_id(user_id, parent_id)
        except NotFoundError:
            raise NotFoundError("Parent category not found or does not belong to user") from None
