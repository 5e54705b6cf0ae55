# Overview: Service-layer operations for the category hierarchy.

"""
Category Service

DESIGN: Categories form a forest through a flat parent_id reference. The
forest shape is an invariant enforced here at write time: a category's new
parent must not be the category itself or any of its descendants.
Checking "is category an ancestor of new_parent" walks parent links upward
from new_parent, which terminates because the stored data is acyclic.
"""

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import Category
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

_UNSET = object()


def _ensure_unique_name(scope: TenantScope, name: str, exclude_id: int | None = None) -> None:
    q = scoped_query(scope, Category).filter(Category.name == name)
    if exclude_id is not None:
        q = q.filter(Category.id != exclude_id)
    if q.first():
        raise ConflictError("Category name already exists", details={"name": name})


def _would_create_cycle(scope: TenantScope, category_id: int, new_parent_id: int) -> bool:
    seen: set[int] = set()
    current_id = new_parent_id
    while current_id is not None:
        if current_id == category_id:
            return True
        if current_id in seen:
            # Pre-existing loop; treat as a cycle rather than spin
            return True
        seen.add(current_id)
        current_id = get_owned(scope, Category, current_id).parent_id
    return False


def create_category(scope: TenantScope, name: str, *, parent_id: int | None = None,
                    description: str | None = None) -> Category:
    scope.require_capability("MANAGE_PRODUCTS")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Category name is required")

    def _op():
        _ensure_unique_name(scope, name)
        if parent_id is not None:
            get_owned(scope, Category, parent_id)
        category = Category(
            tenant_id=scope.require(),
            name=name,
            description=description,
            parent_id=parent_id,
        )
        db.session.add(category)
        return category

    return run_in_transaction(_op)


def update_category(scope: TenantScope, category_id: int, *, name: str | None = None,
                    description: str | None = None, parent_id=_UNSET) -> Category:
    """
    Update name/description and optionally re-parent.

    Pass parent_id=None to make the category a root.
    """
    scope.require_capability("MANAGE_PRODUCTS")

    def _op():
        category = get_owned(scope, Category, category_id, lock=True)

        if name is not None:
            new_name = name.strip()
            if not new_name:
                raise ValidationError("Category name is required")
            if new_name != category.name:
                _ensure_unique_name(scope, new_name, exclude_id=category.id)
            category.name = new_name

        if description is not None:
            category.description = description

        if parent_id is not _UNSET:
            if parent_id is not None:
                if parent_id == category.id:
                    raise ConflictError("Category cannot be its own parent")
                get_owned(scope, Category, parent_id)
                if _would_create_cycle(scope, category.id, parent_id):
                    raise ConflictError(
                        "Category cannot be moved under one of its descendants",
                        details={"category_id": category.id, "parent_id": parent_id},
                    )
            category.parent_id = parent_id

        return category

    return run_in_transaction(_op)


def get_category(scope: TenantScope, category_id: int) -> Category:
    return get_owned(scope, Category, category_id)


def list_root_categories(scope: TenantScope) -> list[Category]:
    return scoped_query(scope, Category).filter(Category.parent_id.is_(None)).order_by(Category.name).all()


def list_subcategories(scope: TenantScope, parent_id: int) -> list[Category]:
    get_owned(scope, Category, parent_id)
    return scoped_query(scope, Category).filter(Category.parent_id == parent_id).order_by(Category.name).all()
