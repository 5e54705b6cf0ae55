# Overview: Service-layer operations for suppliers.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import Supplier
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query


def create_supplier(
    scope: TenantScope,
    name: str,
    *,
    contact_name: str | None = None,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Supplier:
    scope.require_capability("MANAGE_PRODUCTS")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Supplier name is required")

    def _op():
        if scoped_query(scope, Supplier).filter(Supplier.name == name).first():
            raise ConflictError("Supplier already exists", details={"name": name})
        supplier = Supplier(
            tenant_id=scope.require(),
            name=name,
            contact_name=contact_name,
            email=email,
            phone=phone,
            address=address,
        )
        db.session.add(supplier)
        return supplier

    return run_in_transaction(_op)


def get_supplier(scope: TenantScope, supplier_id: int) -> Supplier:
    return get_owned(scope, Supplier, supplier_id)


def list_suppliers(scope: TenantScope) -> list[Supplier]:
    return scoped_query(scope, Supplier).order_by(Supplier.name).all()
