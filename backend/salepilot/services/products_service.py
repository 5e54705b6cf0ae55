# Overview: Service-layer operations for products.

from __future__ import annotations

from ..extensions import db
from ..errors import ConflictError, ValidationError
from ..models import Category, Product, Supplier
from ..money import money, quantity
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query


def create_product(
    scope: TenantScope,
    *,
    sku: str,
    name: str,
    price,
    cost_price=None,
    stock=0,
    reorder_point=None,
    category_id: int | None = None,
    supplier_id: int | None = None,
    description: str | None = None,
    unit: str = "each",
) -> Product:
    """
    Create a product. SKU is unique per tenant.

    Opening stock is written directly (no StockMovement): the product has no
    history to explain yet.
    """
    scope.require_capability("MANAGE_PRODUCTS")
    sku = (sku or "").strip().upper()
    name = (name or "").strip()
    if not sku:
        raise ValidationError("SKU is required")
    if not name:
        raise ValidationError("Product name is required")
    price = money(price, "price")
    cost_price = money(cost_price, "cost_price") if cost_price is not None else None
    stock = quantity(stock, "stock", allow_zero=True)
    reorder_point = quantity(reorder_point, "reorder_point", allow_zero=True) if reorder_point is not None else None

    def _op():
        tenant_id = scope.require()
        if scoped_query(scope, Product).filter(Product.sku == sku).first():
            raise ConflictError("SKU already exists", details={"sku": sku})
        if category_id is not None:
            get_owned(scope, Category, category_id)
        if supplier_id is not None:
            get_owned(scope, Supplier, supplier_id)

        product = Product(
            tenant_id=tenant_id,
            sku=sku,
            name=name,
            description=description,
            price=price,
            cost_price=cost_price,
            stock=stock,
            reorder_point=reorder_point,
            unit=unit,
            category_id=category_id,
            supplier_id=supplier_id,
        )
        db.session.add(product)
        db.session.flush()
        append_audit_event(
            scope,
            event_type="product.created",
            event_category="inventory",
            entity_type="product",
            entity_id=product.id,
            note=f"Product {sku} created",
        )
        return product

    return run_in_transaction(_op)


def get_product(scope: TenantScope, product_id: int) -> Product:
    return get_owned(scope, Product, product_id)


def get_product_by_sku(scope: TenantScope, sku: str) -> Product | None:
    return scoped_query(scope, Product).filter(Product.sku == (sku or "").strip().upper()).first()


def list_products(scope: TenantScope, *, include_inactive: bool = False) -> list[Product]:
    q = scoped_query(scope, Product)
    if not include_inactive:
        q = q.filter(Product.is_active.is_(True))
    return q.order_by(Product.sku).all()
