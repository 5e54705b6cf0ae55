# Overview: Service-layer operations for quantity on hand (the stock ledger).

"""
Stock Ledger

WHY: Product.stock is mutated by sales, returns, purchase receiving and stock
takes. Routing every change through decrement/increment/overwrite gives one
place that checks tenant ownership, locks the row and writes the matching
StockMovement.

DESIGN:
- Primitives are composable: orchestrators call them with commit=False
  inside their own transaction; commit=True runs them as a standalone
  operation (capability ADJUST_STOCK required).
- Negative stock: allowed unless ALLOW_NEGATIVE_STOCK is false, in which
  case decrement raises InsufficientStockError.
- Low stock is derived on read (Product.is_low_stock), never stored.
"""

from __future__ import annotations

import logging
from decimal import Decimal

from flask import current_app

from ..errors import InsufficientStockError
from ..models import Product, StockMovement
from ..money import quantity
from ..extensions import db
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)

MOVEMENT_SALE = "SALE"
MOVEMENT_RETURN = "RETURN"
MOVEMENT_RECEIVE = "RECEIVE"
MOVEMENT_STOCK_TAKE = "STOCK_TAKE"
MOVEMENT_ADJUST = "ADJUST"


def _record_movement(scope: TenantScope, product: Product, movement_type: str,
                     delta: Decimal, reference: str | None) -> StockMovement:
    movement = StockMovement(
        tenant_id=scope.require(),
        product_id=product.id,
        movement_type=movement_type,
        quantity_delta=delta,
        stock_after=product.stock,
        reference=reference,
    )
    db.session.add(movement)
    return movement


def _run(scope: TenantScope, op, commit: bool):
    if not commit:
        return op()
    scope.require_capability("ADJUST_STOCK")
    return run_in_transaction(op)


def decrement(scope: TenantScope, product_id: int, qty, *, reference: str | None = None,
              movement_type: str = MOVEMENT_SALE, commit: bool = True) -> Product:
    """Remove qty (> 0) from the product's stock."""
    qty = quantity(qty)

    def _op():
        product = get_owned(scope, Product, product_id, lock=True)
        new_stock = (product.stock or Decimal("0")) - qty
        if new_stock < 0:
            if not current_app.config.get("ALLOW_NEGATIVE_STOCK", True):
                raise InsufficientStockError(
                    f"Insufficient stock for {product.sku}",
                    details={
                        "product_id": product.id,
                        "requested_quantity": str(qty),
                        "on_hand": str(product.stock),
                    },
                )
            logger.info("Product %s (%s) going negative: %s", product.id, product.sku, new_stock)
        product.stock = new_stock
        _record_movement(scope, product, movement_type, -qty, reference)
        return product

    return _run(scope, _op, commit)


def increment(scope: TenantScope, product_id: int, qty, *, reference: str | None = None,
              movement_type: str = MOVEMENT_ADJUST, commit: bool = True) -> Product:
    """Add qty (> 0) to the product's stock."""
    qty = quantity(qty)

    def _op():
        product = get_owned(scope, Product, product_id, lock=True)
        product.stock = (product.stock or Decimal("0")) + qty
        _record_movement(scope, product, movement_type, qty, reference)
        return product

    return _run(scope, _op, commit)


def overwrite(scope: TenantScope, product_id: int, qty, *, reference: str | None = None,
              movement_type: str = MOVEMENT_STOCK_TAKE, commit: bool = True) -> Product:
    """Set the product's stock to qty (>= 0), recording the difference."""
    qty = quantity(qty, allow_zero=True)

    def _op():
        product = get_owned(scope, Product, product_id, lock=True)
        delta = qty - (product.stock or Decimal("0"))
        product.stock = qty
        _record_movement(scope, product, movement_type, delta, reference)
        return product

    return _run(scope, _op, commit)


def is_low_stock(product: Product) -> bool:
    return product.is_low_stock


def list_low_stock(scope: TenantScope) -> list[Product]:
    return (
        scoped_query(scope, Product)
        .filter(
            Product.is_active.is_(True),
            Product.reorder_point.isnot(None),
            Product.stock <= Product.reorder_point,
        )
        .order_by(Product.sku)
        .all()
    )


def list_stock_movements(scope: TenantScope, product_id: int) -> list[StockMovement]:
    get_owned(scope, Product, product_id)
    return (
        scoped_query(scope, StockMovement)
        .filter(StockMovement.product_id == product_id)
        .order_by(StockMovement.id)
        .all()
    )
