# Overview: Service-layer operations for purchase orders and receiving.

"""
Purchase Receiving Workflow

LIFECYCLE:
1. DRAFT: created
2. ORDERED: sent to supplier (update_status)
3. PARTIALLY_RECEIVED: some quantity received, not all (receive_inventory)
4. RECEIVED: every line fully received, final
5. CANCELED: final; reachable from DRAFT and ORDERED only

RECEIVING:
- received_quantity only grows
- over-receiving a line is a conflict unless ALLOW_OVER_RECEIVE is set
- each received quantity increments stock through the stock ledger
- product cost follows COST_METHOD: WEIGHTED_AVERAGE (default) blends the
  on-hand cost with the received cost; LAST overwrites it
"""

from __future__ import annotations

import logging
from datetime import date
from decimal import Decimal

from flask import current_app

from ..extensions import db
from ..errors import ConflictError, InvalidAmountError, ValidationError
from ..models import Product, PurchaseOrder, PurchaseOrderItem, Supplier
from ..models.purchasing import (
    PO_CANCELED,
    PO_DRAFT,
    PO_ORDERED,
    PO_PARTIALLY_RECEIVED,
    PO_RECEIVED,
    PO_STATUSES,
)
from ..money import ZERO, money, optional_money, quantity, round_money
from salepilot.time_utils import utcnow
from . import stock_service
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)

COST_METHOD_WEIGHTED_AVERAGE = "WEIGHTED_AVERAGE"
COST_METHOD_LAST = "LAST"

# Manual transitions only; receiving drives PARTIALLY_RECEIVED/RECEIVED
ALLOWED_TRANSITIONS = {
    PO_DRAFT: {PO_ORDERED, PO_CANCELED},
    PO_ORDERED: {PO_CANCELED},
    PO_PARTIALLY_RECEIVED: set(),
    PO_RECEIVED: set(),
    PO_CANCELED: set(),
}

FINAL_STATUSES = {PO_RECEIVED, PO_CANCELED}
RECEIVABLE_STATUSES = {PO_ORDERED, PO_PARTIALLY_RECEIVED}


def next_po_number(scope: TenantScope, year: int | None = None) -> str:
    """PO-<year>-<NNNN>, sequential per tenant and year."""
    year = year or utcnow().year
    prefix = f"PO-{year}-"
    count = (
        scoped_query(scope, PurchaseOrder)
        .filter(PurchaseOrder.po_number.like(f"{prefix}%"))
        .count()
    )
    return f"{prefix}{count + 1:04d}"


def weighted_average_cost(on_hand: Decimal, current_cost: Decimal | None,
                          received_qty: Decimal, received_cost: Decimal) -> Decimal:
    """
    Blend on-hand cost with received cost.

    With no usable on-hand stock (none, negative, or no cost recorded) the
    received cost is taken as-is.
    """
    if current_cost is None or on_hand <= 0:
        return round_money(received_cost)
    total_qty = on_hand + received_qty
    return round_money((on_hand * current_cost + received_qty * received_cost) / total_qty)


def create_purchase_order(scope: TenantScope, request: dict) -> PurchaseOrder:
    """
    Create a DRAFT purchase order.

    request keys:
        supplier_id (required)
        items: [{product_id, quantity > 0, cost_price?}]  (cost defaults to product cost)
        shipping_cost, tax: optional, >= 0
        notes, expected_delivery_date (date): optional
    """
    scope.require_capability("MANAGE_PURCHASE_ORDERS")
    supplier_id = request.get("supplier_id")
    if supplier_id is None:
        raise ValidationError("supplier_id is required")
    raw_items = request.get("items") or []
    if not raw_items:
        raise ValidationError("Purchase order must contain at least one item")
    shipping_cost = optional_money(request.get("shipping_cost"), "shipping_cost")
    tax = optional_money(request.get("tax"), "tax")
    expected = request.get("expected_delivery_date")
    if expected is not None and not isinstance(expected, date):
        raise ValidationError("expected_delivery_date must be a date")

    def _op():
        tenant_id = scope.require()
        supplier = get_owned(scope, Supplier, supplier_id)

        po = PurchaseOrder(
            tenant_id=tenant_id,
            po_number=next_po_number(scope),
            supplier_id=supplier.id,
            supplier_name=supplier.name,
            status=PO_DRAFT,
            shipping_cost=shipping_cost,
            tax=tax,
            notes=request.get("notes"),
            expected_delivery_date=expected,
            created_by_user_id=scope.user_id,
        )
        db.session.add(po)

        subtotal = ZERO
        seen_products: set[int] = set()
        for i, raw in enumerate(raw_items):
            if raw.get("product_id") is None:
                raise ValidationError(f"items[{i}].product_id is required")
            product = get_owned(scope, Product, raw["product_id"])
            if product.id in seen_products:
                raise ValidationError(
                    f"Product {product.sku} appears more than once",
                    details={"product_id": product.id},
                )
            seen_products.add(product.id)

            qty = quantity(raw.get("quantity"), f"items[{i}].quantity")
            raw_cost = raw.get("cost_price")
            if raw_cost is None:
                raw_cost = product.cost_price
            if raw_cost is None:
                raise ValidationError(f"items[{i}].cost_price is required (product has no cost)")
            cost = money(raw_cost, f"items[{i}].cost_price")

            db.session.add(PurchaseOrderItem(
                tenant_id=tenant_id,
                purchase_order=po,
                product_id=product.id,
                product_name=product.name,
                sku=product.sku,
                quantity=qty,
                cost_price=cost,
                received_quantity=Decimal("0"),
            ))
            subtotal += round_money(qty * cost)

        po.subtotal = subtotal
        po.total = subtotal + shipping_cost + tax

        db.session.flush()
        append_audit_event(
            scope,
            event_type="purchase_order.created",
            event_category="purchasing",
            entity_type="purchase_order",
            entity_id=po.id,
            note=f"{po.po_number} for {supplier.name}",
            payload={"total": po.total},
        )
        return po

    return run_in_transaction(_op)


def update_status(scope: TenantScope, po_id: int, new_status: str) -> PurchaseOrder:
    """
    Manual status change (order or cancel).

    Raises:
        ConflictError: transition not allowed (final PO, cancel after
        partial receipt, or a receiving status set by hand)
    """
    scope.require_capability("MANAGE_PURCHASE_ORDERS")
    new_status = (new_status or "").strip().upper()
    if new_status not in PO_STATUSES:
        raise ValidationError(
            f"Invalid purchase order status: {new_status}",
            details={"allowed": list(PO_STATUSES)},
        )

    def _op():
        po = get_owned(scope, PurchaseOrder, po_id, lock=True)
        current = po.status
        if current in FINAL_STATUSES:
            raise ConflictError(
                f"Purchase order {po.po_number} is {current} and cannot change",
                details={"status": current},
            )
        if new_status not in ALLOWED_TRANSITIONS[current]:
            raise ConflictError(
                f"Cannot change purchase order from {current} to {new_status}",
                details={"from": current, "to": new_status},
            )

        po.status = new_status
        if new_status == PO_ORDERED:
            po.ordered_at = utcnow()

        append_audit_event(
            scope,
            event_type=f"purchase_order.{new_status.lower()}",
            event_category="purchasing",
            entity_type="purchase_order",
            entity_id=po.id,
            note=f"{po.po_number}: {current} -> {new_status}",
        )
        return po

    return run_in_transaction(_op)


def _parse_receipt(received: dict) -> dict[int, Decimal]:
    if received is not None and not isinstance(received, dict):
        raise ValidationError(
            "Received quantities must map product ids to quantities",
            details={"received": type(received).__name__},
        )
    if not received:
        raise ValidationError("No quantities to receive")
    parsed: dict[int, Decimal] = {}
    for raw_product_id, raw_qty in received.items():
        try:
            product_id = int(raw_product_id)
        except (TypeError, ValueError):
            raise ValidationError("Product ids must be integers", details={"product_id": str(raw_product_id)})
        parsed[product_id] = quantity(raw_qty, f"quantity[{product_id}]", allow_zero=True)
    return parsed


def receive_inventory(scope: TenantScope, po_id: int, received: dict) -> PurchaseOrder:
    """
    Receive quantities against a PO.

    received maps product_id -> quantity received now (0 skips the line).
    A receipt where every quantity is 0 changes nothing and records no event.
    """
    scope.require_capability("RECEIVE_PURCHASE_ORDERS")
    quantities = _parse_receipt(received)
    allow_over = bool(current_app.config.get("ALLOW_OVER_RECEIVE", False))
    cost_method = str(current_app.config.get("COST_METHOD", COST_METHOD_WEIGHTED_AVERAGE)).upper()

    def _op():
        po = get_owned(scope, PurchaseOrder, po_id, lock=True)
        if po.status not in RECEIVABLE_STATUSES:
            raise ConflictError(
                f"Cannot receive against a {po.status} purchase order",
                details={"status": po.status},
            )

        items = (
            scoped_query(scope, PurchaseOrderItem)
            .filter(PurchaseOrderItem.purchase_order_id == po.id)
            .order_by(PurchaseOrderItem.id)
            .all()
        )
        items_by_product = {item.product_id: item for item in items}
        unknown = sorted(set(quantities) - set(items_by_product))
        if unknown:
            raise ValidationError(
                "Products are not on this purchase order",
                details={"product_ids": unknown},
            )

        received_any = False
        for product_id, qty in quantities.items():
            if qty <= 0:
                continue
            item = items_by_product[product_id]
            new_received = (item.received_quantity or Decimal("0")) + qty
            if new_received > item.quantity and not allow_over:
                raise ConflictError(
                    f"Receiving {qty} of {item.sku} exceeds the ordered quantity",
                    details={
                        "product_id": product_id,
                        "ordered": str(item.quantity),
                        "already_received": str(item.received_quantity),
                        "requested": str(qty),
                    },
                )

            product = get_owned(scope, Product, product_id, lock=True)
            on_hand_before = product.stock or Decimal("0")
            stock_service.increment(
                scope,
                product_id,
                qty,
                reference=po.po_number,
                movement_type=stock_service.MOVEMENT_RECEIVE,
                commit=False,
            )
            if cost_method == COST_METHOD_LAST:
                product.cost_price = item.cost_price
            else:
                product.cost_price = weighted_average_cost(
                    on_hand_before, product.cost_price, qty, item.cost_price,
                )
            item.received_quantity = new_received
            received_any = True

        if not received_any:
            return po

        if all(item.fully_received for item in items):
            po.status = PO_RECEIVED
            po.received_at = utcnow()
        elif any((item.received_quantity or 0) > 0 for item in items):
            po.status = PO_PARTIALLY_RECEIVED

        append_audit_event(
            scope,
            event_type="purchase_order.received",
            event_category="purchasing",
            entity_type="purchase_order",
            entity_id=po.id,
            note=f"{po.po_number} now {po.status}",
            payload={str(k): v for k, v in quantities.items()},
        )
        return po

    po = run_in_transaction(_op)
    logger.info("Received against %s (tenant %s): status=%s", po.po_number, po.tenant_id, po.status)
    return po


def get_purchase_order(scope: TenantScope, po_id: int) -> PurchaseOrder:
    return get_owned(scope, PurchaseOrder, po_id)


def get_purchase_order_items(scope: TenantScope, po_id: int) -> list[PurchaseOrderItem]:
    get_owned(scope, PurchaseOrder, po_id)
    return (
        scoped_query(scope, PurchaseOrderItem)
        .filter(PurchaseOrderItem.purchase_order_id == po_id)
        .order_by(PurchaseOrderItem.id)
        .all()
    )


def list_purchase_orders(scope: TenantScope, *, status: str | None = None,
                         supplier_id: int | None = None) -> list[PurchaseOrder]:
    q = scoped_query(scope, PurchaseOrder)
    if status:
        q = q.filter(PurchaseOrder.status == status.upper())
    if supplier_id is not None:
        get_owned(scope, Supplier, supplier_id)
        q = q.filter(PurchaseOrder.supplier_id == supplier_id)
    return q.order_by(PurchaseOrder.id.desc()).all()
