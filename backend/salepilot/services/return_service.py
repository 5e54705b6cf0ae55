"""
Return Orchestrator

WHY: Returns reverse a sale's effects: returned goods go back on the shelf
(unless damaged), and the refund is either paid out or credited to the
customer's store credit.

DESIGN:
- Refunds are tracked cumulatively on Sale.refunded_amount. A new refund may
  not exceed amount_paid - refunded_amount, so repeated partial returns can
  never refund more than was paid.
- refund_status compares the cumulative refund with the sale total.
- Each returned product must be on the original sale, and the quantity
  returned across all returns may not exceed the quantity sold.
- Refund method "Store Credit" (case-insensitive) credits the customer.
  Without a customer on the sale the credit has nowhere to go; the return
  is still recorded and a warning is logged.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from sqlalchemy import func

from ..extensions import db
from ..errors import InvalidAmountError, ValidationError
from ..models import Product, Return, ReturnItem, Sale, SaleItem
from ..models.sales import REFUND_FULL, REFUND_PARTIAL
from ..money import ZERO, positive_money, quantity
from . import customer_service, stock_service
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)

STORE_CREDIT_METHOD = "store credit"


def is_store_credit_method(method: str | None) -> bool:
    return (method or "").strip().lower() == STORE_CREDIT_METHOD


def _sold_quantities(sale_id: int) -> dict[int, Decimal]:
    rows = (
        db.session.query(SaleItem.product_id, func.sum(SaleItem.quantity))
        .filter(SaleItem.sale_id == sale_id)
        .group_by(SaleItem.product_id)
        .all()
    )
    return {product_id: Decimal(str(total)) for product_id, total in rows}


def _returned_quantities(sale_id: int) -> dict[int, Decimal]:
    rows = (
        db.session.query(ReturnItem.product_id, func.sum(ReturnItem.quantity))
        .join(Return, Return.id == ReturnItem.return_id)
        .filter(Return.original_sale_id == sale_id)
        .group_by(ReturnItem.product_id)
        .all()
    )
    return {product_id: Decimal(str(total)) for product_id, total in rows}


def _parse_items(raw_items) -> list[dict]:
    if not raw_items:
        raise ValidationError("Return must contain at least one item")
    parsed = []
    for i, raw in enumerate(raw_items):
        if not isinstance(raw, dict):
            raise ValidationError(f"items[{i}] must be an object")
        if raw.get("product_id") is None:
            raise ValidationError(f"items[{i}].product_id is required")
        parsed.append({
            "product_id": raw["product_id"],
            "quantity": quantity(raw.get("quantity"), f"items[{i}].quantity"),
            "add_to_stock": bool(raw.get("add_to_stock", True)),
            "reason": raw.get("reason"),
        })
    return parsed


def create_return(scope: TenantScope, request: dict) -> Return:
    """
    Create a return against a prior sale.

    request keys:
        sale_id: original sale
        refund_amount: > 0, at most what was paid and not yet refunded
        refund_method: e.g. "Cash", "Card", "Store Credit"
        reason: optional
        items: [{product_id, quantity, add_to_stock=True, reason?}]
    """
    scope.require_capability("PROCESS_RETURN")
    sale_id = request.get("sale_id")
    if sale_id is None:
        raise ValidationError("sale_id is required")
    refund_amount = positive_money(request.get("refund_amount"), "refund_amount")
    refund_method = (request.get("refund_method") or "").strip()
    if not refund_method:
        raise ValidationError("refund_method is required")
    items = _parse_items(request.get("items"))

    def _op():
        tenant_id = scope.require()
        sale = get_owned(scope, Sale, sale_id, lock=True)

        already_refunded = sale.refunded_amount or ZERO
        refundable = (sale.amount_paid or ZERO) - already_refunded
        if refund_amount > refundable:
            raise InvalidAmountError(
                "Refund amount exceeds amount paid",
                details={
                    "refund_amount": str(refund_amount),
                    "amount_paid": str(sale.amount_paid),
                    "already_refunded": str(already_refunded),
                },
            )

        sold = _sold_quantities(sale.id)
        returned = _returned_quantities(sale.id)

        ret = Return(
            tenant_id=tenant_id,
            return_id=str(uuid.uuid4()),
            original_sale_id=sale.id,
            refund_amount=refund_amount,
            refund_method=refund_method,
            reason=request.get("reason"),
            created_by_user_id=scope.user_id,
        )
        db.session.add(ret)

        for item in items:
            product = get_owned(scope, Product, item["product_id"])
            qty = item["quantity"]
            if product.id not in sold:
                raise ValidationError(
                    f"Product {product.sku} is not on this sale",
                    details={"product_id": product.id, "sale_id": sale.id},
                )
            already_returned = returned.get(product.id, Decimal("0"))
            if already_returned + qty > sold[product.id]:
                raise InvalidAmountError(
                    f"Cannot return more {product.sku} than was sold",
                    details={
                        "product_id": product.id,
                        "sold": str(sold[product.id]),
                        "already_returned": str(already_returned),
                        "requested": str(qty),
                    },
                )
            returned[product.id] = already_returned + qty

            if item["add_to_stock"]:
                stock_service.increment(
                    scope,
                    product.id,
                    qty,
                    reference=ret.return_id,
                    movement_type=stock_service.MOVEMENT_RETURN,
                    commit=False,
                )

            db.session.add(ReturnItem(
                tenant_id=tenant_id,
                return_doc=ret,
                product_id=product.id,
                product_name=product.name,
                quantity=qty,
                reason=item["reason"],
                add_to_stock=item["add_to_stock"],
            ))

        sale.refunded_amount = already_refunded + refund_amount
        sale.refund_status = REFUND_FULL if sale.refunded_amount >= sale.total else REFUND_PARTIAL

        if is_store_credit_method(refund_method):
            if sale.customer_id is not None:
                customer_service.add_store_credit(scope, sale.customer_id, refund_amount, commit=False)
            else:
                logger.warning(
                    "Store credit refund on sale %s without a customer; no credit issued",
                    sale.transaction_id,
                )

        db.session.flush()
        append_audit_event(
            scope,
            event_type="return.created",
            event_category="returns",
            entity_type="return",
            entity_id=ret.id,
            note=f"Return against {sale.transaction_id}",
            payload={
                "refund_amount": refund_amount,
                "refund_method": refund_method,
                "refund_status": sale.refund_status,
            },
        )
        return ret

    return run_in_transaction(_op)


def get_return(scope: TenantScope, return_id: int) -> Return:
    return get_owned(scope, Return, return_id)


def get_return_items(scope: TenantScope, return_id: int) -> list[ReturnItem]:
    get_owned(scope, Return, return_id)
    return (
        scoped_query(scope, ReturnItem)
        .filter(ReturnItem.return_id == return_id)
        .order_by(ReturnItem.id)
        .all()
    )


def list_returns(scope: TenantScope, *, sale_id: int | None = None) -> list[Return]:
    q = scoped_query(scope, Return)
    if sale_id is not None:
        get_owned(scope, Sale, sale_id)
        q = q.filter(Return.original_sale_id == sale_id)
    return q.order_by(Return.id.desc()).all()
