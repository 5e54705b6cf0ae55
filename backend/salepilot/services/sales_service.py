"""
Sale Orchestrator

WHY: A sale touches four ledgers at once: stock (decrement per line),
customer store credit (spent at checkout), customer account balance (unpaid
remainder) and payments (cash received). create_sale does all of it in one
transaction so a failure on the last line leaves no trace of the first.

PAYMENT STATUS (monotonic toward PAID, never regresses):
- PAID: balance_due == 0
- PARTIALLY_PAID: something paid, balance remains
- UNPAID: nothing paid

OVERPAYMENT: add_payment rejects amounts above the outstanding balance and
payments against an already PAID sale. At creation, tendering more than the
total in cash is allowed (balance_due floors at zero); giving change is the
till's job. Store credit cannot come back as change, so store_credit_used
above the total is rejected before any credit is deducted.
"""

from __future__ import annotations

import logging
import uuid
from decimal import Decimal

from ..extensions import db
from ..errors import ConflictError, InvalidAmountError, ValidationError
from ..models import Customer, Payment, Product, Sale, SaleItem
from ..models.sales import (
    PAYMENT_PAID,
    PAYMENT_PARTIALLY_PAID,
    PAYMENT_UNPAID,
    REFUND_NONE,
)
from ..money import ZERO, money, optional_money, quantity, round_money
from salepilot.time_utils import epoch_millis
from . import customer_service, stock_service
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .payment_service import list_payments_for_sale, record_payment
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)

DEFAULT_PAYMENT_METHOD = "Cash"


def generate_transaction_id() -> str:
    """TRX-<epoch millis>-<4 uppercase hex chars>."""
    return f"TRX-{epoch_millis()}-{uuid.uuid4().hex[:4].upper()}"


def payment_status_for(total: Decimal, amount_paid: Decimal) -> str:
    balance_due = max(total - amount_paid, ZERO)
    if balance_due == 0:
        return PAYMENT_PAID
    if amount_paid > 0:
        return PAYMENT_PARTIALLY_PAID
    return PAYMENT_UNPAID


def _parse_line(raw: dict, index: int) -> tuple[int, Decimal, Decimal | None]:
    if not isinstance(raw, dict):
        raise ValidationError(f"items[{index}] must be an object")
    product_id = raw.get("product_id")
    if product_id is None:
        raise ValidationError(f"items[{index}].product_id is required")
    qty = quantity(raw.get("quantity"), f"items[{index}].quantity")
    price = raw.get("price")
    price = money(price, f"items[{index}].price") if price is not None else None
    return product_id, qty, price


def create_sale(scope: TenantScope, request: dict) -> Sale:
    """
    Create a sale from a request mapping.

    request keys:
        items: [{product_id, quantity, price?}]  (price overrides list price)
        discount, tax: non-negative amounts (default 0)
        customer_id: optional
        store_credit_used: optional, requires customer_id
        amount_paid: cash/card tendered (default 0)
        payment_method, payment_reference: for the Payment row
    """
    scope.require_capability("CREATE_SALE")

    raw_items = request.get("items") or []
    if not raw_items:
        raise ValidationError("Sale must contain at least one item")
    lines = [_parse_line(raw, i) for i, raw in enumerate(raw_items)]

    discount = optional_money(request.get("discount"), "discount")
    tax = optional_money(request.get("tax"), "tax")
    store_credit_used = optional_money(request.get("store_credit_used"), "store_credit_used")
    cash_paid = optional_money(request.get("amount_paid"), "amount_paid")
    customer_id = request.get("customer_id")
    payment_method = request.get("payment_method") or DEFAULT_PAYMENT_METHOD
    payment_reference = request.get("payment_reference")

    if store_credit_used > 0 and customer_id is None:
        raise ValidationError("Store credit can only be used with a customer")

    def _op():
        tenant_id = scope.require()
        customer = get_owned(scope, Customer, customer_id) if customer_id is not None else None

        sale = Sale(
            tenant_id=tenant_id,
            transaction_id=generate_transaction_id(),
            customer_id=customer.id if customer else None,
            created_by_user_id=scope.user_id,
            refund_status=REFUND_NONE,
        )
        db.session.add(sale)

        subtotal = ZERO
        for product_id, qty, price_override in lines:
            product = get_owned(scope, Product, product_id)
            price_at_sale = price_override if price_override is not None else product.price
            stock_service.decrement(
                scope,
                product.id,
                qty,
                reference=sale.transaction_id,
                movement_type=stock_service.MOVEMENT_SALE,
                commit=False,
            )
            db.session.add(SaleItem(
                tenant_id=tenant_id,
                sale=sale,
                product_id=product.id,
                quantity=qty,
                price_at_sale=price_at_sale,
                cost_at_sale=product.cost_price,
            ))
            subtotal += round_money(price_at_sale * qty)

        if discount > subtotal:
            raise InvalidAmountError(
                "Discount cannot exceed subtotal",
                details={"discount": str(discount), "subtotal": str(subtotal)},
            )
        total = subtotal - discount + tax

        if store_credit_used > total:
            raise InvalidAmountError(
                "Store credit used cannot exceed sale total",
                details={"store_credit_used": str(store_credit_used), "total": str(total)},
            )
        if store_credit_used > 0:
            customer_service.deduct_store_credit(scope, customer.id, store_credit_used, commit=False)

        amount_paid = cash_paid + store_credit_used
        balance_due = max(total - amount_paid, ZERO)

        sale.subtotal = subtotal
        sale.discount = discount
        sale.tax = tax
        sale.total = total
        sale.store_credit_used = store_credit_used
        sale.amount_paid = amount_paid
        sale.payment_status = payment_status_for(total, amount_paid)

        if balance_due > 0 and customer is not None:
            customer_service.adjust_account_balance(scope, customer.id, -balance_due, commit=False)

        db.session.flush()

        if cash_paid > 0:
            record_payment(scope, sale, cash_paid, payment_method, payment_reference)

        append_audit_event(
            scope,
            event_type="sale.created",
            event_category="sales",
            entity_type="sale",
            entity_id=sale.id,
            note=f"Sale {sale.transaction_id} created",
            payload={
                "total": total,
                "amount_paid": amount_paid,
                "payment_status": sale.payment_status,
            },
        )
        return sale

    sale = run_in_transaction(_op)
    logger.info(
        "Sale %s created for tenant %s: total=%s status=%s",
        sale.transaction_id, sale.tenant_id, sale.total, sale.payment_status,
    )
    return sale


def add_payment(scope: TenantScope, sale_id: int, amount, method: str,
                reference: str | None = None) -> Payment:
    """
    Apply a later payment against a sale's open balance.

    Raises:
        ConflictError: sale already PAID
        InvalidAmountError: amount <= 0 or above the balance due
    """
    scope.require_capability("TAKE_PAYMENT")
    amount = money(amount, "amount", allow_negative=True)
    if amount <= 0:
        raise InvalidAmountError("Payment amount must be positive", details={"amount": str(amount)})

    def _op():
        sale = get_owned(scope, Sale, sale_id, lock=True)
        if sale.payment_status == PAYMENT_PAID:
            raise ConflictError("Sale is already fully paid", details={"sale_id": sale.id})
        balance_due = sale.balance_due
        if amount > balance_due:
            raise InvalidAmountError(
                "Payment exceeds balance due",
                details={"amount": str(amount), "balance_due": str(balance_due)},
            )

        payment = record_payment(scope, sale, amount, method, reference)
        sale.amount_paid = (sale.amount_paid or ZERO) + amount
        sale.payment_status = PAYMENT_PAID if sale.amount_paid >= sale.total else PAYMENT_PARTIALLY_PAID

        if sale.customer_id is not None:
            customer_service.adjust_account_balance(scope, sale.customer_id, amount, commit=False)

        db.session.flush()
        append_audit_event(
            scope,
            event_type="sale.payment_added",
            event_category="payments",
            entity_type="sale",
            entity_id=sale.id,
            note=f"Payment {payment.payment_id} on {sale.transaction_id}",
            payload={"amount": amount, "method": payment.method},
        )
        return payment

    return run_in_transaction(_op)


def get_sale(scope: TenantScope, sale_id: int) -> Sale:
    scope.require_capability("VIEW_SALES")
    return get_owned(scope, Sale, sale_id)


def get_sale_by_transaction_id(scope: TenantScope, transaction_id: str) -> Sale | None:
    scope.require_capability("VIEW_SALES")
    return scoped_query(scope, Sale).filter(Sale.transaction_id == transaction_id).first()


def get_sale_items(scope: TenantScope, sale_id: int) -> list[SaleItem]:
    scope.require_capability("VIEW_SALES")
    get_owned(scope, Sale, sale_id)
    return (
        scoped_query(scope, SaleItem)
        .filter(SaleItem.sale_id == sale_id)
        .order_by(SaleItem.id)
        .all()
    )


def get_sale_payments(scope: TenantScope, sale_id: int) -> list[Payment]:
    scope.require_capability("VIEW_SALES")
    return list_payments_for_sale(scope, sale_id)


def list_sales(scope: TenantScope, *, payment_status: str | None = None,
               customer_id: int | None = None, limit: int = 100) -> list[Sale]:
    scope.require_capability("VIEW_SALES")
    q = scoped_query(scope, Sale)
    if payment_status:
        q = q.filter(Sale.payment_status == payment_status)
    if customer_id is not None:
        get_owned(scope, Customer, customer_id)
        q = q.filter(Sale.customer_id == customer_id)
    return q.order_by(Sale.id.desc()).limit(limit).all()
