# Overview: Service-layer operations for the payment ledger.

"""
Payment Ledger

WHY: Every amount received against a sale is an immutable Payment row.
Sale.amount_paid is the running total; the rows are the evidence.

INVARIANTS:
- Payments are append-only: no update, no delete
- amount > 0, method required
- Written in the caller's transaction (record_payment never commits)
"""

from __future__ import annotations

import uuid

from ..extensions import db
from ..errors import ValidationError
from ..models import Payment, Sale
from ..money import positive_money
from .tenant_service import TenantScope, get_owned, scoped_query


def new_payment_id() -> str:
    return str(uuid.uuid4())


def record_payment(
    scope: TenantScope,
    sale: Sale,
    amount,
    method: str,
    reference: str | None = None,
) -> Payment:
    """Append a payment row for sale. Does not touch sale.amount_paid."""
    amount = positive_money(amount, "amount")
    method = (method or "").strip()
    if not method:
        raise ValidationError("Payment method is required")

    payment = Payment(
        tenant_id=scope.require(),
        payment_id=new_payment_id(),
        sale_id=sale.id,
        amount=amount,
        method=method,
        reference=(reference or "").strip() or None,
        created_by_user_id=scope.user_id,
    )
    db.session.add(payment)
    return payment


def list_payments_for_sale(scope: TenantScope, sale_id: int) -> list[Payment]:
    get_owned(scope, Sale, sale_id)
    return (
        scoped_query(scope, Payment)
        .filter(Payment.sale_id == sale_id)
        .order_by(Payment.id)
        .all()
    )
