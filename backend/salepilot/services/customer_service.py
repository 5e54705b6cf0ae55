# Overview: Service-layer operations for customers and their balances.

"""
Customer Balance Ledger

BALANCES:
- store_credit (>= 0): add_store_credit / deduct_store_credit
- account_balance (signed, negative = customer owes): adjust_account_balance

Like the stock ledger, the balance primitives take commit=False when an
orchestrator composes them into its own transaction. Called with
commit=True they are standalone operations and require the
ADJUST_CUSTOMER_BALANCE capability.
"""

from __future__ import annotations

import logging

from sqlalchemy import func

from ..extensions import db
from ..errors import ConflictError, InsufficientCreditError, ValidationError
from ..models import Customer
from ..money import ZERO, money, positive_money
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)


def _normalize_email(email: str | None) -> str | None:
    if email is None:
        return None
    email = email.strip().lower()
    return email or None


def create_customer(
    scope: TenantScope,
    name: str,
    *,
    email: str | None = None,
    phone: str | None = None,
    address: str | None = None,
) -> Customer:
    """Create a customer. Email, when given, must be unique within the tenant."""
    scope.require_capability("MANAGE_CUSTOMERS")
    name = (name or "").strip()
    if not name:
        raise ValidationError("Customer name is required")
    email = _normalize_email(email)

    def _op():
        tenant_id = scope.require()
        if email:
            existing = (
                scoped_query(scope, Customer)
                .filter(func.lower(Customer.email) == email)
                .first()
            )
            if existing:
                raise ConflictError(
                    "A customer with this email already exists",
                    details={"email": email, "customer_id": existing.id},
                )
        customer = Customer(
            tenant_id=tenant_id,
            name=name,
            email=email,
            phone=phone,
            address=address,
            store_credit=ZERO,
            account_balance=ZERO,
        )
        db.session.add(customer)
        db.session.flush()
        append_audit_event(
            scope,
            event_type="customer.created",
            event_category="customers",
            entity_type="customer",
            entity_id=customer.id,
            note=f"Customer {name} created",
        )
        return customer

    return run_in_transaction(_op)


def get_customer(scope: TenantScope, customer_id: int) -> Customer:
    return get_owned(scope, Customer, customer_id)


def list_customers(scope: TenantScope) -> list[Customer]:
    return scoped_query(scope, Customer).order_by(Customer.name).all()


def list_customers_with_outstanding_balance(scope: TenantScope) -> list[Customer]:
    return (
        scoped_query(scope, Customer)
        .filter(Customer.account_balance < 0)
        .order_by(Customer.account_balance)
        .all()
    )


def list_customers_with_store_credit(scope: TenantScope) -> list[Customer]:
    return (
        scoped_query(scope, Customer)
        .filter(Customer.store_credit > 0)
        .order_by(Customer.store_credit.desc())
        .all()
    )


def _run(scope: TenantScope, op, commit: bool):
    if not commit:
        return op()
    scope.require_capability("ADJUST_CUSTOMER_BALANCE")
    return run_in_transaction(op)


def add_store_credit(scope: TenantScope, customer_id: int, amount, *, commit: bool = True) -> Customer:
    """Grant store credit (amount > 0)."""
    amount = positive_money(amount, "amount")

    def _op():
        customer = get_owned(scope, Customer, customer_id, lock=True)
        customer.store_credit = (customer.store_credit or ZERO) + amount
        logger.debug("Customer %s store credit +%s", customer.id, amount)
        return customer

    return _run(scope, _op, commit)


def deduct_store_credit(scope: TenantScope, customer_id: int, amount, *, commit: bool = True) -> Customer:
    """Spend store credit (amount > 0). Never drives store_credit below zero."""
    amount = positive_money(amount, "amount")

    def _op():
        customer = get_owned(scope, Customer, customer_id, lock=True)
        available = customer.store_credit or ZERO
        if amount > available:
            raise InsufficientCreditError(
                "Insufficient store credit",
                details={
                    "customer_id": customer.id,
                    "requested": str(amount),
                    "available": str(available),
                },
            )
        customer.store_credit = available - amount
        logger.debug("Customer %s store credit -%s", customer.id, amount)
        return customer

    return _run(scope, _op, commit)


def adjust_account_balance(scope: TenantScope, customer_id: int, delta, *, commit: bool = True) -> Customer:
    """
    Signed adjustment of account_balance.

    Negative delta: the customer owes more (unpaid sale remainder).
    Positive delta: the customer owes less (payment received).
    """
    delta = money(delta, "delta", allow_negative=True)

    def _op():
        customer = get_owned(scope, Customer, customer_id, lock=True)
        customer.account_balance = (customer.account_balance or ZERO) + delta
        logger.debug("Customer %s account balance change %s", customer.id, delta)
        return customer

    return _run(scope, _op, commit)
