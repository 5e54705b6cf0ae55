"""
Accounting Ledger: double-entry journal posting and account balances

WHY: Every journal entry must balance (sum of debits == sum of credits,
exact decimal equality). Account balances are running totals updated by
the same transaction that writes the entry, so an entry is either fully
posted or not posted at all.

BALANCE RULE:
- debit-normal account (ASSET, EXPENSE): DEBIT adds, CREDIT subtracts
- credit-normal account (LIABILITY, EQUITY, REVENUE): DEBIT subtracts, CREDIT adds

Posting is manual only: sales, returns and receiving do not post entries.

TRIAL BALANCE: built from the cached account balances, not by replaying
journal lines.
"""

from __future__ import annotations

import logging
from datetime import datetime
from decimal import Decimal

from ..extensions import db
from ..errors import ConflictError, UnbalancedEntryError, ValidationError
from ..models import Account, JournalEntry, JournalEntryLine
from ..models.accounting import (
    ACCOUNT_SUB_TYPES,
    ACCOUNT_TYPES,
    DEBIT_NORMAL_TYPES,
    LINE_CREDIT,
    LINE_DEBIT,
    SINGLETON_SUB_TYPES,
    SOURCE_TYPES,
)
from ..money import ZERO, positive_money
from salepilot.time_utils import utcnow
from .audit_service import append_audit_event
from .concurrency import run_in_transaction
from .tenant_service import TenantScope, get_owned, scoped_query

logger = logging.getLogger(__name__)


# Default chart of accounts: (number, name, type, sub_type)
DEFAULT_CHART_OF_ACCOUNTS = [
    ("1010", "Cash", "ASSET", "CASH"),
    ("1200", "Accounts Receivable", "ASSET", "ACCOUNTS_RECEIVABLE"),
    ("1300", "Inventory", "ASSET", "INVENTORY"),
    ("2010", "Accounts Payable", "LIABILITY", "ACCOUNTS_PAYABLE"),
    ("2200", "Sales Tax Payable", "LIABILITY", "SALES_TAX_PAYABLE"),
    ("2300", "Store Credit Payable", "LIABILITY", "STORE_CREDIT_PAYABLE"),
    ("3000", "Opening Balance Equity", "EQUITY", None),
    ("4010", "Sales Revenue", "REVENUE", "SALES_REVENUE"),
    ("5010", "Cost of Goods Sold", "EXPENSE", "COGS"),
    ("5100", "Inventory Adjustments", "EXPENSE", "INVENTORY_ADJUSTMENT"),
]


def default_is_debit_normal(account_type: str) -> bool:
    return account_type in DEBIT_NORMAL_TYPES


# =============================================================================
# ACCOUNTS
# =============================================================================

def _new_account(scope: TenantScope, account_number: str, name: str, account_type: str,
                 sub_type: str | None, is_debit_normal: bool | None,
                 description: str | None) -> Account:
    account_number = (account_number or "").strip()
    name = (name or "").strip()
    account_type = (account_type or "").strip().upper()
    sub_type = sub_type.strip().upper() if sub_type else None

    if not account_number:
        raise ValidationError("Account number is required")
    if not name:
        raise ValidationError("Account name is required")
    if account_type not in ACCOUNT_TYPES:
        raise ValidationError(
            f"Invalid account type: {account_type}",
            details={"allowed": list(ACCOUNT_TYPES)},
        )
    if sub_type is not None and sub_type not in ACCOUNT_SUB_TYPES:
        raise ValidationError(
            f"Invalid account sub-type: {sub_type}",
            details={"allowed": list(ACCOUNT_SUB_TYPES)},
        )

    if scoped_query(scope, Account).filter(Account.account_number == account_number).first():
        raise ConflictError(
            f"Account number {account_number} already exists",
            details={"account_number": account_number},
        )
    if sub_type in SINGLETON_SUB_TYPES:
        if scoped_query(scope, Account).filter(Account.sub_type == sub_type).first():
            raise ConflictError(
                f"An account with sub-type {sub_type} already exists",
                details={"sub_type": sub_type},
            )

    account = Account(
        tenant_id=scope.require(),
        account_number=account_number,
        name=name,
        description=description,
        account_type=account_type,
        sub_type=sub_type,
        balance=ZERO,
        is_debit_normal=default_is_debit_normal(account_type) if is_debit_normal is None else bool(is_debit_normal),
    )
    db.session.add(account)
    # Flush so a later duplicate in the same transaction sees this row
    db.session.flush()
    return account


def create_account(
    scope: TenantScope,
    *,
    account_number: str,
    name: str,
    account_type: str,
    sub_type: str | None = None,
    is_debit_normal: bool | None = None,
    description: str | None = None,
) -> Account:
    """
    Create an account.

    Raises:
        ConflictError: duplicate number, or a second AR/AP/sales-tax account
    """
    scope.require_capability("MANAGE_ACCOUNTS")

    def _op():
        return _new_account(scope, account_number, name, account_type, sub_type,
                            is_debit_normal, description)

    return run_in_transaction(_op)


def initialize_default_accounts(scope: TenantScope) -> list[Account]:
    """Create the default chart of accounts. No-op when the tenant has any account."""
    scope.require_capability("MANAGE_ACCOUNTS")

    def _op():
        if scoped_query(scope, Account).first() is not None:
            return []
        return [
            _new_account(scope, number, name, account_type, sub_type, None, None)
            for number, name, account_type, sub_type in DEFAULT_CHART_OF_ACCOUNTS
        ]

    created = run_in_transaction(_op)
    if created:
        logger.info("Initialized %d default accounts for tenant %s", len(created), scope.get())
    return created


def get_account(scope: TenantScope, account_id: int) -> Account:
    scope.require_capability("VIEW_ACCOUNTING")
    return get_owned(scope, Account, account_id)


def get_account_by_number(scope: TenantScope, account_number: str) -> Account | None:
    scope.require_capability("VIEW_ACCOUNTING")
    return scoped_query(scope, Account).filter(Account.account_number == account_number).first()


def list_accounts(scope: TenantScope, *, account_type: str | None = None) -> list[Account]:
    scope.require_capability("VIEW_ACCOUNTING")
    q = scoped_query(scope, Account)
    if account_type:
        q = q.filter(Account.account_type == account_type.upper())
    return q.order_by(Account.account_number).all()


# =============================================================================
# JOURNAL ENTRIES
# =============================================================================

def _parse_lines(raw_lines) -> list[dict]:
    if not raw_lines:
        raise ValidationError("Journal entry must have at least one line")
    parsed = []
    for i, raw in enumerate(raw_lines):
        if not isinstance(raw, dict):
            raise ValidationError(f"lines[{i}] must be an object")
        if raw.get("account_id") is None:
            raise ValidationError(f"lines[{i}].account_id is required")
        line_type = (raw.get("type") or "").strip().upper()
        if line_type not in (LINE_DEBIT, LINE_CREDIT):
            raise ValidationError(f"lines[{i}].type must be DEBIT or CREDIT")
        parsed.append({
            "account_id": raw["account_id"],
            "type": line_type,
            "amount": positive_money(raw.get("amount"), f"lines[{i}].amount"),
        })
    return parsed


def apply_line_to_balance(account: Account, line_type: str, amount: Decimal) -> None:
    increases = (line_type == LINE_DEBIT) == bool(account.is_debit_normal)
    account.balance = (account.balance or ZERO) + (amount if increases else -amount)


def post_journal_entry(scope: TenantScope, entry: dict) -> JournalEntry:
    """
    Post a balanced journal entry and update account balances.

    entry keys:
        description (required), date (datetime, default now),
        source_type (SALE/PURCHASE/MANUAL/PAYMENT, default MANUAL), source_id,
        lines: [{account_id, type: DEBIT|CREDIT, amount > 0}]

    Raises:
        UnbalancedEntryError: debits != credits (nothing is written)
    """
    scope.require_capability("POST_JOURNAL_ENTRIES")

    description = (entry.get("description") or "").strip()
    if not description:
        raise ValidationError("Journal entry description is required")
    source_type = (entry.get("source_type") or "MANUAL").strip().upper()
    if source_type not in SOURCE_TYPES:
        raise ValidationError(
            f"Invalid source type: {source_type}",
            details={"allowed": list(SOURCE_TYPES)},
        )
    entry_date = entry.get("date") or utcnow()
    if not isinstance(entry_date, datetime):
        raise ValidationError("date must be a datetime")
    lines = _parse_lines(entry.get("lines"))

    total_debit = sum((line["amount"] for line in lines if line["type"] == LINE_DEBIT), ZERO)
    total_credit = sum((line["amount"] for line in lines if line["type"] == LINE_CREDIT), ZERO)
    if total_debit != total_credit:
        raise UnbalancedEntryError(
            "Journal entry is not balanced",
            details={"total_debit": str(total_debit), "total_credit": str(total_credit)},
        )

    def _op():
        tenant_id = scope.require()
        journal_entry = JournalEntry(
            tenant_id=tenant_id,
            entry_date=entry_date,
            description=description,
            source_type=source_type,
            source_id=str(entry["source_id"]) if entry.get("source_id") is not None else None,
            created_by_user_id=scope.user_id,
        )
        db.session.add(journal_entry)

        for number, line in enumerate(lines, start=1):
            account = get_owned(scope, Account, line["account_id"], lock=True)
            db.session.add(JournalEntryLine(
                tenant_id=tenant_id,
                journal_entry=journal_entry,
                line_number=number,
                account_id=account.id,
                account_name=account.name,
                line_type=line["type"],
                amount=line["amount"],
            ))
            apply_line_to_balance(account, line["type"], line["amount"])

        db.session.flush()
        append_audit_event(
            scope,
            event_type="journal_entry.posted",
            event_category="accounting",
            entity_type="journal_entry",
            entity_id=journal_entry.id,
            note=description,
            payload={"total": total_debit, "lines": len(lines)},
        )
        return journal_entry

    return run_in_transaction(_op)


def get_journal_entry(scope: TenantScope, entry_id: int) -> JournalEntry:
    scope.require_capability("VIEW_ACCOUNTING")
    return get_owned(scope, JournalEntry, entry_id)


def list_journal_entries(scope: TenantScope, *, start: datetime | None = None,
                         end: datetime | None = None,
                         source_type: str | None = None) -> list[JournalEntry]:
    scope.require_capability("VIEW_ACCOUNTING")
    q = scoped_query(scope, JournalEntry)
    if start is not None:
        q = q.filter(JournalEntry.entry_date >= start)
    if end is not None:
        q = q.filter(JournalEntry.entry_date <= end)
    if source_type:
        q = q.filter(JournalEntry.source_type == source_type.upper())
    return q.order_by(JournalEntry.entry_date.desc(), JournalEntry.id.desc()).all()


# =============================================================================
# TRIAL BALANCE
# =============================================================================

def get_trial_balance(scope: TenantScope) -> dict:
    """
    Classify each account's balance into a debit or credit column.

    A debit-normal account with a positive balance sits in the debit column,
    a negative one in the credit column (and the reverse for credit-normal
    accounts). is_balanced compares the two column totals.
    """
    scope.require_capability("VIEW_ACCOUNTING")
    rows = []
    total_debit = ZERO
    total_credit = ZERO
    for account in list_accounts(scope):
        balance = account.balance or ZERO
        debit = credit = ZERO
        if account.is_debit_normal:
            if balance >= 0:
                debit = balance
            else:
                credit = -balance
        else:
            if balance >= 0:
                credit = balance
            else:
                debit = -balance
        total_debit += debit
        total_credit += credit
        rows.append({
            "account_id": account.id,
            "account_number": account.account_number,
            "account_name": account.name,
            "account_type": account.account_type,
            "debit": debit,
            "credit": credit,
        })
    return {
        "accounts": rows,
        "total_debit": total_debit,
        "total_credit": total_credit,
        "is_balanced": total_debit == total_credit,
    }
