from __future__ import annotations

from sqlalchemy.orm import validates

from ..extensions import db
from ..errors import ConflictError
from ..money import as_str
from .tenancy import TenantOwnedMixin, persisted_value
from salepilot.time_utils import to_utc_z

ACCOUNT_TYPES = ("ASSET", "LIABILITY", "EQUITY", "REVENUE", "EXPENSE")

# Types whose balance grows with debits. The rest grow with credits.
DEBIT_NORMAL_TYPES = frozenset({"ASSET", "EXPENSE"})

ACCOUNT_SUB_TYPES = (
    "CASH",
    "ACCOUNTS_RECEIVABLE",
    "INVENTORY",
    "ACCOUNTS_PAYABLE",
    "SALES_TAX_PAYABLE",
    "SALES_REVENUE",
    "COGS",
    "STORE_CREDIT_PAYABLE",
    "INVENTORY_ADJUSTMENT",
)

# At most one account per tenant may carry these sub-types
SINGLETON_SUB_TYPES = frozenset({
    "ACCOUNTS_RECEIVABLE",
    "ACCOUNTS_PAYABLE",
    "SALES_TAX_PAYABLE",
})

SOURCE_TYPES = ("SALE", "PURCHASE", "MANUAL", "PAYMENT")

LINE_DEBIT = "DEBIT"
LINE_CREDIT = "CREDIT"


class Account(TenantOwnedMixin, db.Model):
    """
    Chart-of-accounts entry with a running balance.

    WHY: Double-entry bookkeeping. The balance is maintained incrementally by
    accounting_service.post_journal_entry, never recomputed from lines.

    DESIGN:
    - is_debit_normal is fixed at creation (defaults from account_type)
    - a debit line adds to a debit-normal account and subtracts from a
      credit-normal one (and vice versa for credits)
    """
    __tablename__ = "accounts"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "account_number", name="uq_accounts_tenant_number"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    account_number = db.Column(db.String(32), nullable=False)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    account_type = db.Column(db.String(16), nullable=False)
    sub_type = db.Column(db.String(32), nullable=True)

    balance = db.Column(db.Numeric(14, 2), nullable=False, default=0)
    is_debit_normal = db.Column(db.Boolean, nullable=False)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @validates("is_debit_normal")
    def _validate_is_debit_normal(self, key, value):
        current = persisted_value(self, "is_debit_normal")
        if current is not None and bool(value) != current:
            raise ConflictError("is_debit_normal cannot change after creation")
        return value

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "account_number": self.account_number,
            "name": self.name,
            "description": self.description,
            "account_type": self.account_type,
            "sub_type": self.sub_type,
            "balance": as_str(self.balance),
            "is_debit_normal": self.is_debit_normal,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class JournalEntry(TenantOwnedMixin, db.Model):
    """
    Balanced journal entry (header).

    IMMUTABLE: entries and their lines are never updated or deleted once
    posted. Corrections are posted as new entries.
    """
    __tablename__ = "journal_entries"
    __table_args__ = (
        db.Index("ix_journal_entries_tenant_date", "tenant_id", "entry_date"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    entry_date = db.Column(db.DateTime(timezone=True), nullable=False)
    description = db.Column(db.String(255), nullable=False)
    source_type = db.Column(db.String(16), nullable=False, default="MANUAL")
    source_id = db.Column(db.String(64), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    lines = db.relationship(
        "JournalEntryLine",
        back_populates="journal_entry",
        order_by="JournalEntryLine.line_number",
        lazy=True,
    )

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "entry_date": to_utc_z(self.entry_date),
            "description": self.description,
            "source_type": self.source_type,
            "source_id": self.source_id,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }
        if include_lines:
            data["lines"] = [line.to_dict() for line in self.lines]
        return data


class JournalEntryLine(TenantOwnedMixin, db.Model):
    """Single debit or credit line. account_name is snapshotted at posting."""
    __tablename__ = "journal_entry_lines"
    __table_args__ = (
        db.CheckConstraint("amount > 0", name="ck_journal_lines_amount_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    journal_entry_id = db.Column(db.Integer, db.ForeignKey("journal_entries.id"), nullable=False, index=True)
    line_number = db.Column(db.Integer, nullable=False)
    account_id = db.Column(db.Integer, db.ForeignKey("accounts.id"), nullable=False, index=True)
    account_name = db.Column(db.String(120), nullable=False)
    line_type = db.Column(db.String(8), nullable=False)  # DEBIT, CREDIT
    amount = db.Column(db.Numeric(14, 2), nullable=False)

    journal_entry = db.relationship("JournalEntry", back_populates="lines")
    account = db.relationship("Account")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "line_number": self.line_number,
            "account_id": self.account_id,
            "account_name": self.account_name,
            "line_type": self.line_type,
            "amount": as_str(self.amount),
        }
