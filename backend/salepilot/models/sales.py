from __future__ import annotations

from ..extensions import db
from ..money import ZERO, as_str, round_money
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z

PAYMENT_UNPAID = "UNPAID"
PAYMENT_PARTIALLY_PAID = "PARTIALLY_PAID"
PAYMENT_PAID = "PAID"

REFUND_NONE = "NONE"
REFUND_PARTIAL = "PARTIALLY_REFUNDED"
REFUND_FULL = "FULLY_REFUNDED"


class Sale(TenantOwnedMixin, db.Model):
    """
    Completed sale with its settlement state.

    WHY: A sale is created in one shot (items, stock decrement, store credit,
    first payment) and then settled over time through add_payment.

    AMOUNTS:
    - total = subtotal - discount + tax
    - amount_paid = cash/card received + store credit applied
    - balance_due = max(total - amount_paid, 0), derived on read
    - refunded_amount = cumulative refunds across all returns
    """
    __tablename__ = "sales"
    __table_args__ = (
        db.Index("ix_sales_tenant_created", "tenant_id", "created_at"),
        db.Index("ix_sales_tenant_payment_status", "tenant_id", "payment_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # Human-readable id, e.g. "TRX-1760000000000-9F2C"
    transaction_id = db.Column(db.String(64), nullable=False, unique=True)

    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=True, index=True)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    discount = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    store_credit_used = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    amount_paid = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    refunded_amount = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    payment_status = db.Column(db.String(16), nullable=False, default=PAYMENT_UNPAID)
    refund_status = db.Column(db.String(24), nullable=False, default=REFUND_NONE)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("sales", lazy=True))
    items = db.relationship("SaleItem", back_populates="sale", order_by="SaleItem.id", lazy=True)
    payments = db.relationship("Payment", back_populates="sale", order_by="Payment.id", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def balance_due(self):
        remaining = (self.total or ZERO) - (self.amount_paid or ZERO)
        return remaining if remaining > 0 else ZERO

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "transaction_id": self.transaction_id,
            "customer_id": self.customer_id,
            "subtotal": as_str(self.subtotal),
            "discount": as_str(self.discount),
            "tax": as_str(self.tax),
            "total": as_str(self.total),
            "store_credit_used": as_str(self.store_credit_used),
            "amount_paid": as_str(self.amount_paid),
            "balance_due": as_str(self.balance_due),
            "refunded_amount": as_str(self.refunded_amount),
            "payment_status": self.payment_status,
            "refund_status": self.refund_status,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class SaleItem(TenantOwnedMixin, db.Model):
    """Line on a sale. Price and cost are snapshots taken at sale time."""
    __tablename__ = "sale_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    price_at_sale = db.Column(db.Numeric(12, 2), nullable=False)
    cost_at_sale = db.Column(db.Numeric(12, 2), nullable=True)

    sale = db.relationship("Sale", back_populates="items")
    product = db.relationship("Product")

    @property
    def line_total(self):
        return round_money(self.price_at_sale * self.quantity)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "sale_id": self.sale_id,
            "product_id": self.product_id,
            "quantity": as_str(self.quantity),
            "price_at_sale": as_str(self.price_at_sale),
            "cost_at_sale": as_str(self.cost_at_sale),
            "line_total": as_str(self.line_total),
        }


class Payment(TenantOwnedMixin, db.Model):
    """
    Payment record for sales.

    WHY: Track how customers pay for sales, including later payments against
    an open balance.

    DESIGN: Append-only. A payment is never updated or deleted; corrections
    are new rows (refunds live on Return).
    """
    __tablename__ = "payments"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    payment_id = db.Column(db.String(36), nullable=False, unique=True)
    sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    amount = db.Column(db.Numeric(12, 2), nullable=False)
    method = db.Column(db.String(32), nullable=False)
    reference = db.Column(db.String(128), nullable=True)

    payment_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    created_by_user_id = db.Column(db.Integer, nullable=True)

    sale = db.relationship("Sale", back_populates="payments")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "payment_id": self.payment_id,
            "sale_id": self.sale_id,
            "amount": as_str(self.amount),
            "method": self.method,
            "reference": self.reference,
            "payment_date": to_utc_z(self.payment_date),
            "created_by_user_id": self.created_by_user_id,
        }
