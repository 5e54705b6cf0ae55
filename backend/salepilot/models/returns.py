from __future__ import annotations

from ..extensions import db
from ..money import as_str
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z


class Return(TenantOwnedMixin, db.Model):
    """
    Customer return against a prior sale.

    WHY: Reverses a sale's effects (stock, customer balances) and records the
    refund. A sale may have several returns; the sale tracks the cumulative
    refunded amount.

    REFUND METHODS: free text from the caller. "Store Credit" (any casing)
    credits the customer's store_credit instead of paying out money.
    """
    __tablename__ = "returns"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.String(36), nullable=False, unique=True)
    original_sale_id = db.Column(db.Integer, db.ForeignKey("sales.id"), nullable=False, index=True)

    refund_amount = db.Column(db.Numeric(12, 2), nullable=False)
    refund_method = db.Column(db.String(32), nullable=False)
    reason = db.Column(db.String(255), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    original_sale = db.relationship("Sale", backref=db.backref("returns", lazy=True))
    items = db.relationship("ReturnItem", back_populates="return_doc", order_by="ReturnItem.id", lazy=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "original_sale_id": self.original_sale_id,
            "refund_amount": as_str(self.refund_amount),
            "refund_method": self.refund_method,
            "reason": self.reason,
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
        }


class ReturnItem(TenantOwnedMixin, db.Model):
    """Returned product line. add_to_stock=False means damaged/discarded."""
    __tablename__ = "return_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    return_id = db.Column(db.Integer, db.ForeignKey("returns.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    product_name = db.Column(db.String(200), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    reason = db.Column(db.String(255), nullable=True)
    add_to_stock = db.Column(db.Boolean, nullable=False, default=True)

    return_doc = db.relationship("Return", back_populates="items")
    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "return_id": self.return_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "quantity": as_str(self.quantity),
            "reason": self.reason,
            "add_to_stock": self.add_to_stock,
        }
