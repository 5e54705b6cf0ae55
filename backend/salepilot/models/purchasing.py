from __future__ import annotations

from ..extensions import db
from ..money import as_str
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z

PO_DRAFT = "DRAFT"
PO_ORDERED = "ORDERED"
PO_PARTIALLY_RECEIVED = "PARTIALLY_RECEIVED"
PO_RECEIVED = "RECEIVED"
PO_CANCELED = "CANCELED"

PO_STATUSES = (PO_DRAFT, PO_ORDERED, PO_PARTIALLY_RECEIVED, PO_RECEIVED, PO_CANCELED)


class PurchaseOrder(TenantOwnedMixin, db.Model):
    """
    Supplier purchase order.

    LIFECYCLE:
    1. DRAFT: created, editable
    2. ORDERED: sent to supplier (ordered_at set)
    3. PARTIALLY_RECEIVED: some lines short
    4. RECEIVED: every line fully received (received_at set), final
    5. CANCELED: final; only DRAFT/ORDERED can be canceled

    AMOUNTS: subtotal = sum(quantity * cost_price); total = subtotal + shipping_cost + tax
    """
    __tablename__ = "purchase_orders"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "po_number", name="uq_purchase_orders_tenant_number"),
        db.Index("ix_purchase_orders_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    po_number = db.Column(db.String(32), nullable=False)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=False, index=True)
    supplier_name = db.Column(db.String(200), nullable=False)

    status = db.Column(db.String(24), nullable=False, default=PO_DRAFT)

    subtotal = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    shipping_cost = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    tax = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    total = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    notes = db.Column(db.Text, nullable=True)
    expected_delivery_date = db.Column(db.Date, nullable=True)
    ordered_at = db.Column(db.DateTime(timezone=True), nullable=True)
    received_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_by_user_id = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    supplier = db.relationship("Supplier")
    items = db.relationship("PurchaseOrderItem", back_populates="purchase_order", order_by="PurchaseOrderItem.id", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "po_number": self.po_number,
            "supplier_id": self.supplier_id,
            "supplier_name": self.supplier_name,
            "status": self.status,
            "subtotal": as_str(self.subtotal),
            "shipping_cost": as_str(self.shipping_cost),
            "tax": as_str(self.tax),
            "total": as_str(self.total),
            "notes": self.notes,
            "expected_delivery_date": self.expected_delivery_date.isoformat() if self.expected_delivery_date else None,
            "ordered_at": to_utc_z(self.ordered_at),
            "received_at": to_utc_z(self.received_at),
            "created_by_user_id": self.created_by_user_id,
            "created_at": to_utc_z(self.created_at),
            "version_id": self.version_id,
        }


class PurchaseOrderItem(TenantOwnedMixin, db.Model):
    """Ordered line. received_quantity only ever grows."""
    __tablename__ = "purchase_order_items"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    purchase_order_id = db.Column(db.Integer, db.ForeignKey("purchase_orders.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    product_name = db.Column(db.String(200), nullable=False)
    sku = db.Column(db.String(64), nullable=False)
    quantity = db.Column(db.Numeric(12, 3), nullable=False)
    cost_price = db.Column(db.Numeric(12, 2), nullable=False)
    received_quantity = db.Column(db.Numeric(12, 3), nullable=False, default=0)

    purchase_order = db.relationship("PurchaseOrder", back_populates="items")
    product = db.relationship("Product")

    @property
    def fully_received(self) -> bool:
        return (self.received_quantity or 0) >= self.quantity

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "purchase_order_id": self.purchase_order_id,
            "product_id": self.product_id,
            "product_name": self.product_name,
            "sku": self.sku,
            "quantity": as_str(self.quantity),
            "cost_price": as_str(self.cost_price),
            "received_quantity": as_str(self.received_quantity),
            "fully_received": self.fully_received,
        }
