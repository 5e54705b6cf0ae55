from __future__ import annotations

from ..extensions import db
from ..money import as_str
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z

STOCK_TAKE_ACTIVE = "ACTIVE"
STOCK_TAKE_COMPLETED = "COMPLETED"


class StockTake(TenantOwnedMixin, db.Model):
    """
    Physical stock count session.

    LIFECYCLE:
    1. ACTIVE: expected quantities snapshotted, counts being entered
    2. COMPLETED: counted quantities written to Product.stock

    WHY: Counts are the one place stock is overwritten rather than adjusted.
    At most one ACTIVE session per tenant.
    """
    __tablename__ = "stock_takes"
    __table_args__ = (
        db.Index("ix_stock_takes_tenant_status", "tenant_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default=STOCK_TAKE_ACTIVE)
    notes = db.Column(db.Text, nullable=True)

    started_by_user_id = db.Column(db.Integer, nullable=True)
    start_date = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    end_date = db.Column(db.DateTime(timezone=True), nullable=True)
    version_id = db.Column(db.Integer, nullable=False, default=1)

    items = db.relationship("StockTakeItem", back_populates="stock_take", order_by="StockTakeItem.id", lazy=True)
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_items: bool = False) -> dict:
        data = {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "status": self.status,
            "notes": self.notes,
            "started_by_user_id": self.started_by_user_id,
            "start_date": to_utc_z(self.start_date),
            "end_date": to_utc_z(self.end_date),
            "version_id": self.version_id,
        }
        if include_items:
            data["items"] = [item.to_dict() for item in self.items]
        return data


class StockTakeItem(TenantOwnedMixin, db.Model):
    """Expected (snapshot) vs counted quantity for one product."""
    __tablename__ = "stock_take_items"
    __table_args__ = (
        db.UniqueConstraint("stock_take_id", "product_id", name="uq_stock_take_items_take_product"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    stock_take_id = db.Column(db.Integer, db.ForeignKey("stock_takes.id"), nullable=False, index=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False)

    sku = db.Column(db.String(64), nullable=False)
    product_name = db.Column(db.String(200), nullable=False)
    expected = db.Column(db.Numeric(12, 3), nullable=False)
    counted = db.Column(db.Numeric(12, 3), nullable=True)

    stock_take = db.relationship("StockTake", back_populates="items")
    product = db.relationship("Product")

    @property
    def variance(self):
        if self.counted is None:
            return None
        return self.counted - self.expected

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "stock_take_id": self.stock_take_id,
            "product_id": self.product_id,
            "sku": self.sku,
            "product_name": self.product_name,
            "expected": as_str(self.expected),
            "counted": as_str(self.counted),
            "variance": as_str(self.variance),
        }
