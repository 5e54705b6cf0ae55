from __future__ import annotations

from ..extensions import db
from ..money import as_str
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z


class Category(TenantOwnedMixin, db.Model):
    """
    Product category with an optional parent.

    DESIGN: Flat parent_id reference (no ORM-managed tree). Cycles are
    rejected at write time by category_service, so walking parents always
    terminates.
    """
    __tablename__ = "categories"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_categories_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    description = db.Column(db.String(255), nullable=True)
    parent_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "description": self.description,
            "parent_id": self.parent_id,
            "created_at": to_utc_z(self.created_at),
        }


class Supplier(TenantOwnedMixin, db.Model):
    """Supplier master record (purchase orders reference it)."""
    __tablename__ = "suppliers"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "name", name="uq_suppliers_tenant_name"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    contact_name = db.Column(db.String(120), nullable=True)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "contact_name": self.contact_name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


class Product(TenantOwnedMixin, db.Model):
    """
    Product master data plus quantity on hand.

    WHY: stock is the one mutable counter every orchestrator touches
    (sales decrement, returns/receiving increment, stock takes overwrite).
    All writes go through services.stock_service so each change is locked,
    versioned and recorded as a StockMovement.

    LOW STOCK: derived on read (is_low_stock), never stored.
    """
    __tablename__ = "products"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "sku", name="uq_products_tenant_sku"),
        db.Index("ix_products_tenant_active", "tenant_id", "is_active"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    sku = db.Column(db.String(64), nullable=False)
    name = db.Column(db.String(200), nullable=False)
    description = db.Column(db.Text, nullable=True)

    price = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    cost_price = db.Column(db.Numeric(12, 2), nullable=True)

    stock = db.Column(db.Numeric(12, 3), nullable=False, default=0)
    reorder_point = db.Column(db.Numeric(12, 3), nullable=True)
    unit = db.Column(db.String(16), nullable=False, default="each")

    category_id = db.Column(db.Integer, db.ForeignKey("categories.id"), nullable=True, index=True)
    supplier_id = db.Column(db.Integer, db.ForeignKey("suppliers.id"), nullable=True, index=True)

    is_active = db.Column(db.Boolean, nullable=False, default=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    category = db.relationship("Category")
    supplier = db.relationship("Supplier")
    __mapper_args__ = {"version_id_col": version_id}

    @property
    def is_low_stock(self) -> bool:
        return self.reorder_point is not None and self.stock <= self.reorder_point

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "sku": self.sku,
            "name": self.name,
            "description": self.description,
            "price": as_str(self.price),
            "cost_price": as_str(self.cost_price),
            "stock": as_str(self.stock),
            "reorder_point": as_str(self.reorder_point),
            "unit": self.unit,
            "category_id": self.category_id,
            "supplier_id": self.supplier_id,
            "is_active": self.is_active,
            "is_low_stock": self.is_low_stock,
            "version_id": self.version_id,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }


class StockMovement(TenantOwnedMixin, db.Model):
    """
    Append-only history of quantity-on-hand changes.

    WHY: Product.stock is a mutable counter; this table explains how it got
    there. One row per StockLedger call, written in the same transaction.

    MOVEMENT TYPES:
    - SALE: decrement at sale creation
    - RETURN: increment for returned items flagged add_to_stock
    - RECEIVE: increment from purchase-order receiving
    - STOCK_TAKE: overwrite from a finalized count
    - ADJUST: any other manual change
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        db.Index("ix_stock_movements_tenant_product", "tenant_id", "product_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey("products.id"), nullable=False, index=True)
    movement_type = db.Column(db.String(16), nullable=False)
    quantity_delta = db.Column(db.Numeric(12, 3), nullable=False)
    stock_after = db.Column(db.Numeric(12, 3), nullable=False)
    reference = db.Column(db.String(128), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    product = db.relationship("Product")

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "product_id": self.product_id,
            "movement_type": self.movement_type,
            "quantity_delta": as_str(self.quantity_delta),
            "stock_after": as_str(self.stock_after),
            "reference": self.reference,
            "occurred_at": to_utc_z(self.occurred_at),
        }
