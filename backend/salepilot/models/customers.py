from __future__ import annotations

from ..extensions import db
from ..money import as_str
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z


class Customer(TenantOwnedMixin, db.Model):
    """
    Customer with two independent balances.

    BALANCES:
    - store_credit: money the store owes the customer (>= 0). Spent at
      checkout, granted by store-credit refunds.
    - account_balance: signed receivable. Negative means the customer owes
      the store (unpaid remainder of a sale); payments move it back up.

    MULTI-TENANT: email is unique per tenant, not globally.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "email", name="uq_customers_tenant_email"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(200), nullable=False)
    email = db.Column(db.String(255), nullable=True)
    phone = db.Column(db.String(32), nullable=True)
    address = db.Column(db.Text, nullable=True)

    store_credit = db.Column(db.Numeric(12, 2), nullable=False, default=0)
    account_balance = db.Column(db.Numeric(12, 2), nullable=False, default=0)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    __mapper_args__ = {"version_id_col": version_id}

    @property
    def has_outstanding_balance(self) -> bool:
        return self.account_balance is not None and self.account_balance < 0

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "name": self.name,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "store_credit": as_str(self.store_credit),
            "account_balance": as_str(self.account_balance),
            "has_outstanding_balance": self.has_outstanding_balance,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
