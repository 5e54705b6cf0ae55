from __future__ import annotations

from sqlalchemy import event, inspect
from sqlalchemy.orm import Session, declared_attr, validates

from ..extensions import db
from ..errors import TenantStateError
from salepilot.time_utils import to_utc_z


class Store(db.Model):
    """
    Multi-tenant root: every tenant is a Store.

    WHY: Shared-database multi-tenancy with strict isolation. Products,
    customers, sales, accounts and purchase orders all belong to exactly one
    store, and no data may cross store boundaries.

    DESIGN:
    - Stores are the tenant boundary
    - Every tenant-owned row carries tenant_id (FK stores.id)
    - All queries must be scoped by tenant_id (see services.tenant_service)
    """
    __tablename__ = "stores"
    __table_args__ = {"sqlite_autoincrement": True}

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code for lookups

    is_active = db.Column(db.Boolean, nullable=False, default=True, index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Store id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "is_active": self.is_active,
            "created_at": to_utc_z(self.created_at),
        }


def persisted_value(obj, key):
    """Current value of key; loads it if the instance was expired by a commit."""
    if inspect(obj).persistent:
        return getattr(obj, key)
    return obj.__dict__.get(key)


class TenantOwnedMixin:
    """
    Column + guards shared by every tenant-owned model.

    INVARIANTS:
    - tenant_id is assigned exactly once, at creation
    - a row cannot be flushed without a tenant_id
    - reassigning tenant_id to a different store raises TenantStateError
    """

    @declared_attr
    def tenant_id(cls):
        return db.Column(db.Integer, db.ForeignKey("stores.id"), nullable=False, index=True)

    @validates("tenant_id")
    def _validate_tenant_id(self, key, value):
        current = persisted_value(self, "tenant_id")
        if current is not None and value != current:
            raise TenantStateError(
                f"Cannot move {type(self).__name__} to another tenant",
                details={"from_tenant_id": current, "to_tenant_id": value},
            )
        return value


@event.listens_for(Session, "before_flush")
def _require_tenant_on_new_rows(session, flush_context, instances):
    for obj in session.new:
        if isinstance(obj, TenantOwnedMixin) and obj.tenant_id is None:
            raise TenantStateError(
                f"No tenant bound while persisting {type(obj).__name__}",
            )
