from __future__ import annotations

from ..extensions import db
from .tenancy import TenantOwnedMixin
from salepilot.time_utils import to_utc_z


class AuditEvent(TenantOwnedMixin, db.Model):
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_tenant_occurred", "tenant_id", "occurred_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)

    # What happened
    event_type = db.Column(db.String(64), nullable=False, index=True)  # e.g., sale.created, return.created, po.received
    event_category = db.Column(db.String(32), nullable=False, index=True)  # sales, returns, payments, accounting, purchasing, inventory

    # What it refers to (generic pointer)
    entity_type = db.Column(db.String(64), nullable=False)
    entity_id = db.Column(db.Integer, nullable=False)

    actor_user_id = db.Column(db.Integer, nullable=True, index=True)

    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())

    # Optional structured metadata (keep small; do not denormalize domain state)
    note = db.Column(db.String(255), nullable=True)
    payload = db.Column(db.Text, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "event_type": self.event_type,
            "event_category": self.event_category,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "actor_user_id": self.actor_user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "note": self.note,
            "payload": self.payload,
        }
