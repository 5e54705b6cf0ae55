# Overview: Service-layer operations for the audit trail.

from __future__ import annotations

import json
from typing import Any, Optional

from ..extensions import db
from ..models import AuditEvent
"""
Audit Trail Invariants

- Append-only log of domain events (sale.created, return.created, ...).
- No domain/business logic here.
- Events are written inside the same DB transaction as the change they
  record, so a rolled-back operation leaves no event behind.
"""


def append_audit_event(
    scope,
    *,
    event_type: str,
    event_category: str,
    entity_type: str,
    entity_id: int,
    note: Optional[str] = None,
    payload: Optional[dict[str, Any]] = None,
) -> AuditEvent:
    """
    Append an audit event for the scope's tenant. Does not commit.
    """
    ev = AuditEvent(
        tenant_id=scope.require(),
        event_type=event_type,
        event_category=event_category,
        entity_type=entity_type,
        entity_id=entity_id,
        actor_user_id=scope.user_id,
        note=note[:255] if note else None,
        payload=json.dumps(payload, default=str, sort_keys=True) if payload else None,
    )
    db.session.add(ev)
    return ev


def list_audit_events(scope, *, entity_type: str | None = None, entity_id: int | None = None,
                      limit: int = 100) -> list[AuditEvent]:
    q = db.session.query(AuditEvent).filter(AuditEvent.tenant_id == scope.require())
    if entity_type:
        q = q.filter(AuditEvent.entity_type == entity_type)
    if entity_id is not None:
        q = q.filter(AuditEvent.entity_id == entity_id)
    return q.order_by(AuditEvent.id.desc()).limit(limit).all()
