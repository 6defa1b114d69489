# Overview: Service-layer operations for the POS audit trail.

from __future__ import annotations

from datetime import datetime
from typing import Optional

from ..extensions import db
from ..models import AuditEvent
from pos_engine.time_utils import utcnow
"""
Audit trail invariants

- Append-only: no updates/deletes of existing events.
- Events are written inside the same DB transaction as the change they record.
- No business logic here; callers decide what is worth recording.
"""

ACTION_SALE_COMPLETED = "sale_completed"
ACTION_DISCOUNT_APPLIED = "discount_applied"
ACTION_ORDER_HELD = "order_held"
ACTION_ORDER_RECALLED = "order_recalled"
ACTION_HELD_ORDER_DELETED = "held_order_deleted"
ACTION_SALE_REFUNDED = "sale_refunded"
ACTION_INVENTORY_UPDATE = "inventory_update"
ACTION_SHIFT_OPENED = "shift_opened"
ACTION_SHIFT_CLOSED = "shift_closed"


def append_audit_event(
    *,
    tenant_id: str,
    action: str,
    entity_type: str,
    entity_id: str,
    user_id: str | None = None,
    occurred_at: Optional[datetime] = None,
    payload: dict | None = None,
) -> AuditEvent:
    ev = AuditEvent(
        tenant_id=tenant_id,
        action=action,
        entity_type=entity_type,
        entity_id=entity_id,
        user_id=user_id,
        occurred_at=occurred_at or utcnow(),
        payload=payload,
    )
    db.session.add(ev)
    db.session.flush()  # ensures ev.id is assigned without committing
    return ev


def list_audit_events(
    tenant_id: str,
    *,
    action: str | None = None,
    entity_id: str | None = None,
    limit: int = 200,
) -> list[AuditEvent]:
    q = db.session.query(AuditEvent).filter_by(tenant_id=tenant_id)
    if action:
        q = q.filter_by(action=action)
    if entity_id:
        q = q.filter_by(entity_id=entity_id)
    return q.order_by(AuditEvent.occurred_at.desc(), AuditEvent.id.desc()).limit(limit).all()
