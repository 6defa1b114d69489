from __future__ import annotations

from ..extensions import db
from ..ids import generate_id
from pos_engine.time_utils import to_utc_z


class DocumentSequence(db.Model):
    """Per-tenant counter behind SALE-/RCP-/REF- display numbers."""
    __tablename__ = "document_sequences"
    __table_args__ = (
        db.UniqueConstraint("tenant_id", "document_type", name="uq_document_sequences_tenant_type"),
    )

    id = db.Column(db.Integer, primary_key=True)
    tenant_id = db.Column(db.String(48), db.ForeignKey("tenants.id"), nullable=False, index=True)
    document_type = db.Column(db.String(32), nullable=False)
    next_number = db.Column(db.Integer, nullable=False, default=1)


class AuditEvent(db.Model):
    """
    Append-only trail of POS actions.

    Written in the same DB transaction as the change it records; never
    updated or deleted.
    """
    __tablename__ = "audit_events"
    __table_args__ = (
        db.Index("ix_audit_events_tenant_occurred", "tenant_id", "occurred_at"),
        db.Index("ix_audit_events_entity", "entity_type", "entity_id"),
    )

    id = db.Column(db.String(48), primary_key=True, default=lambda: generate_id("audit"))
    tenant_id = db.Column(db.String(48), nullable=False, index=True)
    action = db.Column(db.String(64), nullable=False, index=True)
    entity_type = db.Column(db.String(32), nullable=False)
    entity_id = db.Column(db.String(48), nullable=False)
    user_id = db.Column(db.String(64), nullable=True)
    occurred_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    payload = db.Column(db.JSON, nullable=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "tenant_id": self.tenant_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "user_id": self.user_id,
            "occurred_at": to_utc_z(self.occurred_at),
            "payload": self.payload,
        }
