from __future__ import annotations

import json

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class AuditLog(db.Model):
    """
    Fire-and-forget audit trail of who did what.

    Rows are written after the business operation commits; a missing audit
    row never means the operation did not happen.
    """
    __tablename__ = "audit_logs"
    __table_args__ = (
        db.Index("ix_audit_logs_entity", "entity_type", "entity_id"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    actor_id = db.Column(db.String(64), nullable=True, index=True)
    shop_id = db.Column(db.Integer, nullable=True, index=True)

    action = db.Column(db.String(64), nullable=False, index=True)  # e.g. INVOICE_CREATED, DEBT_RECORDED
    entity_type = db.Column(db.String(32), nullable=False)  # e.g. INVOICE, DEBT_LEDGER, ITEM
    entity_id = db.Column(db.String(64), nullable=True)
    details = db.Column(db.Text, nullable=True)  # JSON

    ip_address = db.Column(db.String(64), nullable=True)
    user_agent = db.Column(db.String(255), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "actor_id": self.actor_id,
            "shop_id": self.shop_id,
            "action": self.action,
            "entity_type": self.entity_type,
            "entity_id": self.entity_id,
            "details": json.loads(self.details) if self.details else None,
            "ip_address": self.ip_address,
            "user_agent": self.user_agent,
            "created_at": to_utc_z(self.created_at),
        }
