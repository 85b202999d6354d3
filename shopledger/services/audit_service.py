# Overview: Service-layer operations for the audit trail; written after the business commit.

from __future__ import annotations

import json

from flask import current_app, has_request_context, request
from sqlalchemy.exc import SQLAlchemyError

from ..extensions import db
from ..models import AuditLog


def record_event(
    actor_id: str | None,
    action: str,
    entity_type: str,
    entity_id,
    details: dict | None = None,
    *,
    shop_id: int | None = None,
) -> AuditLog | None:
    """
    Append one audit row in its own commit.

    Called only after the business transaction has committed, so a failure
    here is logged and rolled back but never propagates to the caller.
    """
    if not current_app.config.get("AUDIT_ENABLED", True):
        return None

    ip_address = None
    user_agent = None
    if has_request_context():
        ip_address = request.remote_addr
        user_agent = (request.headers.get("User-Agent") or "")[:255] or None

    entry = AuditLog(
        actor_id=actor_id,
        shop_id=shop_id,
        action=action,
        entity_type=entity_type,
        entity_id=str(entity_id) if entity_id is not None else None,
        details=json.dumps(details or {}, default=str, sort_keys=True),
        ip_address=ip_address,
        user_agent=user_agent,
    )
    try:
        db.session.add(entry)
        db.session.commit()
    except SQLAlchemyError:
        db.session.rollback()
        current_app.logger.warning("Failed to write audit event %s for %s %s", action, entity_type, entity_id)
        return None
    return entry


def list_events(*, entity_type: str | None = None, entity_id=None, action: str | None = None) -> list[AuditLog]:
    query = db.session.query(AuditLog)
    if entity_type:
        query = query.filter_by(entity_type=entity_type)
    if entity_id is not None:
        query = query.filter_by(entity_id=str(entity_id))
    if action:
        query = query.filter_by(action=action)
    return query.order_by(AuditLog.created_at.asc(), AuditLog.id.asc()).all()
