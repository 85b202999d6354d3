# Overview: Service-layer operations for document numbering; encapsulates business logic and database work.

from __future__ import annotations

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError

from ..extensions import db
from ..models import DocumentSequence
from ..validation import ValidationError


def next_document_number(
    *,
    shop_id: int,
    document_type: str,
    prefix: str,
    pad: int = 4,
) -> str:
    """
    Allocate the next document number for a shop/type, e.g. INV-001-0007.

    Runs inside the caller's transaction: the increment is a single UPDATE
    (row-locked by the database), and the first number for a shop/type is
    created under a SAVEPOINT so a concurrent creator losing the unique
    constraint race falls back to the UPDATE path without aborting the
    caller's work.
    """
    if not shop_id:
        raise ValidationError("shop_id is required")
    if not document_type:
        raise ValidationError("document_type is required")

    stmt = (
        update(DocumentSequence)
        .where(
            DocumentSequence.shop_id == shop_id,
            DocumentSequence.document_type == document_type,
        )
        .values(next_number=DocumentSequence.next_number + 1)
    )

    result = db.session.execute(stmt)
    if result.rowcount:
        next_num = _current_number(shop_id, document_type) - 1
    else:
        try:
            with db.session.begin_nested():
                db.session.add(DocumentSequence(shop_id=shop_id, document_type=document_type, next_number=2))
            next_num = 1
        except IntegrityError:
            result = db.session.execute(stmt)
            if not result.rowcount:
                raise
            next_num = _current_number(shop_id, document_type) - 1

    return f"{prefix}-{shop_id:03d}-{next_num:0{pad}d}"


def _current_number(shop_id: int, document_type: str) -> int:
    db.session.flush()
    return (
        db.session.query(DocumentSequence.next_number)
        .filter_by(shop_id=shop_id, document_type=document_type)
        .scalar()
    )
