# Overview: Service-layer operations for the debt ledger; encapsulates business logic and database work.

from __future__ import annotations

from datetime import datetime

from ..context import CallerContext, Role
from ..extensions import db
from ..models import Invoice, LedgerEntry
from ..permissions import check_shop_access, require_permission
from ..validation import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    optional_text,
    require_choice,
    require_positive_int,
)
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import check_customer_access, customer_for_actor, require_customer, require_shop
from . import audit_service

"""
Debt ledger invariants (authoritative)

- Append-only: entries are never updated or deleted.
- amount_cents is always positive; the sign comes from transaction_type
  (and adjustment_direction for ADJUSTMENT).
- Balances are never stored; see balance_service.
- append_entry flushes inside the caller's transaction and never commits.
"""


TRANSACTION_TYPES = ("DEBT_ADD", "PAYMENT", "ADJUSTMENT")
ADJUSTMENT_DIRECTIONS = ("CREDIT", "DEBIT")


def append_entry(
    shop_id: int,
    customer_id: int,
    transaction_type: str,
    amount_cents: int,
    created_by: str,
    *,
    invoice_id: int | None = None,
    item_transaction_id: int | None = None,
    notes: str | None = None,
    adjustment_direction: str | None = None,
) -> LedgerEntry:
    """
    Append one immutable ledger entry.

    - No commit here; the caller owns the transaction.
    - ADJUSTMENT defaults to CREDIT (lowers the balance).
    """
    transaction_type = require_choice(transaction_type, "transaction_type", TRANSACTION_TYPES)
    amount_cents = require_positive_int(amount_cents, "amount_cents")

    if transaction_type == "ADJUSTMENT":
        adjustment_direction = require_choice(
            adjustment_direction or "CREDIT", "adjustment_direction", ADJUSTMENT_DIRECTIONS
        )
    elif adjustment_direction is not None:
        raise ValidationError("adjustment_direction only applies to ADJUSTMENT entries")

    require_shop(shop_id)
    require_customer(customer_id)
    if invoice_id is not None and db.session.get(Invoice, invoice_id) is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")

    entry = LedgerEntry(
        shop_id=shop_id,
        customer_id=customer_id,
        invoice_id=invoice_id,
        item_transaction_id=item_transaction_id,
        transaction_type=transaction_type,
        amount_cents=amount_cents,
        adjustment_direction=adjustment_direction,
        notes=optional_text(notes, "notes"),
        created_by=created_by,
    )
    db.session.add(entry)
    db.session.flush()
    return entry


def list_for_customer(
    customer_id: int,
    *,
    transaction_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[LedgerEntry]:
    """Entries for one customer, newest first. start/end are inclusive."""
    query = db.session.query(LedgerEntry).filter(LedgerEntry.customer_id == customer_id)
    return _apply_filters(query, transaction_type=transaction_type, start=start, end=end, limit=limit)


def list_entries(
    actor: CallerContext,
    *,
    customer_id: int | None = None,
    transaction_type: str | None = None,
    start: datetime | None = None,
    end: datetime | None = None,
    limit: int | None = None,
) -> list[LedgerEntry]:
    """
    Entries visible to the caller.

    OWNER sees every shop, ADMIN/STAFF their own shop, CUSTOMER only the
    customer record linked to their login.
    """
    require_permission(actor, "VIEW_LEDGER")
    query = db.session.query(LedgerEntry)

    if customer_id is not None:
        check_customer_access(actor, require_customer(customer_id))
        query = query.filter(LedgerEntry.customer_id == customer_id)

    if actor.role == Role.CUSTOMER:
        own = customer_for_actor(actor)
        if own is None:
            return []
        query = query.filter(LedgerEntry.customer_id == own.id)
    elif actor.role != Role.OWNER:
        query = query.filter(LedgerEntry.shop_id == actor.shop_id)

    return _apply_filters(query, transaction_type=transaction_type, start=start, end=end, limit=limit)


def _apply_filters(query, *, transaction_type=None, start=None, end=None, limit=None):
    if transaction_type:
        query = query.filter(
            LedgerEntry.transaction_type == require_choice(transaction_type, "transaction_type", TRANSACTION_TYPES)
        )
    if start is not None:
        query = query.filter(LedgerEntry.created_at >= start)
    if end is not None:
        query = query.filter(LedgerEntry.created_at <= end)
    query = query.order_by(LedgerEntry.created_at.desc(), LedgerEntry.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()


def record_transaction(
    actor: CallerContext,
    *,
    shop_id: int,
    customer_id: int,
    transaction_type: str,
    amount_cents: int,
    invoice_id: int | None = None,
    notes: str | None = None,
    adjustment_direction: str | None = None,
    timeout: float | None = None,
) -> LedgerEntry:
    """
    Manually record a DEBT_ADD, PAYMENT or ADJUSTMENT.

    A PAYMENT against a delivered invoice also raises the invoice's paid
    amount in the same transaction.
    """
    transaction_type = require_choice(transaction_type, "transaction_type", TRANSACTION_TYPES)
    amount_cents = require_positive_int(amount_cents, "amount_cents")
    if transaction_type == "ADJUSTMENT":
        require_permission(actor, "RECORD_ADJUSTMENT", reason="Only admins can record adjustments")
    else:
        require_permission(actor, "RECORD_PAYMENT")
    check_shop_access(actor, shop_id)

    if transaction_type != "ADJUSTMENT" and adjustment_direction is not None:
        raise ValidationError("adjustment_direction only applies to ADJUSTMENT entries")

    def _op():
        require_shop(shop_id)
        customer = require_customer(customer_id)
        if not customer.belongs_to_shop(shop_id):
            raise PermissionDeniedError("Customer does not belong to this shop")

        if invoice_id is not None:
            invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
            if invoice is None:
                raise NotFoundError(f"Invoice {invoice_id} not found")
            if invoice.shop_id != shop_id or invoice.customer_id != customer_id:
                raise ValidationError("Invoice does not belong to this shop and customer")
            if transaction_type == "PAYMENT":
                if invoice.status != "DELIVERED_CONFIRMED":
                    raise ValidationError("Payments can only be applied to delivered invoices")
                from .invoice_service import apply_paid_amount

                apply_paid_amount(invoice, invoice.paid_amount_cents + amount_cents)

        return append_entry(
            shop_id,
            customer_id,
            transaction_type,
            amount_cents,
            actor.actor_id,
            invoice_id=invoice_id,
            notes=notes,
            adjustment_direction=adjustment_direction,
        )

    entry = run_in_transaction(_op, timeout=timeout)
    audit_service.record_event(
        actor.actor_id,
        "DEBT_RECORDED",
        "DEBT_LEDGER",
        entry.id,
        {
            "customer_id": customer_id,
            "transaction_type": transaction_type,
            "amount_cents": amount_cents,
            "invoice_id": invoice_id,
        },
        shop_id=shop_id,
    )
    return entry
