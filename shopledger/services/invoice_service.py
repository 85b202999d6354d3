# Overview: Service-layer operations for invoices; creation, workflow transitions and amounts.

from __future__ import annotations

from flask import current_app

from ..context import CallerContext, Role
from ..extensions import db
from ..models import Invoice, InvoiceLineItem, Item
from ..permissions import check_shop_access, require_permission
from ..time_utils import parse_month, utcnow
from ..validation import (
    MAX_QUANTITY,
    InvalidTransitionError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    coerce_int,
    require_non_negative_int,
    require_positive_int,
)
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import (
    CUSTOMER_SUSPENDED,
    check_customer_access,
    customer_for_actor,
    require_customer,
    require_shop,
)
from .document_service import next_document_number
from .lifecycle_service import can_transition, is_terminal, normalize_status, required_permission
from . import audit_service, ledger_service


# =============================================================================
# AMOUNTS
# =============================================================================

def _recompute_remaining(invoice: Invoice) -> None:
    # INVARIANT: remaining == max(0, total - paid) after every write
    invoice.remaining_debt_cents = max(0, (invoice.total_amount_cents or 0) - (invoice.paid_amount_cents or 0))


def _set_amounts(invoice: Invoice, *, total_amount_cents: int | None = None, paid_amount_cents: int | None = None) -> None:
    if total_amount_cents is not None and total_amount_cents != invoice.total_amount_cents:
        if is_terminal(invoice.status):
            raise InvalidTransitionError(
                f"Total amount of invoice {invoice.invoice_number} cannot change once it is {invoice.status}"
            )
        invoice.total_amount_cents = total_amount_cents
    if paid_amount_cents is not None and paid_amount_cents != invoice.paid_amount_cents:
        if invoice.status == "REJECTED":
            raise InvalidTransitionError(f"Invoice {invoice.invoice_number} is rejected")
        invoice.paid_amount_cents = paid_amount_cents
    _recompute_remaining(invoice)


def apply_paid_amount(invoice: Invoice, paid_amount_cents: int) -> None:
    """
    Set the paid amount of an already-locked invoice inside the caller's
    transaction. Used by invoice-linked ledger payments.
    """
    _set_amounts(invoice, paid_amount_cents=require_non_negative_int(paid_amount_cents, "paid_amount_cents"))


# =============================================================================
# ACCESS
# =============================================================================

def _check_invoice_access(actor: CallerContext, invoice: Invoice) -> None:
    """Tenant boundary for one invoice."""
    if actor.role == Role.OWNER:
        return
    if actor.role == Role.CUSTOMER:
        if invoice.customer is None or invoice.customer.user_id != actor.actor_id:
            raise PermissionDeniedError("Customers can only access their own invoices")
        return
    if actor.shop_id != invoice.shop_id:
        raise PermissionDeniedError("Invoice belongs to another shop")


def _load_locked(invoice_id: int) -> Invoice:
    invoice = lock_for_update(db.session.query(Invoice).filter_by(id=invoice_id)).first()
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    return invoice


# =============================================================================
# CREATE
# =============================================================================

def _normalize_line_items(line_items) -> list[tuple[int, int]]:
    if not isinstance(line_items, (list, tuple)) or not line_items:
        raise ValidationError("At least one line item is required")

    normalized = []
    for idx, line in enumerate(line_items):
        if not isinstance(line, dict):
            raise ValidationError(f"line_items[{idx}] must be an object")
        if line.get("item_id") is None:
            raise ValidationError(f"line_items[{idx}].item_id is required")
        item_id = coerce_int(line.get("item_id"), f"line_items[{idx}].item_id")
        quantity = require_positive_int(line.get("quantity"), f"line_items[{idx}].quantity", maximum=MAX_QUANTITY)
        normalized.append((item_id, quantity))
    return normalized


def create_invoice(
    actor: CallerContext,
    *,
    customer_id: int | None,
    line_items,
    shop_id: int | None = None,
    requested_month: str | None = None,
    timeout: float | None = None,
) -> Invoice:
    """
    Create an invoice from catalog items.

    Customers create for themselves and land in SUBMITTED; shop staff land
    in DRAFT. Name and price are snapshotted per line.
    """
    require_permission(actor, "CREATE_INVOICE")
    lines = _normalize_line_items(line_items)

    if requested_month:
        try:
            year, month = parse_month(requested_month)
        except ValueError as e:
            raise ValidationError(str(e))
        requested_month = f"{year:04d}-{month:02d}"
    else:
        requested_month = None

    def _op():
        if actor.role == Role.CUSTOMER:
            own = customer_for_actor(actor)
            if own is None:
                raise PermissionDeniedError("No customer profile is linked to this login")
            if customer_id is not None and customer_id != own.id:
                raise PermissionDeniedError("Customers can only create invoices for themselves")
            customer = own
            target_shop_id = shop_id or customer.shop_id or actor.shop_id
            if target_shop_id is None:
                raise ValidationError("shop_id is required")
            initial_status = "SUBMITTED"
        else:
            if customer_id is None:
                raise ValidationError("customer_id is required")
            customer = require_customer(customer_id)
            target_shop_id = shop_id or actor.shop_id
            initial_status = "DRAFT"

        check_shop_access(actor, target_shop_id)
        require_shop(target_shop_id)
        if not customer.belongs_to_shop(target_shop_id):
            raise PermissionDeniedError("Customer does not belong to this shop")
        if customer.status == CUSTOMER_SUSPENDED:
            raise ValidationError("Customer is suspended")

        item_ids = {item_id for item_id, _ in lines}
        items = {
            item.id: item
            for item in db.session.query(Item).filter(Item.id.in_(item_ids)).all()
        }

        invoice = Invoice(
            invoice_number=next_document_number(shop_id=target_shop_id, document_type="INVOICE", prefix="INV"),
            shop_id=target_shop_id,
            customer_id=customer.id,
            requested_month=requested_month,
            status=initial_status,
            paid_amount_cents=0,
            created_by=actor.actor_id,
        )
        db.session.add(invoice)
        db.session.flush()

        subtotal = 0
        for item_id, quantity in lines:
            item = items.get(item_id)
            if item is None or item.shop_id != target_shop_id:
                raise ValidationError(f"Item {item_id} not found in this shop")
            if item.status != "ACTIVE":
                raise ValidationError(f"Item {item.name} is not available")

            line_total = quantity * item.unit_price_cents
            subtotal += line_total
            db.session.add(InvoiceLineItem(
                invoice_id=invoice.id,
                item_id=item.id,
                item_name_snapshot=item.name,
                quantity=quantity,
                unit_price_snapshot_cents=item.unit_price_cents,
                line_total_cents=line_total,
            ))

        invoice.subtotal_cents = subtotal
        invoice.total_amount_cents = subtotal
        _recompute_remaining(invoice)
        return invoice

    invoice = run_in_transaction(_op, timeout=timeout)
    audit_service.record_event(
        actor.actor_id,
        "INVOICE_CREATED",
        "INVOICE",
        invoice.id,
        {
            "invoice_number": invoice.invoice_number,
            "customer_id": invoice.customer_id,
            "total_amount_cents": invoice.total_amount_cents,
            "status": invoice.status,
        },
        shop_id=invoice.shop_id,
    )
    return invoice


# =============================================================================
# TRANSITIONS
# =============================================================================

def _transition_locked(invoice: Invoice, target_status: str, actor: CallerContext) -> None:
    """Validate and apply one edge on a locked invoice. No commit."""
    _check_invoice_access(actor, invoice)

    if not can_transition(invoice.status, target_status):
        raise InvalidTransitionError(
            f"Cannot move invoice {invoice.invoice_number} from {invoice.status} to {target_status}",
            details={"from_status": invoice.status, "to_status": target_status},
        )

    require_permission(actor, required_permission(target_status))
    if actor.role == Role.CUSTOMER and target_status != "SUBMITTED":
        raise PermissionDeniedError("Customers can only submit their own invoices")

    if target_status == "ACCEPTED":
        invoice.accepted_by = actor.actor_id
    elif target_status == "REJECTED":
        invoice.rejected_by = actor.actor_id
    elif target_status == "DELIVERED_CONFIRMED":
        invoice.delivered_by = actor.actor_id
        invoice.delivered_at = utcnow()

    invoice.status = target_status
    _recompute_remaining(invoice)

    if target_status == "DELIVERED_CONFIRMED" and invoice.remaining_debt_cents > 0:
        # Debt becomes real only once goods are delivered
        ledger_service.append_entry(
            invoice.shop_id,
            invoice.customer_id,
            "DEBT_ADD",
            invoice.remaining_debt_cents,
            actor.actor_id,
            invoice_id=invoice.id,
            notes=f"Debt from invoice {invoice.invoice_number}",
        )


def _after_transition(invoice: Invoice, actor: CallerContext, from_status: str) -> None:
    if invoice.status == "DELIVERED_CONFIRMED":
        current_app.logger.info(
            "Invoice %s delivered to customer %s, remaining debt %s",
            invoice.invoice_number,
            invoice.customer_id,
            invoice.remaining_debt_cents,
        )
    audit_service.record_event(
        actor.actor_id,
        f"INVOICE_{invoice.status}",
        "INVOICE",
        invoice.id,
        {
            "invoice_number": invoice.invoice_number,
            "from_status": from_status,
            "to_status": invoice.status,
            "remaining_debt_cents": invoice.remaining_debt_cents,
        },
        shop_id=invoice.shop_id,
    )


def transition(invoice_id: int, target_status: str, actor: CallerContext, *, timeout: float | None = None) -> Invoice:
    """
    Move an invoice along one edge of the workflow.

    The row is locked (and version-checked) for the whole read-check-write,
    so two concurrent confirmations cannot both append debt.
    """
    target_status = normalize_status(target_status)
    previous = {}

    def _op():
        invoice = _load_locked(invoice_id)
        previous["status"] = invoice.status
        _transition_locked(invoice, target_status, actor)
        return invoice

    invoice = run_in_transaction(_op, timeout=timeout, immediate=True)
    _after_transition(invoice, actor, previous["status"])
    return invoice


# =============================================================================
# AMOUNT UPDATES
# =============================================================================

def _normalize_amounts(total_amount_cents, paid_amount_cents) -> tuple[int | None, int | None]:
    if total_amount_cents is None and paid_amount_cents is None:
        raise ValidationError("Provide total_amount_cents or paid_amount_cents")
    total = require_non_negative_int(total_amount_cents, "total_amount_cents") if total_amount_cents is not None else None
    paid = require_non_negative_int(paid_amount_cents, "paid_amount_cents") if paid_amount_cents is not None else None
    return total, paid


def apply_amounts(
    invoice_id: int,
    actor: CallerContext,
    *,
    total_amount_cents: int | None = None,
    paid_amount_cents: int | None = None,
    timeout: float | None = None,
) -> Invoice:
    """
    Change total and/or paid amount. Never writes the ledger; an invoice
    payment that should move the balance goes through ledger_service.
    """
    require_permission(actor, "ENTER_INVOICE_AMOUNT")
    total, paid = _normalize_amounts(total_amount_cents, paid_amount_cents)

    def _op():
        invoice = _load_locked(invoice_id)
        _check_invoice_access(actor, invoice)
        _set_amounts(invoice, total_amount_cents=total, paid_amount_cents=paid)
        return invoice

    invoice = run_in_transaction(_op, timeout=timeout, immediate=True)
    audit_service.record_event(
        actor.actor_id,
        "INVOICE_AMOUNTS_UPDATED",
        "INVOICE",
        invoice.id,
        {
            "invoice_number": invoice.invoice_number,
            "total_amount_cents": invoice.total_amount_cents,
            "paid_amount_cents": invoice.paid_amount_cents,
            "remaining_debt_cents": invoice.remaining_debt_cents,
        },
        shop_id=invoice.shop_id,
    )
    return invoice


def update_invoice(
    invoice_id: int,
    actor: CallerContext,
    *,
    status: str | None = None,
    total_amount_cents: int | None = None,
    paid_amount_cents: int | None = None,
    timeout: float | None = None,
) -> Invoice:
    """
    Amounts first, then the status change, as one atomic step.
    """
    if status is None and total_amount_cents is None and paid_amount_cents is None:
        raise ValidationError("Nothing to update")

    target_status = normalize_status(status) if status is not None else None
    total = paid = None
    if total_amount_cents is not None or paid_amount_cents is not None:
        require_permission(actor, "ENTER_INVOICE_AMOUNT")
        total, paid = _normalize_amounts(total_amount_cents, paid_amount_cents)

    previous = {}

    def _op():
        invoice = _load_locked(invoice_id)
        previous["status"] = invoice.status
        _check_invoice_access(actor, invoice)
        if total is not None or paid is not None:
            _set_amounts(invoice, total_amount_cents=total, paid_amount_cents=paid)
        if target_status is not None:
            _transition_locked(invoice, target_status, actor)
        return invoice

    invoice = run_in_transaction(_op, timeout=timeout, immediate=True)
    if target_status is not None:
        _after_transition(invoice, actor, previous["status"])
    else:
        audit_service.record_event(
            actor.actor_id,
            "INVOICE_AMOUNTS_UPDATED",
            "INVOICE",
            invoice.id,
            {"invoice_number": invoice.invoice_number, "remaining_debt_cents": invoice.remaining_debt_cents},
            shop_id=invoice.shop_id,
        )
    return invoice


# =============================================================================
# READS
# =============================================================================

def get_invoice(invoice_id: int, actor: CallerContext) -> Invoice:
    invoice = db.session.get(Invoice, invoice_id)
    if invoice is None:
        raise NotFoundError(f"Invoice {invoice_id} not found")
    _check_invoice_access(actor, invoice)
    return invoice


def list_invoices(
    actor: CallerContext,
    *,
    status: str | None = None,
    customer_id: int | None = None,
    limit: int | None = None,
) -> list[Invoice]:
    """OWNER sees all shops, ADMIN/STAFF their shop, CUSTOMER their own invoices."""
    query = db.session.query(Invoice)

    if actor.role == Role.CUSTOMER:
        own = customer_for_actor(actor)
        if own is None:
            return []
        query = query.filter(Invoice.customer_id == own.id)
    elif actor.role != Role.OWNER:
        query = query.filter(Invoice.shop_id == actor.shop_id)

    if customer_id is not None:
        check_customer_access(actor, require_customer(customer_id))
        query = query.filter(Invoice.customer_id == customer_id)
    if status:
        query = query.filter(Invoice.status == normalize_status(status))

    query = query.order_by(Invoice.created_at.desc(), Invoice.id.desc())
    if limit is not None:
        query = query.limit(limit)
    return query.all()
