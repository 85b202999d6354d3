# Overview: Service-layer reporting; read-only summaries derived from item transactions and the ledger.

from __future__ import annotations

from datetime import datetime

from sqlalchemy import case, func

from ..context import CallerContext, Role
from ..extensions import db
from ..models import INVOICE_STATUSES, Customer, Invoice, Item, ItemTransaction, LedgerEntry
from ..permissions import require_permission
from ..time_utils import month_bounds, parse_iso_datetime, to_utc_z
from ..validation import ValidationError
from .balance_service import fold_balance, signed_amount
from .customer_service import customer_for_actor, get_customer, require_customer, require_shop
from . import ledger_service


SUMMARY_PAYMENT_FILTERS = ("ALL", "DEEN", "CASH", "LA_BIXSHAY")

# DEEN limits the dashboard to debt added, CASH / LA_BIXSHAY to payments
DASHBOARD_TAKEN_FILTERS = ("ALL", "DEEN", "CASH", "LA_BIXSHAY")


def _parse_range(start, end) -> tuple[datetime | None, datetime | None]:
    try:
        start_dt = parse_iso_datetime(start) if isinstance(start, str) else start
        end_dt = parse_iso_datetime(end) if isinstance(end, str) else end
    except ValueError as e:
        raise ValidationError(f"Invalid date: {e}")
    if start_dt and end_dt and start_dt > end_dt:
        raise ValidationError("start must be before end")
    return start_dt, end_dt


def _normalize_payment_filter(payment_type, allowed, field="payment_type") -> str:
    value = (payment_type or "ALL").strip().upper()
    if value not in allowed:
        raise ValidationError(f"{field} must be one of: {', '.join(allowed)}")
    return value


def customer_summary(
    shop_id: int,
    *,
    start=None,
    end=None,
    payment_type: str = "ALL",
) -> dict:
    """
    Item transactions grouped by customer: counts, quantities and totals
    split into credit (DEEN) and paid (CASH / LA_BIXSHAY).
    """
    require_shop(shop_id)
    start_dt, end_dt = _parse_range(start, end)
    payment_type = _normalize_payment_filter(payment_type, SUMMARY_PAYMENT_FILTERS)

    deen_total = func.coalesce(
        func.sum(case((ItemTransaction.payment_type == "DEEN", ItemTransaction.total_cents), else_=0)), 0
    )
    paid_total = func.coalesce(
        func.sum(case((ItemTransaction.payment_type != "DEEN", ItemTransaction.total_cents), else_=0)), 0
    )

    query = (
        db.session.query(
            Customer.id.label("customer_id"),
            Customer.name.label("customer_name"),
            Customer.phone.label("customer_phone"),
            func.count(ItemTransaction.id).label("transaction_count"),
            func.coalesce(func.sum(ItemTransaction.quantity), 0).label("total_quantity"),
            deen_total.label("deen_total_cents"),
            paid_total.label("paid_total_cents"),
            func.coalesce(func.sum(ItemTransaction.total_cents), 0).label("grand_total_cents"),
        )
        .join(ItemTransaction, ItemTransaction.customer_id == Customer.id)
        .filter(ItemTransaction.shop_id == shop_id)
    )
    if start_dt:
        query = query.filter(ItemTransaction.taken_at >= start_dt)
    if end_dt:
        query = query.filter(ItemTransaction.taken_at <= end_dt)
    if payment_type != "ALL":
        query = query.filter(ItemTransaction.payment_type == payment_type)

    rows = (
        query.group_by(Customer.id, Customer.name, Customer.phone)
        .order_by(func.sum(ItemTransaction.total_cents).desc(), Customer.id.asc())
        .all()
    )

    customers = [
        {
            "customer_id": row.customer_id,
            "customer_name": row.customer_name,
            "customer_phone": row.customer_phone,
            "transaction_count": int(row.transaction_count),
            "total_quantity": int(row.total_quantity),
            "deen_total_cents": int(row.deen_total_cents),
            "paid_total_cents": int(row.paid_total_cents),
            "grand_total_cents": int(row.grand_total_cents),
        }
        for row in rows
    ]

    return {
        "shop_id": shop_id,
        "start": to_utc_z(start_dt),
        "end": to_utc_z(end_dt),
        "payment_type": payment_type,
        "customers": customers,
        "totals": {
            "transaction_count": sum(c["transaction_count"] for c in customers),
            "total_quantity": sum(c["total_quantity"] for c in customers),
            "deen_total_cents": sum(c["deen_total_cents"] for c in customers),
            "paid_total_cents": sum(c["paid_total_cents"] for c in customers),
            "grand_total_cents": sum(c["grand_total_cents"] for c in customers),
        },
    }


def monthly_statement(customer_id: int, month: str) -> dict:
    """
    Opening balance, movements and closing balance for one calendar month.
    Derived from the ledger on every call; nothing is stored.
    """
    customer = require_customer(customer_id)
    try:
        start, end = month_bounds(month)
    except ValueError as e:
        raise ValidationError(str(e))

    opening_entries = (
        db.session.query(LedgerEntry)
        .filter(LedgerEntry.customer_id == customer_id, LedgerEntry.created_at < start)
        .all()
    )
    month_entries = (
        db.session.query(LedgerEntry)
        .filter(
            LedgerEntry.customer_id == customer_id,
            LedgerEntry.created_at >= start,
            LedgerEntry.created_at < end,
        )
        .order_by(LedgerEntry.created_at.asc(), LedgerEntry.id.asc())
        .all()
    )

    opening = fold_balance(opening_entries)
    debt_added = sum(e.amount_cents for e in month_entries if e.transaction_type == "DEBT_ADD")
    payments = sum(e.amount_cents for e in month_entries if e.transaction_type == "PAYMENT")
    adjustments = sum(
        signed_amount(e.transaction_type, e.amount_cents, e.adjustment_direction)
        for e in month_entries
        if e.transaction_type == "ADJUSTMENT"
    )

    return {
        "customer_id": customer.id,
        "customer_name": customer.name,
        "month": f"{start.year:04d}-{start.month:02d}",
        "opening_balance_cents": opening,
        "debt_added_cents": debt_added,
        "payments_cents": payments,
        "adjustments_cents": adjustments,
        "closing_balance_cents": opening + debt_added - payments + adjustments,
        "entries": [e.to_dict() for e in month_entries],
    }


def customer_balance(actor: CallerContext, customer_id: int) -> dict:
    """Balance plus the full entry history (newest first) for one customer."""
    require_permission(actor, "VIEW_LEDGER")
    customer = get_customer(actor, customer_id)
    entries = ledger_service.list_for_customer(customer.id)
    return {
        "customer_id": customer.id,
        "balance_cents": fold_balance(entries),
        "entries": [e.to_dict() for e in entries],
    }


def customer_detail(
    actor: CallerContext,
    customer_id: int,
    *,
    start=None,
    end=None,
    payment_type: str = "ALL",
) -> dict:
    """
    One customer's profile plus every item they took, newest first.

    Shop roles only see sales made in their own shop; the owner sees all of
    them. `net_cents` is DEEN minus paid over the listed sales only. The
    ledger balance, which also counts invoices and adjustments, is reported
    separately as `balance_cents`.
    """
    require_permission(actor, "VIEW_REPORTS")
    start_dt, end_dt = _parse_range(start, end)
    payment_type = _normalize_payment_filter(payment_type, SUMMARY_PAYMENT_FILTERS)
    customer = get_customer(actor, customer_id)

    query = db.session.query(ItemTransaction).filter(ItemTransaction.customer_id == customer.id)
    if actor.role != Role.OWNER:
        query = query.filter(ItemTransaction.shop_id == actor.shop_id)
    if start_dt:
        query = query.filter(ItemTransaction.taken_at >= start_dt)
    if end_dt:
        query = query.filter(ItemTransaction.taken_at <= end_dt)
    if payment_type != "ALL":
        query = query.filter(ItemTransaction.payment_type == payment_type)

    sales = query.order_by(ItemTransaction.taken_at.desc(), ItemTransaction.id.desc()).all()

    deen_total = sum(tx.total_cents for tx in sales if tx.is_credit)
    paid_total = sum(tx.total_cents for tx in sales if not tx.is_credit)

    return {
        "customer": customer.to_dict(),
        "items": [tx.to_dict() for tx in sales],
        "totals": {
            "item_count": len(sales),
            "total_quantity": sum(tx.quantity for tx in sales),
            "deen_total_cents": deen_total,
            "paid_total_cents": paid_total,
            "net_cents": deen_total - paid_total,
        },
        "balance_cents": fold_balance(ledger_service.list_for_customer(customer.id)),
        "filters": {
            "start": to_utc_z(start_dt),
            "end": to_utc_z(end_dt),
            "payment_type": payment_type,
        },
    }


def dashboard_stats(actor: CallerContext, *, start=None, end=None, taken_type: str = "ALL") -> dict:
    """
    Headline numbers for the caller's dashboard.

    Scope follows the role: the owner sees every shop, ADMIN and STAFF their
    own shop, a customer only their own invoices and ledger. start/end bound
    invoices and ledger entries by created_at; counts of customers and
    catalog items are never date filtered.
    """
    require_permission(actor, "VIEW_LEDGER")
    start_dt, end_dt = _parse_range(start, end)
    taken_type = _normalize_payment_filter(taken_type, DASHBOARD_TAKEN_FILTERS, "taken_type")

    invoices = db.session.query(Invoice.status, Invoice.total_amount_cents, Invoice.remaining_debt_cents)
    entries = db.session.query(LedgerEntry.transaction_type, func.sum(LedgerEntry.amount_cents))
    customers = db.session.query(func.count(Customer.id))
    items = db.session.query(func.count(Item.id)).filter(Item.status == "ACTIVE")

    if actor.role == Role.CUSTOMER:
        own = customer_for_actor(actor)
        own_id = own.id if own is not None else None
        # An unlinked login matches nothing
        invoices = invoices.filter(Invoice.customer_id == own_id)
        entries = entries.filter(LedgerEntry.customer_id == own_id)
        customers = customers.filter(Customer.id == own_id)
        item_shop_id = (own.shop_id if own is not None else None) or actor.shop_id
        if item_shop_id is not None:
            items = items.filter(Item.shop_id == item_shop_id)
    elif actor.role != Role.OWNER:
        invoices = invoices.filter(Invoice.shop_id == actor.shop_id)
        entries = entries.filter(LedgerEntry.shop_id == actor.shop_id)
        customers = customers.filter(Customer.shop_id == actor.shop_id)
        items = items.filter(Item.shop_id == actor.shop_id)

    if start_dt:
        invoices = invoices.filter(Invoice.created_at >= start_dt)
        entries = entries.filter(LedgerEntry.created_at >= start_dt)
    if end_dt:
        invoices = invoices.filter(Invoice.created_at <= end_dt)
        entries = entries.filter(LedgerEntry.created_at <= end_dt)

    by_status = {status: 0 for status in INVOICE_STATUSES}
    delivered_count = delivered_total = delivered_remaining = 0
    for status, total_cents, remaining_cents in invoices.all():
        by_status[status] += 1
        if status == "DELIVERED_CONFIRMED":
            delivered_count += 1
            delivered_total += total_cents
            delivered_remaining += remaining_cents

    sums = dict(entries.group_by(LedgerEntry.transaction_type).all())
    debt_added = int(sums.get("DEBT_ADD") or 0) if taken_type in ("ALL", "DEEN") else 0
    payments = int(sums.get("PAYMENT") or 0) if taken_type != "DEEN" else 0

    return {
        "invoices": {
            "total": sum(by_status.values()),
            "pending": by_status["SUBMITTED"],
            "by_status": by_status,
        },
        "delivered": {
            "count": delivered_count,
            "total_amount_cents": delivered_total,
            "remaining_debt_cents": delivered_remaining,
        },
        "debt_added_cents": debt_added,
        "payments_cents": payments,
        "outstanding_debt_cents": debt_added - payments,
        "customer_count": customers.scalar() or 0,
        "item_count": items.scalar() or 0,
        "taken_type": taken_type,
    }
