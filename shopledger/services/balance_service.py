# Overview: Service-layer balance derivation; folds ledger entries, never stores a balance.

from __future__ import annotations

from typing import Iterable

from sqlalchemy import and_, case, func, or_

from ..extensions import db
from ..models import LedgerEntry


def signed_amount(transaction_type: str, amount_cents: int, adjustment_direction: str | None = None) -> int:
    """
    Sign convention:
    - DEBT_ADD:          +amount
    - PAYMENT:           -amount
    - ADJUSTMENT/CREDIT: -amount
    - ADJUSTMENT/DEBIT:  +amount
    """
    if transaction_type == "DEBT_ADD":
        return amount_cents
    if transaction_type == "PAYMENT":
        return -amount_cents
    if transaction_type == "ADJUSTMENT":
        return amount_cents if adjustment_direction == "DEBIT" else -amount_cents
    raise ValueError(f"Unknown transaction type: {transaction_type}")


def fold_balance(entries: Iterable) -> int:
    """Pure, order-independent sum of signed entry amounts."""
    return sum(
        signed_amount(e.transaction_type, e.amount_cents, e.adjustment_direction)
        for e in entries
    )


def _signed_amount_expr():
    # SQL mirror of signed_amount() for aggregate queries
    is_debit = or_(
        LedgerEntry.transaction_type == "DEBT_ADD",
        and_(
            LedgerEntry.transaction_type == "ADJUSTMENT",
            LedgerEntry.adjustment_direction == "DEBIT",
        ),
    )
    return case((is_debit, LedgerEntry.amount_cents), else_=-LedgerEntry.amount_cents)


def current_balance(customer_id: int) -> int:
    entries = db.session.query(LedgerEntry).filter(LedgerEntry.customer_id == customer_id).all()
    return fold_balance(entries)


def shop_balance(shop_id: int) -> int:
    """Total outstanding debt recorded in one shop (sum over its customers)."""
    total = (
        db.session.query(func.coalesce(func.sum(_signed_amount_expr()), 0))
        .filter(LedgerEntry.shop_id == shop_id)
        .scalar()
    )
    return int(total or 0)


def balances_by_customer(*, shop_id: int | None = None, customer_ids: Iterable[int] | None = None) -> dict[int, int]:
    """customer_id -> balance, one aggregate query."""
    query = db.session.query(
        LedgerEntry.customer_id,
        func.coalesce(func.sum(_signed_amount_expr()), 0),
    )
    if shop_id is not None:
        query = query.filter(LedgerEntry.shop_id == shop_id)
    if customer_ids is not None:
        ids = list(customer_ids)
        if not ids:
            return {}
        query = query.filter(LedgerEntry.customer_id.in_(ids))
    rows = query.group_by(LedgerEntry.customer_id).all()
    return {customer_id: int(total) for customer_id, total in rows}
