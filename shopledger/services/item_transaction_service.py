# Overview: Service-layer operations for point-of-sale item transactions and their ledger effect.

from __future__ import annotations

from dataclasses import dataclass, field

from flask import current_app
from sqlalchemy.exc import SQLAlchemyError

from ..context import CallerContext
from ..extensions import db
from ..models import ItemTransaction, LedgerEntry
from ..permissions import check_shop_access, has_permission, require_permission
from ..validation import (
    MAX_QUANTITY,
    PermissionDeniedError,
    StorageError,
    ValidationError,
    optional_text,
    require_choice,
    require_non_negative_int,
    require_positive_int,
    require_text,
)
from .concurrency import run_in_transaction
from .customer_service import CUSTOMER_SUSPENDED, require_customer, require_shop
from . import audit_service, ledger_service


PAYMENT_TYPES = ("DEEN", "CASH", "LA_BIXSHAY")
CREDIT_PAYMENT_TYPE = "DEEN"


@dataclass
class ItemTransactionResult:
    item_transaction: ItemTransaction
    ledger_entries: list[LedgerEntry] = field(default_factory=list)
    ledger_recorded: bool = False
    warnings: list[str] = field(default_factory=list)

    @property
    def ledger_entry(self) -> LedgerEntry | None:
        """PAYMENT for cash sales, DEBT_ADD for credit."""
        return self.ledger_entries[-1] if self.ledger_entries else None

    def to_dict(self) -> dict:
        return {
            "item_transaction": self.item_transaction.to_dict(),
            "ledger_entry": self.ledger_entry.to_dict() if self.ledger_entry else None,
            "ledger_entries": [entry.to_dict() for entry in self.ledger_entries],
            "ledger_recorded": self.ledger_recorded,
            "warnings": list(self.warnings),
        }


def _write_ledger(tx: ItemTransaction, actor: CallerContext) -> list[LedgerEntry]:
    # Exactly one entry per sale: credit owes, paid on the spot settles
    transaction_type = "DEBT_ADD" if tx.is_credit else "PAYMENT"
    entry = ledger_service.append_entry(
        tx.shop_id,
        tx.customer_id,
        transaction_type,
        tx.total_cents,
        actor.actor_id,
        item_transaction_id=tx.id,
        notes=f"{tx.payment_type} item transaction: {tx.item_name} x{tx.quantity} @ {tx.unit_price_cents}",
    )
    return [entry]


def record_item_transaction(
    actor: CallerContext,
    *,
    shop_id: int,
    customer_id: int,
    item_name: str,
    quantity: int,
    unit_price_cents: int,
    payment_type: str | None = None,
    description: str | None = None,
    timeout: float | None = None,
) -> ItemTransactionResult:
    """
    Record an item taken by a customer and derive its ledger entry.

    DEEN (credit) adds one DEBT_ADD. CASH and LA_BIXSHAY are paid on the
    spot and add one PAYMENT. The sale and its ledger entry commit together unless
    ITEM_LEDGER_BEST_EFFORT is set, in which case a failed ledger write is
    reported as a warning and the sale still commits.
    """
    # Validate everything before any write
    require_permission(actor, "RECORD_ITEM_TRANSACTION")
    check_shop_access(actor, shop_id)

    item_name = require_text(item_name, "item_name")
    description = optional_text(description, "description", max_length=2000)
    quantity = require_positive_int(quantity, "quantity", maximum=MAX_QUANTITY)
    unit_price_cents = require_non_negative_int(unit_price_cents, "unit_price_cents")
    payment_type = require_choice(payment_type or CREDIT_PAYMENT_TYPE, "payment_type", PAYMENT_TYPES)

    if payment_type != CREDIT_PAYMENT_TYPE and not has_permission(actor, "RECORD_CASH_SALE"):
        raise PermissionDeniedError(
            "Staff can only record DEEN item transactions",
            details={"required_permission": "RECORD_CASH_SALE"},
        )

    best_effort = bool(current_app.config.get("ITEM_LEDGER_BEST_EFFORT", False))

    def _op():
        require_shop(shop_id)
        customer = require_customer(customer_id)
        if not customer.belongs_to_shop(shop_id):
            raise PermissionDeniedError("Customer does not belong to this shop")
        if customer.status == CUSTOMER_SUSPENDED:
            raise ValidationError("Customer is suspended")

        tx = ItemTransaction(
            shop_id=shop_id,
            customer_id=customer_id,
            staff_id=actor.actor_id,
            item_name=item_name,
            description=description,
            quantity=quantity,
            unit_price_cents=unit_price_cents,
            total_cents=quantity * unit_price_cents,
            payment_type=payment_type,
        )
        db.session.add(tx)
        db.session.flush()

        result = ItemTransactionResult(item_transaction=tx)
        if tx.total_cents == 0:
            return result

        if not best_effort:
            result.ledger_entries = _write_ledger(tx, actor)
            result.ledger_recorded = True
            return result

        try:
            with db.session.begin_nested():
                result.ledger_entries = _write_ledger(tx, actor)
            result.ledger_recorded = True
        except StorageError as e:
            result.warnings.append(f"Ledger entry not recorded: {e.message}")
        except SQLAlchemyError as e:
            result.warnings.append(f"Ledger entry not recorded: {e.__class__.__name__}")
        return result

    result = run_in_transaction(_op, timeout=timeout)
    tx = result.item_transaction

    if result.warnings:
        current_app.logger.warning(
            "Item transaction %s committed without ledger entry: %s", tx.id, "; ".join(result.warnings)
        )

    audit_service.record_event(
        actor.actor_id,
        "ITEM_TRANSACTION_RECORDED",
        "ITEM",
        tx.id,
        {
            "customer_id": tx.customer_id,
            "item_name": tx.item_name,
            "quantity": tx.quantity,
            "total_cents": tx.total_cents,
            "payment_type": tx.payment_type,
            "ledger_recorded": result.ledger_recorded,
        },
        shop_id=tx.shop_id,
    )
    return result
