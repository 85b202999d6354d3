from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class LedgerEntry(db.Model):
    """
    Append-only debt ledger: the single source of truth for customer balances.

    TRANSACTION TYPES:
    - DEBT_ADD:   customer owes more (credit sale, delivered invoice)
    - PAYMENT:    customer paid (cash sale settlement, manual payment)
    - ADJUSTMENT: manual correction; adjustment_direction says which way
                  (CREDIT lowers the balance, DEBIT raises it)

    amount_cents is always positive; the sign is implied by the type.

    IMMUTABLE: Entries are never updated or deleted. Corrections are new
    ADJUSTMENT entries.
    """
    __tablename__ = "ledger_entries"
    __table_args__ = (
        db.CheckConstraint("amount_cents > 0", name="ck_ledger_entries_amount_positive"),
        db.CheckConstraint(
            "transaction_type IN ('DEBT_ADD', 'PAYMENT', 'ADJUSTMENT')",
            name="ck_ledger_entries_type",
        ),
        db.CheckConstraint(
            "(transaction_type = 'ADJUSTMENT' AND adjustment_direction IN ('CREDIT', 'DEBIT')) "
            "OR (transaction_type != 'ADJUSTMENT' AND adjustment_direction IS NULL)",
            name="ck_ledger_entries_adjustment_direction",
        ),
        db.Index("ix_ledger_entries_customer_created", "customer_id", "created_at"),
        db.Index("ix_ledger_entries_shop_created", "shop_id", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)

    # Optional provenance
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=True, index=True)
    item_transaction_id = db.Column(db.Integer, db.ForeignKey("item_transactions.id"), nullable=True, index=True)

    transaction_type = db.Column(db.String(16), nullable=False, index=True)
    amount_cents = db.Column(db.BigInteger, nullable=False)
    adjustment_direction = db.Column(db.String(8), nullable=True)

    notes = db.Column(db.String(255), nullable=True)
    created_by = db.Column(db.String(64), nullable=False)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer", backref=db.backref("ledger_entries", lazy=True))
    invoice = db.relationship("Invoice", backref=db.backref("ledger_entries", lazy=True))

    @property
    def signed_amount_cents(self) -> int:
        if self.transaction_type == "DEBT_ADD":
            return self.amount_cents
        if self.transaction_type == "PAYMENT":
            return -self.amount_cents
        if self.adjustment_direction == "DEBIT":
            return self.amount_cents
        return -self.amount_cents

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "invoice_id": self.invoice_id,
            "invoice_number": self.invoice.invoice_number if self.invoice_id and self.invoice else None,
            "item_transaction_id": self.item_transaction_id,
            "transaction_type": self.transaction_type,
            "amount_cents": self.amount_cents,
            "adjustment_direction": self.adjustment_direction,
            "signed_amount_cents": self.signed_amount_cents,
            "notes": self.notes,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
        }
