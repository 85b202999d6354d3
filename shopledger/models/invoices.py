from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


INVOICE_STATUSES = (
    "DRAFT",
    "SUBMITTED",
    "ACCEPTED",
    "PREPARING",
    "AMOUNT_ENTERED",
    "DELIVERED_CONFIRMED",
    "REJECTED",
)


class Invoice(db.Model):
    """
    Customer order moving through the approval/delivery workflow.

    WHY: Invoices are documents with a lifecycle; they never touch the
    customer's balance until delivery is confirmed. At that point the
    remaining debt is appended to the ledger exactly once.

    INVARIANT: remaining_debt_cents == max(0, total_amount_cents - paid_amount_cents)
    after every write. Writes go through invoice_service, which recomputes it.

    CONCURRENCY: version_id is SQLAlchemy's optimistic lock column; two
    writers racing on the same invoice cannot both commit.
    """
    __tablename__ = "invoices"
    __table_args__ = (
        db.CheckConstraint(
            "status IN ('DRAFT', 'SUBMITTED', 'ACCEPTED', 'PREPARING', "
            "'AMOUNT_ENTERED', 'DELIVERED_CONFIRMED', 'REJECTED')",
            name="ck_invoices_status",
        ),
        db.CheckConstraint("remaining_debt_cents >= 0", name="ck_invoices_remaining_non_negative"),
        db.Index("ix_invoices_shop_status_created", "shop_id", "status", "created_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_number = db.Column(db.String(64), nullable=False, unique=True, index=True)

    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    requested_month = db.Column(db.String(7), nullable=True)  # YYYY-MM

    status = db.Column(db.String(32), nullable=False, default="DRAFT", index=True)

    # Amounts (all in cents)
    subtotal_cents = db.Column(db.BigInteger, nullable=False, default=0)
    total_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    paid_amount_cents = db.Column(db.BigInteger, nullable=False, default=0)
    remaining_debt_cents = db.Column(db.BigInteger, nullable=False, default=0)

    # Actor attribution (opaque actor ids from the auth collaborator)
    created_by = db.Column(db.String(64), nullable=True)
    accepted_by = db.Column(db.String(64), nullable=True)
    rejected_by = db.Column(db.String(64), nullable=True)
    delivered_by = db.Column(db.String(64), nullable=True)
    delivered_at = db.Column(db.DateTime(timezone=True), nullable=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())
    version_id = db.Column(db.Integer, nullable=False, default=1)

    customer = db.relationship("Customer", backref=db.backref("invoices", lazy=True))
    shop = db.relationship("Shop", backref=db.backref("invoices", lazy=True))
    __mapper_args__ = {"version_id_col": version_id}

    def to_dict(self, include_lines: bool = False) -> dict:
        data = {
            "id": self.id,
            "invoice_number": self.invoice_number,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "requested_month": self.requested_month,
            "status": self.status,
            "subtotal_cents": self.subtotal_cents,
            "total_amount_cents": self.total_amount_cents,
            "paid_amount_cents": self.paid_amount_cents,
            "remaining_debt_cents": self.remaining_debt_cents,
            "created_by": self.created_by,
            "accepted_by": self.accepted_by,
            "rejected_by": self.rejected_by,
            "delivered_by": self.delivered_by,
            "delivered_at": to_utc_z(self.delivered_at) if self.delivered_at else None,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
            "version_id": self.version_id,
        }
        if include_lines:
            data["line_items"] = [line.to_dict() for line in self.line_items]
        return data


class InvoiceLineItem(db.Model):
    """
    Snapshot of one catalog item on an invoice.

    IMMUTABLE: line items are written with the invoice and never edited;
    corrections go through the parent invoice's amounts.
    """
    __tablename__ = "invoice_line_items"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_invoice_line_items_quantity_positive"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    invoice_id = db.Column(db.Integer, db.ForeignKey("invoices.id"), nullable=False, index=True)
    item_id = db.Column(db.Integer, db.ForeignKey("items.id"), nullable=True, index=True)

    item_name_snapshot = db.Column(db.String(255), nullable=False)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_snapshot_cents = db.Column(db.BigInteger, nullable=False)
    line_total_cents = db.Column(db.BigInteger, nullable=False)

    invoice = db.relationship(
        "Invoice",
        backref=db.backref("line_items", lazy=True, order_by="InvoiceLineItem.id"),
    )

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "invoice_id": self.invoice_id,
            "item_id": self.item_id,
            "item_name_snapshot": self.item_name_snapshot,
            "quantity": self.quantity,
            "unit_price_snapshot_cents": self.unit_price_snapshot_cents,
            "line_total_cents": self.line_total_cents,
        }
