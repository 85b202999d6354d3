from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z, utcnow


class ItemTransaction(db.Model):
    """
    Point-of-sale event: an item taken by a customer, recorded by staff.

    WHY: The sale is kept as its own immutable record (name, description and
    price are snapshots, not catalog references) so later catalog edits never
    change what was sold. Its money effect lives in ledger_entries, linked
    back through ledger_entries.item_transaction_id.

    IMMUTABLE: Rows are inserted once and never updated or deleted.
    """
    __tablename__ = "item_transactions"
    __table_args__ = (
        db.CheckConstraint("quantity > 0", name="ck_item_transactions_quantity_positive"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_item_transactions_price_non_negative"),
        db.CheckConstraint(
            "payment_type IN ('DEEN', 'CASH', 'LA_BIXSHAY')",
            name="ck_item_transactions_payment_type",
        ),
        db.Index("ix_item_transactions_shop_taken", "shop_id", "taken_at"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)
    customer_id = db.Column(db.Integer, db.ForeignKey("customers.id"), nullable=False, index=True)
    staff_id = db.Column(db.String(64), nullable=False, index=True)

    item_name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    quantity = db.Column(db.Integer, nullable=False)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    total_cents = db.Column(db.BigInteger, nullable=False)

    payment_type = db.Column(db.String(16), nullable=False, default="DEEN", index=True)  # DEEN, CASH, LA_BIXSHAY

    taken_at = db.Column(db.DateTime(timezone=True), nullable=False, default=utcnow, index=True)

    customer = db.relationship("Customer", backref=db.backref("item_transactions", lazy=True))

    @property
    def is_credit(self) -> bool:
        return self.payment_type == "DEEN"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "customer_id": self.customer_id,
            "staff_id": self.staff_id,
            "item_name": self.item_name,
            "description": self.description,
            "quantity": self.quantity,
            "unit_price_cents": self.unit_price_cents,
            "total_cents": self.total_cents,
            "payment_type": self.payment_type,
            "status": "UNPAID" if self.is_credit else "PAID",
            "taken_at": to_utc_z(self.taken_at),
        }
