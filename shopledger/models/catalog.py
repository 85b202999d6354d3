from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Item(db.Model):
    """
    Catalog entry offered by a shop.

    Price history is never rewritten: invoices snapshot name and price into
    invoice_line_items at creation time, so editing unit_price_cents here only
    affects future invoices.
    """
    __tablename__ = "items"
    __table_args__ = (
        db.CheckConstraint("status IN ('ACTIVE', 'INACTIVE')", name="ck_items_status"),
        db.CheckConstraint("unit_price_cents >= 0", name="ck_items_price_non_negative"),
        db.Index("ix_items_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=False, index=True)

    name = db.Column(db.String(255), nullable=False)
    description = db.Column(db.Text, nullable=True)
    unit_price_cents = db.Column(db.BigInteger, nullable=False)
    tag = db.Column(db.String(64), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    created_by = db.Column(db.String(64), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("items", lazy=True))

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "name": self.name,
            "description": self.description,
            "unit_price_cents": self.unit_price_cents,
            "tag": self.tag,
            "status": self.status,
            "created_by": self.created_by,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
