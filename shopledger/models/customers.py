from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Customer(db.Model):
    """
    Customer who takes goods on credit or cash.

    MULTI-TENANT: Customers are scoped to shops via shop_id. A customer with
    no shop recorded yet (shop_id=NULL) is treated as belonging to whichever
    shop serves them.

    Customers are never deleted, only suspended. Their balance is not stored
    here; it is derived from ledger_entries.
    """
    __tablename__ = "customers"
    __table_args__ = (
        db.CheckConstraint("status IN ('ACTIVE', 'SUSPENDED')", name="ck_customers_status"),
        db.Index("ix_customers_shop_status", "shop_id", "status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    shop_id = db.Column(db.Integer, db.ForeignKey("shops.id"), nullable=True, index=True)

    # Actor id of the customer's own login (set when the customer self-registers)
    user_id = db.Column(db.String(64), nullable=True, unique=True, index=True)

    name = db.Column(db.String(255), nullable=False)
    phone = db.Column(db.String(32), nullable=True, index=True)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    created_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now())
    updated_at = db.Column(db.DateTime(timezone=True), nullable=False, server_default=db.func.now(), onupdate=db.func.now())

    shop = db.relationship("Shop", backref=db.backref("customers", lazy=True))

    def belongs_to_shop(self, shop_id: int) -> bool:
        return self.shop_id is None or self.shop_id == shop_id

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "shop_id": self.shop_id,
            "user_id": self.user_id,
            "name": self.name,
            "phone": self.phone,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
            "updated_at": to_utc_z(self.updated_at),
        }
