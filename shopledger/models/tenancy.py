from __future__ import annotations

from ..extensions import db
from ..time_utils import to_utc_z


class Shop(db.Model):
    """
    Multi-tenant root: every tenant is a Shop.

    WHY: Customers, catalog items, invoices and ledger entries all belong to
    exactly one shop. Staff and admins are scoped to a single shop; only the
    owner role crosses shop boundaries.
    """
    __tablename__ = "shops"
    __table_args__ = (
        db.CheckConstraint("status IN ('ACTIVE', 'SUSPENDED')", name="ck_shops_status"),
        {"sqlite_autoincrement": True},
    )

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(255), nullable=False)
    code = db.Column(db.String(32), nullable=True, unique=True, index=True)  # Short code used in CLI lookups
    phone = db.Column(db.String(32), nullable=True)
    location = db.Column(db.String(255), nullable=True)

    status = db.Column(db.String(16), nullable=False, default="ACTIVE", index=True)

    created_at = db.Column(
        db.DateTime(timezone=True),
        nullable=False,
        server_default=db.func.now(),
    )

    def __repr__(self) -> str:
        return f"<Shop id={self.id} name={self.name!r}>"

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "code": self.code,
            "phone": self.phone,
            "location": self.location,
            "status": self.status,
            "created_at": to_utc_z(self.created_at),
        }
