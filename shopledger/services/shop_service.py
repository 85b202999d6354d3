# Overview: Service-layer operations for shops; tenant provisioning and shop-wide balances.

from __future__ import annotations

from ..context import CallerContext
from ..extensions import db
from ..models import Shop
from ..permissions import check_shop_access, require_permission
from ..validation import ValidationError, optional_text, require_text
from .balance_service import balances_by_customer, shop_balance
from .concurrency import run_in_transaction
from .customer_service import require_shop


def create_shop(name: str, code: str | None = None, phone: str | None = None, location: str | None = None) -> Shop:
    """Provision a new tenant. Operator-only (CLI); no caller context."""
    name = require_text(name, "name")
    code = optional_text(code, "code", max_length=32)
    phone = optional_text(phone, "phone", max_length=32)
    location = optional_text(location, "location")

    def _op():
        if code and db.session.query(Shop.id).filter_by(code=code).first():
            raise ValidationError(f"Shop code {code} is already in use")
        shop = Shop(name=name, code=code, phone=phone, location=location, status="ACTIVE")
        db.session.add(shop)
        db.session.flush()
        return shop

    return run_in_transaction(_op)


def list_shops() -> list[Shop]:
    return db.session.query(Shop).order_by(Shop.id.asc()).all()


def get_shop_balance(actor: CallerContext, shop_id: int) -> dict:
    """Outstanding debt for a shop, total and per customer."""
    require_permission(actor, "VIEW_REPORTS")
    check_shop_access(actor, shop_id)
    shop = require_shop(shop_id)
    per_customer = balances_by_customer(shop_id=shop.id)
    return {
        "shop_id": shop.id,
        "balance_cents": shop_balance(shop.id),
        "customers": [
            {"customer_id": customer_id, "balance_cents": balance}
            for customer_id, balance in sorted(per_customer.items())
        ],
    }
