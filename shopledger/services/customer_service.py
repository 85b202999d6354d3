# Overview: Service-layer operations for shops and customers; lookups, creation and suspension.

from __future__ import annotations

from ..context import CallerContext, Role
from ..extensions import db
from ..models import Customer, Shop
from ..permissions import check_shop_access, require_permission
from ..validation import (
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
    optional_text,
    require_text,
)
from .concurrency import lock_for_update, run_in_transaction
from . import audit_service


CUSTOMER_ACTIVE = "ACTIVE"
CUSTOMER_SUSPENDED = "SUSPENDED"


def require_shop(shop_id: int) -> Shop:
    shop = db.session.get(Shop, shop_id) if shop_id is not None else None
    if shop is None:
        raise NotFoundError(f"Shop {shop_id} not found")
    return shop


def require_customer(customer_id: int) -> Customer:
    customer = db.session.get(Customer, customer_id) if customer_id is not None else None
    if customer is None:
        raise NotFoundError(f"Customer {customer_id} not found")
    return customer


def customer_for_actor(actor: CallerContext) -> Customer | None:
    """The customer record linked to a CUSTOMER login, if any."""
    if actor.role != Role.CUSTOMER:
        return None
    return db.session.query(Customer).filter_by(user_id=actor.actor_id).first()


def check_customer_access(actor: CallerContext, customer: Customer) -> None:
    """
    Read access to one customer's invoices, ledger and balance.

    Customers see only themselves; shop roles see customers of their shop
    (including unaffiliated ones); the owner sees everyone.
    """
    if actor.role == Role.OWNER:
        return
    if actor.role == Role.CUSTOMER:
        if customer.user_id != actor.actor_id:
            raise PermissionDeniedError("Customers can only access their own records")
        return
    if actor.shop_id is None or not customer.belongs_to_shop(actor.shop_id):
        raise PermissionDeniedError("Customer does not belong to your shop")


def get_customer(actor: CallerContext, customer_id: int) -> Customer:
    customer = require_customer(customer_id)
    check_customer_access(actor, customer)
    return customer


def create_customer(
    actor: CallerContext,
    *,
    shop_id: int | None,
    name: str,
    phone: str | None = None,
    user_id: str | None = None,
) -> Customer:
    require_permission(actor, "MANAGE_CUSTOMERS")
    name = require_text(name, "name")
    phone = optional_text(phone, "phone", max_length=32)
    user_id = optional_text(user_id, "user_id", max_length=64)

    if shop_id is None and actor.role != Role.OWNER:
        shop_id = actor.shop_id
    if shop_id is not None:
        check_shop_access(actor, shop_id)

    def _op():
        if shop_id is not None:
            require_shop(shop_id)
        if user_id and db.session.query(Customer.id).filter_by(user_id=user_id).first():
            raise ValidationError(f"A customer is already linked to login {user_id}")

        customer = Customer(
            shop_id=shop_id,
            name=name,
            phone=phone,
            user_id=user_id,
            status=CUSTOMER_ACTIVE,
        )
        db.session.add(customer)
        db.session.flush()
        return customer

    customer = run_in_transaction(_op)
    audit_service.record_event(
        actor.actor_id, "CUSTOMER_CREATED", "CUSTOMER", customer.id,
        {"name": customer.name}, shop_id=customer.shop_id,
    )
    return customer


def set_customer_status(actor: CallerContext, customer_id: int, status: str) -> Customer:
    """Suspend or re-activate a customer. Customers are never deleted."""
    require_permission(actor, "MANAGE_CUSTOMERS")
    if status not in (CUSTOMER_ACTIVE, CUSTOMER_SUSPENDED):
        raise ValidationError(f"Invalid customer status '{status}'")

    def _op():
        customer = lock_for_update(db.session.query(Customer).filter_by(id=customer_id)).first()
        if customer is None:
            raise NotFoundError(f"Customer {customer_id} not found")
        check_customer_access(actor, customer)
        customer.status = status
        return customer

    customer = run_in_transaction(_op)
    audit_service.record_event(
        actor.actor_id, f"CUSTOMER_{status}", "CUSTOMER", customer.id, {}, shop_id=customer.shop_id,
    )
    return customer


def suspend_customer(actor: CallerContext, customer_id: int) -> Customer:
    return set_customer_status(actor, customer_id, CUSTOMER_SUSPENDED)


def activate_customer(actor: CallerContext, customer_id: int) -> Customer:
    return set_customer_status(actor, customer_id, CUSTOMER_ACTIVE)
