# Overview: Service-layer operations for the shop catalog; items customers can order on invoices.

from __future__ import annotations

from ..context import CallerContext, Role
from ..extensions import db
from ..models import Item
from ..permissions import check_shop_access, require_permission
from ..validation import (
    NotFoundError,
    ValidationError,
    optional_text,
    require_choice,
    require_non_negative_int,
    require_text,
)
from .concurrency import lock_for_update, run_in_transaction
from .customer_service import require_shop
from . import audit_service


ITEM_STATUSES = ("ACTIVE", "INACTIVE")

# Fields a PATCH may touch; anything else is rejected
UPDATABLE_FIELDS = {"name", "description", "unit_price_cents", "tag", "status"}


def create_item(
    actor: CallerContext,
    *,
    shop_id: int | None,
    name: str,
    unit_price_cents: int,
    description: str | None = None,
    tag: str | None = None,
) -> Item:
    require_permission(actor, "MANAGE_CATALOG")
    if shop_id is None:
        shop_id = actor.shop_id
    if shop_id is None:
        raise ValidationError("shop_id is required")
    check_shop_access(actor, shop_id)

    name = require_text(name, "name")
    price = require_non_negative_int(unit_price_cents, "unit_price_cents")
    description = optional_text(description, "description", max_length=2000)
    tag = optional_text(tag, "tag", max_length=64)

    def _op():
        require_shop(shop_id)
        item = Item(
            shop_id=shop_id,
            name=name,
            description=description,
            unit_price_cents=price,
            tag=tag,
            status="ACTIVE",
            created_by=actor.actor_id,
        )
        db.session.add(item)
        db.session.flush()
        return item

    item = run_in_transaction(_op)
    audit_service.record_event(
        actor.actor_id, "ITEM_CREATED", "CATALOG_ITEM", item.id,
        {"name": item.name, "unit_price_cents": item.unit_price_cents}, shop_id=shop_id,
    )
    return item


def update_item(actor: CallerContext, item_id: int, changes: dict) -> Item:
    """
    Edit a catalog item. Existing invoice line snapshots are unaffected.
    """
    require_permission(actor, "MANAGE_CATALOG")
    unknown = set(changes) - UPDATABLE_FIELDS
    if unknown:
        raise ValidationError(f"Unknown fields: {', '.join(sorted(unknown))}")
    if not changes:
        raise ValidationError("Nothing to update")

    values = {}
    if "name" in changes:
        values["name"] = require_text(changes["name"], "name")
    if "description" in changes:
        values["description"] = optional_text(changes["description"], "description", max_length=2000)
    if "unit_price_cents" in changes:
        values["unit_price_cents"] = require_non_negative_int(changes["unit_price_cents"], "unit_price_cents")
    if "tag" in changes:
        values["tag"] = optional_text(changes["tag"], "tag", max_length=64)
    if "status" in changes:
        values["status"] = require_choice(changes["status"], "status", ITEM_STATUSES)

    def _op():
        item = lock_for_update(db.session.query(Item).filter_by(id=item_id)).first()
        if item is None:
            raise NotFoundError(f"Item {item_id} not found")
        check_shop_access(actor, item.shop_id)
        for key, value in values.items():
            setattr(item, key, value)
        return item

    item = run_in_transaction(_op)
    audit_service.record_event(
        actor.actor_id, "ITEM_UPDATED", "CATALOG_ITEM", item.id, values, shop_id=item.shop_id,
    )
    return item


def list_items(actor: CallerContext, shop_id: int | None = None, include_inactive: bool = False) -> list[Item]:
    require_permission(actor, "VIEW_CATALOG")
    if shop_id is None:
        shop_id = actor.shop_id
    if shop_id is None and actor.role != Role.OWNER:
        raise ValidationError("shop_id is required")

    query = db.session.query(Item)
    if shop_id is not None:
        check_shop_access(actor, shop_id)
        query = query.filter(Item.shop_id == shop_id)
    if not include_inactive:
        query = query.filter(Item.status == "ACTIVE")
    return query.order_by(Item.name.asc(), Item.id.asc()).all()
