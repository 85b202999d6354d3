# Overview: Flask API routes for catalog items and item transactions; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..services import catalog_service, item_transaction_service
from ..validation import DomainError, coerce_int
from .common import error_response, int_arg, internal_error, json_body


items_bp = Blueprint("items", __name__, url_prefix="/api/items")


@items_bp.post("/transactions")
@require_context
@require_permission("RECORD_ITEM_TRANSACTION")
def create_item_transaction_route():
    """
    Record an item taken by a customer.

    Requires: RECORD_ITEM_TRANSACTION (ADMIN, STAFF of the shop)
    CASH / LA_BIXSHAY additionally need RECORD_CASH_SALE (ADMIN only).
    """
    try:
        data = json_body()
        shop_id = data.get("shop_id", g.caller.shop_id)
        result = item_transaction_service.record_item_transaction(
            g.caller,
            shop_id=coerce_int(shop_id, "shop_id") if shop_id is not None else None,
            customer_id=coerce_int(data.get("customer_id"), "customer_id"),
            item_name=data.get("item_name"),
            quantity=data.get("quantity"),
            unit_price_cents=data.get("unit_price_cents"),
            payment_type=data.get("payment_type"),
            description=data.get("description"),
        )
        return jsonify(result.to_dict()), 201

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record item transaction")
        return internal_error()


@items_bp.get("")
@require_context
@require_permission("VIEW_CATALOG")
def list_items_route():
    try:
        shop_id = int_arg("shop_id")
        include_inactive = request.args.get("include_inactive", "false").lower() == "true"
        items = catalog_service.list_items(g.caller, shop_id, include_inactive=include_inactive)
        return jsonify({"items": [item.to_dict() for item in items]}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list items")
        return internal_error()


@items_bp.post("")
@require_context
@require_permission("MANAGE_CATALOG")
def create_item_route():
    try:
        data = json_body()
        shop_id = data.get("shop_id")
        item = catalog_service.create_item(
            g.caller,
            shop_id=coerce_int(shop_id, "shop_id") if shop_id is not None else None,
            name=data.get("name"),
            unit_price_cents=data.get("unit_price_cents"),
            description=data.get("description"),
            tag=data.get("tag"),
        )
        return jsonify({"item": item.to_dict()}), 201

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create item")
        return internal_error()


@items_bp.patch("/<int:item_id>")
@require_context
@require_permission("MANAGE_CATALOG")
def update_item_route(item_id: int):
    try:
        data = json_body()
        item = catalog_service.update_item(g.caller, item_id, data)
        return jsonify({"item": item.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update item")
        return internal_error()
