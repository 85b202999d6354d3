# Overview: Flask API routes for customers, balances and statements; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..services import customer_service, reporting_service
from ..validation import DomainError, coerce_int
from .common import error_response, internal_error, json_body


customers_bp = Blueprint("customers", __name__, url_prefix="/api/customers")


@customers_bp.post("")
@require_context
@require_permission("MANAGE_CUSTOMERS")
def create_customer_route():
    try:
        data = json_body()
        shop_id = data.get("shop_id")
        customer = customer_service.create_customer(
            g.caller,
            shop_id=coerce_int(shop_id, "shop_id") if shop_id is not None else None,
            name=data.get("name"),
            phone=data.get("phone"),
            user_id=data.get("user_id"),
        )
        return jsonify({"customer": customer.to_dict()}), 201

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create customer")
        return internal_error()


@customers_bp.get("/<int:customer_id>")
@require_context
def get_customer_route(customer_id: int):
    try:
        customer = customer_service.get_customer(g.caller, customer_id)
        return jsonify({"customer": customer.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get customer")
        return internal_error()


@customers_bp.post("/<int:customer_id>/suspend")
@require_context
@require_permission("MANAGE_CUSTOMERS")
def suspend_customer_route(customer_id: int):
    try:
        customer = customer_service.suspend_customer(g.caller, customer_id)
        return jsonify({"customer": customer.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to suspend customer")
        return internal_error()


@customers_bp.post("/<int:customer_id>/activate")
@require_context
@require_permission("MANAGE_CUSTOMERS")
def activate_customer_route(customer_id: int):
    try:
        customer = customer_service.activate_customer(g.caller, customer_id)
        return jsonify({"customer": customer.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to activate customer")
        return internal_error()


@customers_bp.get("/<int:customer_id>/balance")
@require_context
@require_permission("VIEW_LEDGER")
def customer_balance_route(customer_id: int):
    try:
        return jsonify(reporting_service.customer_balance(g.caller, customer_id)), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute customer balance")
        return internal_error()


@customers_bp.get("/<int:customer_id>/statements/<month>")
@require_context
@require_permission("VIEW_LEDGER")
def monthly_statement_route(customer_id: int, month: str):
    try:
        customer_service.get_customer(g.caller, customer_id)
        return jsonify({"statement": reporting_service.monthly_statement(customer_id, month)}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build monthly statement")
        return internal_error()
