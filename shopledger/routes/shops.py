# Overview: Flask API routes for per-shop aggregates; parses input and returns JSON responses.

from flask import Blueprint, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..services import shop_service
from ..validation import DomainError
from .common import error_response, internal_error


shops_bp = Blueprint("shops", __name__, url_prefix="/api/shops")


@shops_bp.get("/<int:shop_id>/balance")
@require_context
@require_permission("VIEW_REPORTS")
def shop_balance_route(shop_id: int):
    """Outstanding customer debt recorded in one shop."""
    try:
        return jsonify(shop_service.get_shop_balance(g.caller, shop_id)), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to compute shop balance")
        return internal_error()
