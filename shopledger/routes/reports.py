# Overview: Flask API routes for reporting; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..permissions import check_shop_access
from ..services import reporting_service
from ..validation import DomainError, ValidationError
from .common import date_arg, error_response, int_arg, internal_error


reports_bp = Blueprint("reports", __name__, url_prefix="/api/reports")


@reports_bp.get("/customers")
@require_context
@require_permission("VIEW_REPORTS")
def customer_summary_route():
    """
    Item transactions grouped by customer.

    Query: shop_id (defaults to the caller's shop), start_date, end_date,
    payment_type (ALL | DEEN | CASH | LA_BIXSHAY)
    """
    try:
        shop_id = int_arg("shop_id") or g.caller.shop_id
        if shop_id is None:
            raise ValidationError("shop_id is required")
        check_shop_access(g.caller, shop_id)

        report = reporting_service.customer_summary(
            shop_id,
            start=date_arg("start_date"),
            end=date_arg("end_date"),
            payment_type=request.args.get("payment_type", "ALL"),
        )
        return jsonify(report), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build customer summary")
        return internal_error()


@reports_bp.get("/customers/<int:customer_id>")
@require_context
@require_permission("VIEW_REPORTS")
def customer_detail_route(customer_id: int):
    """
    One customer's profile and the items they took.

    Query: start_date, end_date, payment_type (ALL | DEEN | CASH | LA_BIXSHAY)
    """
    try:
        report = reporting_service.customer_detail(
            g.caller,
            customer_id,
            start=date_arg("start_date"),
            end=date_arg("end_date"),
            payment_type=request.args.get("payment_type", "ALL"),
        )
        return jsonify(report), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build customer detail report")
        return internal_error()


@reports_bp.get("/dashboard")
@require_context
def dashboard_stats_route():
    """
    Dashboard counters scoped to the caller's role.

    Query: start_date, end_date, taken_type (ALL | DEEN | CASH | LA_BIXSHAY)
    """
    try:
        stats = reporting_service.dashboard_stats(
            g.caller,
            start=date_arg("start_date"),
            end=date_arg("end_date"),
            taken_type=request.args.get("taken_type", "ALL"),
        )
        return jsonify(stats), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to build dashboard stats")
        return internal_error()
