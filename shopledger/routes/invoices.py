# Overview: Flask API routes for invoice workflow operations; parses input and returns JSON responses.

"""Invoice API routes. Workflow rules live in invoice_service / lifecycle_service."""

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..services import invoice_service
from ..validation import DomainError, ValidationError, coerce_int
from .common import error_response, int_arg, internal_error, json_body


invoices_bp = Blueprint("invoices", __name__, url_prefix="/api/invoices")


def _optional_int(data: dict, field: str):
    value = data.get(field)
    return coerce_int(value, field) if value is not None else None


@invoices_bp.post("")
@require_context
@require_permission("CREATE_INVOICE")
def create_invoice_route():
    """
    Create an invoice.

    Body: {customer_id?, shop_id?, requested_month?, line_items: [{item_id, quantity}]}
    Customers land in SUBMITTED, staff in DRAFT.
    """
    try:
        data = json_body()
        invoice = invoice_service.create_invoice(
            g.caller,
            customer_id=_optional_int(data, "customer_id"),
            shop_id=_optional_int(data, "shop_id"),
            line_items=data.get("line_items"),
            requested_month=data.get("requested_month"),
        )
        return jsonify({"invoice": invoice.to_dict(include_lines=True)}), 201

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to create invoice")
        return internal_error()


@invoices_bp.get("")
@require_context
def list_invoices_route():
    try:
        limit = request.args.get("limit", default=100, type=int)
        limit = max(1, min(limit, 500))
        invoices = invoice_service.list_invoices(
            g.caller,
            status=request.args.get("status"),
            customer_id=int_arg("customer_id"),
            limit=limit,
        )
        return jsonify({"invoices": [inv.to_dict() for inv in invoices]}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list invoices")
        return internal_error()


@invoices_bp.get("/<int:invoice_id>")
@require_context
def get_invoice_route(invoice_id: int):
    try:
        invoice = invoice_service.get_invoice(invoice_id, g.caller)
        return jsonify({"invoice": invoice.to_dict(include_lines=True)}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to get invoice")
        return internal_error()


@invoices_bp.patch("/<int:invoice_id>")
@require_context
def update_invoice_route(invoice_id: int):
    """
    Body: {status?, total_amount_cents?, paid_amount_cents?}
    Amounts are applied first, then the status change, atomically.
    """
    try:
        data = json_body()
        invoice = invoice_service.update_invoice(
            invoice_id,
            g.caller,
            status=data.get("status"),
            total_amount_cents=data.get("total_amount_cents"),
            paid_amount_cents=data.get("paid_amount_cents"),
        )
        return jsonify({"invoice": invoice.to_dict(include_lines=True)}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to update invoice")
        return internal_error()


@invoices_bp.post("/<int:invoice_id>/transition")
@require_context
def transition_invoice_route(invoice_id: int):
    try:
        data = json_body()
        target = data.get("status") or data.get("target_status")
        if not target:
            raise ValidationError("status is required")
        invoice = invoice_service.transition(invoice_id, target, g.caller)
        return jsonify({"invoice": invoice.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to transition invoice")
        return internal_error()


@invoices_bp.patch("/<int:invoice_id>/amounts")
@require_context
@require_permission("ENTER_INVOICE_AMOUNT")
def apply_amounts_route(invoice_id: int):
    try:
        data = json_body()
        invoice = invoice_service.apply_amounts(
            invoice_id,
            g.caller,
            total_amount_cents=data.get("total_amount_cents"),
            paid_amount_cents=data.get("paid_amount_cents"),
        )
        return jsonify({"invoice": invoice.to_dict()}), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to apply invoice amounts")
        return internal_error()
