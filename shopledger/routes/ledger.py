# Overview: Flask API routes for debt ledger operations; parses input and returns JSON responses.

from flask import Blueprint, request, jsonify, g, current_app

from ..decorators import require_context, require_permission
from ..services import balance_service, ledger_service
from ..validation import DomainError, coerce_int
from .common import date_arg, error_response, int_arg, internal_error, json_body

"""
Time semantics:
- API accepts ISO-8601 datetimes with Z/offsets; backend normalizes to UTC-naive internally.
- start_date / end_date filtering is inclusive on both ends.
"""

ledger_bp = Blueprint("ledger", __name__, url_prefix="/api/ledger")


@ledger_bp.post("")
@require_context
def record_ledger_transaction_route():
    """
    Record DEBT_ADD / PAYMENT (ADMIN, STAFF) or ADJUSTMENT (ADMIN).

    Body: {shop_id?, customer_id, transaction_type, amount_cents, invoice_id?,
           notes?, adjustment_direction?}
    """
    try:
        data = json_body()
        shop_id = data.get("shop_id", g.caller.shop_id)
        invoice_id = data.get("invoice_id")
        entry = ledger_service.record_transaction(
            g.caller,
            shop_id=coerce_int(shop_id, "shop_id") if shop_id is not None else None,
            customer_id=coerce_int(data.get("customer_id"), "customer_id"),
            transaction_type=data.get("transaction_type"),
            amount_cents=data.get("amount_cents"),
            invoice_id=coerce_int(invoice_id, "invoice_id") if invoice_id is not None else None,
            notes=data.get("notes"),
            adjustment_direction=data.get("adjustment_direction"),
        )
        return jsonify({"entry": entry.to_dict()}), 201

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to record ledger transaction")
        return internal_error()


@ledger_bp.get("")
@require_context
@require_permission("VIEW_LEDGER")
def list_ledger_entries_route():
    try:
        limit = request.args.get("limit", default=200, type=int)
        limit = max(1, min(limit, 1000))

        entries = ledger_service.list_entries(
            g.caller,
            customer_id=int_arg("customer_id"),
            transaction_type=request.args.get("transaction_type"),
            start=date_arg("start_date"),
            end=date_arg("end_date"),
            limit=limit,
        )
        customer_ids = {e.customer_id for e in entries}
        balances = balance_service.balances_by_customer(customer_ids=customer_ids)

        return jsonify({
            "entries": [e.to_dict() for e in entries],
            "balances": [
                {"customer_id": customer_id, "balance_cents": balances.get(customer_id, 0)}
                for customer_id in sorted(customer_ids)
            ],
        }), 200

    except DomainError as e:
        return error_response(e)
    except Exception:
        current_app.logger.exception("Failed to list ledger entries")
        return internal_error()
