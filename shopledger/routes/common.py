# Overview: Shared helpers for API routes; JSON bodies and error responses.

from flask import jsonify, request

from ..time_utils import parse_iso_datetime
from ..validation import DomainError, ValidationError, coerce_int


def error_response(e: DomainError):
    return jsonify(e.to_dict()), e.http_status


def internal_error():
    return jsonify({"error": "Internal server error", "kind": "INTERNAL"}), 500


def json_body() -> dict:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError("Request body must be a JSON object")
    return data


def date_arg(name: str):
    raw = request.args.get(name)
    try:
        return parse_iso_datetime(raw)
    except ValueError:
        raise ValidationError(f"{name} must be an ISO-8601 datetime")


def int_arg(name: str) -> int | None:
    raw = request.args.get(name)
    if raw is None or raw == "":
        return None
    return coerce_int(raw, name)
