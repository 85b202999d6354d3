from __future__ import annotations

from typing import Any

# Maximum amount: 99,999,999.99 in major units (9,999,999,999 cents)
# Keeps values well inside a 64-bit column and rejects nonsensical input
MAX_AMOUNT_CENTS = 9_999_999_999
MAX_QUANTITY = 1_000_000


class DomainError(Exception):
    """
    Base class for errors surfaced to callers as structured failures.

    Every subclass carries a machine-readable kind and the HTTP status
    the route layer maps it to.
    """
    kind = "DOMAIN"
    http_status = 400

    def __init__(self, message: str, details: dict | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> dict:
        body = {"error": self.message, "kind": self.kind}
        if self.details:
            body["details"] = self.details
        return body


class ValidationError(DomainError, ValueError):
    """400-level input problem (shape or range)."""
    kind = "VALIDATION"
    http_status = 400


class PermissionDeniedError(DomainError):
    """Role or shop mismatch for the requested operation."""
    kind = "PERMISSION"
    http_status = 403


class NotFoundError(DomainError):
    """Referenced customer, shop, item or invoice does not exist."""
    kind = "NOT_FOUND"
    http_status = 404


class InvalidTransitionError(DomainError):
    """Illegal invoice state edge (including any move out of a terminal state)."""
    kind = "INVALID_TRANSITION"
    http_status = 409


class StorageError(DomainError):
    """Backing store unreachable or a constraint was violated."""
    kind = "STORAGE"
    http_status = 503


class OperationTimeoutError(DomainError, TimeoutError):
    """The operation exceeded its deadline and was rolled back."""
    kind = "TIMEOUT"
    http_status = 504


def coerce_int(value: Any, field: str) -> int:
    """
    Strict integer coercion for API input.

    Accepts ints and plain digit strings. Rejects bools, floats, decimals
    and scientific notation so money and quantities never pass through floats.
    """
    if isinstance(value, bool):
        raise ValidationError(f"{field} must be an integer")
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        stripped = value.strip()
        if not stripped:
            raise ValidationError(f"{field} must be an integer")
        if "e" in stripped.lower():
            raise ValidationError(f"{field} must be a plain integer (scientific notation not allowed)")
        if "." in stripped:
            raise ValidationError(f"{field} must be an integer (no decimals)")
        try:
            return int(stripped)
        except ValueError:
            raise ValidationError(f"{field} must be an integer")
    if isinstance(value, float):
        raise ValidationError(f"{field} must be an integer, not a decimal")
    raise ValidationError(f"{field} must be an integer")


def require_positive_int(value: Any, field: str, *, maximum: int = MAX_AMOUNT_CENTS) -> int:
    number = coerce_int(value, field)
    if number <= 0:
        raise ValidationError(f"{field} must be greater than 0")
    if number > maximum:
        raise ValidationError(f"{field} must not exceed {maximum}")
    return number


def require_non_negative_int(value: Any, field: str, *, maximum: int = MAX_AMOUNT_CENTS) -> int:
    number = coerce_int(value, field)
    if number < 0:
        raise ValidationError(f"{field} must be greater than or equal to 0")
    if number > maximum:
        raise ValidationError(f"{field} must not exceed {maximum}")
    return number


def require_text(value: Any, field: str, *, max_length: int = 255) -> str:
    if value is None:
        raise ValidationError(f"{field} is required")
    text = str(value).strip()
    if not text:
        raise ValidationError(f"{field} is required")
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def optional_text(value: Any, field: str, *, max_length: int = 255) -> str | None:
    if value is None:
        return None
    text = str(value).strip()
    if not text:
        return None
    if len(text) > max_length:
        raise ValidationError(f"{field} must be at most {max_length} characters")
    return text


def require_choice(value: Any, field: str, choices) -> str:
    text = str(value).strip().upper() if value is not None else ""
    if text not in choices:
        raise ValidationError(f"{field} must be one of: {', '.join(sorted(choices))}")
    return text
