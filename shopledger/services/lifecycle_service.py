# Overview: Invoice lifecycle rules; the transition graph and who may drive each edge.

"""
Invoice Lifecycle

================================================================================
PURPOSE: Enforce the approval/delivery workflow for customer invoices
================================================================================

STATE MACHINE:
    DRAFT -> SUBMITTED -> ACCEPTED -> PREPARING -> AMOUNT_ENTERED -> DELIVERED_CONFIRMED
    DRAFT, SUBMITTED -> REJECTED

    DRAFT:               Created by staff, editable, invisible to the ledger
    SUBMITTED:           Waiting for shop review (customers create directly here)
    ACCEPTED:            Shop agreed to fulfil it
    PREPARING:           Goods are being assembled
    AMOUNT_ENTERED:      Final amounts are known
    DELIVERED_CONFIRMED: TERMINAL; remaining debt is appended to the ledger
    REJECTED:            TERMINAL; never touches the ledger

RULES (NON-NEGOTIABLE):
1. Cannot skip states (DRAFT -> DELIVERED_CONFIRMED is forbidden)
2. Cannot reverse states, and same-state moves are not transitions
3. Terminal states have no outgoing edges
4. Only delivery writes to the ledger, exactly once
================================================================================
"""

from __future__ import annotations

from ..models import INVOICE_STATUSES
from ..validation import ValidationError


VALID_STATUSES = frozenset(INVOICE_STATUSES)
TERMINAL_STATUSES = frozenset({"DELIVERED_CONFIRMED", "REJECTED"})

INVOICE_TRANSITIONS: dict[str, frozenset[str]] = {
    "DRAFT": frozenset({"SUBMITTED", "REJECTED"}),
    "SUBMITTED": frozenset({"ACCEPTED", "REJECTED"}),
    "ACCEPTED": frozenset({"PREPARING"}),
    "PREPARING": frozenset({"AMOUNT_ENTERED"}),
    "AMOUNT_ENTERED": frozenset({"DELIVERED_CONFIRMED"}),
    "DELIVERED_CONFIRMED": frozenset(),
    "REJECTED": frozenset(),
}

# Permission required to move an invoice INTO each status
TRANSITION_PERMISSIONS = {
    "SUBMITTED": "SUBMIT_INVOICE",
    "ACCEPTED": "ACCEPT_INVOICE",
    "PREPARING": "PREPARE_INVOICE",
    "AMOUNT_ENTERED": "ENTER_INVOICE_AMOUNT",
    "DELIVERED_CONFIRMED": "CONFIRM_DELIVERY",
    "REJECTED": "REJECT_INVOICE",
}


def normalize_status(status) -> str:
    """Uppercase and validate a status coming from the API."""
    value = str(status or "").strip().upper()
    validate_status(value)
    return value


def validate_status(status: str) -> None:
    if status not in VALID_STATUSES:
        raise ValidationError(
            f"Invalid status '{status}'. Must be one of: {', '.join(INVOICE_STATUSES)}"
        )


def can_transition(from_status: str, to_status: str) -> bool:
    """
    True only for edges of the graph above. Same-state pairs are not edges.
    """
    validate_status(from_status)
    validate_status(to_status)
    return to_status in INVOICE_TRANSITIONS[from_status]


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


def required_permission(to_status: str) -> str:
    validate_status(to_status)
    try:
        return TRANSITION_PERMISSIONS[to_status]
    except KeyError:
        raise ValidationError(f"Invoices cannot be moved to {to_status}")
