"""
Role gates for the shop ledger.

WHY: Every write path is permission-gated by the caller's role. Keeping the
role -> permission mapping in one table makes the business rules reviewable
in one place instead of scattered role comparisons.

DESIGN PRINCIPLES:
- Permissions are granular (one action per permission)
- Roles come from the closed Role enum; strings are never compared here
- Shop scoping is checked separately from the permission itself
- Checks run before any write, so a denial never leaves side effects
"""

from __future__ import annotations

from .context import CallerContext, Role
from .validation import PermissionDeniedError


# =============================================================================
# PERMISSION DEFINITIONS
# =============================================================================

# Each permission is defined as: (code, description)
PERMISSION_DEFINITIONS = [
    ("RECORD_ITEM_TRANSACTION", "Record an item taken by a customer (credit sale)"),
    ("RECORD_CASH_SALE", "Record an item transaction as paid on the spot"),
    ("CREATE_INVOICE", "Create an invoice request"),
    ("SUBMIT_INVOICE", "Submit a draft invoice for shop review"),
    ("ACCEPT_INVOICE", "Accept a submitted invoice"),
    ("PREPARE_INVOICE", "Move an accepted invoice into preparation"),
    ("ENTER_INVOICE_AMOUNT", "Enter or correct invoice amounts"),
    ("CONFIRM_DELIVERY", "Confirm delivery of an invoice"),
    ("REJECT_INVOICE", "Reject a draft or submitted invoice"),
    ("RECORD_PAYMENT", "Record debt or payment ledger entries"),
    ("RECORD_ADJUSTMENT", "Record manual ledger adjustments"),
    ("MANAGE_CATALOG", "Create and edit catalog items"),
    ("VIEW_CATALOG", "List catalog items"),
    ("MANAGE_CUSTOMERS", "Create, suspend and activate customers"),
    ("VIEW_LEDGER", "View ledger entries and balances"),
    ("VIEW_REPORTS", "View shop reports"),
]


ROLE_PERMISSIONS: dict[Role, frozenset[str]] = {
    Role.OWNER: frozenset({
        "MANAGE_CATALOG",
        "VIEW_CATALOG",
        "MANAGE_CUSTOMERS",
        "VIEW_LEDGER",
        "VIEW_REPORTS",
    }),
    Role.ADMIN: frozenset({
        "RECORD_ITEM_TRANSACTION",
        "RECORD_CASH_SALE",
        "CREATE_INVOICE",
        "SUBMIT_INVOICE",
        "ACCEPT_INVOICE",
        "PREPARE_INVOICE",
        "ENTER_INVOICE_AMOUNT",
        "CONFIRM_DELIVERY",
        "REJECT_INVOICE",
        "RECORD_PAYMENT",
        "RECORD_ADJUSTMENT",
        "MANAGE_CATALOG",
        "VIEW_CATALOG",
        "MANAGE_CUSTOMERS",
        "VIEW_LEDGER",
        "VIEW_REPORTS",
    }),
    Role.STAFF: frozenset({
        # Staff may not mark cash received or correct balances without admin oversight
        "RECORD_ITEM_TRANSACTION",
        "CREATE_INVOICE",
        "SUBMIT_INVOICE",
        "ACCEPT_INVOICE",
        "PREPARE_INVOICE",
        "ENTER_INVOICE_AMOUNT",
        "CONFIRM_DELIVERY",
        "REJECT_INVOICE",
        "RECORD_PAYMENT",
        "VIEW_CATALOG",
        "MANAGE_CUSTOMERS",
        "VIEW_LEDGER",
        "VIEW_REPORTS",
    }),
    Role.CUSTOMER: frozenset({
        "CREATE_INVOICE",
        "SUBMIT_INVOICE",
        "VIEW_CATALOG",
        "VIEW_LEDGER",
    }),
}


# =============================================================================
# PERMISSION HELPERS
# =============================================================================

def get_all_permission_codes() -> list[str]:
    return [perm[0] for perm in PERMISSION_DEFINITIONS]


def has_permission(actor: CallerContext, permission_code: str) -> bool:
    return permission_code in ROLE_PERMISSIONS.get(actor.role, frozenset())


def require_permission(actor: CallerContext, permission_code: str, *, reason: str | None = None) -> None:
    """
    Raise PermissionDeniedError unless the actor's role grants permission_code.
    """
    if not has_permission(actor, permission_code):
        raise PermissionDeniedError(
            reason or f"Role {actor.role.value} is not allowed to perform {permission_code}",
            details={"required_permission": permission_code},
        )


def check_shop_access(actor: CallerContext, shop_id: int | None) -> None:
    """
    Tenant boundary for shop-scoped writes and reads.

    - OWNER can access every shop
    - ADMIN / STAFF only the shop they are assigned to
    - CUSTOMER only the shop they are affiliated with (if any)
    """
    if actor.role == Role.OWNER:
        return
    if actor.role == Role.CUSTOMER:
        if actor.shop_id is not None and shop_id is not None and actor.shop_id != shop_id:
            raise PermissionDeniedError("Shop access denied")
        return
    if shop_id is None or actor.shop_id != shop_id:
        raise PermissionDeniedError("Shop access denied")
