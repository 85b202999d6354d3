# Overview: Caller identity resolved once at the request boundary.

"""
Caller context handed over by the auth collaborator.

Authentication happens upstream (gateway/session service). By the time a
request reaches this application the caller is already verified active and
not suspended; the gateway forwards the result as three headers:

    X-Actor-Id:   opaque actor identifier
    X-Actor-Role: OWNER | ADMIN | STAFF | CUSTOMER
    X-Shop-Id:    shop the actor works in (absent for OWNER / unaffiliated customers)

The role string is parsed into the closed Role enum here and nowhere else.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Mapping, Optional


class Role(str, enum.Enum):
    OWNER = "OWNER"
    ADMIN = "ADMIN"
    STAFF = "STAFF"
    CUSTOMER = "CUSTOMER"

    @classmethod
    def parse(cls, value: str) -> "Role":
        try:
            return cls(value.strip().upper())
        except (AttributeError, ValueError):
            raise ValueError(f"Unknown role: {value!r}")


SHOP_ROLES = frozenset({Role.ADMIN, Role.STAFF})


class ContextError(ValueError):
    """Raised when the forwarded caller context is missing or malformed."""


@dataclass(frozen=True)
class CallerContext:
    """
    Resolved (actor_id, role, shop_id) triple.

    shop_id is None for OWNER and for customers with no shop affiliation.
    """
    actor_id: str
    role: Role
    shop_id: Optional[int] = None

    @property
    def is_staff_member(self) -> bool:
        return self.role in SHOP_ROLES

    def to_dict(self) -> dict:
        return {
            "actor_id": self.actor_id,
            "role": self.role.value,
            "shop_id": self.shop_id,
        }


def context_from_headers(headers: Mapping[str, str]) -> CallerContext:
    actor_id = (headers.get("X-Actor-Id") or "").strip()
    if not actor_id:
        raise ContextError("Missing caller identity")

    role_raw = headers.get("X-Actor-Role")
    if not role_raw:
        raise ContextError("Missing caller role")
    try:
        role = Role.parse(role_raw)
    except ValueError as exc:
        raise ContextError(str(exc))

    shop_raw = (headers.get("X-Shop-Id") or "").strip()
    shop_id = None
    if shop_raw:
        if not shop_raw.isdigit():
            raise ContextError("X-Shop-Id must be an integer")
        shop_id = int(shop_raw)

    if role in SHOP_ROLES and shop_id is None:
        raise ContextError("You must be associated with a shop")

    return CallerContext(actor_id=actor_id, role=role, shop_id=shop_id)
