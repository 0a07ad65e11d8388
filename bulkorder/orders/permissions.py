"""Role capabilities, passed explicitly into every gate.

The session layer decides who the caller is; the engine only reads an
``ActorContext`` built from that answer.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Iterable, Optional


class Role(str, Enum):
    ADMIN = "admin"
    SUPPORT = "support"
    ACCOUNTANT = "accountant"
    SUPPLIER = "supplier"
    CLIENT = "client"


class Permission(str, Enum):
    ORDERS_VIEW_ALL = "orders.view_all"
    ORDERS_VIEW_OWN = "orders.view_own"
    ORDERS_CREATE = "orders.create"
    ORDERS_EDIT = "orders.edit"
    ORDERS_MARK_DELIVERED = "orders.mark_delivered"
    ORDERS_ASSIGN_SUPPLIER = "orders.assign_supplier"
    ORDERS_CANCEL = "orders.cancel"
    ORDERS_UPDATE_STATUS = "orders.update_status"
    PRICING_VIEW_COST_PRICE = "pricing.view_cost_price"
    PRICING_VIEW_PROFIT_MARGIN = "pricing.view_profit_margin"
    PRICING_EDIT_SUPPLIER_RATES = "pricing.edit_supplier_rates"
    PRICING_ENTER_QUOTED_RATES = "pricing.enter_quoted_rates"
    PRICING_VIEW_CLIENT_PRICE = "pricing.view_client_price"
    PAYMENTS_VIEW = "payments.view"
    PAYMENTS_PROCESS = "payments.process"
    PAYMENTS_REFUND = "payments.refund"
    PAYMENTS_MARK_PAID = "payments.mark_paid"


P = Permission

ROLE_PERMISSIONS: Dict[Role, FrozenSet[Permission]] = {
    Role.ADMIN: frozenset(Permission),
    Role.SUPPORT: frozenset({
        P.ORDERS_VIEW_ALL, P.ORDERS_VIEW_OWN, P.ORDERS_CREATE, P.ORDERS_EDIT,
        P.ORDERS_MARK_DELIVERED, P.ORDERS_ASSIGN_SUPPLIER, P.ORDERS_UPDATE_STATUS,
        P.PRICING_ENTER_QUOTED_RATES, P.PRICING_VIEW_CLIENT_PRICE,
    }),
    Role.ACCOUNTANT: frozenset({
        P.ORDERS_VIEW_ALL, P.ORDERS_VIEW_OWN,
        P.PRICING_VIEW_COST_PRICE, P.PRICING_VIEW_PROFIT_MARGIN, P.PRICING_VIEW_CLIENT_PRICE,
        P.PAYMENTS_VIEW, P.PAYMENTS_MARK_PAID,
    }),
    Role.SUPPLIER: frozenset({
        P.ORDERS_VIEW_OWN, P.ORDERS_MARK_DELIVERED,
        P.PRICING_VIEW_COST_PRICE, P.PRICING_VIEW_PROFIT_MARGIN,
    }),
    Role.CLIENT: frozenset({
        P.ORDERS_VIEW_OWN, P.ORDERS_CREATE, P.PRICING_VIEW_CLIENT_PRICE,
    }),
}

# Roles that work in the admin area (all orders, admin pricing view).
STAFF_ROLES: FrozenSet[Role] = frozenset({Role.ADMIN, Role.SUPPORT, Role.ACCOUNTANT})


@dataclass(frozen=True)
class ActorContext:
    """Who is acting. ``permissions`` defaults to the role's matrix entry."""

    role: Role
    user_id: Optional[int] = None
    permissions: FrozenSet[Permission] = field(default=frozenset())

    def __post_init__(self) -> None:
        if not isinstance(self.role, Role):
            object.__setattr__(self, "role", Role(self.role))
        if not self.permissions:
            object.__setattr__(self, "permissions", ROLE_PERMISSIONS.get(self.role, frozenset()))

    @classmethod
    def for_role(cls, role: "Role | str", user_id: Optional[int] = None,
                 extra: Iterable[Permission] = ()) -> "ActorContext":
        role = Role(role)
        return cls(role=role, user_id=user_id,
                   permissions=ROLE_PERMISSIONS.get(role, frozenset()) | frozenset(extra))

    def has(self, permission: Permission) -> bool:
        return permission in self.permissions

    @property
    def is_staff(self) -> bool:
        return self.role in STAFF_ROLES

    @property
    def is_client(self) -> bool:
        return self.role == Role.CLIENT

    @property
    def can_edit_delivery_cost(self) -> bool:
        """Per-slot delivery cost is visible and editable for pricing staff only."""
        return self.has(P.PRICING_ENTER_QUOTED_RATES)

    @property
    def sees_supplier_costing(self) -> bool:
        return self.has(P.PRICING_VIEW_COST_PRICE) and self.has(P.PRICING_VIEW_PROFIT_MARGIN)
