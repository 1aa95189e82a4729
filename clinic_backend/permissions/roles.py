# permissions/roles.py

from __future__ import annotations

from typing import Optional

from rest_framework.permissions import BasePermission


# =========================================================
# ROLE CONSTANTS (CLINIC STAFF JOB ROLES)
# =========================================================
ROLE_ADMIN = "admin"
ROLE_MANAGER = "manager"
ROLE_VETERINARIAN = "veterinarian"
ROLE_TECHNICIAN = "technician"
ROLE_RECEPTIONIST = "receptionist"

STAFF_ROLES = {
    ROLE_ADMIN,
    ROLE_MANAGER,
    ROLE_VETERINARIAN,
    ROLE_TECHNICIAN,
    ROLE_RECEPTIONIST,
}


# =========================================================
# CAPABILITIES (THE REAL PERMISSION LANGUAGE)
# =========================================================
# Views protect capabilities, not raw roles.
CAP_INVENTORY_VIEW = "inventory.view"
CAP_INVENTORY_EDIT = "inventory.edit"          # catalog edits, shipment receipt
CAP_INVENTORY_ADJUST = "inventory.adjust"      # reconciliation (writes adjustment movements)

CAP_BILLING_VIEW = "billing.view"
CAP_BILLING_EDIT = "billing.edit"              # draft / send / cancel invoices
CAP_BILLING_COLLECT = "billing.collect"        # mark invoices paid (deducts stock)

ALL_CAPABILITIES = {
    CAP_INVENTORY_VIEW,
    CAP_INVENTORY_EDIT,
    CAP_INVENTORY_ADJUST,
    CAP_BILLING_VIEW,
    CAP_BILLING_EDIT,
    CAP_BILLING_COLLECT,
}


# =========================================================
# ROLE → CAPABILITY MAP
# =========================================================
ROLE_CAPABILITIES: dict[str, set[str]] = {
    ROLE_ADMIN: {
        *ALL_CAPABILITIES,
    },
    ROLE_MANAGER: {
        *ALL_CAPABILITIES,
    },
    ROLE_VETERINARIAN: {
        CAP_INVENTORY_VIEW,
        CAP_BILLING_VIEW,
        CAP_BILLING_EDIT,
        CAP_BILLING_COLLECT,
    },
    ROLE_TECHNICIAN: {
        CAP_INVENTORY_VIEW,
        CAP_INVENTORY_EDIT,
        CAP_BILLING_VIEW,
    },
    ROLE_RECEPTIONIST: {
        CAP_INVENTORY_VIEW,
        CAP_BILLING_VIEW,
        CAP_BILLING_EDIT,
        CAP_BILLING_COLLECT,
    },
}


# =========================================================
# Helpers
# =========================================================
def get_user_role(user) -> Optional[str]:
    return getattr(user, "role", None)


def capabilities_for(user) -> set[str]:
    if getattr(user, "is_superuser", False):
        return set(ALL_CAPABILITIES)
    return set(ROLE_CAPABILITIES.get(get_user_role(user), set()))


def user_has_capability(user, capability: str) -> bool:
    return capability in capabilities_for(user)


# =========================================================
# Capability Permissions
# =========================================================
class HasCapability(BasePermission):
    """
    Require a specific capability.

    Usage:
        permission_classes = [IsAuthenticated, HasCapability]
        view.required_capability = CAP_INVENTORY_EDIT
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_capability", None)
        if not required:
            # If not set, deny-by-default to avoid accidental open endpoints
            return False

        return required in capabilities_for(user)


class HasAnyCapability(BasePermission):
    """
    Require ANY capability from a set.

    Usage:
        view.required_any_capabilities = {CAP_INVENTORY_VIEW, CAP_INVENTORY_EDIT}
    """

    def has_permission(self, request, view):
        user = request.user
        if not user or not user.is_authenticated:
            return False

        required = getattr(view, "required_any_capabilities", None)
        if not required:
            return False

        caps = capabilities_for(user)
        return any(cap in caps for cap in set(required))
