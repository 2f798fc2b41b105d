"""
Permission Keys

The portals speak in camelCase permission keys ("techUsersCreate",
"catalogueView"). This module maps each key to the (object, action) pair
the evaluator understands and derives the permission list a user receives
at login.

This module is part of PORTAL_AUTHZ.
"""

from __future__ import annotations

from collections.abc import Iterable

from ..constants import PORTAL_SUFFIX
from ..exceptions import UnknownPermissionError
from .evaluator import PolicyEvaluator

PERMISSION_TO_POLICY: dict[str, tuple[str, str]] = {
    # Admin
    "adminUsersCreate": ("admin_users", "create"),
    "adminUsersUpdate": ("admin_users", "update"),
    "adminUsersDisable": ("admin_users", "disable"),
    "adminUsersView": ("admin_users", "view"),
    "customerOrgsManage": ("customer_orgs", "manage"),
    "vendorOrgsManage": ("vendor_orgs", "manage"),
    "licenseView": ("licenses", "view"),
    "licensesView": ("licenses", "view"),
    "licensesIssue": ("licenses", "issue"),
    "licensesRevoke": ("licenses", "revoke"),
    "licensesFullControl": ("licenses", "full_control"),
    "onboardingView": ("onboarding", "view"),
    "onboardingManage": ("onboarding", "manage"),
    "systemSettingsManage": ("system_settings", "manage"),
    "securityPoliciesManage": ("security_policies", "manage"),
    "auditLogsView": ("audit_logs", "view"),
    "adminRfqView": ("admin_rfq", "view"),
    "adminRfqManage": ("admin_rfq", "manage"),
    # Tech
    "techUsersCreate": ("tech_users", "create"),
    "techUsersUpdate": ("tech_users", "update"),
    "techUsersDelete": ("tech_users", "delete"),
    "techUsersView": ("tech_users", "view"),
    "organizationsCreate": ("organizations", "create"),
    "organizationsUpdate": ("organizations", "update"),
    "organizationsDelete": ("organizations", "delete"),
    "organizationsView": ("organizations", "view"),
    "systemConfigManage": ("system_config", "manage"),
    "systemLogsView": ("system_logs", "view"),
    "systemStatusView": ("system_status", "view"),
    "rolesView": ("roles", "view"),
    "rolesCreate": ("roles", "create"),
    "rolesUpdate": ("roles", "update"),
    "rolesDelete": ("roles", "delete"),
    "manageRoles": ("roles", "manage"),
    "assignRolesView": ("assign_roles", "view"),
    "assignRolesAssign": ("assign_roles", "assign"),
    "assignRolesUpdate": ("assign_roles", "update"),
    "assignRolesRemove": ("assign_roles", "remove"),
    # Customer
    "rfqView": ("rfq", "view"),
    "rfqManage": ("rfq", "manage"),
    "vesselsView": ("vessels", "view"),
    "vesselsManage": ("vessels", "manage"),
    "employeesView": ("employees", "view"),
    "employeesManage": ("employees", "manage"),
    "crewView": ("crew", "view"),
    "crewManage": ("crew", "manage"),
    "financeView": ("finance", "view"),
    "financeManage": ("finance", "manage"),
    "customerBillingView": ("billing", "view"),
    "customerBillingManage": ("billing", "manage"),
    "documentsView": ("documents", "view"),
    "documentsUpload": ("documents", "upload"),
    "claimView": ("claims", "view"),
    "claimManage": ("claims", "manage"),
    # Vendor
    "catalogueView": ("catalogue", "view"),
    "catalogueManage": ("catalogue", "manage"),
    "inventoryView": ("inventory", "view"),
    "inventoryManage": ("inventory", "manage"),
    "quotationView": ("quotation", "view"),
    "quotationManage": ("quotation", "manage"),
    "vendorBillingView": ("billing", "view"),
    "vendorBillingManage": ("billing", "manage"),
    "vendorDocumentsView": ("vendor_documents", "view"),
    "vendorDocumentsUpload": ("vendor_documents", "upload"),
    "vendorClaimView": ("vendor_claims", "view"),
    "vendorClaimRespond": ("vendor_claims", "respond"),
    "vendorSupportView": ("support", "view"),
    "vendorSupportRespond": ("support", "respond"),
    "shipmentView": ("shipment", "view"),
    "shipmentUpdate": ("shipment", "update"),
    "vendorUsersCreate": ("vendor_users", "create"),
}


def portal_for(portal_type: str) -> str:
    """Map a user's portal type ("tech") to its domain ("tech_portal")."""
    portal_type = portal_type.strip().lower()
    if portal_type.endswith(PORTAL_SUFFIX):
        return portal_type
    return f"{portal_type}{PORTAL_SUFFIX}"


def resolve_permission(permission: str) -> tuple[str, str]:
    """
    Resolve a permission key to its (object, action) pair.

    Raises:
        UnknownPermissionError: If the key is not mapped
    """
    try:
        return PERMISSION_TO_POLICY[permission]
    except KeyError:
        raise UnknownPermissionError(permission) from None


def has_permission(evaluator: PolicyEvaluator, role: str, domain: str, permission: str) -> bool:
    obj, action = resolve_permission(permission)
    return evaluator.enforce(role, domain, obj, action)


def has_any_permission(
    evaluator: PolicyEvaluator, role: str, domain: str, permissions: Iterable[str]
) -> bool:
    return any(has_permission(evaluator, role, domain, key) for key in permissions)


def has_all_permissions(
    evaluator: PolicyEvaluator, role: str, domain: str, permissions: Iterable[str]
) -> bool:
    return all(has_permission(evaluator, role, domain, key) for key in permissions)


def effective_permissions(evaluator: PolicyEvaluator, role: str, domain: str) -> list[str]:
    """
    Permission keys `role` is allowed in `domain`, sorted.

    This is the `permissions` list handed to a portal session at login.
    """
    return sorted(
        key
        for key, (obj, action) in PERMISSION_TO_POLICY.items()
        if evaluator.enforce(role, domain, obj, action)
    )
