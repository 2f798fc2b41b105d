"""
Default Policy Seeding

Provides the platform's default rule set and the routine that loads it into
a PolicyStore at startup.

Seeding is idempotent: tuples already present are skipped. Any other store
error (including a cyclic hierarchy) propagates, since a partially seeded
policy set must never serve traffic.

This module is part of PORTAL_AUTHZ.
"""

import time

from ..constants import (
    ADMIN_PORTAL,
    CUSTOMER_PORTAL,
    EFFECT_ALLOW,
    EFFECT_DENY,
    PORTAL_SCOPE,
    TECH_PORTAL,
    VENDOR_PORTAL,
)
from ..observability.logging import get_logger, log_operation
from ..observability.metrics import record_operation
from .store import PolicyStore

logger = get_logger(__name__)

# (child, parent, domain): the child inherits the parent's grants
DEFAULT_PORTAL_HIERARCHY: tuple[tuple[str, str, str], ...] = (
    (TECH_PORTAL, ADMIN_PORTAL, PORTAL_SCOPE),
    (ADMIN_PORTAL, CUSTOMER_PORTAL, PORTAL_SCOPE),
    (ADMIN_PORTAL, VENDOR_PORTAL, PORTAL_SCOPE),
)

DEFAULT_ROLE_HIERARCHY: tuple[tuple[str, str, str], ...] = (
    ("tech_admin", "tech_manager", TECH_PORTAL),
    ("tech_manager", "tech_developer", TECH_PORTAL),
    ("tech_developer", "tech_support", TECH_PORTAL),
)


def _grants(
    role: str, objects: tuple[str, ...], actions: tuple[str, ...], domain: str, effect: str
) -> list[tuple[str, str, str, str, str, str]]:
    return [
        (role, obj, action, effect, domain, role) for obj in objects for action in actions
    ]


# (subject_role, object, action, effect, domain, acting_role)
DEFAULT_POLICIES: tuple[tuple[str, str, str, str, str, str], ...] = tuple(
    [
        # Tech admin
        *_grants(
            "tech_admin",
            ("admin_users", "tech_users", "organizations"),
            ("create", "update", "delete", "view"),
            TECH_PORTAL,
            EFFECT_ALLOW,
        ),
        *_grants(
            "tech_admin",
            ("licenses",),
            ("view", "issue", "revoke", "full_control"),
            TECH_PORTAL,
            EFFECT_ALLOW,
        ),
        *_grants("tech_admin", ("onboarding",), ("view", "manage"), TECH_PORTAL, EFFECT_ALLOW),
        *_grants("tech_admin", ("system_config",), ("manage",), TECH_PORTAL, EFFECT_ALLOW),
        # Tech manager
        *_grants(
            "tech_manager", ("admin_users",), ("create", "update", "view"), TECH_PORTAL, EFFECT_ALLOW
        ),
        *_grants("tech_manager", ("tech_users",), ("create",), TECH_PORTAL, EFFECT_DENY),
        *_grants(
            "tech_manager", ("licenses",), ("view", "issue", "revoke"), TECH_PORTAL, EFFECT_ALLOW
        ),
        *_grants(
            "tech_manager", ("organizations", "onboarding"), ("view",), TECH_PORTAL, EFFECT_ALLOW
        ),
        # Tech developer
        *_grants(
            "tech_developer", ("admin_users", "tech_users"), ("create",), TECH_PORTAL, EFFECT_DENY
        ),
        *_grants(
            "tech_developer",
            ("licenses", "system_logs", "organizations", "onboarding"),
            ("view",),
            TECH_PORTAL,
            EFFECT_ALLOW,
        ),
        # Tech support
        *_grants(
            "tech_support", ("admin_users", "tech_users"), ("create",), TECH_PORTAL, EFFECT_DENY
        ),
        *_grants(
            "tech_support", ("system_status", "organizations"), ("view",), TECH_PORTAL, EFFECT_ALLOW
        ),
        # Tech CTO
        *_grants("tech_cto", ("tech_users",), ("view",), TECH_PORTAL, EFFECT_ALLOW),
        # Admin portal
        *_grants(
            "admin_superuser",
            ("tech_users",),
            ("create", "update", "delete"),
            ADMIN_PORTAL,
            EFFECT_DENY,
        ),
        *_grants("admin_superuser", ("admin_users",), ("create",), ADMIN_PORTAL, EFFECT_ALLOW),
        *_grants(
            "admin_superuser",
            ("customer_orgs", "vendor_orgs"),
            ("manage",),
            ADMIN_PORTAL,
            EFFECT_ALLOW,
        ),
        *_grants(
            "admin_superuser", ("licenses",), ("issue", "revoke"), ADMIN_PORTAL, EFFECT_ALLOW
        ),
        # Customer portal
        *_grants(
            "customer_admin",
            ("rfq", "vessels", "employees"),
            ("manage",),
            CUSTOMER_PORTAL,
            EFFECT_ALLOW,
        ),
        *_grants("customer_user", ("rfq", "vessels"), ("view",), CUSTOMER_PORTAL, EFFECT_ALLOW),
        # Vendor portal
        *_grants(
            "vendor_admin",
            ("catalogue", "inventory", "quotation"),
            ("manage",),
            VENDOR_PORTAL,
            EFFECT_ALLOW,
        ),
        *_grants("vendor_user", ("catalogue", "quotation"), ("view",), VENDOR_PORTAL, EFFECT_ALLOW),
    ]
)


def seed_default_policies(store: PolicyStore) -> None:
    """
    Populate `store` with the default portal hierarchy, role hierarchy and rules.

    This function:
    1. Adds portal-inheritance edges, then role edges
    2. Adds every default rule
    3. Skips tuples that are already present (idempotent)

    Args:
        store: PolicyStore to populate

    Raises:
        CyclicHierarchyError: If an edge conflicts with existing groupings
        PortalAuthzError: Any other store failure, propagated unchanged
    """
    start_time = time.time()
    added = 0
    existing = 0

    try:
        for child, parent, domain in (*DEFAULT_PORTAL_HIERARCHY, *DEFAULT_ROLE_HIERARCHY):
            if store.has_grouping_policy(child, parent, domain):
                logger.debug(f"  Grouping already exists: {child} -> {parent} ({domain})")
                existing += 1
                continue
            store.add_grouping_policy(child, parent, domain)
            added += 1

        for role, obj, action, effect, domain, acting_role in DEFAULT_POLICIES:
            if store.has_policy(role, obj, action, effect, domain, acting_role):
                logger.debug(f"  Policy already exists: {role} -> {obj}:{action} ({effect})")
                existing += 1
                continue
            store.add_policy(role, obj, action, effect, domain, acting_role)
            added += 1
    except Exception:
        duration_ms = (time.time() - start_time) * 1000
        record_operation("policy.seed", duration_ms, success=False)
        log_operation(
            logger, "policy.seed", duration_ms, success=False, added=added, existing=existing
        )
        raise

    duration_ms = (time.time() - start_time) * 1000
    record_operation("policy.seed", duration_ms)
    log_operation(logger, "policy.seed", duration_ms, added=added, existing=existing)
    logger.info(f"✅ Default policies seeded ({added} added, {existing} already present)")
