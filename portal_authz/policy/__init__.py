"""
Policy engine: store, evaluator, default seed and persistence.
"""

from .evaluator import EvaluationResult, PolicyEvaluator
from .permissions import (
    PERMISSION_TO_POLICY,
    effective_permissions,
    has_all_permissions,
    has_any_permission,
    has_permission,
    portal_for,
    resolve_permission,
)
from .seeding import (
    DEFAULT_POLICIES,
    DEFAULT_PORTAL_HIERARCHY,
    DEFAULT_ROLE_HIERARCHY,
    seed_default_policies,
)
from .store import PolicySnapshot, PolicyStore
from .casbin_models import PORTAL_RBAC_MODEL
from .types import Decision, Effect, RoleGrouping, Rule

__all__ = [
    # Types
    "Decision",
    "Effect",
    "Rule",
    "RoleGrouping",
    # Store
    "PolicyStore",
    "PolicySnapshot",
    "PORTAL_RBAC_MODEL",
    # Evaluator
    "PolicyEvaluator",
    "EvaluationResult",
    # Seeding
    "DEFAULT_POLICIES",
    "DEFAULT_PORTAL_HIERARCHY",
    "DEFAULT_ROLE_HIERARCHY",
    "seed_default_policies",
    # Permissions
    "PERMISSION_TO_POLICY",
    "effective_permissions",
    "has_permission",
    "has_any_permission",
    "has_all_permissions",
    "portal_for",
    "resolve_permission",
]
