"""
PORTAL_AUTHZ - Portal Authorization Engine

Role-based access control for the tech, admin, customer and vendor portals:
a policy store with role and portal inheritance, a deny-override evaluator,
and the platform's default policy seed.
"""

from .exceptions import (
    ConfigurationError,
    CyclicHierarchyError,
    DuplicateRuleWarning,
    PolicyValidationError,
    PortalAuthzError,
    StoreUnavailableError,
    UnknownPermissionError,
)
from .policy import (
    Decision,
    Effect,
    EvaluationResult,
    PolicyEvaluator,
    PolicyStore,
    RoleGrouping,
    Rule,
    effective_permissions,
    has_permission,
    seed_default_policies,
)

__version__ = "0.1.0"

__all__ = [
    # Policy
    "Decision",
    "Effect",
    "Rule",
    "RoleGrouping",
    "PolicyStore",
    "PolicyEvaluator",
    "EvaluationResult",
    "seed_default_policies",
    "effective_permissions",
    "has_permission",
    # Errors
    "PortalAuthzError",
    "CyclicHierarchyError",
    "StoreUnavailableError",
    "ConfigurationError",
    "PolicyValidationError",
    "UnknownPermissionError",
    "DuplicateRuleWarning",
]
