"""
Constants for PORTAL_AUTHZ.

This module contains all shared constants used across the codebase to avoid
magic strings and improve maintainability.
"""

from typing import Final

# ============================================================================
# PORTAL (DOMAIN) CONSTANTS
# ============================================================================

TECH_PORTAL: Final[str] = "tech_portal"
ADMIN_PORTAL: Final[str] = "admin_portal"
CUSTOMER_PORTAL: Final[str] = "customer_portal"
VENDOR_PORTAL: Final[str] = "vendor_portal"

SUPPORTED_PORTALS: Final[tuple[str, ...]] = (
    TECH_PORTAL,
    ADMIN_PORTAL,
    CUSTOMER_PORTAL,
    VENDOR_PORTAL,
)
"""Portal domains known to the default policy set."""

PORTAL_SUFFIX: Final[str] = "_portal"
"""Suffix appended to a user's portal type to form its domain."""

# ============================================================================
# MATCHING CONSTANTS
# ============================================================================

WILDCARD: Final[str] = "*"
"""Matches any object, action or acting role."""

PORTAL_SCOPE: Final[str] = WILDCARD
"""Domain value marking a grouping edge as portal-to-portal inheritance."""

IDENTIFIER_PATTERN: Final[str] = r"^[A-Za-z0-9_*.:\-]+$"
"""Allowed characters for roles, objects, actions and domains."""

MAX_IDENTIFIER_LENGTH: Final[int] = 128
"""Maximum length of a policy identifier."""

# ============================================================================
# EFFECT CONSTANTS
# ============================================================================

EFFECT_ALLOW: Final[str] = "allow"
EFFECT_DENY: Final[str] = "deny"

# ============================================================================
# PERSISTENCE CONSTANTS
# ============================================================================

DEFAULT_POLICY_COLLECTION: Final[str] = "casbin_rule"
"""Default MongoDB collection holding policy documents."""

POLICY_PTYPE: Final[str] = "p"
"""Casbin policy type for rules."""

GROUPING_PTYPE: Final[str] = "g"
"""Casbin grouping type for role edges (child, parent, domain)."""

PORTAL_GROUPING_PTYPE: Final[str] = "g2"
"""Casbin grouping type for portal edges (child portal, parent portal)."""

PORTAL_CROSS_FUNCTION: Final[str] = "portalCross"
"""Name the portal-crossing predicate is registered under in the matcher."""

# ============================================================================
# TOKEN CONSTANTS
# ============================================================================

JWT_ALGORITHM: Final[str] = "HS256"
"""Algorithm used to sign portal access tokens."""

MIN_SECRET_KEY_LENGTH: Final[int] = 32
"""Recommended minimum secret key length."""

# ============================================================================
# METRICS CONSTANTS
# ============================================================================

MAX_METRICS: Final[int] = 10000
"""Maximum number of (operation, tags) series kept before the oldest is dropped."""

# ============================================================================
# LOGGING CONSTANTS
# ============================================================================

CORRELATION_ID_HEADER: Final[str] = "X-Correlation-ID"
"""Request header carrying the caller's correlation ID."""

REQUEST_ID_HEADER: Final[str] = "X-Request-ID"
"""Fallback request header for the correlation ID."""
