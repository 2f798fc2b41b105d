"""
Authentication and authorization integration for FastAPI.

This module is part of PORTAL_AUTHZ.
"""

from .dependencies import (
    PortalUser,
    get_current_user,
    get_policy_evaluator,
    require_permission,
    require_portal,
)
from .jwt import decode_jwt_token, encode_jwt_token, get_secret_key

__all__ = [
    "PortalUser",
    "get_current_user",
    "get_policy_evaluator",
    "require_permission",
    "require_portal",
    "decode_jwt_token",
    "encode_jwt_token",
    "get_secret_key",
]
