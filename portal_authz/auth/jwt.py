"""
JWT Token Utilities

Encodes and decodes the portal access tokens whose claims carry the role
and portal type the policy evaluator needs.

This module is part of PORTAL_AUTHZ.
"""

import logging
import os
import uuid
from datetime import datetime, timedelta, timezone
from typing import Any

import jwt

from ..constants import JWT_ALGORITHM, MIN_SECRET_KEY_LENGTH
from ..exceptions import ConfigurationError

logger = logging.getLogger(__name__)

ACCESS_TOKEN_TTL: int = int(os.getenv("ACCESS_TOKEN_TTL", "900"))
"""Access token TTL in seconds (default: 900 / 15 minutes)."""


def get_secret_key() -> str:
    """
    Read the token signing key from the environment.

    Raises:
        ConfigurationError: If no key is configured
    """
    secret_key = os.environ.get("PORTAL_AUTHZ_SECRET_KEY") or os.environ.get("SECRET_KEY")
    if not secret_key:
        raise ConfigurationError(
            "SECRET_KEY environment variable is required for JWT token security. "
            "Set PORTAL_AUTHZ_SECRET_KEY or SECRET_KEY.",
            config_key="SECRET_KEY",
        )
    if len(secret_key) < MIN_SECRET_KEY_LENGTH:
        logger.warning(
            f"SECRET_KEY is only {len(secret_key)} characters. "
            f"Recommendation: Use at least {MIN_SECRET_KEY_LENGTH} characters for production."
        )
    return secret_key


def decode_jwt_token(token: str | bytes, secret_key: str) -> dict[str, Any]:
    """
    Decode and verify a portal access token.

    Raises:
        jwt.ExpiredSignatureError: If token has expired
        jwt.InvalidTokenError: If token is invalid
    """
    if isinstance(token, bytes):
        token = token.decode("utf-8")
    return jwt.decode(token, secret_key, algorithms=[JWT_ALGORITHM])


def encode_jwt_token(
    payload: dict[str, Any], secret_key: str, expires_in: int | None = None
) -> str:
    """
    Encode a portal access token with standard claims.

    Args:
        payload: Token claims (user_id, role, portal_type, ...)
        secret_key: Secret key for signing
        expires_in: Optional expiration time in seconds (defaults to ACCESS_TOKEN_TTL)

    Returns:
        Encoded JWT token string
    """
    now = datetime.now(timezone.utc)
    if expires_in is None:
        expires_in = ACCESS_TOKEN_TTL
    enhanced_payload = {
        **payload,
        "iat": now,
        "nbf": now,
        "jti": payload.get("jti") or str(uuid.uuid4()),
        "exp": now + timedelta(seconds=expires_in),
    }
    return jwt.encode(enhanced_payload, secret_key, algorithm=JWT_ALGORITHM)
