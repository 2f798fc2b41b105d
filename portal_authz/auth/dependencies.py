"""
FastAPI Authorization Dependencies

Route guards backed by the policy evaluator. The evaluator is created once
at startup and placed on `app.state.policy_evaluator`.

This module is part of PORTAL_AUTHZ.
"""

from typing import Any

import jwt
from fastapi import Depends, HTTPException, Request, status
from pydantic import BaseModel, ConfigDict, ValidationError, field_validator

from ..constants import CORRELATION_ID_HEADER
from ..exceptions import ConfigurationError
from ..observability.logging import (
    correlation_id_from_headers,
    get_correlation_id,
    get_logger,
    set_authz_context,
)
from ..policy.evaluator import PolicyEvaluator
from ..policy.permissions import portal_for
from .jwt import decode_jwt_token, get_secret_key

logger = get_logger(__name__)


class PortalUser(BaseModel):
    """Authenticated portal user, as carried in the access token claims."""

    model_config = ConfigDict(extra="ignore", frozen=True)

    user_id: str
    role: str
    portal_type: str
    email: str | None = None

    @field_validator("user_id", "role", "portal_type", mode="before")
    @classmethod
    def _non_empty(cls, value: Any) -> str:
        if value is None or not str(value).strip():
            raise ValueError("must not be empty")
        return str(value).strip()

    @property
    def portal(self) -> str:
        return portal_for(self.portal_type)


def _extract_token(request: Request) -> str | None:
    authorization = request.headers.get("authorization", "")
    scheme, _, credentials = authorization.partition(" ")
    if scheme.lower() == "bearer" and credentials:
        return credentials.strip()
    return request.cookies.get("token")


async def get_policy_evaluator(request: Request) -> PolicyEvaluator:
    """
    FastAPI Dependency: Retrieves the shared policy evaluator from app.state.
    """
    evaluator = getattr(request.app.state, "policy_evaluator", None)
    if evaluator is None:
        logger.critical("❌ get_policy_evaluator: policy evaluator not found on app.state!")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: Authorization engine not loaded.",
        )
    return evaluator


async def get_current_user(request: Request) -> PortalUser | None:
    """
    FastAPI Dependency: Decodes the bearer token (or 'token' cookie) into a PortalUser.

    Binds the request's correlation ID for logging. Returns None for missing,
    expired or malformed tokens.
    """
    correlation_id_from_headers(request.headers)
    token = _extract_token(request)
    if not token:
        logger.debug("get_current_user: No token found.")
        return None

    try:
        payload = decode_jwt_token(token, get_secret_key())
        user = PortalUser.model_validate(
            {**payload, "user_id": payload.get("user_id") or payload.get("sub")}
        )
    except jwt.ExpiredSignatureError:
        logger.info("get_current_user: Authentication token has expired.")
        return None
    except jwt.InvalidTokenError as e:
        logger.warning(f"get_current_user: Invalid JWT token presented: {e}")
        return None
    except ValidationError as e:
        logger.warning(f"get_current_user: Token claims are incomplete: {e.error_count()} error(s)")
        return None
    except ConfigurationError:
        logger.exception("get_current_user: token secret is not configured")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Server configuration error: token secret not configured.",
        ) from None

    logger.debug(f"get_current_user: Token decoded for user '{user.user_id}' ({user.role}).")
    return user


def require_permission(obj: str, act: str):
    """
    Dependency Factory: Creates a dependency checking `obj`:`act` for the current user.

    The request is evaluated under the user's role within the user's portal
    domain. Returns the PortalUser on success.
    """

    async def _check_permission(
        user: PortalUser | None = Depends(get_current_user),
        evaluator: PolicyEvaluator = Depends(get_policy_evaluator),
    ) -> PortalUser:
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")

        set_authz_context(role=user.role, domain=user.portal, user_id=user.user_id)
        if not evaluator.enforce(user.role, user.portal, obj, act):
            logger.warning(
                f"require_permission: Access DENIED for user '{user.user_id}' "
                f"({user.role}@{user.portal}) to ('{obj}', '{act}')."
            )
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Access Denied for {obj}:{act}",
                headers={CORRELATION_ID_HEADER: get_correlation_id() or ""},
            )

        logger.debug(
            f"require_permission: Access GRANTED for user '{user.user_id}' to ('{obj}', '{act}')."
        )
        return user

    return _check_permission


def require_portal(portal_type: str):
    """
    Dependency Factory: Restricts a route to users of one portal.
    """
    required = portal_for(portal_type)

    async def _check_portal(user: PortalUser | None = Depends(get_current_user)) -> PortalUser:
        if user is None:
            raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Unauthorized")
        if user.portal != required:
            logger.warning(f"Portal mismatch - User: {user.portal}, Required: {required}")
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=(
                    f"Access denied. This endpoint requires {portal_type} portal access. "
                    f"Your portal type is {user.portal_type}"
                ),
            )
        return user

    return _check_portal
