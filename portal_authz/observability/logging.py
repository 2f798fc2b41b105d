"""
Request-scoped logging for PORTAL_AUTHZ.

Authorization records carry the caller's correlation ID and the role, domain
and user being authorized. Both are held in context variables, so they follow
a request across awaits and threads started with `contextvars.copy_context`.
"""

import contextvars
import logging
import uuid
from collections.abc import Mapping
from typing import Any

from ..constants import CORRELATION_ID_HEADER, REQUEST_ID_HEADER

_correlation_id: contextvars.ContextVar[str | None] = contextvars.ContextVar(
    "portal_authz_correlation_id", default=None
)
_authz_fields: contextvars.ContextVar[tuple[tuple[str, Any], ...]] = contextvars.ContextVar(
    "portal_authz_fields", default=()
)


def set_correlation_id(correlation_id: str | None = None) -> str:
    """Bind a correlation ID to the current context, generating one when none is given."""
    correlation_id = correlation_id or uuid.uuid4().hex
    _correlation_id.set(correlation_id)
    return correlation_id


def get_correlation_id() -> str | None:
    return _correlation_id.get()


def correlation_id_from_headers(headers: Mapping[str, str]) -> str:
    """
    Bind the correlation ID a caller sent (X-Correlation-ID, then X-Request-ID).

    A fresh ID is generated when neither header is present.
    """
    return set_correlation_id(
        headers.get(CORRELATION_ID_HEADER) or headers.get(REQUEST_ID_HEADER)
    )


def set_authz_context(**fields: Any) -> None:
    """Bind role, domain, user_id and similar fields. None values are dropped."""
    _authz_fields.set(tuple((key, value) for key, value in fields.items() if value is not None))


def clear_logging_context() -> None:
    _correlation_id.set(None)
    _authz_fields.set(())


def get_logging_context() -> dict[str, Any]:
    context = dict(_authz_fields.get())
    correlation_id = _correlation_id.get()
    if correlation_id:
        context["correlation_id"] = correlation_id
    return context


class ContextualLoggerAdapter(logging.LoggerAdapter):
    """Copies the current logging context into each record's `extra`."""

    def process(self, msg: Any, kwargs: Any) -> tuple[Any, Any]:
        kwargs["extra"] = {**get_logging_context(), **(kwargs.get("extra") or {})}
        return msg, kwargs


def get_logger(name: str) -> ContextualLoggerAdapter:
    return ContextualLoggerAdapter(logging.getLogger(name), {})


def log_operation(
    logger: logging.Logger | logging.LoggerAdapter,
    operation: str,
    duration_ms: float,
    success: bool = True,
    **fields: Any,
) -> None:
    """
    Log one finished operation with its outcome, duration and `fields` as record attributes.

    Successes log at INFO, failures at ERROR.
    """
    outcome = "succeeded" if success else "failed"
    logger.log(
        logging.INFO if success else logging.ERROR,
        f"{operation} {outcome} in {duration_ms:.2f}ms",
        extra={
            **get_logging_context(),
            "operation": operation,
            "success": success,
            "duration_ms": round(duration_ms, 2),
            **fields,
        },
    )
