"""
Custom exceptions for PORTAL_AUTHZ.

These exceptions provide more specific error types while maintaining
backward compatibility with RuntimeError.
"""

from typing import Any, Dict, List, Optional


class PortalAuthzError(RuntimeError):
    """
    Base exception for policy engine errors.

    Attributes:
        message: Error message
        context: Optional dictionary with additional context (role, domain,
                 operation, etc.)
    """

    def __init__(self, message: str, context: Optional[Dict[str, Any]] = None) -> None:
        """
        Initialize the exception.

        Args:
            message: Error message
            context: Optional dictionary with additional context information
        """
        super().__init__(message)
        self.message = message
        self.context = context or {}

    def __str__(self) -> str:
        """Return formatted error message with context if available."""
        if self.context:
            context_str = ", ".join(f"{k}={v}" for k, v in self.context.items())
            return f"{self.message} (context: {context_str})"
        return self.message


class CyclicHierarchyError(PortalAuthzError):
    """
    Raised when a grouping edge would introduce a cycle.

    Role and portal hierarchies must stay acyclic. The store is left
    unchanged when this is raised, and seeding aborts.

    Attributes:
        child_role: Child side of the rejected edge
        parent_role: Parent side of the rejected edge
        domain: Domain of the rejected edge
        path: Existing inheritance path from parent back to child
    """

    def __init__(
        self,
        message: str,
        child_role: Optional[str] = None,
        parent_role: Optional[str] = None,
        domain: Optional[str] = None,
        path: Optional[List[str]] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if child_role:
            context["child_role"] = child_role
        if parent_role:
            context["parent_role"] = parent_role
        if domain:
            context["domain"] = domain
        if path:
            context["path"] = " -> ".join(path)
        super().__init__(message, context=context)
        self.child_role = child_role
        self.parent_role = parent_role
        self.domain = domain
        self.path = path or []


class StoreUnavailableError(PortalAuthzError):
    """
    Raised when the backing policy store cannot be read or written.

    Attributes:
        operation: Store operation that failed (if available)
    """

    def __init__(
        self,
        message: str,
        operation: Optional[str] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if operation:
            context["operation"] = operation
        super().__init__(message, context=context)
        self.operation = operation


class ConfigurationError(PortalAuthzError):
    """
    Raised when configuration is invalid or missing.

    Attributes:
        message: Error message
        config_key: Configuration key that caused the error (if available)
        config_value: Configuration value that caused the error (if available)
        context: Additional context information
    """

    def __init__(
        self,
        message: str,
        config_key: Optional[str] = None,
        config_value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        """
        Initialize the configuration error.

        Args:
            message: Error message
            config_key: Configuration key that caused the error (if available)
            config_value: Configuration value that caused the error (if available)
            context: Additional context information
        """
        context = context or {}
        if config_key:
            context["config_key"] = config_key
        if config_value is not None:
            context["config_value"] = config_value
        super().__init__(message, context=context)
        self.config_key = config_key
        self.config_value = config_value


class PolicyValidationError(PortalAuthzError, ValueError):
    """Raised when a rule or grouping field is not a valid identifier."""

    def __init__(
        self,
        message: str,
        field: Optional[str] = None,
        value: Optional[Any] = None,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        context = context or {}
        if field:
            context["field"] = field
        if value is not None:
            context["value"] = repr(value)
        super().__init__(message, context=context)
        self.field = field
        self.value = value


class UnknownPermissionError(PortalAuthzError, KeyError):
    """Raised when a permission key has no policy mapping."""

    def __init__(self, permission: str, context: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(f"Unknown permission key: '{permission}'", context=context)
        self.permission = permission

    def __str__(self) -> str:
        # KeyError would otherwise repr() the message
        return PortalAuthzError.__str__(self)


class DuplicateRuleWarning(UserWarning):
    """
    Emitted when an identical rule or grouping is added again.

    Re-adding is a no-op so that re-seeding across restarts stays idempotent.
    """
