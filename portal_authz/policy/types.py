"""
Policy value types.

`Rule` and `RoleGrouping` are immutable and hashable; the full field tuple
is their identity, which is what the store deduplicates on.

This module is part of PORTAL_AUTHZ.
"""

import re
import sys
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from casbin.util import key_match

from ..constants import (
    EFFECT_ALLOW,
    EFFECT_DENY,
    IDENTIFIER_PATTERN,
    MAX_IDENTIFIER_LENGTH,
    PORTAL_SCOPE,
)
from ..exceptions import PolicyValidationError

_IDENTIFIER_RE = re.compile(IDENTIFIER_PATTERN)


class Effect(str, Enum):
    """Effect attached to a rule."""

    ALLOW = EFFECT_ALLOW
    DENY = EFFECT_DENY

    @classmethod
    def parse(cls, value: Any) -> "Effect":
        if isinstance(value, cls):
            return value
        if isinstance(value, str):
            try:
                return cls(value.strip().lower())
            except ValueError:
                pass
        raise PolicyValidationError(
            f"Effect must be '{EFFECT_ALLOW}' or '{EFFECT_DENY}'", field="effect", value=value
        )


class Decision(str, Enum):
    """Outcome of an authorization query."""

    ALLOW = "Allow"
    DENY = "Deny"

    @property
    def allowed(self) -> bool:
        return self is Decision.ALLOW

    def __bool__(self) -> bool:
        return self.allowed


def validate_identifier(value: Any, field_name: str) -> str:
    """
    Validate and intern a role, object, action or domain identifier.

    Raises:
        PolicyValidationError: If the value is not a non-empty identifier string
    """
    if not isinstance(value, str):
        raise PolicyValidationError(
            f"{field_name} must be a string", field=field_name, value=value
        )
    value = value.strip()
    if not value:
        raise PolicyValidationError(f"{field_name} must not be empty", field=field_name)
    if len(value) > MAX_IDENTIFIER_LENGTH:
        raise PolicyValidationError(
            f"{field_name} exceeds {MAX_IDENTIFIER_LENGTH} characters",
            field=field_name,
            value=value,
        )
    if not _IDENTIFIER_RE.match(value):
        raise PolicyValidationError(
            f"{field_name} contains invalid characters", field=field_name, value=value
        )
    return sys.intern(value)


def matches(pattern: str, value: str) -> bool:
    """casbin keyMatch: literal, or `*` matching any suffix (a bare `*` matches anything)."""
    return key_match(value, pattern)


@dataclass(frozen=True)
class Rule:
    """
    Authorization policy entry.

    Attributes:
        subject_role: Role the rule is granted to
        object: Protected resource category (e.g. "licenses")
        action: Operation on the object (e.g. "issue")
        effect: Allow or deny
        domain: Portal scope the rule applies within
        acting_role: Role the request must be evaluated under (or "*")
    """

    subject_role: str
    object: str
    action: str
    effect: Effect
    domain: str
    acting_role: str = field(default="")

    def __post_init__(self) -> None:
        object.__setattr__(self, "subject_role", validate_identifier(self.subject_role, "subject_role"))
        object.__setattr__(self, "object", validate_identifier(self.object, "object"))
        object.__setattr__(self, "action", validate_identifier(self.action, "action"))
        object.__setattr__(self, "effect", Effect.parse(self.effect))
        object.__setattr__(self, "domain", validate_identifier(self.domain, "domain"))
        if self.domain == PORTAL_SCOPE:
            raise PolicyValidationError(
                "Rules must target a concrete domain", field="domain", value=self.domain
            )
        acting_role = self.acting_role or self.subject_role
        object.__setattr__(self, "acting_role", validate_identifier(acting_role, "acting_role"))

    def matches_request(self, obj: str, action: str) -> bool:
        return matches(self.object, obj) and matches(self.action, action)

    def as_tuple(self) -> tuple[str, str, str, str, str, str]:
        return (
            self.subject_role,
            self.object,
            self.action,
            self.effect.value,
            self.domain,
            self.acting_role,
        )

    def __str__(self) -> str:
        return (
            f"{self.subject_role}@{self.domain} {self.effect.value} "
            f"{self.object}:{self.action}"
        )


@dataclass(frozen=True)
class RoleGrouping:
    """
    Inheritance edge: `child_role` inherits every grant of `parent_role`.

    With domain "*" the edge links two portals instead of two roles.
    """

    child_role: str
    parent_role: str
    domain: str

    def __post_init__(self) -> None:
        object.__setattr__(self, "child_role", validate_identifier(self.child_role, "child_role"))
        object.__setattr__(
            self, "parent_role", validate_identifier(self.parent_role, "parent_role")
        )
        object.__setattr__(self, "domain", validate_identifier(self.domain, "domain"))

    @property
    def is_portal_edge(self) -> bool:
        return self.domain == PORTAL_SCOPE

    def as_tuple(self) -> tuple[str, str, str]:
        return (self.child_role, self.parent_role, self.domain)

    def __str__(self) -> str:
        return f"{self.child_role} -> {self.parent_role} ({self.domain})"
