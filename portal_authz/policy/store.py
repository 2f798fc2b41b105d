"""
Policy Store

Rules and inheritance edges held in a casbin enforcer built from
`PORTAL_RBAC_MODEL`. Role edges are `g` groupings scoped to a domain, portal
edges are `g2` groupings. Evaluation runs through `enforcer.enforce`; the
portal-crossing predicate is registered on the enforcer as `portalCross`.

Casbin mutates its model and role managers in place, so every read and write
holds the store's re-entrant lock.

This module is part of PORTAL_AUTHZ.
"""

from __future__ import annotations

import logging
import threading
import warnings
from collections.abc import Callable, Iterable
from dataclasses import dataclass
from typing import Any

import casbin

from ..constants import GROUPING_PTYPE, PORTAL_CROSS_FUNCTION, PORTAL_GROUPING_PTYPE, PORTAL_SCOPE
from ..exceptions import CyclicHierarchyError, DuplicateRuleWarning
from .casbin_models import PORTAL_RBAC_MODEL
from .types import Effect, RoleGrouping, Rule

logger = logging.getLogger(__name__)


def _walk(parents_of: Callable[[str], list[str]], start: str) -> dict[str, str]:
    """Breadth-first walk over a casbin role manager; maps each reached node to its predecessor."""
    previous: dict[str, str] = {}
    frontier = [start]
    while frontier:
        next_frontier = []
        for node in frontier:
            for parent in parents_of(node):
                if parent != start and parent not in previous:
                    previous[parent] = node
                    next_frontier.append(parent)
        frontier = next_frontier
    return previous


@dataclass(frozen=True)
class PolicySnapshot:
    """Immutable copy of the store's policy lines at one point in time."""

    rules: tuple[Rule, ...] = ()
    groupings: tuple[RoleGrouping, ...] = ()


class PolicyStore:
    """
    Thread-safe policy store backed by a casbin enforcer.

    Example:
        store = PolicyStore()
        store.add_grouping_policy("tech_admin", "tech_manager", "tech_portal")
        store.add_policy("tech_manager", "licenses", "issue", "allow", "tech_portal")
        store.enforce("tech_admin", "tech_portal", "licenses", "issue")
    """

    def __init__(self) -> None:
        self._lock = threading.RLock()
        self._enforcer = self._new_enforcer()
        self._declared: dict[str, frozenset[str]] = {}
        self._snapshot: PolicySnapshot | None = None

    def _new_enforcer(self) -> casbin.Enforcer:
        model = casbin.Model()
        model.load_model_from_text(PORTAL_RBAC_MODEL)
        enforcer = casbin.Enforcer(model)
        enforcer.add_function(PORTAL_CROSS_FUNCTION, self._portal_cross)
        return enforcer

    @property
    def _role_links(self):
        return self._enforcer.rm_map[GROUPING_PTYPE]

    @property
    def _portal_links(self):
        return self._enforcer.rm_map[PORTAL_GROUPING_PTYPE]

    def _portal_cross(self, role: str, domain: str, rule_domain: str) -> bool:
        """
        True when `role`, asking in `domain`, may act as any role of `rule_domain`.

        `rule_domain` must be in the query scope (`domain` or a portal below it)
        and strictly below a domain the role is declared in, where that
        declared domain is `domain` itself or a portal above it.
        """
        if not rule_domain or not self._portal_links.has_link(domain, rule_domain):
            return False
        for home in self._declared.get(role, ()):
            if (
                home != rule_domain
                and self._portal_links.has_link(home, rule_domain)
                and self._portal_links.has_link(home, domain)
            ):
                return True
        return False

    def _inherits(self, role: str, subject_role: str, domain: str) -> bool:
        return role == subject_role or self._role_links.has_link(role, subject_role, domain)

    def _applies(self, rule: Rule, role: str, domain: str) -> bool:
        """Subject side of the model's matcher, for listing rules without an object."""
        if rule.acting_role not in (rule.subject_role, PORTAL_SCOPE):
            return False
        if rule.domain == domain and self._inherits(role, rule.subject_role, domain):
            return True
        return self._portal_cross(role, domain, rule.domain)

    def _refresh(self) -> None:
        """Drop the cached snapshot and re-index declared domains after a write."""
        declared: dict[str, set[str]] = {}
        for subject_role, _, _, _, domain, _ in self._enforcer.get_policy():
            declared.setdefault(subject_role, set()).add(domain)
        for child_role, parent_role, domain in self._enforcer.get_named_grouping_policy(GROUPING_PTYPE):
            declared.setdefault(child_role, set()).add(domain)
            declared.setdefault(parent_role, set()).add(domain)
        self._declared = {role: frozenset(domains) for role, domains in declared.items()}
        self._snapshot = None

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    def snapshot(self) -> PolicySnapshot:
        """Return an immutable copy of the current policy lines."""
        with self._lock:
            if self._snapshot is None:
                role_edges = [
                    RoleGrouping(*line)
                    for line in self._enforcer.get_named_grouping_policy(GROUPING_PTYPE)
                ]
                portal_edges = [
                    RoleGrouping(child, parent, PORTAL_SCOPE)
                    for child, parent in self._enforcer.get_named_grouping_policy(
                        PORTAL_GROUPING_PTYPE
                    )
                ]
                self._snapshot = PolicySnapshot(
                    rules=tuple(Rule(*line) for line in self._enforcer.get_policy()),
                    groupings=(*role_edges, *portal_edges),
                )
            return self._snapshot

    def __len__(self) -> int:
        snapshot = self.snapshot()
        return len(snapshot.rules) + len(snapshot.groupings)

    def get_policy(self) -> list[Rule]:
        return list(self.snapshot().rules)

    def get_grouping_policy(self) -> list[RoleGrouping]:
        """Role-to-role edges."""
        return [g for g in self.snapshot().groupings if not g.is_portal_edge]

    def get_portal_grouping_policy(self) -> list[RoleGrouping]:
        """Portal-to-portal edges."""
        return [g for g in self.snapshot().groupings if g.is_portal_edge]

    def has_policy(
        self,
        subject_role: str,
        obj: str,
        action: str,
        effect: Effect | str,
        domain: str,
        acting_role: str | None = None,
    ) -> bool:
        rule = Rule(subject_role, obj, action, effect, domain, acting_role or "")
        with self._lock:
            return self._enforcer.has_policy(*rule.as_tuple())

    def has_grouping_policy(self, child_role: str, parent_role: str, domain: str) -> bool:
        grouping = RoleGrouping(child_role, parent_role, domain)
        with self._lock:
            return self._has_grouping(grouping)

    def _has_grouping(self, grouping: RoleGrouping) -> bool:
        if grouping.is_portal_edge:
            return self._enforcer.has_named_grouping_policy(
                PORTAL_GROUPING_PTYPE, grouping.child_role, grouping.parent_role
            )
        return self._enforcer.has_named_grouping_policy(GROUPING_PTYPE, *grouping.as_tuple())

    def get_roles_for(self, role: str, domain: str) -> list[str]:
        """Roles `role` inherits from within `domain`, nearest first."""
        with self._lock:
            return list(_walk(lambda name: self._role_links.get_roles(name, domain), role))

    def get_domains_for(self, domain: str) -> list[str]:
        """Portals whose roles `domain`'s roles may act as, nearest first."""
        with self._lock:
            return list(_walk(self._portal_links.get_roles, domain))

    def domains_of_role(self, role: str) -> list[str]:
        with self._lock:
            return sorted(self._declared.get(role, ()))

    def list_rules_for(self, subject_role: str, domain: str) -> list[Rule]:
        """
        All rules applicable to a request made as `subject_role` in `domain`.

        Follows role edges transitively and crosses portal-inheritance edges.
        """
        with self._lock:
            return [
                rule
                for rule in self.snapshot().rules
                if self._applies(rule, subject_role, domain)
            ]

    def enforce(self, role: str, domain: str, obj: str, action: str) -> bool:
        """Run the casbin matcher and effect for one request."""
        with self._lock:
            return self._enforcer.enforce(role, domain, obj, action)

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    def add_policy(
        self,
        subject_role: str,
        obj: str,
        action: str,
        effect: Effect | str,
        domain: str,
        acting_role: str | None = None,
    ) -> bool:
        """
        Insert a rule. Returns False (and warns) if the identical rule exists.
        """
        rule = Rule(subject_role, obj, action, effect, domain, acting_role or "")
        return self.add_rule(rule)

    def add_rule(self, rule: Rule) -> bool:
        with self._lock:
            if not self._enforcer.add_policy(*rule.as_tuple()):
                logger.debug(f"Policy already exists: {rule}")
                warnings.warn(f"Duplicate rule ignored: {rule}", DuplicateRuleWarning, stacklevel=3)
                return False
            self._refresh()
        logger.debug(f"Added policy: {rule}")
        return True

    def add_grouping_policy(self, child_role: str, parent_role: str, domain: str) -> bool:
        """
        Insert an inheritance edge.

        Raises:
            CyclicHierarchyError: If the edge would close a cycle
        """
        grouping = RoleGrouping(child_role, parent_role, domain)
        return self.add_grouping(grouping)

    def add_grouping(self, grouping: RoleGrouping) -> bool:
        with self._lock:
            if self._has_grouping(grouping):
                logger.debug(f"Grouping already exists: {grouping}")
                warnings.warn(
                    f"Duplicate grouping ignored: {grouping}", DuplicateRuleWarning, stacklevel=3
                )
                return False

            self._check_acyclic(grouping)

            if grouping.is_portal_edge:
                self._enforcer.add_named_grouping_policy(
                    PORTAL_GROUPING_PTYPE, grouping.child_role, grouping.parent_role
                )
            else:
                self._enforcer.add_named_grouping_policy(GROUPING_PTYPE, *grouping.as_tuple())
            self._refresh()
        logger.debug(f"Added grouping: {grouping}")
        return True

    def _check_acyclic(self, grouping: RoleGrouping) -> None:
        """Reject an edge whose parent already reaches its child."""
        if grouping.is_portal_edge:
            links = self._portal_links
            domain_args: tuple[str, ...] = ()
        else:
            links = self._role_links
            domain_args = (grouping.domain,)

        if not links.has_link(grouping.parent_role, grouping.child_role, *domain_args):
            return

        path = [grouping.parent_role]
        if grouping.child_role != grouping.parent_role:
            previous = _walk(lambda name: links.get_roles(name, *domain_args), grouping.parent_role)
            path = [grouping.child_role]
            while path[-1] != grouping.parent_role:
                path.append(previous[path[-1]])
            path.reverse()

        logger.error(f"Rejected grouping {grouping}: would create a cycle")
        raise CyclicHierarchyError(
            f"Grouping '{grouping.child_role}' -> '{grouping.parent_role}' would create a cycle",
            child_role=grouping.child_role,
            parent_role=grouping.parent_role,
            domain=grouping.domain,
            path=path,
        )

    def remove_policy(
        self,
        subject_role: str,
        obj: str,
        action: str,
        effect: Effect | str,
        domain: str,
        acting_role: str | None = None,
    ) -> bool:
        rule = Rule(subject_role, obj, action, effect, domain, acting_role or "")
        with self._lock:
            if not self._enforcer.remove_policy(*rule.as_tuple()):
                return False
            self._refresh()
        logger.debug(f"Removed policy: {rule}")
        return True

    def remove_grouping_policy(self, child_role: str, parent_role: str, domain: str) -> bool:
        grouping = RoleGrouping(child_role, parent_role, domain)
        with self._lock:
            if grouping.is_portal_edge:
                removed = self._enforcer.remove_named_grouping_policy(
                    PORTAL_GROUPING_PTYPE, grouping.child_role, grouping.parent_role
                )
            else:
                removed = self._enforcer.remove_named_grouping_policy(
                    GROUPING_PTYPE, *grouping.as_tuple()
                )
            if not removed:
                return False
            self._refresh()
        logger.debug(f"Removed grouping: {grouping}")
        return True

    def load(self, rules: Iterable[Rule], groupings: Iterable[RoleGrouping]) -> None:
        """
        Replace the whole policy set.

        Everything is staged in a fresh enforcer and edges are re-validated
        for cycles before the live enforcer is swapped.

        Raises:
            CyclicHierarchyError: If the loaded edges contain a cycle
        """
        staged = PolicyStore()
        with warnings.catch_warnings():
            warnings.simplefilter("ignore", DuplicateRuleWarning)
            for grouping in groupings:
                staged.add_grouping(grouping)
            for rule in rules:
                staged.add_rule(rule)

        with self._lock:
            self._enforcer = staged._enforcer
            self._enforcer.add_function(PORTAL_CROSS_FUNCTION, self._portal_cross)
            self._refresh()
            snapshot = self.snapshot()
        logger.info(
            f"Loaded {len(snapshot.rules)} rule(s) and {len(snapshot.groupings)} grouping(s)"
        )

    def clear(self) -> None:
        with self._lock:
            self._enforcer = self._new_enforcer()
            self._refresh()

    def to_dict(self) -> dict[str, Any]:
        snapshot = self.snapshot()
        return {
            "rules": [rule.as_tuple() for rule in snapshot.rules],
            "groupings": [grouping.as_tuple() for grouping in snapshot.groupings],
        }
