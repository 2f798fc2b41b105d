"""
Policy Evaluator

Answers "may `role` perform `action` on `object` within `domain`?" against a
PolicyStore.

The decision comes from the store's casbin enforcer. Its effect is
deny-override: any matching deny wins over any matching allow, however far up
the role or portal hierarchy either rule came from. No matching rule is a
deny.

This module is part of PORTAL_AUTHZ.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Iterable
from dataclasses import dataclass, field

from ..observability.metrics import record_operation
from .store import PolicyStore
from .types import Decision, Effect, Rule

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EvaluationResult:
    """Decision plus the rules that produced it."""

    decision: Decision
    role: str
    domain: str
    object: str
    action: str
    matched_rules: tuple[Rule, ...] = field(default_factory=tuple)
    error: str | None = None

    @property
    def allowed(self) -> bool:
        return self.decision is Decision.ALLOW

    @property
    def deciding_rules(self) -> tuple[Rule, ...]:
        """Rules carrying the winning effect (empty for default-deny)."""
        effect = Effect.ALLOW if self.allowed else Effect.DENY
        return tuple(rule for rule in self.matched_rules if rule.effect is effect)


class PolicyEvaluator:
    """
    Stateless evaluator over an injected PolicyStore.

    Safe to call concurrently: the store serializes access to its enforcer.
    """

    def __init__(self, store: PolicyStore):
        self._store = store

    @property
    def store(self) -> PolicyStore:
        return self._store

    def explain(self, role: str, domain: str, obj: str, action: str) -> EvaluationResult:
        """
        Evaluate a request and return the matched rules alongside the decision.

        Any failure while evaluating resolves to Deny (fail-closed) instead of
        propagating.
        """
        start_time = time.time()
        try:
            allowed = self._store.enforce(role, domain, obj, action)
            matched = tuple(
                rule
                for rule in self._store.list_rules_for(role, domain)
                if rule.matches_request(obj, action)
            )
            decision = Decision.ALLOW if allowed else Decision.DENY
            result = EvaluationResult(decision, role, domain, obj, action, matched)
        except Exception as e:
            logger.exception(
                f"Policy evaluation failed for ({role}, {domain}, {obj}, {action}); denying"
            )
            result = EvaluationResult(
                Decision.DENY, role, domain, obj, action, error=str(e) or type(e).__name__
            )

        duration_ms = (time.time() - start_time) * 1000
        record_operation(
            "policy.evaluate",
            duration_ms,
            success=result.error is None,
            decision=result.decision.value,
        )
        logger.debug(
            f"evaluate({role}, {domain}, {obj}, {action}) -> {result.decision.value} "
            f"[{len(result.matched_rules)} matching rule(s)]"
        )
        return result

    def evaluate(self, role: str, domain: str, obj: str, action: str) -> Decision:
        return self.explain(role, domain, obj, action).decision

    def enforce(self, role: str, domain: str, obj: str, action: str) -> bool:
        """Boolean form of `evaluate`."""
        return self.evaluate(role, domain, obj, action) is Decision.ALLOW

    def batch_evaluate(self, requests: Iterable[tuple[str, str, str, str]]) -> list[Decision]:
        return [self.evaluate(*request) for request in requests]
