"""
Unit tests for PolicyEvaluator.

Tests deny-override resolution, default deny, role and portal inheritance
against the default policy set, and fail-closed behavior.
"""

import pytest

from portal_authz.exceptions import StoreUnavailableError
from portal_authz.observability.metrics import get_metrics_collector
from portal_authz.policy.evaluator import PolicyEvaluator
from portal_authz.policy.store import PolicyStore
from portal_authz.policy.types import Decision


class UnavailableStore(PolicyStore):
    """Store whose reads always fail."""

    def list_rules_for(self, subject_role, domain):
        raise StoreUnavailableError("policy backend down", operation="list_rules_for")


class DisconnectedStore(PolicyStore):
    """Store whose enforcer raises a non-authz error."""

    def enforce(self, role, domain, obj, action):
        raise ConnectionError("backend down")


@pytest.mark.unit
class TestEffect:
    """Test how matching allow and deny rules combine."""

    def test_no_rules_is_deny(self, store):
        assert PolicyEvaluator(store).evaluate("r", "d", "o", "a") is Decision.DENY

    def test_allow_only(self, store):
        store.add_policy("r", "o", "a", "allow", "d")
        assert PolicyEvaluator(store).evaluate("r", "d", "o", "a") is Decision.ALLOW

    def test_deny_overrides_allow(self, store):
        store.add_policy("r", "o", "a", "allow", "d")
        store.add_policy("r", "o", "a", "deny", "d")
        assert PolicyEvaluator(store).evaluate("r", "d", "o", "a") is Decision.DENY



@pytest.mark.unit
class TestDefaultPolicyDecisions:
    """Test decisions over the default seed."""

    @pytest.mark.parametrize(
        "role,domain,obj,action,expected",
        [
            # Explicit deny on the role itself
            ("tech_manager", "tech_portal", "tech_users", "create", Decision.DENY),
            # No matching rule
            ("customer_user", "customer_portal", "vessels", "delete", Decision.DENY),
            ("customer_user", "customer_portal", "rfq", "manage", Decision.DENY),
            # Portal inheritance
            ("tech_admin", "admin_portal", "customer_orgs", "manage", Decision.ALLOW),
            ("tech_admin", "tech_portal", "rfq", "manage", Decision.ALLOW),
            ("admin_superuser", "admin_portal", "catalogue", "manage", Decision.ALLOW),
            # Own grants
            ("tech_admin", "tech_portal", "licenses", "full_control", Decision.ALLOW),
            ("tech_manager", "tech_portal", "licenses", "issue", Decision.ALLOW),
            ("tech_cto", "tech_portal", "tech_users", "view", Decision.ALLOW),
            ("vendor_user", "vendor_portal", "catalogue", "view", Decision.ALLOW),
            ("vendor_user", "vendor_portal", "catalogue", "manage", Decision.DENY),
            ("customer_admin", "customer_portal", "employees", "manage", Decision.ALLOW),
            # Role inheritance
            ("tech_admin", "tech_portal", "system_logs", "view", Decision.ALLOW),
            ("tech_manager", "tech_portal", "system_status", "view", Decision.ALLOW),
            ("tech_support", "tech_portal", "licenses", "view", Decision.DENY),
            # Admin portal deny
            ("admin_superuser", "admin_portal", "tech_users", "create", Decision.DENY),
            # Unknown role
            ("ghost", "tech_portal", "licenses", "view", Decision.DENY),
        ],
    )
    def test_decision(self, evaluator, role, domain, obj, action, expected):
        assert evaluator.evaluate(role, domain, obj, action) is expected

    def test_inherited_deny_overrides_own_allow(self, evaluator):
        # tech_admin allows admin_users:create itself but inherits tech_developer's deny
        result = evaluator.explain("tech_admin", "tech_portal", "admin_users", "create")

        assert result.decision is Decision.DENY
        assert {r.subject_role for r in result.deciding_rules} == {
            "tech_developer",
            "tech_support",
        }

    def test_lower_portal_deny_reaches_upper_portal(self, evaluator):
        result = evaluator.explain("tech_admin", "tech_portal", "tech_users", "update")

        assert result.decision is Decision.DENY
        assert [str(r) for r in result.deciding_rules] == [
            "admin_superuser@admin_portal deny tech_users:update"
        ]

    def test_lower_portal_cannot_act_in_upper_portal(self, evaluator):
        assert evaluator.evaluate("admin_superuser", "tech_portal", "licenses", "full_control") is (
            Decision.DENY
        )
        assert evaluator.evaluate("customer_user", "admin_portal", "customer_orgs", "manage") is (
            Decision.DENY
        )

    def test_own_rules_do_not_follow_role_into_upper_portal(self, evaluator):
        # customer_admin manages rfq in customer_portal, not when asking in admin_portal
        result = evaluator.explain("customer_admin", "admin_portal", "rfq", "manage")

        assert result.decision is Decision.DENY
        assert result.matched_rules == ()
        assert evaluator.evaluate("customer_admin", "customer_portal", "rfq", "manage") is (
            Decision.ALLOW
        )
        assert evaluator.evaluate("admin_superuser", "admin_portal", "rfq", "manage") is (
            Decision.ALLOW
        )


    def test_sibling_portals_are_isolated(self, evaluator):
        assert evaluator.evaluate("customer_admin", "vendor_portal", "catalogue", "manage") is (
            Decision.DENY
        )


@pytest.mark.unit
class TestEvaluatorApi:
    """Test explain/enforce/batch_evaluate."""

    def test_explain_default_deny_has_no_deciding_rules(self, evaluator):
        result = evaluator.explain("customer_user", "customer_portal", "vessels", "delete")

        assert not result.allowed
        assert result.matched_rules == ()
        assert result.deciding_rules == ()
        assert result.error is None

    def test_explain_allow(self, evaluator):
        result = evaluator.explain("vendor_user", "vendor_portal", "catalogue", "view")

        assert result.allowed
        assert [str(r) for r in result.deciding_rules] == [
            "vendor_user@vendor_portal allow catalogue:view"
        ]

    def test_enforce(self, evaluator):
        assert evaluator.enforce("tech_admin", "tech_portal", "licenses", "full_control") is True
        assert evaluator.enforce("tech_manager", "tech_portal", "tech_users", "create") is False

    def test_batch_evaluate_preserves_order(self, evaluator):
        decisions = evaluator.batch_evaluate(
            [
                ("vendor_user", "vendor_portal", "catalogue", "view"),
                ("vendor_user", "vendor_portal", "catalogue", "manage"),
                ("tech_admin", "admin_portal", "customer_orgs", "manage"),
            ]
        )
        assert decisions == [Decision.ALLOW, Decision.DENY, Decision.ALLOW]

    def test_wildcard_rule_matches_any_object(self, store):
        store.add_policy("auditor", "*", "view", "allow", "admin_portal")
        evaluator = PolicyEvaluator(store)

        assert evaluator.enforce("auditor", "admin_portal", "audit_logs", "view")
        assert not evaluator.enforce("auditor", "admin_portal", "audit_logs", "delete")

    def test_empty_store_denies_everything(self, store):
        evaluator = PolicyEvaluator(store)
        assert evaluator.evaluate("tech_admin", "tech_portal", "licenses", "view") is Decision.DENY

    def test_decisions_follow_store_updates(self, seeded_store):
        evaluator = PolicyEvaluator(seeded_store)
        assert not evaluator.enforce("customer_user", "customer_portal", "crew", "view")

        seeded_store.add_policy("customer_user", "crew", "view", "allow", "customer_portal")

        assert evaluator.enforce("customer_user", "customer_portal", "crew", "view")


@pytest.mark.unit
class TestFailClosed:
    """Test store failures resolve to deny."""

    def test_store_error_denies(self):
        evaluator = PolicyEvaluator(UnavailableStore())

        result = evaluator.explain("tech_admin", "tech_portal", "licenses", "full_control")

        assert result.decision is Decision.DENY
        assert "policy backend down" in result.error

    def test_store_error_is_logged_and_recorded(self, caplog):
        evaluator = PolicyEvaluator(UnavailableStore())

        with caplog.at_level("ERROR", logger="portal_authz.policy.evaluator"):
            assert not evaluator.enforce("tech_admin", "tech_portal", "licenses", "view")

        assert "denying" in caplog.text
        stats = get_metrics_collector().get_stats("policy.evaluate")
        assert stats["policy.evaluate{decision=Deny}"]["errors"] == 1

    def test_connection_error_denies(self, caplog):
        evaluator = PolicyEvaluator(DisconnectedStore())

        with caplog.at_level("ERROR", logger="portal_authz.policy.evaluator"):
            result = evaluator.explain("tech_admin", "tech_portal", "licenses", "full_control")

        assert result.decision is Decision.DENY
        assert result.error == "backend down"
        assert caplog.records[-1].exc_info[0] is ConnectionError


@pytest.mark.unit
def test_evaluations_are_recorded(evaluator):
    evaluator.evaluate("vendor_user", "vendor_portal", "catalogue", "view")
    evaluator.evaluate("vendor_user", "vendor_portal", "catalogue", "manage")

    collector = get_metrics_collector()
    assert collector.get_operation_count("policy.evaluate") == 2
    stats = collector.get_stats("policy.evaluate")
    assert stats["policy.evaluate{decision=Allow}"]["count"] == 1
    assert stats["policy.evaluate{decision=Deny}"]["count"] == 1
