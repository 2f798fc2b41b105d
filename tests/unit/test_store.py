"""
Unit tests for PolicyStore.

Tests rule/grouping insertion, deduplication, cycle rejection, rule
collection across role and portal hierarchies, and snapshot isolation.
"""

import threading
import warnings

import pytest

from portal_authz.exceptions import CyclicHierarchyError, DuplicateRuleWarning
from portal_authz.policy.seeding import (
    DEFAULT_POLICIES,
    DEFAULT_PORTAL_HIERARCHY,
    DEFAULT_ROLE_HIERARCHY,
)
from portal_authz.policy.store import PolicyStore
from portal_authz.policy.types import RoleGrouping, Rule


@pytest.mark.unit
class TestPolicyStoreWrites:
    """Test adding and removing policies."""

    def test_add_policy_returns_true_for_new_rule(self, store):
        assert store.add_policy("tech_cto", "tech_users", "view", "allow", "tech_portal") is True
        assert store.has_policy("tech_cto", "tech_users", "view", "allow", "tech_portal")
        assert len(store) == 1

    def test_duplicate_rule_is_ignored_with_warning(self, store):
        store.add_policy("vendor_user", "catalogue", "view", "allow", "vendor_portal")

        with pytest.warns(DuplicateRuleWarning):
            added = store.add_policy("vendor_user", "catalogue", "view", "allow", "vendor_portal")

        assert added is False
        assert len(store) == 1

    def test_same_rule_with_other_effect_is_distinct(self, store):
        store.add_policy("tech_manager", "tech_users", "create", "allow", "tech_portal")
        assert store.add_policy("tech_manager", "tech_users", "create", "deny", "tech_portal")
        assert len(store.get_policy()) == 2

    def test_add_rule_accepts_rule_instance(self, store):
        rule = Rule("customer_user", "rfq", "view", "allow", "customer_portal")
        assert store.add_rule(rule) is True
        assert store.get_policy() == [rule]

    def test_duplicate_grouping_is_ignored_with_warning(self, store):
        store.add_grouping_policy("tech_admin", "tech_manager", "tech_portal")

        with pytest.warns(DuplicateRuleWarning):
            added = store.add_grouping_policy("tech_admin", "tech_manager", "tech_portal")

        assert added is False
        assert store.get_grouping_policy() == [
            RoleGrouping("tech_admin", "tech_manager", "tech_portal")
        ]

    def test_remove_policy(self, store):
        store.add_policy("customer_admin", "rfq", "manage", "allow", "customer_portal")

        assert store.remove_policy("customer_admin", "rfq", "manage", "allow", "customer_portal")
        assert not store.remove_policy("customer_admin", "rfq", "manage", "allow", "customer_portal")
        assert len(store) == 0

    def test_remove_grouping_policy(self, store):
        store.add_grouping_policy("tech_portal", "admin_portal", "*")

        assert store.remove_grouping_policy("tech_portal", "admin_portal", "*")
        assert not store.remove_grouping_policy("tech_portal", "admin_portal", "*")
        assert store.get_portal_grouping_policy() == []

    def test_clear(self, seeded_store):
        seeded_store.clear()
        assert len(seeded_store) == 0
        assert seeded_store.list_rules_for("tech_admin", "tech_portal") == []


@pytest.mark.unit
class TestCycleRejection:
    """Test that hierarchies stay acyclic."""

    def test_cycle_is_rejected_and_store_unchanged(self, seeded_store):
        before = seeded_store.snapshot()

        with pytest.raises(CyclicHierarchyError) as exc_info:
            seeded_store.add_grouping_policy("tech_support", "tech_admin", "tech_portal")

        assert seeded_store.snapshot() is before
        assert not seeded_store.has_grouping_policy("tech_support", "tech_admin", "tech_portal")
        error = exc_info.value
        assert error.child_role == "tech_support"
        assert error.parent_role == "tech_admin"
        assert error.domain == "tech_portal"
        assert error.path == ["tech_admin", "tech_manager", "tech_developer", "tech_support"]
        assert "tech_admin -> tech_manager" in str(error)

    def test_self_edge_is_a_cycle(self, store):
        with pytest.raises(CyclicHierarchyError):
            store.add_grouping_policy("tech_admin", "tech_admin", "tech_portal")
        assert len(store) == 0

    def test_portal_cycle_is_rejected(self, seeded_store):
        with pytest.raises(CyclicHierarchyError) as exc_info:
            seeded_store.add_grouping_policy("vendor_portal", "tech_portal", "*")
        assert exc_info.value.path == ["tech_portal", "admin_portal", "vendor_portal"]

    def test_reverse_edge_in_other_domain_is_allowed(self, seeded_store):
        assert seeded_store.add_grouping_policy("tech_support", "tech_admin", "admin_portal")

    def test_load_rejects_cyclic_groupings(self, seeded_store):
        before = seeded_store.snapshot()
        groupings = [
            RoleGrouping("a", "b", "tech_portal"),
            RoleGrouping("b", "a", "tech_portal"),
        ]

        with pytest.raises(CyclicHierarchyError):
            seeded_store.load([], groupings)

        assert seeded_store.snapshot() is before


@pytest.mark.unit
class TestPolicyStoreReads:
    """Test hierarchy queries and rule collection."""

    def test_seeded_size(self, seeded_store):
        expected = (
            len(DEFAULT_POLICIES) + len(DEFAULT_PORTAL_HIERARCHY) + len(DEFAULT_ROLE_HIERARCHY)
        )
        assert len(seeded_store) == expected

    def test_get_roles_for_is_transitive(self, seeded_store):
        assert seeded_store.get_roles_for("tech_admin", "tech_portal") == [
            "tech_manager",
            "tech_developer",
            "tech_support",
        ]
        assert seeded_store.get_roles_for("tech_support", "tech_portal") == []
        assert seeded_store.get_roles_for("tech_admin", "admin_portal") == []

    def test_get_domains_for_is_transitive(self, seeded_store):
        assert seeded_store.get_domains_for("tech_portal") == [
            "admin_portal",
            "customer_portal",
            "vendor_portal",
        ]
        assert seeded_store.get_domains_for("vendor_portal") == []

    def test_domains_of_role(self, seeded_store):
        assert seeded_store.domains_of_role("tech_admin") == ["tech_portal"]
        assert seeded_store.domains_of_role("admin_superuser") == ["admin_portal"]
        assert seeded_store.domains_of_role("nobody") == []

    def test_list_rules_for_leaf_role(self, seeded_store):
        rules = seeded_store.list_rules_for("vendor_user", "vendor_portal")
        assert {(r.object, r.action) for r in rules} == {
            ("catalogue", "view"),
            ("quotation", "view"),
        }

    def test_list_rules_for_follows_role_edges(self, seeded_store):
        subjects = {r.subject_role for r in seeded_store.list_rules_for("tech_developer", "tech_portal")}
        assert {"tech_developer", "tech_support"} <= subjects
        assert "tech_manager" not in subjects
        assert "tech_admin" not in subjects

    def test_list_rules_for_crosses_portal_edges(self, seeded_store):
        subjects = {r.subject_role for r in seeded_store.list_rules_for("tech_support", "tech_portal")}
        assert {"admin_superuser", "customer_admin", "vendor_user"} <= subjects

    def test_lower_portal_does_not_reach_upper_portal(self, seeded_store):
        assert seeded_store.list_rules_for("customer_admin", "tech_portal") == []
        assert seeded_store.list_rules_for("customer_admin", "admin_portal") == []

    def test_crossing_starts_at_declared_domain(self, seeded_store):
        # admin_superuser is declared in admin_portal, which is below tech_portal
        assert seeded_store.list_rules_for("admin_superuser", "tech_portal") == []
        subjects = {
            r.subject_role for r in seeded_store.list_rules_for("admin_superuser", "admin_portal")
        }
        assert subjects == {
            "admin_superuser",
            "customer_admin",
            "customer_user",
            "vendor_admin",
            "vendor_user",
        }

    def test_acting_role_must_match(self, store):
        store.add_policy("auditor", "audit_logs", "view", "allow", "admin_portal", "reviewer")
        assert store.list_rules_for("auditor", "admin_portal") == []

    def test_wildcard_acting_role_applies(self, store):
        store.add_policy("auditor", "audit_logs", "view", "allow", "admin_portal", "*")
        assert len(store.list_rules_for("auditor", "admin_portal")) == 1

    def test_to_dict(self, store):
        store.add_policy("tech_cto", "tech_users", "view", "allow", "tech_portal")
        store.add_grouping_policy("tech_portal", "admin_portal", "*")
        assert store.to_dict() == {
            "rules": [("tech_cto", "tech_users", "view", "allow", "tech_portal", "tech_cto")],
            "groupings": [("tech_portal", "admin_portal", "*")],
        }

    def test_role_and_portal_edges_are_kept_apart(self, store):
        store.add_grouping_policy("tech_portal", "admin_portal", "*")
        store.add_grouping_policy("tech_admin", "tech_manager", "tech_portal")

        assert store.get_portal_grouping_policy() == [
            RoleGrouping("tech_portal", "admin_portal", "*")
        ]
        assert store.get_grouping_policy() == [
            RoleGrouping("tech_admin", "tech_manager", "tech_portal")
        ]
        assert store.get_domains_for("tech_portal") == ["admin_portal"]
        assert store.get_roles_for("tech_admin", "tech_portal") == ["tech_manager"]

    def test_enforce(self, seeded_store):
        assert seeded_store.enforce("tech_admin", "admin_portal", "customer_orgs", "manage")
        assert not seeded_store.enforce("tech_manager", "tech_portal", "tech_users", "create")


@pytest.mark.unit
class TestSnapshotIsolation:
    """Test snapshots and concurrent access."""

    def test_snapshot_is_not_affected_by_later_writes(self, store):
        store.add_policy("customer_user", "rfq", "view", "allow", "customer_portal")
        snapshot = store.snapshot()

        store.add_policy("customer_user", "vessels", "view", "allow", "customer_portal")

        assert len(snapshot.rules) == 1
        assert len(store.snapshot().rules) == 2

    def test_concurrent_reads_and_writes(self, seeded_store):
        errors = []
        stop = threading.Event()

        def reader():
            try:
                while not stop.is_set():
                    rules = seeded_store.list_rules_for("tech_admin", "tech_portal")
                    assert rules
            except Exception as e:
                errors.append(e)

        def writer():
            with warnings.catch_warnings():
                warnings.simplefilter("ignore", DuplicateRuleWarning)
                for i in range(200):
                    seeded_store.add_policy(f"role_{i}", "reports", "view", "allow", "admin_portal")

        readers = [threading.Thread(target=reader) for _ in range(4)]
        for thread in readers:
            thread.start()
        writer_thread = threading.Thread(target=writer)
        writer_thread.start()
        writer_thread.join()
        stop.set()
        for thread in readers:
            thread.join()

        assert errors == []
        assert seeded_store.has_policy("role_199", "reports", "view", "allow", "admin_portal")


@pytest.mark.unit
def test_load_replaces_contents(seeded_store):
    store = PolicyStore()
    store.add_policy("stale", "thing", "view", "allow", "tech_portal")

    store.load(seeded_store.get_policy(), seeded_store.snapshot().groupings)

    assert len(store) == len(seeded_store)
    assert not store.has_policy("stale", "thing", "view", "allow", "tech_portal")
    assert store.enforce("tech_admin", "admin_portal", "customer_orgs", "manage")

    store.add_policy("tech_auditor", "audit_logs", "view", "allow", "tech_portal")
    assert store.list_rules_for("tech_auditor", "admin_portal")
