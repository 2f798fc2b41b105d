"""
Pytest configuration and shared fixtures for PORTAL_AUTHZ tests.

This module provides:
- Empty and seeded policy stores
- Evaluators over those stores
- Mock MongoDB collection/database fixtures
"""

import os
from typing import Any, Dict, List
from unittest.mock import AsyncMock, MagicMock

import pytest
from motor.motor_asyncio import AsyncIOMotorCollection

# Set test secret key before importing auth components
if "PORTAL_AUTHZ_SECRET_KEY" not in os.environ:
    os.environ["PORTAL_AUTHZ_SECRET_KEY"] = "test_secret_key_for_testing_only_" + "x" * 32

from portal_authz.observability.metrics import get_metrics_collector
from portal_authz.policy.evaluator import PolicyEvaluator
from portal_authz.policy.seeding import seed_default_policies
from portal_authz.policy.store import PolicyStore


def pytest_configure(config):
    config.addinivalue_line("markers", "unit: fast tests with no external services")


# ============================================================================
# POLICY FIXTURES
# ============================================================================


@pytest.fixture
def store() -> PolicyStore:
    """Create an empty policy store."""
    return PolicyStore()


@pytest.fixture
def seeded_store() -> PolicyStore:
    """Create a policy store holding the default seed."""
    store = PolicyStore()
    seed_default_policies(store)
    return store


@pytest.fixture
def evaluator(seeded_store: PolicyStore) -> PolicyEvaluator:
    """Create an evaluator over the default seed."""
    return PolicyEvaluator(seeded_store)


@pytest.fixture(autouse=True)
def reset_metrics():
    """Start every test with an empty global metrics collector."""
    get_metrics_collector().reset()
    yield
    get_metrics_collector().reset()


# ============================================================================
# MOCK MONGODB FIXTURES
# ============================================================================


def make_cursor(documents: List[Dict[str, Any]]) -> MagicMock:
    """Create a mock Motor cursor returning `documents` from to_list()."""
    cursor = MagicMock()
    cursor.to_list = AsyncMock(return_value=documents)
    return cursor


@pytest.fixture
def mock_mongo_collection() -> MagicMock:
    """Create a mock MongoDB collection."""
    collection = MagicMock(spec=AsyncIOMotorCollection)
    collection.name = "casbin_rule"
    collection.find = MagicMock(return_value=make_cursor([]))
    collection.count_documents = AsyncMock(return_value=0)
    collection.delete_many = AsyncMock(return_value=MagicMock(deleted_count=0))
    collection.bulk_write = AsyncMock(return_value=MagicMock(upserted_count=1))
    return collection


@pytest.fixture
def mock_mongo_database(mock_mongo_collection: MagicMock) -> MagicMock:
    """Create a mock MongoDB database whose every collection is `mock_mongo_collection`."""
    db = MagicMock()
    db.name = "test_db"
    db.__getitem__.return_value = mock_mongo_collection
    return db
