"""
Policy Store Bootstrap

Startup routine: load persisted policies, seed the defaults only when the
collection is empty, and hand back a ready PolicyStore.

This module is part of PORTAL_AUTHZ.
"""

from __future__ import annotations

import logging

from motor.motor_asyncio import AsyncIOMotorClient, AsyncIOMotorDatabase

from ..config import AuthzConfig
from ..constants import DEFAULT_POLICY_COLLECTION
from ..observability.metrics import timed_operation
from .adapter import MongoPolicyAdapter
from .evaluator import PolicyEvaluator
from .seeding import seed_default_policies
from .store import PolicyStore

logger = logging.getLogger(__name__)


@timed_operation("policy.bootstrap")
async def initialize_policy_store(
    db: AsyncIOMotorDatabase,
    collection_name: str = DEFAULT_POLICY_COLLECTION,
    seed_on_empty: bool = True,
) -> PolicyStore:
    """
    Build a PolicyStore backed by `db[collection_name]`.

    Args:
        db: Motor database
        collection_name: Policy collection name
        seed_on_empty: Seed and persist the default policies when nothing is stored

    Returns:
        Populated PolicyStore

    Raises:
        StoreUnavailableError: If the collection cannot be read or written
        CyclicHierarchyError: If persisted or seeded edges form a cycle
    """
    store = PolicyStore()
    adapter = MongoPolicyAdapter(db, collection_name)

    if await adapter.is_empty():
        if seed_on_empty:
            logger.info("🌱 Policy collection empty → seeding default policies...")
            seed_default_policies(store)
            await adapter.save_policy(store)
        else:
            logger.warning(
                f"Policy collection '{collection_name}' is empty and seeding is disabled; "
                "every request will be denied"
            )
    else:
        loaded = await adapter.load_policy(store)
        logger.info(f"🔄 Loaded {loaded} persisted policies → skipping seeding")

    logger.info("✅ Policy store initialized")
    return store


async def create_policy_evaluator(config: AuthzConfig | None = None) -> PolicyEvaluator:
    """
    Connect to MongoDB per `config` and return an evaluator over the bootstrapped store.

    Raises:
        ConfigurationError: If MONGO_URI or DB_NAME is missing
    """
    config = config or AuthzConfig()
    config.validate()

    client = AsyncIOMotorClient(config.mongo_uri)
    try:
        store = await initialize_policy_store(
            client[config.db_name],
            collection_name=config.policy_collection,
            seed_on_empty=config.seed_on_empty,
        )
    finally:
        client.close()
    return PolicyEvaluator(store)
