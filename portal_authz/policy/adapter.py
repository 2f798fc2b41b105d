"""
MongoDB Policy Adapter

Persists a PolicyStore to a MongoDB collection using casbin's policy
document layout, one document per policy line:

    {"ptype": "p", "v0": subject, "v1": object, "v2": action,
     "v3": effect, "v4": domain, "v5": acting_role}
    {"ptype": "g", "v0": child, "v1": parent, "v2": domain}
    {"ptype": "g2", "v0": child_portal, "v1": parent_portal}

The store's enforcer stays the source of truth for evaluation; the adapter
only loads and saves it.

This module is part of PORTAL_AUTHZ.
"""

from __future__ import annotations

import logging
import time
from typing import Any

from motor.motor_asyncio import AsyncIOMotorDatabase
from pymongo import UpdateOne
from pymongo.errors import PyMongoError

from ..constants import (
    DEFAULT_POLICY_COLLECTION,
    GROUPING_PTYPE,
    POLICY_PTYPE,
    PORTAL_GROUPING_PTYPE,
    PORTAL_SCOPE,
)
from ..exceptions import PolicyValidationError, StoreUnavailableError
from ..observability.metrics import record_operation
from .store import PolicyStore
from .types import RoleGrouping, Rule

logger = logging.getLogger(__name__)

POLICY_PTYPES = [POLICY_PTYPE, GROUPING_PTYPE, PORTAL_GROUPING_PTYPE]


def _document(ptype: str, values: tuple[str, ...]) -> dict[str, Any]:
    return {"ptype": ptype, **{f"v{i}": v for i, v in enumerate(values)}}


def rule_to_document(rule: Rule) -> dict[str, Any]:
    return _document(POLICY_PTYPE, rule.as_tuple())


def grouping_to_document(grouping: RoleGrouping) -> dict[str, Any]:
    if grouping.is_portal_edge:
        return _document(PORTAL_GROUPING_PTYPE, (grouping.child_role, grouping.parent_role))
    return _document(GROUPING_PTYPE, grouping.as_tuple())


def document_to_policy(doc: dict[str, Any]) -> Rule | RoleGrouping | None:
    """
    Parse a stored document. Returns None for policy types this engine
    does not use (e.g. a g3 user assignment).

    Raises:
        PolicyValidationError: If a p/g/g2 document has missing or invalid fields
    """
    ptype = doc.get("ptype")
    try:
        if ptype == POLICY_PTYPE:
            return Rule(
                doc["v0"], doc["v1"], doc["v2"], doc["v3"], doc["v4"], doc.get("v5") or ""
            )
        if ptype == GROUPING_PTYPE:
            return RoleGrouping(doc["v0"], doc["v1"], doc["v2"])
        if ptype == PORTAL_GROUPING_PTYPE:
            return RoleGrouping(doc["v0"], doc["v1"], PORTAL_SCOPE)
    except KeyError as e:
        raise PolicyValidationError(
            f"Policy document is missing field {e}", field=str(e), value=doc.get("_id")
        ) from e
    return None


class MongoPolicyAdapter:
    """
    Loads and saves policies in a MongoDB collection.

    Any PyMongoError is re-raised as StoreUnavailableError.
    """

    def __init__(
        self, db: AsyncIOMotorDatabase, collection_name: str = DEFAULT_POLICY_COLLECTION
    ):
        self._db = db
        self._collection_name = collection_name

    @property
    def collection(self):
        return self._db[self._collection_name]

    async def is_empty(self) -> bool:
        try:
            count = await self.collection.count_documents({"ptype": {"$in": POLICY_PTYPES}})
        except PyMongoError as e:
            logger.exception(f"Failed to count policies in '{self._collection_name}'")
            raise StoreUnavailableError(
                "Policy collection is unreachable", operation="count"
            ) from e
        return count == 0

    async def load_policy(self, store: PolicyStore) -> int:
        """
        Replace `store`'s contents with the persisted policies.

        Returns:
            Number of rules and groupings loaded
        """
        start_time = time.time()
        try:
            cursor = self.collection.find({}, {"_id": 0})
            documents = await cursor.to_list(length=None)
        except PyMongoError as e:
            record_operation("policy.load", (time.time() - start_time) * 1000, success=False)
            logger.exception(f"Failed to load policies from '{self._collection_name}'")
            raise StoreUnavailableError("Failed to load policies", operation="load") from e

        rules: list[Rule] = []
        groupings: list[RoleGrouping] = []
        for doc in documents:
            policy = document_to_policy(doc)
            if isinstance(policy, Rule):
                rules.append(policy)
            elif isinstance(policy, RoleGrouping):
                groupings.append(policy)
            else:
                logger.debug(f"Skipping unsupported policy document type '{doc.get('ptype')}'")

        store.load(rules, groupings)
        record_operation("policy.load", (time.time() - start_time) * 1000)
        return len(rules) + len(groupings)

    async def save_policy(self, store: PolicyStore) -> int:
        """
        Make the collection hold exactly the policies in `store`.

        Current documents are upserted before stale ones are deleted, so a
        failure part-way never leaves the collection with less than it had.

        Returns:
            Number of documents in the saved policy set
        """
        snapshot = store.snapshot()
        documents = [rule_to_document(rule) for rule in snapshot.rules]
        documents.extend(grouping_to_document(grouping) for grouping in snapshot.groupings)

        stale: dict[str, Any] = {"ptype": {"$in": POLICY_PTYPES}}
        start_time = time.time()
        try:
            if documents:
                await self.collection.bulk_write(
                    [UpdateOne(doc, {"$setOnInsert": doc}, upsert=True) for doc in documents],
                    ordered=False,
                )
                stale["$nor"] = documents
            result = await self.collection.delete_many(stale)
        except PyMongoError as e:
            record_operation("policy.save", (time.time() - start_time) * 1000, success=False)
            logger.exception(f"Failed to save policies to '{self._collection_name}'")
            raise StoreUnavailableError("Failed to save policies", operation="save") from e

        record_operation("policy.save", (time.time() - start_time) * 1000)
        logger.info(
            f"Saved {len(documents)} policy document(s) to '{self._collection_name}' "
            f"({result.deleted_count} stale removed)"
        )
        return len(documents)
