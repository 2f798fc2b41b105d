"""
Seed command for CLI.

Bootstraps the MongoDB policy collection: loads it, or seeds and saves the
default policies when it is empty.

This module is part of PORTAL_AUTHZ.
"""

import asyncio

import click
from motor.motor_asyncio import AsyncIOMotorClient

from ...config import AuthzConfig
from ...exceptions import PortalAuthzError
from ...policy.bootstrap import initialize_policy_store


async def _run_seed(config: AuthzConfig) -> int:
    client = AsyncIOMotorClient(config.mongo_uri)
    try:
        store = await initialize_policy_store(
            client[config.db_name],
            collection_name=config.policy_collection,
            seed_on_empty=True,
        )
    finally:
        client.close()
    return len(store)


@click.command()
@click.option("--mongo-uri", envvar="MONGO_URI", help="MongoDB connection URI")
@click.option("--db-name", envvar="DB_NAME", help="Database name")
@click.option(
    "--collection",
    envvar="PORTAL_AUTHZ_COLLECTION",
    default=None,
    help="Policy collection name (default: casbin_rule)",
)
def seed(mongo_uri: str | None, db_name: str | None, collection: str | None) -> None:
    """
    Seed default policies into MongoDB if the policy collection is empty.

    Examples:
        portal-authz seed --mongo-uri mongodb://localhost:27017 --db-name erp
    """
    config = AuthzConfig(mongo_uri=mongo_uri, db_name=db_name, policy_collection=collection)
    try:
        config.validate()
        total = asyncio.run(_run_seed(config))
    except PortalAuthzError as e:
        raise click.ClickException(str(e)) from e

    click.echo(
        click.style(
            f"✅ Policy collection '{config.policy_collection}' holds {total} policies",
            fg="green",
        )
    )
