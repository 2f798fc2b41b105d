"""
Configuration management for PORTAL_AUTHZ.

The policy store itself takes no configuration; these settings drive the
persistence bootstrap, the CLI and the FastAPI token dependency. Every value
can be passed directly or read from the environment.
"""

import os

from .constants import DEFAULT_POLICY_COLLECTION
from .exceptions import ConfigurationError


def _env_flag(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


class AuthzConfig:
    """
    Policy engine configuration.

    Example:
        # Using environment variables
        config = AuthzConfig()
        config.validate()

        # Or using direct parameters
        config = AuthzConfig(
            mongo_uri="mongodb://localhost:27017",
            db_name="erp"
        )
    """

    def __init__(
        self,
        mongo_uri: str | None = None,
        db_name: str | None = None,
        policy_collection: str | None = None,
        seed_on_empty: bool | None = None,
        secret_key: str | None = None,
    ):
        """
        Initialize configuration.

        Args:
            mongo_uri: MongoDB connection URI (defaults to MONGO_URI env var)
            db_name: Database name (defaults to DB_NAME env var)
            policy_collection: Policy collection (defaults to PORTAL_AUTHZ_COLLECTION
                or "casbin_rule")
            seed_on_empty: Seed default policies when the collection is empty
                (defaults to PORTAL_AUTHZ_SEED_ON_EMPTY or true)
            secret_key: Token signing key (defaults to PORTAL_AUTHZ_SECRET_KEY
                or SECRET_KEY)
        """
        self.mongo_uri = mongo_uri or os.getenv("MONGO_URI", "")
        self.db_name = db_name or os.getenv("DB_NAME", "")
        self.policy_collection = policy_collection or os.getenv(
            "PORTAL_AUTHZ_COLLECTION", DEFAULT_POLICY_COLLECTION
        )
        if seed_on_empty is None:
            seed_on_empty = _env_flag("PORTAL_AUTHZ_SEED_ON_EMPTY", "true")
        self.seed_on_empty = seed_on_empty
        self.secret_key = (
            secret_key
            or os.getenv("PORTAL_AUTHZ_SECRET_KEY")
            or os.getenv("SECRET_KEY")
            or ""
        )

    def validate(self) -> None:
        """
        Validate configuration values needed for persistence.

        Raises:
            ConfigurationError: If required configuration is missing or invalid
        """
        if not self.mongo_uri:
            raise ConfigurationError(
                "mongo_uri is required (set MONGO_URI environment variable or pass directly)",
                config_key="MONGO_URI",
            )

        if not self.db_name:
            raise ConfigurationError(
                "db_name is required (set DB_NAME environment variable or pass directly)",
                config_key="DB_NAME",
            )

        if not self.policy_collection:
            raise ConfigurationError(
                "policy_collection must not be empty",
                config_key="PORTAL_AUTHZ_COLLECTION",
                config_value=self.policy_collection,
            )
