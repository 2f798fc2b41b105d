"""CLI commands."""

from .inspect import check, permissions, rules
from .seed import seed

__all__ = ["check", "permissions", "rules", "seed"]
