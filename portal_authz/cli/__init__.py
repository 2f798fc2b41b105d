"""
Command-line interface for PORTAL_AUTHZ.

This module is part of PORTAL_AUTHZ.
"""

import logging

import click

from .commands import check, permissions, rules, seed


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool) -> None:
    """Inspect and seed portal authorization policies."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


cli.add_command(check)
cli.add_command(rules)
cli.add_command(permissions)
cli.add_command(seed)


def main() -> None:
    cli()


__all__ = ["cli", "main"]
