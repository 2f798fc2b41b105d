"""
Inspection commands for CLI.

Evaluate requests and list rules or permissions against the default policy
set.

This module is part of PORTAL_AUTHZ.
"""

import sys

import click

from ...policy.permissions import effective_permissions
from ..utils import build_default_evaluator, decision_style, format_rules_output


@click.command()
@click.argument("role")
@click.argument("domain")
@click.argument("obj", metavar="OBJECT")
@click.argument("action")
@click.option("--explain", "-e", is_flag=True, help="Show the rules that decided the request")
def check(role: str, domain: str, obj: str, action: str, explain: bool) -> None:
    """
    Evaluate ROLE performing ACTION on OBJECT within DOMAIN.

    Exits 0 on Allow and 1 on Deny.

    Examples:
        portal-authz check tech_admin tech_portal licenses full_control
        portal-authz check tech_manager tech_portal tech_users create --explain
    """
    evaluator = build_default_evaluator()
    result = evaluator.explain(role, domain, obj, action)

    click.echo(click.style(result.decision.value, **decision_style(result.allowed)))
    if explain:
        if result.matched_rules:
            click.echo("\nMatching rules:")
            for rule in result.matched_rules:
                click.echo(f"  - {rule}")
        else:
            click.echo("\nNo matching rules (default deny)")
    sys.exit(0 if result.allowed else 1)


@click.command()
@click.argument("role")
@click.argument("domain")
@click.option(
    "--format",
    "-f",
    "format_type",
    type=click.Choice(["table", "json"]),
    default="table",
    show_default=True,
    help="Output format",
)
def rules(role: str, domain: str, format_type: str) -> None:
    """
    List every rule applicable to ROLE within DOMAIN.

    Examples:
        portal-authz rules tech_admin tech_portal
        portal-authz rules vendor_user vendor_portal --format json
    """
    evaluator = build_default_evaluator()
    click.echo(format_rules_output(evaluator.store.list_rules_for(role, domain), format_type))


@click.command()
@click.argument("role")
@click.argument("domain")
def permissions(role: str, domain: str) -> None:
    """
    List the permission keys ROLE is allowed within DOMAIN.

    Examples:
        portal-authz permissions customer_admin customer_portal
    """
    evaluator = build_default_evaluator()
    for key in effective_permissions(evaluator, role, domain):
        click.echo(key)
