"""
Utility functions for CLI commands.

This module provides shared utilities for CLI operations.

This module is part of PORTAL_AUTHZ.
"""

import json
from typing import Any

import click

from ..policy.evaluator import PolicyEvaluator
from ..policy.seeding import seed_default_policies
from ..policy.store import PolicyStore
from ..policy.types import Rule


def build_default_evaluator() -> PolicyEvaluator:
    """Evaluator over an in-memory store holding the default seed."""
    store = PolicyStore()
    seed_default_policies(store)
    return PolicyEvaluator(store)


def rule_to_dict(rule: Rule) -> dict[str, Any]:
    return {
        "subject_role": rule.subject_role,
        "object": rule.object,
        "action": rule.action,
        "effect": rule.effect.value,
        "domain": rule.domain,
        "acting_role": rule.acting_role,
    }


def format_rules_output(rules: list[Rule], format_type: str) -> str:
    """
    Format rules for output.

    Args:
        rules: Rules to format
        format_type: Output format ('json' or 'table')

    Returns:
        Formatted string representation
    """
    if format_type == "json":
        return json.dumps([rule_to_dict(rule) for rule in rules], indent=2)

    if not rules:
        return "(no rules)"
    headers = ("SUBJECT", "DOMAIN", "OBJECT", "ACTION", "EFFECT")
    rows = [
        (rule.subject_role, rule.domain, rule.object, rule.action, rule.effect.value)
        for rule in rules
    ]
    widths = [max(len(str(row[i])) for row in (headers, *rows)) for i in range(len(headers))]
    lines = ["  ".join(cell.ljust(width) for cell, width in zip(headers, widths))]
    lines.extend("  ".join(cell.ljust(width) for cell, width in zip(row, widths)) for row in rows)
    return "\n".join(line.rstrip() for line in lines)


def decision_style(allowed: bool) -> dict[str, Any]:
    return {"fg": "green"} if allowed else {"fg": "red"}


def echo_error(message: str) -> None:
    click.echo(click.style(message, fg="red"), err=True)
