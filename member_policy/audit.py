"""
Field Permission Audit Tool — inspect what a role may edit on a member record.

Reads a member record snapshot from JSON and prints the permission decision
for every catalogued field (or a chosen group / list of fields), plus the
task policies that apply to the member when a policy file is given. The tool
is read-only: it never modifies the record or the policies.

Usage:
    python -m member_policy.audit member.json --role admin
    python -m member_policy.audit member.json --role member --group clothing_info
    python -m member_policy.audit member.json --field senatorId --field status
    python -m member_policy.audit member.json --policies task_policies.json
"""

from __future__ import annotations

import argparse
import json
import sys
from pathlib import Path
from typing import Any

import structlog
from rich.console import Console
from rich.table import Table

from member_policy.config import PolicySettings, build_resolver
from member_policy.fields.catalog import CatalogError
from member_policy.fields.conditions import RecordView
from member_policy.fields.presenter import present
from member_policy.fields.resolver import PermissionResolver
from member_policy.fields.schema import PermissionLevel, Role
from member_policy.logging_config import configure_logging
from member_policy.tasks.matcher import (
    TaskPolicyMatcher,
    describe_requirement,
    load_task_policies,
)

console = Console()

_LEVEL_STYLES = {
    PermissionLevel.READ_WRITE: "green",
    PermissionLevel.READ_ONLY: "cyan",
    PermissionLevel.ADMIN_ONLY: "yellow",
    PermissionLevel.LOCKED: "red",
}


def run_audit(
    resolver: PermissionResolver,
    record: dict[str, Any],
    role: Role,
    fields: list[str] | None = None,
    group: str | None = None,
) -> int:
    """
    Print the permission table for one record and role.

    Returns:
        Number of fields the role may edit.
    """
    if group:
        results = resolver.resolve_group(group, role, record)
        if not results:
            console.print(f"[yellow]⚠ Unknown field group: {group}[/yellow]")
    else:
        results = resolver.resolve_many(fields or resolver.catalog.fields(), role, record)

    table = Table(title=f"Field permissions for role '{role.value}'", show_lines=False)
    table.add_column("Field", style="cyan")
    table.add_column("Permission", width=12)
    table.add_column("Editable", width=9)
    table.add_column("Lock reason", style="dim")
    table.add_column("Message")

    editable = 0
    for field_id, result in results.items():
        style = _LEVEL_STYLES[result.permission]
        shown = present(result)
        editable += result.editable
        table.add_row(
            field_id,
            f"[{style}]{result.permission.value}[/{style}]",
            "✓" if result.editable else "✗",
            result.lock_reason.value if result.lock_reason else "—",
            shown.message or "",
        )
    console.print(table)
    console.print(f"  Editable fields: [bold]{editable}[/bold] of {len(results)}")
    return editable


def print_task_policies(record: dict[str, Any], policy_path: str) -> int:
    """Print the task policies that apply to the record's member. Returns the match count."""
    view = RecordView(record)
    account_type = view.text("accountType")
    category = view.text("membershipCategory")
    policies = TaskPolicyMatcher().match(account_type, category, load_task_policies(policy_path))

    console.print(
        f"\n[bold]Task policies[/bold] (account type: {account_type or 'unknown'}, "
        f"membership category: {category or 'unknown'})"
    )
    if not policies:
        console.print("  [dim]No matching task policies[/dim]")
    for policy in policies:
        console.print(f"  [bold green]{policy.name}[/bold green]")
        for index, requirement in enumerate(policy.requirements, start=1):
            console.print(f"    {index}. {describe_requirement(requirement)}")
    return len(policies)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        description="Show which member profile fields a role may edit"
    )
    parser.add_argument("record", help="Path to a member record JSON file")
    parser.add_argument("--role", default="member", help="Viewer role (default: member)")
    parser.add_argument("--catalog", default=None, help="JSON policy catalog (defaults to settings)")
    parser.add_argument("--group", default=None, help="Only show one field group")
    parser.add_argument(
        "--field", action="append", dest="fields", default=None, help="Field to check (repeatable)"
    )
    parser.add_argument("--policies", default=None, help="JSON task policy file")
    args = parser.parse_args(argv)

    config = PolicySettings()
    if args.catalog:
        config.catalog_path = args.catalog
    configure_logging(config)
    log = structlog.get_logger()

    try:
        record = json.loads(Path(args.record).read_text(encoding="utf-8"))
        resolver = build_resolver(config)
    except (OSError, ValueError) as exc:
        # CatalogError and JSONDecodeError are both ValueErrors
        kind = "catalog" if isinstance(exc, CatalogError) else "input"
        console.print(f"[bold red]✗ Invalid {kind}:[/bold red] {exc}")
        log.error("member_policy.audit.failed", error=str(exc))
        return 2
    if not isinstance(record, dict):
        console.print("[bold red]✗ Invalid input:[/bold red] record must be a JSON object")
        return 2

    role = Role.parse(args.role)
    log.info("member_policy.audit.start", role=role.value, record=args.record)
    editable = run_audit(resolver, record, role, fields=args.fields, group=args.group)

    matched = None
    policy_path = args.policies or config.task_policy_path
    if policy_path:
        try:
            matched = print_task_policies(record, policy_path)
        except (OSError, ValueError) as exc:
            console.print(f"[bold red]✗ Invalid task policies:[/bold red] {exc}")
            return 2

    log.info("member_policy.audit.complete", editable=editable, task_policies=matched)
    return 0


if __name__ == "__main__":
    sys.exit(main())
