"""CLI commands for inspecting permissions.

Usage:
    volunteer-admin permissions list
    volunteer-admin permissions flatten '{"event": {"visible": true}}' --caller root
    volunteer-admin permissions check event.visible --grants event
"""

from __future__ import annotations

import json

import typer

from src.auth.access import PERMISSIONS, UnknownPermissionError
from src.auth.access_control import AccessControl
from src.auth.access_list import ANY_EVENT, ANY_TEAM, AccessScope
from src.auth.permission_list import PermissionRestrictionError, to_permission_list

permissions_app = typer.Typer(help="Permission inspection")


def _describe_restriction(restrict: object) -> str:
    if restrict is None:
        return ""
    if isinstance(restrict, dict):
        return ", ".join(f"{op}: {value.value}" for op, value in restrict.items())
    return str(getattr(restrict, "value", restrict))


@permissions_app.command("list")
def permissions_list(
    show_hidden: bool = typer.Option(False, "--hidden", help="Include hidden permissions"),
) -> None:
    """List the permission registry."""
    for name, descriptor in PERMISSIONS.items():
        if descriptor.hide is True and not show_hidden:
            continue

        restriction = _describe_restriction(descriptor.restrict)
        suffix = f"  [restricted: {restriction}]" if restriction else ""
        typer.echo(f"{name:<36} {descriptor.type:<8} {descriptor.name}{suffix}")


@permissions_app.command("flatten")
def permissions_flatten(
    tree: str = typer.Argument(..., help="Permission tree as JSON"),
    caller: str = typer.Option("", help="Comma-separated grants of the acting account"),
    existing: str = typer.Option("", help="Comma-separated grants of the target account"),
) -> None:
    """Flatten a permission tree into the list that would be stored."""
    try:
        data = json.loads(tree)
    except json.JSONDecodeError as e:
        typer.echo(typer.style(f"Invalid JSON: {e}", fg=typer.colors.RED))
        raise typer.Exit(code=1) from None

    try:
        result = to_permission_list(
            data, AccessControl(grants=caller), AccessControl(grants=existing)
        )
    except (PermissionRestrictionError, TypeError) as e:
        typer.echo(typer.style(str(e), fg=typer.colors.RED))
        raise typer.Exit(code=1) from None

    typer.echo(result if result is not None else "(none)")


@permissions_app.command("check")
def permissions_check(
    permission: str = typer.Argument(..., help="Permission name, e.g. event.visible"),
    operation: str | None = typer.Option(None, help="CRUD operation"),
    grants: str = typer.Option("", help="Comma-separated grants"),
    revokes: str = typer.Option("", help="Comma-separated revokes"),
    events: str = typer.Option("", help="Global event access"),
    teams: str = typer.Option("", help="Global team access"),
    event: str = typer.Option(ANY_EVENT, help="Event to scope the check to"),
    team: str = typer.Option(ANY_TEAM, help="Team to scope the check to"),
) -> None:
    """Show the effective status of a permission for the given grants."""
    access = AccessControl(grants=grants, revokes=revokes, events=events, teams=teams)
    scope = AccessScope(event=event, team=team)

    try:
        status = access.get_status(permission, operation, scope)  # type: ignore[arg-type]
    except (UnknownPermissionError, ValueError) as e:
        typer.echo(typer.style(str(e), fg=typer.colors.RED))
        raise typer.Exit(code=1) from None

    colour = typer.colors.GREEN if status.endswith("granted") else typer.colors.YELLOW
    typer.echo(typer.style(status, fg=colour))
