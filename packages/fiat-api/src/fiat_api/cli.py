"""CLI entry point for Fiat resource groups and permission checks."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Annotated

import typer
import yaml
from rich import print as rprint
from rich.markup import escape
from rich.syntax import Syntax
from rich.table import Table

from fiat_api.evaluator import PermissionEvaluator
from fiat_api.log import configure_logging
from fiat_api.service import PermissionSourceError, create_permission_source
from fiat_api.status import FiatStatus
from fiat_core.config import FiatConfig, load_config
from fiat_core.config.loader import DEFAULT_CONFIG_TEMPLATE
from fiat_core.matcher import evaluate, matching_groups
from fiat_core.model import (
    Authorization,
    Permissions,
    PrefixResourceGroup,
    Resource,
    ResourceGroup,
    ResourceType,
)
from fiat_core.registry import ResourceGroupRegistry, load_resource_groups

app = typer.Typer(
    name="fiat",
    help="Rule-based resource permissions backed by the Fiat authorization service.",
)

config_app = typer.Typer(help="Manage Fiat configuration.")
app.add_typer(config_app, name="config")

groups_app = typer.Typer(help="Validate and evaluate resource groups.")
app.add_typer(groups_app, name="groups")

# Global state
_config: FiatConfig | None = None


def _get_config() -> FiatConfig:
    if _config is None:
        return load_config()
    return _config


@app.callback()
def main(
    config: Annotated[
        str | None, typer.Option("--config", "-c", help="Path to fiat.yaml")
    ] = None,
) -> None:
    """Global options."""
    global _config
    _config = load_config(config)
    configure_logging(_config.log_level, _config.log_format)


def _format_permissions(permissions: Permissions) -> str:
    if not permissions.is_restricted():
        return "-"
    return "; ".join(
        f"{action.value}: {', '.join(sorted(roles))}" for action, roles in permissions.items()
    )


def _describe_match(group: ResourceGroup) -> str:
    if isinstance(group, PrefixResourceGroup):
        suffix = "" if group.case_sensitive else " (any case)"
        return f"prefix {group.prefix!r}{suffix}"
    return group.resource_group_type.value


def _load_groups_or_exit(path: Path) -> tuple[ResourceGroup, ...]:
    try:
        return load_resource_groups(path)
    except (OSError, ValueError) as e:
        rprint(f"[red]Invalid resource groups:[/red] {escape(str(e))}")
        raise typer.Exit(code=1)


def _parse_base_permissions(raw: str | None) -> Permissions:
    if not raw:
        return Permissions.EMPTY
    try:
        return Permissions.of(json.loads(raw))
    except ValueError as e:
        raise typer.BadParameter(f"not a permissions mapping: {e}", param_hint="--base-permissions")


# -- config -----------------------------------------------------------------


@config_app.command("init")
def config_init(
    path: Annotated[Path, typer.Option("--path", help="Where to write the config")] = Path("fiat.yaml"),
    force: Annotated[bool, typer.Option("--force", help="Overwrite an existing file")] = False,
) -> None:
    """Write a commented default config file."""
    if path.exists() and not force:
        rprint(f"[yellow]{path} already exists.[/yellow] Use --force to overwrite.")
        raise typer.Exit(code=1)
    path.write_text(DEFAULT_CONFIG_TEMPLATE)
    rprint(f"[green]Wrote {path}[/green]")


@config_app.command("show")
def config_show() -> None:
    """Print the resolved configuration."""
    cfg = _get_config()
    rendered = yaml.safe_dump(cfg.model_dump(mode="json"), sort_keys=False)
    rprint(Syntax(rendered, "yaml"))


# -- groups -----------------------------------------------------------------


@groups_app.command("validate")
def groups_validate(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Resource group file")],
) -> None:
    """Parse a resource group file, failing on the first bad record."""
    groups = _load_groups_or_exit(file)

    table = Table(title=f"Resource groups ({len(groups)})")
    table.add_column("#", justify="right")
    table.add_column("Resource type", style="cyan")
    table.add_column("Match", style="green")
    table.add_column("Permissions", style="yellow")
    for i, group in enumerate(groups):
        table.add_row(
            str(i),
            group.resource_type.value,
            _describe_match(group),
            _format_permissions(group.permissions),
        )
    rprint(table)


@groups_app.command("evaluate")
def groups_evaluate(
    file: Annotated[Path, typer.Argument(exists=True, dir_okay=False, help="Resource group file")],
    resource_type: Annotated[
        ResourceType, typer.Option("--type", "-t", case_sensitive=False, help="Resource type")
    ],
    name: Annotated[str, typer.Option("--name", "-n", help="Resource name")],
    base_permissions: Annotated[
        str | None,
        typer.Option("--base-permissions", help='JSON, e.g. {"READ": ["role-a"]}'),
    ] = None,
) -> None:
    """Show the effective permissions of a resource under a group file."""
    groups = _load_groups_or_exit(file)
    resource = Resource(
        name=name,
        resource_type=resource_type,
        permissions=_parse_base_permissions(base_permissions),
    )
    matched = matching_groups(resource, groups)
    effective = evaluate(resource, groups)

    table = Table(title=f"{resource_type.value} {name}")
    table.add_column("Action", style="cyan")
    table.add_column("Roles", style="green")
    for action, roles in effective.items():
        table.add_row(action.value, ", ".join(sorted(roles)))
    rprint(table)
    rprint(f"[dim]Matched {len(matched)} of {len(groups)} resource groups[/dim]")


# -- check ------------------------------------------------------------------


def _print_granted_authorities(evaluator: PermissionEvaluator, principal: str) -> None:
    try:
        roles = evaluator.granted_authorities(principal)
    except PermissionSourceError as e:
        rprint(f"[yellow]Granted authorities unavailable:[/yellow] {escape(str(e))}")
        return
    rendered = ", ".join(sorted(roles)) if roles else "-"
    rprint(f"[dim]Granted authorities:[/dim] {escape(rendered)}")


@app.command()
def check(
    principal: Annotated[str, typer.Argument(help="User or service principal")],
    resource_type: Annotated[
        ResourceType, typer.Option("--type", "-t", case_sensitive=False, help="Resource type")
    ],
    name: Annotated[str, typer.Option("--name", "-n", help="Resource name")],
    action: Annotated[
        Authorization, typer.Option("--action", "-a", case_sensitive=False, help="Action")
    ] = Authorization.READ,
    groups_file: Annotated[
        Path | None, typer.Option("--groups", help="Resource group file (overrides config)")
    ] = None,
) -> None:
    """Ask the authorization service whether PRINCIPAL may act on a resource."""
    cfg = _get_config()

    registry = ResourceGroupRegistry()
    path = groups_file or (Path(cfg.resource_groups.path) if cfg.resource_groups.path else None)
    if path is not None:
        registry.replace(_load_groups_or_exit(path))

    resource = Resource(name=name, resource_type=resource_type)
    source = create_permission_source(cfg.client)
    try:
        evaluator = PermissionEvaluator(source, registry, FiatStatus(cfg.client))
        allowed = evaluator.has_permission(principal, resource, action)
        if cfg.client.granted_authorities_enabled:
            _print_granted_authorities(evaluator, principal)
    finally:
        source.close()

    if allowed:
        rprint(f"[green]ALLOW[/green] {escape(principal)} {action.value} {resource_type.value} {escape(name)}")
        return
    rprint(f"[red]DENY[/red] {escape(principal)} {action.value} {resource_type.value} {escape(name)}")
    raise typer.Exit(code=1)


if __name__ == "__main__":
    app()
